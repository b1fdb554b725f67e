"""
SaaS Clients
Async clients for Sanity, Clerk and Stripe.
"""

from .sanity import SanityClient, build_delete, build_patch
from .clerk import ClerkClient, ClerkUser
from .stripe import StripeClient, build_line_item

__all__ = [
    "SanityClient",
    "build_delete",
    "build_patch",
    "ClerkClient",
    "ClerkUser",
    "StripeClient",
    "build_line_item",
]
