"""
Security
Clerk session token extraction and verification.
"""

import logging
from typing import Any, Dict, Optional

from fastapi.security import HTTPBearer

from .errors import AuthenticationError
from ..clients import ClerkClient

logger = logging.getLogger(__name__)

# auto_error off: a missing header falls back to the session cookie
bearer_scheme = HTTPBearer(auto_error=False)

SESSION_COOKIE = "__session"


def extract_session_token(
    authorization: Optional[str] = None, session_cookie: Optional[str] = None
) -> Optional[str]:
    """Prefer the bearer token, fall back to Clerk's ``__session`` cookie."""
    if authorization:
        return authorization
    if session_cookie:
        return session_cookie
    return None


async def verify_token(clerk: ClerkClient, token: Optional[str]) -> Dict[str, Any]:
    """
    Verify a session token with Clerk.

    Raises:
        AuthenticationError: If the token is missing or invalid
    """
    if not token:
        raise AuthenticationError("Unauthorized")

    claims = await clerk.verify_session_token(token)
    logger.debug(f"Verified session for {claims.get('sub')}")
    return claims
