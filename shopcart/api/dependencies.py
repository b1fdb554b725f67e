"""
Dependency Injection
FastAPI dependencies for SaaS clients, services and the current user.
"""

import logging
from typing import Optional

from fastapi import Cookie, Depends
from fastapi.security import HTTPAuthorizationCredentials

from .config import get_settings
from .errors import AuthenticationError, InvalidRequestError, PermissionDeniedError
from .security import SESSION_COOKIE, bearer_scheme, extract_session_token, verify_token
from .services.cache_service import CacheService, get_cache_service
from .services.notification_service import NotificationService
from ..clients import ClerkClient, ClerkUser, SanityClient, StripeClient
from ..models.admin import is_user_admin

logger = logging.getLogger(__name__)

_sanity_client: Optional[SanityClient] = None
_clerk_client: Optional[ClerkClient] = None
_stripe_client: Optional[StripeClient] = None


def get_sanity_client() -> SanityClient:
    """Get Sanity client (singleton)."""
    global _sanity_client
    if _sanity_client is None:
        settings = get_settings()
        _sanity_client = SanityClient(
            project_id=settings.sanity_project_id,
            dataset=settings.sanity_dataset,
            api_version=settings.sanity_api_version,
            token=settings.sanity_api_token,
            use_cdn=settings.sanity_use_cdn,
            timeout=settings.http_timeout,
        )
        logger.info(
            f"Sanity client created: project={settings.sanity_project_id} "
            f"dataset={settings.sanity_dataset}"
        )
    return _sanity_client


def get_clerk_client() -> ClerkClient:
    """Get Clerk client (singleton)."""
    global _clerk_client
    if _clerk_client is None:
        settings = get_settings()
        _clerk_client = ClerkClient(
            secret_key=settings.clerk_secret_key,
            api_url=settings.clerk_api_url,
            issuer=settings.clerk_jwt_issuer,
            authorized_parties=settings.clerk_authorized_parties,
            timeout=settings.http_timeout,
        )
    return _clerk_client


def get_stripe_client() -> StripeClient:
    """Get Stripe client (singleton)."""
    global _stripe_client
    if _stripe_client is None:
        settings = get_settings()
        _stripe_client = StripeClient(secret_key=settings.stripe_secret_key)
    return _stripe_client


def reset_clients() -> None:
    """Drop cached clients (useful for testing)."""
    global _sanity_client, _clerk_client, _stripe_client
    _sanity_client = _clerk_client = _stripe_client = None


def get_notification_service(
    sanity: SanityClient = Depends(get_sanity_client),
) -> NotificationService:
    return NotificationService(sanity)


def get_cache() -> CacheService:
    return get_cache_service()


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session_cookie: Optional[str] = Cookie(None, alias=SESSION_COOKIE),
    clerk: ClerkClient = Depends(get_clerk_client),
) -> ClerkUser:
    """
    Resolve the signed-in Clerk user.

    Use as FastAPI dependency:
        @router.get("/protected")
        async def protected(user: ClerkUser = Depends(get_current_user)):
            ...
    """
    token = extract_session_token(
        credentials.credentials if credentials else None, session_cookie
    )
    claims = await verify_token(clerk, token)

    user = await clerk.get_user(claims["sub"])
    if user is None:
        raise AuthenticationError("Unauthorized")
    return user


def get_current_user_email(user: ClerkUser = Depends(get_current_user)) -> str:
    """Email of the signed-in user; 400 when Clerk has none on file."""
    if not user.email:
        raise InvalidRequestError("User email not found")
    return user.email


def require_admin(user: ClerkUser = Depends(get_current_user)) -> ClerkUser:
    """Allow only users whose email is on the admin list."""
    if not is_user_admin(user.email):
        raise PermissionDeniedError("Forbidden: Admin access required")
    return user
