"""
Clerk Client
Backend API access and session token verification for Clerk.
"""

import logging
import time
from typing import Any, Dict, List, Optional

import httpx
from jose import jwt, JWTError
from pydantic import BaseModel

from ..api.errors import AuthenticationError, UpstreamServiceError

logger = logging.getLogger(__name__)

JWKS_TTL_SECONDS = 3600


class ClerkUser(BaseModel):
    """Projection of a Clerk user object."""

    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    image_url: Optional[str] = None
    phone: Optional[str] = None
    created_at: Optional[int] = None
    public_metadata: Dict[str, Any] = {}

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part).strip()

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "ClerkUser":
        """Build from a Clerk Backend API user payload."""
        emails = data.get("email_addresses") or []
        primary_id = data.get("primary_email_address_id")
        email = next(
            (e.get("email_address") for e in emails if e.get("id") == primary_id),
            emails[0].get("email_address") if emails else None,
        )

        phones = data.get("phone_numbers") or []
        primary_phone_id = data.get("primary_phone_number_id")
        phone = next(
            (p.get("phone_number") for p in phones if p.get("id") == primary_phone_id),
            phones[0].get("phone_number") if phones else None,
        )

        return cls(
            id=data["id"],
            email=email,
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
            image_url=data.get("image_url"),
            phone=phone,
            created_at=data.get("created_at"),
            public_metadata=data.get("public_metadata") or {},
        )


class ClerkClient:
    """Async client for the Clerk Backend API."""

    SERVICE = "Clerk"

    def __init__(
        self,
        secret_key: str,
        api_url: str = "https://api.clerk.com/v1",
        issuer: Optional[str] = None,
        authorized_parties: Optional[List[str]] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.secret_key = secret_key
        self.api_url = api_url.rstrip("/")
        self.issuer = issuer
        self.authorized_parties = authorized_parties or []
        self.timeout = timeout
        self._transport = transport

        self._jwks: Optional[Dict[str, Any]] = None
        self._jwks_fetched_at = 0.0

    async def _request(
        self, method: str, path: str, params: Optional[dict] = None, json: Optional[dict] = None
    ) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self.secret_key}"}
        try:
            async with httpx.AsyncClient(
                base_url=self.api_url, timeout=self.timeout, transport=self._transport
            ) as client:
                return await client.request(method, path, params=params, json=json, headers=headers)
        except httpx.RequestError as e:
            logger.error(f"Clerk request error for {path}: {e}", exc_info=True)
            raise UpstreamServiceError(self.SERVICE, str(e))

    def _raise_for_status(self, response: httpx.Response) -> None:
        if response.is_error:
            logger.error(f"Clerk returned {response.status_code}: {response.text[:200]}")
            raise UpstreamServiceError(self.SERVICE, response.text[:200], response.status_code)

    async def get_user(self, user_id: str) -> Optional[ClerkUser]:
        """Fetch one user; None when Clerk does not know the id."""
        response = await self._request("GET", f"/users/{user_id}")
        if response.status_code == 404:
            return None
        self._raise_for_status(response)
        return ClerkUser.from_api(response.json())

    async def list_users(
        self, limit: int = 100, offset: int = 0, query: Optional[str] = None
    ) -> List[ClerkUser]:
        params: Dict[str, Any] = {"limit": limit, "offset": offset, "order_by": "-created_at"}
        if query:
            params["query"] = query
        response = await self._request("GET", "/users", params=params)
        self._raise_for_status(response)
        return [ClerkUser.from_api(item) for item in response.json()]

    async def get_user_count(self) -> int:
        response = await self._request("GET", "/users/count")
        self._raise_for_status(response)
        return int(response.json().get("total_count", 0))

    async def update_user_metadata(
        self,
        user_id: str,
        public_metadata: Optional[Dict[str, Any]] = None,
        private_metadata: Optional[Dict[str, Any]] = None,
    ) -> ClerkUser:
        """Merge metadata into the Clerk user."""
        body: Dict[str, Any] = {}
        if public_metadata is not None:
            body["public_metadata"] = public_metadata
        if private_metadata is not None:
            body["private_metadata"] = private_metadata
        response = await self._request("PATCH", f"/users/{user_id}/metadata", json=body)
        self._raise_for_status(response)
        return ClerkUser.from_api(response.json())

    async def get_jwks(self, force: bool = False) -> Dict[str, Any]:
        """Return the instance JWKS, cached for an hour."""
        if (
            not force
            and self._jwks is not None
            and time.time() - self._jwks_fetched_at < JWKS_TTL_SECONDS
        ):
            return self._jwks

        response = await self._request("GET", "/jwks")
        self._raise_for_status(response)
        self._jwks = response.json()
        self._jwks_fetched_at = time.time()
        return self._jwks

    async def verify_session_token(self, token: str) -> Dict[str, Any]:
        """
        Verify a Clerk session JWT.

        Args:
            token: Raw JWT from the Authorization header or __session cookie

        Returns:
            Decoded claims

        Raises:
            AuthenticationError: If the token is malformed, unsigned by a
                known key, expired, or issued for another party
        """
        try:
            header = jwt.get_unverified_header(token)
        except JWTError as e:
            raise AuthenticationError(f"Invalid token: {e}")

        kid = header.get("kid")
        key = await self._find_key(kid)
        if key is None:
            # Keys may have rotated since the last fetch
            key = await self._find_key(kid, refresh=True)
        if key is None:
            raise AuthenticationError("Invalid token: unknown signing key")

        try:
            claims = jwt.decode(
                token,
                key,
                algorithms=["RS256"],
                issuer=self.issuer,
                options={"verify_aud": False, "verify_iss": bool(self.issuer)},
            )
        except JWTError as e:
            message = "Token has expired" if "expired" in str(e).lower() else f"Invalid token: {e}"
            raise AuthenticationError(message)

        azp = claims.get("azp")
        if self.authorized_parties and azp and azp not in self.authorized_parties:
            raise AuthenticationError("Invalid token: unauthorized party")

        if not claims.get("sub"):
            raise AuthenticationError("Invalid token payload: missing subject")

        return claims

    async def _find_key(self, kid: Optional[str], refresh: bool = False) -> Optional[Dict[str, Any]]:
        jwks = await self.get_jwks(force=refresh)
        for key in jwks.get("keys", []):
            if kid is None or key.get("kid") == kid:
                return key
        return None
