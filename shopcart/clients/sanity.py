"""
Sanity Client
Async wrapper over Sanity's HTTP query and mutation API.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from ..api.errors import UpstreamServiceError

logger = logging.getLogger(__name__)


class SanityClient:
    """
    Client for the Sanity Content Lake.

    Reads are GROQ queries; writes are mutation batches posted to the
    mutate endpoint with ``returnDocuments`` so callers get the stored
    document back.
    """

    SERVICE = "Sanity"

    def __init__(
        self,
        project_id: str,
        dataset: str = "production",
        api_version: str = "2024-11-09",
        token: Optional[str] = None,
        use_cdn: bool = False,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.project_id = project_id
        self.dataset = dataset
        self.api_version = api_version.lstrip("v")
        self.token = token
        # Authenticated reads bypass the CDN
        self.use_cdn = use_cdn and not token
        self.timeout = timeout
        self._transport = transport

    @property
    def api_host(self) -> str:
        return f"https://{self.project_id}.api.sanity.io/v{self.api_version}"

    @property
    def read_host(self) -> str:
        if self.use_cdn:
            return f"https://{self.project_id}.apicdn.sanity.io/v{self.api_version}"
        return self.api_host

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _post(self, url: str, payload: Dict[str, Any], params: Optional[dict] = None) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, json=payload, params=params, headers=self._headers())
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Sanity returned {e.response.status_code} for {url}: {e.response.text[:200]}"
            )
            raise UpstreamServiceError(self.SERVICE, e.response.text[:200], e.response.status_code)
        except httpx.RequestError as e:
            logger.error(f"Sanity request error for {url}: {e}", exc_info=True)
            raise UpstreamServiceError(self.SERVICE, str(e))

    async def fetch(self, query: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Run a GROQ query.

        Args:
            query: GROQ query string
            params: Query parameters referenced as ``$name`` in the query

        Returns:
            The ``result`` member of the response
        """
        url = f"{self.read_host}/data/query/{self.dataset}"
        data = await self._post(url, {"query": query, "params": params or {}})
        return data.get("result")

    async def mutate(self, mutations: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Apply a batch of mutations atomically and return the affected documents."""
        url = f"{self.api_host}/data/mutate/{self.dataset}"
        data = await self._post(
            url,
            {"mutations": mutations},
            params={"returnDocuments": "true", "visibility": "sync"},
        )
        return [r.get("document") for r in data.get("results", [])]

    async def create(self, document: Dict[str, Any]) -> Dict[str, Any]:
        documents = await self.mutate([{"create": document}])
        return documents[0] if documents else {}

    async def patch(
        self,
        document_id: str,
        set: Optional[Dict[str, Any]] = None,
        unset: Optional[List[str]] = None,
        inc: Optional[Dict[str, Any]] = None,
        set_if_missing: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Patch a single document; returns the patched document."""
        documents = await self.mutate([build_patch(document_id, set, unset, inc, set_if_missing)])
        return documents[0] if documents else {}

    async def delete(self, document_id: str) -> Optional[Dict[str, Any]]:
        documents = await self.mutate([build_delete(document_id)])
        return documents[0] if documents else None

    async def transaction(self, mutations: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Commit several mutations as one transaction."""
        return await self.mutate(mutations)

    async def ping(self) -> bool:
        """Cheap round-trip used by the readiness check."""
        await self.fetch("count(*[_type == $type][0...1])", {"type": "user"})
        return True


def build_patch(
    document_id: str,
    set: Optional[Dict[str, Any]] = None,
    unset: Optional[List[str]] = None,
    inc: Optional[Dict[str, Any]] = None,
    set_if_missing: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Build a patch mutation, skipping empty operations."""
    patch: Dict[str, Any] = {"id": document_id}
    if set_if_missing:
        patch["setIfMissing"] = set_if_missing
    if set:
        patch["set"] = set
    if unset:
        patch["unset"] = unset
    if inc:
        patch["inc"] = inc
    return {"patch": patch}


def build_delete(document_id: str) -> Dict[str, Any]:
    return {"delete": {"id": document_id}}
