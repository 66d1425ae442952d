"""Async HTTP client for the turbopuffer namespace API."""

import logging
from typing import Any

import httpx

from nsexplorer.schemas.query import CompiledQueryRequest

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """The store rejected a request or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _error_message(resp: httpx.Response) -> str:
    """Pull the human-readable error out of a store error body."""
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    text = resp.text.strip()
    return text[:500] if text else f"Store returned HTTP {resp.status_code}"


class TurbopufferClient:
    """Thin async wrapper around the turbopuffer REST API.

    One instance is created per process (see ``main.lifespan``) and handed to
    request handlers through ``core.deps.get_store_client``.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "TurbopufferClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("Store request %s %s failed: %s", method, path, exc)
            raise StoreError(f"Could not reach the store: {exc}") from exc
        if resp.is_error:
            message = _error_message(resp)
            logger.info("Store rejected %s %s (%d): %s", method, path, resp.status_code, message)
            raise StoreError(message, status_code=resp.status_code)
        try:
            return resp.json()
        except ValueError as exc:
            raise StoreError("Store returned a non-JSON response.", resp.status_code) from exc

    async def list_namespaces(
        self,
        cursor: str | None = None,
        prefix: str | None = None,
        page_size: int = 100,
    ) -> dict[str, Any]:
        """Fetch one page of namespaces: ``{"namespaces": [...], "next_cursor": ...}``."""
        params: dict[str, Any] = {"page_size": page_size}
        if cursor:
            params["cursor"] = cursor
        if prefix:
            params["prefix"] = prefix
        data = await self._request("GET", "/v1/namespaces", params=params)
        if not isinstance(data, dict):
            raise StoreError("Store returned an unexpected namespace listing.")
        return {
            "namespaces": data.get("namespaces", []),
            "next_cursor": data.get("next_cursor"),
        }

    async def get_namespace_metadata(self, namespace_id: str) -> dict[str, Any]:
        """Namespace metadata, including its attribute ``schema``."""
        return await self._request("GET", f"/v1/namespaces/{namespace_id}/metadata")

    async def query(
        self, namespace_id: str, request: CompiledQueryRequest
    ) -> dict[str, Any]:
        body = request.to_wire()
        logger.debug("Querying %s with %s", namespace_id, body)
        data = await self._request(
            "POST", f"/v2/namespaces/{namespace_id}/query", json=body
        )
        if not isinstance(data, dict):
            raise StoreError("Store returned an unexpected query response.")
        data.setdefault("rows", [])
        return data
