"""Unit tests – turbopuffer HTTP client."""
from __future__ import annotations

import asyncio
import json

import httpx
import pytest
import respx

from nsexplorer.schemas.query import CompiledQueryRequest
from nsexplorer.services.store_client import StoreError, TurbopufferClient

BASE = "https://test.turbopuffer.com"


def _client() -> TurbopufferClient:
    return TurbopufferClient(base_url=BASE + "/", api_key="tpuf_key", timeout=5)


class TestListNamespaces:
    @respx.mock
    def test_single_page_with_prefix(self) -> None:
        route = respx.get(f"{BASE}/v1/namespaces").mock(
            return_value=httpx.Response(
                200, json={"namespaces": [{"id": "docs"}], "next_cursor": "abc"}
            )
        )

        async def run() -> dict:
            async with _client() as client:
                return await client.list_namespaces(prefix="do", page_size=100)

        page = asyncio.run(run())
        assert page == {"namespaces": [{"id": "docs"}], "next_cursor": "abc"}
        sent = route.calls.last.request
        assert sent.url.params["prefix"] == "do"
        assert sent.url.params["page_size"] == "100"
        assert "cursor" not in sent.url.params
        assert sent.headers["authorization"] == "Bearer tpuf_key"


class TestMetadata:
    @respx.mock
    def test_returns_metadata(self) -> None:
        respx.get(f"{BASE}/v1/namespaces/docs/metadata").mock(
            return_value=httpx.Response(200, json={"schema": {"a": {"type": "string"}}})
        )

        async def run() -> dict:
            async with _client() as client:
                return await client.get_namespace_metadata("docs")

        assert asyncio.run(run())["schema"] == {"a": {"type": "string"}}

    @respx.mock
    def test_not_found_raises_store_error(self) -> None:
        respx.get(f"{BASE}/v1/namespaces/nope/metadata").mock(
            return_value=httpx.Response(404, json={"status": "error", "error": "namespace not found"})
        )

        async def run() -> None:
            async with _client() as client:
                await client.get_namespace_metadata("nope")

        with pytest.raises(StoreError) as excinfo:
            asyncio.run(run())
        assert excinfo.value.status_code == 404
        assert excinfo.value.message == "namespace not found"


class TestQuery:
    @respx.mock
    def test_sends_exact_wire_body(self) -> None:
        route = respx.post(f"{BASE}/v2/namespaces/docs/query").mock(
            return_value=httpx.Response(200, json={"rows": [{"id": 1, "age": 30}]})
        )
        request = CompiledQueryRequest(
            filters=["And", [["age", "Gt", 21], ["active", "Eq", True]]],
            rank_by=["age", "desc"],
            top_k=10,
            include_attributes=["age", "active"],
        )

        async def run() -> dict:
            async with _client() as client:
                return await client.query("docs", request)

        result = asyncio.run(run())
        assert result["rows"] == [{"id": 1, "age": 30}]
        assert json.loads(route.calls.last.request.content) == {
            "filters": ["And", [["age", "Gt", 21], ["active", "Eq", True]]],
            "rank_by": ["age", "desc"],
            "top_k": 10,
            "include_attributes": ["age", "active"],
        }

    @respx.mock
    def test_omits_unset_keys(self) -> None:
        route = respx.post(f"{BASE}/v2/namespaces/docs/query").mock(
            return_value=httpx.Response(200, json={})
        )

        async def run() -> dict:
            async with _client() as client:
                return await client.query("docs", CompiledQueryRequest(top_k=100))

        assert asyncio.run(run())["rows"] == []
        assert json.loads(route.calls.last.request.content) == {"top_k": 100}

    @respx.mock
    def test_rejection_message_surfaces(self) -> None:
        respx.post(f"{BASE}/v2/namespaces/docs/query").mock(
            return_value=httpx.Response(400, json={"status": "error", "error": "unknown attribute 'agee'"})
        )

        async def run() -> None:
            async with _client() as client:
                await client.query("docs", CompiledQueryRequest(top_k=1))

        with pytest.raises(StoreError, match="unknown attribute 'agee'"):
            asyncio.run(run())

    @respx.mock
    def test_plain_text_error_body(self) -> None:
        respx.post(f"{BASE}/v2/namespaces/docs/query").mock(
            return_value=httpx.Response(500, text="upstream exploded")
        )

        async def run() -> None:
            async with _client() as client:
                await client.query("docs", CompiledQueryRequest(top_k=1))

        with pytest.raises(StoreError) as excinfo:
            asyncio.run(run())
        assert excinfo.value.message == "upstream exploded"
        assert excinfo.value.status_code == 500

    @respx.mock
    def test_transport_failure(self) -> None:
        respx.post(f"{BASE}/v2/namespaces/docs/query").mock(
            side_effect=httpx.ConnectError("connection refused")
        )

        async def run() -> None:
            async with _client() as client:
                await client.query("docs", CompiledQueryRequest(top_k=1))

        with pytest.raises(StoreError, match="Could not reach the store"):
            asyncio.run(run())
