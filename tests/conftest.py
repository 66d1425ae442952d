"""Shared fixtures: sample schemas, an in-memory store client and an API client."""
from __future__ import annotations

from typing import Any

import pytest
from fastapi.testclient import TestClient

from nsexplorer.core.deps import get_store_client
from nsexplorer.main import app
from nsexplorer.schemas.query import CompiledQueryRequest
from nsexplorer.services.builder_sessions import BuilderSessionStore
from nsexplorer.services.schema_fields import NamespaceSchema
from nsexplorer.services.store_client import StoreError

SAMPLE_SCHEMA: dict[str, Any] = {
    "age": {"type": "number"},
    "name": {"type": "string"},
    "bio": {"type": "string", "full_text_search": True},
    "embedding": {"type": "[f32;128]"},
}


class FakeStoreClient:
    """Stands in for TurbopufferClient; records every compiled request."""

    base_url = "https://fake.turbopuffer.test"

    def __init__(
        self,
        schema: dict[str, Any] | None = None,
        namespaces: list[str] | None = None,
        rows: list[dict[str, Any]] | None = None,
    ) -> None:
        self.schema = dict(SAMPLE_SCHEMA) if schema is None else schema
        self.namespaces = namespaces if namespaces is not None else ["docs", "docs-archive", "images"]
        self.next_cursor: str | None = None
        self.rows = rows if rows is not None else []
        self.query_error: StoreError | None = None
        self.metadata_error: StoreError | None = None
        self.queries: list[tuple[str, dict[str, Any]]] = []

    async def list_namespaces(self, cursor=None, prefix=None, page_size=100):
        ids = [ns for ns in self.namespaces if not prefix or ns.startswith(prefix)]
        return {"namespaces": [{"id": ns} for ns in ids[:page_size]], "next_cursor": self.next_cursor}

    async def get_namespace_metadata(self, namespace_id: str) -> dict[str, Any]:
        if self.metadata_error is not None:
            raise self.metadata_error
        if namespace_id not in self.namespaces:
            raise StoreError(f"namespace '{namespace_id}' not found", status_code=404)
        return {
            "schema": self.schema,
            "approx_row_count": 1234,
            "approx_logical_bytes": 2621440,
            "created_at": "2025-01-01T00:00:00Z",
        }

    async def query(self, namespace_id: str, request: CompiledQueryRequest) -> dict[str, Any]:
        self.queries.append((namespace_id, request.to_wire()))
        if self.query_error is not None:
            raise self.query_error
        return {"rows": list(self.rows)}

    async def aclose(self) -> None:
        return None


@pytest.fixture
def sample_schema() -> dict[str, Any]:
    return dict(SAMPLE_SCHEMA)


@pytest.fixture
def namespace_schema(sample_schema) -> NamespaceSchema:
    return NamespaceSchema(sample_schema)


@pytest.fixture
def fake_store() -> FakeStoreClient:
    return FakeStoreClient(
        rows=[
            {"id": 1, "age": 30, "name": "ada", "dist": 0.1},
            {"id": 2, "age": 45, "bio": "likes maths"},
        ]
    )


@pytest.fixture
def client(fake_store):
    app.dependency_overrides[get_store_client] = lambda: fake_store
    app.state.builder_sessions = BuilderSessionStore(max_sessions=10)
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def store_factory():
    return FakeStoreClient
