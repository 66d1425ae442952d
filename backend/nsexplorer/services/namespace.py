"""Namespace service: listing, metadata and query submission."""

import logging
from typing import Any

from nsexplorer.config import settings
from nsexplorer.schemas.query import (
    CompiledQueryRequest,
    FilterCondition,
    FullTextSearchSpec,
    OrderSpec,
)
from nsexplorer.services.query_compiler import compile_query
from nsexplorer.services.schema_fields import NamespaceSchema, describe_schema
from nsexplorer.services.store_client import StoreError, TurbopufferClient

logger = logging.getLogger(__name__)

# Row keys shown outside the attribute columns
_ROW_META_KEYS = ("id", "dist")
_SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")


def format_bytes(size: int | float | None) -> str | None:
    """Human readable size, e.g. ``2.5 MB``; one decimal below 10 units."""
    if not isinstance(size, (int, float)) or isinstance(size, bool):
        return None
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(_SIZE_UNITS) - 1:
        value /= 1024
        unit += 1
    decimals = 1 if value < 10 and unit > 0 else 0
    return f"{value:.{decimals}f} {_SIZE_UNITS[unit]}"


def result_columns(rows: list[dict]) -> list[str]:
    """Attribute keys across all rows, in first-seen order."""
    seen: dict[str, None] = {}
    for row in rows:
        for key in row:
            if key not in _ROW_META_KEYS:
                seen.setdefault(key, None)
    return list(seen)


class NamespaceService:
    def __init__(self, client: TurbopufferClient):
        self.client = client

    async def list_namespaces(
        self, prefix: str | None = None, search: str | None = None
    ) -> dict:
        """One page of namespaces, optionally narrowed by a substring search."""
        page = await self.client.list_namespaces(
            prefix=prefix, page_size=settings.NAMESPACE_PAGE_SIZE
        )
        namespaces = [{"id": ns["id"]} for ns in page["namespaces"] if ns.get("id")]
        shown = namespaces
        if search:
            needle = search.lower()
            shown = [ns for ns in namespaces if needle in ns["id"].lower()]
        return {
            "namespaces": shown,
            "shown": len(shown),
            "total": len(namespaces),
            "has_more": bool(page["next_cursor"]),
        }

    async def fetch_metadata(self, namespace_id: str) -> dict[str, Any]:
        metadata = await self.client.get_namespace_metadata(namespace_id)
        if not isinstance(metadata, dict):
            raise StoreError("Store returned unexpected namespace metadata.")
        return metadata

    async def fetch_schema(self, namespace_id: str) -> NamespaceSchema:
        metadata = await self.fetch_metadata(namespace_id)
        schema = metadata.get("schema")
        return NamespaceSchema(schema if isinstance(schema, dict) else None)

    async def get_namespace(self, namespace_id: str) -> dict:
        metadata = await self.fetch_metadata(namespace_id)
        schema = metadata.get("schema")
        if not isinstance(schema, dict):
            schema = None
        return {
            "id": namespace_id,
            "created_at": metadata.get("created_at"),
            "approx_row_count": metadata.get("approx_row_count"),
            "approx_logical_bytes": metadata.get("approx_logical_bytes"),
            "approx_size": format_bytes(metadata.get("approx_logical_bytes")),
            "schema": schema,
            "schema_fields": describe_schema(schema),
        }

    async def get_field_capabilities(self, namespace_id: str) -> dict:
        schema = await self.fetch_schema(namespace_id)
        return {
            "fields": schema.capabilities(),
            "filterable_fields": schema.filterable_fields,
            "full_text_search_fields": schema.full_text_search_fields,
            "orderable_fields": schema.field_names,
            "default_top_k": settings.DEFAULT_TOP_K,
            "max_top_k": settings.MAX_TOP_K,
        }

    async def execute(self, namespace_id: str, request: CompiledQueryRequest) -> dict:
        """Hand a compiled request to the store.

        Store failures are reduced to a message so the session carries on.
        """
        try:
            result = await self.client.query(namespace_id, request)
        except StoreError as exc:
            logger.info("Query on %s failed: %s", namespace_id, exc.message)
            return {
                "success": False,
                "error": exc.message or "Query failed",
                "request": request.to_wire(),
            }
        rows = result.get("rows") or []
        return {
            "success": True,
            "results": {
                "rows": rows,
                "columns": result_columns(rows),
                "row_count": len(rows),
            },
            "request": request.to_wire(),
        }

    async def run_query(
        self,
        namespace_id: str,
        filters: list[FilterCondition],
        order_by: OrderSpec | None = None,
        top_k: Any = None,
        full_text_search: FullTextSearchSpec | None = None,
    ) -> dict:
        """Compile the builder state against a fresh schema and execute it."""
        try:
            schema = await self.fetch_schema(namespace_id)
        except StoreError as exc:
            logger.info("Schema fetch for %s failed: %s", namespace_id, exc.message)
            return {"success": False, "error": exc.message or "Query failed"}

        request = compile_query(
            filters,
            order_by=order_by,
            top_k=top_k,
            full_text_search=full_text_search,
            schema=schema.source,
        )
        return await self.execute(namespace_id, request)
