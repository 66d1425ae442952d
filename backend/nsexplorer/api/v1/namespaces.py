"""Namespace browsing and query submission endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Form, Query

from nsexplorer.core.deps import get_namespace_service
from nsexplorer.schemas.query import QuerySubmission
from nsexplorer.services.filter_model import (
    parse_filters_json,
    parse_full_text_search_json,
    parse_order_json,
    parse_top_k,
)
from nsexplorer.services.namespace import NamespaceService
from nsexplorer.services.query_compiler import compile_query

router = APIRouter(prefix="/namespaces", tags=["namespaces"])


def query_response(outcome: dict) -> dict:
    """Wrap a query outcome; store rejections stay a 200 with a message."""
    if outcome["success"]:
        return {
            "success": True,
            "data": {
                **outcome["results"],
                "request": outcome.get("request"),
            },
        }
    return {
        "success": False,
        "error": {"code": "QUERY_FAILED", "message": outcome["error"]},
        "data": {"request": outcome.get("request")},
    }


@router.get("", response_model=dict)
async def list_namespaces(
    svc: Annotated[NamespaceService, Depends(get_namespace_service)],
    prefix: str | None = Query(None, max_length=200, description="Only namespaces starting with this prefix"),
    search: str | None = Query(None, max_length=200, description="Case-insensitive substring match on the id"),
):
    data = await svc.list_namespaces(prefix=prefix, search=search)
    return {"success": True, "data": data}


@router.get("/{namespace_id}", response_model=dict)
async def get_namespace(
    namespace_id: str,
    svc: Annotated[NamespaceService, Depends(get_namespace_service)],
):
    """Metadata and schema table for one namespace."""
    data = await svc.get_namespace(namespace_id)
    return {"success": True, "data": data}


@router.get("/{namespace_id}/fields", response_model=dict)
async def get_field_capabilities(
    namespace_id: str,
    svc: Annotated[NamespaceService, Depends(get_namespace_service)],
):
    """Which fields can be filtered, ordered and full-text searched, and how."""
    data = await svc.get_field_capabilities(namespace_id)
    return {"success": True, "data": data}


@router.post("/{namespace_id}/query", response_model=dict)
async def run_query(
    namespace_id: str,
    data: QuerySubmission,
    svc: Annotated[NamespaceService, Depends(get_namespace_service)],
):
    outcome = await svc.run_query(
        namespace_id,
        data.filters,
        order_by=data.order_by,
        top_k=data.top_k,
        full_text_search=data.full_text_search,
    )
    return query_response(outcome)


@router.post("/{namespace_id}/query/form", response_model=dict)
async def run_query_from_form(
    namespace_id: str,
    svc: Annotated[NamespaceService, Depends(get_namespace_service)],
    filters: Annotated[str | None, Form()] = None,
    order_by: Annotated[str | None, Form(alias="orderBy")] = None,
    top_k: Annotated[str | None, Form(alias="topK")] = None,
    full_text_search: Annotated[str | None, Form(alias="fullTextSearch")] = None,
):
    """Form-post variant: each field carries JSON-encoded builder state."""
    outcome = await svc.run_query(
        namespace_id,
        parse_filters_json(filters),
        order_by=parse_order_json(order_by),
        top_k=parse_top_k(top_k),
        full_text_search=parse_full_text_search_json(full_text_search),
    )
    return query_response(outcome)


@router.post("/{namespace_id}/query/preview", response_model=dict)
async def preview_query(
    namespace_id: str,
    data: QuerySubmission,
    svc: Annotated[NamespaceService, Depends(get_namespace_service)],
):
    """Compile without executing: returns the exact store request body."""
    schema = await svc.fetch_schema(namespace_id)
    request = compile_query(
        data.filters,
        order_by=data.order_by,
        top_k=data.top_k,
        full_text_search=data.full_text_search,
        schema=schema.source,
    )
    return {"success": True, "data": request.to_wire()}
