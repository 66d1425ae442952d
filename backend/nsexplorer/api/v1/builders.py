"""Query builder session endpoints.

A session keeps one browser tab's filter conditions, ordering, full-text
search and result limit server side. Every edit returns the full state.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from nsexplorer.api.v1.namespaces import query_response
from nsexplorer.core.deps import (
    get_builder_session,
    get_builder_store,
    get_namespace_service,
)
from nsexplorer.schemas.query import (
    AddConditionRequest,
    ConditionUpdate,
    FieldSelection,
    FullTextSearchUpdate,
    OrderFieldUpdate,
    TopKUpdate,
)
from nsexplorer.services.builder_sessions import BuilderSession, BuilderSessionStore
from nsexplorer.services.filter_model import FilterModel
from nsexplorer.services.namespace import NamespaceService
from nsexplorer.services.query_compiler import compile_model

router = APIRouter(
    prefix="/namespaces/{namespace_id}/builders", tags=["query-builder"]
)

Session = Annotated[BuilderSession, Depends(get_builder_session)]


def _state(session: BuilderSession) -> dict:
    return {"success": True, "data": session.snapshot()}


@router.post("", response_model=dict, status_code=status.HTTP_201_CREATED)
async def create_session(
    namespace_id: str,
    svc: Annotated[NamespaceService, Depends(get_namespace_service)],
    store: Annotated[BuilderSessionStore, Depends(get_builder_store)],
):
    """Start a builder for the namespace using its current schema."""
    schema = await svc.fetch_schema(namespace_id)
    session = store.create(namespace_id, FilterModel(schema))
    return {
        "success": True,
        "data": {
            **session.snapshot(),
            "fields": schema.capabilities(),
            "filterable_fields": schema.filterable_fields,
            "full_text_search_fields": schema.full_text_search_fields,
        },
    }


@router.get("/{session_id}", response_model=dict)
async def get_session(session: Session):
    return _state(session)


@router.delete("/{session_id}", response_model=dict)
async def delete_session(
    session: Session,
    store: Annotated[BuilderSessionStore, Depends(get_builder_store)],
):
    store.delete(session.id)
    return {"success": True, "data": None}


# --- Filter conditions ---

@router.put("/{session_id}/selection", response_model=dict)
async def select_field(data: FieldSelection, session: Session):
    session.model.select_field(data.field)
    return _state(session)


@router.post("/{session_id}/filters", response_model=dict)
async def add_condition(session: Session, data: AddConditionRequest | None = None):
    """Add a condition for the selected field. No selection is a no-op."""
    if data is not None and data.field:
        session.model.select_field(data.field)
    session.model.add_condition()
    return _state(session)


@router.put("/{session_id}/filters/{condition_id}", response_model=dict)
async def update_condition(condition_id: str, data: ConditionUpdate, session: Session):
    """Edit one condition. Changing the operator resets the value."""
    if data.operator is not None:
        session.model.change_operator(condition_id, data.operator)
    if "value" in data.model_fields_set:
        session.model.change_value(condition_id, data.value)
    return _state(session)


@router.delete("/{session_id}/filters/{condition_id}", response_model=dict)
async def remove_condition(condition_id: str, session: Session):
    session.model.remove_condition(condition_id)
    return _state(session)


@router.delete("/{session_id}/filters", response_model=dict)
async def clear_conditions(session: Session):
    session.model.clear_all()
    return _state(session)


# --- Ordering ---

@router.put("/{session_id}/order", response_model=dict)
async def set_order(data: OrderFieldUpdate, session: Session):
    session.model.set_order_field(data.field)
    return _state(session)


@router.post("/{session_id}/order/toggle", response_model=dict)
async def toggle_order(session: Session):
    session.model.toggle_order_direction()
    return _state(session)


@router.delete("/{session_id}/order", response_model=dict)
async def clear_order(session: Session):
    session.model.clear_order()
    return _state(session)


# --- Full-text search ---

@router.put("/{session_id}/full-text-search", response_model=dict)
async def update_full_text_search(data: FullTextSearchUpdate, session: Session):
    if data.field is not None:
        session.model.set_full_text_search_field(data.field)
    if data.query is not None:
        session.model.set_full_text_search_query(data.query)
    if data.use_phrase_matching is not None:
        session.model.set_phrase_matching(data.use_phrase_matching)
    return _state(session)


@router.delete("/{session_id}/full-text-search", response_model=dict)
async def clear_full_text_search(session: Session):
    session.model.clear_full_text_search()
    return _state(session)


# --- Result limit ---

@router.put("/{session_id}/top-k", response_model=dict)
async def set_top_k(data: TopKUpdate, session: Session):
    session.model.set_top_k(data.top_k)
    return _state(session)


# --- Compile / submit ---

@router.get("/{session_id}/preview", response_model=dict)
async def preview(session: Session):
    return {"success": True, "data": compile_model(session.model).to_wire()}


@router.post("/{session_id}/submit", response_model=dict)
async def submit(
    session: Session,
    svc: Annotated[NamespaceService, Depends(get_namespace_service)],
):
    """Run the session's query against a freshly fetched schema."""
    model = session.model
    outcome = await svc.run_query(
        session.namespace_id,
        list(model.conditions),
        order_by=model.order_by,
        top_k=model.top_k,
        full_text_search=model.full_text_search,
    )
    return query_response(outcome)
