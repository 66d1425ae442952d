"""Compile builder state into a store query request.

Pure and synchronous: safe to call on every state change for previews.
"""

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from nsexplorer.config import settings
from nsexplorer.schemas.query import (
    CompiledQueryRequest,
    FilterCondition,
    FullTextSearchSpec,
    OrderSpec,
)
from nsexplorer.services.filter_model import FilterModel, clamp_top_k
from nsexplorer.services.schema_fields import include_attributes

logger = logging.getLogger(__name__)

AND = "And"


def combine_filters(conditions: Sequence[FilterCondition]) -> list | None:
    """0 conditions -> None, 1 -> its triple, more -> a flat ``And`` node."""
    triples = [c.as_triple() for c in conditions]
    if not triples:
        return None
    if len(triples) == 1:
        return triples[0]
    return [AND, triples]


def compile_query(
    conditions: Sequence[FilterCondition],
    order_by: OrderSpec | None = None,
    top_k: Any = None,
    full_text_search: FullTextSearchSpec | None = None,
    schema: Mapping[str, Any] | None = None,
) -> CompiledQueryRequest:
    if full_text_search is not None and full_text_search.query:
        # Collected by the builder but not part of the request: product
        # has not decided between rank_by and a dedicated search parameter.
        logger.info(
            "Full-text search on '%s' is not applied to the compiled query",
            full_text_search.field,
        )

    rank_by = None
    if order_by is not None:
        rank_by = [order_by.field, order_by.direction.value]

    return CompiledQueryRequest(
        filters=combine_filters(conditions),
        rank_by=rank_by,
        top_k=settings.DEFAULT_TOP_K if top_k is None else clamp_top_k(top_k),
        include_attributes=include_attributes(schema),
    )


def compile_model(model: FilterModel) -> CompiledQueryRequest:
    """Compile the full state of a builder session."""
    return compile_query(
        model.conditions,
        order_by=model.order_by,
        top_k=model.top_k,
        full_text_search=model.full_text_search,
        schema=model.schema.source,
    )
