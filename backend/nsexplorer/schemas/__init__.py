"""Request and response schemas."""

from nsexplorer.schemas.query import (  # noqa: F401
    CompiledQueryRequest,
    FilterCondition,
    FullTextSearchSpec,
    OrderSpec,
    QuerySubmission,
)
