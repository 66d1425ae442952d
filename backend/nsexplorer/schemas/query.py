"""Schemas for filter conditions, query submission and the compiled request."""

from typing import Any

from pydantic import AliasChoices, BaseModel, Field, FiniteFloat

from nsexplorer.models.enums import FilterOperator, SortDirection

# Non-finite numbers have no JSON form and would reach the store as null
FilterValue = bool | int | FiniteFloat | str | list | None

# Hard ceiling on the store's result limit
TOP_K_LIMIT = 1200


class FilterCondition(BaseModel):
    # UI identity only, never sent to the store
    id: str = Field(min_length=1, max_length=64)
    field: str = Field(min_length=1, max_length=200)
    operator: FilterOperator
    value: FilterValue = None

    def as_triple(self) -> list[Any]:
        return [self.field, self.operator.value, self.value]


class OrderSpec(BaseModel):
    field: str = Field(min_length=1, max_length=200)
    direction: SortDirection = SortDirection.DESC


class FullTextSearchSpec(BaseModel):
    field: str = Field(min_length=1, max_length=200)
    query: str = ""
    # Browser state has used both spellings
    use_phrase_matching: bool = Field(
        False,
        validation_alias=AliasChoices(
            "use_phrase_matching", "usePhraseMatching", "usePhaseMatching",
        ),
    )


class QuerySubmission(BaseModel):
    """Body of the query entry point: the builder state at submit time."""
    filters: list[FilterCondition] = []
    order_by: OrderSpec | None = Field(
        None, validation_alias=AliasChoices("order_by", "orderBy"),
    )
    # Clamped to [0, MAX_TOP_K] at compile time rather than rejected
    top_k: int | None = Field(None, validation_alias=AliasChoices("top_k", "topK"))
    full_text_search: FullTextSearchSpec | None = Field(
        None, validation_alias=AliasChoices("full_text_search", "fullTextSearch"),
    )


class CompiledQueryRequest(BaseModel):
    """Store-ready query body. ``to_wire`` gives the exact JSON payload."""
    filters: list | None = None
    rank_by: list[str] | None = None
    top_k: int = Field(ge=0, le=TOP_K_LIMIT)
    include_attributes: list[str] | None = None

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)


# --- Builder session edits ---

class FieldSelection(BaseModel):
    field: str = ""


class AddConditionRequest(BaseModel):
    # Selects the field first when given; otherwise the pending selection is used
    field: str | None = None


class ConditionUpdate(BaseModel):
    """Per-condition edit. Only the keys present in the body are applied."""
    operator: FilterOperator | None = None
    value: FilterValue = None


class OrderFieldUpdate(BaseModel):
    field: str = Field(min_length=1, max_length=200)


class FullTextSearchUpdate(BaseModel):
    field: str | None = None
    query: str | None = None
    use_phrase_matching: bool | None = None


class TopKUpdate(BaseModel):
    top_k: int | float | str | None = None
