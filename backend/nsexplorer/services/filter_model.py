"""Filter model: the ordered set of user-authored filter conditions plus the
auxiliary builder state (pending field selection, ordering, full-text search
and result limit) for one namespace.

Operator legality and defaults come from the namespace schema. All
conditions are conjunctive; their order only affects display.
"""

import json
import logging
import math
import uuid
from typing import Any

from pydantic import ValidationError

from nsexplorer.config import settings
from nsexplorer.models.enums import FilterOperator, SortDirection
from nsexplorer.schemas.query import FilterCondition, FullTextSearchSpec, OrderSpec
from nsexplorer.services.schema_fields import (
    NamespaceSchema,
    coerce_value,
    default_operator_for,
    default_value_for,
    operators_for,
)

logger = logging.getLogger(__name__)

_CONDITION_ID_LENGTH = 9


def clamp_top_k(value: Any) -> int:
    """Clamp a result-limit edit to [0, MAX_TOP_K]; non-numbers become 0."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if math.isnan(number):
        return 0
    if math.isinf(number):
        return settings.MAX_TOP_K if number > 0 else 0
    return max(0, min(settings.MAX_TOP_K, int(number)))


class FilterModel:
    """Builder state for one namespace, owned by a single UI session."""

    def __init__(self, schema: NamespaceSchema):
        self.schema = schema
        self.conditions: list[FilterCondition] = []
        self.selected_field: str = ""
        self.order_by: OrderSpec | None = None
        self.full_text_search: FullTextSearchSpec | None = None
        self.top_k: int = settings.DEFAULT_TOP_K

    # ── Conditions ───────────────────────────────────────────────────

    def _new_condition_id(self) -> str:
        existing = {c.id for c in self.conditions}
        while True:
            candidate = uuid.uuid4().hex[:_CONDITION_ID_LENGTH]
            if candidate not in existing:
                return candidate

    def _find(self, condition_id: str) -> int | None:
        for idx, condition in enumerate(self.conditions):
            if condition.id == condition_id:
                return idx
        return None

    def select_field(self, field: str) -> None:
        """Set the pending field for the next ``add_condition``."""
        if field and not self.schema.is_filterable(field):
            raise ValueError(f"Field '{field}' is not filterable.")
        self.selected_field = field

    def add_condition(self) -> FilterCondition | None:
        """Append a condition for the selected field with type defaults.

        Returns None (and changes nothing) when no field is selected.
        """
        if not self.selected_field:
            return None
        type_name = self.schema.type_name(self.selected_field)
        condition = FilterCondition(
            id=self._new_condition_id(),
            field=self.selected_field,
            operator=default_operator_for(type_name),
            value=default_value_for(type_name),
        )
        self.conditions.append(condition)
        self.selected_field = ""
        logger.debug("Added condition %s on %s", condition.id, condition.field)
        return condition

    def update_condition(self, condition: FilterCondition) -> None:
        """Replace the condition with the same id; unknown ids are ignored."""
        idx = self._find(condition.id)
        if idx is None:
            return
        self.conditions[idx] = condition

    def get_condition(self, condition_id: str) -> FilterCondition | None:
        idx = self._find(condition_id)
        return self.conditions[idx] if idx is not None else None

    def change_operator(self, condition_id: str, operator: FilterOperator) -> FilterCondition | None:
        """Switch operator and reset the value to the field type's default."""
        condition = self.get_condition(condition_id)
        if condition is None:
            return None
        type_name = self.schema.type_name(condition.field)
        if operator not in operators_for(type_name):
            raise ValueError(
                f"Operator '{operator.value}' is not valid for {type_name} field '{condition.field}'."
            )
        updated = condition.model_copy(
            update={"operator": operator, "value": default_value_for(type_name)}
        )
        self.update_condition(updated)
        return updated

    def change_value(self, condition_id: str, value: Any) -> FilterCondition | None:
        condition = self.get_condition(condition_id)
        if condition is None:
            return None
        type_name = self.schema.type_name(condition.field)
        updated = condition.model_copy(update={"value": coerce_value(type_name, value)})
        self.update_condition(updated)
        return updated

    def remove_condition(self, condition_id: str) -> None:
        self.conditions = [c for c in self.conditions if c.id != condition_id]

    def clear_all(self) -> None:
        self.conditions = []

    # ── Ordering ─────────────────────────────────────────────────────

    def set_order_field(self, field: str) -> OrderSpec:
        """Order by a new field; direction always starts at ``desc``."""
        if self.schema and field not in self.schema:
            raise ValueError(f"Unknown field '{field}'.")
        self.order_by = OrderSpec(field=field, direction=SortDirection.DESC)
        return self.order_by

    def toggle_order_direction(self) -> OrderSpec | None:
        if self.order_by is None:
            return None
        self.order_by = self.order_by.model_copy(
            update={"direction": self.order_by.direction.flipped()}
        )
        return self.order_by

    def clear_order(self) -> None:
        self.order_by = None

    # ── Full-text search ─────────────────────────────────────────────

    def set_full_text_search_field(self, field: str) -> FullTextSearchSpec:
        """Switch the FTS field, carrying over the query text and phrase flag."""
        if not self.schema.is_full_text_searchable(field):
            raise ValueError(f"Field '{field}' does not support full-text search.")
        previous = self.full_text_search
        self.full_text_search = FullTextSearchSpec(
            field=field,
            query=previous.query if previous else "",
            use_phrase_matching=previous.use_phrase_matching if previous else False,
        )
        return self.full_text_search

    def set_full_text_search_query(self, query: str) -> FullTextSearchSpec | None:
        if self.full_text_search is None:
            return None
        self.full_text_search = self.full_text_search.model_copy(update={"query": query})
        return self.full_text_search

    def set_phrase_matching(self, enabled: bool) -> FullTextSearchSpec | None:
        if self.full_text_search is None:
            return None
        self.full_text_search = self.full_text_search.model_copy(
            update={"use_phrase_matching": bool(enabled)}
        )
        return self.full_text_search

    def clear_full_text_search(self) -> None:
        self.full_text_search = None

    # ── Result limit ─────────────────────────────────────────────────

    def set_top_k(self, value: Any) -> int:
        self.top_k = clamp_top_k(value)
        return self.top_k

    def snapshot(self) -> dict:
        return {
            "filters": [c.model_dump(mode="json") for c in self.conditions],
            "selected_field": self.selected_field,
            "order_by": self.order_by.model_dump(mode="json") if self.order_by else None,
            "full_text_search": (
                self.full_text_search.model_dump(mode="json") if self.full_text_search else None
            ),
            "top_k": self.top_k,
        }


# ── Persisted state decoding ─────────────────────────────────────────
# Round-tripped form values; anything malformed degrades to the default.


def _load_json(raw: str | None, label: str) -> Any:
    if not raw:
        return None
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        logger.warning("Ignoring unparsable %s state: %.100r", label, raw)
        return None


def parse_filters_json(raw: str | None) -> list[FilterCondition]:
    data = _load_json(raw, "filters")
    if data is None:
        return []
    if not isinstance(data, list):
        logger.warning("Ignoring filters state that is not a list")
        return []
    conditions = []
    for item in data:
        if isinstance(item, dict) and not item.get("id"):
            item = {**item, "id": uuid.uuid4().hex[:_CONDITION_ID_LENGTH]}
        try:
            conditions.append(FilterCondition.model_validate(item))
        except ValidationError as exc:
            logger.warning("Ignoring malformed filters state: %s", exc.errors()[:1])
            return []
    return conditions


def parse_order_json(raw: str | None) -> OrderSpec | None:
    data = _load_json(raw, "order")
    if data is None:
        return None
    try:
        return OrderSpec.model_validate(data)
    except ValidationError:
        logger.warning("Ignoring malformed order state")
        return None


def parse_full_text_search_json(raw: str | None) -> FullTextSearchSpec | None:
    data = _load_json(raw, "full-text search")
    if data is None:
        return None
    try:
        return FullTextSearchSpec.model_validate(data)
    except ValidationError:
        logger.warning("Ignoring malformed full-text search state")
        return None


def parse_top_k(raw: str | None) -> int:
    if raw is None or not str(raw).strip():
        return settings.DEFAULT_TOP_K
    try:
        number = float(raw)
    except ValueError:
        logger.warning("Ignoring malformed result limit %.50r", raw)
        return settings.DEFAULT_TOP_K
    return clamp_top_k(number)
