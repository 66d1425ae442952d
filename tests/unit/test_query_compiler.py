"""Unit tests – compiling builder state into the store request body."""
from __future__ import annotations

import logging

import pytest
from pydantic import ValidationError

from nsexplorer.config import Settings
from nsexplorer.models.enums import FilterOperator, SortDirection
from nsexplorer.schemas.query import (
    CompiledQueryRequest,
    FilterCondition,
    FullTextSearchSpec,
    OrderSpec,
)
from nsexplorer.services.filter_model import FilterModel
from nsexplorer.services.query_compiler import combine_filters, compile_model, compile_query
from nsexplorer.services.schema_fields import NamespaceSchema


def _cond(field: str, op: str, value, cid: str = "x") -> FilterCondition:
    return FilterCondition(id=f"{cid}-{field}", field=field, operator=op, value=value)


# ---------------------------------------------------------------------------
# Filter combination
# ---------------------------------------------------------------------------

class TestCombineFilters:
    def test_no_conditions(self) -> None:
        assert combine_filters([]) is None

    def test_single_condition_is_flat(self) -> None:
        assert combine_filters([_cond("age", "Gt", 21)]) == ["age", "Gt", 21]

    def test_many_conditions_are_anded_in_order(self) -> None:
        assert combine_filters([_cond("age", "Gt", 21), _cond("active", "Eq", True)]) == [
            "And", [["age", "Gt", 21], ["active", "Eq", True]],
        ]

    def test_reserved_operators_round_trip(self) -> None:
        assert combine_filters([_cond("tags", "NotIn", ["a", "b"])]) == [
            "tags", "NotIn", ["a", "b"],
        ]

    def test_condition_ids_never_leak(self) -> None:
        compiled = compile_query([_cond("age", "Gt", 21, cid="secret-id")])
        assert "secret-id" not in repr(compiled.to_wire())


# ---------------------------------------------------------------------------
# Full request
# ---------------------------------------------------------------------------

class TestCompileQuery:
    def test_empty_state(self) -> None:
        assert compile_query([]).to_wire() == {"top_k": 100}

    def test_rank_by(self) -> None:
        compiled = compile_query([], order_by=OrderSpec(field="score", direction="asc"))
        assert compiled.to_wire()["rank_by"] == ["score", "asc"]

    def test_top_k_is_clamped(self) -> None:
        assert compile_query([], top_k=-5).top_k == 0
        assert compile_query([], top_k=5000).top_k == 1200
        assert compile_query([], top_k=300).top_k == 300

    def test_include_attributes_from_schema(self, sample_schema) -> None:
        compiled = compile_query([], schema=sample_schema)
        assert compiled.include_attributes == ["age", "name", "bio"]

    def test_include_attributes_omitted_without_schema(self) -> None:
        assert "include_attributes" not in compile_query([]).to_wire()

    def test_full_text_search_not_compiled(self, sample_schema, caplog) -> None:
        fts = FullTextSearchSpec(field="bio", query="cats", use_phrase_matching=True)
        with caplog.at_level(logging.INFO, logger="nsexplorer.services.query_compiler"):
            wire = compile_query([], full_text_search=fts, schema=sample_schema).to_wire()
        assert set(wire) == {"top_k", "include_attributes"}
        assert "not applied" in caplog.text


# ---------------------------------------------------------------------------
# Builder state end to end
# ---------------------------------------------------------------------------

class TestCompileModel:
    def test_end_to_end_scenario(self, namespace_schema) -> None:
        model = FilterModel(namespace_schema)
        model.select_field("age")
        condition = model.add_condition()
        model.change_operator(condition.id, FilterOperator.GT)
        model.change_value(condition.id, 21)
        model.set_top_k(50)

        assert compile_model(model).to_wire() == {
            "filters": ["age", "Gt", 21],
            "top_k": 50,
            "include_attributes": ["age", "name", "bio"],
        }

    def test_insertion_order_survives_remove_and_readd(self) -> None:
        model = FilterModel(NamespaceSchema({
            "age": {"type": "number"},
            "active": {"type": "boolean"},
        }))
        model.select_field("active")
        active = model.add_condition()
        model.select_field("age")
        age = model.add_condition()
        model.change_operator(age.id, FilterOperator.GT)
        model.change_value(age.id, 21)

        model.remove_condition(active.id)
        model.select_field("active")
        model.add_condition()

        assert compile_model(model).filters == [
            "And", [["age", "Gt", 21], ["active", "Eq", True]],
        ]

    def test_order_toggle_round_trip(self) -> None:
        model = FilterModel(NamespaceSchema({"score": {"type": "number"}}))
        model.set_order_field("score")
        model.toggle_order_direction()
        assert compile_model(model).rank_by == ["score", "asc"]
        model.toggle_order_direction()
        model.toggle_order_direction()
        assert compile_model(model).rank_by == ["score", SortDirection.ASC.value]

    def test_model_without_schema(self) -> None:
        model = FilterModel(NamespaceSchema(None))
        assert compile_model(model).to_wire() == {"top_k": 100}

    def test_model_with_empty_schema_sends_empty_attribute_list(self) -> None:
        model = FilterModel(NamespaceSchema({}))
        assert compile_model(model).to_wire() == {"top_k": 100, "include_attributes": []}


# ---------------------------------------------------------------------------
# Result limit ceiling
# ---------------------------------------------------------------------------

class TestTopKCeiling:
    def test_request_rejects_limit_above_store_ceiling(self) -> None:
        with pytest.raises(ValidationError):
            CompiledQueryRequest(top_k=1201)

    def test_settings_reject_max_above_store_ceiling(self) -> None:
        with pytest.raises(ValidationError):
            Settings(MAX_TOP_K=5000)
