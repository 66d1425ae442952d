"""Schema-driven field capabilities.

Resolves each raw namespace schema entry once into a tagged field type and
derives which fields can be filtered, ordered, full-text searched or returned
as attributes. All functions here are pure.
"""

import logging
import math
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from nsexplorer.models.enums import FieldKind, FilterOperator

logger = logging.getLogger(__name__)

_VECTOR_ELEMENT_MARKER = "f32"
_VECTOR_ARRAY_MARKER = "["
# Dimension count inside the brackets: "[1536]f32" or "[f32;128]"
_DIMS_RE = re.compile(r"\[\s*(?:f32\s*;\s*)?(\d+)\s*\]")

# Operators offered per semantic type; anything else gets _FALLBACK_OPERATORS
_TYPE_OPERATORS: dict[str, tuple[FilterOperator, ...]] = {
    "boolean": (FilterOperator.EQ, FilterOperator.NOT_EQ),
    "number": (
        FilterOperator.EQ, FilterOperator.NOT_EQ,
        FilterOperator.GT, FilterOperator.GTE,
        FilterOperator.LT, FilterOperator.LTE,
    ),
    "string": (
        FilterOperator.EQ, FilterOperator.NOT_EQ,
        FilterOperator.CONTAINS, FilterOperator.NOT_CONTAINS,
    ),
}
_FALLBACK_OPERATORS = (FilterOperator.EQ, FilterOperator.NOT_EQ)

# Keys already shown in their own schema table columns
_DESCRIBED_KEYS = {"type", "filterable"}
_MAX_NOTES = 4


# ── Tagged field types ───────────────────────────────────────────────


@dataclass(frozen=True)
class ScalarType:
    name: str
    kind: FieldKind = FieldKind.SCALAR


@dataclass(frozen=True)
class VectorType:
    name: str
    dims: int | None = None
    kind: FieldKind = FieldKind.VECTOR


@dataclass(frozen=True)
class UnknownType:
    name: str
    kind: FieldKind = FieldKind.UNKNOWN


FieldType = ScalarType | VectorType | UnknownType

_SCALAR_NAMES = {"boolean", "number", "string", "array"}


def raw_type_name(config: Any) -> str:
    """Resolve the semantic type string of one raw schema entry.

    An explicit ``type`` tag on a mapping always wins, then list-shaped
    configs are ``array``, then the runtime type of the raw value.
    """
    if isinstance(config, Mapping) and config.get("type"):
        return str(config["type"])
    if isinstance(config, list):
        return "array"
    if isinstance(config, bool):
        return "boolean"
    if isinstance(config, (int, float)):
        return "number"
    if isinstance(config, str):
        return "string"
    return "object"


def is_vector_type(type_name: str) -> bool:
    return _VECTOR_ELEMENT_MARKER in type_name and _VECTOR_ARRAY_MARKER in type_name


def resolve_field_type(config: Any) -> FieldType:
    name = raw_type_name(config)
    if is_vector_type(name):
        match = _DIMS_RE.search(name)
        return VectorType(name=name, dims=int(match.group(1)) if match else None)
    if name in _SCALAR_NAMES:
        return ScalarType(name=name)
    return UnknownType(name=name)


# ── Operator and value defaults ──────────────────────────────────────


def operators_for(type_name: str) -> list[FilterOperator]:
    """Legal filter operators for a field type name."""
    return list(_TYPE_OPERATORS.get(type_name, _FALLBACK_OPERATORS))


def default_operator_for(type_name: str) -> FilterOperator:
    return FilterOperator.EQ


def default_value_for(type_name: str) -> bool | int | str:
    if type_name == "boolean":
        return True
    if type_name == "number":
        return 0
    return ""


def coerce_value(type_name: str, value: Any) -> Any:
    """Coerce a user-entered value to the payload type of a field.

    Values that cannot be coerced fall back to the type default.
    """
    if type_name == "boolean":
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in ("true", "false"):
            return value.strip().lower() == "true"
        if isinstance(value, (int, float)) and value in (0, 1):
            return bool(value)
    elif type_name == "number":
        # Non-finite floats serialize to null on the wire
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, float) and math.isfinite(value):
            return value
        if isinstance(value, str):
            text = value.strip()
            try:
                return int(text)
            except ValueError:
                pass
            try:
                number = float(text)
            except ValueError:
                pass
            else:
                if math.isfinite(number):
                    return number
    else:
        if value is None:
            return ""
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (str, int, float)):
            return str(value)
    logger.debug("Could not coerce %r to %s, using default", value, type_name)
    return default_value_for(type_name)


# ── Schema-level capabilities ────────────────────────────────────────


def fields_available_for_filtering(schema: Mapping[str, Any] | None) -> list[str]:
    """Schema keys with an object config whose ``filterable`` is not false.

    List configs count as objects too; they carry no ``filterable`` flag.
    """
    return [
        key for key, config in (schema or {}).items()
        if isinstance(config, list)
        or (isinstance(config, Mapping) and config.get("filterable") is not False)
    ]


def fields_available_for_full_text_search(schema: Mapping[str, Any] | None) -> list[str]:
    """Schema keys whose ``full_text_search`` is true or a config object."""
    result = []
    for key, config in (schema or {}).items():
        if not isinstance(config, Mapping):
            continue
        fts = config.get("full_text_search")
        if fts is True or isinstance(fts, Mapping):
            result.append(key)
    return result


def include_attributes(schema: Mapping[str, Any] | None) -> list[str] | None:
    """Every non-vector schema key, or None when there is no schema."""
    if schema is None:
        return None
    return [
        key for key, config in schema.items()
        if not (isinstance(config, Mapping) and is_vector_type(str(config.get("type") or "")))
    ]


class NamespaceSchema:
    """A namespace schema with every field type resolved once."""

    def __init__(self, raw: Mapping[str, Any] | None):
        # An empty schema is still a schema; only None means none was reported
        self.present = raw is not None
        self.raw: dict[str, Any] = dict(raw or {})
        self.field_types: dict[str, FieldType] = {
            name: resolve_field_type(config) for name, config in self.raw.items()
        }
        self.filterable_fields = fields_available_for_filtering(self.raw)
        self.full_text_search_fields = fields_available_for_full_text_search(self.raw)

    def __contains__(self, field: str) -> bool:
        return field in self.raw

    def __bool__(self) -> bool:
        return bool(self.raw)

    @property
    def source(self) -> dict[str, Any] | None:
        """The raw schema to compile against, None when there is none."""
        return self.raw if self.present else None

    @property
    def field_names(self) -> list[str]:
        return list(self.raw)

    def type_name(self, field: str) -> str:
        """Resolved type name; unknown fields degrade to ``string``."""
        field_type = self.field_types.get(field)
        return field_type.name if field_type is not None else "string"

    def is_filterable(self, field: str) -> bool:
        return field in self.filterable_fields

    def is_full_text_searchable(self, field: str) -> bool:
        return field in self.full_text_search_fields

    def capabilities(self) -> list[dict]:
        """Per-field capability listing for the builder UI."""
        fields = []
        for name, field_type in self.field_types.items():
            fields.append({
                "name": name,
                "type": field_type.name,
                "kind": field_type.kind.value,
                "dims": field_type.dims if isinstance(field_type, VectorType) else None,
                "filterable": self.is_filterable(name),
                "full_text_search": self.is_full_text_searchable(name),
                "orderable": True,
                "operators": [op.value for op in operators_for(field_type.name)],
                "default_operator": default_operator_for(field_type.name).value,
                "default_value": default_value_for(field_type.name),
            })
        return fields


def describe_schema(schema: Mapping[str, Any] | None) -> list[dict]:
    """Rows of the schema table: type, explicit filterable flag and notes."""
    rows = []
    for name, config in (schema or {}).items():
        if isinstance(config, Mapping):
            filterable = bool(config["filterable"]) if "filterable" in config else None
            notes = [k for k in config if k not in _DESCRIBED_KEYS][:_MAX_NOTES]
        else:
            filterable = None
            notes = []
        rows.append({
            "field": name,
            "type": raw_type_name(config),
            "filterable": filterable,
            "notes": ", ".join(notes),
        })
    return rows
