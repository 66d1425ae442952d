"""Enum types shared by the query builder and the store wire format."""

import enum


class FilterOperator(str, enum.Enum):
    EQ = "Eq"
    NOT_EQ = "NotEq"
    GT = "Gt"
    GTE = "Gte"
    LT = "Lt"
    LTE = "Lte"
    # Reserved: never offered by the builder but must round-trip
    IN = "In"
    NOT_IN = "NotIn"
    CONTAINS = "Contains"
    NOT_CONTAINS = "NotContains"


class SortDirection(str, enum.Enum):
    ASC = "asc"
    DESC = "desc"

    def flipped(self) -> "SortDirection":
        return SortDirection.ASC if self is SortDirection.DESC else SortDirection.DESC


class FieldKind(str, enum.Enum):
    SCALAR = "scalar"
    VECTOR = "vector"
    UNKNOWN = "unknown"
