"""Domain enums and types for the namespace explorer."""

from nsexplorer.models.enums import FieldKind, FilterOperator, SortDirection  # noqa: F401
