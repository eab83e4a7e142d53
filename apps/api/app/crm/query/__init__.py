from app.crm.query.filters import InvalidFilterValueError, apply_filters, compile_filters
from app.crm.query.projection import project_rows
from app.crm.query.registry import (
    SUPPORTED_ENTITY_TYPES,
    EntityPlan,
    UnsupportedEntityTypeError,
    get_entity_plan,
)
from app.crm.query.sorting import apply_sort, resolve_sort_column

__all__ = [
    "EntityPlan",
    "InvalidFilterValueError",
    "SUPPORTED_ENTITY_TYPES",
    "UnsupportedEntityTypeError",
    "apply_filters",
    "apply_sort",
    "compile_filters",
    "get_entity_plan",
    "project_rows",
    "resolve_sort_column",
]
