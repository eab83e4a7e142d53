from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import TypeAdapter, ValidationError
from sqlalchemy import ColumnElement, Select, or_

from app.crm.query.registry import EntityPlan


logger = logging.getLogger("app.crm.entities")

SEARCH_COLUMNS = (
    "companies.name",
    "contacts.first_name",
    "contacts.last_name",
    "leads.first_name",
    "leads.last_name",
    "deals.name",
)

EQUALITY_FILTERS = {
    "industry_id": "companies.industry_id",
    "size_id": "companies.size_id",
    "status_id": "leads.status_id",
    "temperature_id": "leads.temperature_id",
    "stage_id": "deals.stage_id",
    "owner_id": "deals.assigned_user_id",
}

COMPANY_REFERENCE_COLUMNS = (
    "companies.id",
    "contacts.company_id",
    "leads.company_id",
    "deals.company_id",
)

RANGE_FILTERS = {
    "created_after": ("created_at", ">="),
    "created_before": ("created_at", "<="),
    "amount_min": ("deals.amount", ">="),
    "amount_max": ("deals.amount", "<="),
}

_uuid_adapter = TypeAdapter(uuid.UUID)
_datetime_adapter = TypeAdapter(datetime)
_decimal_adapter = TypeAdapter(Decimal)

_RANGE_ADAPTERS: dict[str, TypeAdapter[Any]] = {
    "created_after": _datetime_adapter,
    "created_before": _datetime_adapter,
    "amount_min": _decimal_adapter,
    "amount_max": _decimal_adapter,
}


class InvalidFilterValueError(ValueError):
    def __init__(self, key: str, value: Any) -> None:
        self.key = key
        self.value = value
        super().__init__(f"invalid value for filter '{key}': {value!r}")


def _coerce(key: str, value: Any, adapter: TypeAdapter[Any]) -> Any:
    try:
        return adapter.validate_python(value)
    except ValidationError as exc:
        raise InvalidFilterValueError(key, value) from exc


def _present(plan: EntityPlan, references: tuple[str, ...]) -> list[ColumnElement[Any]]:
    columns = []
    for reference in references:
        column = plan.resolve(reference)
        if column is not None:
            columns.append(column)
    return columns


def _search_clause(plan: EntityPlan, value: Any) -> ColumnElement[bool] | None:
    columns = _present(plan, SEARCH_COLUMNS)
    if not columns:
        return None
    pattern = f"%{value}%"
    return or_(*(plan.scope(column, column.ilike(pattern)) for column in columns))


def compile_filters(plan: EntityPlan, filters: Mapping[str, Any] | None) -> list[ColumnElement[bool]]:
    """Translate request filters into predicates for ``plan``.

    ``None`` and empty-string values are skipped, as are unknown keys and keys
    whose target table is not joined for this plan. Values are coerced to the
    column type; an uncoercible value raises ``InvalidFilterValueError``.
    Predicates on to-many child tables are scoped through the plan, so on
    grouped plans they pick base rows instead of trimming the counted children.
    """
    if not filters:
        return []

    clauses: list[ColumnElement[bool]] = []
    for key, value in filters.items():
        if value is None or value == "":
            continue

        if key == "search":
            clause = _search_clause(plan, value)
            if clause is not None:
                clauses.append(clause)
            continue

        if key in EQUALITY_FILTERS:
            column = plan.resolve(EQUALITY_FILTERS[key])
            if column is None:
                logger.debug("entity_query.filter_skipped", extra={"entity_type": plan.name, "filter": key})
                continue
            clauses.append(plan.scope(column, column == _coerce(key, value, _uuid_adapter)))
            continue

        if key == "company_id":
            company_id = _coerce(key, value, _uuid_adapter)
            columns = _present(plan, COMPANY_REFERENCE_COLUMNS)
            if columns:
                clauses.append(or_(*(plan.scope(column, column == company_id) for column in columns)))
            continue

        if key in RANGE_FILTERS:
            reference, operator = RANGE_FILTERS[key]
            column = plan.resolve(reference)
            if column is None:
                logger.debug("entity_query.filter_skipped", extra={"entity_type": plan.name, "filter": key})
                continue
            bound = _coerce(key, value, _RANGE_ADAPTERS[key])
            clauses.append(plan.scope(column, column >= bound if operator == ">=" else column <= bound))

    return clauses


def apply_filters(stmt: Select[Any], plan: EntityPlan, filters: Mapping[str, Any] | None) -> Select[Any]:
    clauses = compile_filters(plan, filters)
    if clauses:
        stmt = stmt.where(*clauses)
    return stmt
