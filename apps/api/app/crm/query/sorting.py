from __future__ import annotations

from typing import Any

from sqlalchemy import ColumnElement, Select

from app.crm.query.registry import EntityPlan


# Logical sort key -> candidate columns. Bare names resolve against the base
# table, aggregate aliases against the plan's aggregates.
SORT_FIELDS: dict[str, tuple[str, ...]] = {
    "name": ("companies.name", "deals.name"),
    "company_name": ("companies.name",),
    "first_name": ("contacts.first_name", "leads.first_name"),
    "last_name": ("contacts.last_name", "leads.last_name"),
    "email": ("email_addresses.email",),
    "phone": ("phone_numbers.number",),
    "title": ("contacts.title", "leads.title"),
    "department": ("contacts.department",),
    "website": ("companies.website",),
    "revenue": ("companies.revenue",),
    "industry": ("industries.name",),
    "industry_name": ("industries.name",),
    "size": ("company_sizes.name",),
    "size_name": ("company_sizes.name",),
    "status": ("lead_statuses.name",),
    "status_name": ("lead_statuses.name",),
    "temperature": ("lead_temperatures.name",),
    "temperature_name": ("lead_temperatures.name",),
    "score": ("leads.score",),
    "source": ("leads.source",),
    "campaign": ("leads.campaign",),
    "stage": ("stages.name",),
    "stage_name": ("stages.name",),
    "pipeline_name": ("pipelines.name",),
    "amount": ("deals.amount",),
    "currency": ("deals.currency",),
    "probability": ("deals.probability",),
    "expected_close": ("deals.expected_close_date",),
    "expected_close_date": ("deals.expected_close_date",),
    "owner_first_name": ("users.first_name",),
    "owner_last_name": ("users.last_name",),
    "created_at": ("created_at",),
    "updated_at": ("updated_at",),
    "contact_count": ("contact_count",),
    "lead_count": ("lead_count",),
    "deal_count": ("deal_count",),
}


def _is_base(plan: EntityPlan, reference: str) -> bool:
    return "." not in reference or reference.split(".", 1)[0] == plan.table_name


def resolve_sort_column(plan: EntityPlan, sort_by: str | None) -> ColumnElement[Any] | None:
    candidates = SORT_FIELDS.get(sort_by or "")
    if not candidates:
        return None

    ordered = sorted(candidates, key=lambda reference: not _is_base(plan, reference))
    for reference in ordered:
        column = plan.resolve(reference)
        if column is not None and plan.is_groupable(column):
            return column
    return None


def apply_sort(stmt: Select[Any], plan: EntityPlan, sort_by: str | None, sort_order: str | None) -> Select[Any]:
    column = resolve_sort_column(plan, sort_by)
    if column is None:
        return stmt
    if (sort_order or "").lower() == "desc":
        return stmt.order_by(column.desc())
    return stmt.order_by(column.asc())
