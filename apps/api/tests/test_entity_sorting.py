from __future__ import annotations

import uuid

import pytest

from app.crm.query import apply_sort, get_entity_plan, resolve_sort_column


@pytest.mark.parametrize(
    ("entity_type", "sort_by", "expected"),
    [
        ("deals", "name", ("deals", "name")),
        ("companies", "name", ("companies", "name")),
        ("leads", "first_name", ("leads", "first_name")),
        ("contacts", "last_name", ("contacts", "last_name")),
        ("leads", "status", ("lead_statuses", "name")),
        ("deals", "stage", ("stages", "name")),
        ("deals", "expected_close", ("deals", "expected_close_date")),
        ("companies", "created_at", ("companies", "created_at")),
        ("contacts", "email", ("email_addresses", "email")),
    ],
)
def test_sort_keys_resolve_against_the_plan(entity_type: str, sort_by: str, expected: tuple[str, str]) -> None:
    column = resolve_sort_column(get_entity_plan(entity_type), sort_by)
    assert column is not None
    assert (column.table.name, column.name) == expected


@pytest.mark.parametrize(
    ("entity_type", "sort_by"),
    [
        ("companies", ""),
        ("companies", None),
        ("companies", "favourite_colour"),
        ("companies", "stage"),
        ("leads", "industry"),
        ("leads", "contact_count"),
        ("contacts", "amount"),
    ],
)
def test_unresolvable_sort_keys_are_ignored(entity_type: str, sort_by: str | None) -> None:
    plan = get_entity_plan(entity_type)
    assert resolve_sort_column(plan, sort_by) is None

    stmt = plan.build_select(uuid.uuid4())
    assert str(apply_sort(stmt, plan, sort_by, "desc")) == str(stmt)


def test_aggregate_sort_uses_the_count_alias() -> None:
    plan = get_entity_plan("companies")
    sql = str(apply_sort(plan.build_select(uuid.uuid4()), plan, "deal_count", "desc"))
    assert sql.rstrip().endswith("ORDER BY deal_count DESC")


@pytest.mark.parametrize(("sort_order", "direction"), [("desc", "DESC"), ("DESC", "DESC"), ("asc", "ASC"), ("", "ASC"), (None, "ASC")])
def test_sort_direction(sort_order: str | None, direction: str) -> None:
    plan = get_entity_plan("deals")
    sql = str(apply_sort(plan.build_select(uuid.uuid4()), plan, "amount", sort_order))
    assert sql.rstrip().endswith(f"ORDER BY deals.amount {direction}")
