from __future__ import annotations

import logging
import uuid

import pytest

from app.crm.query import InvalidFilterValueError, compile_filters, get_entity_plan


def test_none_and_empty_values_are_skipped() -> None:
    plan = get_entity_plan("companies")
    clauses = compile_filters(plan, {"search": "", "industry_id": None, "created_after": "", "size_id": None})
    assert clauses == []


def test_missing_filters_compile_to_nothing() -> None:
    assert compile_filters(get_entity_plan("deals"), None) == []
    assert compile_filters(get_entity_plan("deals"), {}) == []


def test_unknown_keys_are_ignored() -> None:
    assert compile_filters(get_entity_plan("leads"), {"favourite_colour": "blue"}) == []


def test_search_covers_only_columns_in_the_plan() -> None:
    clauses = compile_filters(get_entity_plan("companies"), {"search": "acme"})
    assert len(clauses) == 1
    sql = str(clauses[0])
    assert "companies.name" in sql
    assert "contacts.first_name" in sql
    assert "deals.name" in sql


def test_deal_search_does_not_reach_lead_columns() -> None:
    sql = str(compile_filters(get_entity_plan("deals"), {"search": "acme"})[0])
    assert "deals.name" in sql
    assert "leads." not in sql


def test_filters_for_tables_outside_the_plan_are_skipped(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="app.crm.entities")
    clauses = compile_filters(
        get_entity_plan("leads"),
        {"stage_id": str(uuid.uuid4()), "amount_min": "10"},
    )
    assert clauses == []
    skipped = {getattr(record, "filter", None) for record in caplog.records if record.getMessage() == "entity_query.filter_skipped"}
    assert skipped == {"stage_id", "amount_min"}


def test_company_filter_matches_any_joined_reference() -> None:
    clauses = compile_filters(get_entity_plan("deals"), {"company_id": str(uuid.uuid4())})
    assert len(clauses) == 1
    sql = str(clauses[0])
    assert "deals.company_id" in sql
    assert "contacts.company_id" in sql


def test_range_filters_compile_to_bounds() -> None:
    clauses = compile_filters(
        get_entity_plan("deals"),
        {
            "amount_min": 100,
            "amount_max": "2500.50",
            "created_after": "2024-01-01T00:00:00",
            "created_before": "2024-12-31T23:59:59",
        },
    )
    rendered = [str(clause) for clause in clauses]
    assert len(rendered) == 4
    assert any("deals.amount >=" in sql for sql in rendered)
    assert any("deals.amount <=" in sql for sql in rendered)
    assert any("deals.created_at >=" in sql for sql in rendered)
    assert any("deals.created_at <=" in sql for sql in rendered)


@pytest.mark.parametrize(
    ("key", "value"),
    [
        ("industry_id", "not-a-uuid"),
        ("company_id", "42"),
        ("created_after", "yesterday-ish"),
        ("amount_min", "lots"),
    ],
)
def test_uncoercible_values_raise(key: str, value: object) -> None:
    plan = get_entity_plan("deals") if key == "amount_min" else get_entity_plan("companies")
    with pytest.raises(InvalidFilterValueError) as exc_info:
        compile_filters(plan, {key: value})
    assert exc_info.value.key == key


def _flat(clause: object) -> str:
    return " ".join(str(clause).split())


def test_child_table_filters_on_grouped_plans_select_parent_ids() -> None:
    clauses = compile_filters(get_entity_plan("companies"), {"stage_id": str(uuid.uuid4()), "amount_min": "10"})
    rendered = [_flat(clause) for clause in clauses]
    assert len(rendered) == 2
    for sql in rendered:
        assert sql.startswith("companies.id IN (SELECT deals.company_id FROM deals WHERE")
        assert "deals.is_deleted IS " in sql


def test_search_on_grouped_plan_keeps_base_columns_direct() -> None:
    sql = _flat(compile_filters(get_entity_plan("contacts"), {"search": "ada"})[0])
    assert "lower(contacts.first_name) LIKE lower(" in sql
    assert "contacts.id IN (SELECT leads.contact_id FROM leads WHERE" in sql
    assert "contacts.id IN (SELECT deals.contact_id FROM deals WHERE" in sql


def test_company_filter_on_companies_matches_the_company_itself() -> None:
    sql = _flat(compile_filters(get_entity_plan("companies"), {"company_id": str(uuid.uuid4())})[0])
    assert sql.startswith("companies.id = :")
    assert "companies.id IN (SELECT contacts.company_id FROM contacts WHERE" in sql


def test_non_grouped_plans_filter_joined_rows_directly() -> None:
    sql = _flat(compile_filters(get_entity_plan("leads"), {"search": "acme"})[0])
    assert "SELECT" not in sql
    assert "companies.name" in sql
