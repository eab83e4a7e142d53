from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

import pytest

from app.crm.query import SUPPORTED_ENTITY_TYPES, UnsupportedEntityTypeError, get_entity_plan
from app.crm.query.projection import ROW_MODELS, project_row


def test_supported_entity_types() -> None:
    assert set(SUPPORTED_ENTITY_TYPES) == {"companies", "contacts", "leads", "deals"}


@pytest.mark.parametrize("raw", ["deals", "DEALS", " Deals "])
def test_plan_lookup_is_case_insensitive(raw: str) -> None:
    assert get_entity_plan(raw).name == "deals"


@pytest.mark.parametrize("raw", ["", "widgets", "company"])
def test_unknown_entity_type_raises(raw: str) -> None:
    with pytest.raises(UnsupportedEntityTypeError) as exc_info:
        get_entity_plan(raw)
    assert exc_info.value.entity_type == raw
    assert str(exc_info.value) == f"unsupported entity type: {raw}"


def test_company_plan_columns_and_counts() -> None:
    plan = get_entity_plan("companies")
    assert plan.is_grouped
    assert {"id", "name", "industry_name", "size_name", "phone", "email"} <= set(plan.column_keys)
    assert plan.column_keys[-3:] == ("contact_count", "lead_count", "deal_count")


def test_lead_and_deal_plans_are_not_grouped() -> None:
    assert not get_entity_plan("leads").is_grouped
    assert not get_entity_plan("deals").is_grouped
    assert "pipeline_name" in get_entity_plan("deals").column_keys
    assert "company_name" in get_entity_plan("leads").column_keys


def test_resolve_qualified_bare_and_aggregate_references() -> None:
    plan = get_entity_plan("companies")

    industry_name = plan.resolve("industries.name")
    assert industry_name is not None
    assert industry_name.table.name == "industries"

    created_at = plan.resolve("created_at")
    assert created_at is not None
    assert created_at.table.name == "companies"

    assert plan.resolve("contact_count") is plan.aggregate("contact_count")


def test_resolve_ignores_tables_outside_the_plan() -> None:
    plan = get_entity_plan("leads")
    assert plan.has_table("lead_statuses")
    assert not plan.has_table("industries")
    assert plan.resolve("industries.name") is None
    assert plan.resolve("deals.amount") is None
    assert plan.resolve("leads.no_such_column") is None


def test_build_select_scopes_tenant_and_soft_delete() -> None:
    sql = str(get_entity_plan("contacts").build_select(uuid.uuid4()))
    assert "contacts.tenant_id = " in sql
    assert "contacts.is_deleted IS 0" in sql or "contacts.is_deleted IS false" in sql
    assert "LEFT OUTER JOIN companies" in sql
    assert "GROUP BY" in sql


def test_build_select_only_groups_plans_with_counts() -> None:
    assert "GROUP BY" not in str(get_entity_plan("leads").build_select(uuid.uuid4()))
    assert "GROUP BY" in str(get_entity_plan("companies").build_select(uuid.uuid4()))


@pytest.mark.parametrize("entity_type", ["companies", "contacts", "leads", "deals"])
def test_row_models_cover_every_projected_alias(entity_type: str) -> None:
    plan = get_entity_plan(entity_type)
    assert list(ROW_MODELS[entity_type].model_fields) == list(plan.column_keys)


def test_money_columns_are_projected_without_rounding() -> None:
    stamp = datetime(2024, 3, 1, 12, 0, 0)
    deal = project_row(
        get_entity_plan("deals"),
        {
            "id": uuid.uuid4(),
            "name": "Mainframe",
            "amount": Decimal("1234567890123456.79"),
            "currency": "USD",
            "probability": 0,
            "created_at": stamp,
            "updated_at": stamp,
        },
    )
    company = project_row(
        get_entity_plan("companies"),
        {
            "id": uuid.uuid4(),
            "name": "Initech",
            "revenue": Decimal("9999999999999999.99"),
            "created_at": stamp,
            "updated_at": stamp,
            "contact_count": 0,
            "lead_count": 0,
            "deal_count": 0,
        },
    )
    assert deal["amount"] == "1234567890123456.79"
    assert company["revenue"] == "9999999999999999.99"


def test_missing_money_columns_stay_null() -> None:
    stamp = datetime(2024, 3, 1, 12, 0, 0)
    row = project_row(
        get_entity_plan("deals"),
        {"id": uuid.uuid4(), "name": "Unpriced", "currency": "USD", "probability": 10, "created_at": stamp, "updated_at": stamp},
    )
    assert row["amount"] is None
