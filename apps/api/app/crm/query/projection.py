from __future__ import annotations

from typing import Any

from pydantic import BaseModel
from sqlalchemy import Select
from sqlalchemy.orm import Session

from app.crm.query.registry import EntityPlan
from app.crm.schemas import CompanyRow, ContactRow, DealRow, LeadRow


ROW_MODELS: dict[str, type[BaseModel]] = {
    "companies": CompanyRow,
    "contacts": ContactRow,
    "leads": LeadRow,
    "deals": DealRow,
}


def project_row(plan: EntityPlan, row: Any) -> dict[str, Any]:
    values = {key: row.get(key) for key in plan.column_keys}
    record = ROW_MODELS[plan.name].model_validate(values)
    return record.model_dump(mode="json")


def project_rows(session: Session, plan: EntityPlan, stmt: Select[Any]) -> list[dict[str, Any]]:
    """Execute ``stmt`` and return one attribute map per row, keyed by SQL alias."""
    rows = session.execute(stmt).mappings().all()
    return [project_row(plan, row) for row in rows]
