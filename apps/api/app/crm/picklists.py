"""Lookup tables exposed as tenant-scoped picklists.

These are the id sources for the ``industry_id``, ``size_id``, ``status_id``
and ``temperature_id`` entity filters. Each picklist is addressed by its
plural key (``industries``) or its singular alias (``industry``).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from app.crm.models import CompanySize, Industry, LeadStatus, LeadTemperature
from app.crm.schemas import CompanySizeItem, PicklistItem, RankedPicklistItem


class UnsupportedPicklistError(ValueError):
    def __init__(self, entity: str) -> None:
        self.entity = entity
        super().__init__(f"unsupported picklist: {entity}")


@dataclass(frozen=True)
class Picklist:
    name: str
    alias: str
    model: Any
    item_model: type[PicklistItem]
    ranked: bool = False

    @property
    def order_by(self) -> tuple[Any, ...]:
        if self.ranked:
            return (self.model.order.asc(), self.model.name.asc())
        return (self.model.name.asc(),)

    def serialize(self, record: Any) -> dict[str, Any]:
        return self.item_model.model_validate(record).model_dump(mode="json", by_alias=True)


PICKLISTS: dict[str, Picklist] = {
    picklist.name: picklist
    for picklist in (
        Picklist("industries", "industry", Industry, PicklistItem),
        Picklist("companysizes", "companysize", CompanySize, CompanySizeItem),
        Picklist("leadstatuses", "leadstatus", LeadStatus, RankedPicklistItem, ranked=True),
        Picklist("leadtemperatures", "leadtemperature", LeadTemperature, RankedPicklistItem, ranked=True),
    )
}
_BY_ALIAS = {picklist.alias: picklist for picklist in PICKLISTS.values()}


def get_picklist(entity: str) -> Picklist:
    key = (entity or "").strip().lower()
    picklist = PICKLISTS.get(key) or _BY_ALIAS.get(key)
    if picklist is None:
        raise UnsupportedPicklistError(entity)
    return picklist
