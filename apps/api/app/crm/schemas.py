from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


SortOrder = Literal["asc", "desc"]
ColumnType = Literal["text", "number", "date", "boolean", "link", "status", "currency", "percentage"]
ColumnAlign = Literal["left", "center", "right"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EntityQueryRequest(CamelModel):
    entity_type: str = Field(min_length=1)
    page: int = 1
    page_size: int = Field(default=20, le=100)
    sort_by: str = ""
    sort_order: SortOrder = "asc"
    filters: dict[str, Any] = Field(default_factory=dict)
    view: str | None = None

    @field_validator("sort_by", mode="before")
    @classmethod
    def normalize_sort_by(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("sort_order", mode="before")
    @classmethod
    def normalize_sort_order(cls, value: Any) -> Any:
        if value is None or value == "":
            return "asc"
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("filters", mode="before")
    @classmethod
    def normalize_filters(cls, value: Any) -> Any:
        return {} if value is None else value


class EntityQueryResponse(CamelModel):
    entities: list[dict[str, Any]]
    total_count: int
    page: int
    page_size: int
    total_pages: int
    has_more: bool
    sort_by: str
    sort_order: SortOrder


class CompanyRow(BaseModel):
    id: UUID
    name: str
    website: str | None = None
    domain: str | None = None
    revenue: Decimal | None = None
    created_at: datetime
    updated_at: datetime
    industry_name: str | None = None
    size_name: str | None = None
    phone: str | None = None
    email: str | None = None
    contact_count: int = 0
    lead_count: int = 0
    deal_count: int = 0


class ContactRow(BaseModel):
    id: UUID
    first_name: str
    last_name: str
    title: str | None = None
    department: str | None = None
    created_at: datetime
    updated_at: datetime
    company_name: str | None = None
    phone: str | None = None
    email: str | None = None
    lead_count: int = 0
    deal_count: int = 0


class LeadRow(BaseModel):
    id: UUID
    first_name: str | None = None
    last_name: str | None = None
    title: str | None = None
    score: int = 0
    source: str | None = None
    campaign: str | None = None
    created_at: datetime
    updated_at: datetime
    status_name: str | None = None
    temperature_name: str | None = None
    company_name: str
    contact_first_name: str | None = None
    contact_last_name: str | None = None
    phone: str | None = None
    email: str | None = None


class DealRow(BaseModel):
    id: UUID
    name: str
    amount: Decimal | None = None
    currency: str
    expected_close_date: datetime | None = None
    probability: int = 0
    created_at: datetime
    updated_at: datetime
    stage_name: str | None = None
    pipeline_name: str | None = None
    company_name: str | None = None
    contact_first_name: str | None = None
    contact_last_name: str | None = None
    owner_first_name: str | None = None
    owner_last_name: str | None = None


EntityRow = CompanyRow | ContactRow | LeadRow | DealRow


class ViewColumn(CamelModel):
    model_config = ConfigDict(frozen=True)

    key: str
    label: str
    type: ColumnType
    sortable: bool
    filterable: bool
    width: str = ""
    align: ColumnAlign | Literal[""] = ""
    format: str = ""


class EntityViewConfig(CamelModel):
    model_config = ConfigDict(frozen=True)

    name: str
    display_name: str
    default_sort: str
    default_order: SortOrder
    columns: tuple[ViewColumn, ...]


class EntityViewsResponse(BaseModel):
    views: list[EntityViewConfig]


class PicklistItem(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    code: str
    description: str | None = None


class CompanySizeItem(PicklistItem):
    min_employees: int | None = None
    max_employees: int | None = None


class RankedPicklistItem(PicklistItem):
    color: str | None = None
    order: int = 0


class PicklistSearchRequest(CamelModel):
    entity_type: str = Field(min_length=1)
    query: str = ""
    limit: int = Field(ge=1, le=100)
    offset: int = Field(default=0, ge=0)

    @field_validator("query", mode="before")
    @classmethod
    def normalize_query(cls, value: Any) -> Any:
        if value is None:
            return ""
        return value.strip() if isinstance(value, str) else value


class PicklistResponse(CamelModel):
    items: list[dict[str, Any]]
    total_count: int
    has_more: bool
