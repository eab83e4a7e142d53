"""Static display configurations for the entity list screens.

The catalog is compiled-in, identical for every tenant and never touches the
database. Entries are frozen models held in tuples, so concurrent readers can
share them freely.
"""

from __future__ import annotations

from app.crm.schemas import EntityViewConfig, ViewColumn


def _col(
    key: str,
    label: str,
    type_: str,
    *,
    sortable: bool = True,
    filterable: bool = True,
    width: str = "120px",
    align: str = "",
    format_: str = "",
) -> ViewColumn:
    return ViewColumn(
        key=key,
        label=label,
        type=type_,
        sortable=sortable,
        filterable=filterable,
        width=width,
        align=align,
        format=format_,
    )


_CREATED = _col("created_at", "Created", "date", format_="date")
_UPDATED = _col("updated_at", "Updated", "date", format_="date")
_COMPANY_NAME = _col("name", "Company Name", "text", width="200px")
_INDUSTRY = _col("industry_name", "Industry", "text", width="150px")
_SIZE = _col("size_name", "Size", "text")
_WEBSITE = _col("website", "Website", "link", sortable=False, width="150px")
_PHONE = _col("phone", "Phone", "text", sortable=False)
_EMAIL = _col("email", "Email", "text", sortable=False, width="200px")


def _count(key: str, label: str, width: str = "100px") -> ViewColumn:
    return _col(key, label, "number", filterable=False, width=width, align="center")


ENTITY_VIEWS: dict[str, tuple[EntityViewConfig, ...]] = {
    "companies": (
        EntityViewConfig(
            name="overview",
            display_name="Overview",
            default_sort="name",
            default_order="asc",
            columns=(
                _COMPANY_NAME,
                _INDUSTRY,
                _SIZE,
                _WEBSITE,
                _PHONE,
                _EMAIL,
                _col("revenue", "Revenue", "currency", align="right", format_="currency"),
                _count("contact_count", "Contacts"),
                _count("lead_count", "Leads"),
                _count("deal_count", "Deals"),
                _CREATED,
            ),
        ),
        EntityViewConfig(
            name="detailed",
            display_name="Detailed View",
            default_sort="created_at",
            default_order="desc",
            columns=(
                _COMPANY_NAME,
                _INDUSTRY,
                _SIZE,
                _WEBSITE,
                _PHONE,
                _count("contact_count", "Contacts"),
                _count("lead_count", "Leads"),
                _count("deal_count", "Deals"),
                _CREATED,
                _UPDATED,
            ),
        ),
    ),
    "contacts": (
        EntityViewConfig(
            name="overview",
            display_name="Overview",
            default_sort="last_name",
            default_order="asc",
            columns=(
                _col("first_name", "First Name", "text"),
                _col("last_name", "Last Name", "text"),
                _col("company_name", "Company", "text", width="200px"),
                _col("title", "Title", "text", width="150px"),
                _col("department", "Department", "text"),
                _EMAIL,
                _PHONE,
                _count("lead_count", "Leads", width="80px"),
                _count("deal_count", "Deals", width="80px"),
                _CREATED,
            ),
        ),
    ),
    "leads": (
        EntityViewConfig(
            name="overview",
            display_name="Overview",
            default_sort="created_at",
            default_order="desc",
            columns=(
                _col("first_name", "First Name", "text"),
                _col("last_name", "Last Name", "text"),
                _col("company_name", "Company", "text", width="200px"),
                _col("title", "Title", "text", width="150px"),
                _col("score", "Score", "number", width="80px", align="center"),
                _col("source", "Source", "text"),
                _col("campaign", "Campaign", "text"),
                _EMAIL,
                _PHONE,
                _col("status_name", "Status", "status"),
                _col("temperature_name", "Temperature", "status"),
                _CREATED,
            ),
        ),
    ),
    "deals": (
        EntityViewConfig(
            name="overview",
            display_name="Overview",
            default_sort="expected_close_date",
            default_order="asc",
            columns=(
                _col("name", "Deal Name", "text", width="200px"),
                _col("company_name", "Company", "text", width="200px"),
                _col("stage_name", "Stage", "status"),
                _col("amount", "Amount", "currency", align="right", format_="currency"),
                _col("probability", "Probability", "percentage", width="100px", align="center", format_="percentage"),
                _col("expected_close_date", "Close Date", "date", format_="date"),
                _col("owner_first_name", "Owner", "text", width="150px"),
                _CREATED,
            ),
        ),
    ),
}


def get_entity_views(entity_type: str) -> list[EntityViewConfig]:
    return list(ENTITY_VIEWS.get((entity_type or "").strip().lower(), ()))
