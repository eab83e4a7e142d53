"""Join/column plans for the entity kinds served by the generic query endpoint.

Each plan names its base model, the left-outer joins that contribute lookup
names, primary phone/email and related-entity counts, and the labelled
columns it selects. Plans double as the column-name translation layer used by
the filter compiler and the sort resolver: a ``"table.column"`` reference only
resolves when that table takes part in the plan. To-many child joins record
the child column that points back at the base row, which lets filters on
child tables select base rows without trimming the joined children.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import ColumnElement, Select, and_, distinct, func, literal, select

from app.crm.models import (
    Company,
    CompanySize,
    Contact,
    Deal,
    EmailAddress,
    Industry,
    Lead,
    LeadStatus,
    LeadTemperature,
    PhoneNumber,
    Pipeline,
    Stage,
    User,
)


class UnsupportedEntityTypeError(ValueError):
    def __init__(self, entity_type: str) -> None:
        self.entity_type = entity_type
        super().__init__(f"unsupported entity type: {entity_type}")


@dataclass(frozen=True, eq=False)
class JoinSpec:
    target: Any
    onclause: ColumnElement[bool]
    parent_key: Any = None


def _identity(column: ColumnElement[Any]) -> tuple[str, str] | None:
    table = getattr(column, "table", None)
    name = getattr(column, "name", None)
    if table is None or name is None:
        return None
    return (table.name, name)


@dataclass(frozen=True, eq=False)
class EntityPlan:
    name: str
    model: Any
    joins: tuple[JoinSpec, ...]
    columns: tuple[ColumnElement[Any], ...]
    aggregates: tuple[ColumnElement[Any], ...] = ()
    soft_delete: bool = True
    _tables: dict[str, Any] = field(init=False, repr=False, compare=False)
    _labels: dict[str, ColumnElement[Any]] = field(init=False, repr=False, compare=False)
    _child_joins: dict[str, JoinSpec] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        tables = {self.model.__tablename__: self.model}
        for join in self.joins:
            tables[join.target.__tablename__] = join.target
        object.__setattr__(self, "_tables", tables)
        object.__setattr__(self, "_labels", {column.key: column for column in (*self.columns, *self.aggregates)})
        children = {join.target.__tablename__: join for join in self.joins if join.parent_key is not None}
        object.__setattr__(self, "_child_joins", children)

    @property
    def table_name(self) -> str:
        return self.model.__tablename__

    @property
    def is_grouped(self) -> bool:
        return bool(self.aggregates)

    @property
    def group_by(self) -> tuple[ColumnElement[Any], ...]:
        if not self.aggregates:
            return ()
        return tuple(column.element for column in self.columns)

    @property
    def column_keys(self) -> tuple[str, ...]:
        return tuple(self._labels)

    def has_table(self, table_name: str) -> bool:
        return table_name in self._tables

    def resolve(self, reference: str) -> ColumnElement[Any] | None:
        """Translate ``table.column``, a bare base column or an aggregate alias."""
        if "." in reference:
            table_name, column_name = reference.split(".", 1)
        else:
            aggregate = self.aggregate(reference)
            if aggregate is not None:
                return aggregate
            table_name, column_name = self.table_name, reference

        model = self._tables.get(table_name)
        if model is None:
            return None
        return model.__table__.c.get(column_name)

    def aggregate(self, key: str) -> ColumnElement[Any] | None:
        for column in self.aggregates:
            if column.key == key:
                return column
        return None

    def is_groupable(self, column: ColumnElement[Any]) -> bool:
        """Whether a grouped plan may order by ``column`` without breaking GROUP BY."""
        if not self.is_grouped:
            return True
        if any(column is aggregate for aggregate in self.aggregates):
            return True
        identity = _identity(column)
        return identity is not None and identity in {_identity(grouped) for grouped in self.group_by}

    def scope(self, column: ColumnElement[Any], predicate: ColumnElement[bool]) -> ColumnElement[bool]:
        """Rewrite a predicate on a to-many child table as a base id membership test.

        Child rows feed the count aggregates, so they must stay joined in full;
        the predicate only decides which base rows qualify.
        """
        identity = _identity(column)
        join = self._child_joins.get(identity[0]) if identity is not None else None
        if join is None:
            return predicate
        members = (
            select(join.parent_key)
            .where(predicate, join.target.is_deleted.is_(False))
            .correlate(None)
        )
        return self.model.id.in_(members)

    def build_select(self, tenant_id: Any) -> Select[Any]:
        stmt = select(*self.columns, *self.aggregates).select_from(self.model)
        for join in self.joins:
            stmt = stmt.outerjoin(join.target, join.onclause)

        stmt = stmt.where(self.model.tenant_id == tenant_id)
        if self.soft_delete:
            stmt = stmt.where(self.model.is_deleted.is_(False))
        if self.aggregates:
            stmt = stmt.group_by(*self.group_by)
        return stmt


def _primary_channel(channel: Any, owner: Any, channel_type: str) -> JoinSpec:
    return JoinSpec(
        channel,
        and_(
            channel.entity_id == owner.id,
            channel.entity_type == channel_type,
            channel.is_primary.is_(True),
        ),
    )


def _live(related: Any, onclause: ColumnElement[bool]) -> JoinSpec:
    return JoinSpec(related, and_(onclause, related.is_deleted.is_(False)))


def _children(related: Any, parent_key: Any, owner: Any) -> JoinSpec:
    return JoinSpec(related, and_(parent_key == owner.id, related.is_deleted.is_(False)), parent_key=parent_key)


_COMPANIES = EntityPlan(
    name="companies",
    model=Company,
    joins=(
        JoinSpec(Industry, Company.industry_id == Industry.id),
        JoinSpec(CompanySize, Company.size_id == CompanySize.id),
        _primary_channel(PhoneNumber, Company, "company"),
        _primary_channel(EmailAddress, Company, "company"),
        _children(Contact, Contact.company_id, Company),
        _children(Lead, Lead.company_id, Company),
        _children(Deal, Deal.company_id, Company),
    ),
    columns=(
        Company.id.label("id"),
        Company.name.label("name"),
        Company.website.label("website"),
        Company.domain.label("domain"),
        Company.revenue.label("revenue"),
        Company.created_at.label("created_at"),
        Company.updated_at.label("updated_at"),
        Industry.name.label("industry_name"),
        CompanySize.name.label("size_name"),
        PhoneNumber.number.label("phone"),
        EmailAddress.email.label("email"),
    ),
    aggregates=(
        func.count(distinct(Contact.id)).label("contact_count"),
        func.count(distinct(Lead.id)).label("lead_count"),
        func.count(distinct(Deal.id)).label("deal_count"),
    ),
)

_CONTACTS = EntityPlan(
    name="contacts",
    model=Contact,
    joins=(
        _live(Company, Contact.company_id == Company.id),
        _primary_channel(PhoneNumber, Contact, "contact"),
        _primary_channel(EmailAddress, Contact, "contact"),
        _children(Lead, Lead.contact_id, Contact),
        _children(Deal, Deal.contact_id, Contact),
    ),
    columns=(
        Contact.id.label("id"),
        Contact.first_name.label("first_name"),
        Contact.last_name.label("last_name"),
        Contact.title.label("title"),
        Contact.department.label("department"),
        Contact.created_at.label("created_at"),
        Contact.updated_at.label("updated_at"),
        Company.name.label("company_name"),
        PhoneNumber.number.label("phone"),
        EmailAddress.email.label("email"),
    ),
    aggregates=(
        func.count(distinct(Lead.id)).label("lead_count"),
        func.count(distinct(Deal.id)).label("deal_count"),
    ),
)

_LEADS = EntityPlan(
    name="leads",
    model=Lead,
    joins=(
        JoinSpec(LeadStatus, Lead.status_id == LeadStatus.id),
        JoinSpec(LeadTemperature, Lead.temperature_id == LeadTemperature.id),
        _live(Company, Lead.company_id == Company.id),
        _live(Contact, Lead.contact_id == Contact.id),
        _primary_channel(PhoneNumber, Lead, "lead"),
        _primary_channel(EmailAddress, Lead, "lead"),
    ),
    columns=(
        Lead.id.label("id"),
        Lead.first_name.label("first_name"),
        Lead.last_name.label("last_name"),
        Lead.title.label("title"),
        Lead.score.label("score"),
        Lead.source.label("source"),
        Lead.campaign.label("campaign"),
        Lead.created_at.label("created_at"),
        Lead.updated_at.label("updated_at"),
        LeadStatus.name.label("status_name"),
        LeadTemperature.name.label("temperature_name"),
        func.coalesce(Company.name, literal("Unknown Company")).label("company_name"),
        Contact.first_name.label("contact_first_name"),
        Contact.last_name.label("contact_last_name"),
        PhoneNumber.number.label("phone"),
        EmailAddress.email.label("email"),
    ),
)

_DEALS = EntityPlan(
    name="deals",
    model=Deal,
    joins=(
        JoinSpec(Stage, Deal.stage_id == Stage.id),
        JoinSpec(Pipeline, Deal.pipeline_id == Pipeline.id),
        _live(Company, Deal.company_id == Company.id),
        _live(Contact, Deal.contact_id == Contact.id),
        JoinSpec(User, Deal.assigned_user_id == User.id),
    ),
    columns=(
        Deal.id.label("id"),
        Deal.name.label("name"),
        Deal.amount.label("amount"),
        Deal.currency.label("currency"),
        Deal.expected_close_date.label("expected_close_date"),
        Deal.probability.label("probability"),
        Deal.created_at.label("created_at"),
        Deal.updated_at.label("updated_at"),
        Stage.name.label("stage_name"),
        Pipeline.name.label("pipeline_name"),
        Company.name.label("company_name"),
        Contact.first_name.label("contact_first_name"),
        Contact.last_name.label("contact_last_name"),
        User.first_name.label("owner_first_name"),
        User.last_name.label("owner_last_name"),
    ),
)

ENTITY_PLANS: dict[str, EntityPlan] = {plan.name: plan for plan in (_COMPANIES, _CONTACTS, _LEADS, _DEALS)}
SUPPORTED_ENTITY_TYPES = tuple(ENTITY_PLANS)


def get_entity_plan(entity_type: str) -> EntityPlan:
    plan = ENTITY_PLANS.get((entity_type or "").strip().lower())
    if plan is None:
        raise UnsupportedEntityTypeError(entity_type)
    return plan
