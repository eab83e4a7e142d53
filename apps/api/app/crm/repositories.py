from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import Select, func, or_, select
from sqlalchemy.orm import Session

from app.crm.models import Tenant, User


class UserRepository:
    def get_tenant_id(self, session: Session, user_id: str) -> uuid.UUID | None:
        try:
            parsed_user_id = uuid.UUID(str(user_id))
        except ValueError:
            return None

        return session.scalar(
            select(User.tenant_id)
            .join(Tenant, Tenant.id == User.tenant_id)
            .where(User.id == parsed_user_id, User.is_active.is_(True), Tenant.is_active.is_(True))
        )


class PicklistRepository:
    """Active lookup rows for one tenant, optionally narrowed by a name/code search."""

    def _active(self, model: Any, tenant_id: uuid.UUID, query: str) -> Select[Any]:
        stmt = select(model).where(model.tenant_id == tenant_id, model.is_active.is_(True))
        if query:
            pattern = f"%{query}%"
            stmt = stmt.where(or_(model.name.ilike(pattern), model.code.ilike(pattern)))
        return stmt

    def count(self, session: Session, model: Any, tenant_id: uuid.UUID, query: str = "") -> int:
        stmt = select(func.count()).select_from(self._active(model, tenant_id, query).subquery())
        return int(session.scalar(stmt) or 0)

    def list_items(
        self,
        session: Session,
        model: Any,
        tenant_id: uuid.UUID,
        order_by: tuple[Any, ...],
        query: str = "",
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Any]:
        stmt = self._active(model, tenant_id, query).order_by(*order_by)
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(session.scalars(stmt))
