from __future__ import annotations

import logging
import math
import time
import uuid
from dataclasses import dataclass
from typing import Any

from fastapi import HTTPException, status
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
from sqlalchemy import Select, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.crm.picklists import Picklist, UnsupportedPicklistError, get_picklist
from app.crm.query import (
    InvalidFilterValueError,
    UnsupportedEntityTypeError,
    apply_filters,
    apply_sort,
    get_entity_plan,
    project_rows,
)
from app.crm.repositories import PicklistRepository
from app.crm.schemas import (
    EntityQueryRequest,
    EntityQueryResponse,
    EntityViewConfig,
    PicklistResponse,
    PicklistSearchRequest,
)
from app.crm.views import get_entity_views
from app.metrics import observe_entity_query


logger = logging.getLogger("app.crm.entities")
tracer = trace.get_tracer("app.crm.entities")


@dataclass
class CurrentUser:
    user_id: str
    tenant_id: uuid.UUID
    correlation_id: str | None = None


def normalize_pagination(page: int, page_size: int) -> tuple[int, int]:
    settings = get_settings()
    if page <= 0:
        page = 1
    if page_size <= 0:
        page_size = settings.entity_query_default_page_size
    return page, min(page_size, settings.entity_query_max_page_size)


def pagination_window(total_count: int, page: int, page_size: int) -> tuple[int, bool]:
    total_pages = math.ceil(total_count / page_size)
    return total_pages, page < total_pages


class EntityQueryService:
    def query_entities(
        self,
        session: Session,
        user: CurrentUser,
        request: EntityQueryRequest,
    ) -> EntityQueryResponse:
        started = time.perf_counter()
        try:
            plan = get_entity_plan(request.entity_type)
        except UnsupportedEntityTypeError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

        page, page_size = normalize_pagination(request.page, request.page_size)

        with tracer.start_as_current_span("crm.entity_query") as query_span:
            query_span.set_attribute("entity_type", plan.name)
            query_span.set_attribute("tenant_id", str(user.tenant_id))
            if user.correlation_id:
                query_span.set_attribute("correlation_id", user.correlation_id)

            try:
                stmt = apply_filters(plan.build_select(user.tenant_id), plan, request.filters)
            except InvalidFilterValueError as exc:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

            total_count = self._count(session, stmt, plan.name, query_span, started)

            stmt = apply_sort(stmt, plan, request.sort_by, request.sort_order)
            stmt = stmt.offset((page - 1) * page_size).limit(page_size)

            try:
                with tracer.start_as_current_span("crm.entity_query.fetch"):
                    entities = project_rows(session, plan, stmt)
            except SQLAlchemyError as exc:
                self._fail(query_span, plan.name, "fetch", exc, started)
                raise HTTPException(
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                    detail="Failed to fetch entities",
                ) from exc

        total_pages, has_more = pagination_window(total_count, page, page_size)
        duration = time.perf_counter() - started
        observe_entity_query(plan.name, "ok", duration)
        logger.info(
            "entity_query.completed",
            extra={
                "entity_type": plan.name,
                "tenant_id": str(user.tenant_id),
                "page": page,
                "page_size": page_size,
                "total_count": total_count,
                "row_count": len(entities),
                "duration_ms": round(duration * 1000, 2),
            },
        )

        return EntityQueryResponse(
            entities=entities,
            total_count=total_count,
            page=page,
            page_size=page_size,
            total_pages=total_pages,
            has_more=has_more,
            sort_by=request.sort_by,
            sort_order=request.sort_order,
        )

    def list_views(self, entity_type: str) -> list[EntityViewConfig]:
        return get_entity_views(entity_type)

    def _count(self, session: Session, stmt: Select[Any], entity_type: str, query_span: Any, started: float) -> int:
        count_stmt = select(func.count()).select_from(stmt.subquery())
        try:
            with tracer.start_as_current_span("crm.entity_query.count"):
                return int(session.scalar(count_stmt) or 0)
        except SQLAlchemyError as exc:
            self._fail(query_span, entity_type, "count", exc, started)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to count entities",
            ) from exc

    @staticmethod
    def _fail(span: Any, entity_type: str, stage: str, exc: Exception, started: float) -> None:
        span.record_exception(exc)
        span.set_status(Status(StatusCode.ERROR, str(exc)))
        duration = time.perf_counter() - started
        observe_entity_query(entity_type, "error", duration)
        logger.exception(
            "entity_query.failed",
            extra={"entity_type": entity_type, "stage": stage, "error": str(exc)[:500]},
        )


class PicklistService:
    def __init__(self, repository: PicklistRepository | None = None) -> None:
        self.repository = repository or PicklistRepository()

    def list_items(self, session: Session, user: CurrentUser, entity: str) -> PicklistResponse:
        picklist = self._resolve(entity)
        try:
            records = self.repository.list_items(session, picklist.model, user.tenant_id, picklist.order_by)
        except SQLAlchemyError as exc:
            raise self._fail(picklist, "fetch", exc) from exc

        items = [picklist.serialize(record) for record in records]
        self._completed(picklist, user, len(items), len(items))
        return PicklistResponse(items=items, total_count=len(items), has_more=False)

    def search(self, session: Session, user: CurrentUser, request: PicklistSearchRequest) -> PicklistResponse:
        picklist = self._resolve(request.entity_type)
        try:
            total_count = self.repository.count(session, picklist.model, user.tenant_id, request.query)
        except SQLAlchemyError as exc:
            raise self._fail(picklist, "count", exc) from exc

        try:
            records = self.repository.list_items(
                session,
                picklist.model,
                user.tenant_id,
                picklist.order_by,
                query=request.query,
                limit=request.limit,
                offset=request.offset,
            )
        except SQLAlchemyError as exc:
            raise self._fail(picklist, "fetch", exc) from exc

        items = [picklist.serialize(record) for record in records]
        self._completed(picklist, user, total_count, len(items))
        return PicklistResponse(
            items=items,
            total_count=total_count,
            has_more=request.offset + len(items) < total_count,
        )

    @staticmethod
    def _resolve(entity: str) -> Picklist:
        try:
            return get_picklist(entity)
        except UnsupportedPicklistError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid entity type") from exc

    @staticmethod
    def _completed(picklist: Picklist, user: CurrentUser, total_count: int, row_count: int) -> None:
        logger.info(
            "picklist.completed",
            extra={
                "entity_type": picklist.name,
                "tenant_id": str(user.tenant_id),
                "total_count": total_count,
                "row_count": row_count,
            },
        )

    @staticmethod
    def _fail(picklist: Picklist, stage: str, exc: Exception) -> HTTPException:
        logger.exception(
            "picklist.failed",
            extra={"entity_type": picklist.name, "stage": stage, "error": str(exc)[:500]},
        )
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to {stage} {picklist.name}",
        )
