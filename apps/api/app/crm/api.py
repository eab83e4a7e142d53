from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.context import get_correlation_id
from app.core.auth import AuthUser, get_current_user as get_auth_user
from app.core.context import get_request_context
from app.core.database import get_db
from app.core.errors import error_response
from app.crm.repositories import UserRepository
from app.crm.schemas import (
    EntityQueryRequest,
    EntityQueryResponse,
    EntityViewsResponse,
    PicklistResponse,
    PicklistSearchRequest,
)
from app.crm.service import CurrentUser, EntityQueryService, PicklistService

entities_router = APIRouter(prefix="/api", tags=["crm.entities"])
picklists_router = APIRouter(prefix="/api/picklists", tags=["crm.picklists"])
entity_query_service = EntityQueryService()
picklist_service = PicklistService()
user_repository = UserRepository()


def get_current_user(
    request: Request,
    auth_user: AuthUser = Depends(get_auth_user),
    db: Session = Depends(get_db),
) -> CurrentUser:
    tenant_id = user_repository.get_tenant_id(db, auth_user.sub)
    if tenant_id is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    context = get_request_context(request)
    context.tenant_id = tenant_id
    return CurrentUser(
        user_id=auth_user.sub,
        tenant_id=tenant_id,
        correlation_id=get_correlation_id() or context.request_id or None,
    )


@entities_router.post("/entities/query", response_model=EntityQueryResponse)
def query_entities(
    request: Request,
    payload: EntityQueryRequest,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> EntityQueryResponse | JSONResponse:
    try:
        return entity_query_service.query_entities(db, user, payload)
    except HTTPException as exc:
        return error_response(
            request,
            status_code=exc.status_code,
            code="entity_query_failed",
            message=str(exc.detail),
            details=exc.detail,
        )


@entities_router.get("/entities/{entity_type}/views", response_model=EntityViewsResponse)
def list_entity_views(entity_type: str) -> EntityViewsResponse:
    return EntityViewsResponse(views=entity_query_service.list_views(entity_type))


@picklists_router.get("/{entity}", response_model=PicklistResponse)
def list_picklist(
    request: Request,
    entity: str,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> PicklistResponse | JSONResponse:
    try:
        return picklist_service.list_items(db, user, entity)
    except HTTPException as exc:
        return _picklist_error(request, exc)


@picklists_router.post("/search", response_model=PicklistResponse)
def search_picklist(
    request: Request,
    payload: PicklistSearchRequest,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
) -> PicklistResponse | JSONResponse:
    try:
        return picklist_service.search(db, user, payload)
    except HTTPException as exc:
        return _picklist_error(request, exc)


def _picklist_error(request: Request, exc: HTTPException) -> JSONResponse:
    return error_response(
        request,
        status_code=exc.status_code,
        code="picklist_failed",
        message=str(exc.detail),
        details=exc.detail,
    )
