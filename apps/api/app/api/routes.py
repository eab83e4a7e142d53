from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import Response

from app.core.auth import AuthUser, get_current_user
from app.core.config import get_settings
from app.crm.api import entities_router, picklists_router
from app.metrics import generate_metrics_payload, metrics_content_type

METRICS_READ_ROLE = "system.metrics.read"

router = APIRouter()
router.include_router(entities_router)
router.include_router(picklists_router)


def _require_role(user: AuthUser, role: str) -> None:
    if role not in user.roles:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"Missing permission: {role}")


@router.get("/health", tags=["system"])
def health() -> dict[str, str]:
    settings = get_settings()
    return {"status": "ok", "service": settings.app_name, "environment": settings.app_env}


@router.get("/metrics", tags=["system"])
def metrics(user: AuthUser = Depends(get_current_user)) -> Response:
    if not get_settings().metrics_enabled:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="not found")
    _require_role(user, METRICS_READ_ROLE)
    return Response(content=generate_metrics_payload(), media_type=metrics_content_type())
