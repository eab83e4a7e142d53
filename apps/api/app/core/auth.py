from dataclasses import dataclass

from fastapi import HTTPException, status
from jose import JWTError, jwt
from starlette.requests import Request

from app.core.config import get_settings
from app.core.context import get_request_context


@dataclass
class AuthUser:
    sub: str
    roles: list[str]


def _unauthenticated(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(request: Request) -> AuthUser:
    auth_header = request.headers.get("authorization", "")
    token = auth_header[len("Bearer ") :].strip() if auth_header.startswith("Bearer ") else ""
    if not token:
        raise _unauthenticated("User not authenticated")

    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise _unauthenticated("Invalid authentication token") from exc

    # Issued tokens carry the caller under ``user_id``; ``sub`` is accepted for standard JWTs.
    subject = payload.get("user_id") or payload.get("sub")
    if not subject:
        raise _unauthenticated("User not authenticated")

    roles = payload.get("roles", ["user"])
    if not isinstance(roles, list):
        roles = ["user"]
    get_request_context(request).user_id = str(subject)
    return AuthUser(sub=str(subject), roles=[str(role) for role in roles])
