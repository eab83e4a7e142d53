from __future__ import annotations

from collections.abc import Generator

import pytest
from fastapi import Request
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.auth import AuthUser, get_current_user as auth_get_current_user
from app.core.config import get_settings
from app.core.database import Base, get_db
from app.crm.api import get_current_user as crm_get_current_user
from app.crm.models import Company, Tenant
from app.crm.service import CurrentUser
from app.main import app


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def configure_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    monkeypatch.setenv("METRICS_ENABLED", "true")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def tenant(db_session: Session) -> Tenant:
    tenant = Tenant(name="Metrics", subdomain="metrics")
    db_session.add(tenant)
    db_session.flush()
    db_session.add(Company(name="Metrics Co", tenant_id=tenant.id))
    db_session.commit()
    return tenant


@pytest.fixture()
def roles() -> list[str]:
    return ["system.metrics.read"]


@pytest.fixture()
def client(db_session: Session, tenant: Tenant, roles: list[str]) -> Generator[TestClient, None, None]:
    def override_get_db() -> Generator[Session, None, None]:
        yield db_session

    def override_crm_user(request: Request) -> CurrentUser:
        return CurrentUser(user_id="metrics-user", tenant_id=tenant.id, correlation_id="metrics-corr-1")

    def override_auth_user() -> AuthUser:
        return AuthUser(sub="metrics-admin", roles=roles)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[crm_get_current_user] = override_crm_user
    app.dependency_overrides[auth_get_current_user] = override_auth_user

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def test_metrics_endpoint_exposes_http_and_entity_query_metrics(client: TestClient) -> None:
    health = client.get("/health")
    assert health.status_code == 200

    query = client.post("/api/entities/query", json={"entityType": "companies"})
    assert query.status_code == 200
    assert query.json()["totalCount"] == 1

    views = client.get("/api/entities/deals/views")
    assert views.status_code == 200

    metrics = client.get("/metrics")
    assert metrics.status_code == 200
    body = metrics.text

    assert "http_requests_total" in body
    assert "http_request_duration_seconds" in body
    assert "entity_queries_total" in body
    assert "entity_query_duration_seconds" in body

    assert 'path="/health"' in body
    assert 'path="/api/entities/query"' in body
    assert 'path="/api/entities/{entity_type}/views"' in body
    assert 'entity_queries_total{entity_type="companies",status="ok"}' in body


@pytest.mark.parametrize("roles", [["user"]])
def test_metrics_endpoint_requires_permission(client: TestClient) -> None:
    response = client.get("/metrics")
    assert response.status_code == 403
    assert response.json()["message"] == "Missing permission: system.metrics.read"


def test_metrics_endpoint_hidden_when_disabled(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("METRICS_ENABLED", "false")
    get_settings.cache_clear()

    response = client.get("/metrics")
    assert response.status_code == 404


def test_health_reports_service_and_environment(client: TestClient) -> None:
    body = client.get("/health").json()
    assert body == {"status": "ok", "service": "FinHub API", "environment": get_settings().app_env}


def test_only_system_routes_sit_outside_the_api_prefix() -> None:
    paths = {getattr(route, "path", "") for route in app.routes}
    assert {"/health", "/metrics"} <= paths
    assert "/me" not in paths
    assert all(path.startswith(("/api/", "/health", "/metrics", "/docs", "/redoc", "/openapi")) for path in paths)
