import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError

from rolodex_api.main import app


async def test_health_endpoint() -> None:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


async def test_healthz_endpoint() -> None:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


async def test_healthz_db_reports_down(monkeypatch: pytest.MonkeyPatch) -> None:
    def _down() -> bool:
        raise OperationalError("SELECT 1", {}, Exception("refused"))

    monkeypatch.setattr("rolodex_api.routers.health.check_db_health", _down)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/healthz/db")

    assert response.status_code == 503


async def test_ready_with_memory_limiter_checks_db_only(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("rolodex_api.routers.health.check_db_health", lambda: True)
    monkeypatch.setattr("rolodex_api.routers.health.settings.rate_limit_backend", "memory")
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/ready")

    assert response.status_code == 200
    assert response.json()["checks"] == {"db": "ok"}
