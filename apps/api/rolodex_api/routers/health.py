from __future__ import annotations

from fastapi import APIRouter, HTTPException
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

from ..db import check_db_health
from ..errors import ConfigError
from ..redis_client import get_redis_client
from ..settings import settings

router = APIRouter(tags=["health"])


@router.get("/health")
@router.get("/healthz")
def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/healthz/db")
def health_db() -> dict[str, str]:
    try:
        check_db_health()
    except (ConfigError, SQLAlchemyError) as exc:
        raise HTTPException(status_code=503, detail={"status": "down", "db": "down"}) from exc
    return {"status": "ok", "db": "ok"}


@router.get("/ready")
def ready() -> dict[str, object]:
    checks = {"db": "ok"}
    try:
        check_db_health()
    except (ConfigError, SQLAlchemyError):
        checks["db"] = "down"
    if settings.rate_limit_backend == "redis":
        try:
            get_redis_client().ping()
            checks["redis"] = "ok"
        except RedisError:
            checks["redis"] = "down"
    if any(value != "ok" for value in checks.values()):
        raise HTTPException(status_code=503, detail={"status": "not_ready", "env": settings.app_env, "checks": checks})
    return {"status": "ready", "env": settings.app_env, "checks": checks}
