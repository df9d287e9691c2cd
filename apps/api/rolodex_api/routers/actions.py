from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from starlette.concurrency import run_in_threadpool

from ..actions import ActionResult, execute_action, resolve_action
from ..db import get_session_factory
from ..errors import ApiError, BadRequestError, ConfigError, StorageError, ValidationFailed
from ..identity import IdentityVerifier, get_identity_verifier
from ..log_config import build_log_context
from ..services.rate_limit import LOCAL_CALLER_KEY, RateLimiter, caller_key, get_rate_limiter
from ..tenancy import RequestContext, RequestMeta, require_role, run_in_tenant_transaction

logger = logging.getLogger(__name__)

router = APIRouter(tags=["actions"])


def envelope(
    ok: bool,
    status_code: int,
    data: Any = None,
    error: dict[str, str] | None = None,
    meta: dict[str, Any] | None = None,
) -> JSONResponse:
    body: dict[str, Any] = {"ok": ok}
    if data is not None:
        body["data"] = jsonable_encoder(data, by_alias=True)
    if error is not None:
        body["error"] = error
    if meta:
        body["meta"] = jsonable_encoder(meta)
    return JSONResponse(status_code=status_code, content=body, headers={"cache-control": "no-store"})


def error_response(exc: ApiError) -> JSONResponse:
    return envelope(
        False,
        exc.status_code,
        error={"code": exc.code, "message": exc.message},
        meta=exc.meta,
    )


def _validation_message(exc: ValidationError) -> str:
    parts = []
    for item in exc.errors()[:5]:
        location = ".".join(str(part) for part in item.get("loc", ())) or "body"
        parts.append(f"{location}: {item.get('msg', 'invalid')}")
    return "; ".join(parts) or "Invalid input"


async def _read_inputs(request: Request) -> dict[str, Any]:
    inputs: dict[str, Any] = {key: value for key, value in request.query_params.items() if key != "action"}
    if request.method != "POST":
        return inputs
    raw = await request.body()
    if not raw.strip():
        return inputs
    try:
        body = json.loads(raw)
    except ValueError as exc:
        raise BadRequestError("Request body must be valid JSON") from exc
    if not isinstance(body, dict):
        raise BadRequestError("Request body must be a JSON object")
    inputs.update(body)
    return inputs


def _client_ip(request: Request) -> str | None:
    key = caller_key(request.headers)
    if key != LOCAL_CALLER_KEY:
        return key
    return request.client.host if request.client else None


def _classify(exc: Exception) -> ApiError:
    if isinstance(exc, ApiError):
        return exc
    if isinstance(exc, ValidationError):
        return ValidationFailed(_validation_message(exc))
    if isinstance(exc, SQLAlchemyError):
        logger.exception("storage failure")
        return StorageError()
    logger.exception("unclassified failure")
    return StorageError("Unexpected error")


async def _dispatch(
    request: Request,
    session_factory: sessionmaker[Session] | None,
    verifier: IdentityVerifier,
    limiter: RateLimiter,
) -> tuple[int, ActionResult, RequestContext]:
    limiter.hit(caller_key(request.headers))
    if session_factory is None:
        raise ConfigError("Database is not configured")

    action_name = (request.query_params.get("action") or "").strip()
    if not action_name:
        raise BadRequestError("Missing action")

    context = await run_in_threadpool(verifier.verify, request.headers)
    spec = resolve_action(action_name)
    require_role(context, spec.roles)

    payload = spec.input_model.model_validate(await _read_inputs(request))
    meta = RequestMeta(
        ip=_client_ip(request),
        user_agent=request.headers.get("user-agent"),
        request_id=getattr(request.state, "request_id", None),
    )
    result = await run_in_threadpool(
        run_in_tenant_transaction, session_factory, context, execute_action(spec, payload), meta
    )
    return spec.status_code, result, context


@router.api_route("/api", methods=["GET", "POST"])
async def dispatch_action(
    request: Request,
    session_factory: sessionmaker[Session] | None = Depends(get_session_factory),
    verifier: IdentityVerifier = Depends(get_identity_verifier),
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> JSONResponse:
    action_name = request.query_params.get("action")
    request_id = getattr(request.state, "request_id", None)
    try:
        status_code, result, context = await _dispatch(request, session_factory, verifier, limiter)
    except Exception as exc:  # noqa: BLE001
        error = _classify(exc)
        logger.info(
            "action failed %s",
            build_log_context(
                action=action_name, request_id=request_id, code=error.code, status_code=error.status_code
            ),
        )
        return error_response(error)

    logger.info(
        "action completed %s",
        build_log_context(
            action=action_name, org_id=str(context.org_id), request_id=request_id, status_code=status_code
        ),
    )
    return envelope(True, status_code, data=result.data, meta=result.meta)


def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return error_response(exc)
