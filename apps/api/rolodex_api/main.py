import uuid

from fastapi import FastAPI
from starlette.requests import Request
from starlette.responses import Response

from .errors import ApiError
from .log_config import configure_logging
from .routers.actions import api_error_handler
from .routers.actions import router as actions_router
from .routers.health import router as health_router
from .settings import settings

configure_logging(settings.log_level)

app = FastAPI(title="Rolodex API", version="0.1.0")
app.add_exception_handler(ApiError, api_error_handler)  # type: ignore[arg-type]


@app.middleware("http")
async def request_id_middleware(request: Request, call_next) -> Response:  # type: ignore[override]
    request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-Id"] = request_id
    return response


app.include_router(health_router)
app.include_router(actions_router)
