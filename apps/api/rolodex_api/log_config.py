"""Logging setup and PHI-safe log context helpers."""

from __future__ import annotations

import logging
from typing import Any

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


def build_log_context(
    *,
    action: str | None = None,
    org_id: str | None = None,
    request_id: str | None = None,
    code: str | None = None,
    status_code: int | None = None,
) -> dict[str, Any]:
    """Return a log context dict that never carries contact data or tokens."""
    context: dict[str, Any] = {}
    if action:
        context["action"] = action
    if org_id:
        context["org_id"] = org_id
    if request_id:
        context["request_id"] = request_id
    if code:
        context["code"] = code
    if status_code is not None:
        context["status"] = status_code
    return context
