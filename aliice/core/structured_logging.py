"""Structured logging helpers."""

import logging
from typing import Any

from aliice.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging() -> None:
    """Configure root logging once at startup."""
    level = logging.DEBUG if settings.ENV == "dev" else logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)


def build_log_context(
    *,
    user_id: str | None = None,
    org_id: str | None = None,
    request_id: str | None = None,
    route: str | None = None,
    method: str | None = None,
    entity_id: str | None = None,
) -> dict[str, Any]:
    """Return a log context dict with only the populated keys.

    Never include free-text content (comments, chat messages, patient fields).
    """
    context: dict[str, Any] = {}
    if user_id:
        context["user_id"] = user_id
    if org_id:
        context["org_id"] = org_id
    if request_id:
        context["request_id"] = request_id
    if route:
        context["route"] = route
    if method:
        context["method"] = method
    if entity_id:
        context["entity_id"] = entity_id
    return context
