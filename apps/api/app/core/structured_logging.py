"""Structured logging helpers (PHI-safe)."""

import logging
from contextvars import ContextVar
from typing import Any

# Set per request by the request-id middleware in app.main
request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)


def build_log_context(
    *,
    user_id: str | None = None,
    role: str | None = None,
    request_id: str | None = None,
    route: str | None = None,
    method: str | None = None,
    case_id: str | None = None,
) -> dict[str, Any]:
    """
    Return a PHI-safe log context dict.

    Only identifiers go here - never pain scores, injury details or notes.
    """
    context: dict[str, Any] = {}
    if user_id:
        context["user_id"] = user_id
    if role:
        context["role"] = role
    request_id = request_id or request_id_var.get()
    if request_id:
        context["request_id"] = request_id
    if route:
        context["route"] = route
    if method:
        context["method"] = method
    if case_id:
        context["case_id"] = case_id
    return context


class RequestIdFilter(logging.Filter):
    """Attach the current request id to every record (or '-')."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "request_id", None):
            record.request_id = request_id_var.get() or "-"
        return True


def configure_logging(level: str = "INFO") -> None:
    """Install a root handler that prints the request id with each line."""
    root = logging.getLogger()
    if any(isinstance(f, RequestIdFilter) for h in root.handlers for f in h.filters):
        return
    handler = logging.StreamHandler()
    handler.addFilter(RequestIdFilter())
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s")
    )
    root.addHandler(handler)
    root.setLevel(level)
