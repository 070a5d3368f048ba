"""structlog setup for gateway calls, keyed by a request_id context variable."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

import structlog

__all__ = [
    "configure_logging",
    "get_logger",
    "new_request_id",
    "request_context",
    "request_id_var",
]

# Set by the embedding application to tie gateway calls to its own request.
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def new_request_id() -> str:
    """Generate and set a new request ID for the current context."""
    rid = str(uuid.uuid4())
    request_id_var.set(rid)
    return rid


@contextmanager
def request_context() -> Iterator[str]:
    """Yield the caller's request_id, or a fresh one scoped to the block."""
    rid = request_id_var.get("")
    if rid:
        yield rid
        return
    token = request_id_var.set(str(uuid.uuid4()))
    try:
        yield request_id_var.get()
    finally:
        request_id_var.reset(token)


def _add_request_id(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    rid = request_id_var.get("")
    if rid:
        event_dict.setdefault("request_id", rid)
    return event_dict


def configure_logging(*, json_output: bool = True, level: str = "INFO") -> None:
    """Configure structlog output for gateway calls.

    Args:
        json_output: True for JSON lines, False for the dev console renderer.
        level: Minimum level name, case-insensitive.
    """
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        _add_request_id,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer(),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelNamesMapping()[level.upper()]
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(**kwargs: Any) -> structlog.BoundLogger:
    """Get a bound logger with optional initial context."""
    return structlog.get_logger(**kwargs)  # type: ignore[no-any-return]
