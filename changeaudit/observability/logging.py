"""Structured logging configuration using structlog."""

from __future__ import annotations

import logging
import sys
from typing import Any, Protocol, runtime_checkable

import structlog


def setup_logging(level: str = "info") -> None:
    """Configure structlog for JSON output to stderr."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="ts"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(component: str) -> structlog.stdlib.BoundLogger:
    """Get a logger bound with a component name."""
    return structlog.get_logger(component=component)  # type: ignore[return-value]


@runtime_checkable
class AuditLogger(Protocol):
    """Narrow logger contract used by the auditing orchestration layer.

    Anything exposing ``error(err, message)`` and ``warn(message)`` qualifies;
    the auditor checks the shape once at setup.
    """

    def error(self, err: BaseException | object, message: str = "") -> None: ...

    def warn(self, message: str) -> None: ...


class StructlogAuditLogger:
    """Adapts a structlog logger to the two-method ``AuditLogger`` contract."""

    def __init__(self, logger: Any | None = None) -> None:
        self._log = logger or get_logger("auditor")

    def error(self, err: BaseException | object, message: str = "") -> None:
        self._log.error(
            "audit_error",
            message=message,
            error=str(err),
            error_type=type(err).__name__,
        )

    def warn(self, message: str) -> None:
        self._log.warning("audit_warning", message=message)


def is_audit_logger(candidate: object) -> bool:
    """Return True when *candidate* exposes callable ``error`` and ``warn``."""
    return callable(getattr(candidate, "error", None)) and callable(getattr(candidate, "warn", None))
