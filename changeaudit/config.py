"""Configuration loading from environment variables."""

from __future__ import annotations

import os
import re

from changeaudit.models.config import ChangeAuditConfig, EntryConfig, LogConfig

_PATH_RE = re.compile(r"^[^.\s]+(\.[^.\s]+)*$")


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"CHANGEAUDIT_{key}", default)


def _env_bool(key: str, default: bool = False) -> bool:
    val = _env(key, str(default).lower())
    return val.lower() in ("true", "1", "yes")


def _validate_path(value: str, name: str) -> str:
    if not _PATH_RE.match(value):
        raise ValueError(f"Invalid dotted path for {name}: {value!r}")
    return value


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def load_config() -> ChangeAuditConfig:
    """Load configuration from CHANGEAUDIT_* environment variables."""
    return ChangeAuditConfig(
        entry=EntryConfig(
            subject_key=_validate_path(_env("SUBJECT_KEY", "_id"), "SUBJECT_KEY"),
            actor_field=_validate_path(_env("ACTOR_FIELD", "created_by"), "ACTOR_FIELD"),
            capture_whole_doc=_env_bool("CAPTURE_WHOLE_DOC", False),
            compress_docs=_env_bool("COMPRESS_DOCS", False),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
        ),
    )
