"""Configuration data structures."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class EntryConfig:
    """Audit entry construction defaults."""

    subject_key: str = "_id"
    actor_field: str = "created_by"
    capture_whole_doc: bool = False
    compress_docs: bool = False


@dataclass
class LogConfig:
    """Logging configuration."""

    level: str = "info"


@dataclass
class ChangeAuditConfig:
    """Top-level changeaudit configuration."""

    entry: EntryConfig = field(default_factory=EntryConfig)
    log: LogConfig = field(default_factory=LogConfig)
