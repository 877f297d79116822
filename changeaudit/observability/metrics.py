"""Prometheus counters for the auditing orchestration layer."""

from __future__ import annotations

from prometheus_client import Counter

entries_total = Counter(
    "changeaudit_entries_total",
    "Audit entries produced, by subject and entry kind.",
    ["subject", "kind"],
)

changes_total = Counter(
    "changeaudit_changes_total",
    "Field-level change records produced, by subject and change kind.",
    ["subject", "change_kind"],
)

sink_failures_total = Counter(
    "changeaudit_sink_failures_total",
    "Audit entries that the sink failed to accept.",
    ["subject"],
)
