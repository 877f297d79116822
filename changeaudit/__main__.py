"""Entry point for `python -m changeaudit`.

Usage:
    python -m changeaudit diff before.json after.json --fields fields.json
"""

from __future__ import annotations

from changeaudit.cli.main import cli

cli()
