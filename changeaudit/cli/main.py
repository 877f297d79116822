"""CLI entrypoint for changeaudit.

All inputs are JSON files; ``-`` reads the before document from stdin.
Results are printed as indented JSON on stdout, logs go to stderr.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any

import click

from changeaudit import __version__
from changeaudit.config import load_config
from changeaudit.observability.logging import get_logger, setup_logging
from changeaudit.tracking.engine import diff
from changeaudit.tracking.patch import apply_patch, simulate
from changeaudit.tracking.paths import MISSING
from changeaudit.tracking.validation import ConfigurationError, parse_field_specs
from changeaudit.tracking.values import to_iso

_log = get_logger("cli")


def _json_default(value: Any) -> Any:
    if value is MISSING:
        return None
    if isinstance(value, datetime):
        return to_iso(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _echo_json(value: Any) -> None:
    click.echo(json.dumps(value, indent=2, ensure_ascii=False, default=_json_default))


def _load_json(stream: Any, name: str) -> Any:
    try:
        return json.load(stream)
    except json.JSONDecodeError as exc:
        raise click.BadParameter(f"not valid JSON: {exc}", param_hint=name) from exc


def _load_fields(stream: Any) -> list[Any]:
    raw = _load_json(stream, "--fields")
    try:
        return parse_field_specs(raw)
    except ConfigurationError as exc:
        raise click.ClickException(f"invalid field configuration: {exc}") from exc


@click.group()
@click.version_option(__version__, prog_name="changeaudit")
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"]),
    default=None,
    help="Log level (defaults to CHANGEAUDIT_LOG_LEVEL or info)",
)
def cli(log_level: str | None) -> None:
    """changeaudit - field-level change detection for JSON documents."""
    setup_logging(log_level or load_config().log.level)


@cli.command("diff")
@click.argument("before", type=click.File("r"))
@click.argument("after", type=click.File("r"))
@click.option("--fields", "fields_file", type=click.File("r"), required=True, help="Tracked field configuration")
def diff_command(before: Any, after: Any, fields_file: Any) -> None:
    """Print the change records between BEFORE and AFTER."""
    specs = _load_fields(fields_file)
    records = diff(_load_json(before, "BEFORE"), _load_json(after, "AFTER"), specs)
    _log.debug("cli_diff", changes=len(records))
    _echo_json([record.to_dict() for record in records])


@cli.command("simulate")
@click.argument("before", type=click.File("r"))
@click.argument("patch", type=click.File("r"))
@click.option("--fields", "fields_file", type=click.File("r"), required=True, help="Tracked field configuration")
@click.option("--overlay", is_flag=True, help="Print the whole patched document instead of the touched fields")
def simulate_command(before: Any, patch: Any, fields_file: Any, overlay: bool) -> None:
    """Predict the effect of PATCH on BEFORE."""
    specs = _load_fields(fields_file)
    before_doc = _load_json(before, "BEFORE")
    patch_doc = _load_json(patch, "PATCH")
    if overlay:
        result = apply_patch(before_doc, patch_doc, specs)
        # $unset fields disappear from the patched document.
        _echo_json({key: value for key, value in result.items() if value is not MISSING})
    else:
        _echo_json(simulate(patch_doc, before_doc, specs))


@cli.command("validate")
@click.argument("fields_file", metavar="FIELDS", type=click.File("r"))
def validate_command(fields_file: Any) -> None:
    """Check a tracked field configuration."""
    raw = _load_json(fields_file, "FIELDS")
    try:
        specs = parse_field_specs(raw)
    except ConfigurationError as exc:
        click.echo(f"{exc.location}: {exc.detail}", err=True)
        raise SystemExit(1) from exc
    click.echo(f"OK: {len(specs)} tracked field(s)")


if __name__ == "__main__":
    cli()
