"""
Vesting escrow command-line inspector.

Reads the escrow schedule from configuration and answers schedule
questions without touching any ledger: the vesting timeline, and how much
is vested or releasable at a given moment.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import click
from rich import box
from rich.console import Console
from rich.table import Table

from vesting_escrow.config_manager import DEFAULT_CONFIG_DIR, ConfigManager
from vesting_escrow.core.escrow_exceptions import EscrowError
from vesting_escrow.core.logging_config import configure_logging
from vesting_escrow.core.vesting_schedule import (
    VestingTerms,
    scheduled_total,
    vested_amount,
    vesting_events,
)

logger = logging.getLogger(__name__)

console = Console()


def _cli_fail(exc: Exception, exit_code: int = 1) -> None:
    """Centralized CLI error handler for consistent messaging."""
    logger.error("CLI error: %s", exc, exc_info=exc)
    console.print(f"[bold red]Error:[/] {exc}")
    sys.exit(exit_code)


def _load_terms(ctx: click.Context) -> VestingTerms:
    manager: ConfigManager = ctx.obj["config"]
    try:
        return manager.vesting_terms()
    except EscrowError as exc:
        _cli_fail(exc)


def _emit(ctx: click.Context, payload: Dict[str, Any], table: Table) -> None:
    if ctx.obj.get("json_output"):
        click.echo(json.dumps(payload, indent=2))
        return
    console.print(table)


@click.group()
@click.option('--json-output', is_flag=True, help='Output raw JSON')
@click.option(
    '--environment',
    envvar='VESTING_ENVIRONMENT',
    default='development',
    show_default=True,
    help='Configuration environment to load.',
)
@click.option(
    '--config-dir',
    type=click.Path(file_okay=False, path_type=Path),
    default=DEFAULT_CONFIG_DIR,
    show_default=True,
    help='Directory containing environment config files.',
)
@click.option('--verbose', is_flag=True, help='Write JSON logs to the console.')
@click.pass_context
def cli(ctx: click.Context, json_output: bool, environment: str, config_dir: Path, verbose: bool):
    """
    Vesting Escrow CLI

    Inspect the configured vesting schedule. Read-only: never moves tokens.
    """
    ctx.ensure_object(dict)
    try:
        manager = ConfigManager(environment=environment, config_dir=str(config_dir))
    except (ValueError, TypeError) as exc:
        _cli_fail(exc)

    configure_logging(
        manager.logging,
        environment=manager.environment.value,
        console=verbose,
    )

    ctx.obj['config'] = manager
    ctx.obj['json_output'] = json_output


@cli.command("schedule")
@click.option('--balance', type=click.IntRange(min=0), help='Escrow allocation, shown as the amount vested at end.')
@click.option('--limit', type=click.IntRange(min=1), help='Show at most this many vesting events.')
@click.pass_context
def schedule(ctx: click.Context, balance: Optional[int], limit: Optional[int]):
    """List every vesting event between start and end."""
    terms = _load_terms(ctx)

    rows: List[Dict[str, int]] = []
    for timestamp, vested in vesting_events(terms):
        if limit is not None and len(rows) >= limit:
            break
        rows.append({"timestamp": timestamp, "vested": vested})

    payload: Dict[str, Any] = {
        "terms": terms.to_dict(),
        "events": rows,
        "scheduled_total": scheduled_total(terms),
    }
    if balance is not None:
        payload["end"] = {"timestamp": terms.end, "vested": balance}

    table = Table(title="Vesting Schedule", box=box.ROUNDED)
    table.add_column("Timestamp", style="cyan", justify="right")
    table.add_column("Cumulative Vested", style="green", justify="right")
    for row in rows:
        table.add_row(str(row["timestamp"]), str(row["vested"]))
    if balance is not None:
        table.add_row(str(terms.end), f"{balance} (all)")
    _emit(ctx, payload, table)


@cli.command("vested")
@click.option('--at', 'timestamp', required=True, type=int, help='Timestamp to evaluate.')
@click.option('--balance', default=0, show_default=True, type=click.IntRange(min=0), help='Tokens currently held by the escrow.')
@click.option('--released', default=0, show_default=True, type=click.IntRange(min=0), help='Tokens already released.')
@click.pass_context
def vested(ctx: click.Context, timestamp: int, balance: int, released: int):
    """Show the vested and releasable amounts at a timestamp."""
    terms = _load_terms(ctx)
    amount = vested_amount(terms, timestamp, balance + released)
    releasable = amount - released
    if releasable < 0:
        _cli_fail(ValueError(
            f"Released amount {released} exceeds vested amount {amount} at {timestamp}."
        ))

    payload = {
        "timestamp": timestamp,
        "vested": amount,
        "released": released,
        "releasable": releasable,
        "fully_vested": timestamp >= terms.end,
    }
    table = Table(show_header=False, box=box.ROUNDED, title="Vested Amount")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    for key, value in payload.items():
        table.add_row(key, str(value))
    _emit(ctx, payload, table)


@cli.group("config")
def config_group():
    """Inspect the effective configuration."""


@config_group.command("show")
@click.option("--section", help="Return only a specific configuration section.")
@click.pass_context
def config_show(ctx: click.Context, section: Optional[str]):
    """Display current configuration for the selected environment."""
    manager: ConfigManager = ctx.obj["config"]
    if section:
        section_data = manager.to_dict().get(section)
        if not isinstance(section_data, dict):
            _cli_fail(LookupError(f"Configuration section '{section}' not found."))
        payload = {"section": section, "config": section_data, "environment": manager.environment.value}
    else:
        payload = {"environment": manager.environment.value, "config": manager.to_dict()}

    table = Table(title=payload.get("section", "Configuration"), box=box.SIMPLE)
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="green")
    for key, value in payload["config"].items():
        table.add_row(str(key), json.dumps(value, indent=2) if isinstance(value, (dict, list)) else str(value))
    _emit(ctx, payload, table)


def main():
    """Console script entry point."""
    return cli(obj={})


if __name__ == "__main__":
    sys.exit(main() or 0)
