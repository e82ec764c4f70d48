#!/usr/bin/env python3
"""
ROWA Vesting CLI Commands - Local Vesting State Inspection

Reads the vesting state persisted in a data directory and shows:
- Individual schedules and what they can release
- Schedules held by a beneficiary
- Committed totals and per-category allocation
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Any

import click
from rich import box
from rich.console import Console
from rich.table import Table

from rowa.core.api_blueprints import create_app
from rowa.core.config import VestingConfig
from rowa.core.constants import SECONDS_PER_WEEK, TOKEN_DECIMALS, TOKEN_SYMBOL
from rowa.core.structured_logger import StructuredLogger
from rowa.core.vesting_exceptions import ScheduleRevokedError, VestingError
from rowa.core.vesting_persistence import VestingStorage, load_system
from rowa.core.vesting_service import open_service
from rowa.vesting.schedule import VestingSchedule
from rowa.vesting.vesting_manager import VestingManager

logger = logging.getLogger(__name__)
console = Console()


def _handle_cli_error(exc: Exception, exit_code: int = 1) -> None:
    """Centralized CLI error handler for consistent messaging/exit codes."""
    logger.error("CLI error: %s", exc, exc_info=True)
    console.print(f"[bold red]Error:[/] {exc}")
    sys.exit(exit_code)


def _format_amount(amount: int) -> str:
    whole, frac = divmod(amount, 10**TOKEN_DECIMALS)
    return f"{whole:,}.{frac:0{TOKEN_DECIMALS}d} {TOKEN_SYMBOL}"


def _load_manager(data_dir: str) -> VestingManager:
    storage = VestingStorage(data_dir)
    if not storage.exists():
        raise click.ClickException(f"No vesting state found in {data_dir}")
    manager, _ = load_system(storage)
    return manager


def _schedule_view(manager: VestingManager, schedule: VestingSchedule, now: int | None) -> dict[str, Any]:
    view = schedule.to_dict()
    view["vested_amount"] = manager.vested_amount(schedule.schedule_id, now)
    try:
        view["releasable_amount"] = manager.releasable_amount(schedule.schedule_id, now)
    except ScheduleRevokedError:
        view["releasable_amount"] = None
    return view


@click.group()
@click.option(
    "--data-dir",
    envvar="ROWA_DATA_DIR",
    default="data/vesting",
    show_default=True,
    help="Directory holding the persisted vesting state",
)
@click.option("--json", "json_output", is_flag=True, help="Output raw JSON")
@click.pass_context
def vesting(ctx: click.Context, data_dir: str, json_output: bool):
    """ROWA vesting schedule inspection commands."""
    ctx.ensure_object(dict)
    ctx.obj["data_dir"] = data_dir
    ctx.obj["json_output"] = json_output


@vesting.command("show")
@click.argument("schedule_id")
@click.option("--at", "now", type=int, help="Evaluate at this UNIX timestamp")
@click.pass_context
def show_schedule(ctx: click.Context, schedule_id: str, now: int | None):
    """
    Show a single vesting schedule.

    Example:
        rowa-vesting show 0x3f1c...
    """
    try:
        manager = _load_manager(ctx.obj["data_dir"])
        view = _schedule_view(manager, manager.get_schedule(schedule_id), now)
    except VestingError as exc:
        _handle_cli_error(exc)
        return

    if ctx.obj.get("json_output"):
        click.echo(json.dumps(view, indent=2))
        return

    table = Table(title=f"Schedule {schedule_id[:18]}...", box=box.ROUNDED)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="white")
    for key in ("beneficiary", "category", "start_time", "cliff_duration", "total_duration", "revocable", "revoked"):
        table.add_row(key, str(view[key]))
    for key in ("total_amount", "initial_unlock_amount", "released_amount", "vested_amount"):
        table.add_row(key, _format_amount(view[key]))
    releasable = view["releasable_amount"]
    table.add_row(
        "releasable_amount",
        "[red]revoked[/]" if releasable is None else f"[green]{_format_amount(releasable)}[/]",
    )
    console.print(table)


@vesting.command("list")
@click.argument("beneficiary")
@click.option("--at", "now", type=int, help="Evaluate at this UNIX timestamp")
@click.pass_context
def list_schedules(ctx: click.Context, beneficiary: str, now: int | None):
    """List every schedule held by BENEFICIARY in creation order."""
    try:
        manager = _load_manager(ctx.obj["data_dir"])
        views = [
            _schedule_view(manager, manager.get_schedule(schedule_id), now)
            for schedule_id in manager.get_schedule_ids_by_beneficiary(beneficiary)
        ]
    except VestingError as exc:
        _handle_cli_error(exc)
        return

    if ctx.obj.get("json_output"):
        click.echo(json.dumps({"beneficiary": beneficiary, "schedules": views}, indent=2))
        return

    if not views:
        console.print(f"[yellow]No schedules for {beneficiary}[/]")
        return

    table = Table(title=f"Schedules of {beneficiary}", box=box.ROUNDED)
    table.add_column("#", justify="right")
    table.add_column("Schedule ID", style="cyan")
    table.add_column("Category")
    table.add_column("Total", justify="right")
    table.add_column("Released", justify="right")
    table.add_column("Releasable", justify="right", style="green")
    for index, view in enumerate(views):
        releasable = view["releasable_amount"]
        table.add_row(
            str(index),
            view["schedule_id"][:18] + "...",
            view["category"],
            _format_amount(view["total_amount"]),
            _format_amount(view["released_amount"]),
            "revoked" if releasable is None else _format_amount(releasable),
        )
    console.print(table)


@vesting.command("releasable")
@click.argument("schedule_id")
@click.option("--at", "now", type=int, help="Evaluate at this UNIX timestamp")
@click.pass_context
def releasable(ctx: click.Context, schedule_id: str, now: int | None):
    """Print the amount SCHEDULE_ID can release right now."""
    try:
        manager = _load_manager(ctx.obj["data_dir"])
        amount = manager.releasable_amount(schedule_id, now)
    except VestingError as exc:
        _handle_cli_error(exc)
        return

    if ctx.obj.get("json_output"):
        click.echo(json.dumps({"schedule_id": schedule_id, "releasable_amount": amount}))
        return
    console.print(f"[bold green]{_format_amount(amount)}[/] releasable")


@vesting.command("totals")
@click.pass_context
def totals(ctx: click.Context):
    """Show schedule count and committed/outstanding totals."""
    try:
        manager = _load_manager(ctx.obj["data_dir"])
        data = {
            "schedules_count": manager.get_schedules_count(),
            "total_committed": manager.get_schedules_total_amount(),
            "outstanding": manager.get_outstanding_amount(),
            "withdrawable": manager.get_withdrawable_amount(),
        }
    except VestingError as exc:
        _handle_cli_error(exc)
        return

    if ctx.obj.get("json_output"):
        click.echo(json.dumps(data, indent=2))
        return

    table = Table(title="Vesting Totals", box=box.ROUNDED)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Schedules", str(data["schedules_count"]))
    table.add_row("Committed", _format_amount(data["total_committed"]))
    table.add_row("Outstanding", _format_amount(data["outstanding"]))
    table.add_row("Withdrawable", _format_amount(data["withdrawable"]))
    console.print(table)


@vesting.command("categories")
@click.pass_context
def categories(ctx: click.Context):
    """Show per-category caps, commitments and schedule parameters."""
    try:
        manager = _load_manager(ctx.obj["data_dir"])
        summary = manager.category_summary()
    except VestingError as exc:
        _handle_cli_error(exc)
        return

    if ctx.obj.get("json_output"):
        click.echo(json.dumps({"categories": summary}, indent=2))
        return

    table = Table(title="Vesting Categories", box=box.ROUNDED)
    table.add_column("Category", style="cyan")
    table.add_column("Cap", justify="right")
    table.add_column("Committed", justify="right")
    table.add_column("Remaining", justify="right", style="green")
    table.add_column("Unlock")
    table.add_column("Cliff (wk)", justify="right")
    table.add_column("Duration (wk)", justify="right")
    for row in summary:
        numerator, denominator = row["initial_unlock"]
        table.add_row(
            row["label"],
            _format_amount(row["cap"]),
            _format_amount(row["committed"]),
            _format_amount(row["remaining"]),
            f"{numerator}/{denominator}" if numerator else "-",
            str(row["cliff_duration"] // SECONDS_PER_WEEK),
            str(row["total_duration"] // SECONDS_PER_WEEK),
        )
    console.print(table)


@vesting.command("serve")
@click.option("--host", help="Bind address (defaults to ROWA_API_HOST)")
@click.option("--port", type=int, help="Bind port (defaults to ROWA_API_PORT)")
def serve(host: str | None, port: int | None):
    """Run the vesting HTTP API over the configured data directory."""
    try:
        config = VestingConfig.from_env()
        structured_logger = StructuredLogger(log_dir=config.log_dir, log_level=config.log_level)
        service = open_service(config, structured_logger=structured_logger)
    except VestingError as exc:
        _handle_cli_error(exc)
        return

    app = create_app(service.manager, on_commit=service.save)
    console.print(
        f"[bold cyan]Serving vesting API for {service.manager.get_token_address()}[/]"
    )
    app.run(host=host or config.api_host, port=port or config.api_port)


def main():
    """CLI entry point"""
    try:
        vesting(obj={})
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/]")
        sys.exit(130)


if __name__ == "__main__":
    main()
