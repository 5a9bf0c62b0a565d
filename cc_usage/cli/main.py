"""
CLI interface for cc-usage.

Renders daily, session, monthly and 5-hour window usage reports as rich
tables or JSON.
"""

import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import typer
import yaml
from rich.console import Console
from rich.table import Table

from cc_usage.config.loader import (
    CostMode,
    LoadOptions,
    Settings,
    SortOrder,
    load_settings,
)
from cc_usage.core.aggregation import load_daily_usage, load_monthly_usage, load_session_usage
from cc_usage.core.models import ModelBreakdown
from cc_usage.core.windows import load_window_summaries

app = typer.Typer(help="Usage and cost reports for coding assistant logs")
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

SINCE_OPTION = typer.Option(None, "--since", "-s", help="Filter from date (YYYYMMDD)")
UNTIL_OPTION = typer.Option(None, "--until", "-u", help="Filter until date (YYYYMMDD)")
MODE_OPTION = typer.Option(
    None, "--mode", "-m",
    help="Cost mode: auto (use costUSD if present), calculate (always from tokens), "
         "display (always costUSD)"
)
ORDER_OPTION = typer.Option(None, "--order", "-o", help="Sort order by date")
OFFLINE_OPTION = typer.Option(False, "--offline", help="Use bundled pricing, no network access")
JSON_OPTION = typer.Option(False, "--json", "-j", help="Output JSON instead of a table")
PATH_OPTION = typer.Option(None, "--path", help="Data directory (defaults to CLAUDE_CONFIG_DIR or ~/.claude)")
BREAKDOWN_OPTION = typer.Option(False, "--breakdown", "-b", help="Show per-model breakdown rows")
CONFIG_OPTION = typer.Option(None, "--config", "-c", help="YAML settings file")
DEBUG_OPTION = typer.Option(False, "--debug", help="Enable debug logging")


def _configure_logging(debug: bool) -> None:
    level_name = "DEBUG" if debug else os.getenv("LOG_LEVEL", "WARNING").upper()
    level = getattr(logging, level_name, logging.WARNING)
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr, force=True)


def _build_options(
    config: Optional[Path],
    path: Optional[Path],
    mode: Optional[CostMode],
    order: Optional[SortOrder],
    offline: bool,
    since: Optional[str],
    until: Optional[str]
) -> Tuple[LoadOptions, Settings]:
    """Merge the settings file with command-line flags (flags win)."""
    settings = load_settings(config) if config else Settings()
    options = settings.to_load_options(
        root_path=path,
        mode=mode,
        order=order,
        offline=True if offline else None,
        since=since,
        until=until,
    )
    return options, settings


def _fail(error: Exception) -> None:
    console.print(f"[red]Error:[/] {error}")
    sys.exit(EXIT_CODE_FAIL)


def _format_currency(amount: float) -> str:
    """Format currency with proper symbols and formatting."""
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def _format_number(value: int) -> str:
    return f"{value:,}"


def _format_duration(milliseconds: int) -> str:
    minutes = milliseconds // 60000
    return f"{minutes // 60}h {minutes % 60:02d}m"


def _totals(rows: Sequence[Any]) -> Dict[str, Any]:
    totals = {
        "inputTokens": sum(r.input_tokens for r in rows),
        "outputTokens": sum(r.output_tokens for r in rows),
        "cacheCreationTokens": sum(r.cache_creation_tokens for r in rows),
        "cacheReadTokens": sum(r.cache_read_tokens for r in rows),
        "totalCost": sum(r.total_cost for r in rows),
    }
    totals["totalTokens"] = (totals["inputTokens"] + totals["outputTokens"]
                             + totals["cacheCreationTokens"] + totals["cacheReadTokens"])
    return totals


def _print_json(payload: Dict[str, Any]) -> None:
    typer.echo(json.dumps(payload, indent=2))


def _print_empty() -> None:
    console.print("\n[bold yellow]No usage data found[/]\n")


def _usage_table(title: str, first_columns: List[str]) -> Table:
    table = Table(title=title, show_footer=False)
    for column in first_columns:
        table.add_column(column, style="cyan")
    table.add_column("Models")
    for column in ("Input", "Output", "Cache Create", "Cache Read", "Total Tokens", "Cost (USD)"):
        table.add_column(column, justify="right")
    return table


def _usage_cells(row: Any) -> List[str]:
    return [
        _format_number(row.input_tokens),
        _format_number(row.output_tokens),
        _format_number(row.cache_creation_tokens),
        _format_number(row.cache_read_tokens),
        _format_number(row.total_tokens),
        _format_currency(row.total_cost),
    ]


def _add_breakdown_rows(table: Table, breakdowns: Sequence[ModelBreakdown], padding: int) -> None:
    for breakdown in breakdowns:
        table.add_row(
            *([""] * (padding - 1)),
            f"[dim]└─ {breakdown.model_name}[/]",
            "",
            _format_number(breakdown.input_tokens),
            _format_number(breakdown.output_tokens),
            _format_number(breakdown.cache_creation_tokens),
            _format_number(breakdown.cache_read_tokens),
            _format_number(breakdown.total_tokens),
            _format_currency(breakdown.cost),
            style="dim",
        )


def _add_total_row(table: Table, rows: Sequence[Any], padding: int) -> None:
    totals = _totals(rows)
    table.add_section()
    table.add_row(
        "[bold]Total[/]",
        *([""] * padding),
        _format_number(totals["inputTokens"]),
        _format_number(totals["outputTokens"]),
        _format_number(totals["cacheCreationTokens"]),
        _format_number(totals["cacheReadTokens"]),
        _format_number(totals["totalTokens"]),
        f"[bold]{_format_currency(totals['totalCost'])}[/]",
    )


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context):
    """cc-usage CLI."""
    if ctx.invoked_subcommand is None:
        console.print("cc-usage - Use --help to see available commands")


@app.command()
def daily(
    since: Optional[str] = SINCE_OPTION,
    until: Optional[str] = UNTIL_OPTION,
    mode: Optional[CostMode] = MODE_OPTION,
    order: Optional[SortOrder] = ORDER_OPTION,
    offline: bool = OFFLINE_OPTION,
    json_output: bool = JSON_OPTION,
    path: Optional[Path] = PATH_OPTION,
    breakdown: bool = BREAKDOWN_OPTION,
    config: Optional[Path] = CONFIG_OPTION,
    debug: bool = DEBUG_OPTION
):
    """Show usage grouped by date."""
    _configure_logging(debug)
    try:
        options, _ = _build_options(config, path, mode, order, offline, since, until)
        rows = load_daily_usage(options)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        _fail(e)

    if json_output:
        _print_json({"daily": [r.to_dict() for r in rows], "totals": _totals(rows)})
        return
    if not rows:
        _print_empty()
        return

    table = _usage_table("Daily Usage Report", ["Date"])
    for row in rows:
        table.add_row(row.date, ", ".join(row.models_used), *_usage_cells(row))
        if breakdown:
            _add_breakdown_rows(table, row.model_breakdowns, padding=1)
    _add_total_row(table, rows, padding=1)
    console.print(table)


@app.command()
def session(
    since: Optional[str] = SINCE_OPTION,
    until: Optional[str] = UNTIL_OPTION,
    mode: Optional[CostMode] = MODE_OPTION,
    order: Optional[SortOrder] = ORDER_OPTION,
    offline: bool = OFFLINE_OPTION,
    json_output: bool = JSON_OPTION,
    path: Optional[Path] = PATH_OPTION,
    breakdown: bool = BREAKDOWN_OPTION,
    config: Optional[Path] = CONFIG_OPTION,
    debug: bool = DEBUG_OPTION
):
    """Show usage grouped by conversation session."""
    _configure_logging(debug)
    try:
        options, _ = _build_options(config, path, mode, order, offline, since, until)
        rows = load_session_usage(options)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        _fail(e)

    if json_output:
        _print_json({"sessions": [r.to_dict() for r in rows], "totals": _totals(rows)})
        return
    if not rows:
        _print_empty()
        return

    table = _usage_table("Session Usage Report", ["Session", "Project", "Last Activity"])
    for row in rows:
        table.add_row(
            row.session_id, row.project_path, row.last_activity,
            ", ".join(row.models_used), *_usage_cells(row)
        )
        if breakdown:
            _add_breakdown_rows(table, row.model_breakdowns, padding=3)
    _add_total_row(table, rows, padding=3)
    console.print(table)


@app.command()
def monthly(
    since: Optional[str] = SINCE_OPTION,
    until: Optional[str] = UNTIL_OPTION,
    mode: Optional[CostMode] = MODE_OPTION,
    order: Optional[SortOrder] = ORDER_OPTION,
    offline: bool = OFFLINE_OPTION,
    json_output: bool = JSON_OPTION,
    path: Optional[Path] = PATH_OPTION,
    breakdown: bool = BREAKDOWN_OPTION,
    config: Optional[Path] = CONFIG_OPTION,
    debug: bool = DEBUG_OPTION
):
    """Show usage grouped by month."""
    _configure_logging(debug)
    try:
        options, _ = _build_options(config, path, mode, order, offline, since, until)
        rows = load_monthly_usage(options)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        _fail(e)

    if json_output:
        _print_json({"monthly": [r.to_dict() for r in rows], "totals": _totals(rows)})
        return
    if not rows:
        _print_empty()
        return

    table = _usage_table("Monthly Usage Report", ["Month"])
    for row in rows:
        table.add_row(row.month, ", ".join(row.models_used), *_usage_cells(row))
        if breakdown:
            _add_breakdown_rows(table, row.model_breakdowns, padding=1)
    _add_total_row(table, rows, padding=1)
    console.print(table)


@app.command()
def windows(
    since: Optional[str] = SINCE_OPTION,
    until: Optional[str] = UNTIL_OPTION,
    mode: Optional[CostMode] = MODE_OPTION,
    order: Optional[SortOrder] = ORDER_OPTION,
    offline: bool = OFFLINE_OPTION,
    json_output: bool = JSON_OPTION,
    path: Optional[Path] = PATH_OPTION,
    breakdown: bool = BREAKDOWN_OPTION,
    config: Optional[Path] = CONFIG_OPTION,
    session_limit: Optional[int] = typer.Option(
        None, "--session-limit", "-l", min=1,
        help="Monthly allowance of 5-hour windows"
    ),
    debug: bool = DEBUG_OPTION
):
    """Show 5-hour usage windows grouped by month."""
    _configure_logging(debug)
    try:
        options, settings = _build_options(config, path, mode, order, offline, since, until)
        limit = session_limit if session_limit is not None else settings.session_limit
        summaries = load_window_summaries(options, session_limit=limit)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        _fail(e)

    if json_output:
        _print_json({"months": [s.to_dict() for s in summaries]})
        return
    if not summaries:
        _print_empty()
        return

    table = Table(title="5-Hour Window Usage")
    table.add_column("Month", style="cyan")
    table.add_column("Windows", justify="right")
    table.add_column("Limit", justify="right")
    table.add_column("Remaining", justify="right")
    table.add_column("Utilization", justify="right")
    table.add_column("Total Tokens", justify="right")
    table.add_column("Cost (USD)", justify="right")
    for summary in summaries:
        has_limit = summary.session_limit is not None
        table.add_row(
            summary.month,
            _format_number(summary.window_count),
            _format_number(summary.session_limit) if has_limit else "-",
            _format_number(summary.remaining_sessions) if has_limit else "-",
            f"{summary.utilization_percent:.1f}%" if has_limit else "-",
            _format_number(summary.total_tokens),
            _format_currency(summary.total_cost),
        )
        if breakdown:
            for window in summary.windows:
                table.add_row(
                    f"[dim]└─ {window.window_id}[/]",
                    f"{window.message_count} msgs",
                    f"{window.session_count} sessions",
                    _format_duration(window.duration),
                    "",
                    _format_number(window.total_tokens),
                    _format_currency(window.total_cost),
                    style="dim",
                )
    console.print(table)


if __name__ == "__main__":
    app()
