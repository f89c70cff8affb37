"""Click-based CLI for investment-notice.

Thin wrapper around library modules. Every operation delegates to the
dispatcher or the calendar helpers.

Exit status of ``run``:
    0  fetch and analysis succeeded (summary / email outcome ignored)
    1  configuration error
    2  fetch stage failed (every provider listed on stderr)
    3  analysis failed on the fetched data
    4  email delivery failed and ``notify.fail_on_error`` is set
"""

from __future__ import annotations

import asyncio
import logging
import sys
from datetime import datetime

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.table import Table

console = Console(stderr=True)

EXIT_CONFIG = 1
EXIT_FETCH = 2
EXIT_ANALYSIS = 3
EXIT_NOTIFY = 4


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run_async(coro):
    """Run an async coroutine from synchronous Click code."""
    return asyncio.run(coro)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    # Suppress per-request transport logs
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def _load_config(ctx: click.Context):
    """Load config lazily, caching on first call."""
    if "config" not in ctx.obj:
        from investment_notice.core import ConfigError, load_config

        try:
            ctx.obj["config"] = load_config(config_path=ctx.obj.get("config_path"))
        except ConfigError as e:
            console.print(f"[red]Configuration error:[/red] {escape(str(e))}")
            raise SystemExit(EXIT_CONFIG)
    return ctx.obj["config"]


def _resolve_mode(mode: str):
    """Convert CLI mode string to AnalysisMode (None means infer)."""
    from investment_notice.core import AnalysisMode

    if mode == "auto":
        return None
    try:
        return AnalysisMode(mode)
    except ValueError:
        raise click.UsageError(f"Unknown mode: {mode}")


def _print_fetch_failure(exc) -> None:
    """Show one row per provider so operators can see who failed and why."""
    from investment_notice.core import AllSourcesFailedError

    console.print(f"[red]Fetch failed:[/red] {escape(str(exc))}")
    if not isinstance(exc, AllSourcesFailedError):
        return

    table = Table(title="Provider failures")
    table.add_column("Provider", style="bold")
    table.add_column("Error")
    table.add_column("Reason")
    for name, err in exc.errors:
        table.add_row(
            name,
            type(err).__name__,
            escape(str(err.context.get("reason", err))),
        )
    console.print(table)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    envvar="INVESTMENT_NOTICE_CONFIG",
    default=None,
    help="Path to investment-notice.yml config file.",
)
@click.option(
    "--env-file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Load environment variables from this file (default: ./.env if present).",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Enable debug logging.",
)
@click.version_option(package_name="investment-notice")
@click.pass_context
def cli(ctx: click.Context, config: str | None, env_file: str | None, verbose: bool) -> None:
    """Investment Notice: index reports with multi-source price fallback."""
    ctx.ensure_object(dict)
    if env_file:
        load_dotenv(env_file, override=False)
    else:
        load_dotenv(override=False)
    _configure_logging(verbose)
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose
    ctx.obj["console"] = console


# ---------------------------------------------------------------------------
# run
# ---------------------------------------------------------------------------


@cli.command()
@click.option(
    "--mode",
    "-m",
    type=click.Choice(["daily", "weekly", "monthly", "auto"], case_sensitive=False),
    default="auto",
    help="Report period. 'auto' infers it from the date.",
)
@click.option(
    "--send-email/--no-send-email",
    default=False,
    help="Email the report to the configured recipients.",
)
@click.option(
    "--date",
    "as_of",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="As-of date (YYYY-MM-DD). Default: today.",
)
@click.option("--symbol", type=str, default=None, help="Override the index code.")
@click.option(
    "--no-summary",
    is_flag=True,
    default=False,
    help="Skip the AI narrative.",
)
@click.option(
    "--json",
    "as_json",
    is_flag=True,
    default=False,
    help="Print the run result as JSON instead of the rendered report.",
)
@click.pass_context
def run(
    ctx: click.Context,
    mode: str,
    send_email: bool,
    as_of: datetime | None,
    symbol: str | None,
    no_summary: bool,
    as_json: bool,
) -> None:
    """Fetch prices, analyze, summarize and optionally email one report."""
    from investment_notice.core import AnalysisError, FetchError
    from investment_notice.core.models import StageStatus
    from investment_notice.scheduler import ModeDispatcher

    config = _load_config(ctx)
    analysis_mode = _resolve_mode(mode.lower())
    today = as_of.date() if as_of else None

    dispatcher = ModeDispatcher.from_config(config, with_summary=not no_summary)

    try:
        result = _run_async(
            dispatcher.run(mode=analysis_mode, today=today, send=send_email, symbol=symbol)
        )
    except FetchError as e:
        _print_fetch_failure(e)
        raise SystemExit(EXIT_FETCH)
    except AnalysisError as e:
        console.print(f"[red]Analysis failed:[/red] {escape(str(e))}")
        raise SystemExit(EXIT_ANALYSIS)

    if as_json:
        click.echo(result.model_dump_json(indent=2))
    else:
        click.echo(result.rendered)

    if result.summary_status == StageStatus.FAILED:
        console.print("[yellow]AI narrative unavailable; report sent without it.[/yellow]")

    if result.notify_status == StageStatus.OK:
        console.print(f"[green]✓[/green] Report emailed: {escape(result.subject)}")
    elif result.notify_status == StageStatus.FAILED:
        console.print(f"[red]Email not sent:[/red] {escape(result.notify_error or '')}")
        if config.notify.fail_on_error:
            raise SystemExit(EXIT_NOTIFY)


# ---------------------------------------------------------------------------
# schedule
# ---------------------------------------------------------------------------


@cli.command()
@click.option(
    "--date",
    "as_of",
    type=click.DateTime(formats=["%Y-%m-%d", "%Y-%m-%dT%H:%M"]),
    default=None,
    help="Reference moment. Default: now.",
)
@click.pass_context
def schedule(ctx: click.Context, as_of: datetime | None) -> None:
    """Show calendar facts, the inferred mode and the next run per mode."""
    from investment_notice.core import AnalysisMode
    from investment_notice.scheduler import format_time_info, infer_mode, next_execution_time

    config = _load_config(ctx)
    now = as_of or datetime.now()
    holidays = config.schedule.holidays

    console.print(format_time_info(now.date(), holidays), soft_wrap=True)
    console.print(
        f"Mode for today: [bold]{infer_mode(now.date(), config.schedule).value}[/bold]"
    )

    table = Table(title="Next executions")
    table.add_column("Mode", style="bold")
    table.add_column("Next run", justify="right")
    for mode in AnalysisMode:
        when = next_execution_time(mode, now, config.schedule)
        table.add_row(mode.value, when.strftime("%Y-%m-%d %H:%M"))
    console.print(table)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
