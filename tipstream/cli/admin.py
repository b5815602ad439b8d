"""
TIPSTREAM - CLI Admin Commands
Command-line interface for operating the pipeline
"""

import asyncio
import json
import logging
import signal
import sys
from typing import Any, Awaitable, Callable, Optional, Tuple

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from tipstream.core.exceptions import TipstreamError
from tipstream.models.models import PredictionCategory
from tipstream.services.container import Services, get_services

console = Console()
logger = logging.getLogger(__name__)


def _setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def _run(action: Callable[[Services], Awaitable[Any]]) -> Any:
    """Run one async action against initialized services, then tear them down."""

    async def runner():
        services = get_services()
        await services.db.create_all()
        await services.registry.seed_defaults()
        try:
            return await action(services)
        finally:
            await services.close()
            await services.db.close()

    try:
        return asyncio.run(runner())
    except TipstreamError as e:
        console.print(f"[red]✗[/red] {e.code}: {e.message}")
        sys.exit(1)


def _print_json(payload: Any) -> None:
    console.print_json(json.dumps(payload, ensure_ascii=False, default=str))


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
def cli(verbose: bool):
    """TIPSTREAM - Odds acquisition and prediction pipeline"""
    _setup_logging(verbose)


# ============== Worker ==============

@cli.command()
def worker():
    """
    Run the background scheduler without the HTTP API.

    Jobs:
    - Match cache refresh (every MATCHES_REFRESH_INTERVAL seconds)
    - Prediction pool regeneration (PREDICTION_CRON)
    """
    from tipstream.core.config import get_settings

    settings = get_settings()
    console.print(Panel.fit(
        "[bold green]TIPSTREAM[/bold green]\n"
        "Scheduler worker (match refresh + pool regeneration)",
        title="Worker Starting"
    ))
    console.print(f"Environment: {settings.environment}")

    async def run_worker(services: Services):
        await services.scheduler.initialize()
        await services.scheduler.start()
        console.print("[green]✓[/green] Scheduler started")
        console.print("\n[bold green]Waiting for scheduled jobs...[/bold green]")
        console.print("Ctrl+C stops the worker\n")

        stop_event = asyncio.Event()

        def signal_handler():
            console.print("\n[yellow]Signal received, stopping...[/yellow]")
            stop_event.set()

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(sig, signal_handler)
            except NotImplementedError:
                # not available on Windows event loops
                pass

        await stop_event.wait()
        console.print("[yellow]Stopping scheduler...[/yellow]")

    try:
        _run(run_worker)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
    console.print("[green]Worker exited[/green]")


# ============== Matches ==============

@cli.command()
def refresh():
    """Scrape all source pages and replace the match cache."""
    console.print("[yellow]Refreshing match cache...[/yellow]")

    report = _run(lambda s: s.match_store.refresh())
    if report.success:
        console.print(
            f"[green]✓[/green] Stored {report.stored} matches "
            f"({report.scraped} scraped, {report.degraded_sources}/{report.sources} sources degraded)"
        )
    else:
        console.print(f"[red]✗[/red] Refresh failed, previous snapshot kept: {report.error}")
        sys.exit(1)


@cli.command()
@click.option("--limit", "-n", default=50, help="Maximum rows to show")
def matches(limit: int):
    """Show cached matches."""
    rows = _run(lambda s: s.match_store.read())

    table = Table(title=f"Cached Matches ({len(rows)})")
    table.add_column("Date")
    table.add_column("Time")
    table.add_column("Match")
    table.add_column("League")
    table.add_column("1", justify="right")
    table.add_column("X", justify="right")
    table.add_column("2", justify="right")
    for m in rows[:limit]:
        table.add_row(
            m.date.isoformat(), m.time or "-", m.title, m.league or "-",
            f"{m.odds.home:.2f}", f"{m.odds.draw:.2f}", f"{m.odds.away:.2f}",
        )
    console.print(table)


# ============== Predictions ==============

@cli.command()
@click.argument("category", type=click.Choice(["all"] + [c.value for c in PredictionCategory]), default="all")
def generate(category: str):
    """Generate predictions: refill the whole pool, or print one of a category."""
    if category == "all":
        console.print("[yellow]Regenerating prediction pool...[/yellow]")
        report = _run(lambda s: s.pool_builder.run())
        if report.skipped:
            console.print("[yellow]⚠[/yellow] No cached matches, nothing generated")
            return
        table = Table(title="Pool Regeneration")
        table.add_column("Category")
        table.add_column("Generated", justify="right")
        table.add_column("Failed", justify="right")
        table.add_column("Pool")
        for name, c in report.categories.items():
            pool_state = "skipped" if c.skipped else ("replaced" if c.replaced else "kept")
            table.add_row(name, str(c.generated), str(c.failed), pool_state)
        console.print(table)
        return

    prediction = _run(lambda s: s.engine.generate(PredictionCategory(category)))
    _print_json(prediction.model_dump(mode="json", by_alias=True))


@cli.command()
@click.argument("match")
@click.option("--league", "-l", default=None, help="League name")
@click.option("--date", "-d", "match_date", default=None, help="Match date")
def analyze(match: str, league: Optional[str], match_date: Optional[str]):
    """Analyze one match on demand, e.g. 'Arsenal - Chelsea'."""
    analysis = _run(lambda s: s.engine.analyze_match(match, league=league, date=match_date))
    _print_json(analysis.to_public())


@cli.command()
def pool():
    """Show prediction pool sizes."""
    counts = _run(lambda s: s.pool_store.counts())
    table = Table(title="Prediction Pool")
    table.add_column("Category")
    table.add_column("Count", justify="right")
    for name, count in counts.items():
        table.add_row(name, str(count))
    console.print(table)


# ============== Sources ==============

@cli.group()
def sources():
    """Source URL registry"""
    pass


@sources.command("show")
def sources_show():
    """List configured source pages."""
    targets = _run(lambda s: s.registry.get_targets())
    if not targets:
        console.print("[yellow]⚠[/yellow] No source URLs configured")
        return
    table = Table(title="Source URLs")
    table.add_column("Label")
    table.add_column("URL")
    for target in targets:
        table.add_row(target.label, target.url)
    console.print(table)


@sources.command("set")
@click.argument("urls", nargs=-1, required=True)
def sources_set(urls: Tuple[str, ...]):
    """Replace the source list with URLS."""
    saved = _run(lambda s: s.registry.set_urls(list(urls)))
    console.print(f"[green]✓[/green] {len(saved)} source URLs saved")


# ============== Server ==============

@cli.command()
@click.option("--host", "-h", default=None, help="Host to bind")
@click.option("--port", "-p", default=None, type=int, help="Port to bind")
@click.option("--reload", is_flag=True, help="Enable auto-reload")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Start the API server."""
    import uvicorn
    from tipstream.core.config import get_settings

    settings = get_settings()
    host = host or settings.HOST
    port = port or settings.PORT

    console.print(Panel.fit(
        "[bold green]TIPSTREAM[/bold green]\n"
        f"Starting API server on {host}:{port}",
        title="Server"
    ))
    uvicorn.run("tipstream.main:app", host=host, port=port, reload=reload, log_level="info")


if __name__ == "__main__":
    cli()
