"""
Command-line interface for the lastseen tracker.

Provides commands to run an update against the sheet, serve the HTTP
trigger, and check single pages or profiles.
"""

import asyncio
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from lastseen.config import get_settings
from lastseen.models import LastSeenResult, ResultStatus
from lastseen.utils.logging import setup_logging

app = typer.Typer(
    name="lastseen",
    help="Track when profiles were last seen and write the results to Google Sheets",
    add_completion=False,
)
console = Console()

_STATUS_STYLES = {
    ResultStatus.FORMATTED: "green",
    ResultStatus.NO_DATES: "yellow",
    ResultStatus.FETCH_ERROR: "red",
}


def _results_table(identifiers: List[str], results: List[LastSeenResult]) -> Table:
    table = Table(title="Last seen")
    table.add_column("Row", justify="right", style="dim")
    table.add_column("Identifier", style="cyan")
    table.add_column("Result")
    table.add_column("Latest timestamp", style="dim")

    start_row = get_settings().start_row
    for offset, (identifier, result) in enumerate(zip(identifiers, results)):
        style = _STATUS_STYLES[result.status]
        table.add_row(
            str(start_row + offset),
            identifier,
            f"[{style}]{result.render()}[/{style}]",
            result.latest.isoformat(sep=" ") if result.latest else "",
        )
    return table


@app.command()
def run():
    """Run one update: read identifiers, check profiles, write results."""

    async def _run():
        from lastseen.pipeline import create_pipeline

        pipeline = create_pipeline()
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            progress.add_task("Checking profiles...", total=None)
            report = await pipeline.run()

        console.print(_results_table(report.identifiers, report.results))
        console.print(
            f"[green]✓[/green] Wrote {report.rows_written} rows "
            f"({report.formatted_count} seen, {report.no_dates_count} without dates, "
            f"{report.error_count} errors)"
        )

    try:
        asyncio.run(_run())
    except Exception as e:
        console.print(f"[red]✗[/red] Run failed: {e}")
        raise typer.Exit(1)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port (defaults to $PORT or 3000)"),
):
    """Start the HTTP trigger server."""
    from lastseen.server import serve as serve_app

    serve_app(host=host, port=port)


@app.command()
def check(
    page_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Saved page text"),
    now: Optional[datetime] = typer.Option(
        None,
        "--now",
        help="Reference time (defaults to the current time)",
    ),
):
    """Extract timestamps from a saved page and print the result."""
    from lastseen.scraper.classifier import classify
    from lastseen.scraper.extractor import extract_timestamps

    settings = get_settings()
    text = page_file.read_text(encoding="utf-8", errors="replace")
    timestamps = extract_timestamps(
        text,
        max_scan_chars=settings.max_scan_chars,
        max_matches=settings.max_matches,
    )
    result = classify(timestamps, now or datetime.now())

    console.print(f"Found {len(timestamps)} timestamps")
    if result.latest:
        console.print(f"Latest: {result.latest.isoformat(sep=' ')}")
    console.print(f"[bold]{result.render()}[/bold]")


@app.command()
def probe(
    identifier: str = typer.Argument(..., help="Profile identifier"),
):
    """Fetch one profile with the browser and print its result."""

    async def _probe() -> LastSeenResult:
        from lastseen.orchestrator import BatchOrchestrator
        from lastseen.scraper.fetcher import create_profile_fetcher

        orchestrator = BatchOrchestrator(create_profile_fetcher(), max_concurrency=1)
        results = await orchestrator.run([identifier])
        return results[0]

    result = asyncio.run(_probe())
    console.print(_results_table([identifier], [result]))
    if result.status == ResultStatus.FETCH_ERROR:
        console.print(f"[red]Error:[/red] {result.error_message}")
        raise typer.Exit(1)


@app.callback()
def main(
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
):
    """lastseen - Profile activity tracker."""
    log_level = "DEBUG" if debug else None
    setup_logging(log_level=log_level)


if __name__ == "__main__":
    app()
