"""CLI interface using typer + rich."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from recruit_analysis.config import load_config
from recruit_analysis.errors import PermanentAnalysisError
from recruit_analysis.models.job import EntityKind
from recruit_analysis.service import AnalysisService, build_service
from recruit_analysis.store.seed import load_seed_file

app = typer.Typer(
    name="recruit-analysis",
    help="AI-assisted analysis of candidates, CVs and job applications",
    no_args_is_help=True,
)
console = Console()

SEVERITY_STYLE = {"high": "red", "medium": "yellow", "low": "dim"}


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(name)s: %(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _service(config_path: Path | None) -> AnalysisService:
    return build_service(load_config(config_path))


ConfigOption = typer.Option(None, "--config", "-c", help="Path to config.yaml")
KindOption = typer.Option(..., "--kind", "-k", help="profile-extraction | job-match | cv-feedback")


@app.command("import-entities")
def import_entities(
    file: Path = typer.Argument(help="YAML file with candidates, jobs and applications"),
    config_path: Path = ConfigOption,
) -> None:
    """Load candidates, job postings and applications into the store."""
    if not file.exists():
        console.print(f"[red]File not found: {file}[/red]")
        raise typer.Exit(1)
    service = _service(config_path)
    counts = load_seed_file(file, service.store)
    console.print(
        f"[green]Imported {counts['candidates']} candidate(s), {counts['jobs']} job(s), "
        f"{counts['applications']} application(s)[/green]"
    )


@app.command()
def enqueue(
    entity_id: str = typer.Argument(help="Candidate id, or application id for job-match"),
    kind: EntityKind = KindOption,
    config_path: Path = ConfigOption,
) -> None:
    """Queue an analysis for a worker to pick up."""
    service = _service(config_path)
    job_id, created = asyncio.run(service.request_analysis(entity_id, kind))
    if created:
        console.print(f"[green]Queued job {job_id}[/green]")
    else:
        console.print(f"[yellow]Already in flight: job {job_id}[/yellow]")


@app.command()
def analyze(
    entity_id: str = typer.Argument(help="Candidate id, or application id for job-match"),
    kind: EntityKind = KindOption,
    config_path: Path = ConfigOption,
) -> None:
    """Run one analysis inline, bypassing the queue."""
    service = _service(config_path)
    with console.status(f"Running {kind.value} analysis for {entity_id}..."):
        try:
            run = asyncio.run(service.orchestrator.run_analysis(entity_id, kind))
        except PermanentAnalysisError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(1)

    _print_result(run.result, asyncio.run(service.store.get_derived_fields(entity_id, kind)))
    tokens = service.llm.get_token_summary()
    console.print(
        f"[dim]{run.outcome} after {len(run.attempts)} attempt(s), "
        f"{run.elapsed_seconds:.1f}s, tokens in/out {tokens['input']}/{tokens['output']}[/dim]"
    )


@app.command()
def work(
    once: bool = typer.Option(False, "--once", help="Drain ready jobs and exit"),
    concurrency: int = typer.Option(None, "--concurrency", "-n", help="Number of workers"),
    config_path: Path = ConfigOption,
) -> None:
    """Run the worker pool."""
    service = _service(config_path)
    pool = service.worker_pool(concurrency)

    if once:
        processed = asyncio.run(pool.run_until_idle())
        console.print(f"[green]Processed {processed} job(s)[/green]")
        return

    console.print(f"[bold]Worker pool running ({pool.concurrency} workers). Ctrl+C to stop.[/bold]")
    try:
        asyncio.run(pool.run())
    except KeyboardInterrupt:
        console.print("[yellow]Stopped[/yellow]")


@app.command("queue-stats")
def queue_stats(config_path: Path = ConfigOption) -> None:
    """Show job counts per status."""
    service = _service(config_path)
    stats = service.queue.stats_sync()
    table = Table(title="Analysis jobs")
    table.add_column("Status")
    table.add_column("Jobs", justify="right")
    for status, count in stats.items():
        table.add_row(status, str(count))
    console.print(table)


@app.command()
def cleanup(config_path: Path = ConfigOption) -> None:
    """Re-queue stalled jobs and delete old finished ones."""
    service = _service(config_path)
    queue_config = service.config.queue
    stalled = service.queue.recover_stalled_sync(queue_config.stalled_after)
    purged = service.queue.purge_finished_sync(queue_config.finished_retention)
    console.print(f"[green]Re-queued {stalled} stalled job(s), purged {purged} finished job(s)[/green]")


@app.command("cache-stats")
def cache_stats(config_path: Path = ConfigOption) -> None:
    """Show response cache statistics."""
    service = _service(config_path)
    stats = service.cache.stats()
    console.print(
        f"Cached responses: {stats['total']} (active {stats['active']}, expired {stats['expired']})"
    )


@app.command("cache-clear")
def cache_clear(config_path: Path = ConfigOption) -> None:
    """Delete every cached response."""
    service = _service(config_path)
    deleted = service.cache.clear()
    console.print(f"[green]Deleted {deleted} cached response(s)[/green]")


@app.command()
def runs(
    entity_id: str = typer.Option(None, "--entity", "-e", help="Only runs for this entity"),
    limit: int = typer.Option(20, "--limit", "-l", help="Number of runs to show"),
    config_path: Path = ConfigOption,
) -> None:
    """Show recent analysis runs."""
    service = _service(config_path)
    logs = service.run_log.get_logs(entity_id=entity_id, limit=limit)
    if not logs:
        console.print("[yellow]No runs recorded.[/yellow]")
        return

    table = Table(title="Analysis runs")
    for column in ("Time", "Entity", "Kind", "Outcome", "Attempts", "Score", "Elapsed"):
        table.add_column(column)
    for log in logs:
        outcome_style = "green" if log.outcome == "valid" else "yellow" if log.success else "red"
        table.add_row(
            log.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            log.entity_id,
            log.entity_kind,
            f"[{outcome_style}]{log.outcome}[/{outcome_style}]",
            f"{log.attempts} ({log.failed_attempts} failed)",
            "-" if log.score is None else str(log.score),
            f"{log.elapsed_seconds:.1f}s",
        )
    console.print(table)

    stats = service.run_log.get_stats()
    console.print(
        f"[dim]{stats['total_runs']} runs, success rate {stats['success_rate']:.0f}%, "
        f"average score {stats['avg_score'] if stats['avg_score'] is not None else '-'}[/dim]"
    )


@app.command()
def show(
    entity_id: str = typer.Argument(help="Candidate id, or application id for job-match"),
    kind: EntityKind = KindOption,
    config_path: Path = ConfigOption,
) -> None:
    """Show the stored status and latest analysis of an entity."""
    service = _service(config_path)

    async def _load():
        return await asyncio.gather(
            service.store.get_status(entity_id, kind),
            service.store.get_analysis(entity_id, kind),
            service.store.get_derived_fields(entity_id, kind),
        )

    status, result, derived = asyncio.run(_load())
    if status is None and result is None:
        console.print(f"[yellow]No analysis recorded for {entity_id} ({kind.value})[/yellow]")
        raise typer.Exit(1)

    if status is not None:
        state, error = status
        console.print(f"Status: [bold]{state.value}[/bold]" + (f" ({error})" if error else ""))
    if result is not None:
        _print_result(result, derived)


def _print_result(result, derived: dict | None) -> None:
    summary = result.summary
    breakdown = " | ".join(f"{k}: {v}" for k, v in summary.breakdown.items())
    body = f"[bold]Score: {summary.score}[/bold]\n{breakdown}"
    if summary.narrative:
        body += f"\n\n{summary.narrative}"
    console.print(Panel(body, title=f"{result.kind.value} ({result.analyzed_at:%Y-%m-%d %H:%M})"))

    if result.alert_signals:
        console.print("\n[bold]Alerts:[/bold]")
        for alert in result.alert_signals:
            style = SEVERITY_STYLE[alert.severity]
            console.print(f"  [{style}]{alert.severity:<6}[/{style}] {alert.category}: {alert.problem}")

    if result.suggestions:
        console.print("\n[bold]Suggestions:[/bold]")
        for suggestion in result.suggestions:
            console.print(f"  - {suggestion}")

    if derived:
        console.print("\n[bold]Derived:[/bold]")
        for key, value in derived.items():
            if isinstance(value, dict) and "currency" in value:
                value = f"{value['min']}-{value['max']} {value['currency']} ({value['level']})"
            elif isinstance(value, list):
                value = "; ".join(str(v) for v in value) or "-"
            console.print(f"  {key}: {value}")


if __name__ == "__main__":
    app()
