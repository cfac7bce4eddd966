"""Wine Pipeline CLI using Typer."""

import asyncio
import logging
import os
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich import print as rprint
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from wine_pipeline.core.errors import ConfigError

# Load .env file from current directory or project root
_env_paths = [
    Path.cwd() / ".env",
    Path(__file__).parent.parent.parent / ".env",
]
for _env_path in _env_paths:
    if _env_path.exists():
        load_dotenv(_env_path)
        break

console = Console()

app = typer.Typer(
    name="wine-pipeline",
    help="Wine Pipeline - wine-list enrichment and guest recommendations",
    add_completion=False,
)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _check_ai_config() -> None:
    """Display which AI providers are configured."""
    provider = os.environ.get("AI_PROVIDER", "anthropic")
    fallback = os.environ.get("AI_FALLBACK_PROVIDER")
    key_var = "OPENAI_API_KEY" if provider == "openai" else "ANTHROPIC_API_KEY"

    if os.environ.get(key_var):
        rprint(f"  AI Provider: {provider} [green](configured)[/green]")
    else:
        rprint(f"  AI Provider: {provider} [yellow](missing {key_var})[/yellow]")
    if fallback:
        rprint(f"  Fallback provider: {fallback}")


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", "-h", help="Host to bind to"),
    port: int = typer.Option(8000, "--port", "-p", help="Port to bind to"),
    reload: bool = typer.Option(
        False, "--reload", "-r", help="Enable auto-reload for development"
    ),
) -> None:
    """Start the HTTP API."""
    import uvicorn

    rprint(f"Starting Wine Pipeline on http://{host}:{port}")
    _check_ai_config()

    uvicorn.run(
        "wine_pipeline.web.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
    )


@app.command("init-db")
def init_db() -> None:
    """Initialize the database (create tables)."""
    from wine_pipeline.db.engine import init_db as db_init

    rprint("Initializing database...")
    db_init()
    rprint("[green]Database initialized successfully![/green]")


@app.command()
def ingest(
    wine_list: Path = typer.Argument(..., exists=True, dir_okay=False, help="Wine list text file"),
    restaurant: Optional[int] = typer.Option(
        None, "--restaurant", "-r", help="Also add the wines to this restaurant's list"
    ),
) -> None:
    """
    Parse a wine list into wine records.

    Examples:
        wine-pipeline ingest wines.txt
        wine-pipeline ingest wines.txt --restaurant 12
    """
    from wine_pipeline.db.engine import get_session, init_db as db_init
    from wine_pipeline.db.repositories import RestaurantWineRepository, WineRepository
    from wine_pipeline.ingestion.classifier import AIWineClassifier
    from wine_pipeline.ingestion.parser import IngestionParser
    from wine_pipeline.services.ai.client import create_client_from_env

    try:
        classifier = AIWineClassifier(create_client_from_env())
    except ConfigError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    db_init()
    text = wine_list.read_text(encoding="utf-8")

    with get_session() as session:
        parser = IngestionParser.from_config(WineRepository(session), classifier)
        with console.status("[bold blue]Parsing wine list...[/bold blue]"):
            stats = parser.parse_text(text)

        if restaurant is not None:
            listing = RestaurantWineRepository(session)
            listed = {entry.wine.id for entry in listing.list_inventory(restaurant)}
            for wine in stats.wines:
                if wine.id not in listed:
                    listing.add(restaurant, wine.id)
                    listed.add(wine.id)
            session.commit()

    table = Table(title=f"Ingested {wine_list.name}")
    table.add_column("Lines", justify="right")
    table.add_column("New", justify="right", style="green")
    table.add_column("Known", justify="right")
    table.add_column("Skipped", justify="right", style="dim")
    table.add_column("Errors", justify="right", style="red")
    table.add_row(
        str(stats.lines), str(stats.created), str(stats.duplicates),
        str(stats.skipped), str(len(stats.errors)),
    )
    console.print(table)

    for error in stats.errors:
        rprint(f"  [red]•[/red] {error}")


@app.command()
def enrich(
    limit: Optional[int] = typer.Option(None, "--limit", "-l", help="Maximum wines in this batch"),
    queue: bool = typer.Option(False, "--queue", help="Enqueue the batch for the worker instead"),
) -> None:
    """
    Enrich wines that are not verified yet.

    Examples:
        wine-pipeline enrich --limit 10
        wine-pipeline enrich --queue
    """
    if queue:
        from wine_pipeline.enrichment.jobs import enqueue_enrichment

        try:
            job_id = asyncio.run(enqueue_enrichment(limit))
        except Exception as e:
            rprint(f"[red]Error:[/red] Failed to enqueue job: {e}")
            rprint("\nMake sure Redis is running.")
            raise typer.Exit(1)
        rprint(f"[green]Job enqueued:[/green] [bold]{job_id}[/bold]")
        return

    from wine_pipeline.db.engine import get_session, init_db as db_init
    from wine_pipeline.enrichment.batch import create_batch_processor

    db_init()
    with get_session() as session:
        try:
            processor = create_batch_processor(session)
        except ConfigError as e:
            rprint(f"[red]Error:[/red] {e}")
            raise typer.Exit(1)
        stats = asyncio.run(processor.run_batch(limit=limit))

    table = Table(title="Enrichment Batch")
    table.add_column("Processed", justify="right")
    table.add_column("Succeeded", justify="right", style="green")
    table.add_column("Failed", justify="right", style="red")
    table.add_column("Timed out", justify="right")
    table.add_column("Skipped", justify="right", style="dim")
    table.add_column("Stopped")
    table.add_row(
        str(stats.processed), str(stats.succeeded), str(stats.failed),
        str(stats.timed_out), str(stats.skipped), stats.stopped_reason.value,
    )
    console.print(table)


@app.command()
def worker(
    burst: bool = typer.Option(False, "--burst", help="Run in burst mode (exit when queue empty)"),
) -> None:
    """Start the background enrichment worker (includes the daily run)."""
    from arq import run_worker

    from wine_pipeline.enrichment.jobs import WorkerSettings

    rprint("[bold]Starting enrichment worker...[/bold]")
    rprint("Press Ctrl+C to stop\n")
    run_worker(WorkerSettings, burst=burst)


@app.command("job-status")
def job_status(job_id: str = typer.Argument(..., help="Job ID")) -> None:
    """Show the status of a queued enrichment job."""
    from wine_pipeline.enrichment.jobs import get_job_status

    info = asyncio.run(get_job_status(job_id))
    rprint(f"Job [bold]{job_id}[/bold]: {info['status']}")
    if info["result"]:
        rprint(info["result"])


@app.command()
def recommend(
    description: str = typer.Argument(..., help="What the guest is looking for"),
    restaurant: int = typer.Option(..., "--restaurant", "-r", help="Restaurant ID"),
) -> None:
    """
    Recommend wines from a restaurant's list.

    Examples:
        wine-pipeline recommend "something bold and red" --restaurant 12
    """
    from wine_pipeline.db.engine import get_session
    from wine_pipeline.db.repositories import (
        RecommendationLogRepository,
        RestaurantWineRepository,
    )
    from wine_pipeline.recommendation.engine import RecommendationEngine
    from wine_pipeline.recommendation.preferences import AIPreferenceParser
    from wine_pipeline.services.ai.client import create_client_from_env

    try:
        parser = AIPreferenceParser(create_client_from_env())
    except ConfigError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    preference = parser.parse(description)
    with get_session() as session:
        inventory = RestaurantWineRepository(session).list_inventory(restaurant)
        engine = RecommendationEngine(log_repository=RecommendationLogRepository(session))
        result = engine.recommend(
            inventory, preference, restaurant_id=restaurant, search_query=description
        )

    if not result.recommendations:
        rprint(f"[yellow]No recommendations[/yellow] ({result.total_inventory_count} wine(s) listed)")
        return

    table = Table(title=f"Recommendations ({result.processing_time_ms} ms)")
    table.add_column("Wine", style="bold")
    table.add_column("Price")
    table.add_column("Score", justify="right")
    table.add_column("Type")
    table.add_column("Notes")
    for match in result.recommendations:
        notes = match.description
        if match.missed_criteria:
            notes += f"\n[dim]misses: {', '.join(match.missed_criteria)}[/dim]"
        label = " ".join(p for p in (match.producer, match.name, match.vintage) if p)
        table.add_row(label, match.price, f"{match.match_score:.2f}", match.match_type.value, notes)
    console.print(table)


@app.command()
def stats() -> None:
    """Show verification counts and today's budget."""
    from wine_pipeline.db.engine import get_session, init_db as db_init
    from wine_pipeline.db.repositories import WineRepository
    from wine_pipeline.enrichment.budget import get_default_budget

    db_init()
    with get_session() as session:
        counts = WineRepository(session).verification_stats()

    table = Table(title="Wine Verification")
    table.add_column("Status", style="bold")
    table.add_column("Count", justify="right")
    table.add_row("verified", str(counts.verified))
    table.add_row("unverified", str(counts.unverified))
    table.add_row("pending", str(counts.pending))
    table.add_row("failed", str(counts.failed))
    table.add_row("total", str(counts.total))
    console.print(table)
    rprint(f"Verification rate: [bold]{counts.verification_rate}%[/bold]")

    budget = get_default_budget().snapshot()
    rprint(f"Budget today: {budget.calls}/{budget.ceiling} calls used")


@app.command()
def version() -> None:
    """Show the Wine Pipeline version."""
    from wine_pipeline import __version__

    rprint(f"Wine Pipeline v{__version__}")


if __name__ == "__main__":
    app()
