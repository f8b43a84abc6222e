"""
Command line interface for the charity indexer.
"""

import asyncio
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from charity_indexer.core.config import settings
from charity_indexer.core.database import init_database, close_database, DatabaseManager
from charity_indexer.core.exceptions import CharityIndexerException
from charity_indexer.core.logging import setup_logging, get_logger
from charity_indexer.indexer.checkpoint import CheckpointStore
from charity_indexer.indexer.reconcile import reconcile_campaign_totals
from charity_indexer.indexer.sync import SyncOrchestrator
from charity_indexer.services.aptos_client import AptosEventClient

console = Console()
logger = get_logger(__name__)
app = typer.Typer(help="Charity indexer commands")


def _run(coro_factory):
    """Run an async command between database init and close."""
    async def _wrapper():
        setup_logging()
        await init_database()
        try:
            return await coro_factory()
        finally:
            await close_database()

    try:
        return asyncio.run(_wrapper())
    except CharityIndexerException as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(code=1)


@app.command("init-db")
def init_db(
    reset: bool = typer.Option(False, "--reset", help="Drop existing tables first"),
):
    """Create the indexer tables."""
    if reset and not typer.confirm("Drop all indexer tables and their data?"):
        raise typer.Abort()

    _run(lambda: DatabaseManager.create_tables(reset=reset))
    console.print("Database initialized")


@app.command("run-once")
def run_once():
    """Run a single sync pass."""
    async def _pass():
        async with AptosEventClient() as client:
            return await SyncOrchestrator(event_client=client).run_pass()

    result = _run(_pass)

    table = Table(title=f"Sync pass: {settings.indexer_processor_name}")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("previous version", str(result.previous_version))
    table.add_row("synced to version", str(result.synced_to_version))
    table.add_row("checkpoint advanced", str(result.checkpoint_advanced))
    for key, value in result.stats.as_dict().items():
        if key in ("start_time", "finish_time"):
            continue
        table.add_row(key.replace("_", " "), str(value))
    console.print(table)


@app.command()
def status():
    """Show the stored checkpoint."""
    checkpoint = _run(
        lambda: CheckpointStore().read_strict(settings.indexer_processor_name)
    )
    console.print(
        f"{checkpoint.processor_name}: version {checkpoint.version} "
        f"({checkpoint.state.value})"
    )


@app.command("reconcile-totals")
def reconcile_totals(
    dry_run: bool = typer.Option(False, "--dry-run", help="Report without writing"),
    campaign: Optional[str] = typer.Option(None, "--campaign", help="Only check this campaign id"),
):
    """Recompute campaign totals from recorded donations."""
    corrections = _run(
        lambda: reconcile_campaign_totals(dry_run=dry_run, campaign_id=campaign)
    )

    if not corrections:
        console.print("All campaign totals match their donations")
        return

    table = Table(title="Campaign total corrections" + (" (dry run)" if dry_run else ""))
    table.add_column("Campaign", style="cyan")
    table.add_column("Stored", style="red")
    table.add_column("Recomputed", style="green")
    for correction in corrections:
        table.add_row(
            correction.campaign_id,
            str(correction.stored_total),
            str(correction.recomputed_total),
        )
    console.print(table)


@app.command()
def serve():
    """Serve the HTTP trigger."""
    import uvicorn

    uvicorn.run(
        "charity_indexer.api.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    app()
