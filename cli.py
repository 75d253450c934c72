"""
Food ordering CLI.

Runs the batch jobs and reports without the HTTP server:

    python cli.py reset --seed 42
    python cli.py migrate
    python cli.py customer-report Plachutta --mode mongo
"""

from contextlib import contextmanager
from enum import Enum
from typing import Iterator, Optional

import typer
from rich.console import Console
from rich.table import Table

from shared.config.constants import StoreMode
from shared.config.logging import setup_logging
from shared.config.settings import settings
from shared.infrastructure.correlation import job_context
from shared.infrastructure.db import create_db_engine, create_session_factory, get_db_context
from shared.infrastructure.mongo import create_mongo_client
from shared.utils.exceptions import AppException
from shared.utils.health import HealthStatus, overall_status
from rest_api.routers.public.health import check_mongo_health, check_sql_health, detect_active_mode
from rest_api.services.domain import MongoOrderStore, ReportService, SqlOrderStore
from rest_api.services.import_reset import import_reset
from rest_api.services.migration import migrate_sql_to_mongo

app = typer.Typer(
    name="food-ordering",
    help="Dual-store food ordering demo CLI",
    add_completion=False,
)
console = Console()


class Mode(str, Enum):
    """Store a report reads from."""

    SQL = StoreMode.SQL
    MONGO = StoreMode.MONGO


@contextmanager
def stores() -> Iterator[tuple]:
    """Open a session and the document database; close both afterwards."""
    engine = create_db_engine()
    client = create_mongo_client()
    try:
        with get_db_context(create_session_factory(engine)) as db:
            yield engine, db, client[settings.mongodb_db]
    finally:
        client.close()
        engine.dispose()


def _counts_table(title: str, counts: dict[str, int]) -> Table:
    table = Table(title=title)
    table.add_column("Entity", style="cyan")
    table.add_column("Count", justify="right")
    for name, count in counts.items():
        table.add_row(name, str(count))
    return table


# =============================================================================
# Data Commands
# =============================================================================

@app.command()
def reset(
    seed: Optional[int] = typer.Option(None, help="Seed for a repeatable dataset (defaults to SEED)"),
):
    """Reset the relational store to demo data and clear the document store."""
    setup_logging()
    console.print("[blue]Resetting demo data...[/blue]")

    try:
        with job_context("reset"), stores() as (_, db, mongo_db):
            inserted = import_reset(db, mongo_db, seed=seed if seed is not None else settings.seed)
    except AppException as e:
        console.print(f"[red]✗ Reset failed: {e}[/red]")
        raise typer.Exit(1)

    console.print(_counts_table("Inserted", inserted))
    console.print("[green]✓ Reset complete[/green]")


@app.command()
def migrate():
    """Copy the relational data into the document store."""
    setup_logging()
    console.print("[blue]Migrating relational data to the document store...[/blue]")

    with job_context("migrate"), stores() as (_, db, mongo_db):
        migrated = migrate_sql_to_mongo(db, mongo_db)

    console.print(_counts_table("Migrated", migrated))
    console.print("[green]✓ Migration complete[/green]")


# =============================================================================
# Reports
# =============================================================================

def _report_service(mode: Mode, db, mongo_db) -> ReportService:
    if mode is Mode.MONGO:
        return ReportService(MongoOrderStore(mongo_db))
    return ReportService(SqlOrderStore(db))


@app.command()
def customer_report(
    restaurant: str = typer.Argument(..., help="Restaurant name"),
    mode: Mode = typer.Option(Mode.SQL, case_sensitive=False, help="Store to read"),
    date_from: Optional[str] = typer.Option(None, "--from", help="ISO start date"),
    date_to: Optional[str] = typer.Option(None, "--to", help="ISO end date"),
):
    """Show the restaurant report."""
    with job_context("customer-report", mode=mode.value), stores() as (_, db, mongo_db):
        try:
            report = _report_service(mode, db, mongo_db).customer_report(restaurant, date_from, date_to)
        except AppException as e:
            console.print(f"[red]✗ {e}[/red]")
            raise typer.Exit(1)

    summary = report.summary
    console.print(f"[bold]{report.restaurant_name}[/bold] ({report.mode})")
    console.print(
        f"Orders: {summary.total_orders}  Revenue: {summary.total_revenue}  "
        f"Avg: {summary.avg_order_value}  Paid: {summary.paid_orders}  "
        f"Payment rate: {summary.payment_rate}%"
    )

    table = Table(title="Top items")
    table.add_column("Item", style="cyan")
    table.add_column("Quantity", justify="right")
    table.add_column("Revenue", justify="right")
    for item in report.breakdown.top_items:
        table.add_row(item.name or "-", str(item.quantity), item.revenue)
    console.print(table)


@app.command()
def rider_report(
    rider_email: str = typer.Argument(..., help="Rider email"),
    mode: Mode = typer.Option(Mode.SQL, case_sensitive=False, help="Store to read"),
    date_from: Optional[str] = typer.Option(None, "--from", help="ISO start date"),
    date_to: Optional[str] = typer.Option(None, "--to", help="ISO end date"),
    delivery_status: Optional[str] = typer.Option(None, help="Only deliveries in this status"),
):
    """Show the rider report."""
    with job_context("rider-report", mode=mode.value), stores() as (_, db, mongo_db):
        try:
            report = _report_service(mode, db, mongo_db).rider_report(
                rider_email, date_from, date_to, delivery_status
            )
        except AppException as e:
            console.print(f"[red]✗ {e}[/red]")
            raise typer.Exit(1)

    summary = report.summary
    console.print(f"[bold]{report.rider_email}[/bold] ({report.mode})")
    console.print(
        f"Deliveries: {summary.total_deliveries}  Revenue: {summary.total_revenue}  "
        f"Completion rate: {summary.completion_rate}%"
    )

    table = Table(title="By restaurant")
    table.add_column("Restaurant", style="cyan")
    table.add_column("Deliveries", justify="right")
    for row in report.breakdown.by_restaurant:
        table.add_row(row.restaurant or "-", str(row.count))
    console.print(table)


# =============================================================================
# Health
# =============================================================================

@app.command()
def health():
    """Check connectivity of both stores and the active mode."""
    engine = create_db_engine()
    client = create_mongo_client()
    try:
        sql_result = check_sql_health(engine)
        mongo_result = check_mongo_health(client[settings.mongodb_db])
    finally:
        client.close()
        engine.dispose()

    table = Table(title="Store Health")
    table.add_column("Store", style="cyan")
    table.add_column("Status")
    table.add_column("Latency", justify="right")
    table.add_column("Error")

    for result in (sql_result, mongo_result):
        status = "[green]✓ healthy[/green]" if result.healthy else "[red]✗ unhealthy[/red]"
        latency = f"{result.latency_ms:.1f} ms" if result.latency_ms is not None else "-"
        table.add_row(result.component, status, latency, result.error or "")

    console.print(table)
    active = detect_active_mode(mongo_result.details) if mongo_result.healthy else StoreMode.SQL
    console.print(f"Active mode: [bold]{active}[/bold]")

    if overall_status([sql_result, mongo_result]) != HealthStatus.HEALTHY:
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
