"""Wiring of the planning store into the Flask application."""
from __future__ import annotations

from pathlib import Path

import click
from flask import Flask, current_app

from adapters.repository import AsyncPlanningRepository, PlanningRepository
from services.planning_service import PlanningService
from services.reconciliation import ReconciliationStore

EXTENSION_KEY = "planning"


def init_app(app: Flask) -> None:
    """Build the repository, cache and service once per application."""
    initialize_database(app, drop_existing=False)
    app.cli.add_command(init_db_command)


def get_service() -> PlanningService:
    return current_app.extensions[EXTENSION_KEY]


def initialize_database(app: Flask, *, drop_existing: bool) -> None:
    database_path = Path(app.config["DATABASE"])
    if drop_existing and database_path.exists():
        database_path.unlink()
    repository = PlanningRepository(database_path)
    store = ReconciliationStore(AsyncPlanningRepository(repository))
    app.extensions[EXTENSION_KEY] = PlanningService(store, app.config["PLANNING"])


@click.command("init-db")
@click.option("--force", is_flag=True, help="Recreate the planning database from scratch.")
def init_db_command(force: bool) -> None:
    """Create the agent_plannings table."""
    app = current_app._get_current_object()  # type: ignore[attr-defined]
    initialize_database(app, drop_existing=force)
    click.echo("Database initialized.")
