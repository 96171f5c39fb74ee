#!/usr/bin/env python3
"""Command Line Interface for the WhatsApp Property Lead Engine.

Usage:
    cd src
    python cli.py server                      # Start API server
    python cli.py info                        # Show configuration
    python cli.py leads --min-score 80        # List stored leads
    python cli.py properties list --city Accra
    python cli.py properties import listings.json
    python cli.py properties archive ACC-APA-1234-X7QK
    python cli.py simulate 233200000000 "2 bed apartment in Accra under 500k"
"""
from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
import uvicorn

from core.config import get_settings
from core.exceptions import LeadEngineError
from core.logging_config import get_logger, setup_logging

LOGGER = get_logger(__name__)

app = typer.Typer(help="WhatsApp Property Lead Engine CLI")
properties_app = typer.Typer(help="Property catalog commands")
app.add_typer(properties_app, name="properties")


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
) -> None:
    """WhatsApp Property Lead Engine - conversational lead capture and CRM sync."""
    settings = get_settings()
    log_level = "DEBUG" if verbose else settings.log_level
    setup_logging(level=log_level, json_format=settings.log_format == "json")


# =============================================================================
# Server Commands
# =============================================================================


@app.command("server")
def run_server(
    host: str = typer.Option("0.0.0.0", help="Host to bind to"),
    port: int = typer.Option(8000, help="Port to bind to"),
    reload: bool = typer.Option(False, help="Enable auto-reload for development"),
) -> None:
    """Start the API server."""
    typer.echo(f"Starting API server on {host}:{port}...")
    uvicorn.run("api.app:app", host=host, port=port, reload=reload)


@app.command("simulate")
def simulate_message(
    sender: str = typer.Argument(..., help="Sender phone number"),
    text: str = typer.Argument(..., help="Message text"),
) -> None:
    """Run one message through the pipeline locally and print the outcome."""
    from api.deps import get_pipeline
    from outreach.inbound import InboundMessage

    result = asyncio.run(get_pipeline().handle_message(InboundMessage(sender=sender, text=text)))
    typer.echo(json.dumps(result.to_dict(), indent=2))


# =============================================================================
# Lead Commands
# =============================================================================


@app.command("leads")
def list_leads(
    status: Optional[str] = typer.Option(None, help="pending_sync, synced or sync_failed"),
    min_score: Optional[int] = typer.Option(None, "--min-score", help="Minimum score, inclusive"),
    start_date: Optional[str] = typer.Option(None, "--start-date", help="createdAt >= this ISO date"),
    end_date: Optional[str] = typer.Option(None, "--end-date", help="createdAt <= this ISO date"),
) -> None:
    """List stored leads."""
    from api.deps import get_lead_store

    try:
        leads = asyncio.run(
            get_lead_store().list_leads(
                status=status,
                min_score=min_score,
                start_date=start_date,
                end_date=end_date,
            )
        )
    except LeadEngineError as e:
        typer.secho(f"✗ {e}", fg="red")
        raise typer.Exit(1)

    if not leads:
        typer.echo("No leads found.")
        return

    for lead in leads:
        name = lead.details.name or "-"
        typer.echo(f"  {lead.id}  score={lead.score:<3}  {lead.status.value:<12}  {name}  {lead.created_at}")
    typer.echo(f"Total: {len(leads)}")


# =============================================================================
# Property Commands
# =============================================================================


@properties_app.command("list")
def list_properties(
    status: Optional[str] = typer.Option(None, help="active or archived"),
    city: Optional[str] = typer.Option(None),
    type: Optional[str] = typer.Option(None, "--type"),
) -> None:
    """List catalog properties."""
    from api.deps import get_property_store

    listings = asyncio.run(get_property_store().list_properties(status=status, city=city, type=type))
    if not listings:
        typer.echo("No properties found.")
        return
    for listing in listings:
        typer.echo(f"  {listing.id}  [{listing.status}]  {listing.name} - {listing.location}, {listing.city}")
    typer.echo(f"Total: {len(listings)}")


@properties_app.command("import")
def import_properties(
    file_path: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON array of listings"),
) -> None:
    """Add listings from a JSON file."""
    from api.deps import get_property_store

    payloads = json.loads(file_path.read_text(encoding="utf-8"))
    if not isinstance(payloads, list):
        typer.secho("✗ Expected a JSON array of listings", fg="red")
        raise typer.Exit(1)

    try:
        added = asyncio.run(get_property_store().import_many(payloads))
    except LeadEngineError as e:
        typer.secho(f"✗ Import failed: {e}", fg="red")
        raise typer.Exit(1)
    typer.secho(f"✓ Imported {len(added)} properties", fg="green")


@properties_app.command("archive")
def archive_property(property_id: str = typer.Argument(..., help="Property id")) -> None:
    """Archive a listing so it no longer matches."""
    from api.deps import get_property_store

    listing = asyncio.run(get_property_store().archive(property_id))
    if listing is None:
        typer.secho(f"✗ Property {property_id} not found", fg="red")
        raise typer.Exit(1)
    typer.secho(f"✓ Archived {listing.id}", fg="green")


# =============================================================================
# Utility Commands
# =============================================================================


@app.command("info")
def show_info() -> None:
    """Show application configuration info."""
    settings = get_settings()
    typer.echo("WhatsApp Property Lead Engine Configuration:")
    typer.echo(f"  Environment: {settings.environment}")
    typer.echo(f"  Dry Run: {settings.dry_run}")
    typer.echo(f"  Log Level: {settings.log_level}")
    typer.echo(f"  Data Dir: {settings.data_dir}")
    typer.echo(f"  Currency: {settings.currency_code}")
    typer.echo(f"  WhatsApp Configured: {settings.is_whatsapp_enabled()}")
    typer.echo(f"  CRM Configured: {settings.is_crm_enabled()}")
    typer.echo(f"  LLM Configured: {settings.is_llm_enabled()}")
    typer.echo(f"  Admin API Enabled: {settings.is_admin_enabled()}")
    typer.echo(f"  Dedupe Leads By Sender: {settings.lead_dedupe_by_sender}")


if __name__ == "__main__":
    app()
