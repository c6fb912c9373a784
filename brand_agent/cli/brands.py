"""
Brand CLI Commands
==================

CLI commands for scraping brand pages, saving them through the
provenance gate and validating records offline.

Scrape sessions live in process memory, so a save must run in the same
process as its scrape: ``ingest`` does scrape, save and (optionally)
downstream creation in one go. Use the API server for multi-step flows.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Optional

import typer
from pydantic import ValidationError
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from brand_agent.core.enums import Severity
from brand_agent.core.schema import (
    BrandRecord,
    ContactDetails,
    SaveOutcome,
    ScrapeSession,
    ValidationResult,
)
from brand_agent.ingestion.pipeline import build_pipeline
from brand_agent.ingestion.validation import validate_against_session
from brand_agent.integrations.base import ServiceError

console = Console()
brands_app = typer.Typer(help="Brand scraping and saving commands")

_CONTACT_LABELS = (
    ("street", "Street"),
    ("city", "City"),
    ("zip", "Zip"),
    ("phone", "Phone"),
    ("email", "Email"),
    ("website", "Website"),
    ("facebook", "Facebook"),
    ("instagram", "Instagram"),
    ("pinterest", "Pinterest"),
    ("lat", "Latitude"),
    ("lng", "Longitude"),
    ("contact_name", "Contact"),
    ("contact_job_title", "Job title"),
)


def _display_contacts(contact: ContactDetails) -> None:
    table = Table(title="Contact Details")
    table.add_column("Field", style="bold")
    table.add_column("Value")
    for key, label in _CONTACT_LABELS:
        value = getattr(contact, key)
        table.add_row(label, str(value) if value is not None else "[dim]-[/dim]")
    console.print(table)


def _display_validation(result: ValidationResult) -> None:
    color = "green" if result.valid else "red"
    rprint(f"\n[bold {color}]{result.summary}[/bold {color}]")
    if not result.issues:
        return

    table = Table(title="Validation Issues")
    table.add_column("Severity")
    table.add_column("Field", style="bold")
    table.add_column("Message")
    for issue in result.issues:
        severity = (
            "[red]error[/red]" if issue.severity == Severity.ERROR else "[yellow]warning[/yellow]"
        )
        table.add_row(severity, issue.field, issue.message)
    console.print(table)


def _display_outcome(outcome: SaveOutcome) -> None:
    color = "green" if outcome.success else "red"
    rprint(f"\n[bold {color}]{outcome.code.value}[/bold {color}] {outcome.message}")
    if outcome.record_id:
        rprint(f"  Record: {outcome.record_id}")
    if outcome.disallowed_fields:
        rprint(f"  Disallowed fields: {', '.join(outcome.disallowed_fields)}")
    for error in outcome.request_errors:
        rprint(f"  [red]•[/red] {error}")
    if outcome.non_retryable_missing_fields:
        rprint(f"  Missing (non-retryable): {', '.join(outcome.non_retryable_missing_fields)}")
    if outcome.retryable_missing_fields:
        rprint(f"  Missing (retryable): {', '.join(outcome.retryable_missing_fields)}")
    if outcome.enrichment and outcome.enrichment.contacts:
        rprint(
            f"  Contacts: {len(outcome.enrichment.contacts)} "
            f"({outcome.enrichment.source.value})"
        )
    if outcome.validation is not None and outcome.validation.issues:
        _display_validation(outcome.validation)


@brands_app.command("scrape")
def scrape_brand(
    url: str = typer.Argument(..., help="Brand page URL"),
    as_json: bool = typer.Option(False, "--json", help="Print the full extraction as JSON"),
) -> None:
    """
    Scrape a brand page and show what was extracted.

    Examples:
        brand-agent brands scrape https://www.architonic.com/en/b/acme/3100123/
    """

    async def _run() -> Any:
        pipeline = build_pipeline()
        try:
            return await pipeline.scraper.scrape_brand(url)
        finally:
            await pipeline.aclose()

    try:
        with console.status("[bold blue]Scraping...[/bold blue]"):
            result = asyncio.run(_run())
    except ServiceError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if as_json:
        console.print_json(json.dumps(result.to_dict(), default=str))
        return

    rprint(f"\n[bold]Session:[/bold] {result.session_id}")
    _display_contacts(result.contact_details)
    rprint(f"\nDistributors: {len(result.distributors)}")
    rprint(f"Catalog links: {len(result.catalog_links)}")
    images = result.image_urls
    rprint(f"Logo: {images.logo_url or '-'}")
    rprint(f"Header image: {images.header_image_url or '-'}")
    rprint(f"About image: {images.about_image_url or '-'}")


@brands_app.command("ingest")
def ingest_brand(
    url: str = typer.Argument(..., help="Brand page URL"),
    name: str = typer.Option(..., "--name", "-n", help="Brand name"),
    country_code: Optional[str] = typer.Option(None, "--country-code", help="ISO country code"),
    country_name: Optional[str] = typer.Option(None, "--country-name", help="Country name"),
    company_name: Optional[str] = typer.Option(None, "--company", help="Official company name"),
    product_type: list[str] = typer.Option(
        [], "--product-type", "-t", help="Product type (repeatable)"
    ),
    contact_email: Optional[str] = typer.Option(None, "--contact-email", help="Contact email"),
    contact_name: Optional[str] = typer.Option(None, "--contact-name", help="Contact name"),
    create: bool = typer.Option(
        False, "--create", help="Also create the brand in the downstream catalog"
    ),
) -> None:
    """
    Scrape a brand page and save it through the provenance gate.

    Examples:
        brand-agent brands ingest https://www.architonic.com/en/b/acme/3100123/ \\
            --name Acme --country-code IT -t furniture --create
    """
    request: dict[str, Any] = {"name": name, "source_url": url, "product_type": product_type}
    optional = {
        "country_code": country_code,
        "country_name": country_name,
        "company_name": company_name,
        "contact_email": contact_email,
        "contact_name": contact_name,
    }
    request.update({key: value for key, value in optional.items() if value is not None})

    async def _run() -> tuple[SaveOutcome, Any]:
        pipeline = build_pipeline()
        try:
            scraped = await pipeline.scraper.scrape_brand(url)
            outcome = await pipeline.gate.save_brand(
                {**request, "session_id": scraped.session_id}
            )
            created = None
            if create and outcome.success and outcome.record_id:
                created = await pipeline.downstream.create(outcome.record_id)
            return outcome, created
        finally:
            await pipeline.aclose()

    try:
        with console.status("[bold blue]Ingesting...[/bold blue]"):
            outcome, created = asyncio.run(_run())
    except ServiceError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    _display_outcome(outcome)
    if created is not None:
        color = "green" if created.success else "red"
        rprint(f"\n[bold {color}]{created.code.value}[/bold {color}] {created.message}")
        if created.brand_id:
            rprint(f"  Catalog ID: {created.brand_id}")

    if not outcome.success or (created is not None and not created.success):
        raise typer.Exit(1)


@brands_app.command("validate")
def validate_file(
    path: Path = typer.Argument(..., help="JSON file with 'session' and 'record' objects"),
) -> None:
    """
    Validate a proposed record against a saved scrape session, offline.

    Examples:
        brand-agent brands validate bundle.json
    """
    if not path.exists():
        rprint(f"[red]Error:[/red] File not found: {path}")
        raise typer.Exit(1)

    try:
        data = json.loads(path.read_text())
        session = ScrapeSession.model_validate(data["session"])
        record = BrandRecord.model_validate(data["record"])
    except (ValueError, KeyError, TypeError) as e:
        # pydantic's ValidationError is a ValueError
        message = e.errors()[0]["msg"] if isinstance(e, ValidationError) else str(e)
        rprint(f"[red]Error:[/red] Invalid bundle: {message}")
        raise typer.Exit(1)

    result = validate_against_session(session, record)
    _display_validation(result)
    if not result.valid:
        raise typer.Exit(1)
