"""Brand Agent CLI using Typer."""

import logging
import os
from pathlib import Path

import typer
from dotenv import load_dotenv

from brand_agent import __version__
from brand_agent.cli.brands import brands_app

# Load .env file from current directory or project root
_env_paths = [
    Path.cwd() / ".env",
    Path(__file__).parent.parent.parent / ".env",
]
for _env_path in _env_paths:
    if _env_path.exists():
        load_dotenv(_env_path)
        break

app = typer.Typer(
    name="brand-agent",
    help="Brand Agent - scrape brand pages and save provenance-checked brand records",
    add_completion=False,
)
app.add_typer(brands_app, name="brands")

_API_KEYS = ("FIRECRAWL_API_KEY", "HUNTER_API_KEY", "CATALOG_API_KEY", "NOTION_API_KEY")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", "-h", help="Host to bind to"),
    port: int = typer.Option(8000, "--port", "-p", help="Port to bind to"),
    reload: bool = typer.Option(
        False, "--reload", "-r", help="Enable auto-reload for development"
    ),
) -> None:
    """Start the Brand Agent API server."""
    import uvicorn

    typer.echo(f"Starting Brand Agent on http://{host}:{port}")
    typer.echo("Press Ctrl+C to stop the server")
    typer.echo("")

    uvicorn.run(
        "brand_agent.web.app:app",
        host=host,
        port=port,
        reload=reload,
    )


@app.command()
def init_db() -> None:
    """Initialize the database (create tables)."""
    from brand_agent.db.engine import create_db_engine
    from brand_agent.db.engine import init_db as db_init
    from brand_agent.ingestion.config import get_default_config

    config = get_default_config()
    typer.echo("Initializing database...")
    db_path = Path(config.store.database_path).expanduser() if config.store.database_path else None
    engine = create_db_engine(db_path)
    try:
        db_init(engine)
    finally:
        engine.dispose()
    typer.echo("Database initialized successfully!")


@app.command()
def version() -> None:
    """Show the Brand Agent version."""
    typer.echo(f"Brand Agent v{__version__}")


@app.command()
def check_config() -> None:
    """Show the active configuration and which API keys are set."""
    from brand_agent.ingestion.config import get_default_config

    config = get_default_config()
    typer.echo(f"Config file: {config.config_path or '(built-in defaults)'}")
    typer.echo(f"Store backend: {config.store.backend}")
    typer.echo(
        f"Brand sessions: {config.brand_sessions.max_entries} entries, "
        f"{config.brand_sessions.ttl_seconds:.0f}s TTL"
    )
    typer.echo(
        f"Deferred payloads: {config.deferred_payloads.max_entries} entries, "
        f"{config.deferred_payloads.ttl_seconds:.0f}s TTL"
    )
    for key in _API_KEYS:
        state = "set" if os.environ.get(key) else "not set"
        typer.echo(f"  {key}: {state}")


if __name__ == "__main__":
    app()
