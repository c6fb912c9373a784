"""FastAPI application factory for Brand Agent."""

from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI

from brand_agent import __version__
from brand_agent.ingestion.pipeline import close_default_pipeline

# Load .env file from project root
_project_root = Path(__file__).parent.parent.parent
_env_file = _project_root / ".env"
if _env_file.exists():
    load_dotenv(_env_file)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await close_default_pipeline()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Brand Agent",
        description="Provenance-gated ingestion of scraped brand pages",
        version=__version__,
        lifespan=lifespan,
    )

    # Include routers (import here to avoid circular imports)
    from brand_agent.web.routes import brands

    app.include_router(brands.router)

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


# Application instance
app = create_app()
