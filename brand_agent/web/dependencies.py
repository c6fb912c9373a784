"""FastAPI dependencies for the shared pipeline."""

from typing import Annotated

from fastapi import Depends

from brand_agent.ingestion.pipeline import Pipeline, get_default_pipeline


def get_pipeline() -> Pipeline:
    """Dependency returning the process-wide pipeline.

    Scrape sessions and deferred payloads are held in memory, so every
    request must see the same pipeline instance.
    """
    return get_default_pipeline()


# Type alias for dependency injection
PipelineDep = Annotated[Pipeline, Depends(get_pipeline)]
