"""Brand routes: scrape, gated save and downstream creation."""

from typing import Any

from fastapi import APIRouter, Body, HTTPException
from pydantic import BaseModel, Field

from brand_agent.core.enums import GateCode
from brand_agent.core.schema import DownstreamOutcome, SaveOutcome
from brand_agent.integrations.base import ServiceError
from brand_agent.web.dependencies import PipelineDep

router = APIRouter(prefix="/brands", tags=["brands"])

STATUS_BY_CODE: dict[GateCode, int] = {
    GateCode.INVALID_REQUEST: 400,
    GateCode.DISALLOWED_SCRAPED_FIELDS: 400,
    GateCode.SESSION_NOT_FOUND: 404,
    GateCode.URL_MISMATCH: 409,
    GateCode.VALIDATION_FAILED: 422,
    GateCode.NON_RETRYABLE_MISSING_FIELDS: 422,
    GateCode.MISSING_SAVED_SOURCE: 404,
    GateCode.INCOMPLETE_SAVED_SOURCE: 422,
    GateCode.CREATE_REJECTED: 502,
    GateCode.CREATE_ID_UNRESOLVED: 502,
}


class ScrapeRequest(BaseModel):
    url: str = Field(min_length=1)


class ProductScrapeRequest(BaseModel):
    url: str = Field(min_length=1)
    product_name: str | None = None
    brand_name: str | None = None


def _service_unavailable(e: ServiceError) -> HTTPException:
    return HTTPException(
        status_code=502,
        detail={"error": "service_error", "service": e.service, "message": str(e)},
    )


def _raise_for_outcome(outcome: SaveOutcome | DownstreamOutcome) -> None:
    if not outcome.success:
        raise HTTPException(
            status_code=STATUS_BY_CODE.get(outcome.code, 400),
            detail=outcome.model_dump(mode="json"),
        )


# ============================================================================
# JSON API Routes
# ============================================================================


@router.post("/scrape")
async def scrape_brand(body: ScrapeRequest, pipeline: PipelineDep) -> dict[str, Any]:
    """Scrape a brand page and open a session for it."""
    try:
        result = await pipeline.scraper.scrape_brand(body.url)
    except ServiceError as e:
        raise _service_unavailable(e)
    return result.to_dict()


@router.post("/products/scrape")
async def scrape_product(body: ProductScrapeRequest, pipeline: PipelineDep) -> dict[str, Any]:
    """Scrape a product page and open a product session for it."""
    try:
        session_id = await pipeline.scraper.scrape_product(
            body.url, body.product_name, body.brand_name
        )
    except ServiceError as e:
        raise _service_unavailable(e)
    return {"session_id": session_id, "source_url": body.url}


@router.post("/save")
async def save_brand(
    pipeline: PipelineDep,
    request: dict[str, Any] = Body(...),
) -> dict[str, Any]:
    """
    Save a brand record through the provenance gate.

    The body carries the session id, source URL and caller enrichment;
    scraped fields are rejected.
    """
    try:
        outcome = await pipeline.gate.save_brand(request)
    except ServiceError as e:
        raise _service_unavailable(e)
    _raise_for_outcome(outcome)
    return outcome.model_dump(mode="json")


@router.post("/{record_id}/create")
async def create_brand(record_id: str, pipeline: PipelineDep) -> dict[str, Any]:
    """Create a saved brand in the downstream catalog."""
    try:
        outcome = await pipeline.downstream.create(record_id)
    except ServiceError as e:
        raise _service_unavailable(e)
    _raise_for_outcome(outcome)
    return outcome.model_dump(mode="json")


@router.get("/sessions/{session_id}")
async def get_session(session_id: str, pipeline: PipelineDep) -> dict[str, Any]:
    """Return a live scrape session."""
    session = pipeline.sessions.get(session_id)
    if session is None:
        raise HTTPException(
            status_code=404,
            detail={
                "error": "session_not_found",
                "message": f"Session {session_id} not found or expired",
            },
        )
    return session.model_dump(mode="json", by_alias=True)
