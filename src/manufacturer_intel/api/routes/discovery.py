"""Website discovery endpoints."""
from fastapi import APIRouter, Depends, Query

from ...models.requests import DiscoveryRequest
from ...models.responses import BatchDiscoveryResponse, DiscoveryResponse
from ...services.discovery import WebsiteDiscoveryPipeline
from ..dependencies import get_discovery_pipeline


router = APIRouter()


@router.post(
    "/website",
    response_model=DiscoveryResponse,
    summary="Discover the official website of one brand"
)
async def discover_website(
    request: DiscoveryRequest,
    pipeline: WebsiteDiscoveryPipeline = Depends(get_discovery_pipeline)
) -> DiscoveryResponse:
    """
    Discover by ``manufacturer_id`` (result may be persisted) or by bare
    ``brand_name`` (never persisted). Only high/medium confidence results
    without a review flag update the stored website.
    """
    outcome = await pipeline.discover_for_manufacturer(
        manufacturer_id=request.manufacturer_id,
        brand_name=request.brand_name
    )
    return DiscoveryResponse(success=True, data=outcome)


@router.get(
    "/batch",
    response_model=BatchDiscoveryResponse,
    summary="Discover websites for manufacturers without one"
)
async def discover_batch(
    limit: int = Query(default=10, ge=1, le=100),
    dry_run: bool = Query(default=False, description="Only list the manufacturers"),
    pipeline: WebsiteDiscoveryPipeline = Depends(get_discovery_pipeline)
) -> BatchDiscoveryResponse:
    report = await pipeline.discover_batch(limit=limit, dry_run=dry_run)
    return BatchDiscoveryResponse(success=True, data=report)
