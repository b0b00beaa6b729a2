"""Job and knowledge inspection endpoints."""
from fastapi import APIRouter, Depends, Query

from ...core.exceptions import NotFoundError
from ...models.job import CrawlJob
from ...models.responses import JobListResponse, KnowledgeResponse
from ...services.store import ManufacturerStore
from ..dependencies import get_manufacturer_store


router = APIRouter()


@router.get("/jobs/{job_id}", response_model=CrawlJob, summary="Get a crawl job")
async def get_job(
    job_id: str,
    store: ManufacturerStore = Depends(get_manufacturer_store)
) -> CrawlJob:
    job = store.get_job(job_id)
    if job is None:
        raise NotFoundError("Job", job_id)
    return job


@router.get(
    "/manufacturers/{manufacturer_id}/jobs",
    response_model=JobListResponse,
    summary="Job history of a manufacturer"
)
async def list_jobs(
    manufacturer_id: str,
    limit: int = Query(default=20, ge=1, le=100),
    store: ManufacturerStore = Depends(get_manufacturer_store)
) -> JobListResponse:
    if store.get_manufacturer(manufacturer_id) is None:
        raise NotFoundError("Manufacturer", manufacturer_id)
    return JobListResponse(
        manufacturer_id=manufacturer_id,
        jobs=store.get_jobs_for_manufacturer(manufacturer_id, limit=limit)
    )


@router.get(
    "/manufacturers/{manufacturer_id}/knowledge",
    response_model=KnowledgeResponse,
    summary="Knowledge and catalog products of a manufacturer"
)
async def get_knowledge(
    manufacturer_id: str,
    store: ManufacturerStore = Depends(get_manufacturer_store)
) -> KnowledgeResponse:
    if store.get_manufacturer(manufacturer_id) is None:
        raise NotFoundError("Manufacturer", manufacturer_id)
    return KnowledgeResponse(
        manufacturer_id=manufacturer_id,
        knowledge=store.get_knowledge(manufacturer_id),
        catalog_products=store.get_catalog_products(manufacturer_id)
    )
