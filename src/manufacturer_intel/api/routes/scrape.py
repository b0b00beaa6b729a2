"""
FastAPI routes for triggering manufacturer scrapes.
"""
from typing import Union

from fastapi import APIRouter, BackgroundTasks, Depends, Response, status

from ...core.config import settings
from ...core.logging import logger
from ...models.requests import ScrapeRequest
from ...models.responses import JobResponse, ScrapeResponse
from ...pipeline.manager import ScrapePipeline, run_scrape_job
from ...tasks.scrape_tasks import run_scrape_job_task
from ..dependencies import get_scrape_pipeline


router = APIRouter()


@router.post(
    "/manufacturers/{manufacturer_id}/scrape",
    response_model=Union[ScrapeResponse, JobResponse],
    status_code=status.HTTP_202_ACCEPTED,
    summary="Scrape a manufacturer website",
    description="Crawl the website, extract the company profile and match catalog products"
)
async def scrape_manufacturer(
    manufacturer_id: str,
    request: ScrapeRequest,
    background_tasks: BackgroundTasks,
    response: Response,
    pipeline: ScrapePipeline = Depends(get_scrape_pipeline)
) -> Union[ScrapeResponse, JobResponse]:
    """
    Start a scrape for one manufacturer.

    - **website_url**: Seed URL (http or https)
    - **max_pages**: Page ceiling (default and maximum 20)
    - **wait**: Run inside the request and return the result

    Without ``wait`` the job is created, dispatched and its ID returned with
    202; poll GET /jobs/{job_id}. 409 when a job is already running for the
    manufacturer.
    """
    if request.wait:
        outcome = await pipeline.run(manufacturer_id, request.website_url, request.max_pages)
        response.status_code = status.HTTP_200_OK
        return ScrapeResponse(
            success=True,
            data=outcome,
            message=f"Scraped {outcome.pages_scraped} pages, matched {outcome.matched_products} products"
        )

    pipeline.validate(manufacturer_id, request.website_url, request.max_pages)
    website_url = request.website_url.strip()
    job = pipeline.lifecycle.start(manufacturer_id, website_url)

    if settings.SCRAPE_DISPATCH == "celery":
        try:
            run_scrape_job_task.delay(
                job_id=job.id,
                manufacturer_id=manufacturer_id,
                website_url=website_url,
                max_pages=request.max_pages
            )
        except Exception as e:
            pipeline.lifecycle.fail(job.id, f"Could not queue job: {e}")
            raise
    else:
        background_tasks.add_task(
            run_scrape_job, job.id, manufacturer_id, website_url, request.max_pages, pipeline
        )

    logger.info(f"Scrape job {job.id} dispatched via {settings.SCRAPE_DISPATCH}")
    return JobResponse(
        job_id=job.id,
        status=job.status,
        message=f"Scrape job created for {website_url}"
    )
