"""Celery tasks for running scrape jobs in a worker."""
import asyncio
from typing import Any, Dict, Optional

from .celery_app import celery_app
from ..core.logging import logger
from ..pipeline.manager import run_scrape_job


@celery_app.task(bind=True, max_retries=0)
def run_scrape_job_task(
    self,
    job_id: str,
    manufacturer_id: str,
    website_url: str,
    max_pages: Optional[int] = None
) -> Dict[str, Any]:
    """
    Run an already-created scrape job.

    Not retried: a failed job is terminal and needs a new request.
    """
    logger.info(f"Worker picked up scrape job {job_id} for manufacturer {manufacturer_id}")
    outcome = asyncio.run(run_scrape_job(job_id, manufacturer_id, website_url, max_pages))
    if outcome is None:
        return {"job_id": job_id, "status": "failed"}
    return {
        "job_id": job_id,
        "status": "completed",
        "pages_scraped": outcome.pages_scraped,
        "pdfs_found": outcome.pdfs_found,
        "matched_products": outcome.matched_products,
    }
