"""API response schemas."""
from typing import Optional, List
from pydantic import BaseModel, Field
from datetime import datetime, timezone

from .discovery import BatchReport, ManufacturerDiscovery
from .job import CrawlJob, JobStatus
from .knowledge import CatalogProduct, ManufacturerKnowledge
from .scrape import ScrapeOutcome


class JobResponse(BaseModel):
    """Response schema for async job creation."""
    job_id: str
    status: JobStatus
    message: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ScrapeResponse(BaseModel):
    """Response schema for a scrape that ran inside the request."""
    success: bool
    data: ScrapeOutcome
    message: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class JobListResponse(BaseModel):
    """Job history of a manufacturer."""
    manufacturer_id: str
    jobs: List[CrawlJob]


class KnowledgeResponse(BaseModel):
    """Knowledge record plus catalog products of a manufacturer."""
    manufacturer_id: str
    knowledge: Optional[ManufacturerKnowledge] = None
    catalog_products: List[CatalogProduct] = Field(default_factory=list)


class DiscoveryResponse(BaseModel):
    """Response schema for single discovery."""
    success: bool
    data: ManufacturerDiscovery


class BatchDiscoveryResponse(BaseModel):
    """Response schema for batch discovery."""
    success: bool
    data: BatchReport
