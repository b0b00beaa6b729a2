"""Job status models."""
from enum import Enum
from typing import Optional, List
from datetime import datetime, timezone
from pydantic import BaseModel, Field


class JobStatus(str, Enum):
    """Crawl job status enumeration."""
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class ScrapingStatus(str, Enum):
    """Status of a manufacturer knowledge record."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class ResultSummary(BaseModel):
    """Counters persisted on a completed job."""
    pages_scraped: int = 0
    pdfs_found: int = 0
    product_urls_found: int = 0
    matched_products: int = 0
    extracted_fields: List[str] = Field(default_factory=list)


class CrawlJob(BaseModel):
    """One crawl invocation for one manufacturer."""
    id: str
    manufacturer_id: str
    status: JobStatus = JobStatus.RUNNING
    seed_url: Optional[str] = None
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None
    pages_scraped: int = 0
    products_found: int = 0
    result_summary: Optional[ResultSummary] = None
    error: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (JobStatus.COMPLETED, JobStatus.FAILED)
