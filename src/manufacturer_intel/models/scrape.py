"""Result models for a completed scrape."""
from typing import List
from pydantic import BaseModel, Field

from .crawl_result import Document
from .knowledge import CompanyProfile


class ScrapeOutcome(BaseModel):
    """What one successful scrape produced."""
    job_id: str
    manufacturer_id: str
    pages_scraped: int = 0
    pdfs_found: int = 0
    product_urls_found: int = 0
    matched_products: int = 0
    profile: CompanyProfile = Field(default_factory=CompanyProfile)
    documents: List[Document] = Field(default_factory=list, description="First PDFs found")
