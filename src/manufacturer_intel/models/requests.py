"""API request schemas."""
from typing import Optional
from pydantic import BaseModel, Field


class ScrapeRequest(BaseModel):
    """Request schema for scraping a manufacturer website."""
    website_url: str = Field(..., description="Seed URL (http or https)")
    max_pages: Optional[int] = Field(
        default=None,
        description="Page ceiling, 1 to CRAWLER_MAX_PAGES"
    )
    wait: bool = Field(
        default=False,
        description="Run the whole scrape inside the request instead of dispatching it"
    )


class DiscoveryRequest(BaseModel):
    """Request schema for single website discovery."""
    manufacturer_id: Optional[str] = Field(default=None, description="Stored manufacturer to update")
    brand_name: Optional[str] = Field(default=None, description="Bare brand name, never persisted")
