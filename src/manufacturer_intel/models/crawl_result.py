"""Data models for crawl results."""
from typing import Optional, List
from datetime import datetime, timezone
from enum import Enum
from pydantic import BaseModel, Field


TRUNCATION_MARKER = "[Content truncated...]"
TRUNCATION_SUFFIX = "\n\n" + TRUNCATION_MARKER


class DocumentType(str, Enum):
    """Classification of a downloadable document."""
    MANUAL = "manual"
    SPEC_SHEET = "spec_sheet"
    QUICK_START = "quick_start"
    BROCHURE = "brochure"
    OTHER = "other"


class Document(BaseModel):
    """A classified downloadable artifact (currently always a PDF)."""
    name: str = Field(..., description="Display name")
    url: str = Field(..., description="Absolute document URL")
    type: DocumentType = Field(default=DocumentType.OTHER, description="Document type")
    product_name: Optional[str] = Field(default=None, description="Inferred product name")


class DiscoveredLinks(BaseModel):
    """Links classified from a single fetched page."""
    product_urls: List[str] = Field(default_factory=list)
    support_urls: List[str] = Field(default_factory=list)
    download_urls: List[str] = Field(default_factory=list)
    pdf_documents: List[Document] = Field(default_factory=list)


class PageResult(BaseModel):
    """Result of a single HTTP fetch."""
    url: str = Field(..., description="Requested URL")
    final_url: Optional[str] = Field(default=None, description="URL after redirects")
    success: bool = Field(default=False)
    status_code: Optional[int] = Field(default=None)
    html: Optional[str] = Field(default=None, description="Raw HTML body")
    error: Optional[str] = Field(default=None, description="Human-readable failure reason")


class CrawledPage(BaseModel):
    """One page visited during a crawl."""
    url: str = Field(..., description="Crawled URL")
    success: bool = Field(default=False, description="Whether the fetch succeeded")
    content: Optional[str] = Field(default=None, description="Extracted text (bounded)")
    error: Optional[str] = Field(default=None, description="Error message if failed")
    crawled_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class CrawlOutcome(BaseModel):
    """Aggregate result of crawling one website."""
    base_url: str
    pages: List[CrawledPage] = Field(default_factory=list)
    documents: List[Document] = Field(default_factory=list)
    product_urls: List[str] = Field(default_factory=list)

    @property
    def successful_pages(self) -> List[CrawledPage]:
        return [p for p in self.pages if p.success]

    def combined_content(self, limit: int) -> str:
        """
        Join successful page text into one bounded block for extraction.

        Page-level truncation markers are dropped first, so the aggregate
        carries the marker only when the aggregate itself is cut.
        """
        from ..utils.content_utils import truncate_content

        sections = []
        for page in self.successful_pages:
            content = page.content or ""
            if content.endswith(TRUNCATION_SUFFIX):
                content = content[: -len(TRUNCATION_SUFFIX)]
            sections.append(f"=== {page.url} ===\n{content}")
        combined = "\n\n".join(sections)
        return truncate_content(combined, limit)
