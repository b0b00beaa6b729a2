"""Data models for official-website discovery."""
from typing import Optional, List
from enum import Enum
from pydantic import BaseModel, Field


class Confidence(str, Enum):
    """Coarse trust level attached to a discovered website."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class CandidateSource(str, Enum):
    """Where a website candidate came from."""
    SEARCH = "search"
    LLM_GUESS = "llm_guess"


class BrandType(str, Enum):
    MANUFACTURER = "manufacturer"
    PRIVATE_LABEL = "private_label"
    UNKNOWN = "unknown"


class SearchResult(BaseModel):
    """One entry of the external search response."""
    url: str
    title: str = ""
    snippet: str = ""


class ContentVerification(BaseModel):
    """Evidence collected from a candidate's homepage."""
    brand_mentioned: bool = False
    is_pet_related: bool = False
    page_title: str = ""
    meta_description: str = ""


class Verification(BaseModel):
    """Outcome of fetching a candidate homepage."""
    valid: bool = False
    final_url: Optional[str] = None
    evidence: Optional[ContentVerification] = None
    error: Optional[str] = None


class WebsiteCandidate(BaseModel):
    """A URL hypothesized to be a brand's official site."""
    url: str
    source: CandidateSource = CandidateSource.SEARCH
    title: Optional[str] = None
    snippet: Optional[str] = None
    content_verification: Optional[ContentVerification] = None


class DiscoveryResult(BaseModel):
    """Final verdict of a discovery run."""
    brand_name: str
    website: Optional[str] = None
    confidence: Confidence = Confidence.LOW
    reasoning: str = ""
    brand_type: BrandType = BrandType.UNKNOWN
    alternative_urls: List[str] = Field(default_factory=list)
    needs_review: bool = True
    search_results: List[SearchResult] = Field(default_factory=list)
    verification_details: Optional[ContentVerification] = None

    @property
    def is_auto_persistable(self) -> bool:
        """Only confident, unflagged results may overwrite a stored website."""
        return (
            bool(self.website)
            and not self.needs_review
            and self.confidence in (Confidence.HIGH, Confidence.MEDIUM)
        )


class ManufacturerDiscovery(BaseModel):
    """Discovery outcome for one manufacturer, plus whether it was persisted."""
    manufacturer_id: Optional[str] = None
    result: DiscoveryResult
    updated: bool = False


class BatchCandidate(BaseModel):
    """A manufacturer listed by a dry-run batch."""
    id: str
    name: str
    current_website: Optional[str] = None
    sample_products: List[str] = Field(default_factory=list)


class BatchItem(BaseModel):
    """Per-manufacturer line of a batch discovery report."""
    id: str
    name: str
    previous_url: Optional[str] = None
    discovered_url: Optional[str] = None
    validated_url: Optional[str] = None
    confidence: Optional[Confidence] = None
    reasoning: Optional[str] = None
    needs_review: Optional[bool] = None
    success: bool = False
    error: Optional[str] = None


class BatchReport(BaseModel):
    """Aggregate result of batch discovery."""
    dry_run: bool = False
    processed: int = 0
    success_count: int = 0
    needs_review_count: int = 0
    failed_count: int = 0
    results: List[BatchItem] = Field(default_factory=list)
    candidates: List[BatchCandidate] = Field(default_factory=list)
