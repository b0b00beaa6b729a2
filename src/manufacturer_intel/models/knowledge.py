"""Manufacturer, knowledge and catalog models."""
from typing import Optional, List, Dict, Any
from datetime import datetime
from enum import Enum
from pydantic import BaseModel, Field

from .crawl_result import Document
from .job import ScrapingStatus


class MatchMethod(str, Enum):
    """How a catalog product was matched to a store product."""
    NAME = "name"
    SKU = "sku"
    MODEL = "model"
    CATEGORY = "category"


class Manufacturer(BaseModel):
    """A vendor mirrored from the storefront."""
    id: str
    name: str
    website: Optional[str] = None
    last_scraped: Optional[datetime] = None


class StoreProduct(BaseModel):
    """A product synced from the storefront."""
    id: str
    manufacturer_id: str
    name: str
    sku: Optional[str] = None
    category: Optional[str] = None


class SocialMedia(BaseModel):
    facebook: Optional[str] = None
    instagram: Optional[str] = None
    linkedin: Optional[str] = None
    twitter: Optional[str] = None
    youtube: Optional[str] = None


class CompanyProfile(BaseModel):
    """Structured company fields extracted from a crawl."""
    company_overview: Optional[str] = None
    founded_year: Optional[str] = None
    headquarters: Optional[str] = None
    employee_count: Optional[str] = None
    annual_revenue: Optional[str] = None
    sales_email: Optional[str] = None
    sales_phone: Optional[str] = None
    support_email: Optional[str] = None
    support_phone: Optional[str] = None
    wholesale_contact: Optional[str] = None
    distribution_info: Optional[str] = None
    certifications: List[str] = Field(default_factory=list)
    manufacturing_locations: List[str] = Field(default_factory=list)
    product_categories: List[str] = Field(default_factory=list)
    brand_names: List[str] = Field(default_factory=list)
    total_product_count: Optional[int] = None
    social_media: SocialMedia = Field(default_factory=SocialMedia)

    def extracted_fields(self) -> List[str]:
        """Names of fields that carry a non-empty value."""
        fields = []
        for name, value in self.model_dump().items():
            if name == "social_media":
                if any(value.values()):
                    fields.append(name)
            elif value not in (None, "", []):
                fields.append(name)
        return fields


class ManufacturerKnowledge(BaseModel):
    """Company-profile record derived from the latest crawl."""
    manufacturer_id: str
    profile: CompanyProfile = Field(default_factory=CompanyProfile)
    source_urls: List[str] = Field(default_factory=list)
    raw_scraped_data: Dict[str, Any] = Field(default_factory=dict)
    scraping_status: ScrapingStatus = ScrapingStatus.PENDING
    scraped_at: Optional[datetime] = None


class CatalogProduct(BaseModel):
    """A product inferred from the manufacturer's own website."""
    manufacturer_id: str
    name: str
    sku: str = Field(..., description="Pseudo-SKU, unique per manufacturer")
    product_url: Optional[str] = None
    manual_url: Optional[str] = None
    spec_sheet_url: Optional[str] = None
    quick_start_url: Optional[str] = None
    documents: List[Document] = Field(default_factory=list)
    matched_product_id: Optional[str] = None
    match_confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    match_method: Optional[MatchMethod] = None


class ProductMatch(BaseModel):
    """One accepted match returned by the matching step."""
    manufacturer_index: int
    store_product_id: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    method: MatchMethod = MatchMethod.NAME
