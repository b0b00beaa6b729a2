"""
Company profile extraction from aggregated crawl content.
"""

from typing import Any, Dict, Optional

from ..core.config import settings
from ..core.logging import logger
from ..models.knowledge import CompanyProfile, SocialMedia
from ..utils.json_utils import coerce_int, coerce_str, coerce_str_list, extract_json_block
from .llm_client import LLMClient, get_llm_client


COMPANY_EXTRACTION_PROMPT = """You are an expert data extractor. Analyze the following webpage content from a pet product manufacturer's website and extract all relevant business information.

Extract the following information if available:

1. COMPANY INFORMATION: overview/about us description, year founded, headquarters location, number of employees, annual revenue (if mentioned)
2. CONTACT INFORMATION: sales email and phone, customer support email and phone, wholesale/distributor contact
3. BUSINESS DETAILS: distribution information, certifications (FDA, USDA Organic, AAFCO, etc.), manufacturing locations
4. PRODUCT INFORMATION: main product categories, brand names they own, approximate total product count
5. SOCIAL MEDIA: Facebook, Instagram, LinkedIn, Twitter/X and YouTube URLs

Respond in JSON format with the following structure:
{
  "companyOverview": "string or null",
  "foundedYear": "string or null",
  "headquarters": "string or null",
  "employeeCount": "string or null",
  "annualRevenue": "string or null",
  "salesEmail": "string or null",
  "salesPhone": "string or null",
  "supportEmail": "string or null",
  "supportPhone": "string or null",
  "wholesaleContact": "string or null",
  "distributionInfo": "string or null",
  "certifications": ["array of certification strings"],
  "manufacturingLocations": ["array of location strings"],
  "productCategories": ["array of category strings"],
  "brandNames": ["array of brand name strings"],
  "totalProductCount": number or null,
  "socialMedia": {
    "facebook": "url or null",
    "instagram": "url or null",
    "linkedin": "url or null",
    "twitter": "url or null",
    "youtube": "url or null"
  }
}

Respond with raw JSON only. Do not include code blocks, markdown, or any other formatting."""

# Reply key -> CompanyProfile field
STRING_FIELDS = {
    "companyOverview": "company_overview",
    "foundedYear": "founded_year",
    "headquarters": "headquarters",
    "employeeCount": "employee_count",
    "annualRevenue": "annual_revenue",
    "salesEmail": "sales_email",
    "salesPhone": "sales_phone",
    "supportEmail": "support_email",
    "supportPhone": "support_phone",
    "wholesaleContact": "wholesale_contact",
    "distributionInfo": "distribution_info",
}

LIST_FIELDS = {
    "certifications": "certifications",
    "manufacturingLocations": "manufacturing_locations",
    "productCategories": "product_categories",
    "brandNames": "brand_names",
}

SOCIAL_NETWORKS = ("facebook", "instagram", "linkedin", "twitter", "youtube")


def parse_company_profile(data: Optional[Dict[str, Any]]) -> CompanyProfile:
    """
    Build a CompanyProfile from a loosely-shaped reply object.

    Each field is defaulted on its own: strings become None, lists become
    [], the product count becomes None and social media an all-None object
    whenever the value is missing or of the wrong type.
    """
    if not isinstance(data, dict):
        return CompanyProfile()

    values: Dict[str, Any] = {}
    for key, field in STRING_FIELDS.items():
        values[field] = coerce_str(data.get(key))
    for key, field in LIST_FIELDS.items():
        values[field] = coerce_str_list(data.get(key))
    values["total_product_count"] = coerce_int(data.get("totalProductCount"))

    social = data.get("socialMedia")
    if not isinstance(social, dict):
        social = {}
    # "x" is accepted as an alias for twitter
    if not social.get("twitter") and social.get("x"):
        social = {**social, "twitter": social["x"]}
    values["social_media"] = SocialMedia(
        **{network: coerce_str(social.get(network)) for network in SOCIAL_NETWORKS}
    )

    return CompanyProfile(**values)


class CompanyExtractor:
    """Extracts a company profile with one bounded LLM call."""

    def __init__(self, llm: Optional[LLMClient] = None):
        self.llm = llm or get_llm_client()

    async def extract(self, manufacturer_name: str, content: str) -> CompanyProfile:
        """
        Extract the profile of ``manufacturer_name`` from crawl content.

        Raises:
            ExtractionError: the LLM call failed or timed out
        """
        logger.info(f"Extracting company information for {manufacturer_name}...")
        reply = await self.llm.complete(
            COMPANY_EXTRACTION_PROMPT,
            f"Here is the webpage content from {manufacturer_name}'s website:\n\n"
            f"{content}",
            max_tokens=settings.LLM_MAX_TOKENS,
            json_mode=True,
        )

        data = extract_json_block(reply, kind="object")
        if data is None:
            logger.warning(f"Company extraction for {manufacturer_name} returned no JSON object")
        profile = parse_company_profile(data)
        logger.info(f"Extracted {len(profile.extracted_fields())} fields for {manufacturer_name}")
        return profile
