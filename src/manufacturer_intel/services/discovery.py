"""
Official-website discovery for brands.

Discovery runs in three stages: an LLM-backed web search gathers candidate
URLs, the top candidates' homepages are fetched and checked for the brand
name, and a second LLM call picks the official site from the evidence. The
selected site is always re-checked; when the brand is not on its homepage
the verdict is downgraded to low confidence and flagged for review.
"""

import asyncio
import re
from typing import Dict, List, Optional

from ..core.config import settings
from ..core.exceptions import ExtractionError, NotFoundError, ValidationError
from ..core.logging import logger
from ..crawler.fetcher import PageFetcher
from ..models.discovery import (
    BatchCandidate,
    BatchItem,
    BatchReport,
    BrandType,
    CandidateSource,
    Confidence,
    ContentVerification,
    DiscoveryResult,
    ManufacturerDiscovery,
    SearchResult,
    Verification,
    WebsiteCandidate,
)
from ..models.knowledge import Manufacturer
from ..utils.content_utils import extract_page_metadata
from ..utils.json_utils import coerce_str, coerce_str_list, extract_json_block
from ..utils.url_utils import is_http_url, matches_domain, normalize_url
from .llm_client import LLMClient, get_llm_client
from .store import ManufacturerStore, UpsertResult, get_store


SEARCH_SYSTEM_PROMPT = """You are a web search assistant. Search for the official website of the given brand and return the search results.

Return ONLY a JSON array of search results in this format:
[
  {"url": "https://...", "title": "Page Title", "snippet": "Brief description"}
]

Include up to 5 most relevant results. Focus on finding:
- The brand's official .com or corporate website
- The brand's official product pages
- About pages or company information

DO NOT include Amazon, eBay, Chewy, PetSmart, or other reseller links.
Return ONLY the JSON array, no other text."""

WEBSITE_ANALYSIS_PROMPT = """You are an expert at identifying official manufacturer websites for pet grooming and pet care product brands.

You will be given a brand name, web search results with URLs and snippets, and
content verification results for some of the candidate websites.

Identify the OFFICIAL corporate website.

CRITICAL RULES:
1. The official website MUST mention the brand name on its homepage
2. NEVER return reseller sites (Amazon, Chewy, PetSmart, Walmart, eBay, etc.)
3. NEVER return distributor or wholesaler sites
4. NEVER return review sites, blog posts or news articles
5. NEVER return social media pages (Facebook, Instagram, LinkedIn, etc.)
6. If the content verification shows the brand name is NOT on the homepage, mark confidence as "low"
7. Prefer .com domains, but accept country-specific domains (.co.uk, .de, etc.) for international brands
8. The domain should ideally contain the brand name or a close variant

Respond with ONLY a JSON object:
{
  "website": "https://example.com" or null,
  "confidence": "high" | "medium" | "low",
  "reasoning": "Detailed explanation of your decision",
  "brandType": "manufacturer" | "private_label" | "unknown",
  "alternativeUrls": ["other potential URLs if found"],
  "needsReview": true or false (true if confidence is low or uncertain)
}"""

SAMPLE_PRODUCT_COUNT = 5


def brand_variants(brand_name: str) -> List[str]:
    """Lower-cased, whitespace-stripped and alphanumeric-only forms of a brand."""
    lower = brand_name.lower().strip()
    variants = [lower, re.sub(r"\s+", "", lower), re.sub(r"[^a-z0-9]", "", lower)]
    # An all-punctuation brand collapses to "", which would match any page
    return list(dict.fromkeys(v for v in variants if v))


class WebsiteDiscoveryService:
    """Finds and verifies the official website of a brand."""

    def __init__(
        self,
        llm: Optional[LLMClient] = None,
        fetcher: Optional[PageFetcher] = None,
        verify_top_n: int = None,
        request_delay: float = None,
        excluded_domains: List[str] = None,
        domain_keywords: List[str] = None,
    ):
        self.llm = llm or get_llm_client()
        self.fetcher = fetcher
        self.verify_top_n = verify_top_n or settings.DISCOVERY_VERIFY_TOP_N
        self.request_delay = settings.DISCOVERY_REQUEST_DELAY if request_delay is None else request_delay
        self.excluded_domains = excluded_domains if excluded_domains is not None else settings.DISCOVERY_EXCLUDED_DOMAINS
        self.domain_keywords = domain_keywords if domain_keywords is not None else settings.DISCOVERY_DOMAIN_KEYWORDS

    async def search(self, brand_name: str, context: str = None) -> List[SearchResult]:
        """
        Ask the search-enabled LLM for candidate pages.

        Empty, malformed or failed responses yield an empty list.
        """
        query = f'"{brand_name}" official website pet grooming manufacturer'
        user_prompt = f"Search for: {query}"
        if context:
            user_prompt += f"\n\nContext: This brand makes pet grooming products like: {context}"

        try:
            reply = await self.llm.complete(
                SEARCH_SYSTEM_PROMPT,
                user_prompt,
                max_tokens=1000,
                temperature=0.1,
                web_search=True,
            )
        except ExtractionError as e:
            logger.error(f"Web search failed for {brand_name}: {e.message}")
            return []

        items = extract_json_block(reply, kind="array")
        if not isinstance(items, list):
            logger.warning(f"No JSON array found in search response for {brand_name}")
            return []

        results: List[SearchResult] = []
        seen = set()
        for item in items:
            if not isinstance(item, dict):
                continue
            url = coerce_str(item.get("url"))
            if not url or not is_http_url(url) or normalize_url(url) in seen:
                continue
            seen.add(normalize_url(url))
            results.append(
                SearchResult(
                    url=url,
                    title=coerce_str(item.get("title")) or "",
                    snippet=coerce_str(item.get("snippet")) or "",
                )
            )
        return results

    def to_candidates(self, results: List[SearchResult]) -> List[WebsiteCandidate]:
        """Turn search results into candidates, dropping excluded domains."""
        candidates = []
        for result in results:
            if matches_domain(result.url, self.excluded_domains):
                logger.info(f"Dropping excluded-domain candidate {result.url}")
                continue
            candidates.append(
                WebsiteCandidate(
                    url=result.url,
                    source=CandidateSource.SEARCH,
                    title=result.title,
                    snippet=result.snippet,
                )
            )
        return candidates

    async def search_candidates(self, brand_name: str, context: str = None) -> List[WebsiteCandidate]:
        """Stage A: search and filter candidates."""
        return self.to_candidates(await self.search(brand_name, context))

    async def verify_candidate(self, url: str, brand_name: str) -> Verification:
        """
        Fetch a candidate homepage and collect brand/domain evidence.

        Args:
            url: Candidate URL
            brand_name: Brand to look for in the page body and title

        Returns:
            Verification; ``valid`` is False when the page could not be fetched
        """
        fetcher = self.fetcher or PageFetcher(timeout=settings.DISCOVERY_VERIFY_TIMEOUT)
        result = await fetcher.fetch(url)
        if not result.success or result.html is None:
            return Verification(valid=False, error=result.error)

        html = result.html
        lower_html = html.lower()
        title, description = extract_page_metadata(html)
        lower_title = title.lower()

        brand_mentioned = any(
            variant in lower_html or variant in lower_title
            for variant in brand_variants(brand_name)
        )
        is_pet_related = any(keyword in lower_html for keyword in self.domain_keywords)

        return Verification(
            valid=True,
            final_url=result.final_url or url,
            evidence=ContentVerification(
                brand_mentioned=brand_mentioned,
                is_pet_related=is_pet_related,
                page_title=title,
                meta_description=description,
            ),
        )

    async def verify_top_candidates(
        self, brand_name: str, candidates: List[WebsiteCandidate]
    ) -> Dict[str, ContentVerification]:
        """
        Stage B: verify the first N candidates in place.

        A candidate whose homepage redirects takes the final URL. Returns the
        evidence keyed by both the original and the final normalized URL.
        """
        evidence: Dict[str, ContentVerification] = {}
        for index, candidate in enumerate(candidates[: self.verify_top_n]):
            if index > 0 and self.request_delay > 0:
                await asyncio.sleep(self.request_delay)

            verification = await self.verify_candidate(candidate.url, brand_name)
            if not verification.valid:
                logger.info(f"Could not verify {candidate.url}: {verification.error}")
                continue

            evidence[normalize_url(candidate.url)] = verification.evidence
            candidate.content_verification = verification.evidence
            if verification.final_url and normalize_url(verification.final_url) != normalize_url(candidate.url):
                candidate.url = verification.final_url
            evidence[normalize_url(candidate.url)] = verification.evidence
        return evidence

    async def select_website(
        self, brand_name: str, candidates: List[WebsiteCandidate], context: str = None
    ) -> DiscoveryResult:
        """
        Stage C: let the LLM pick the official website from the evidence.

        A failed or unparsable selection yields a low-confidence,
        needs-review result with no website.
        """
        user_prompt = (
            "Find the official website for this pet product brand:\n\n"
            f"Brand Name: {brand_name}\n"
            f"{f'Product Context: {context}' if context else ''}\n\n"
            "Candidate Websites Found:\n"
            f"{self._describe_candidates(brand_name, candidates) or 'No candidates found from web search.'}\n\n"
            "Based on this information, determine the official website. If no suitable candidate "
            "is found or confidence is low, recommend manual review."
        )

        try:
            reply = await self.llm.complete(
                WEBSITE_ANALYSIS_PROMPT, user_prompt, max_tokens=800, temperature=0.1
            )
        except ExtractionError as e:
            logger.error(f"Error analyzing website for {brand_name}: {e.message}")
            return DiscoveryResult(brand_name=brand_name, reasoning=e.message)

        data = extract_json_block(reply, kind="object")
        if not isinstance(data, dict):
            logger.error(f"No JSON found in website analysis for {brand_name}")
            return DiscoveryResult(brand_name=brand_name, reasoning="No JSON found in response")

        website = coerce_str(data.get("website"))
        if website and not is_http_url(website):
            website = None

        confidence = _parse_enum(Confidence, data.get("confidence"), Confidence.LOW)
        needs_review = data.get("needsReview")
        if not isinstance(needs_review, bool):
            needs_review = confidence == Confidence.LOW

        return DiscoveryResult(
            brand_name=brand_name,
            website=website,
            confidence=confidence,
            reasoning=coerce_str(data.get("reasoning")) or "Unknown",
            brand_type=_parse_enum(BrandType, data.get("brandType"), BrandType.UNKNOWN),
            alternative_urls=[u for u in coerce_str_list(data.get("alternativeUrls")) if is_http_url(u)],
            needs_review=needs_review,
        )

    async def discover(self, brand_name: str, context: str = None) -> DiscoveryResult:
        """
        Run search, verification and selection for one brand.

        Raises:
            ValidationError: empty brand name
        """
        brand_name = (brand_name or "").strip()
        if not brand_name:
            raise ValidationError("Brand name is required", field="brand_name")

        logger.info(f"[Discovery] Starting discovery for: {brand_name}")
        search_results = await self.search(brand_name, context)
        candidates = self.to_candidates(search_results)
        logger.info(f"[Discovery] {len(search_results)} search results, {len(candidates)} candidates")

        evidence = await self.verify_top_candidates(brand_name, candidates)
        result = await self.select_website(brand_name, candidates, context)
        result.search_results = search_results

        if result.website:
            await self._check_selected(brand_name, result, evidence)

        logger.info(
            f"[Discovery] Complete. Result: {result.website or 'none'} ({result.confidence.value})"
        )
        return result

    async def _check_selected(
        self, brand_name: str, result: DiscoveryResult, evidence: Dict[str, ContentVerification]
    ):
        """Verify the selected website and downgrade when the brand is absent."""
        if matches_domain(result.website, self.excluded_domains):
            _downgrade(result, f"WARNING: {result.website} is a reseller, marketplace or social media domain.")
            return

        verification = evidence.get(normalize_url(result.website))
        if verification is None:
            logger.info(f"[Discovery] Selected {result.website} was not verified yet, fetching it")
            outcome = await self.verify_candidate(result.website, brand_name)
            if not outcome.valid:
                _downgrade(
                    result,
                    f'WARNING: The selected website could not be fetched ({outcome.error}) '
                    f'to confirm "{brand_name}" is on its homepage.',
                )
                return
            verification = outcome.evidence

        result.verification_details = verification
        if not verification.brand_mentioned:
            logger.info("[Discovery] Warning: Brand not found on selected website, downgrading confidence")
            _downgrade(result, f'WARNING: Brand name "{brand_name}" was not found on the website homepage.')

    def _describe_candidates(self, brand_name: str, candidates: List[WebsiteCandidate]) -> str:
        blocks = []
        for index, candidate in enumerate(candidates, start=1):
            lines = [f"{index}. URL: {candidate.url}"]
            if candidate.title:
                lines.append(f"   Title: {candidate.title}")
            if candidate.snippet:
                lines.append(f"   Snippet: {candidate.snippet}")
            check = candidate.content_verification
            if check:
                lines.append("   Content Verification:")
                lines.append(f'   - Brand "{brand_name}" mentioned on page: {"YES" if check.brand_mentioned else "NO"}')
                lines.append(f"   - Pet/grooming related content: {'YES' if check.is_pet_related else 'NO'}")
                lines.append(f"   - Page title: {check.page_title}")
            blocks.append("\n".join(lines))
        return "\n\n".join(blocks)


def _downgrade(result: DiscoveryResult, warning: str):
    result.confidence = Confidence.LOW
    result.needs_review = True
    result.reasoning = f"{result.reasoning} {warning}".strip()


def _parse_enum(enum_cls, value, default):
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        return default


class WebsiteDiscoveryPipeline:
    """Runs discovery for stored manufacturers and applies the persistence gate."""

    def __init__(
        self,
        store: ManufacturerStore = None,
        service: WebsiteDiscoveryService = None,
        batch_delay: float = None,
    ):
        self.store = store or get_store()
        self.service = service or WebsiteDiscoveryService()
        self.batch_delay = settings.DISCOVERY_BATCH_DELAY if batch_delay is None else batch_delay

    def product_context(self, manufacturer_id: str) -> Optional[str]:
        """Short "Sample products: ..." hint built from store products."""
        products = self.store.get_store_products(manufacturer_id, limit=SAMPLE_PRODUCT_COUNT)
        if not products:
            return None
        return f"Sample products: {', '.join(p.name for p in products)}"

    async def discover_for_manufacturer(
        self, manufacturer_id: str = None, brand_name: str = None
    ) -> ManufacturerDiscovery:
        """
        Discover a website by manufacturer ID or bare brand name.

        Only results with high/medium confidence and no review flag are
        written back to the manufacturer.

        Raises:
            ValidationError: neither argument given
            NotFoundError: unknown manufacturer ID
        """
        if not manufacturer_id and not (brand_name or "").strip():
            raise ValidationError("manufacturer_id or brand_name required")

        manufacturer: Optional[Manufacturer] = None
        context = None
        if manufacturer_id:
            manufacturer = self.store.get_manufacturer(manufacturer_id)
            if manufacturer is None:
                raise NotFoundError("Manufacturer", manufacturer_id)
            brand_name = manufacturer.name
            context = self.product_context(manufacturer.id)

        result = await self.service.discover(brand_name, context)
        updated = self._persist(manufacturer, result) if manufacturer else False
        return ManufacturerDiscovery(
            manufacturer_id=manufacturer.id if manufacturer else None,
            result=result,
            updated=updated,
        )

    async def discover_batch(self, limit: int = 10, dry_run: bool = False) -> BatchReport:
        """
        Discover websites for manufacturers with no usable website.

        A dry run lists the manufacturers that would be processed without
        any network call or store write.
        """
        manufacturers = self.store.list_manufacturers_needing_website(limit=limit)

        if dry_run:
            return BatchReport(
                dry_run=True,
                processed=len(manufacturers),
                candidates=[
                    BatchCandidate(
                        id=m.id,
                        name=m.name,
                        current_website=m.website,
                        sample_products=[
                            p.name for p in self.store.get_store_products(m.id, limit=SAMPLE_PRODUCT_COUNT)
                        ],
                    )
                    for m in manufacturers
                ],
            )

        report = BatchReport(processed=len(manufacturers))
        for index, manufacturer in enumerate(manufacturers):
            if index > 0 and self.batch_delay > 0:
                await asyncio.sleep(self.batch_delay)

            logger.info(f"[Batch] Processing: {manufacturer.name}")
            try:
                result = await self.service.discover(
                    manufacturer.name, self.product_context(manufacturer.id)
                )
                updated = self._persist(manufacturer, result)
            except Exception as e:
                # One brand must not abort the batch
                logger.error(f"Error processing {manufacturer.name}: {e}")
                report.failed_count += 1
                report.results.append(
                    BatchItem(id=manufacturer.id, name=manufacturer.name, error=str(e) or type(e).__name__)
                )
                continue

            if updated:
                report.success_count += 1
            elif result.needs_review or result.confidence == Confidence.LOW:
                report.needs_review_count += 1
            else:
                report.failed_count += 1

            report.results.append(
                BatchItem(
                    id=manufacturer.id,
                    name=manufacturer.name,
                    previous_url=manufacturer.website,
                    discovered_url=result.website,
                    validated_url=result.website if updated else None,
                    confidence=result.confidence,
                    reasoning=result.reasoning,
                    needs_review=result.needs_review,
                    success=updated,
                )
            )

        logger.info(
            f"[Batch] Done: {report.success_count} updated, {report.needs_review_count} need review, "
            f"{report.failed_count} failed"
        )
        return report

    def _persist(self, manufacturer: Manufacturer, result: DiscoveryResult) -> bool:
        if not result.is_auto_persistable:
            logger.info(
                f"Website needs manual review for {manufacturer.name}: {result.website or 'none found'}"
            )
            return False

        outcome = self.store.update_manufacturer_website(manufacturer.id, result.website)
        if outcome == UpsertResult.NOT_FOUND:
            logger.warning(f"Manufacturer {manufacturer.id} disappeared before website update")
            return False
        logger.info(f"Auto-updated website for {manufacturer.name}: {result.website}")
        return True
