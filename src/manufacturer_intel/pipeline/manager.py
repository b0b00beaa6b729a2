from typing import Optional

from ..core.config import settings
from ..core.exceptions import InvalidURLError, ManufacturerIntelError, NotFoundError, ValidationError
from ..core.logging import logger
from ..crawler.service import CrawlerService
from ..models.job import ResultSummary, ScrapingStatus
from ..models.knowledge import Manufacturer, ManufacturerKnowledge
from ..models.scrape import ScrapeOutcome
from ..services.extraction import CompanyExtractor
from ..services.lifecycle import JobLifecycle, describe_error
from ..services.matching import CatalogMatcher
from ..services.store import ManufacturerStore, get_store
from ..utils.url_utils import is_http_url

RETURNED_DOCUMENT_COUNT = 20


class ScrapePipeline:
    """
    Orchestrator for crawling a manufacturer website into knowledge and
    catalog products.
    """

    def __init__(
        self,
        store: ManufacturerStore = None,
        crawler: CrawlerService = None,
        extractor: CompanyExtractor = None,
        matcher: CatalogMatcher = None,
        lifecycle: JobLifecycle = None,
    ):
        self.store = store or get_store()
        self.crawler = crawler or CrawlerService()
        self.extractor = extractor or CompanyExtractor()
        self.matcher = matcher or CatalogMatcher()
        self.lifecycle = lifecycle or JobLifecycle(self.store)

    def validate(self, manufacturer_id: str, website_url: str, max_pages: Optional[int]) -> Manufacturer:
        """
        Reject a scrape request before any network activity.

        Raises:
            ValidationError: missing URL or page ceiling outside 1..CRAWLER_MAX_PAGES
            InvalidURLError: URL is not http(s)
            NotFoundError: unknown manufacturer
        """
        if not website_url or not website_url.strip():
            raise ValidationError("Website URL is required", field="website_url")
        if not is_http_url(website_url.strip()):
            raise InvalidURLError(website_url)
        if max_pages is not None and not 1 <= max_pages <= settings.CRAWLER_MAX_PAGES:
            raise ValidationError(
                f"max_pages must be between 1 and {settings.CRAWLER_MAX_PAGES}", field="max_pages"
            )

        manufacturer = self.store.get_manufacturer(manufacturer_id)
        if manufacturer is None:
            raise NotFoundError("Manufacturer", manufacturer_id)
        return manufacturer

    async def run(
        self,
        manufacturer_id: str,
        website_url: str,
        max_pages: int = None,
        job_id: str = None,
    ) -> ScrapeOutcome:
        """
        Run the full scrape for one manufacturer.

        Args:
            manufacturer_id: Manufacturer to scrape
            website_url: Seed URL (http or https)
            max_pages: Page ceiling, defaults to CRAWLER_MAX_PAGES
            job_id: Existing running job to execute; a new job is created when omitted

        Returns:
            ScrapeOutcome of the completed job

        Raises:
            ManufacturerIntelError: validation failed, or the job failed (the
                job and knowledge record are already marked failed)
        """
        try:
            manufacturer = self.validate(manufacturer_id, website_url, max_pages)
        except Exception as e:
            # A pre-created job must not stay running
            if job_id:
                self.lifecycle.fail(job_id, describe_error(e))
            raise
        website_url = website_url.strip()
        max_pages = max_pages or settings.CRAWLER_MAX_PAGES

        async with self.lifecycle.track(manufacturer_id, website_url, job_id=job_id) as tracked:
            job_id = tracked.job.id
            logger.info(f"Starting scrape job {job_id} for {manufacturer.name} ({website_url})")

            if manufacturer.website != website_url:
                self.store.update_manufacturer_website(manufacturer_id, website_url)

            # 1. Crawl
            logger.info("Step 1: Crawling...")
            crawl = await self.crawler.crawl(website_url, max_pages)
            successful = crawl.successful_pages

            # 2. Company extraction
            logger.info("Step 2: Extracting company information...")
            content = crawl.combined_content(settings.CRAWLER_AGGREGATE_CHAR_LIMIT)
            profile = await self.extractor.extract(manufacturer.name, content)

            # 3. Knowledge; status is finalized together with the job
            self.store.upsert_knowledge(
                ManufacturerKnowledge(
                    manufacturer_id=manufacturer_id,
                    profile=profile,
                    source_urls=[page.url for page in successful],
                    raw_scraped_data={
                        **profile.model_dump(),
                        "pdf_documents": [d.model_dump(mode="json") for d in crawl.documents],
                        "product_urls": crawl.product_urls,
                    },
                    scraping_status=ScrapingStatus.IN_PROGRESS,
                )
            )

            # 4. Catalog matching
            logger.info("Step 3: Matching catalog products...")
            groups = self.matcher.group_documents(crawl.documents)
            store_products = self.store.get_store_products(manufacturer_id)
            matches = await self.matcher.match(groups, store_products)

            matched = 0
            for product in self.matcher.matched_products(manufacturer_id, groups, matches):
                self.store.upsert_catalog_product(product)
                matched += 1

            # 5. Every crawled PDF is kept, matched or not
            for product in self.matcher.document_products(manufacturer_id, crawl.documents):
                self.store.upsert_catalog_product(product, overwrite_match=False)

            tracked.summary = ResultSummary(
                pages_scraped=len(successful),
                pdfs_found=len(crawl.documents),
                product_urls_found=len(crawl.product_urls),
                matched_products=matched,
                extracted_fields=profile.extracted_fields(),
            )

        summary = tracked.summary
        return ScrapeOutcome(
            job_id=job_id,
            manufacturer_id=manufacturer_id,
            pages_scraped=summary.pages_scraped,
            pdfs_found=summary.pdfs_found,
            product_urls_found=summary.product_urls_found,
            matched_products=summary.matched_products,
            profile=profile,
            documents=crawl.documents[:RETURNED_DOCUMENT_COUNT],
        )


async def run_scrape_job(
    job_id: str,
    manufacturer_id: str,
    website_url: str,
    max_pages: int = None,
    pipeline: ScrapePipeline = None,
) -> Optional[ScrapeOutcome]:
    """
    Execute an already-created job outside the request cycle.

    Failures are recorded on the job itself, so they are logged here and
    not raised. A job the pipeline could not finalize (store errors, a
    pipeline that failed to build) is failed here.
    """
    try:
        pipeline = pipeline or ScrapePipeline()
        return await pipeline.run(manufacturer_id, website_url, max_pages, job_id=job_id)
    except ManufacturerIntelError as e:
        logger.error(f"Scrape job {job_id} failed: {e.message}")
        error = e.message
    except Exception as e:
        logger.error(f"Scrape job {job_id} failed unexpectedly: {e}", exc_info=True)
        error = describe_error(e)

    lifecycle = pipeline.lifecycle if pipeline is not None else None
    _fail_unfinished_job(job_id, error, lifecycle)
    return None


def _fail_unfinished_job(job_id: str, error: str, lifecycle: Optional[JobLifecycle] = None):
    """Fail a job still marked running; the store itself may be what broke."""
    try:
        lifecycle = lifecycle or JobLifecycle(get_store())
        job = lifecycle.store.get_job(job_id)
        if job is not None and not job.is_terminal:
            lifecycle.fail(job_id, error)
    except Exception as e:
        logger.error(f"Could not mark scrape job {job_id} failed: {e}", exc_info=True)
