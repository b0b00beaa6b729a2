"""
Polite, bounded website crawler built on PageFetcher and the link classifier.
"""
from typing import List, Optional, Dict
import asyncio

from ..models.crawl_result import CrawlOutcome, CrawledPage, Document, PageResult
from ..core.config import settings
from ..core.exceptions import CrawlFailedError, InvalidURLError
from ..core.logging import logger
from ..utils.content_utils import extract_text_content
from ..utils.url_utils import is_http_url, strip_trailing_slash
from .classifier import discover_links
from .config import PRIORITY_PATHS
from .fetcher import PageFetcher
from .frontier import UrlFrontier


class CrawlSession:
    """
    Mutable state of one crawl: the frontier plus the running aggregates.

    A fresh session is created for every ``CrawlerService.crawl`` call.
    """

    def __init__(self, base_url: str, priority_paths: List[str] = None):
        self.base_url = strip_trailing_slash(base_url)
        self.frontier = UrlFrontier()
        self.frontier.seed(self.base_url, priority_paths if priority_paths is not None else PRIORITY_PATHS)
        self.pages: List[CrawledPage] = []
        self.documents: Dict[str, Document] = {}
        self.product_urls: Dict[str, None] = {}

    @property
    def attempts(self) -> int:
        return len(self.pages)

    def record_success(self, url: str, content: str):
        self.pages.append(CrawledPage(url=url, success=True, content=content))

    def record_failure(self, url: str, error: str):
        self.pages.append(CrawledPage(url=url, success=False, error=error))

    def merge_links(self, html: str, page_url: str) -> int:
        """
        Classify a page's links into the aggregates and queue new
        support/download pages.

        Only links on the crawled site's host count as internal, even when
        ``page_url`` is where a redirect landed on another host.

        Returns:
            Number of URLs newly added to the frontier
        """
        links = discover_links(html, page_url, site_url=self.base_url)

        for document in links.pdf_documents:
            self.documents.setdefault(document.url, document)
        for url in links.product_urls:
            self.product_urls[url] = None

        queued = 0
        for url in links.support_urls + links.download_urls:
            if self.frontier.enqueue(url):
                queued += 1
        return queued

    def to_outcome(self) -> CrawlOutcome:
        return CrawlOutcome(
            base_url=self.base_url,
            pages=list(self.pages),
            documents=list(self.documents.values()),
            product_urls=list(self.product_urls),
        )


class CrawlerService:
    """
    Sequential website crawler.

    Features:
    - Priority seed paths (home, products, support, downloads, about, contact)
    - Fixed politeness delay between fetches
    - Page ceiling counting every attempted fetch
    - Support/download links followed, product links and PDFs collected
    """

    def __init__(
        self,
        fetcher: Optional[PageFetcher] = None,
        request_delay: float = None,
        page_char_limit: int = None
    ):
        self.fetcher = fetcher
        self.request_delay = settings.CRAWLER_REQUEST_DELAY if request_delay is None else request_delay
        self.page_char_limit = page_char_limit or settings.CRAWLER_PAGE_CHAR_LIMIT

    async def crawl(self, base_url: str, max_pages: int = None) -> CrawlOutcome:
        """
        Crawl a website starting from its priority paths.

        Args:
            base_url: Site root (http or https)
            max_pages: Maximum number of fetches, successful or not

        Returns:
            CrawlOutcome with every attempted page, unique documents and
            product URLs

        Raises:
            InvalidURLError: base_url is not http(s)
            CrawlFailedError: no page could be fetched
        """
        if not is_http_url(base_url):
            raise InvalidURLError(base_url)

        max_pages = max_pages or settings.CRAWLER_MAX_PAGES
        session = CrawlSession(base_url)
        logger.info(f"Starting crawl of {session.base_url}, max {max_pages} pages")

        fetcher = self.fetcher or PageFetcher()
        async with fetcher:
            while session.attempts < max_pages:
                url = session.frontier.next()
                if url is None:
                    break
                if session.frontier.is_visited(url):
                    continue
                session.frontier.mark_visited(url)

                if session.attempts > 0 and self.request_delay > 0:
                    await asyncio.sleep(self.request_delay)

                logger.info(f"Crawling ({session.attempts + 1}/{max_pages}): {url}")
                await self._crawl_page(session, fetcher, url)

        outcome = session.to_outcome()
        successes = len(outcome.successful_pages)
        logger.info(
            f"Crawl complete. {len(outcome.pages)} pages ({successes} ok), "
            f"{len(outcome.documents)} PDFs, {len(outcome.product_urls)} product URLs found"
        )

        if successes == 0:
            raise CrawlFailedError(session.base_url, len(outcome.pages))
        return outcome

    async def _crawl_page(self, session: CrawlSession, fetcher: PageFetcher, url: str):
        """Fetch one page and fold it into the session; never raises."""
        try:
            result: PageResult = await fetcher.fetch(url)
            if not result.success or not result.html:
                session.record_failure(url, result.error or "Empty response body")
                logger.warning(f"Failed to crawl {url}: {result.error}")
                return

            content = extract_text_content(result.html, self.page_char_limit)
            session.merge_links(result.html, result.final_url or url)
            session.record_success(url, content)

        except Exception as e:
            # One broken page must not abort the crawl
            logger.warning(f"Error processing {url}: {e}")
            session.record_failure(url, str(e) or type(e).__name__)
