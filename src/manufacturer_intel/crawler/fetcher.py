"""
Single-page HTTP fetcher used by the crawler and by discovery verification.
"""
import asyncio
from typing import Dict, Optional

import httpx

from ..core.config import settings
from ..core.logging import logger
from ..models.crawl_result import PageResult
from ..utils.url_utils import is_http_url


class PageFetcher:
    """
    Bounded HTTP GET with a browser user agent and transparent redirects.

    Failures (non-2xx, timeouts, transport errors) are returned as a
    ``PageResult`` with ``success=False``; nothing is retried here.
    """

    def __init__(
        self,
        timeout: float = None,
        user_agent: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.timeout = timeout or settings.CRAWLER_TIMEOUT
        self.user_agent = user_agent or settings.CRAWLER_USER_AGENT
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self):
        """Async context manager entry."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                follow_redirects=True,
                timeout=self.timeout,
                headers=self._get_headers()
            )
            self._owns_client = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def fetch(self, url: str) -> PageResult:
        """
        Fetch one URL.

        Args:
            url: Absolute http(s) URL

        Returns:
            PageResult carrying the HTML and final URL, or a failure reason
        """
        if not is_http_url(url):
            return PageResult(url=url, success=False, error="Invalid URL protocol")

        if self._client is None:
            async with self:
                return await self._fetch(url)
        return await self._fetch(url)

    async def _fetch(self, url: str) -> PageResult:
        try:
            # wait_for bounds wall-clock time; httpx timeouts are per phase
            response = await asyncio.wait_for(
                self._client.get(url, headers=self._get_headers(), timeout=self.timeout),
                timeout=self.timeout
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            logger.warning(f"Timeout fetching {url} after {self.timeout}s")
            return PageResult(url=url, success=False, error=f"Timeout after {self.timeout}s")
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning(f"Error fetching {url}: {e}")
            return PageResult(url=url, success=False, error=str(e) or type(e).__name__)

        final_url = str(response.url)
        if not response.is_success:
            return PageResult(
                url=url,
                final_url=final_url,
                success=False,
                status_code=response.status_code,
                error=f"HTTP {response.status_code}: {response.reason_phrase}"
            )

        return PageResult(
            url=url,
            final_url=final_url,
            success=True,
            status_code=response.status_code,
            html=response.text
        )

    def _get_headers(self) -> Dict[str, str]:
        """Browser-like request headers."""
        return {
            "User-Agent": self.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.5",
        }
