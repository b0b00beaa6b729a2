"""Pytest fixtures for Manufacturer Intel tests."""

import shutil
import tempfile
from pathlib import Path
from typing import Callable, Dict, Generator, List, Optional, Tuple, Union

import httpx
import pytest

from manufacturer_intel.core.exceptions import ExtractionError
from manufacturer_intel.crawler.fetcher import PageFetcher
from manufacturer_intel.services.store import ManufacturerStore


Route = Union[Tuple[int, str], Callable[[httpx.Request], httpx.Response]]


class FakeLLM:
    """
    Stand-in for LLMClient.

    Replies are served in order; an Exception instance in the queue is
    raised instead of returned. Every call is recorded.
    """

    def __init__(self, replies: List[Union[str, Exception]] = None):
        self.replies = list(replies or [])
        self.calls: List[Dict] = []

    async def complete(self, system_prompt: str, user_prompt: str, **kwargs) -> str:
        self.calls.append({"system": system_prompt, "user": user_prompt, **kwargs})
        if not self.replies:
            return ""
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


def make_fetcher(routes: Dict[str, Route], timeout: float = 5.0) -> PageFetcher:
    """
    PageFetcher over an httpx.MockTransport.

    ``routes`` maps exact URLs to ``(status, html)`` or to a handler; any
    other URL answers 404.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        route = routes.get(str(request.url))
        if route is None:
            return httpx.Response(404, text="not found")
        if callable(route):
            return route(request)
        status, body = route
        return httpx.Response(status, text=body, headers={"content-type": "text/html"})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), follow_redirects=True)
    return PageFetcher(timeout=timeout, client=client)


@pytest.fixture(scope="function")
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    temp_path = Path(tempfile.mkdtemp(prefix="manufacturer_intel_test_"))
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture(scope="function")
def store(temp_dir: Path) -> ManufacturerStore:
    """Store backed by a throwaway SQLite file."""
    return ManufacturerStore(db_path=str(temp_dir / "test.db"))


@pytest.fixture(scope="function")
def manufacturer(store: ManufacturerStore):
    """A stored manufacturer with two storefront products."""
    mfr = store.add_manufacturer("Acme Grooming", website=None, manufacturer_id="mfr-1")
    store.add_store_product(mfr.id, "Acme Pro Clipper X200", sku="X200", product_id="prod-1")
    store.add_store_product(mfr.id, "Acme Dryer D5", sku="D5", product_id="prod-2")
    return mfr


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture(scope="function")
def home_html() -> str:
    """Manufacturer home page with product, support and document links."""
    return """
    <!DOCTYPE html>
    <html>
    <head>
        <title>Acme Grooming - Professional Pet Clippers</title>
        <meta name="description" content="Acme makes clippers for dog groomers.">
        <script>var cta = "Buy Now";</script>
        <style>.hero { color: red; }</style>
    </head>
    <body>
        <h1>Acme Grooming</h1>
        <p>Founded in 1985, Acme builds professional clippers &amp; blades.</p>
        <ul>
            <li><a href="/products/widget-42">Widget 42</a></li>
            <li><a href="/support/faq">FAQ</a></li>
            <li><a href="/downloads/library">Library</a></li>
            <li><a href="https://cdn.other.com/manual.pdf">Widget Manual</a></li>
            <li><a href="/files/x200-spec-sheet.pdf">X200 Spec Sheet</a></li>
            <li><a href="mailto:sales@acme.example">Email us</a></li>
            <li><a href="https://facebook.com/acme">Facebook</a></li>
        </ul>
    </body>
    </html>
    """
