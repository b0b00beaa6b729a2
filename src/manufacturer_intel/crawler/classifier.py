"""
Link and document classification for fetched pages.
"""
from typing import Dict, Optional
from urllib.parse import urlparse, unquote

from bs4 import BeautifulSoup

from ..models.crawl_result import DiscoveredLinks, Document, DocumentType
from ..utils.url_utils import resolve_url, is_http_url, is_same_domain, is_pdf_url
from .config import (
    PRODUCT_KEYWORDS,
    SUPPORT_KEYWORDS,
    DOWNLOAD_KEYWORDS,
    SKIPPED_HREF_PREFIXES,
    PDF_TYPE_KEYWORDS,
    MAX_PRODUCT_URLS,
    MAX_SUPPORT_URLS,
    MAX_DOWNLOAD_URLS,
    MAX_DOCUMENTS,
)


def discover_links(html: str, base_url: str, site_url: Optional[str] = None) -> DiscoveredLinks:
    """
    Bucket every anchor of a page into product, support and download links
    and typed PDF documents.

    Relative hrefs are resolved against ``base_url``. Links to hosts other
    than ``site_url``'s are dropped unless they point at a PDF, since
    manufacturers often serve documents from a separate asset domain.

    Args:
        html: Page HTML
        base_url: URL the page was served from
        site_url: URL of the site being crawled, defaults to ``base_url``

    Returns:
        DiscoveredLinks with each bucket deduplicated and capped
    """
    product_urls: Dict[str, None] = {}
    support_urls: Dict[str, None] = {}
    download_urls: Dict[str, None] = {}
    documents: Dict[str, Document] = {}
    site_url = site_url or base_url

    soup = BeautifulSoup(html, "html.parser")

    for anchor in soup.find_all("a", href=True):
        href = anchor["href"].strip()
        if not href or href.lower().startswith(SKIPPED_HREF_PREFIXES):
            continue

        try:
            url = resolve_url(base_url, href)
        except ValueError:
            continue
        if not is_http_url(url):
            continue

        is_pdf = is_pdf_url(url)
        if not is_pdf and not is_same_domain(url, site_url):
            continue

        if is_pdf:
            if url not in documents:
                link_text = anchor.get_text(" ", strip=True)
                documents[url] = Document(
                    name=pdf_display_name(url, link_text),
                    url=url,
                    type=categorize_pdf(url, link_text),
                )
            continue

        path = urlparse(url).path.lower()
        if any(keyword in path for keyword in PRODUCT_KEYWORDS):
            product_urls[url] = None
        if any(keyword in path for keyword in SUPPORT_KEYWORDS):
            support_urls[url] = None
        if any(keyword in path for keyword in DOWNLOAD_KEYWORDS):
            download_urls[url] = None

    return DiscoveredLinks(
        product_urls=list(product_urls)[:MAX_PRODUCT_URLS],
        support_urls=list(support_urls)[:MAX_SUPPORT_URLS],
        download_urls=list(download_urls)[:MAX_DOWNLOAD_URLS],
        pdf_documents=list(documents.values())[:MAX_DOCUMENTS],
    )


def categorize_pdf(url: str, link_text: str = "") -> DocumentType:
    """
    Classify a PDF by keywords in its URL and link text.

    Args:
        url: Document URL
        link_text: Anchor text

    Returns:
        The first matching DocumentType, or OTHER
    """
    combined = f"{url} {link_text}".lower()
    for doc_type, keywords in PDF_TYPE_KEYWORDS:
        if any(keyword in combined for keyword in keywords):
            return DocumentType(doc_type)
    return DocumentType.OTHER


def pdf_display_name(url: str, link_text: str = "") -> str:
    """
    Pick a human-readable name for a PDF.

    Anchor text wins when it is 4 to 99 characters long; otherwise the
    filename is used with dashes and underscores turned into spaces.
    """
    text = (link_text or "").strip()
    if 3 < len(text) < 100:
        return text

    filename = unquote(urlparse(url).path.rstrip("/").split("/")[-1])
    if filename.lower().endswith(".pdf"):
        filename = filename[:-4]
    name = filename.replace("-", " ").replace("_", " ").strip()
    return (name or "Document")[:100]
