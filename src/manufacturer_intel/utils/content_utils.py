"""Content cleaning and processing utilities."""
from typing import Tuple
import re
from bs4 import BeautifulSoup

from ..models.crawl_result import TRUNCATION_SUFFIX


STRIPPED_TAGS = ["script", "style", "noscript"]
HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]


def extract_text_content(html: str, limit: int = 50000) -> str:
    """
    Project HTML onto plain text suitable for an extraction prompt.

    Scripts, styles and noscript blocks are dropped entirely. Headings become
    "### " lines, paragraphs, line breaks and list items become newlines and
    anchors become "text (url)". Remaining tags are removed, entities decoded
    and whitespace collapsed.

    Args:
        html: Raw HTML content
        limit: Character budget; longer output ends with the truncation marker

    Returns:
        Cleaned text content
    """
    soup = BeautifulSoup(html, "html.parser")

    for element in soup(STRIPPED_TAGS):
        element.decompose()

    for anchor in soup.find_all("a", href=True):
        text = anchor.get_text().strip()
        anchor.replace_with(f"{text} ({anchor['href']})")

    for heading in soup.find_all(HEADING_TAGS):
        heading.insert_before("\n### ")
        heading.insert_after("\n")
        heading.unwrap()

    for paragraph in soup.find_all("p"):
        paragraph.insert_before("\n")
        paragraph.insert_after("\n")
        paragraph.unwrap()

    for br in soup.find_all("br"):
        br.replace_with("\n")

    for item in soup.find_all("li"):
        item.insert_before("\n- ")
        item.unwrap()

    # The parser has already decoded entities; &nbsp; arrives as U+00A0
    text = soup.get_text(separator=" ").replace("\xa0", " ")
    text = _collapse_whitespace(text)

    return truncate_content(text, limit)


def truncate_content(text: str, limit: int) -> str:
    """
    Bound text to a character budget.

    The truncation marker is appended exactly once when (and only when) the
    text is cut.

    Args:
        text: Text content
        limit: Maximum number of characters kept before the marker

    Returns:
        Original text, or the first ``limit`` characters plus the marker
    """
    if len(text) <= limit:
        return text
    return text[:limit] + TRUNCATION_SUFFIX


def extract_page_metadata(html: str) -> Tuple[str, str]:
    """
    Extract the <title> and meta description of a page.

    Args:
        html: HTML content

    Returns:
        (title, meta_description), empty strings when absent
    """
    soup = BeautifulSoup(html, "html.parser")

    title = ""
    title_tag = soup.find("title")
    if title_tag:
        title = title_tag.get_text().strip()

    description = ""
    meta = soup.find("meta", attrs={"name": re.compile(r"^description$", re.I)})
    if meta and meta.get("content"):
        description = meta["content"].strip()

    return title, description


def _collapse_whitespace(text: str) -> str:
    # Collapse horizontal runs but keep newlines so paragraph hints survive
    text = re.sub(r"[ \t\r\f\v]+", " ", text)
    text = re.sub(r" *\n *", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()
