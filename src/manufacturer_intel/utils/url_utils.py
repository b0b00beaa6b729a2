"""URL parsing and validation utilities."""
from typing import Optional
from urllib.parse import urlparse, urljoin


ALLOWED_SCHEMES = ("http", "https")


def is_http_url(url: str) -> bool:
    """
    Check that a URL is absolute and uses http or https.

    Args:
        url: URL string to validate

    Returns:
        True if URL can be fetched by the crawler, False otherwise
    """
    try:
        result = urlparse(url)
        return result.scheme.lower() in ALLOWED_SCHEMES and bool(result.netloc)
    except (ValueError, AttributeError):
        return False


def normalize_url(url: str) -> str:
    """
    Build the comparison key for a URL.

    The key is lower-cased and has its trailing slash stripped. It is only
    used for visited/queued checks; the original string is what gets fetched.

    Args:
        url: URL to normalize

    Returns:
        Normalized comparison key
    """
    return url.strip().rstrip("/").lower()


def strip_trailing_slash(url: str) -> str:
    """Remove a trailing slash while preserving case."""
    return url.strip().rstrip("/")


def get_domain(url: str) -> Optional[str]:
    """
    Extract the host (with port, if any) from a URL.

    Args:
        url: URL to extract domain from

    Returns:
        Host or None if invalid URL
    """
    try:
        netloc = urlparse(url).netloc
        return netloc.lower() or None
    except ValueError:
        return None


def is_same_domain(url1: str, url2: str) -> bool:
    """
    Check if two URLs belong to the same host.

    Args:
        url1: First URL
        url2: Second URL

    Returns:
        True if same host, False otherwise
    """
    domain1 = get_domain(url1)
    domain2 = get_domain(url2)
    return domain1 == domain2 and domain1 is not None


def resolve_url(base_url: str, relative_url: str) -> str:
    """
    Resolve a relative URL against a base URL.

    Args:
        base_url: Base URL
        relative_url: Relative URL to resolve

    Returns:
        Absolute URL
    """
    return urljoin(base_url, relative_url)


def is_pdf_url(url: str) -> bool:
    """True when the URL path ends in .pdf (query string ignored)."""
    try:
        return urlparse(url).path.lower().endswith(".pdf")
    except ValueError:
        return False


def matches_domain(url: str, patterns) -> bool:
    """
    Check a URL's host against domain patterns.

    A pattern ending in "." (e.g. "amazon.") matches that label under any
    TLD; any other pattern (e.g. "chewy.com") matches the domain itself and
    its subdomains.

    Args:
        url: URL to inspect
        patterns: Iterable of domain patterns

    Returns:
        True if the host matches any pattern
    """
    host = (get_domain(url) or "").split(":")[0]
    if not host:
        return False

    for pattern in patterns:
        pattern = pattern.lower()
        if pattern.endswith("."):
            if host.startswith(pattern) or f".{pattern}" in host:
                return True
        elif host == pattern or host.endswith(f".{pattern}"):
            return True
    return False
