"""
Keyword tables and caps for the crawler.
"""
from typing import List, Tuple


# Visited first, in this order, before any discovered link
PRIORITY_PATHS: List[str] = [
    "",  # Home page
    "/products",
    "/all-products",
    "/shop",
    "/support",
    "/support/downloads",
    "/downloads",
    "/resources",
    "/manuals",
    "/documentation",
    "/about",
    "/about-us",
    "/contact",
    "/contact-us",
]

PRODUCT_KEYWORDS = ("/product", "/item/", "/shop/", "/p/", "/catalog/", "/collections/")
SUPPORT_KEYWORDS = ("/support", "/help", "/service", "/faq", "/resources", "/manuals")
DOWNLOAD_KEYWORDS = ("/download", "/docs", "/documentation", "/library", "/files", "/literature")

SKIPPED_HREF_PREFIXES = ("#", "javascript:", "mailto:", "tel:")

# Checked in order; first hit wins
PDF_TYPE_KEYWORDS: List[Tuple[str, Tuple[str, ...]]] = [
    ("manual", ("manual", "user guide", "instruction")),
    ("spec_sheet", ("spec", "specification", "datasheet", "data sheet")),
    ("quick_start", ("quick", "start", "setup")),
    ("brochure", ("brochure", "catalog", "flyer")),
]

MAX_PRODUCT_URLS = 100
MAX_SUPPORT_URLS = 30
MAX_DOWNLOAD_URLS = 30
MAX_DOCUMENTS = 100

