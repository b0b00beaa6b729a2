"""
Catalog matching: group crawled PDFs into inferred products and match them
against the manufacturer's known store products.
"""

import hashlib
import re
from typing import Dict, List, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, Field

from ..core.config import settings
from ..core.exceptions import ExtractionError
from ..core.logging import logger
from ..models.crawl_result import Document, DocumentType
from ..models.knowledge import CatalogProduct, MatchMethod, ProductMatch, StoreProduct
from ..utils.json_utils import coerce_float, coerce_int, coerce_str, extract_json_block
from ..utils.url_utils import normalize_url
from .llm_client import LLMClient, get_llm_client


PRODUCT_MATCHING_PROMPT = """You are an expert at matching product data between a manufacturer's catalog and a retailer's product list.

I have a list of products from the manufacturer's website (with PDF manuals/documentation) and a list of products from an online store.

Match each manufacturer product to the most likely store product based on:
1. Product name similarity
2. Model numbers / SKU patterns
3. Product category/type

For each match, provide:
- The manufacturer product index
- The store product ID that matches
- Confidence score (0.0 to 1.0)
- Match method used (name, sku, model, category)

IMPORTANT: Only match products you're confident about (>0.6 confidence). Skip uncertain matches.

Respond in JSON format:
{
  "matches": [
    {
      "manufacturerIndex": 0,
      "storeProductId": "product_id_here",
      "confidence": 0.85,
      "method": "name"
    }
  ]
}

Respond with raw JSON only."""

# Words that describe the document rather than the product it belongs to
DOCUMENT_WORDS = re.compile(r"manual|guide|spec|sheet|instruction|user|quick|start|pdf", re.IGNORECASE)

MIN_PRODUCT_KEY_LENGTH = 3
PSEUDO_SKU_LENGTH = 50
DOCUMENT_SKU_STEM_LENGTH = 30
DOCUMENT_SKU_HASH_LENGTH = 8


class ProductGroup(BaseModel):
    """PDFs that appear to document the same product."""
    key: str
    documents: List[Document] = Field(default_factory=list)

    def first_of(self, doc_type: DocumentType) -> Optional[str]:
        for document in self.documents:
            if document.type == doc_type:
                return document.url
        return None


def product_key(document_name: str) -> str:
    """Infer a product key from a document name by dropping document-type words."""
    key = DOCUMENT_WORDS.sub("", document_name.lower())
    return re.sub(r"\s+", " ", key).strip()


def pseudo_sku(name: str) -> str:
    """Stable per-manufacturer SKU for an inferred product."""
    return name[:PSEUDO_SKU_LENGTH]


def document_sku(url: str) -> str:
    """
    Stable per-manufacturer SKU for a standalone document.

    The readable part is the file stem; the hash of the whole URL keeps
    same-named files in different folders apart.
    """
    filename = urlparse(url).path.rstrip("/").split("/")[-1]
    stem = re.sub(r"\.pdf$", "", filename, flags=re.IGNORECASE)[:DOCUMENT_SKU_STEM_LENGTH]
    digest = hashlib.sha1(normalize_url(url).encode("utf-8")).hexdigest()[:DOCUMENT_SKU_HASH_LENGTH]
    return f"pdf-{stem or 'unknown'}-{digest}"


class CatalogMatcher:
    """Groups documents and matches the groups to store products via the LLM."""

    def __init__(
        self,
        llm: Optional[LLMClient] = None,
        threshold: float = None,
        max_catalog_items: int = None,
        max_store_products: int = None,
        max_documents: int = None,
    ):
        self.llm = llm or get_llm_client()
        self.threshold = settings.MATCH_CONFIDENCE_THRESHOLD if threshold is None else threshold
        self.max_catalog_items = max_catalog_items or settings.MATCH_MAX_CATALOG_ITEMS
        self.max_store_products = max_store_products or settings.MATCH_MAX_STORE_PRODUCTS
        self.max_documents = max_documents or settings.MATCH_MAX_UNMATCHED_DOCUMENTS

    def group_documents(self, documents: List[Document]) -> List[ProductGroup]:
        """
        Group PDFs by inferred product key, in first-seen order.

        Documents whose key is shorter than three characters are left out
        of grouping (they are still persisted as standalone documents).
        """
        groups: Dict[str, ProductGroup] = {}
        for document in documents:
            key = product_key(document.name)
            if len(key) < MIN_PRODUCT_KEY_LENGTH:
                continue
            group = groups.setdefault(key, ProductGroup(key=key))
            group.documents.append(document.model_copy(update={"product_name": key}))
        return list(groups.values())

    async def match(
        self, groups: List[ProductGroup], store_products: List[StoreProduct]
    ) -> List[ProductMatch]:
        """
        Ask the LLM to match product groups to store products.

        Only matches above the confidence threshold that point at a listed
        group and a known store product are returned, one per group. A failed
        LLM call is logged and yields no matches.
        """
        groups = groups[: self.max_catalog_items]
        store_products = store_products[: self.max_store_products]
        if not groups or not store_products:
            return []

        logger.info(f"Matching {len(groups)} catalog products with {len(store_products)} store products...")
        user_prompt = (
            "MANUFACTURER PRODUCTS (from website):\n"
            + "\n".join(f"{i}. {group.key}" for i, group in enumerate(groups))
            + "\n\nSTORE PRODUCTS (from store):\n"
            + "\n".join(f"ID: {p.id} | Name: {p.name} | SKU: {p.sku or 'N/A'}" for p in store_products)
            + "\n\nMatch the manufacturer products to store products. "
            "Be strict - only match when you're confident."
        )

        try:
            reply = await self.llm.complete(PRODUCT_MATCHING_PROMPT, user_prompt, json_mode=True)
        except ExtractionError as e:
            logger.error(f"Product matching error: {e.message}")
            return []

        data = extract_json_block(reply, kind="object")
        raw_matches = data.get("matches") if isinstance(data, dict) else None
        if not isinstance(raw_matches, list):
            logger.warning("Product matching returned no matches array")
            return []

        known_ids = {p.id for p in store_products}
        best: Dict[int, ProductMatch] = {}
        for raw in raw_matches:
            match = self._parse_match(raw, len(groups), known_ids)
            if match is None:
                continue
            current = best.get(match.manufacturer_index)
            if current is None or match.confidence > current.confidence:
                best[match.manufacturer_index] = match

        logger.info(f"Accepted {len(best)} of {len(raw_matches)} proposed matches")
        return [best[index] for index in sorted(best)]

    def _parse_match(self, raw, group_count: int, known_ids) -> Optional[ProductMatch]:
        if not isinstance(raw, dict):
            return None

        index = coerce_int(raw.get("manufacturerIndex"))
        product_id = coerce_str(raw.get("storeProductId") or raw.get("shopifyProductId"))
        confidence = coerce_float(raw.get("confidence"))

        if index is None or not 0 <= index < group_count:
            return None
        if product_id not in known_ids:
            return None
        if confidence is None or confidence <= self.threshold or confidence > 1.0:
            logger.debug(f"Dropping match {index} -> {product_id} with confidence {confidence}")
            return None

        try:
            method = MatchMethod(str(raw.get("method", "")).strip().lower())
        except ValueError:
            method = MatchMethod.NAME

        return ProductMatch(
            manufacturer_index=index,
            store_product_id=product_id,
            confidence=confidence,
            method=method,
        )

    def matched_products(
        self, manufacturer_id: str, groups: List[ProductGroup], matches: List[ProductMatch]
    ) -> List[CatalogProduct]:
        """Catalog products for accepted matches, keyed by pseudo-SKU."""
        products = []
        for match in matches:
            group = groups[match.manufacturer_index]
            products.append(
                CatalogProduct(
                    manufacturer_id=manufacturer_id,
                    name=group.key,
                    sku=pseudo_sku(group.key),
                    manual_url=group.first_of(DocumentType.MANUAL),
                    spec_sheet_url=group.first_of(DocumentType.SPEC_SHEET),
                    quick_start_url=group.first_of(DocumentType.QUICK_START),
                    documents=group.documents,
                    matched_product_id=match.store_product_id,
                    match_confidence=match.confidence,
                    match_method=match.method,
                )
            )
        return products

    def document_products(self, manufacturer_id: str, documents: List[Document]) -> List[CatalogProduct]:
        """One unmatched catalog product per crawled PDF, capped."""
        return [
            CatalogProduct(
                manufacturer_id=manufacturer_id,
                name=document.name,
                sku=document_sku(document.url),
                manual_url=document.url if document.type == DocumentType.MANUAL else None,
                spec_sheet_url=document.url if document.type == DocumentType.SPEC_SHEET else None,
                quick_start_url=document.url if document.type == DocumentType.QUICK_START else None,
                documents=[document],
            )
            for document in documents[: self.max_documents]
        ]
