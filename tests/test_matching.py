"""Tests for catalog grouping and matching."""

import json

import pytest

from conftest import FakeLLM
from manufacturer_intel.core.exceptions import ExtractionError
from manufacturer_intel.models.crawl_result import Document, DocumentType
from manufacturer_intel.models.knowledge import MatchMethod, StoreProduct
from manufacturer_intel.services.matching import (
    CatalogMatcher,
    document_sku,
    product_key,
    pseudo_sku,
)


@pytest.fixture
def documents():
    return [
        Document(name="X200 User Manual", url="https://acme.example/x200-manual.pdf", type=DocumentType.MANUAL),
        Document(name="X200 Spec Sheet", url="https://acme.example/x200-spec.pdf", type=DocumentType.SPEC_SHEET),
        Document(name="D5 Dryer Quick Start", url="https://acme.example/d5-qs.pdf", type=DocumentType.QUICK_START),
        Document(name="PDF", url="https://acme.example/files/", type=DocumentType.OTHER),
    ]


@pytest.fixture
def store_products():
    return [
        StoreProduct(id="prod-1", manufacturer_id="mfr-1", name="Acme Pro Clipper X200", sku="X200"),
        StoreProduct(id="prod-2", manufacturer_id="mfr-1", name="Acme Dryer D5", sku="D5"),
    ]


def reply(*matches):
    return json.dumps({"matches": list(matches)})


@pytest.mark.parametrize("name,key", [
    ("X200 User Manual", "x200"),
    ("Blade Care  Instruction Guide", "blade care"),
    ("Quick Start", ""),
    ("D5 Dryer Spec Sheet PDF", "d5 dryer"),
])
def test_product_key(name, key):
    assert product_key(name) == key


def test_skus():
    assert pseudo_sku("x" * 80) == "x" * 50
    assert document_sku("https://acme.example/docs/x200-manual.pdf").startswith("pdf-x200-manual-")
    assert document_sku("https://acme.example/").startswith("pdf-unknown-")
    assert len(document_sku("https://acme.example/" + "a" * 100 + ".pdf")) == len("pdf-") + 30 + 1 + 8


def test_document_sku_is_stable_per_url():
    url = "https://acme.example/files/x200/manual.pdf"
    assert document_sku(url) == document_sku(url)
    assert document_sku(url) == document_sku("https://ACME.example/files/x200/manual.pdf/")
    assert document_sku(url) != document_sku("https://acme.example/files/d5/manual.pdf")
    # Long names sharing their first characters still differ
    prefix = "https://acme.example/" + "b" * 60
    assert document_sku(prefix + "-one.pdf") != document_sku(prefix + "-two.pdf")


def test_group_documents(documents):
    groups = CatalogMatcher(FakeLLM()).group_documents(documents)

    assert [g.key for g in groups] == ["x200", "d5 dryer"]
    assert len(groups[0].documents) == 2
    assert groups[0].documents[0].product_name == "x200"
    assert groups[0].first_of(DocumentType.SPEC_SHEET) == "https://acme.example/x200-spec.pdf"
    assert groups[0].first_of(DocumentType.QUICK_START) is None
    # Grouping does not mutate the crawled documents
    assert documents[0].product_name is None


@pytest.mark.asyncio
async def test_match_filters_proposals(documents, store_products):
    llm = FakeLLM([reply(
        {"manufacturerIndex": 0, "storeProductId": "prod-1", "confidence": 0.7, "method": "name"},
        {"manufacturerIndex": 0, "storeProductId": "prod-1", "confidence": 0.92, "method": "sku"},
        {"manufacturerIndex": 1, "storeProductId": "prod-2", "confidence": 0.6, "method": "name"},
        {"manufacturerIndex": 1, "shopifyProductId": "prod-9", "confidence": 0.95},
        {"manufacturerIndex": 7, "storeProductId": "prod-2", "confidence": 0.9},
        {"manufacturerIndex": "one", "storeProductId": "prod-2", "confidence": 0.9},
        "garbage",
    )])
    matcher = CatalogMatcher(llm)
    groups = matcher.group_documents(documents)

    matches = await matcher.match(groups, store_products)

    assert len(matches) == 1
    assert matches[0].manufacturer_index == 0
    assert matches[0].store_product_id == "prod-1"
    assert matches[0].confidence == 0.92
    assert matches[0].method == MatchMethod.SKU
    assert "ID: prod-1 | Name: Acme Pro Clipper X200 | SKU: X200" in llm.calls[0]["user"]
    assert "0. x200" in llm.calls[0]["user"]


@pytest.mark.asyncio
async def test_match_accepts_legacy_id_key_and_unknown_method(documents, store_products):
    llm = FakeLLM([reply(
        {"manufacturerIndex": 1, "shopifyProductId": "prod-2", "confidence": 0.61, "method": "vibes"},
    )])
    matcher = CatalogMatcher(llm)

    matches = await matcher.match(matcher.group_documents(documents), store_products)

    assert [(m.manufacturer_index, m.store_product_id, m.method) for m in matches] == [
        (1, "prod-2", MatchMethod.NAME)
    ]


@pytest.mark.asyncio
@pytest.mark.parametrize("llm_reply", [
    ExtractionError("LLM request failed: 500"),
    "no json",
    json.dumps({"matches": "none"}),
])
async def test_match_failure_yields_no_matches(documents, store_products, llm_reply):
    matcher = CatalogMatcher(FakeLLM([llm_reply]))
    assert await matcher.match(matcher.group_documents(documents), store_products) == []


@pytest.mark.asyncio
async def test_match_skips_llm_without_inputs(documents):
    llm = FakeLLM()
    matcher = CatalogMatcher(llm)

    assert await matcher.match(matcher.group_documents(documents), []) == []
    assert await matcher.match([], []) == []
    assert llm.calls == []


@pytest.mark.asyncio
async def test_matched_products(documents, store_products):
    llm = FakeLLM([reply({"manufacturerIndex": 0, "storeProductId": "prod-1", "confidence": 0.9, "method": "model"})])
    matcher = CatalogMatcher(llm)
    groups = matcher.group_documents(documents)
    matches = await matcher.match(groups, store_products)

    products = matcher.matched_products("mfr-1", groups, matches)

    assert len(products) == 1
    product = products[0]
    assert product.sku == "x200"
    assert product.manual_url == "https://acme.example/x200-manual.pdf"
    assert product.spec_sheet_url == "https://acme.example/x200-spec.pdf"
    assert product.matched_product_id == "prod-1"
    assert product.match_method == MatchMethod.MODEL


def test_document_products_are_capped(documents):
    matcher = CatalogMatcher(FakeLLM(), max_documents=2)

    products = matcher.document_products("mfr-1", documents)

    assert [p.sku for p in products] == [
        document_sku("https://acme.example/x200-manual.pdf"),
        document_sku("https://acme.example/x200-spec.pdf"),
    ]
    assert products[0].manual_url == "https://acme.example/x200-manual.pdf"
    assert products[1].manual_url is None
    assert all(p.matched_product_id is None for p in products)
