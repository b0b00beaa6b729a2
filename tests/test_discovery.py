"""Tests for official-website discovery."""

import json
from unittest.mock import AsyncMock, MagicMock, call, patch

import httpx
import pytest

from conftest import FakeLLM, make_fetcher
from manufacturer_intel.core.exceptions import ExtractionError, NotFoundError, ValidationError
from manufacturer_intel.models.discovery import (
    BrandType,
    CandidateSource,
    Confidence,
    DiscoveryResult,
    SearchResult,
    WebsiteCandidate,
)
from manufacturer_intel.services.discovery import (
    WebsiteDiscoveryPipeline,
    WebsiteDiscoveryService,
    brand_variants,
)


ACME_SEARCH = json.dumps([
    {"url": "https://acme.example", "title": "Acme Grooming", "snippet": "Professional clippers"},
    {"url": "https://www.amazon.com/stores/acme", "title": "Acme on Amazon", "snippet": ""},
    {"url": "https://acme.example/", "title": "Acme Grooming (dup)", "snippet": ""},
    {"url": "ftp://acme.example/files", "title": "FTP", "snippet": ""},
])


def selection(website, confidence="high", needs_review=False, **extra):
    return json.dumps({
        "website": website,
        "confidence": confidence,
        "reasoning": "Brand appears on the homepage",
        "brandType": "manufacturer",
        "alternativeUrls": [],
        "needsReview": needs_review,
        **extra,
    })


def make_service(llm, routes, **kwargs):
    return WebsiteDiscoveryService(
        llm=llm, fetcher=make_fetcher(routes), request_delay=0, **kwargs
    )


def test_brand_variants():
    assert brand_variants("Acme Grooming") == ["acme grooming", "acmegrooming"]
    assert brand_variants("A.C.M.E") == ["a.c.m.e", "acme"]
    assert brand_variants("!!!") == ["!!!"]
    assert brand_variants("   ") == []


@pytest.mark.asyncio
async def test_search_dedupes_and_skips_non_http():
    service = make_service(FakeLLM([ACME_SEARCH]), {})

    results = await service.search("Acme Grooming", "Sample products: X200")

    assert [r.url for r in results] == ["https://acme.example", "https://www.amazon.com/stores/acme"]
    request = service.llm.calls[0]
    assert request["web_search"] is True
    assert "Sample products: X200" in request["user"]


@pytest.mark.asyncio
@pytest.mark.parametrize("reply", [
    "I could not find anything.",
    '{"url": "https://acme.example"}',
    "",
    ExtractionError("LLM request failed: connection reset"),
])
async def test_search_malformed_or_failed_returns_empty(reply):
    service = make_service(FakeLLM([reply]), {})
    assert await service.search("Acme Grooming") == []


def test_excluded_domains_are_dropped():
    service = make_service(FakeLLM(), {})
    results = [
        SearchResult(url="https://acme.example"),
        SearchResult(url="https://www.amazon.co.uk/acme"),
        SearchResult(url="https://shop.chewy.com/acme"),
        SearchResult(url="https://facebook.com/acme"),
    ]

    candidates = service.to_candidates(results)

    assert [c.url for c in candidates] == ["https://acme.example"]


@pytest.mark.asyncio
async def test_search_candidates_filters_after_search():
    service = make_service(FakeLLM([ACME_SEARCH]), {})

    candidates = await service.search_candidates("Acme Grooming")

    assert [c.url for c in candidates] == ["https://acme.example"]
    assert candidates[0].title == "Acme Grooming"
    assert candidates[0].source == CandidateSource.SEARCH


@pytest.mark.asyncio
async def test_verify_candidate_collects_evidence(home_html):
    service = make_service(FakeLLM(), {"https://acme.example/": (200, home_html)})

    verification = await service.verify_candidate("https://acme.example", "Acme Grooming")

    assert verification.valid
    assert verification.evidence.brand_mentioned
    assert verification.evidence.is_pet_related
    assert verification.evidence.page_title == "Acme Grooming - Professional Pet Clippers"
    assert verification.evidence.meta_description == "Acme makes clippers for dog groomers."


@pytest.mark.asyncio
async def test_verify_candidate_unreachable():
    service = make_service(FakeLLM(), {"https://acme.example/": (503, "down")})

    verification = await service.verify_candidate("https://acme.example", "Acme Grooming")

    assert not verification.valid
    assert verification.error.startswith("HTTP 503")


@pytest.mark.asyncio
async def test_verify_top_candidates_follows_redirects(home_html):
    routes = {
        "https://acme.example/": lambda request: httpx.Response(
            301, headers={"location": "https://www.acme.example/"}
        ),
        "https://www.acme.example/": (200, home_html),
    }
    service = make_service(FakeLLM(), routes, verify_top_n=2)
    candidates = [
        WebsiteCandidate(url="https://acme.example"),
        WebsiteCandidate(url="https://broken.example"),
        WebsiteCandidate(url="https://third.example"),
    ]

    evidence = await service.verify_top_candidates("Acme Grooming", candidates)

    assert candidates[0].url == "https://www.acme.example/"
    assert candidates[0].content_verification.brand_mentioned
    assert candidates[1].content_verification is None
    assert set(evidence) == {"https://acme.example", "https://www.acme.example"}


@pytest.mark.asyncio
async def test_discover_high_confidence(home_html):
    llm = FakeLLM([ACME_SEARCH, selection("https://acme.example")])
    service = make_service(llm, {"https://acme.example/": (200, home_html)})

    result = await service.discover("Acme Grooming")

    assert result.website == "https://acme.example"
    assert result.confidence == Confidence.HIGH
    assert result.brand_type == BrandType.MANUFACTURER
    assert not result.needs_review
    assert result.is_auto_persistable
    assert result.verification_details.brand_mentioned
    assert len(result.search_results) == 2
    # The verified evidence is shown to the selection call
    assert 'Brand "Acme Grooming" mentioned on page: YES' in llm.calls[1]["user"]
    assert "amazon" not in llm.calls[1]["user"]


@pytest.mark.asyncio
async def test_discover_downgrades_when_brand_missing():
    other = "<html><head><title>Other Co</title></head><body>Dog shampoo</body></html>"
    llm = FakeLLM(["[]", selection("https://other.example", confidence="high")])
    service = make_service(llm, {"https://other.example/": (200, other)})

    result = await service.discover("Acme Grooming")

    # The selected site was never a candidate, so it was fetched before accepting it
    assert result.website == "https://other.example"
    assert result.confidence == Confidence.LOW
    assert result.needs_review
    assert 'Brand name "Acme Grooming" was not found' in result.reasoning
    assert result.verification_details.brand_mentioned is False
    assert not result.is_auto_persistable


@pytest.mark.asyncio
async def test_discover_downgrades_unreachable_selection():
    llm = FakeLLM(["[]", selection("https://gone.example", confidence="medium")])
    service = make_service(llm, {})

    result = await service.discover("Acme Grooming")

    assert result.confidence == Confidence.LOW
    assert result.needs_review
    assert "could not be fetched" in result.reasoning


@pytest.mark.asyncio
async def test_discover_downgrades_excluded_selection():
    llm = FakeLLM(["[]", selection("https://www.amazon.com/stores/acme")])
    service = make_service(llm, {})

    result = await service.discover("Acme Grooming")

    assert result.confidence == Confidence.LOW
    assert result.needs_review
    assert "reseller" in result.reasoning


@pytest.mark.asyncio
@pytest.mark.parametrize("reply", ["no json here", ExtractionError("LLM request timed out after 60s")])
async def test_selection_failure_needs_review(reply):
    service = make_service(FakeLLM(["[]", reply]), {})

    result = await service.discover("Acme Grooming")

    assert result.website is None
    assert result.confidence == Confidence.LOW
    assert result.needs_review


@pytest.mark.asyncio
async def test_selection_defaults_needs_review_from_confidence(home_html):
    reply = json.dumps({"website": "https://acme.example", "confidence": "LOW", "brandType": "retailer"})
    service = make_service(FakeLLM(["[]", reply]), {"https://acme.example/": (200, home_html)})

    result = await service.discover("Acme Grooming")

    assert result.needs_review
    assert result.brand_type == BrandType.UNKNOWN
    assert result.reasoning == "Unknown"


@pytest.mark.asyncio
async def test_discover_requires_brand():
    with pytest.raises(ValidationError):
        await make_service(FakeLLM(), {}).discover("  ")


@pytest.mark.asyncio
async def test_pipeline_persists_confident_result(store, manufacturer, home_html):
    llm = FakeLLM([ACME_SEARCH, selection("https://acme.example")])
    pipeline = WebsiteDiscoveryPipeline(
        store=store, service=make_service(llm, {"https://acme.example/": (200, home_html)})
    )

    outcome = await pipeline.discover_for_manufacturer(manufacturer_id=manufacturer.id)

    assert outcome.updated
    assert outcome.manufacturer_id == manufacturer.id
    assert store.get_manufacturer(manufacturer.id).website == "https://acme.example"
    assert "Sample products: Acme Dryer D5, Acme Pro Clipper X200" in llm.calls[0]["user"]


@pytest.mark.asyncio
async def test_pipeline_keeps_website_when_review_needed(store, manufacturer, home_html):
    llm = FakeLLM(["[]", selection("https://acme.example", confidence="medium", needs_review=True)])
    pipeline = WebsiteDiscoveryPipeline(
        store=store, service=make_service(llm, {"https://acme.example/": (200, home_html)})
    )

    outcome = await pipeline.discover_for_manufacturer(manufacturer_id=manufacturer.id)

    assert not outcome.updated
    assert outcome.result.website == "https://acme.example"
    assert store.get_manufacturer(manufacturer.id).website is None


@pytest.mark.asyncio
async def test_pipeline_brand_name_only_never_persists(store, home_html):
    llm = FakeLLM(["[]", selection("https://acme.example")])
    pipeline = WebsiteDiscoveryPipeline(
        store=store, service=make_service(llm, {"https://acme.example/": (200, home_html)})
    )

    outcome = await pipeline.discover_for_manufacturer(brand_name="Acme Grooming")

    assert outcome.manufacturer_id is None
    assert outcome.result.is_auto_persistable
    assert not outcome.updated


@pytest.mark.asyncio
async def test_pipeline_argument_errors(store):
    pipeline = WebsiteDiscoveryPipeline(store=store, service=make_service(FakeLLM(), {}))

    with pytest.raises(ValidationError):
        await pipeline.discover_for_manufacturer()
    with pytest.raises(NotFoundError):
        await pipeline.discover_for_manufacturer(manufacturer_id="missing")


@pytest.mark.asyncio
async def test_batch_dry_run_makes_no_calls(store, manufacturer):
    store.add_manufacturer("Beta Pets", website="https://beta.myshopify.com")
    store.add_manufacturer("Gamma Pets", website="https://gamma.example")
    llm = FakeLLM()
    pipeline = WebsiteDiscoveryPipeline(store=store, service=make_service(llm, {}), batch_delay=0)

    report = await pipeline.discover_batch(limit=10, dry_run=True)

    assert report.dry_run
    assert report.processed == 2
    assert [c.name for c in report.candidates] == ["Acme Grooming", "Beta Pets"]
    assert report.candidates[0].sample_products == ["Acme Dryer D5", "Acme Pro Clipper X200"]
    assert llm.calls == []
    assert store.get_manufacturer(manufacturer.id).website is None


@pytest.mark.asyncio
async def test_batch_counts_outcomes(store, manufacturer):
    beta = store.add_manufacturer("Beta Pets")
    store.add_manufacturer("Delta Pets")
    service = MagicMock()
    service.discover = AsyncMock(side_effect=[
        DiscoveryResult(
            brand_name="Acme Grooming", website="https://acme.example",
            confidence=Confidence.HIGH, needs_review=False,
        ),
        RuntimeError("search backend exploded"),
        DiscoveryResult(brand_name="Delta Pets", confidence=Confidence.LOW, needs_review=True),
    ])
    pipeline = WebsiteDiscoveryPipeline(store=store, service=service, batch_delay=0)

    report = await pipeline.discover_batch(limit=10)

    assert report.processed == 3
    assert (report.success_count, report.needs_review_count, report.failed_count) == (1, 1, 1)
    assert report.results[0].validated_url == "https://acme.example"
    assert report.results[1].id == beta.id
    assert report.results[1].error == "search backend exploded"
    assert store.get_manufacturer(manufacturer.id).website == "https://acme.example"


@pytest.mark.asyncio
async def test_verification_waits_between_candidates(home_html):
    service = WebsiteDiscoveryService(
        llm=FakeLLM(),
        fetcher=make_fetcher({"https://acme.example/": (200, home_html)}),
        request_delay=0.3,
        verify_top_n=3,
    )
    candidates = [
        WebsiteCandidate(url="https://acme.example"),
        WebsiteCandidate(url="https://broken.example"),
        WebsiteCandidate(url="https://third.example"),
    ]

    with patch("manufacturer_intel.services.discovery.asyncio.sleep", new_callable=AsyncMock) as sleep:
        await service.verify_top_candidates("Acme Grooming", candidates)

    assert sleep.await_args_list == [call(0.3), call(0.3)]


@pytest.mark.asyncio
async def test_batch_waits_between_manufacturers(store, manufacturer):
    store.add_manufacturer("Beta Pets")
    service = MagicMock()
    service.discover = AsyncMock(return_value=DiscoveryResult(
        brand_name="Acme Grooming", confidence=Confidence.LOW, needs_review=True,
    ))
    pipeline = WebsiteDiscoveryPipeline(store=store, service=service, batch_delay=1.5)

    with patch("manufacturer_intel.services.discovery.asyncio.sleep", new_callable=AsyncMock) as sleep:
        report = await pipeline.discover_batch(limit=10)

    assert report.processed == 2
    sleep.assert_awaited_once_with(1.5)
