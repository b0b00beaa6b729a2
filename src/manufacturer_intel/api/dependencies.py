"""FastAPI dependencies."""
from fastapi import Depends

from ..pipeline.manager import ScrapePipeline
from ..services.discovery import WebsiteDiscoveryPipeline
from ..services.lifecycle import JobLifecycle
from ..services.store import ManufacturerStore, get_store


def get_manufacturer_store() -> ManufacturerStore:
    """Shared store; overridden in tests."""
    return get_store()


def get_scrape_pipeline(
    store: ManufacturerStore = Depends(get_manufacturer_store)
) -> ScrapePipeline:
    return ScrapePipeline(store=store, lifecycle=JobLifecycle(store))


def get_discovery_pipeline(
    store: ManufacturerStore = Depends(get_manufacturer_store)
) -> WebsiteDiscoveryPipeline:
    return WebsiteDiscoveryPipeline(store=store)
