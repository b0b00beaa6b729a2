"""Manufacturer Intel services."""

from .store import get_store, ManufacturerStore, UpsertResult
from .llm_client import get_llm_client, LLMClient
from .lifecycle import JobLifecycle, transition
from .extraction import CompanyExtractor
from .matching import CatalogMatcher
from .discovery import WebsiteDiscoveryService, WebsiteDiscoveryPipeline

__all__ = [
    "get_store",
    "ManufacturerStore",
    "UpsertResult",
    "get_llm_client",
    "LLMClient",
    "JobLifecycle",
    "transition",
    "CompanyExtractor",
    "CatalogMatcher",
    "WebsiteDiscoveryService",
    "WebsiteDiscoveryPipeline",
]
