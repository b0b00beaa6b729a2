"""Domain exceptions shared by the crawler, discovery and pipeline layers."""
from typing import Dict, Any


class ManufacturerIntelError(Exception):
    """Base exception for pipeline errors."""

    def __init__(self, message: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class InvalidURLError(ManufacturerIntelError):
    """Raised for seed URLs that are not http(s)."""

    def __init__(self, url: str):
        super().__init__(
            f"Invalid URL: {url}",
            status_code=400,
            details={"url": url}
        )


class ValidationError(ManufacturerIntelError):
    """Raised when a trigger request is rejected before any network activity."""

    def __init__(self, message: str, field: str = None):
        super().__init__(
            message,
            status_code=400,
            details={"field": field} if field else {}
        )


class NotFoundError(ManufacturerIntelError):
    """Raised when a manufacturer or job does not exist."""

    def __init__(self, entity: str, entity_id: str):
        super().__init__(
            f"{entity} not found: {entity_id}",
            status_code=404,
            details={"entity": entity, "id": entity_id}
        )


class JobConflictError(ManufacturerIntelError):
    """Raised when a manufacturer already has a running crawl job."""

    def __init__(self, manufacturer_id: str, job_id: str):
        super().__init__(
            f"Crawl job {job_id} is already running for manufacturer {manufacturer_id}",
            status_code=409,
            details={"manufacturer_id": manufacturer_id, "job_id": job_id}
        )


class CrawlFailedError(ManufacturerIntelError):
    """Raised when a crawl could not fetch a single page."""

    def __init__(self, url: str, attempted: int):
        super().__init__(
            "Could not fetch any pages from the website",
            status_code=502,
            details={"url": url, "pages_attempted": attempted}
        )


class ExtractionError(ManufacturerIntelError):
    """Raised when the LLM call backing an extraction step fails."""

    def __init__(self, message: str, step: str = "extraction"):
        super().__init__(
            message,
            status_code=502,
            details={"step": step}
        )


class InvalidTransitionError(ManufacturerIntelError):
    """Raised when a status change would move a job or knowledge record backwards."""

    def __init__(self, current: str, target: str):
        super().__init__(
            f"Invalid status transition: {current} -> {target}",
            status_code=409,
            details={"current": current, "target": target}
        )
