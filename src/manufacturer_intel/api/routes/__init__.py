"""API route handlers."""

from . import (
    discovery,
    health,
    jobs,
    scrape,
)

__all__ = [
    "discovery",
    "health",
    "jobs",
    "scrape",
]
