"""Celery application for out-of-process scrape jobs (SCRAPE_DISPATCH=celery)."""
from celery import Celery
from ..core.config import settings

celery_app = Celery(
    "manufacturer_intel",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["manufacturer_intel.tasks.scrape_tasks"]
)

# A crawl is capped at CRAWLER_MAX_PAGES fetches plus two LLM calls
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=15 * 60,
    task_soft_time_limit=14 * 60,
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=100,
    result_expires=24 * 3600
)
