"""
Status machine for crawl jobs and manufacturer knowledge records.

A job moves running -> completed | failed and never leaves a terminal
state. A knowledge record moves pending -> in_progress -> completed | failed;
a new crawl may restart it at in_progress from either terminal state.
Both records of a crawl are finalized together, so a failed job never
leaves its knowledge record at in_progress.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Dict, FrozenSet, List, Optional, Union

from ..core.exceptions import InvalidTransitionError, JobConflictError, NotFoundError
from ..core.logging import logger
from ..models.job import CrawlJob, JobStatus, ResultSummary, ScrapingStatus
from ..models.knowledge import ManufacturerKnowledge
from .store import ManufacturerStore, UpsertResult, get_store

Status = Union[JobStatus, ScrapingStatus]

JOB_TRANSITIONS: Dict[Optional[JobStatus], FrozenSet[JobStatus]] = {
    None: frozenset({JobStatus.RUNNING}),
    JobStatus.RUNNING: frozenset({JobStatus.COMPLETED, JobStatus.FAILED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.FAILED: frozenset(),
}

KNOWLEDGE_TRANSITIONS: Dict[Optional[ScrapingStatus], FrozenSet[ScrapingStatus]] = {
    None: frozenset({ScrapingStatus.PENDING, ScrapingStatus.IN_PROGRESS}),
    ScrapingStatus.PENDING: frozenset({ScrapingStatus.IN_PROGRESS}),
    ScrapingStatus.IN_PROGRESS: frozenset({ScrapingStatus.COMPLETED, ScrapingStatus.FAILED}),
    ScrapingStatus.COMPLETED: frozenset({ScrapingStatus.IN_PROGRESS}),
    ScrapingStatus.FAILED: frozenset({ScrapingStatus.IN_PROGRESS}),
}


def transition(current: Optional[Status], target: Status) -> Status:
    """
    Validate a status change.

    Args:
        current: Present status, or None for a record that does not exist yet
        target: Requested status

    Returns:
        ``target`` when the move is allowed

    Raises:
        InvalidTransitionError: the move is not in the transition table
    """
    table = KNOWLEDGE_TRANSITIONS if isinstance(target, ScrapingStatus) else JOB_TRANSITIONS
    if target not in table.get(current, frozenset()):
        raise InvalidTransitionError(
            current.value if current is not None else "none", target.value
        )
    return target


def describe_error(error: BaseException) -> str:
    """Non-empty, human-readable failure reason for a job record."""
    message = getattr(error, "message", None) or str(error)
    return message or type(error).__name__


@dataclass
class TrackedJob:
    """Handle yielded by ``JobLifecycle.track``; set ``summary`` before leaving the block."""

    job: CrawlJob
    summary: Optional[ResultSummary] = None


class JobLifecycle:
    """Creates, completes and fails crawl jobs together with their knowledge record."""

    def __init__(self, store: ManufacturerStore = None):
        self.store = store or get_store()

    def start(self, manufacturer_id: str, seed_url: str) -> CrawlJob:
        """
        Create a running job and move the knowledge record to in_progress.

        Raises:
            NotFoundError: unknown manufacturer
            JobConflictError: a job is already running for the manufacturer
        """
        if self.store.get_manufacturer(manufacturer_id) is None:
            raise NotFoundError("Manufacturer", manufacturer_id)

        running = self.store.get_running_job_for_manufacturer(manufacturer_id)
        if running is not None:
            raise JobConflictError(manufacturer_id, running.id)

        transition(None, JobStatus.RUNNING)
        job = self.store.create_job(manufacturer_id, seed_url)
        self._set_knowledge_status(manufacturer_id, ScrapingStatus.IN_PROGRESS, source_urls=[seed_url])
        return job

    def resume(self, job_id: str) -> CrawlJob:
        """Load a job created earlier by ``start``; it must still be running."""
        job = self._load(job_id)
        if job.status != JobStatus.RUNNING:
            raise InvalidTransitionError(job.status.value, JobStatus.RUNNING.value)
        return job

    def complete(self, job_id: str, summary: ResultSummary) -> CrawlJob:
        """Finalize a job as completed and stamp the knowledge record."""
        job = self._load(job_id)
        transition(job.status, JobStatus.COMPLETED)
        self.store.update_job(
            job_id,
            status=JobStatus.COMPLETED,
            pages_scraped=summary.pages_scraped,
            products_found=summary.matched_products,
            result_summary=summary,
            completed=True,
        )
        self._set_knowledge_status(job.manufacturer_id, ScrapingStatus.COMPLETED, mark_scraped=True)
        self.store.mark_manufacturer_scraped(job.manufacturer_id)
        logger.info(
            f"Job {job_id} completed: {summary.pages_scraped} pages, "
            f"{summary.pdfs_found} PDFs, {summary.matched_products} matches"
        )
        return self.store.get_job(job_id)

    def fail(self, job_id: str, error: str) -> CrawlJob:
        """Finalize a job as failed and mark the knowledge record failed."""
        job = self._load(job_id)
        if job.is_terminal:
            logger.warning(f"Job {job_id} already {job.status.value}, not failing it again")
            return job

        transition(job.status, JobStatus.FAILED)
        self.store.update_job(
            job_id,
            status=JobStatus.FAILED,
            error=error or "Unknown error",
            completed=True,
        )
        self._set_knowledge_status(job.manufacturer_id, ScrapingStatus.FAILED)
        logger.error(f"Job {job_id} failed: {error}")
        return self.store.get_job(job_id)

    def fail_stale_jobs(self, reason: str = "Service restarted while job was running") -> List[str]:
        """Fail jobs left running by a previous process. Returns their IDs."""
        stale = [job.id for job in self.store.get_running_jobs()]
        for job_id in stale:
            self.fail(job_id, reason)
        if stale:
            logger.info(f"Failed {len(stale)} stale running jobs")
        return stale

    @asynccontextmanager
    async def track(
        self, manufacturer_id: str, seed_url: str, job_id: str = None
    ) -> AsyncIterator[TrackedJob]:
        """
        Run a block under a job record.

        The job is completed with ``handle.summary`` when the block exits
        normally and failed with the exception text otherwise (the exception
        is re-raised). Cancellation counts as failure too.
        """
        job = self.resume(job_id) if job_id else self.start(manufacturer_id, seed_url)
        handle = TrackedJob(job=job)
        try:
            yield handle
        except BaseException as e:
            self.fail(job.id, describe_error(e))
            raise
        self.complete(job.id, handle.summary or ResultSummary())

    def _load(self, job_id: str) -> CrawlJob:
        job = self.store.get_job(job_id)
        if job is None:
            raise NotFoundError("Job", job_id)
        return job

    def _set_knowledge_status(
        self,
        manufacturer_id: str,
        target: ScrapingStatus,
        source_urls: List[str] = None,
        mark_scraped: bool = False,
    ):
        knowledge = self.store.get_knowledge(manufacturer_id)
        transition(knowledge.scraping_status if knowledge else None, target)

        result = self.store.update_knowledge(
            manufacturer_id,
            scraping_status=target,
            source_urls=source_urls,
            mark_scraped=mark_scraped,
        )
        if result == UpsertResult.NOT_FOUND:
            self.store.upsert_knowledge(
                ManufacturerKnowledge(
                    manufacturer_id=manufacturer_id,
                    source_urls=source_urls or [],
                    scraping_status=target,
                )
            )
