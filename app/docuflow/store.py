"""
Result store for extraction jobs.

The store maps a job identifier to its current ``JobRecord``. Writes replace
the whole record and reads return a copy, so a reader never observes a
partially written record. The in-memory implementation lives for the
lifetime of the application: it is created in the FastAPI lifespan, kept on
``app.state`` and cleared on shutdown.
"""

import logging
from typing import Any, Protocol

from fastapi import Request

from .models import JobRecord, JobStatus

logger = logging.getLogger(__name__)


class JobNotFoundError(LookupError):
    """Raised when a job identifier has no record in the store."""

    def __init__(self, run_id: str):
        super().__init__("Job not found")
        self.run_id = run_id


class ResultStore(Protocol):
    """Key-value store for job records."""

    def get(self, run_id: str) -> JobRecord | None:
        """Return a copy of the record, or None if the job is unknown."""
        ...

    def set(self, run_id: str, record: JobRecord) -> None:
        """Replace the record for ``run_id`` unconditionally."""
        ...


class InMemoryResultStore:
    """
    Process-local ``ResultStore``.

    Records are never evicted; the store grows until ``clear()`` is called
    at application shutdown.
    """

    def __init__(self) -> None:
        self._records: dict[str, JobRecord] = {}

    def get(self, run_id: str) -> JobRecord | None:
        record = self._records.get(run_id)
        if record is None:
            return None
        return record.model_copy(deep=True)

    def set(self, run_id: str, record: JobRecord) -> None:
        self._records[run_id] = record.model_copy(deep=True)

    def clear(self) -> None:
        logger.info("Clearing result store (%d records)", len(self._records))
        self._records.clear()

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, run_id: object) -> bool:
        return run_id in self._records


# =============================================================================
# Record Transitions
# =============================================================================


def mark_pending(store: ResultStore, run_id: str) -> bool:
    """
    Create a pending record if the job has none yet.

    Never overwrites an existing record, so a job that already reached a
    terminal state stays there. There is no ``await`` between the lookup and
    the write, which makes this atomic for tasks sharing one event loop.

    Returns:
        True if a pending record was written.
    """
    if store.get(run_id) is not None:
        return False
    store.set(run_id, JobRecord(status=JobStatus.PENDING))
    return True


def record_completed(store: ResultStore, run_id: str, data: dict[str, Any]) -> None:
    """Store the terminal ``completed`` record with its payload."""
    store.set(run_id, JobRecord(status=JobStatus.COMPLETED, data=data))


def record_failed(store: ResultStore, run_id: str, reason: str) -> None:
    """Store the terminal ``failed`` record with its reason."""
    store.set(run_id, JobRecord(status=JobStatus.FAILED, error=reason))


def require_record(store: ResultStore, run_id: str) -> JobRecord:
    """Return the job record or raise ``JobNotFoundError``."""
    record = store.get(run_id)
    if record is None:
        raise JobNotFoundError(run_id)
    return record


def get_result_store(request: Request) -> ResultStore:
    """
    Dependency that provides the application's result store.

    Usage in FastAPI:
        @router.get("/jobs/{run_id}")
        def get_job(store: ResultStore = Depends(get_result_store)):
            ...
    """
    return request.app.state.result_store
