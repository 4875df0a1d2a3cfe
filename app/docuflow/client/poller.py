"""
Job status polling.

``JobPoller.start`` schedules status checks for one job on a fixed interval
and returns a ``PollHandle``. Only one status request is in flight at a time:
a tick that fires while the previous request is still running is skipped, so
responses can never arrive out of order.
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from ..config import Settings
from ..models import JobStatus, JobStatusResponse
from .api import ExtractionClient
from .exceptions import JobFailedError, PollCancelledError, PollTimeoutError

logger = logging.getLogger(__name__)

StatusCallback = Callable[[JobStatusResponse], Awaitable[None] | None]


class PollHandle:
    """Handle to a running poll; cancel it or await its outcome."""

    def __init__(self, run_id: str, task: asyncio.Task):
        self.run_id = run_id
        self._task = task

    @property
    def done(self) -> bool:
        return self._task.done()

    @property
    def cancelled(self) -> bool:
        return self._task.cancelled()

    def cancel(self) -> None:
        """Stop polling. Safe to call any number of times."""
        if not self._task.done():
            logger.debug("Cancelling poll for job %s", self.run_id)
            self._task.cancel()

    async def result(self) -> dict[str, Any]:
        """
        Wait for the job's terminal state.

        Returns:
            The completed job's ``data`` payload.

        Raises:
            JobFailedError: The job failed.
            PollError: A status call failed.
            PollTimeoutError: The overall timeout elapsed.
            PollCancelledError: The poll was cancelled.
        """
        await asyncio.wait({self._task})
        if self._task.cancelled():
            raise PollCancelledError(self.run_id)
        return self._task.result()


class JobPoller:
    """
    Polls the check-result endpoint until a job finishes.

    Args:
        client: Extraction API client.
        interval: Seconds between ticks.
        timeout: Overall limit in seconds, or None to poll until a terminal
            state is observed.
    """

    def __init__(
        self,
        client: ExtractionClient,
        interval: float = 2.0,
        timeout: float | None = 120.0,
    ):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.client = client
        self.interval = interval
        self.timeout = timeout

    @classmethod
    def from_settings(cls, client: ExtractionClient, settings: Settings) -> "JobPoller":
        """Create a poller using the configured interval and timeout."""
        return cls(
            client,
            interval=settings.poll_interval_seconds,
            timeout=settings.poll_timeout_seconds,
        )

    def start(self, run_id: str, on_update: StatusCallback | None = None) -> PollHandle:
        """Begin polling ``run_id``; the first check is made immediately."""
        task = asyncio.create_task(self._poll(run_id, on_update), name=f"poll:{run_id}")
        return PollHandle(run_id, task)

    async def _poll(self, run_id: str, on_update: StatusCallback | None) -> dict[str, Any]:
        loop = asyncio.get_running_loop()
        started = loop.time()
        deadline = started + self.timeout if self.timeout is not None else None
        inflight: asyncio.Task | None = None
        tick = 0

        try:
            while True:
                if inflight is None:
                    inflight = asyncio.create_task(self.client.check(run_id))
                else:
                    logger.debug("Status check for %s still in flight; skipping tick", run_id)

                tick += 1
                wake_at = started + tick * self.interval
                if deadline is not None:
                    wake_at = min(wake_at, deadline)

                done, _ = await asyncio.wait({inflight}, timeout=max(wake_at - loop.time(), 0))
                if done:
                    response = inflight.result()
                    inflight = None
                    outcome = await self._handle(run_id, response, on_update)
                    if outcome is not None:
                        return outcome
                    await asyncio.sleep(max(wake_at - loop.time(), 0))

                if deadline is not None and loop.time() >= deadline:
                    raise PollTimeoutError(run_id, self.timeout)
        finally:
            if inflight is not None and not inflight.done():
                inflight.cancel()

    async def _handle(
        self,
        run_id: str,
        response: JobStatusResponse,
        on_update: StatusCallback | None,
    ) -> dict[str, Any] | None:
        """Report a status response; return the payload once completed."""
        if on_update is not None:
            maybe_awaitable = on_update(response)
            if inspect.isawaitable(maybe_awaitable):
                await maybe_awaitable

        if response.status == JobStatus.COMPLETED.value:
            logger.info("Job %s completed", run_id)
            return response.data or {}
        if response.status == JobStatus.FAILED.value:
            logger.info("Job %s failed: %s", run_id, response.error)
            raise JobFailedError(
                run_id, response.error or "Job failed without specific error message"
            )
        if response.status != JobStatus.PENDING.value:
            logger.warning("Unknown job status for %s: %s", run_id, response.status)
        return None
