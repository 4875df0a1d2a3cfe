"""
Client-side extraction workflow.

Drives the processing steps a UI shows while a document is extracted:
trigger the job, poll it, and mark each step completed or failed. Starting a
new workflow cancels the poll of the previous one first.
"""

import asyncio
import logging
from typing import Any

from ..models import (
    JobStatus,
    JobStatusResponse,
    ProcessingStep,
    ProcessingStepStatus,
    TriggerExtractionRequest,
    initial_processing_steps,
)
from .api import ExtractionClient
from .exceptions import ExtractionClientError, PollCancelledError
from .poller import JobPoller, PollHandle

logger = logging.getLogger(__name__)


class ExtractionWorkflow:
    """
    Processing-step state for one document at a time.

    Attributes:
        steps: Current processing steps, in display order.
        extracted_data: Extracted field mapping once the job completes.
        error_message: Readable error once the workflow fails.
        document_name: Name of the document being processed.
        is_processing: Whether a workflow is running.
        run_id: Identifier of the current job.
    """

    def __init__(self, client: ExtractionClient, poller: JobPoller):
        self.client = client
        self.poller = poller
        self._handle: PollHandle | None = None
        self._follow_task: asyncio.Task | None = None
        self._generation = 0
        self._reset_state()

    def _reset_state(self) -> None:
        self.steps: list[ProcessingStep] = initial_processing_steps()
        self.extracted_data: dict[str, Any] | None = None
        self.error_message: str | None = None
        self.document_name: str | None = None
        self.is_processing = False
        self.run_id: str | None = None

    def step(self, step_id: str) -> ProcessingStep:
        """Return the step with ``step_id``."""
        for step in self.steps:
            if step.id == step_id:
                return step
        raise KeyError(step_id)

    def update_step(
        self,
        step_id: str,
        status: ProcessingStepStatus,
        details: str | None = None,
    ) -> None:
        """Set a step's status, keeping its previous details when none are given."""
        self.steps = [
            step.model_copy(update={"status": status, "details": details or step.details})
            if step.id == step_id
            else step
            for step in self.steps
        ]

    def reset(self) -> None:
        """Cancel any active poll and restore the initial steps."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if self._follow_task is not None and not self._follow_task.done():
            self._follow_task.cancel()
        self._follow_task = None
        self._generation += 1
        self._reset_state()

    async def start(self, request: TriggerExtractionRequest) -> None:
        """
        Start processing a document.

        Any poll left over from a previous document is cancelled before the
        new job is triggered. Trigger failures are recorded on the upload
        step; the outcome of the job itself is applied by a background task
        that ``wait()`` can await.
        """
        self.reset()
        generation = self._generation
        self.is_processing = True
        self.document_name = request.file_name or "document"
        self.update_step("upload", ProcessingStepStatus.IN_PROGRESS, "Preparing to upload document...")

        try:
            run_id = await self.client.trigger(request)
        except ExtractionClientError as e:
            if generation == self._generation:
                self._fail(str(e))
            return

        # A newer start() or reset() ran while the trigger was in flight
        if generation != self._generation:
            logger.info("Discarding job %s: workflow was restarted", run_id)
            return

        self.run_id = run_id
        self.update_step(
            "upload",
            ProcessingStepStatus.COMPLETED,
            f'Document "{self.document_name}" uploaded successfully.',
        )
        self.update_step(
            "extraction", ProcessingStepStatus.IN_PROGRESS, "AI is analyzing the document..."
        )

        if self._handle is not None:
            self._handle.cancel()
        self._handle = self.poller.start(run_id, on_update=self._on_status)
        self._follow_task = asyncio.create_task(self._follow(self._handle))

    async def wait(self) -> None:
        """Wait until the current workflow has finished (or was reset)."""
        task = self._follow_task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise

    async def _follow(self, handle: PollHandle) -> None:
        try:
            data = await handle.result()
        except PollCancelledError:
            return
        except ExtractionClientError as e:
            logger.error("Polling error for job %s: %s", handle.run_id, e)
            self._fail(str(e))
            return
        self._complete(data)

    def _on_status(self, response: JobStatusResponse) -> None:
        if response.status not in (JobStatus.COMPLETED.value, JobStatus.FAILED.value):
            self.update_step(
                "extraction",
                ProcessingStepStatus.IN_PROGRESS,
                "AI is actively processing the document...",
            )

    def _complete(self, data: dict[str, Any]) -> None:
        extracted = data.get("extractedData") or {}
        self.extracted_data = extracted

        if extracted:
            summary = f"{len(extracted)} fields extracted."
        else:
            summary = "No specific fields were extracted by AI."

        self.update_step(
            "extraction", ProcessingStepStatus.COMPLETED, f"AI processing complete. {summary}"
        )
        self.update_step(
            "transformation", ProcessingStepStatus.COMPLETED, "Data structured and validated."
        )
        self.update_step(
            "notification", ProcessingStepStatus.COMPLETED, "Stakeholders notified (simulation)."
        )
        self.update_step(
            "complete", ProcessingStepStatus.COMPLETED, "Workflow finished successfully."
        )
        self.is_processing = False
        self._handle = None

    def _fail(self, message: str) -> None:
        """Attach ``message`` to the step that was in progress."""
        in_progress = [
            step.id for step in self.steps if step.status == ProcessingStepStatus.IN_PROGRESS
        ]
        for step_id in in_progress or ["extraction"]:
            self.update_step(step_id, ProcessingStepStatus.FAILED, message)
        self.error_message = message
        self.is_processing = False
        self._handle = None
