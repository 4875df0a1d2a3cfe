"""
Client library for the extraction API.

- api: HTTP calls to the trigger and check-result endpoints
- poller: cancellable fixed-interval status polling
- workflow: processing-step state machine for a UI
"""

from .api import ExtractionClient
from .exceptions import (
    ExtractionClientError,
    JobFailedError,
    PollCancelledError,
    PollError,
    PollTimeoutError,
    TriggerError,
)
from .poller import JobPoller, PollHandle
from .workflow import ExtractionWorkflow

__all__ = [
    "ExtractionClient",
    "ExtractionClientError",
    "ExtractionWorkflow",
    "JobFailedError",
    "JobPoller",
    "PollCancelledError",
    "PollError",
    "PollHandle",
    "PollTimeoutError",
    "TriggerError",
]
