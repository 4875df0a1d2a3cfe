"""
Exceptions raised by the extraction client.
"""


class ExtractionClientError(Exception):
    """Base class for client-side extraction errors."""

    pass


class TriggerError(ExtractionClientError):
    """Raised when the trigger call is rejected or cannot be made."""

    pass


class PollError(ExtractionClientError):
    """Raised when a status call fails at the transport or HTTP level."""

    pass


class JobFailedError(ExtractionClientError):
    """Raised when the job reaches the failed state."""

    def __init__(self, run_id: str, reason: str):
        super().__init__(reason)
        self.run_id = run_id
        self.reason = reason


class PollTimeoutError(ExtractionClientError):
    """Raised when a job does not reach a terminal state in time."""

    def __init__(self, run_id: str, timeout: float):
        super().__init__(
            f"Processing timeout - job {run_id} did not finish within {timeout:g}s"
        )
        self.run_id = run_id
        self.timeout = timeout


class PollCancelledError(ExtractionClientError):
    """Raised when waiting on a poll handle that was cancelled."""

    def __init__(self, run_id: str):
        super().__init__(f"Polling for job {run_id} was cancelled")
        self.run_id = run_id
