"""
HTTP client for the extraction API.
"""

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from ..models import JobStatusResponse, TriggerExtractionRequest
from .exceptions import PollError, TriggerError

logger = logging.getLogger(__name__)


def _error_text(response: httpx.Response) -> str:
    """Pull the ``error`` message out of an error response."""
    try:
        body: Any = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"HTTP {response.status_code} {response.reason_phrase}".strip()


class ExtractionClient:
    """
    Async client for the trigger and check-result endpoints.

    Args:
        base_url: Root URL of the service.
        http_client: Pre-built httpx client; when given, ``base_url`` is
            ignored and the caller owns the client.
        timeout: Request timeout in seconds for the internal client.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ):
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def __aenter__(self) -> "ExtractionClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def trigger(self, request: TriggerExtractionRequest) -> str:
        """
        Start an extraction job.

        Returns:
            The job identifier.

        Raises:
            TriggerError: If the request fails or the server rejects it.
        """
        body = request.model_dump(by_alias=True, exclude_none=True)
        try:
            response = await self._http.post("/api/trigger-extraction", json=body)
        except httpx.HTTPError as e:
            raise TriggerError(f"Failed to trigger extraction: {e}") from e

        if not response.is_success:
            raise TriggerError(_error_text(response))

        try:
            run_id = response.json().get("runId")
        except (ValueError, AttributeError) as e:
            raise TriggerError(f"Invalid trigger response: {e}") from e
        if not run_id:
            raise TriggerError("Trigger response did not include a runId")
        logger.info("Triggered extraction job %s", run_id)
        return run_id

    async def check(self, run_id: str) -> JobStatusResponse:
        """
        Fetch the current status of a job.

        Raises:
            PollError: On transport errors, non-2xx responses or an
                unreadable body.
        """
        try:
            response = await self._http.get(f"/api/check-result/{run_id}")
        except httpx.HTTPError as e:
            raise PollError(f"Failed to check job status: {e}") from e

        if not response.is_success:
            raise PollError(f"Failed to check job status: {_error_text(response)}")

        try:
            return JobStatusResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise PollError(f"Invalid job status response: {e}") from e
