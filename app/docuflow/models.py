"""
Pydantic models for the document extraction service.

Defines the job record kept in the result store, the request and response
bodies of the HTTP API (camelCase on the wire), and the processing steps the
client renders while a job runs.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_DESCRIPTION = "Extract all relevant data from this document"
DEFAULT_FILE_NAME = "Unknown Document"


class JobStatus(str, Enum):
    """Lifecycle states of an extraction job."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not JobStatus.PENDING


class JobRecord(BaseModel):
    """
    Current state of one extraction job.

    Attributes:
        status: Lifecycle state.
        data: Result payload, present only when status is completed.
        error: Failure reason, present only when status is failed.
    """

    status: JobStatus = Field(..., description="Job lifecycle state")
    data: dict[str, Any] | None = Field(
        default=None,
        description="Result payload (completed jobs only)",
    )
    error: str | None = Field(
        default=None,
        description="Failure reason (failed jobs only)",
    )


class ExtractionOutput(BaseModel):
    """Payload stored for a completed job."""

    model_config = ConfigDict(populate_by_name=True)

    extracted_data: dict[str, Any] = Field(
        default_factory=dict,
        alias="extractedData",
        description="Flat mapping of field name to extracted value",
    )


# =============================================================================
# HTTP API Models
# =============================================================================


class TriggerExtractionRequest(BaseModel):
    """Request body for the trigger-extraction endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    document_data_uri: str = Field(
        default="",
        alias="documentDataUri",
        description="data:<mime>;base64,<bytes> URI or http(s) URL of the document",
    )
    description: str | None = Field(
        default=None,
        description="Optional human description of the document",
    )
    content_type: str | None = Field(
        default=None,
        alias="contentType",
        description="Media type, required when documentDataUri is a URL",
    )
    file_name: str | None = Field(
        default=None,
        alias="fileName",
        description="Optional display filename",
    )
    fields: list[str] | None = Field(
        default=None,
        description="Field names to extract; the model chooses when omitted",
    )

    @field_validator("fields")
    @classmethod
    def drop_blank_fields(cls, v: list[str] | None) -> list[str] | None:
        """Strip whitespace and drop empty field names."""
        if v is None:
            return None
        cleaned = [name.strip() for name in v if name and name.strip()]
        return cleaned or None


class TriggerExtractionResponse(BaseModel):
    """Response body for a successfully dispatched job."""

    model_config = ConfigDict(populate_by_name=True)

    run_id: str = Field(..., alias="runId", description="Job identifier to poll")


class JobStatusResponse(BaseModel):
    """
    Response body of the check-result endpoint.

    ``status`` is a plain string so that clients tolerate states they do not
    know about and keep polling.
    """

    status: str = Field(..., description="Job lifecycle state")
    data: dict[str, Any] | None = Field(default=None)
    error: str | None = Field(default=None)

    @classmethod
    def from_record(cls, record: JobRecord) -> "JobStatusResponse":
        return cls(status=record.status.value, data=record.data, error=record.error)

    def to_body(self) -> dict[str, Any]:
        """Wire body with unset ``data`` / ``error`` keys omitted."""
        body: dict[str, Any] = {"status": self.status}
        if self.data is not None:
            body["data"] = self.data
        if self.error is not None:
            body["error"] = self.error
        return body


class ErrorResponse(BaseModel):
    """Error body returned with every non-2xx response."""

    error: str = Field(..., description="Readable error message")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(default="healthy")
    version: str = Field(default="1.0.0")


# =============================================================================
# Client-side Processing Steps
# =============================================================================


class ProcessingStepStatus(str, Enum):
    """Display state of a processing step."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    FAILED = "failed"


class ProcessingStep(BaseModel):
    """One row of the processing status list shown to the user."""

    id: str
    name: str
    status: ProcessingStepStatus = ProcessingStepStatus.PENDING
    description: str | None = None
    details: str | None = None


def initial_processing_steps() -> list[ProcessingStep]:
    """Return a fresh copy of the default processing steps."""
    return [
        ProcessingStep(
            id="upload",
            name="Document Upload",
            description="Select and upload your document for processing.",
        ),
        ProcessingStep(
            id="extraction",
            name="AI Data Extraction",
            description="AI is analyzing the document.",
        ),
        ProcessingStep(
            id="transformation",
            name="Data Structuring",
            description="Formatting extracted data for review.",
        ),
        ProcessingStep(
            id="notification",
            name="Notifications",
            description="Relevant parties will be alerted upon completion (simulated).",
        ),
        ProcessingStep(
            id="complete",
            name="Process Complete",
            description="The document workflow has finished.",
        ),
    ]
