"""Tests for the extraction worker."""

import pytest
from conftest import SAMPLE_PDF_URI, FakeCompletion

from app.docuflow.models import JobStatus
from app.docuflow.services.ai import AIServiceError, UnsupportedDocumentError
from app.docuflow.services.dispatch import Event, InProcessDispatcher
from app.docuflow.services.worker import (
    DOCUMENT_UPLOADED,
    ExtractionWorker,
    register_extraction_worker,
)
from app.docuflow.store import InMemoryResultStore, mark_pending, record_completed


def _event(data: dict, attempt: int = 1, max_attempts: int = 1) -> Event:
    return Event(
        id="evt-1",
        name=DOCUMENT_UPLOADED,
        data=data,
        attempt=attempt,
        max_attempts=max_attempts,
    )


def _payload(**overrides) -> dict:
    payload = {
        "runId": "job-1",
        "documentDataUri": SAMPLE_PDF_URI,
        "contentType": None,
        "description": "Invoice",
        "fileName": "invoice.pdf",
        "fields": ["invoice_number", "total_amount", "po_number"],
    }
    payload.update(overrides)
    return payload


class TestExtractionWorker:
    """Tests for ExtractionWorker."""

    @pytest.mark.asyncio
    async def test_success_records_extracted_data(
        self, store: InMemoryResultStore, fake_completion: FakeCompletion
    ):
        """Test that a successful extraction completes the job."""
        worker = ExtractionWorker(store, fake_completion)
        await worker(_event(_payload()))

        record = store.get("job-1")
        assert record.status == JobStatus.COMPLETED
        assert record.data == {
            "extractedData": {
                "invoice_number": "INV-001",
                "total_amount": "$110.00",
                "po_number": None,
            }
        }
        assert record.error is None

    @pytest.mark.asyncio
    async def test_passes_fields_and_description(
        self, store: InMemoryResultStore, fake_completion: FakeCompletion
    ):
        """Test that the event's fields and description reach the prompt."""
        worker = ExtractionWorker(store, fake_completion)
        await worker(_event(_payload(fields=["vendor_name"], description="Receipt from ACME")))

        prompt, attachment, _ = fake_completion.calls[0]
        assert "vendor_name" in prompt
        assert "Receipt from ACME" in prompt
        assert attachment.content_type == "application/pdf"

    @pytest.mark.asyncio
    async def test_unparsable_output_completes_empty(self, store: InMemoryResultStore):
        """Test that unparsable output still completes the job."""
        worker = ExtractionWorker(store, FakeCompletion(text="not json"))
        await worker(_event(_payload()))

        record = store.get("job-1")
        assert record.status == JobStatus.COMPLETED
        assert record.data == {"extractedData": {}}

    @pytest.mark.asyncio
    async def test_invalid_reference_fails_immediately(
        self, store: InMemoryResultStore, fake_completion: FakeCompletion
    ):
        """Test that an unresolvable document fails without retrying."""
        worker = ExtractionWorker(store, fake_completion)
        event = _event(
            _payload(documentDataUri="https://example.com/doc.pdf", contentType=None),
            max_attempts=3,
        )
        await worker(event)

        record = store.get("job-1")
        assert record.status == JobStatus.FAILED
        assert "contentType is required" in record.error
        assert fake_completion.calls == []

    @pytest.mark.asyncio
    async def test_unsupported_document_fails_immediately(self, store: InMemoryResultStore):
        """Test that unsupported documents are a permanent failure."""
        completion = FakeCompletion(error=UnsupportedDocumentError("Unsupported content type"))
        worker = ExtractionWorker(store, completion)
        await worker(_event(_payload(), max_attempts=3))

        record = store.get("job-1")
        assert record.status == JobStatus.FAILED
        assert record.error == "Unsupported content type"

    @pytest.mark.asyncio
    async def test_transient_failure_is_reraised_before_final_attempt(
        self, store: InMemoryResultStore
    ):
        """Test that model failures are left to the dispatcher to retry."""
        completion = FakeCompletion(error=AIServiceError("Model call failed: timeout"))
        worker = ExtractionWorker(store, completion)

        with pytest.raises(AIServiceError):
            await worker(_event(_payload(), attempt=1, max_attempts=2))
        assert store.get("job-1").status == JobStatus.PENDING

    @pytest.mark.asyncio
    async def test_final_attempt_records_failure(self, store: InMemoryResultStore):
        """Test that the last attempt records the failure reason."""
        completion = FakeCompletion(error=AIServiceError("Model call failed: timeout"))
        worker = ExtractionWorker(store, completion)
        await worker(_event(_payload(), attempt=2, max_attempts=2))

        record = store.get("job-1")
        assert record.status == JobStatus.FAILED
        assert record.error == "Model call failed: timeout"

    @pytest.mark.asyncio
    async def test_terminal_job_is_not_reprocessed(
        self, store: InMemoryResultStore, fake_completion: FakeCompletion
    ):
        """Test that a duplicate event does not touch a finished job."""
        record_completed(store, "job-1", {"extractedData": {"total": "$1"}})
        worker = ExtractionWorker(store, fake_completion)
        await worker(_event(_payload()))

        assert store.get("job-1").data == {"extractedData": {"total": "$1"}}
        assert fake_completion.calls == []

    @pytest.mark.asyncio
    async def test_falls_back_to_event_id(
        self, store: InMemoryResultStore, fake_completion: FakeCompletion
    ):
        """Test that the event id is used when no run id is given."""
        worker = ExtractionWorker(store, fake_completion)
        await worker(_event(_payload(runId=None)))
        assert store.get("evt-1").status == JobStatus.COMPLETED


class TestWorkerWithDispatcher:
    """Tests for the worker running under InProcessDispatcher."""

    @pytest.mark.asyncio
    async def test_retry_then_success(self, store: InMemoryResultStore):
        """Test that a transient failure is retried and then completes."""
        completion = FakeCompletion(error=AIServiceError("flaky"), failures=1)
        dispatcher = InProcessDispatcher(max_attempts=2, retry_delay=0)
        register_extraction_worker(dispatcher, store, completion)

        mark_pending(store, "job-1")
        await dispatcher.send(DOCUMENT_UPLOADED, _payload())
        await dispatcher.drain()

        assert len(completion.calls) == 2
        assert store.get("job-1").status == JobStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_retries_exhausted(self, store: InMemoryResultStore):
        """Test that exhausting retries leaves the job failed."""
        completion = FakeCompletion(error=AIServiceError("Model call failed: down"))
        dispatcher = InProcessDispatcher(max_attempts=3, retry_delay=0)
        register_extraction_worker(dispatcher, store, completion)

        await dispatcher.send(DOCUMENT_UPLOADED, _payload())
        await dispatcher.drain()

        assert len(completion.calls) == 3
        record = store.get("job-1")
        assert record.status == JobStatus.FAILED
        assert record.error == "Model call failed: down"
