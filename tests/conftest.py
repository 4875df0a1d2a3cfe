"""Pytest configuration and fixtures."""

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Generator

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.docuflow.config import Settings
from app.docuflow.main import create_app
from app.docuflow.services.ai import OutputMode
from app.docuflow.services.documents import DocumentReference
from app.docuflow.store import InMemoryResultStore

SAMPLE_PDF_URI = "data:application/pdf;base64,AAAA"


class FakeCompletion:
    """
    Deterministic completion backend.

    Returns ``text`` for every call. The first ``failures`` calls raise
    ``error`` instead. When ``gate`` is set, each call waits for it first.
    """

    def __init__(
        self,
        text: str = '{"invoice_number": "INV-001", "total_amount": "$110.00", "po_number": null}',
        error: Exception | None = None,
        failures: int = 0,
        gate: asyncio.Event | None = None,
    ):
        self.text = text
        self.error = error
        self.failures = failures
        self.gate = gate
        self.calls: list[tuple[str, DocumentReference, OutputMode]] = []

    async def generate(
        self,
        prompt: str,
        attachment: DocumentReference,
        output_mode: OutputMode = OutputMode.JSON,
    ) -> str:
        self.calls.append((prompt, attachment, output_mode))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None and (self.failures == 0 or len(self.calls) <= self.failures):
            raise self.error
        return self.text


class RecordingDispatcher:
    """Dispatcher implementing only ``send``; it records events and runs nothing."""

    def __init__(self, error: Exception | None = None):
        self.error = error
        self.sent: list[tuple[str, dict[str, Any]]] = []

    async def send(self, event_name: str, payload: dict[str, Any]) -> str:
        if self.error is not None:
            raise self.error
        self.sent.append((event_name, payload))
        return f"evt-{len(self.sent)}"


@pytest.fixture
def settings() -> Settings:
    """Settings for tests: mock AI, no retry delay, fast polling."""
    return Settings(
        openai_api_key=None,
        use_mock=True,
        dispatch_max_attempts=2,
        dispatch_retry_delay_seconds=0.0,
        poll_interval_seconds=0.01,
        poll_timeout_seconds=5.0,
    )


@pytest.fixture
def store() -> InMemoryResultStore:
    """Create an empty result store."""
    return InMemoryResultStore()


@pytest.fixture
def fake_completion() -> FakeCompletion:
    """Create a completion backend with canned invoice output."""
    return FakeCompletion()


@pytest.fixture
def recording_dispatcher() -> RecordingDispatcher:
    """Create a dispatcher that only records events."""
    return RecordingDispatcher()


@pytest.fixture
def client(
    settings: Settings,
    fake_completion: FakeCompletion,
    recording_dispatcher: RecordingDispatcher,
    store: InMemoryResultStore,
) -> Generator[TestClient, None, None]:
    """Create a test client whose jobs are recorded but never run."""
    app = create_app(
        settings,
        completion=fake_completion,
        dispatcher=recording_dispatcher,
        store=store,
    )
    with TestClient(app) as test_client:
        yield test_client


@asynccontextmanager
async def running_app(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    """Run the app's lifespan and yield an httpx client bound to it."""
    async with app.router.lifespan_context(app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http:
            yield http


@pytest.fixture
def sample_pdf_bytes() -> bytes:
    """
    Create a minimal valid PDF for testing.

    This is a minimal PDF structure that should be recognized as a valid PDF.
    """
    return b"""%PDF-1.4
1 0 obj
<< /Type /Catalog /Pages 2 0 R >>
endobj
2 0 obj
<< /Type /Pages /Kids [3 0 R] /Count 1 >>
endobj
3 0 obj
<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] >>
endobj
xref
0 4
0000000000 65535 f
0000000009 00000 n
0000000058 00000 n
0000000115 00000 n
trailer
<< /Size 4 /Root 1 0 R >>
startxref
186
%%EOF"""
