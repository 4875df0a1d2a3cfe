"""
Extraction worker.

Handles ``document.uploaded`` events: resolves the document's media type,
asks the model for the fields, and records the outcome in the result store.
"""

import logging

from ..models import ExtractionOutput
from ..store import ResultStore, mark_pending, record_completed, record_failed
from .ai import Completion, UnsupportedDocumentError, extract_data
from .dispatch import Event, InProcessDispatcher
from .documents import DocumentReferenceError, resolve_document
from .pdf_service import PDFConversionError

logger = logging.getLogger(__name__)

DOCUMENT_UPLOADED = "document.uploaded"

# Failures that a retry cannot fix
PERMANENT_ERRORS = (DocumentReferenceError, UnsupportedDocumentError, PDFConversionError)


class ExtractionWorker:
    """
    Event handler for uploaded documents.

    Args:
        store: Result store the outcome is written to.
        completion: Model backend used for extraction.
    """

    def __init__(self, store: ResultStore, completion: Completion):
        self.store = store
        self.completion = completion

    async def __call__(self, event: Event) -> None:
        data = event.data
        run_id = data.get("runId") or event.id

        existing = self.store.get(run_id)
        if existing is not None and existing.status.is_terminal:
            logger.warning(
                "Job %s already %s; ignoring event %s",
                run_id,
                existing.status.value,
                event.id,
            )
            return
        mark_pending(self.store, run_id)

        logger.info(
            "Processing job %s (%s), attempt %d/%d",
            run_id,
            data.get("fileName") or "unnamed document",
            event.attempt,
            event.max_attempts,
        )

        try:
            document = resolve_document(data.get("documentDataUri"), data.get("contentType"))
            extracted = await extract_data(
                document,
                self.completion,
                fields=data.get("fields"),
                description=data.get("description"),
            )
        except PERMANENT_ERRORS as e:
            logger.warning("Job %s failed: %s", run_id, e)
            record_failed(self.store, run_id, str(e))
            return
        except Exception as e:
            if not event.is_final_attempt:
                raise
            logger.exception("Job %s failed on final attempt", run_id)
            record_failed(self.store, run_id, str(e) or type(e).__name__)
            return

        output = ExtractionOutput(extracted_data=extracted)
        record_completed(self.store, run_id, output.model_dump(by_alias=True))
        logger.info("Job %s completed with %d field(s)", run_id, len(extracted))


def register_extraction_worker(
    dispatcher: InProcessDispatcher,
    store: ResultStore,
    completion: Completion,
) -> ExtractionWorker:
    """Create the worker and subscribe it to ``document.uploaded``."""
    worker = ExtractionWorker(store, completion)
    dispatcher.register(DOCUMENT_UPLOADED, worker)
    return worker
