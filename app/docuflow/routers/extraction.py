"""
Router for extraction job endpoints.

Handles:
- Triggering an extraction job
- Checking the status of a job
"""

import logging
import uuid

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from ..models import (
    DEFAULT_DESCRIPTION,
    DEFAULT_FILE_NAME,
    ErrorResponse,
    JobStatusResponse,
    TriggerExtractionRequest,
    TriggerExtractionResponse,
)
from ..services.dispatch import Dispatcher, DispatchError, get_dispatcher
from ..services.documents import resolve_document
from ..services.worker import DOCUMENT_UPLOADED
from ..store import ResultStore, get_result_store, mark_pending, require_record

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["extraction"])


async def dispatch_extraction(
    payload: TriggerExtractionRequest,
    dispatcher: Dispatcher,
    store: ResultStore,
) -> str:
    """
    Validate an extraction request, hand it to the dispatcher and mark it pending.

    Returns:
        The job identifier.

    Raises:
        DocumentReferenceError: If the document reference is invalid.
        DispatchError: If the dispatcher rejects the event.
    """
    document = resolve_document(payload.document_data_uri, payload.content_type)

    run_id = uuid.uuid4().hex
    event_data = {
        "runId": run_id,
        "documentDataUri": payload.document_data_uri,
        "contentType": payload.content_type,
        "description": payload.description or DEFAULT_DESCRIPTION,
        "fileName": payload.file_name or DEFAULT_FILE_NAME,
        "fields": payload.fields,
    }

    try:
        dispatch_id = await dispatcher.send(DOCUMENT_UPLOADED, event_data)
    except DispatchError:
        raise
    except Exception as e:
        logger.exception("Dispatch of job %s failed", run_id)
        raise DispatchError(str(e)) from e

    # No await between send() returning and this write, so a worker on the
    # same loop cannot have recorded a terminal state yet.
    mark_pending(store, run_id)

    logger.info(
        "Triggered job %s for %s (%s, dispatch id %s)",
        run_id,
        event_data["fileName"],
        document.content_type,
        dispatch_id,
    )
    return run_id


@router.post(
    "/trigger-extraction",
    response_model=TriggerExtractionResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    },
)
async def trigger_extraction(
    payload: TriggerExtractionRequest,
    dispatcher: Dispatcher = Depends(get_dispatcher),
    store: ResultStore = Depends(get_result_store),
) -> TriggerExtractionResponse:
    """
    Start an extraction job.

    Returns the job identifier immediately; the extraction runs in the
    background and its outcome is read from the check-result endpoint.
    """
    run_id = await dispatch_extraction(payload, dispatcher, store)
    return TriggerExtractionResponse(run_id=run_id)


@router.get(
    "/check-result/{run_id}",
    response_model=JobStatusResponse,
    responses={status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}},
)
async def check_result(
    run_id: str,
    store: ResultStore = Depends(get_result_store),
) -> JSONResponse:
    """Report the current status of a job."""
    record = require_record(store, run_id)
    logger.debug("Checked job %s: %s", run_id, record.status.value)
    # Extracted values may be null; only the top-level optional keys are dropped
    return JSONResponse(JobStatusResponse.from_record(record).to_body())
