"""
Router for browser file uploads.

Handles:
- Multipart document upload that starts an extraction job
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status

from ..models import ErrorResponse, TriggerExtractionRequest, TriggerExtractionResponse
from ..services.dispatch import Dispatcher, get_dispatcher
from ..services.documents import encode_data_uri
from ..store import ResultStore, get_result_store
from .extraction import dispatch_extraction

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["upload"])

ALLOWED_CONTENT_TYPES = frozenset(
    {"application/pdf", "image/jpeg", "image/png", "image/tiff", "image/webp"}
)


@router.post(
    "/upload",
    response_model=TriggerExtractionResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    },
)
async def upload_document(
    file: Annotated[UploadFile, File(description="Document to extract data from")],
    description: Annotated[str | None, Form()] = None,
    fields: Annotated[str | None, Form(description="Comma-separated field names")] = None,
    dispatcher: Dispatcher = Depends(get_dispatcher),
    store: ResultStore = Depends(get_result_store),
) -> TriggerExtractionResponse:
    """
    Upload a document and start an extraction job.

    Accepts a PDF, JPEG, PNG, TIFF or WEBP file, encodes it as a data URI and
    triggers extraction exactly like the trigger-extraction endpoint.
    """
    try:
        content_type = (file.content_type or "").split(";")[0].strip().lower()
        if content_type not in ALLOWED_CONTENT_TYPES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid file type. Please upload a PDF, JPG, PNG, TIFF or WEBP file.",
            )

        file_bytes = await file.read()
        if not file_bytes:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Empty file provided",
            )

        logger.info(
            "Received upload: %s (%s, %d bytes)",
            file.filename,
            content_type,
            len(file_bytes),
        )

        payload = TriggerExtractionRequest(
            document_data_uri=encode_data_uri(file_bytes, content_type),
            description=description or (f"Document: {file.filename}" if file.filename else None),
            file_name=file.filename,
            fields=fields.split(",") if fields else None,
        )
        run_id = await dispatch_extraction(payload, dispatcher, store)
        return TriggerExtractionResponse(run_id=run_id)
    finally:
        await file.close()
