"""
Attachment preparation for vision model requests.

Turns a resolved document reference into OpenAI chat message content parts:
- PNG, JPEG, WEBP and GIF images are passed through by reference
- other images (e.g. TIFF) are decoded with Pillow and re-encoded as PNG
- PDFs are rasterised page by page through PDFService
Remote documents that need conversion are downloaded with httpx first.
"""

import asyncio
import base64
import io
import logging
from typing import Any

import httpx
from PIL import Image, UnidentifiedImageError

from ..documents import DocumentReference, decode_data_uri
from ..pdf_service import PDFService
from .exceptions import AIServiceError, UnsupportedDocumentError

logger = logging.getLogger(__name__)

# Image types the vision endpoint accepts as-is
PASSTHROUGH_IMAGE_TYPES = frozenset({"image/png", "image/jpeg", "image/webp", "image/gif"})

MAX_IMAGE_SIDE = 2048


def _image_to_base64(image: Image.Image) -> str:
    """Convert PIL Image to base64 PNG string for API."""
    buffer = io.BytesIO()
    # Resize if too large (max 2048px on longest side for efficiency)
    if max(image.size) > MAX_IMAGE_SIDE:
        ratio = MAX_IMAGE_SIDE / max(image.size)
        new_size = (int(image.size[0] * ratio), int(image.size[1] * ratio))
        image = image.resize(new_size, Image.Resampling.LANCZOS)

    if image.mode not in ("RGB", "RGBA", "L", "LA", "P"):
        image = image.convert("RGB")

    image.save(buffer, format="PNG", optimize=True)
    buffer.seek(0)
    return base64.b64encode(buffer.getvalue()).decode("utf-8")


def _image_part(url: str) -> dict[str, Any]:
    return {
        "type": "image_url",
        "image_url": {"url": url, "detail": "high"},
    }


class AttachmentBuilder:
    """
    Builds message content parts for a document.

    Args:
        pdf_service: Service used to rasterise PDF pages.
        max_pdf_pages: Maximum number of leading PDF pages to attach.
        fetch_timeout: Timeout in seconds for downloading remote documents.
        http_client: Optional shared httpx client (used in tests).
    """

    def __init__(
        self,
        pdf_service: PDFService | None = None,
        max_pdf_pages: int = 10,
        fetch_timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.pdf_service = pdf_service or PDFService()
        self.max_pdf_pages = max_pdf_pages
        self.fetch_timeout = fetch_timeout
        self._http_client = http_client

    async def build(self, document: DocumentReference) -> list[dict[str, Any]]:
        """
        Build the content parts for ``document``.

        Raises:
            UnsupportedDocumentError: If the media type cannot be attached.
            AIServiceError: If the document cannot be fetched or converted.
        """
        if document.content_type in PASSTHROUGH_IMAGE_TYPES:
            return [_image_part(document.uri)]

        if document.is_image:
            content = await self._load_bytes(document)
            encoded = await asyncio.to_thread(self._reencode_image, content)
            return [_image_part(f"data:image/png;base64,{encoded}")]

        if document.is_pdf:
            content = await self._load_bytes(document)
            encoded_pages = await asyncio.to_thread(self._render_pdf, content)
            logger.info("Attaching %d rendered PDF page(s)", len(encoded_pages))
            return [
                _image_part(f"data:image/png;base64,{encoded}") for encoded in encoded_pages
            ]

        raise UnsupportedDocumentError(
            f"Unsupported content type for extraction: {document.content_type}"
        )

    def _render_pdf(self, content: bytes) -> list[str]:
        """Rasterise and PNG-encode the leading PDF pages (blocking)."""
        pages = self.pdf_service.render_pages(content, self.max_pdf_pages)
        return [_image_to_base64(page) for page in pages]

    def _reencode_image(self, content: bytes) -> str:
        try:
            with Image.open(io.BytesIO(content)) as image:
                image.load()
                return _image_to_base64(image)
        except (UnidentifiedImageError, OSError) as e:
            raise AIServiceError(f"Could not decode image: {e}") from e

    async def _load_bytes(self, document: DocumentReference) -> bytes:
        if not document.is_remote:
            return decode_data_uri(document.uri)

        logger.info("Fetching remote document: %s", document.uri)
        try:
            if self._http_client is not None:
                response = await self._http_client.get(document.uri, follow_redirects=True)
            else:
                async with httpx.AsyncClient(timeout=self.fetch_timeout) as client:
                    response = await client.get(document.uri, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise AIServiceError(f"Failed to fetch document from {document.uri}: {e}") from e
        return response.content
