"""
Document reference resolution.

A document reaches the service either inline, as a base64 ``data:`` URI whose
prefix names the media type, or as an ``http(s)://`` URL, in which case the
caller must say what the media type is.
"""

import base64
import binascii
import logging
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DATA_URI_PATTERN = re.compile(r"^data:([a-zA-Z0-9/.\-+]+);base64,", re.ASCII)
REMOTE_PREFIXES = ("http://", "https://")


class DocumentReferenceError(ValueError):
    """Raised when a document reference is missing or malformed."""

    pass


@dataclass(frozen=True)
class DocumentReference:
    """A document reference with its effective media type."""

    uri: str
    content_type: str
    is_remote: bool

    @property
    def is_image(self) -> bool:
        return self.content_type.startswith("image/")

    @property
    def is_pdf(self) -> bool:
        return self.content_type == "application/pdf"


def is_remote_reference(uri: str) -> bool:
    """Return True if the reference looks like an http(s) URL."""
    return uri.lower().startswith(REMOTE_PREFIXES)


def resolve_document(uri: str | None, content_type: str | None = None) -> DocumentReference:
    """
    Determine the effective media type of a document reference.

    An inline ``data:`` URI carries its own media type, which takes precedence
    over ``content_type``. A remote URL has no reliable type, so
    ``content_type`` is mandatory for it. Any other shape is rejected.

    Args:
        uri: The document reference.
        content_type: Caller-supplied media type.

    Returns:
        The resolved DocumentReference.

    Raises:
        DocumentReferenceError: If the reference is empty, a URL without a
            content type, or neither a data URI nor a URL.
    """
    if not uri:
        raise DocumentReferenceError("documentDataUri is required")

    match = DATA_URI_PATTERN.match(uri)
    if match:
        return DocumentReference(uri=uri, content_type=match.group(1).lower(), is_remote=False)

    if is_remote_reference(uri):
        if not content_type or not content_type.strip():
            raise DocumentReferenceError("contentType is required for URL-based documents")
        return DocumentReference(
            uri=uri, content_type=content_type.strip().lower(), is_remote=True
        )

    if uri.startswith("data:"):
        raise DocumentReferenceError(
            "Invalid documentDataUri format: Missing or invalid MIME type."
        )
    raise DocumentReferenceError(
        "Invalid documentDataUri format: expected a data URI or an http(s) URL."
    )


def decode_data_uri(uri: str) -> bytes:
    """
    Decode the payload of a base64 ``data:`` URI.

    Raises:
        DocumentReferenceError: If the URI is not a base64 data URI or the
            payload is not valid base64.
    """
    match = DATA_URI_PATTERN.match(uri)
    if not match:
        raise DocumentReferenceError("Not a base64 data URI")
    try:
        return base64.b64decode(uri[match.end():], validate=True)
    except (binascii.Error, ValueError) as e:
        raise DocumentReferenceError(f"Invalid base64 payload in data URI: {e}") from e


def encode_data_uri(content: bytes, content_type: str) -> str:
    """Build a base64 ``data:`` URI for ``content``."""
    encoded = base64.b64encode(content).decode("ascii")
    return f"data:{content_type};base64,{encoded}"
