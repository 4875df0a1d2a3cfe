"""Tests for document reference resolution."""

import pytest

from app.docuflow.services.documents import (
    DocumentReferenceError,
    decode_data_uri,
    encode_data_uri,
    is_remote_reference,
    resolve_document,
)


class TestResolveDocument:
    """Tests for resolve_document."""

    @pytest.mark.parametrize(
        "content_type",
        [
            "application/pdf",
            "image/png",
            "image/jpeg",
            "image/tiff",
            "image/webp",
            "image/svg+xml",
            "application/vnd.ms-excel",
        ],
    )
    def test_data_uri_media_type_matches_prefix(self, content_type: str):
        """Test that the media type is taken from the data URI prefix."""
        document = resolve_document(f"data:{content_type};base64,AAAA")
        assert document.content_type == content_type
        assert document.is_remote is False

    def test_data_uri_prefix_wins_over_supplied_type(self):
        """Test that a caller-supplied type does not override the prefix."""
        document = resolve_document("data:image/png;base64,AAAA", "application/pdf")
        assert document.content_type == "image/png"

    def test_url_requires_content_type(self):
        """Test that URL references without a media type are rejected."""
        with pytest.raises(DocumentReferenceError) as exc_info:
            resolve_document("https://example.com/doc.pdf")
        assert "contentType is required" in str(exc_info.value)

    def test_url_with_blank_content_type_rejected(self):
        """Test that a whitespace media type counts as missing."""
        with pytest.raises(DocumentReferenceError):
            resolve_document("http://example.com/doc.pdf", "   ")

    def test_url_with_content_type(self):
        """Test that URL references keep the supplied media type."""
        document = resolve_document("https://example.com/doc.pdf", " Application/PDF ")
        assert document.content_type == "application/pdf"
        assert document.is_remote is True
        assert document.is_pdf is True

    @pytest.mark.parametrize("uri", [None, ""])
    def test_empty_reference_rejected(self, uri):
        """Test that a missing reference is rejected."""
        with pytest.raises(DocumentReferenceError) as exc_info:
            resolve_document(uri)
        assert str(exc_info.value) == "documentDataUri is required"

    @pytest.mark.parametrize(
        "uri",
        [
            "data:;base64,AAAA",
            "data:application/pdf,AAAA",
            "data:application pdf;base64,AAAA",
        ],
    )
    def test_malformed_data_uri_rejected(self, uri: str):
        """Test that data URIs without a base64 media type are rejected."""
        with pytest.raises(DocumentReferenceError) as exc_info:
            resolve_document(uri)
        assert "Missing or invalid MIME type" in str(exc_info.value)

    @pytest.mark.parametrize("uri", ["ftp://example.com/doc.pdf", "/tmp/doc.pdf", "AAAA"])
    def test_other_shapes_rejected(self, uri: str):
        """Test that references that are neither data URIs nor URLs are rejected."""
        with pytest.raises(DocumentReferenceError):
            resolve_document(uri, "application/pdf")

    def test_image_flag(self):
        """Test the is_image helper."""
        assert resolve_document("data:image/jpeg;base64,AAAA").is_image is True
        assert resolve_document("data:application/pdf;base64,AAAA").is_image is False


class TestDataUriCodec:
    """Tests for data URI helpers."""

    def test_encode(self):
        """Test building a data URI."""
        assert encode_data_uri(b"hello", "text/plain") == "data:text/plain;base64,aGVsbG8="

    def test_decode(self):
        """Test decoding a data URI payload."""
        assert decode_data_uri("data:text/plain;base64,aGVsbG8=") == b"hello"

    def test_decode_invalid_base64(self):
        """Test that invalid base64 raises DocumentReferenceError."""
        with pytest.raises(DocumentReferenceError):
            decode_data_uri("data:application/pdf;base64,***")

    def test_decode_requires_data_uri(self):
        """Test that non data URIs cannot be decoded."""
        with pytest.raises(DocumentReferenceError):
            decode_data_uri("https://example.com/doc.pdf")

    def test_is_remote_reference(self):
        """Test URL detection."""
        assert is_remote_reference("HTTPS://example.com") is True
        assert is_remote_reference("http://example.com") is True
        assert is_remote_reference("data:image/png;base64,AA") is False
