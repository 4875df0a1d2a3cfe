"""
LLM completion backends.

A ``Completion`` takes a prompt plus one document attachment and returns the
model's response text. ``OpenAICompletion`` calls the OpenAI chat completions
API with vision content; ``MockCompletion`` returns canned JSON so the
service can run without an API key.
"""

import json
import logging
from enum import Enum
from typing import Any, Protocol

from openai import AsyncOpenAI

from ...config import Settings
from ..documents import DocumentReference
from ..pdf_service import PDFService
from .attachments import AttachmentBuilder
from .exceptions import AIServiceError

logger = logging.getLogger(__name__)


class OutputMode(str, Enum):
    """Requested shape of the model response."""

    JSON = "json"
    TEXT = "text"


class Completion(Protocol):
    """Generative model collaborator."""

    async def generate(
        self,
        prompt: str,
        attachment: DocumentReference,
        output_mode: OutputMode = OutputMode.JSON,
    ) -> str:
        """Return the model's response text for ``prompt`` and ``attachment``."""
        ...


class OpenAICompletion:
    """
    Completion backed by OpenAI's chat completions API.

    Uses a vision-capable model; the document is attached as one or more
    image parts built by ``AttachmentBuilder``.
    """

    def __init__(
        self,
        api_key: str | None,
        model: str = "gpt-4.1",
        attachments: AttachmentBuilder | None = None,
        client: Any = None,
    ):
        """
        Initialize the completion backend.

        Args:
            api_key: OpenAI API key.
            model: OpenAI model to use (must support vision).
            attachments: Builder for message content parts.
            client: Pre-built OpenAI client (used in tests).
        """
        self.api_key = api_key
        self.model = model
        self.attachments = attachments or AttachmentBuilder()
        self._client = client

    @property
    def client(self) -> Any:
        """Lazy-load the OpenAI client."""
        if self._client is None:
            if not self.api_key:
                raise AIServiceError(
                    "OpenAI API key not provided. Set OPENAI_API_KEY environment variable."
                )
            self._client = AsyncOpenAI(api_key=self.api_key)
        return self._client

    async def generate(
        self,
        prompt: str,
        attachment: DocumentReference,
        output_mode: OutputMode = OutputMode.JSON,
    ) -> str:
        content: list[dict[str, Any]] = [{"type": "text", "text": prompt}]
        content.extend(await self.attachments.build(attachment))

        request: dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": "user", "content": content}],
        }
        if output_mode is OutputMode.JSON:
            request["response_format"] = {"type": "json_object"}

        try:
            response = await self.client.chat.completions.create(**request)
        except AIServiceError:
            raise
        except Exception as e:
            logger.exception("OpenAI completion failed")
            raise AIServiceError(f"Model call failed: {e}") from e

        text = response.choices[0].message.content or ""
        logger.debug("Model response preview: %s", text[:500])
        return text


class MockCompletion:
    """Completion that returns canned extraction data for development."""

    def __init__(self, data: dict[str, Any] | None = None):
        self.data = data
        logger.warning(
            "AI Service running in MOCK MODE. Set OPENAI_API_KEY in .env for real extraction."
        )

    async def generate(
        self,
        prompt: str,
        attachment: DocumentReference,
        output_mode: OutputMode = OutputMode.JSON,
    ) -> str:
        logger.info("Generating completion (MOCK MODE) for %s", attachment.content_type)
        data = self.data
        if data is None:
            data = {
                "document_type": "MOCK-DOCUMENT",
                "content_type": attachment.content_type,
                "note": "DEVELOPMENT MODE: Using mock data. Set OPENAI_API_KEY for real extraction.",
            }
        if output_mode is OutputMode.JSON:
            return json.dumps(data)
        return "\n".join(f"{key}: {value}" for key, value in data.items())


def build_completion(settings: Settings) -> Completion:
    """Create the completion backend described by ``settings``."""
    if settings.use_mock or not settings.openai_api_key:
        return MockCompletion()

    attachments = AttachmentBuilder(
        pdf_service=PDFService(dpi=settings.pdf_dpi),
        max_pdf_pages=settings.max_pdf_pages,
        fetch_timeout=settings.remote_fetch_timeout_seconds,
    )
    return OpenAICompletion(
        api_key=settings.openai_api_key,
        model=settings.openai_model,
        attachments=attachments,
    )
