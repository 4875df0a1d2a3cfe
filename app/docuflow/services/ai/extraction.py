"""
Data extraction functionality for pulling structured fields out of a document.

Builds the extraction instruction, calls the completion backend with JSON
output requested, and parses the response into a flat field mapping.
"""

import json
import logging
import re
from typing import Any

from ..documents import DocumentReference
from .completion import Completion, OutputMode

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)


# =============================================================================
# Prompt Construction
# =============================================================================


def build_extraction_prompt(
    fields: list[str] | None = None,
    description: str | None = None,
) -> str:
    """
    Build the extraction instruction for the model.

    Args:
        fields: Field names to extract. When empty, the model decides which
            fields are relevant.
        description: Optional human description of the document.

    Returns:
        The prompt text.
    """
    if fields:
        field_text = (
            "From the provided document, extract the following specific fields: "
            f"{', '.join(fields)}.\n"
            "Use exactly these field names as keys. If a field is not found, "
            "set its value to null."
        )
    else:
        field_text = (
            "From the provided document, decide which fields are relevant and "
            "extract all relevant information.\n"
            "Use short snake_case field names as keys. If a field you expect "
            "is not present, set its value to null."
        )

    prompt = f"""You are an expert data extractor.
{field_text}

## Response Format:
Return the extracted data as a single flat JSON object where keys are the
field names and values are the extracted data.
Do not include any other text or formatting, only the JSON object."""

    if description:
        prompt += f"\n\n## Document Description:\n{description}"
    return prompt


# =============================================================================
# Response Parsing
# =============================================================================


def parse_extraction_response(text: str | None) -> dict[str, Any]:
    """
    Parse the model response into a field mapping.

    Unparsable output is not an error: empty text, invalid JSON or a JSON
    value that is not an object all yield an empty mapping.
    """
    if not text or not text.strip():
        logger.warning("AI response text is empty")
        return {}

    candidate = text.strip()
    fenced = _CODE_FENCE.match(candidate)
    if fenced:
        candidate = fenced.group(1)

    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError as e:
        logger.warning("Failed to parse AI response as JSON (%s): %s", e, text[:500])
        return {}

    if not isinstance(parsed, dict):
        logger.warning(
            "AI response is JSON %s, expected an object", type(parsed).__name__
        )
        return {}
    return parsed


# =============================================================================
# Main Extraction Function
# =============================================================================


async def extract_data(
    document: DocumentReference,
    completion: Completion,
    fields: list[str] | None = None,
    description: str | None = None,
) -> dict[str, Any]:
    """
    Extract a flat field mapping from a document.

    Args:
        document: Resolved document reference.
        completion: Model backend.
        fields: Field names to extract, or None to let the model choose.
        description: Optional human description of the document.

    Returns:
        Mapping of field name to extracted value (possibly empty).

    Raises:
        AIServiceError: If the model call itself fails.
    """
    prompt = build_extraction_prompt(fields, description)
    logger.info(
        "Extracting data from %s document (fields=%s)",
        document.content_type,
        fields or "model-chosen",
    )

    text = await completion.generate(prompt, document, OutputMode.JSON)
    extracted = parse_extraction_response(text)

    logger.info("Extracted %d field(s)", len(extracted))
    return extracted
