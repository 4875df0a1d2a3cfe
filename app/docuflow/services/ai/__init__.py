"""
AI service package for document data extraction.

This package provides:
- completion: the model collaborator interface and its OpenAI / mock backends
- attachments: conversion of documents into vision message content
- extraction: prompt construction and lenient response parsing
"""

from .attachments import AttachmentBuilder
from .completion import (
    Completion,
    MockCompletion,
    OpenAICompletion,
    OutputMode,
    build_completion,
)
from .exceptions import AIServiceError, UnsupportedDocumentError
from .extraction import build_extraction_prompt, extract_data, parse_extraction_response

__all__ = [
    "AIServiceError",
    "AttachmentBuilder",
    "Completion",
    "MockCompletion",
    "OpenAICompletion",
    "OutputMode",
    "UnsupportedDocumentError",
    "build_completion",
    "build_extraction_prompt",
    "extract_data",
    "parse_extraction_response",
]
