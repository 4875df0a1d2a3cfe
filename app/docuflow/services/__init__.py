"""
Services package for the document extraction application.

Contains:
- ai: model backends, attachments and extraction
- documents: document reference resolution
- pdf_service: PDF to image conversion
- dispatch: background event dispatch
- worker: the document.uploaded event handler
"""

# ai must be imported before pdf_service: pdf_service depends on ai.exceptions
# and ai.attachments depends on pdf_service.
from .ai import AIServiceError, Completion
from .pdf_service import PDFConversionError, PDFService

__all__ = ["AIServiceError", "Completion", "PDFConversionError", "PDFService"]
