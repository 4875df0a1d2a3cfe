"""
DocuFlow Backend Application.

A FastAPI service that accepts a document, extracts structured data from it
with an LLM in a background job, and exposes the job status for polling.
"""

__version__ = "1.0.0"
