"""
Routers package for FastAPI endpoints.

Organized by domain:
- extraction: Job trigger and status endpoints
- upload: Multipart upload that starts a job
"""

from . import extraction, upload

__all__ = ["extraction", "upload"]
