"""
FastAPI application for the document extraction service.

Provides endpoints for:
- Triggering an extraction job from a data URI or URL
- Uploading a document file to start a job
- Polling a job's status and result
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .config import Settings, get_settings
from .models import HealthResponse
from .routers import extraction, upload
from .services.ai import Completion, build_completion
from .services.dispatch import Dispatcher, DispatchError, InProcessDispatcher
from .services.documents import DocumentReferenceError
from .services.worker import register_extraction_worker
from .store import InMemoryResultStore, JobNotFoundError

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    """Configure root logging for the service."""
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)


def create_app(
    settings: Settings | None = None,
    completion: Completion | None = None,
    dispatcher: Dispatcher | None = None,
    store: InMemoryResultStore | None = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Collaborators that are not passed in are created from ``settings`` when
    the application starts. They live on ``app.state`` for the lifetime of
    the application. An injected dispatcher only needs ``send``; the worker
    is subscribed to, and shut down with, the in-process dispatcher. The
    result store is cleared on shutdown.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler for startup/shutdown."""
        logger.info("Starting DocuFlow Extraction Service...")
        app.state.settings = settings
        app.state.result_store = store if store is not None else InMemoryResultStore()
        app.state.completion = completion if completion is not None else build_completion(settings)
        app.state.dispatcher = dispatcher if dispatcher is not None else InProcessDispatcher(
            max_attempts=settings.dispatch_max_attempts,
            retry_delay=settings.dispatch_retry_delay_seconds,
            max_concurrency=settings.dispatch_max_concurrency,
        )
        if isinstance(app.state.dispatcher, InProcessDispatcher):
            register_extraction_worker(
                app.state.dispatcher, app.state.result_store, app.state.completion
            )
        logger.info("Services initialized successfully")
        yield
        logger.info("Shutting down DocuFlow Extraction Service...")
        if isinstance(app.state.dispatcher, InProcessDispatcher):
            await app.state.dispatcher.shutdown()
        app.state.result_store.clear()

    app = FastAPI(
        title="DocuFlow Extraction API",
        description="Background document data extraction using AI",
        version=__version__,
        lifespan=lifespan,
    )

    # Configure CORS for frontend development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # =========================================================================
    # Health Endpoints
    # =========================================================================

    @app.get("/", response_model=HealthResponse)
    async def root() -> HealthResponse:
        """Root endpoint - health check."""
        return HealthResponse(status="healthy", version=__version__)

    @app.get("/health", response_model=HealthResponse)
    async def health_check() -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(status="healthy", version=__version__)

    # =========================================================================
    # Include Routers
    # =========================================================================

    app.include_router(extraction.router)
    app.include_router(upload.router)

    # =========================================================================
    # Exception Handlers
    # =========================================================================

    @app.exception_handler(DocumentReferenceError)
    async def document_reference_error_handler(request: Request, exc: DocumentReferenceError):
        """Handle invalid document references."""
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": str(exc)},
        )

    @app.exception_handler(DispatchError)
    async def dispatch_error_handler(request: Request, exc: DispatchError):
        """Handle workflow dispatch failures."""
        logger.error("Dispatch failed: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": str(exc)},
        )

    @app.exception_handler(JobNotFoundError)
    async def job_not_found_handler(request: Request, exc: JobNotFoundError):
        """Handle unknown job identifiers."""
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"error": str(exc)},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Render HTTP errors with the same body shape as the other errors."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        """Handle malformed request bodies."""
        messages = [
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=422,
            content={"error": "; ".join(messages) or "Invalid request"},
        )

    return app


configure_logging(get_settings())
app = create_app()
