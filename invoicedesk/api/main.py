"""FastAPI application for invoice review.

Production-ready API with:
- PDF upload to GridFS or S3-compatible blob storage
- AI extraction through Gemini or Groq, selected per request
- Invoice CRUD with search and pagination over MongoDB
- Health and readiness checks for Kubernetes
- Envelope-shaped error responses
- Prometheus metrics for monitoring

Based on FastAPI best practices:
https://fastapi.tiangolo.com/
"""

import logging
import re
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from pymongo.errors import ConnectionFailure, PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import Receive, Scope, Send

from invoicedesk.api import metrics
from invoicedesk.api.dependencies import require_database
from invoicedesk.api.responses import ApiResponse
from invoicedesk.api.routes import extract, invoices, upload
from invoicedesk.extraction.base import ExtractionProvider
from invoicedesk.extraction.factory import create_extraction_providers
from invoicedesk.extraction.service import ExtractionService
from invoicedesk.invoices.repository import InvoiceRepository
from invoicedesk.shared.config import Settings, get_settings
from invoicedesk.shared.database import Database
from invoicedesk.shared.errors import AppError, ValidationError, describe_errors
from invoicedesk.storage.base import StorageProvider
from invoicedesk.storage.factory import create_storage_provider

logger = logging.getLogger(__name__)

INVOICES_COLLECTION = "invoices"

_VIEWER_PATH = re.compile(r"^/api/upload/[^/]+/view$")


class ViewerAwareCORSMiddleware(CORSMiddleware):
    """CORS middleware that leaves the inline file viewer alone.

    The viewer is embeddable from any origin and sets its own CORS headers,
    including the answer to its preflight.
    """

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and _VIEWER_PATH.match(scope["path"]):
            await self.app(scope, receive, send)
            return
        await super().__call__(scope, receive, send)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    service: str
    database: str


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    ready: bool


def _error_response(status_code: int, error: str, details: list[str] | None = None) -> JSONResponse:
    body = ApiResponse(success=False, error=error, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Connect to MongoDB on startup and close the client on shutdown.

    A failed startup connection is not fatal: every /api request retries it
    and answers 503 while the store stays unreachable.
    """
    database: Database = app.state.database
    try:
        await database.connect()
        await app.state.repository.ensure_indexes()
        app.state.indexes_ready = True
    except PyMongoError as e:
        logger.warning(f"MongoDB not reachable at startup, will retry per request: {e}")

    yield

    await database.disconnect()


def register_exception_handlers(app: FastAPI) -> None:
    """Map application and framework errors onto the response envelope."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        details = exc.details if isinstance(exc, ValidationError) and exc.details else None
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return _error_response(exc.status_code, exc.message, details)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return _error_response(
            status.HTTP_400_BAD_REQUEST, "Validation error", describe_errors(exc.errors())
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
            return _error_response(exc.status_code, f"Route {request.url.path} not found")
        return _error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(ConnectionFailure)
    async def connection_failure_handler(request: Request, exc: ConnectionFailure) -> JSONResponse:
        request.app.state.database.mark_disconnected()
        logger.error(f"MongoDB connection failure during {request.method} {request.url.path}: {exc}")
        return _error_response(
            status.HTTP_503_SERVICE_UNAVAILABLE, "Database connection failed. Please try again."
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled error during {request.method} {request.url.path}")
        return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def create_app(
    settings: Settings | None = None,
    *,
    database: Database | None = None,
    storage: StorageProvider | None = None,
    repository: InvoiceRepository | None = None,
    extraction_providers: dict[str, ExtractionProvider] | None = None,
) -> FastAPI:
    """Build the application and wire its components.

    Components not passed in are created from `settings`. Nothing here
    touches the network; the database is reached in `lifespan` or on the
    first /api request.

    Args:
        settings: Application settings (loaded from the environment if omitted)
        database: MongoDB handle
        storage: File storage provider
        repository: Invoice repository
        extraction_providers: Configured AI providers keyed by name

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    database = database or Database(settings)
    storage = storage or create_storage_provider(settings, database)
    repository = repository or InvoiceRepository(database.collection(INVOICES_COLLECTION))
    if extraction_providers is None:
        extraction_providers = create_extraction_providers(settings, storage)

    app = FastAPI(
        title="Invoice Review API",
        description="Upload PDF invoices, extract their fields with AI and manage reviewed records",
        version=settings.service_version,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.database = database
    app.state.storage = storage
    app.state.repository = repository
    app.state.extraction_service = ExtractionService(extraction_providers, storage, repository)
    app.state.indexes_ready = False

    origins = settings.cors_origin_list
    app.add_middleware(
        ViewerAwareCORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next):  # type: ignore[no-untyped-def]
        """Record request count and duration per route template."""
        if request.url.path == "/metrics":
            return await call_next(request)

        start_time = time.time()
        response = await call_next(request)
        duration = time.time() - start_time

        # Label by route template so ids in the path do not create new series
        route = request.scope.get("route")
        endpoint = getattr(route, "path", "unmatched")

        metrics.http_requests_total.labels(
            method=request.method,
            endpoint=endpoint,
            status=response.status_code,
        ).inc()

        metrics.http_request_duration_seconds.labels(
            method=request.method,
            endpoint=endpoint,
        ).observe(duration)

        return response

    register_exception_handlers(app)

    @app.get("/", response_model=ApiResponse, response_model_exclude_none=True, tags=["Health"])
    def root() -> ApiResponse:
        """Service information."""
        return ApiResponse(
            success=True,
            message="Invoice Review API is running",
            data={
                "service": settings.service_name,
                "version": settings.service_version,
                "environment": settings.environment,
                "storage": app.state.storage.provider_name,
                "models": app.state.extraction_service.available_models(),
            },
        )

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    def health_check() -> HealthResponse:
        """Health check endpoint for liveness probe.

        Returns:
            Health status information
        """
        return HealthResponse(
            status="healthy",
            version=settings.service_version,
            service=settings.service_name,
            database=app.state.database.connection_state,
        )

    @app.get("/ready", response_model=ReadinessResponse, tags=["Health"])
    async def readiness_check(response: Response) -> ReadinessResponse:
        """Readiness check endpoint for Kubernetes readiness probe.

        Ready only while MongoDB is reachable; answers 503 otherwise.
        """
        try:
            await app.state.database.ensure_connected()
        except AppError:
            response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
            return ReadinessResponse(ready=False)
        return ReadinessResponse(ready=True)

    @app.get("/metrics", tags=["Monitoring"])
    def get_metrics() -> Response:
        """Prometheus metrics endpoint.

        Returns:
            Prometheus metrics in text format
        """
        metrics_data, content_type = metrics.get_metrics()
        return Response(content=metrics_data, media_type=content_type)

    api_dependencies = [Depends(require_database)]
    app.include_router(upload.router, dependencies=api_dependencies)
    app.include_router(extract.router, dependencies=api_dependencies)
    app.include_router(invoices.router, dependencies=api_dependencies)

    return app


app = create_app()
