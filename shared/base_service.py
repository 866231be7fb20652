"""
Base service class for Janus services.
"""

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
from typing import Awaitable, Callable, Dict, List, Optional
import time
import os

from shared.config import GatewaySettings
from shared.errors import ErrorKind, ErrorResponse, GatewayError
from shared.logging import clear_context, configure_logging, get_logger, level_name, set_request_id
from shared.metrics import MetricsCollector, get_metrics_collector
from shared.middleware import RequestBodyTimeoutMiddleware
from prometheus_client import CONTENT_TYPE_LATEST


def error_response(status_code: int) -> JSONResponse:
    """The only error body callers ever see."""
    return JSONResponse(status_code=status_code, content=ErrorResponse().model_dump())


class BaseService:
    """Base service class with common functionality."""

    version = "0.0.0"

    def __init__(self, service_name: str, settings: GatewaySettings,
                 metrics: Optional[MetricsCollector] = None):
        self.service_name = service_name
        self.settings = settings
        self.logger = get_logger(service_name)
        self.metrics = metrics or get_metrics_collector(service_name)
        self._start_time = time.time()
        self._shutdown_hooks: List[Callable[[], Awaitable[None]]] = []

        # Configure logging
        configure_logging(
            service_name,
            settings.logger.level,
            settings.logger.format,
            enable=settings.logger.enable,
        )

        # Create FastAPI app
        self.app = self._create_app()

        # Set up middleware
        self._setup_middleware()

        # Set up routes
        self._setup_routes()

    def on_shutdown(self, hook: Callable[[], Awaitable[None]]) -> None:
        """Register a coroutine to run when the application stops."""
        self._shutdown_hooks.append(hook)

    def _create_app(self) -> FastAPI:
        """Create FastAPI application."""

        @asynccontextmanager
        async def lifespan(app: FastAPI):
            self.logger.info("Service starting", service=self.service_name, version=self.version)
            yield
            for hook in self._shutdown_hooks:
                await hook()
            self.logger.info("Service has gracefully shut down", service=self.service_name)

        return FastAPI(
            title=f"{self.service_name.title()} Service",
            description=f"Janus - {self.service_name.title()} Service",
            version=self.version,
            docs_url="/api/docs" if self.settings.env == "local" else None,
            redoc_url=None,
            openapi_url="/api/openapi.json",
            lifespan=lifespan,
        )

    def _setup_middleware(self):
        """Set up middleware."""

        self.app.add_middleware(GZipMiddleware, minimum_size=1024)
        self.app.add_middleware(
            RequestBodyTimeoutMiddleware,
            timeout=self.settings.http.request_body_timeout_seconds,
        )

        # Request timing middleware
        @self.app.middleware("http")
        async def add_request_timing(request: Request, call_next):
            start_time = time.time()
            set_request_id(request.headers.get("X-Request-ID"))

            # Process request
            response = await call_next(request)

            # Calculate duration
            duration = time.time() - start_time

            # Record metrics
            self.metrics.record_http_request(
                method=request.method,
                endpoint=request.url.path,
                status_code=response.status_code,
                duration=duration
            )

            # Log request
            self.logger.info(
                "HTTP request",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round(duration * 1000, 2)
            )
            clear_context()

            return response

    def _setup_routes(self):
        """Set up common routes."""

        @self.app.get("/health")
        async def health_check():
            """Health check endpoint."""
            return {
                "service": self.service_name,
                "status": "ok",
                "uptime_seconds": self._get_uptime(),
                "dependencies": self._check_dependencies(),
                "version": self.version,
                "commit": os.getenv("BUILD_SHA") or os.getenv("GIT_COMMIT", "dev"),
            }

        @self.app.get("/metrics")
        async def metrics_endpoint():
            """Prometheus metrics endpoint."""
            return Response(
                content=self.metrics.render(),
                media_type=CONTENT_TYPE_LATEST
            )

        # Error handlers: every failure collapses to {"code": 1}; the detail
        # goes to the log only.
        @self.app.exception_handler(GatewayError)
        async def gateway_exception_handler(request: Request, exc: GatewayError):
            """Handle GatewayError."""
            self.metrics.record_error(exc.kind.value)
            self.logger.error(
                "Handler error",
                kind=exc.kind.value,
                error_type=type(exc).__name__,
                message=exc.message,
                details=exc.details,
                cause=repr(exc.__cause__) if exc.__cause__ else None,
                path=request.url.path,
            )
            return error_response(exc.status_code)

        @self.app.exception_handler(RequestValidationError)
        async def request_validation_handler(request: Request, exc: RequestValidationError):
            """Handle malformed request payloads."""
            self.metrics.record_error(ErrorKind.VALIDATION.value)
            self.logger.error(
                "Request validation failed",
                kind=ErrorKind.VALIDATION.value,
                errors=exc.errors(),
                path=request.url.path,
            )
            return error_response(400)

        @self.app.exception_handler(StarletteHTTPException)
        async def http_exception_handler(request: Request, exc: StarletteHTTPException):
            """Handle framework-level HTTP errors (404, 405, 408, ...)."""
            self.logger.warning(
                "HTTP error",
                status_code=exc.status_code,
                detail=exc.detail,
                path=request.url.path,
            )
            return error_response(exc.status_code)

        @self.app.exception_handler(Exception)
        async def general_exception_handler(request: Request, exc: Exception):
            """Handle general exceptions."""
            self.metrics.record_error("unhandled")
            self.logger.error("Unhandled exception", error=str(exc), exc_info=exc)
            return error_response(500)

    def _check_dependencies(self) -> Dict[str, str]:
        """Report dependency status. Override in subclasses."""
        return {}

    def _get_uptime(self) -> float:
        """Get service uptime in seconds."""
        return time.time() - self._start_time

    def run(self):
        """Run the service."""
        import uvicorn
        uvicorn.run(
            self.app,
            host=self.settings.server.binding,
            port=self.settings.server.port,
            log_level=level_name(self.settings.logger.level),
        )
