"""
Base service class for the live-reload server.
"""

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from typing import Dict, Any, Optional
import time
import os

from shared.config import ServiceConfig, get_config
from shared.logging import configure_logging, get_logger, set_request_id, clear_context
from shared.metrics import get_metrics_collector
from shared.errors import AccessLayerException


class RequestLoggingMiddleware:
    """Request timing and logging as a pure ASGI middleware.

    Wraps ``send`` instead of buffering the response, so long-lived event
    streams pass through untouched and are logged once they end.
    """

    def __init__(self, app, service: "BaseService"):
        self.app = app
        self.service = service

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        set_request_id()
        start_time = time.time()
        status_code = 500

        async def send_wrapper(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            duration = time.time() - start_time

            self.service.metrics.record_http_request(
                method=scope["method"],
                endpoint=scope["path"],
                status_code=status_code,
                duration=duration
            )

            self.service.logger.info(
                "HTTP request",
                method=scope["method"],
                path=scope["path"],
                status_code=status_code,
                duration_ms=round(duration * 1000, 2)
            )
            clear_context()


class BaseService:
    """Base service class with common functionality."""

    def __init__(self, service_name: str, config: Optional[ServiceConfig] = None):
        self.service_name = service_name
        self.config = config or get_config()
        self.port = self.config.port
        self.logger = get_logger(f"{service_name}.service")
        self.metrics = get_metrics_collector(service_name)
        self._start_time = time.time()

        # Configure logging
        configure_logging(service_name, self.config.log_level)

        # Create FastAPI app
        self.app = self._create_app()

        # Set up middleware
        self._setup_middleware()

        # Set up routes
        self._setup_routes()

    @property
    def name(self) -> str:
        return self.service_name

    def _create_app(self) -> FastAPI:
        """Create FastAPI application."""
        prefix = self.config.ops_prefix
        return FastAPI(
            title=f"{self.service_name.title()} Service",
            description="Static file server with browser live reload",
            version="1.0.0",
            docs_url=f"{prefix}/docs" if self.config.env == "local" else None,
            redoc_url=f"{prefix}/redoc" if self.config.env == "local" else None,
            openapi_url=f"{prefix}/openapi.json",
        )

    def _setup_middleware(self):
        """Set up middleware."""
        self.app.add_middleware(RequestLoggingMiddleware, service=self)

    def _setup_routes(self):
        """Set up common routes."""

        @self.app.get(f"{self.config.ops_prefix}/health")
        async def health_check():
            """Health check endpoint."""
            try:
                # Check dependencies
                dependencies = await self._check_dependencies()

                # Record health check
                self.metrics.record_health_check("ok")

                return {
                    "service": self.service_name,
                    "status": "ok",
                    "uptime_seconds": self._get_uptime(),
                    "dependencies": dependencies,
                    "version": "1.0.0",
                    "commit": os.getenv("GIT_COMMIT", "unknown")
                }
            except Exception as e:
                self.logger.error("Health check failed", error=str(e))
                self.metrics.record_health_check("error")
                return JSONResponse(
                    status_code=503,
                    content={
                        "service": self.service_name,
                        "status": "error",
                        "error": str(e)
                    }
                )

        @self.app.get(f"{self.config.ops_prefix}/metrics")
        async def metrics_endpoint():
            """Prometheus metrics endpoint."""
            from prometheus_client import CONTENT_TYPE_LATEST
            self._refresh_metrics()
            return Response(
                content=self.metrics.export(),
                media_type=CONTENT_TYPE_LATEST
            )

        # Error handlers
        @self.app.exception_handler(AccessLayerException)
        async def access_layer_exception_handler(request: Request, exc: AccessLayerException):
            """Handle AccessLayerException."""
            self.logger.error(
                "Access layer error",
                code=exc.code,
                message=exc.message,
                details=exc.details
            )
            self.metrics.record_error(exc.code)
            return JSONResponse(
                status_code=exc.status_code,
                content=exc.to_response().model_dump()
            )

        @self.app.exception_handler(Exception)
        async def general_exception_handler(request: Request, exc: Exception):
            """Handle general exceptions."""
            self.logger.error("Unhandled exception", error=str(exc), exc_info=True)
            return JSONResponse(
                status_code=500,
                content={
                    "code": "INTERNAL_ERROR",
                    "message": "Internal server error",
                    "details": {}
                }
            )

    async def _check_dependencies(self) -> Dict[str, Any]:
        """Check service dependencies. Override in subclasses."""
        return {}

    def _refresh_metrics(self):
        """Update gauges before an export. Override in subclasses."""

    def _get_uptime(self) -> float:
        """Get service uptime in seconds."""
        return time.time() - self._start_time

    def run(self):
        """Run the service."""
        import uvicorn
        try:
            uvicorn.run(
                self.app,
                host=self.config.host,
                port=self.config.port,
                log_level=self.config.log_level.lower(),
                timeout_graceful_shutdown=self.config.shutdown_timeout
            )
        except SystemExit as exc:
            if exc.code:
                self.logger.critical(
                    "Server terminated during startup",
                    host=self.config.host,
                    port=self.config.port,
                    exit_code=exc.code
                )
            raise
