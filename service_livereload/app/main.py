"""
Live-reload service: static files plus an event stream that tells browsers
to reload.
"""

import os
from typing import Any, Dict, Optional

from fastapi import Request, Response
from fastapi.staticfiles import StaticFiles

from shared.base_service import BaseService
from shared.config import ServiceConfig

from .middleware.reload_script import ReloadScriptMiddleware
from .sse.broker import ReloadBroker
from .sse.channel import ASGIEventChannel
from .sse.framing import RELOAD_MESSAGE
from .sse.subscription import EventStreamResponse, SubscriptionHandler, client_key_for


class LiveReloadService(BaseService):
    """Live-reload service implementation."""

    def __init__(self, config: Optional[ServiceConfig] = None):
        super().__init__("livereload", config)

        self.broker = ReloadBroker(write_timeout=self.config.write_timeout)
        self.subscription_handler = SubscriptionHandler(self.broker, metrics=self.metrics)
        self.channel_factory = ASGIEventChannel

        self._setup_livereload_routes()
        self._mount_static_files()

        if self.config.inject_script:
            self.app.add_middleware(ReloadScriptMiddleware, sse_path=self.config.sse_path)

        self.app.state.livereload_service = self

    def _setup_livereload_routes(self):
        """Set up event stream routes.

        Both are plain Starlette routes: the trigger answers every method and
        the subscribe endpoint returns a raw ASGI response object.
        """

        async def subscribe(request: Request):
            """Event stream endpoint; stays open until the client leaves."""
            client_key = client_key_for(request.client, unique=self.config.unique_client_keys)
            return EventStreamResponse(
                self.subscription_handler,
                client_key,
                channel_factory=self.channel_factory
            )

        async def trigger_reload(request: Request):
            """Send the reload message to every subscriber."""
            result = await self.broker.broadcast(RELOAD_MESSAGE)
            self.metrics.record_broadcast(result.delivered, result.failed_count)
            return Response(status_code=200)

        self.app.add_route(self.config.sse_path, subscribe, methods=["GET"])
        self.app.add_route(self.config.reload_path, trigger_reload)

        @self.app.get(f"{self.config.ops_prefix}/stats")
        async def get_stats():
            """Get live-reload statistics."""
            return {
                "sse": self.broker.get_stats(),
                "root_dir": os.path.abspath(self.config.root_dir),
                "sse_path": self.config.sse_path,
                "reload_path": self.config.reload_path
            }

    def _mount_static_files(self):
        """Serve the root directory for every remaining path."""
        self.app.mount(
            "/",
            StaticFiles(directory=self.config.root_dir, html=True),
            name="static"
        )

    async def _check_dependencies(self) -> Dict[str, Any]:
        """Check the served directory is still there."""
        return {
            "root_dir": "ok" if os.path.isdir(self.config.root_dir) else "missing",
            "subscribers": len(self.broker)
        }

    def _refresh_metrics(self):
        self.metrics.set_gauge("active_subscribers", len(self.broker))


def create_app(config: Optional[ServiceConfig] = None):
    """Create live-reload application."""
    service = LiveReloadService(config)
    return service.app


if __name__ == "__main__":
    service = LiveReloadService()
    service.run()
