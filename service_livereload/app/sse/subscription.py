"""
Event stream subscription handling.
"""

import time
import uuid
from typing import Any, Optional

from starlette.datastructures import Address

from shared.errors import StreamingUnsupportedError
from shared.logging import get_logger, set_client_context
from shared.metrics import MetricsCollector

from .broker import ReloadBroker
from .channel import ASGIEventChannel, ChannelFactory, FlushableChannel
from .framing import EVENT_STREAM_HEADERS


def client_key_for(client: Optional[Address], unique: bool = True) -> str:
    """Derive a subscriber key from the remote endpoint.

    With ``unique`` a short session suffix is appended, so two clients that
    share an endpoint string (same proxy, reconnect before cleanup) never
    overwrite each other's registration.
    """
    endpoint = f"{client.host}:{client.port}" if client else "unknown"
    if unique:
        return f"{endpoint}#{uuid.uuid4().hex[:8]}"
    return endpoint


class SubscriptionHandler:
    """Binds an event stream channel to the broker for its whole lifetime."""

    def __init__(self, broker: ReloadBroker, metrics: Optional[MetricsCollector] = None):
        self.broker = broker
        self.metrics = metrics
        self.logger = get_logger("livereload.sse.subscription")

    async def serve(self, channel: Any, client_key: str) -> None:
        """Stream to ``channel`` until the client goes away.

        Raises ``StreamingUnsupportedError`` before anything is sent or
        registered when the channel cannot be flushed incrementally.
        """
        if not isinstance(channel, FlushableChannel):
            self.logger.error(
                "Subscriber channel cannot stream",
                client_key=client_key,
                channel_type=type(channel).__name__
            )
            raise StreamingUnsupportedError(details={"channel": type(channel).__name__})

        set_client_context(client_key)
        await channel.start(EVENT_STREAM_HEADERS)
        await self.broker.register(client_key, channel)
        if self.metrics:
            self.metrics.increment_counter("subscriptions_total")

        started = time.time()
        try:
            await channel.wait_closed()
        finally:
            await self.broker.unregister(client_key, channel=channel)
            if self.metrics:
                self.metrics.observe_histogram("connection_duration_seconds", time.time() - started)


class EventStreamResponse:
    """ASGI response that hands its transport to a ``SubscriptionHandler``.

    ``StreamingResponse`` drives a body iterator and owns ``receive`` while it
    listens for disconnects. Here the broker writes to the stream from other
    tasks, so the raw ``receive``/``send`` pair goes to an event channel
    instead. The route is registered as a plain Starlette route, which calls
    the returned object with the ASGI triple.
    """

    def __init__(
        self,
        handler: SubscriptionHandler,
        client_key: str,
        channel_factory: ChannelFactory = ASGIEventChannel
    ):
        self.handler = handler
        self.client_key = client_key
        self.channel_factory = channel_factory

    async def __call__(self, scope, receive, send) -> None:
        channel = self.channel_factory(receive, send)
        await self.handler.serve(channel, self.client_key)
        # The broker may have closed the channel while the client is still connected
        end = getattr(channel, "end", None)
        if end is not None:
            await end()
