"""
Subscriber registry and reload broadcaster.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from shared.logging import get_logger

from .channel import FlushableChannel
from .framing import RELOAD_MESSAGE
from .rwlock import ReadWriteLock


@dataclass
class Subscriber:
    """A registered event stream connection."""
    client_key: str
    channel: FlushableChannel
    write_lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    connected_at: datetime = field(default_factory=datetime.now)
    messages_sent: int = 0


@dataclass
class BroadcastResult:
    """Outcome of a single broadcast."""
    delivered: int = 0
    failed: List[str] = field(default_factory=list)

    @property
    def failed_count(self) -> int:
        return len(self.failed)


class ReloadBroker:
    """Registry of event stream subscribers keyed by client key.

    ``register``/``unregister`` take the registry lock exclusively. A
    broadcast holds it shared while writing, so broadcasts may overlap each
    other but never a registry mutation. Subscribers whose write fails are
    collected during the write pass and removed once the shared lock is
    released.
    """

    def __init__(self, write_timeout: Optional[float] = None):
        self.write_timeout = write_timeout
        self.logger = get_logger("livereload.sse.broker")

        self._subscribers: Dict[str, Subscriber] = {}
        self._lock = ReadWriteLock()

    def __len__(self) -> int:
        return len(self._subscribers)

    def __contains__(self, client_key: str) -> bool:
        return client_key in self._subscribers

    async def register(self, client_key: str, channel: FlushableChannel) -> None:
        """Register ``channel`` under ``client_key``, replacing any previous entry."""
        async with self._lock.writer():
            replaced = self._subscribers.get(client_key)
            self._subscribers[client_key] = Subscriber(client_key=client_key, channel=channel)

        if replaced is not None and replaced.channel is not channel:
            self.logger.warning(
                "Subscriber key reused, previous entry overwritten",
                client_key=client_key
            )

        self.logger.info(
            "Subscriber registered",
            client_key=client_key,
            total_subscribers=len(self._subscribers)
        )

    async def unregister(self, client_key: str, channel: Optional[FlushableChannel] = None) -> bool:
        """Remove ``client_key``. Absent keys are ignored.

        When ``channel`` is given the entry is only removed if it still
        belongs to that channel.
        """
        async with self._lock.writer():
            subscriber = self._subscribers.get(client_key)
            if subscriber is None:
                return False
            if channel is not None and subscriber.channel is not channel:
                return False
            del self._subscribers[client_key]

        self.logger.info(
            "Subscriber unregistered",
            client_key=client_key,
            messages_sent=subscriber.messages_sent,
            total_subscribers=len(self._subscribers)
        )
        return True

    async def _deliver(self, subscriber: Subscriber, payload: bytes) -> bool:
        async def write():
            async with subscriber.write_lock:
                await subscriber.channel.write(payload)
                await subscriber.channel.flush()

        try:
            if self.write_timeout:
                await asyncio.wait_for(write(), timeout=self.write_timeout)
            else:
                await write()
        except Exception as e:
            self.logger.warning(
                "Failed to deliver message to subscriber",
                client_key=subscriber.client_key,
                error=str(e) or type(e).__name__
            )
            subscriber.channel.close()
            return False

        subscriber.messages_sent += 1
        return True

    async def broadcast(self, payload: bytes = RELOAD_MESSAGE) -> BroadcastResult:
        """Write ``payload`` to every subscriber."""
        result = BroadcastResult()
        failed: List[Subscriber] = []

        async with self._lock.reader():
            subscribers = list(self._subscribers.values())
            outcomes = await asyncio.gather(
                *(self._deliver(subscriber, payload) for subscriber in subscribers)
            )

        for subscriber, delivered in zip(subscribers, outcomes):
            if delivered:
                result.delivered += 1
            else:
                failed.append(subscriber)

        # Clean up failed subscribers
        for subscriber in failed:
            await self.unregister(subscriber.client_key, channel=subscriber.channel)
            result.failed.append(subscriber.client_key)

        self.logger.info(
            "Broadcast message to subscribers",
            sent_count=result.delivered,
            failed_count=result.failed_count
        )

        return result

    def get_subscriber(self, client_key: str) -> Optional[Subscriber]:
        """Get subscriber by client key."""
        return self._subscribers.get(client_key)

    def client_keys(self) -> List[str]:
        """Snapshot of the registered client keys."""
        return list(self._subscribers)

    def get_stats(self) -> Dict[str, Any]:
        """Get subscriber statistics."""
        now = datetime.now()
        return {
            "total_subscribers": len(self._subscribers),
            "subscribers": [
                {
                    "client_key": subscriber.client_key,
                    "connected_seconds": round((now - subscriber.connected_at).total_seconds(), 3),
                    "messages_sent": subscriber.messages_sent
                }
                for subscriber in self._subscribers.values()
            ]
        }
