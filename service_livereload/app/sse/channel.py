"""
Writable, flushable output channels for event stream subscribers.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, MutableMapping, Protocol, runtime_checkable

from shared.errors import ChannelClosedError

Message = MutableMapping[str, Any]
Receive = Callable[[], Awaitable[Message]]
Send = Callable[[Message], Awaitable[None]]


@runtime_checkable
class FlushableChannel(Protocol):
    """Capability every event stream transport must provide.

    A response object that cannot push bytes to the client incrementally
    simply does not implement ``flush`` and is rejected before registration.
    """

    async def start(self, headers: Dict[str, str], status_code: int = 200) -> None: ...

    async def write(self, data: bytes) -> None: ...

    async def flush(self) -> None: ...

    async def wait_closed(self) -> None: ...

    def close(self) -> None: ...


class ASGIEventChannel:
    """Event stream channel over a raw ASGI ``receive``/``send`` pair.

    The channel closes when the client disconnects (``http.disconnect``), when
    a write fails, or when ``close()`` is called. ``wait_closed`` is the only
    suspension point of a subscriber and costs no thread or polling.
    """

    def __init__(self, receive: Receive, send: Send):
        self._receive = receive
        self._send = send
        self._closed = asyncio.Event()
        self._started = False
        self._ended = False
        self.disconnected = False

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    async def start(self, headers: Dict[str, str], status_code: int = 200) -> None:
        raw_headers = [
            (name.lower().encode("latin-1"), value.encode("latin-1"))
            for name, value in headers.items()
        ]
        await self._send({
            "type": "http.response.start",
            "status": status_code,
            "headers": raw_headers
        })
        self._started = True
        await self.flush()

    async def write(self, data: bytes) -> None:
        await self._push(data)

    async def flush(self) -> None:
        # Each ASGI body message goes straight to the transport; an empty
        # chunk pushes out anything a server holds back, such as headers.
        await self._push(b"")

    async def _push(self, body: bytes) -> None:
        if self.closed:
            raise ChannelClosedError()
        if not self._started:
            raise ChannelClosedError("Channel not started")
        try:
            await self._send({
                "type": "http.response.body",
                "body": body,
                "more_body": True
            })
        except OSError as exc:
            self._closed.set()
            raise ChannelClosedError(details={"error": str(exc)}) from exc

    async def _watch_disconnect(self) -> None:
        try:
            while True:
                message = await self._receive()
                if message["type"] == "http.disconnect":
                    self.disconnected = True
                    return
        finally:
            self._closed.set()

    async def wait_closed(self) -> None:
        watcher = asyncio.ensure_future(self._watch_disconnect())
        try:
            await self._closed.wait()
        finally:
            watcher.cancel()
            await asyncio.gather(watcher, return_exceptions=True)

    def close(self) -> None:
        self._closed.set()

    async def end(self) -> None:
        """Complete the response after a server-side close.

        Nothing is sent once the client has disconnected or the response has
        already been completed.
        """
        if not self._started or self.disconnected or self._ended:
            return
        self._ended = True
        try:
            await self._send({
                "type": "http.response.body",
                "body": b"",
                "more_body": False
            })
        except OSError:
            self.disconnected = True


ChannelFactory = Callable[[Receive, Send], Any]
