"""
Server-Sent Events message framing.

Only unnamed messages are produced: ``data:`` is mandatory for the browser to
dispatch anything, and named ``event:`` messages are not delivered to
``EventSource.onmessage`` handlers.
"""

EVENT_STREAM_HEADERS = {
    "Content-Type": "text/event-stream",
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "Access-Control-Allow-Origin": "*",
}


def format_message(data: str) -> bytes:
    """Frame ``data`` as one SSE message terminated by a blank line."""
    lines = data.splitlines() or [""]
    return "".join(f"data: {line}\n" for line in lines).encode("utf-8") + b"\n"


RELOAD_MESSAGE = format_message("reload")
