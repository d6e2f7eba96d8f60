"""
HTML rewriting middleware that injects the live-reload client script.
"""

from starlette.datastructures import MutableHeaders

from shared.logging import get_logger


def reload_script(sse_path: str = "/sse") -> bytes:
    """Client snippet: open the event stream and reload on any message."""
    return (
        '<script type="text/javascript">'
        f'new EventSource("{sse_path}").onmessage=()=>window.location.reload()'
        '</script>'
    ).encode("utf-8")


class ReloadScriptMiddleware:
    """Buffer complete ``text/html`` responses and insert the reload script
    before the first ``</head>``.

    Everything else, the event stream included, is passed through without
    buffering. Partial, encoded and HEAD responses are left alone.
    """

    def __init__(self, app, sse_path: str = "/sse"):
        self.app = app
        self.script = reload_script(sse_path)
        self.logger = get_logger("livereload.middleware.reload_script")

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http" or scope["method"] == "HEAD":
            await self.app(scope, receive, send)
            return

        start_message = None
        chunks = []

        async def send_wrapper(message):
            nonlocal start_message
            if message["type"] == "http.response.start":
                headers = MutableHeaders(raw=message["headers"])
                if (
                    message["status"] == 200
                    and headers.get("content-type", "").startswith("text/html")
                    and "content-encoding" not in headers
                ):
                    start_message = message
                    return
                await send(message)
                return

            if start_message is None or message["type"] != "http.response.body":
                await send(message)
                return

            chunks.append(message.get("body", b""))
            if message.get("more_body", False):
                return

            body = self.inject(b"".join(chunks))
            headers = MutableHeaders(raw=list(start_message["headers"]))
            headers["content-length"] = str(len(body))
            start_message["headers"] = headers.raw
            await send(start_message)
            await send({"type": "http.response.body", "body": body, "more_body": False})

        await self.app(scope, receive, send_wrapper)

    def inject(self, body: bytes) -> bytes:
        """Insert the script before the first ``</head>``; unchanged if absent."""
        index = body.find(b"</head>")
        if index == -1:
            self.logger.debug("No </head> in HTML response, script not injected")
            return body
        return body[:index] + self.script + body[index:]
