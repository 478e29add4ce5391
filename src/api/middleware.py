"""ASGI middleware for the clipper API."""

import logging
import uuid

from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from utils.logging import bind_request_context, clear_request_context

logger = logging.getLogger(__name__)


class RequestContextMiddleware:
    """Bind request fields to the log context and echo X-Request-ID.

    Written as plain ASGI so that an error raised by a streaming body after
    the response started still reaches the server, which then drops the
    connection instead of ending the body cleanly.
    """

    header_name = "X-Request-ID"

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = Headers(scope=scope).get(self.header_name) or uuid.uuid4().hex[:12]
        method = scope["method"]
        path = scope["path"]
        bind_request_context(request_id, method, path)

        async def send_with_request_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message)[self.header_name] = request_id
                logger.info(f"{method} {path} -> {message['status']}")
            await send(message)

        try:
            await self.app(scope, receive, send_with_request_id)
        finally:
            clear_request_context()
