"""Access logging middleware."""

import logging

from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger("podserve.access")


class ResponseRecorder:
    """Wraps an ASGI ``send`` callable and records what was sent."""

    def __init__(self, send: Send):
        self._send = send
        self.status: int | None = None
        self.content_length: int | None = None

    async def __call__(self, message: Message) -> None:
        if message["type"] == "http.response.start":
            self.status = message["status"]
            length = Headers(raw=message.get("headers", [])).get("content-length")
            if length is not None and length.isdigit():
                self.content_length = int(length)
        await self._send(message)


def response_log_fields(scope: Scope, recorder: ResponseRecorder) -> dict:
    """Collect the fields of one access log record."""
    headers = Headers(scope=scope)
    client = scope.get("client")
    path = scope.get("path", "")
    if query := scope.get("query_string", b""):
        path += "?" + query.decode("latin-1")

    fields = {
        "remote_addr": f"{client[0]}:{client[1]}" if client else "-",
        "method": scope.get("method", ""),
        "path": path,
        "proto": f"HTTP/{scope.get('http_version', '1.1')}",
        "status": recorder.status if recorder.status is not None else 500,
    }
    if recorder.content_length is not None:
        fields["content_length"] = recorder.content_length
    if x_forwarded_for := headers.get("x-forwarded-for"):
        fields["x_forwarded_for"] = x_forwarded_for
    if user_agent := headers.get("user-agent"):
        fields["user_agent"] = user_agent
    return fields


class AccessLogMiddleware:
    """Emit one log record per HTTP request once its response is complete.

    A response that never started (the app raised) is logged with status 500,
    which is what the server error handler sends in that case.
    """

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        recorder = ResponseRecorder(send)
        try:
            await self.app(scope, receive, recorder)
        finally:
            logger.info("Sent response", extra=response_log_fields(scope, recorder))
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug(
                    "Request headers",
                    extra={"headers": dict(Headers(scope=scope))},
                )
