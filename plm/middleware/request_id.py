"""Request ID middleware.

Forwards a caller's X-Request-ID (when it is safe to log) or generates
one, exposes it through get_request_id() for log lines, and echoes it on
the response. Raw ASGI so streaming responses are untouched.
"""

import re
from contextvars import ContextVar
from typing import Callable

from plm.shared.utils.generators import generate_cuid

REQUEST_ID_MAX_LENGTH = 64
_SAFE_REQUEST_ID = re.compile(r"^[a-zA-Z0-9_-]{1," + str(REQUEST_ID_MAX_LENGTH) + r"}$")

_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)


def get_request_id() -> str | None:
    """Request id of the request being handled, if any."""
    return _request_id.get()


def _header(scope: dict, name: str) -> str | None:
    want = name.lower().encode()
    for key, value in scope.get("headers", []):
        if key.lower() == want:
            return value.decode("utf-8", errors="replace")
    return None


def resolve_request_id(raw: str | None) -> str:
    """Caller's id when it matches the safe pattern, otherwise a fresh CUID."""
    candidate = (raw or "").strip()
    if _SAFE_REQUEST_ID.match(candidate):
        return candidate
    return generate_cuid()


def RequestIDMiddleware(app: Callable, header_name: str = "X-Request-ID") -> Callable:
    """Attach a request id to scope state, the context and the response headers."""

    async def asgi_app(scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await app(scope, receive, send)
            return
        request_id = resolve_request_id(_header(scope, header_name))
        scope.setdefault("state", {})["request_id"] = request_id
        token = _request_id.set(request_id)

        async def send_with_header(message: dict) -> None:
            if message["type"] == "http.response.start":
                message["headers"] = [
                    *message.get("headers", []),
                    (header_name.encode(), request_id.encode()),
                ]
            await send(message)

        try:
            await app(scope, receive, send_with_header)
        finally:
            _request_id.reset(token)

    return asgi_app
