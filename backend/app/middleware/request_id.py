"""
PlantLog Backend — Request ID Middleware
==========================================

What:  Assigns a correlation id to every request and echoes it back in the
       X-Request-ID response header.
How:   Reuses a client-supplied X-Request-ID when it looks sane, otherwise
       generates a short one. The id is kept in a ContextVar so log lines and
       the error envelope (`request_id`) can read it anywhere in the request.
Why:   Every log line and every error body from one request carries the same
       id, so a researcher can quote the id from an error toast and the
       matching server log entries are one grep away.

Why client ids are validated:
    The client (the sample form, a batch import script) may send its own
    X-Request-ID so that a UI action and its log lines share one id. That
    value is echoed into log lines and response headers, so only short
    [A-Za-z0-9._-] tokens are trusted; anything else (spaces, control
    characters, 200-character strings) is replaced with a fresh id rather
    than rejected, since a bad tracing header should never fail a request.
"""

import re
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

# Client ids end up in log lines; anything outside this shape is replaced
_CLIENT_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,64}$")

# Coroutine-local: concurrent requests on one event loop each see their own id
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def new_request_id() -> str:
    return uuid.uuid4().hex[:12]


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Assigns the request id before any other middleware runs.

    Behavior:
        1. Reuse the client X-Request-ID if it matches the safe pattern
        2. Otherwise generate a 12-hex-character id
        3. Store it in request_id_var and request.state
        4. Echo it in the X-Request-ID response header
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        incoming = request.headers.get(REQUEST_ID_HEADER, "")
        rid = incoming if _CLIENT_ID_PATTERN.match(incoming) else new_request_id()

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = rid
        return response
