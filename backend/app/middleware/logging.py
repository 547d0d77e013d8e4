"""
PlantLog Backend — Request Logging Middleware
===============================================

What:  One access-log line per request on the "plantlog.access" logger.

Line format:
    GET /api/reports/analytics?timeRange=last-week 200 12.3ms [3f2a9c0d1e4b] from 10.0.0.7

Level by status: 5xx → ERROR, 4xx → WARNING, everything else INFO.
/health and CORS preflight requests are not logged.
Bodies and the Authorization header are never logged.

Why skip /health:
    Load balancers and container health checks hit it every few seconds;
    logging those would bury the real traffic.

Why skip OPTIONS:
    The browser client sends a CORS preflight before most cross-origin
    writes. CORSMiddleware answers it without touching a route, and logging
    it would double every POST/PUT/DELETE line with a bodiless 200.

Why no bodies:
    Sample writes carry researcher contact details and field coordinates;
    the access log only needs method, path, status and timing.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.middleware.request_id import request_id_var

logger = logging.getLogger("plantlog.access")

_UNLOGGED_PATHS = frozenset({"/health"})


def _level_for(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Times the downstream stack and logs one line when the response is ready.

    The request id is read from request_id_var, so RequestIDMiddleware must
    wrap this middleware (it is added last in create_app and therefore runs
    first).
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in _UNLOGGED_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        target = f"{path}?{request.url.query}" if request.url.query else path
        client_ip = request.client.host if request.client else "unknown"
        rid = request_id_var.get("")
        status = response.status_code

        logger.log(
            _level_for(status),
            "%s %s %d %.1fms [%s] from %s",
            request.method,
            target,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
            },
        )
        return response
