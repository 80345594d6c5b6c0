"""Request logging middleware."""

import logging
from typing import Any, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every inbound request with its response status at debug level."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Any],
    ) -> Response:
        response = await call_next(request)

        if logger.isEnabledFor(logging.DEBUG):
            addr = request.client.host if request.client else ""
            http_version = request.scope.get("http_version", "1.1")
            logger.debug(
                "middleware handlers: addr=%s url=%s status=%d res_len=%s referer=%s user_agent=%s",
                addr,
                f"{request.method} {request.url} HTTP/{http_version}",
                response.status_code,
                response.headers.get("content-length", "0"),
                request.headers.get("referer", ""),
                request.headers.get("user-agent", ""),
            )
        return response
