from __future__ import annotations

import uuid
from time import perf_counter
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from tezeus.shared.logging import bind_request_context, get_logger

REQUEST_ID_HEADER = "X-Request-ID"

logger = get_logger(__name__)


class RequestIdMiddleware(BaseHTTPMiddleware):
    """
    Tags every request with a correlation id (echoed in X-Request-ID) and
    writes one access line per request, stamped with the service name and version.
    """

    def __init__(self, app: ASGIApp, *, service: str, version: Optional[str] = None):
        super().__init__(app)
        self.service = service
        self.version = version

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        bind_request_context(request_id=request_id)

        started = perf_counter()
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id

        # inner middleware clears the bound context, so fields are passed explicitly
        logger.info(
            "Request completed",
            service=self.service,
            version=self.version,
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round((perf_counter() - started) * 1000, 2),
        )
        return response
