from __future__ import annotations

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from tezeus.shared.logging import bind_request_context, clear_request_context
from tezeus.shared.request_context import WORKSPACE_ID_HEADER, RequestContext


class ContextMiddleware(BaseHTTPMiddleware):
    """
    Parses the identity headers once per request into `request.state.context`
    (None without a user header) and binds them to the log context.

    Enforcement lives in the FastAPI dependencies; this layer only records.
    """
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        ctx = RequestContext.from_headers(request.headers)
        request.state.context = ctx
        try:
            bind_request_context(
                request_id=getattr(request.state, "request_id", None),
                workspace_id=ctx.workspace_id if ctx else request.headers.get(WORKSPACE_ID_HEADER),
                user_id=ctx.user_id if ctx else None,
                path=request.url.path,
                method=request.method,
                client_ip=request.client.host if request.client else None,
            )
            return await call_next(request)
        finally:
            clear_request_context()
