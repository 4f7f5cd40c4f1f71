import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

TRACE_ID_CTX_VAR: ContextVar[str] = ContextVar("trace_id", default="")
TRACE_HEADER = "x-trace-id"


class TracingMiddleware(BaseHTTPMiddleware):
    """
    Attach a trace_id to every request and response.
    An incoming x-trace-id header is reused so callers can correlate logs.
    """
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        incoming = (request.headers.get(TRACE_HEADER) or "").strip()
        trace_id = incoming[:64] if incoming else uuid.uuid4().hex
        token = TRACE_ID_CTX_VAR.set(trace_id)
        request.state.trace_id = trace_id
        try:
            response = await call_next(request)
        finally:
            TRACE_ID_CTX_VAR.reset(token)

        response.headers[TRACE_HEADER] = trace_id
        return response
