"""
NoteCraft Backend: Request ID Middleware
==========================================

What:  Assigns every request a correlation ID and echoes it in X-Request-ID.
How:   Reuses a client-supplied X-Request-ID (so a client running the
       ingestion pipeline with remote collaborators can correlate its calls),
       otherwise generates a short UUID. The ID lives in a ContextVar that the
       exception handlers and the access log read.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

# Empty outside of a request
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def new_request_id() -> str:
    return uuid.uuid4().hex[:8]


class RequestIDMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get(REQUEST_ID_HEADER) or new_request_id()
        token = request_id_var.set(rid)
        request.state.request_id = rid

        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)

        response.headers[REQUEST_ID_HEADER] = rid
        return response
