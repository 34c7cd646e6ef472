"""X-Request-ID handling and access logging."""

import re
import time
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from rushr_messaging.dependencies import USER_ID_HEADER
from rushr_messaging.logging_config import (
    bind_request_context,
    clear_request_context,
    get_logger,
)

REQUEST_ID_HEADER = "X-Request-ID"

# Alphanumeric plus dots, hyphens and underscores; UUIDs match too
VALID_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,128}$")

logger = get_logger(__name__)


def resolve_request_id(incoming: str) -> str:
    """Reuse a well-formed incoming id, otherwise generate one."""
    if incoming and VALID_REQUEST_ID_PATTERN.match(incoming):
        return incoming
    return str(uuid.uuid4())


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Binds a request id to the logging context and echoes it back."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start_time = time.monotonic()
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER, ""))
        request.state.request_id = request_id
        bind_request_context(request_id, request.headers.get(USER_ID_HEADER))

        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            logger.info(
                "request_completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round((time.monotonic() - start_time) * 1000, 2),
            )
            return response
        finally:
            clear_request_context()
