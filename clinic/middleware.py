import time
import uuid

import structlog

from clinic.logging_config import get_logger

logger = get_logger(__name__)


class RequestContextMiddleware:
    """Bind a request id to the log context and log each request once.

    An incoming ``X-Request-ID`` header is reused so traces can be joined
    with an upstream proxy; otherwise a short random id is generated.
    """
    HEADER = 'X-Request-ID'

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request_id = request.headers.get(self.HEADER) or f"req-{uuid.uuid4().hex[:12]}"
        request.request_id = request_id
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        started = time.monotonic()
        response = self.get_response(request)
        elapsed_ms = int((time.monotonic() - started) * 1000)

        response[self.HEADER] = request_id
        logger.info(
            'request',
            method=request.method,
            path=request.path,
            status=response.status_code,
            duration_ms=elapsed_ms,
        )
        structlog.contextvars.clear_contextvars()
        return response
