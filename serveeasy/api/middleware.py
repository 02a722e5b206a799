"""Request ID and access-log middleware."""

import time
import uuid

from starlette.requests import Request

from serveeasy.logging_context import bind_request_id, get_request_logger

logger = get_request_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


async def request_id_middleware(request: Request, call_next):
    """Bind a request ID to the logging context for this request only and echo it back."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
    request.state.request_id = request_id

    with bind_request_id(request_id):
        start_time = time.time()
        response = await call_next(request)
        duration_ms = round((time.time() - start_time) * 1000, 2)

        response.headers[REQUEST_ID_HEADER] = request_id
        logger.info(
            "%s %s -> %d (%.2f ms)", request.method, request.url.path, response.status_code, duration_ms
        )
    return response
