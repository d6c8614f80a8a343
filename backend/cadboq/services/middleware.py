"""
Request tracing for the CAD-to-BOQ API.

Each request gets an id, the caller's X-Request-ID when it sent a usable one,
otherwise a fresh uuid4. The id is echoed on the response, kept on
request.state and bound to the logging context so the parse and generation
log lines for an upload carry it as well.
"""
import time
import uuid
import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from cadboq.services.logging_config import request_id_ctx

logger = logging.getLogger("cadboq-api.middleware")

SKIP_LOG_PATHS = {"/health", "/metrics"}
MAX_REQUEST_ID_LENGTH = 128


def resolve_request_id(request: Request) -> str:
    supplied = request.headers.get("x-request-id", "").strip()
    if supplied and len(supplied) <= MAX_REQUEST_ID_LENGTH and supplied.isprintable():
        return supplied
    return str(uuid.uuid4())


class RequestTimingMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = resolve_request_id(request)
        request.state.request_id = request_id
        token = request_id_ctx.set(request_id)
        start_time = time.perf_counter()

        try:
            response: Response = await call_next(request)
        finally:
            request_id_ctx.reset(token)

        duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = str(duration_ms)

        if request.url.path not in SKIP_LOG_PATHS:
            upload_bytes = request.headers.get("content-length")
            logger.log(
                logging.WARNING if response.status_code >= 500 else logging.INFO,
                f"{request.method} {request.url.path} -> {response.status_code}",
                extra={
                    "http_method": request.method,
                    "http_path": request.url.path,
                    "http_status": response.status_code,
                    "request_id": request_id,
                    "duration_ms": duration_ms,
                    "upload_bytes": int(upload_bytes) if upload_bytes and upload_bytes.isdigit() else None,
                },
            )

        return response
