"""
Request context middleware: tags every log line of a request with its ids
"""
import time
import uuid
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from dreammapper.core.logging_config import LoggingConfig

logger = LoggingConfig.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
SESSION_ID_HEADER = "X-Session-ID"


class LoggingContextMiddleware(BaseHTTPMiddleware):
    """
    Binds request_id (taken from X-Request-ID or generated) and the optional
    client session id to the logging context for the lifetime of a request,
    and echoes the request id back on the response.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        context = {"request_id": request_id, "method": request.method, "path": request.url.path}
        session_id = request.headers.get(SESSION_ID_HEADER)
        if session_id:
            context["session_id"] = session_id
        LoggingConfig.set_context(**context)

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                f"{request.method} {request.url.path} raised {type(e).__name__}",
                exc_info=True,
                extra={"elapsed_ms": round((time.perf_counter() - started) * 1000)}
            )
            raise
        else:
            elapsed_ms = round((time.perf_counter() - started) * 1000)
            # Slow analyses are expected; the level only follows the status
            log = logger.warning if response.status_code >= 500 else logger.info
            log(
                f"{request.method} {request.url.path} -> {response.status_code}",
                extra={"status_code": response.status_code, "elapsed_ms": elapsed_ms}
            )
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            LoggingConfig.clear_context()
