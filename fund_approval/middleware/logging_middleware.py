"""
Logging Middleware
Logs HTTP requests with a correlation id and their timing
"""

import time
import uuid
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from fund_approval.utils.logger import setup_logger

logger = setup_logger()

REQUEST_ID_HEADER = "X-Request-ID"


class LoggingMiddleware(BaseHTTPMiddleware):
    """Log every request/response pair and echo a request id header"""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:12]
        request.state.request_id = request_id
        start_time = time.time()

        with logger.contextualize(request_id=request_id):
            logger.info(
                f"[{request_id}] {request.method} {request.url.path} | "
                f"Client: {request.client.host if request.client else 'unknown'}"
            )

            try:
                response = await call_next(request)
            except Exception:
                logger.exception(
                    f"[{request_id}] {request.method} {request.url.path} failed after "
                    f"{time.time() - start_time:.3f}s"
                )
                raise

            duration = time.time() - start_time
            logger.info(
                f"[{request_id}] {request.method} {request.url.path} -> "
                f"{response.status_code} in {duration:.3f}s"
            )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
