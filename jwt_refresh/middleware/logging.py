import time
import uuid
from typing import Callable

from fastapi import Request, Response
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

from jwt_refresh.core.logger import request_id_var

REQUEST_ID_HEADER = "X-Request-ID"


class LoggingMiddleware(BaseHTTPMiddleware):
    """Tag every request with an ID shared by all log lines it produces."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = str(uuid.uuid4())[:8]
        request.state.request_id = request_id
        token = request_id_var.set(request_id)

        start_time = time.time()

        try:
            logger.trace(f"{request.method} {request.url.path}")

            try:
                response = await call_next(request)
            except Exception as e:
                process_time = time.time() - start_time
                # Request bodies and headers may carry tokens, only the route is logged
                logger.error(
                    f"{request.method} {request.url.path} - "
                    f"Error: {e!r} - Time: {process_time:.3f}s"
                )
                raise e

            process_time = time.time() - start_time
            logger.trace(
                f"{request.method} {request.url.path} - "
                f"Status: {response.status_code} - Time: {process_time:.3f}s"
            )

            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            request_id_var.reset(token)
