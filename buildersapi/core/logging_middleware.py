import logging
import time
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

logger = logging.getLogger("buildersapi")


class LoggingMiddleware(BaseHTTPMiddleware):
    """요청/응답 로깅 - 4xx 는 warning, 5xx 는 error"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start = time.time()
        method = request.method
        url = str(request.url)
        client = request.client.host if request.client else "-"

        logger.info(f"[Request] {method} {url} from {client}")
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(f"[Unhandled Error] {method} {url} from {client}")
            raise

        duration_ms = (time.time() - start) * 1000
        message = (
            f"[Response] {method} {url} from {client} -> "
            f"{response.status_code} in {duration_ms:.1f}ms"
        )
        if response.status_code >= 500:
            logger.error(message)
        elif response.status_code >= 400:
            logger.warning(message)
        else:
            logger.info(message)
        return response
