import logging
import time
import uuid
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger("app.access")

class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tags every request with an id (client supplied or fresh) and logs one access line."""

    async def dispatch(self, request: Request, call_next):
        req_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = req_id
        started = time.perf_counter()
        response = await call_next(request)
        response.headers["X-Request-ID"] = req_id
        logger.info(
            "%s %s -> %s in %.1fms request_id=%s",
            request.method, request.url.path, response.status_code,
            (time.perf_counter() - started) * 1000, req_id,
        )
        return response
