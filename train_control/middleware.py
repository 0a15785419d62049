from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
import time
import logging
import uuid

from .metrics import record_request_metrics

logger = logging.getLogger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        start_time = time.time()
        logger.info(f"Request {request_id}: {request.method} {request.url.path}")

        response = await call_next(request)

        process_time = time.time() - start_time
        # tick and reset routes stamp the minute of the state they return
        minute = getattr(request.state, "simulation_minute", None)
        if minute is not None:
            logger.info(f"Request {request_id}: {response.status_code} - {process_time:.3f}s "
                        f"(simulation minute {minute})")
            response.headers["X-Simulation-Minute"] = str(minute)
        else:
            logger.info(f"Request {request_id}: {response.status_code} - {process_time:.3f}s")
        record_request_metrics(
            method=request.method,
            endpoint=request.url.path,
            status_code=response.status_code,
            duration=process_time
        )

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = str(process_time)
        return response
