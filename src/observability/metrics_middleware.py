"""
FastAPI middleware for automatic Prometheus metrics collection.

Tracks request counts by endpoint, method and status code, plus latency.
User ids in paths are collapsed to keep label cardinality bounded.
"""

import logging
import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from src.observability.metrics import record_http_request

logger = logging.getLogger(__name__)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Collect request count and latency for every HTTP request"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        method = request.method
        path = normalize_path(request.url.path)
        start_time = time.time()
        status_code = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
        except Exception as e:
            logger.error(f"Request failed: {e}", exc_info=True)
            raise
        finally:
            record_http_request(method, path, status_code, time.time() - start_time)

        return response


def normalize_path(path: str) -> str:
    """
    Normalize request path to reduce cardinality.

    - /api/v1/users/athlete-42/progress -> /api/v1/users/{user_id}/progress
    - /metrics and /api/health stay as-is
    """
    parts = path.strip("/").split("/")
    normalized = []
    for index, part in enumerate(parts):
        if index > 0 and parts[index - 1] == "users":
            normalized.append("{user_id}")
        else:
            normalized.append(part)
    return "/" + "/".join(normalized)


def setup_metrics_middleware(app) -> None:
    """Add Prometheus metrics middleware to a FastAPI application"""
    app.add_middleware(PrometheusMiddleware)
    logger.info("Prometheus metrics middleware added to FastAPI")
