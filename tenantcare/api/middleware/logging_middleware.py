"""
Request logging middleware for the FastAPI application.

Every request gets a correlation id. Logged requests produce one line on
the way in and one on the way out; the outgoing line names the clinic
store the request was routed to, when the tenant context dependency ran.
"""

import logging
import time
import uuid
from collections.abc import Callable, Iterable
from typing import Any

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"
RESPONSE_TIME_HEADER = "X-Response-Time-Ms"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    HTTP middleware for request/response logging.

    Logs method, path, client address, duration and status. Responses with a
    status of 400 or more are logged at WARNING. The store locator is read
    from `request.state.store_locator`, which `get_tenant_context` sets once
    the caller's clinic is resolved.
    """

    # High-frequency, low-value paths
    DEFAULT_EXCLUDE_PATHS: tuple[str, ...] = (
        "/health",
        "/favicon.ico",
    )

    def __init__(self, app: ASGIApp, exclude_paths: Iterable[str] | None = None) -> None:
        """
        Args:
            app: ASGI application
            exclude_paths: Path prefixes that only get a correlation id, no log lines
        """
        super().__init__(app)
        self.exclude_paths = tuple(exclude_paths) if exclude_paths is not None else self.DEFAULT_EXCLUDE_PATHS

    def _should_log(self, path: str) -> bool:
        return not any(path.startswith(exclude) for exclude in self.exclude_paths)

    def _generate_correlation_id(self) -> str:
        return str(uuid.uuid4())[:8]

    async def dispatch(self, request: Request, call_next: Callable[[Request], Any]) -> Response:
        """
        Log the request, run it, log the outcome.

        Args:
            request: Incoming HTTP request
            call_next: Next middleware/handler in chain

        Returns:
            Response of the handler with correlation and timing headers added
        """
        correlation_id = request.headers.get(CORRELATION_HEADER) or self._generate_correlation_id()
        request.state.correlation_id = correlation_id

        if not self._should_log(request.url.path):
            response = await call_next(request)
            response.headers[CORRELATION_HEADER] = correlation_id
            return response

        start_time = time.perf_counter()
        logger.info(f"[{correlation_id}] --> {request.method} {request.url.path} from {self._get_client_ip(request)}")

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"[{correlation_id}] <-- {request.method} {request.url.path} "
                f"ERROR in {duration_ms:.2f}ms{self._store_suffix(request)}: {e}"
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000
        log_level = logging.WARNING if response.status_code >= 400 else logging.INFO
        logger.log(
            log_level,
            f"[{correlation_id}] <-- {request.method} {request.url.path} "
            f"{response.status_code} in {duration_ms:.2f}ms{self._store_suffix(request)}",
        )

        response.headers[CORRELATION_HEADER] = correlation_id
        response.headers[RESPONSE_TIME_HEADER] = f"{duration_ms:.2f}"
        return response

    @staticmethod
    def _store_suffix(request: Request) -> str:
        """` [store=<locator>]` for tenant-routed requests, empty otherwise."""
        store_locator = getattr(request.state, "store_locator", None)
        return f" [store={store_locator}]" if store_locator else ""

    def _get_client_ip(self, request: Request) -> str:
        """
        Client IP, considering proxies.

        The first address of X-Forwarded-For is the original client.
        """
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()
        return request.client.host if request.client else "unknown"
