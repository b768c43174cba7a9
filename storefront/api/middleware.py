"""API middleware for request processing."""

import logging
import time
from collections import deque
from typing import Callable, Iterable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from storefront.utils.helpers import generate_uuid

logger = logging.getLogger(__name__)

_SWEEP_INTERVAL = 300.0  # seconds


class LoggingMiddleware(BaseHTTPMiddleware):
    """Logs each request with its status and latency.

    Cookies and Authorization headers are never logged.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or generate_uuid()
        start_time = time.monotonic()

        try:
            response = await call_next(request)
        except Exception as e:
            process_time = time.monotonic() - start_time
            logger.error(
                "%s %s failed after %.3fs: %s",
                request.method,
                request.url.path,
                process_time,
                e,
                extra={"request_id": request_id, "process_time_s": round(process_time, 3)},
            )
            raise

        process_time = time.monotonic() - start_time
        logger.info(
            "%s %s -> %s in %.3fs",
            request.method,
            request.url.path,
            response.status_code,
            process_time,
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "process_time_s": round(process_time, 3),
                "client": request.client.host if request.client else "unknown",
            },
        )
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{process_time:.3f}"
        return response


class SlidingWindowLimiter:
    """Per-key request counter over a sliding time window.

    Keys idle for longer than the window are dropped every ``sweep_interval``
    seconds.
    """

    def __init__(
        self,
        max_requests: int,
        period: float,
        clock: Callable[[], float] = time.monotonic,
        sweep_interval: float = _SWEEP_INTERVAL,
    ) -> None:
        self.max_requests = max_requests
        self.period = period
        self._clock = clock
        self._sweep_interval = sweep_interval
        self._hits: dict[str, deque[float]] = {}
        self._last_sweep = clock()

    def __len__(self) -> int:
        return len(self._hits)

    def allow(self, key: str) -> bool:
        """Record a hit for ``key`` unless it is already at the limit."""
        now = self._clock()
        self._sweep(now)

        hits = self._hits.setdefault(key, deque())
        while hits and hits[0] <= now - self.period:
            hits.popleft()

        if len(hits) >= self.max_requests:
            return False
        hits.append(now)
        return True

    def _sweep(self, now: float) -> None:
        if now - self._last_sweep < self._sweep_interval:
            return
        horizon = now - self.period
        for key in [k for k, hits in self._hits.items() if not hits or hits[-1] <= horizon]:
            del self._hits[key]
        self._last_sweep = now


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Rate limiting for the model-backed endpoints.

    Only requests whose path is in ``paths`` are counted; everything else
    passes straight through.
    """

    def __init__(
        self,
        app,
        paths: Iterable[str],
        max_requests: int = 10,
        period: int = 60,
    ) -> None:
        super().__init__(app)
        self.paths = frozenset(paths)
        self.limiter = SlidingWindowLimiter(max_requests, period)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path not in self.paths:
            return await call_next(request)

        client = request.client.host if request.client else "unknown"
        if not self.limiter.allow(client):
            retry_after = int(self.limiter.period)
            logger.warning("Rate limit exceeded for %s on %s", client, request.url.path)
            return JSONResponse(
                status_code=429,
                content={"error": "Rate limit exceeded", "retry_after": retry_after},
                headers={"Retry-After": str(retry_after)},
            )
        return await call_next(request)


class SessionRefreshMiddleware(BaseHTTPMiddleware):
    """Keeps a signed-in visitor signed in after the access cookie expires.

    When only the refresh cookie is left, it is exchanged for a new session
    before the route runs. The request's cookie header is rewritten so the
    route resolves the user, and the new session cookies go on the response.
    A refresh token GoTrue rejects is cleared along with the access cookie.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        services = getattr(request.app.state, "services", None)
        if services is None:
            return await call_next(request)

        settings = services.settings
        refresh_token = request.cookies.get(settings.refresh_token_cookie_name)
        if not refresh_token or request.cookies.get(settings.access_token_cookie_name):
            return await call_next(request)

        session = await services.auth.refresh_session(refresh_token)
        if session is None:
            response = await call_next(request)
            if not _sets_cookie(response, settings.access_token_cookie_name):
                services.auth.clear_session_cookies(response)
            return response

        logger.info("Refreshed session for user %s", session.user.id)
        cookies = dict(request.cookies)
        cookies[settings.access_token_cookie_name] = session.access_token
        cookies[settings.refresh_token_cookie_name] = session.refresh_token
        _replace_cookie_header(request, cookies)

        response = await call_next(request)
        # Routes that sign in or out own the session cookies
        if not _sets_cookie(response, settings.access_token_cookie_name):
            services.auth.set_session_cookies(response, session)
        return response


def _sets_cookie(response: Response, name: str) -> bool:
    prefix = f"{name}="
    return any(value.startswith(prefix) for value in response.headers.getlist("set-cookie"))


def _replace_cookie_header(request: Request, cookies: dict[str, str]) -> None:
    cookie_header = "; ".join(f"{name}={value}" for name, value in cookies.items())
    headers = [(k, v) for k, v in request.scope["headers"] if k != b"cookie"]
    headers.append((b"cookie", cookie_header.encode("latin-1")))
    request.scope["headers"] = headers
