from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
import threading
import time

from app.config import (
    RATE_LIMIT_ENABLED, RATE_LIMIT_REQUESTS, RATE_LIMIT_WINDOW_SECONDS, RATE_LIMIT_PATH_PREFIXES,
    TRUSTED_PROXY_HEADERS, TRUSTED_PROXY_USE_LEFTMOST_IP, logger
)
from app.middleware.ip_filter_middleware import get_client_ip
from app.responses import error_response
from app.security_config import RATE_LIMIT_MESSAGE


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, max_requests=None, window_seconds=None, path_prefixes=None,
                 enabled=None, trusted_headers=None, use_leftmost_ip=None):
        super().__init__(app)
        self.max_requests = max_requests if max_requests is not None else RATE_LIMIT_REQUESTS
        self.window_seconds = window_seconds if window_seconds is not None else RATE_LIMIT_WINDOW_SECONDS
        self.path_prefixes = tuple(path_prefixes) if path_prefixes is not None else tuple(RATE_LIMIT_PATH_PREFIXES)
        self.enabled = enabled if enabled is not None else RATE_LIMIT_ENABLED
        self.trusted_headers = tuple(trusted_headers) if trusted_headers is not None else tuple(TRUSTED_PROXY_HEADERS)
        self.use_leftmost_ip = use_leftmost_ip if use_leftmost_ip is not None else TRUSTED_PROXY_USE_LEFTMOST_IP
        # In-memory store keyed by (client ip, path prefix), shared by all requests
        self.request_times = {}
        self._last_sweep = 0.0
        self._lock = threading.Lock()

    async def dispatch(self, request: Request, call_next):
        # If rate limiting is disabled, skip
        if not self.enabled:
            return await call_next(request)

        prefix = self.matching_prefix(request)
        if prefix is None:
            return await call_next(request)

        client_ip = get_client_ip(request, self.trusted_headers, self.use_leftmost_ip)
        if not self.hit((client_ip, prefix)):
            logger.warning(f"Rate limit exceeded for IP {client_ip} on {request.url.path}")
            return error_response(429, RATE_LIMIT_MESSAGE, headers={"Retry-After": str(self.window_seconds)})

        return await call_next(request)

    def hit(self, key, now=None) -> bool:
        """Records a request for ``key``; returns False when over the limit."""
        now = time.monotonic() if now is None else now
        with self._lock:
            self._evict_idle(now)
            # Drop requests older than the window
            recent = [t for t in self.request_times.get(key, ()) if now - t < self.window_seconds]
            if len(recent) >= self.max_requests:
                self.request_times[key] = recent
                return False
            recent.append(now)
            self.request_times[key] = recent
            return True

    def _evict_idle(self, now) -> None:
        # At most once per window, forget keys with no request inside the window
        if now - self._last_sweep < self.window_seconds:
            return
        self._last_sweep = now
        idle = [key for key, times in self.request_times.items() if not times or now - times[-1] >= self.window_seconds]
        for key in idle:
            del self.request_times[key]

    def matching_prefix(self, request: Request):
        path = request.url.path
        for prefix in self.path_prefixes:
            if path.startswith(prefix):
                return prefix
        return None
