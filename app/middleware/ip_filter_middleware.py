from typing import Sequence

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from app.config import TRUSTED_PROXY_HEADERS, TRUSTED_PROXY_USE_LEFTMOST_IP, logger
from app.ip_allowlist import AllowedHomeIP, is_allowed_ip, parse_ip
from app.responses import error_response
from app.security_config import ACCESS_DENIED_MESSAGE


def get_client_ip(
    request: Request,
    trusted_headers: Sequence[str] = (),
    use_leftmost: bool = False,
) -> str:
    """
    Resolves the originating client address of a request.

    Trusted proxy headers are checked in order and the first one holding a
    valid IP wins. For X-Forwarded-For the leftmost or rightmost entry is used.
    The value is returned as sent, without normalization. Falls back to the
    socket peer address, or "" when there is none.
    """
    for header in trusted_headers:
        value = request.headers.get(header)
        if not value:
            continue
        if header.lower() == "x-forwarded-for":
            entries = [entry.strip() for entry in value.split(",")]
            value = entries[0] if use_leftmost else entries[-1]
        value = value.strip()
        if parse_ip(value) is not None:
            return value

    # Fallback to client host
    return request.client.host if request.client else ""


class IPFilterMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, allowed_home_ip=None, trusted_headers=None, use_leftmost_ip=None):
        super().__init__(app)
        # Use provided values or fall back to config
        self.allowed = allowed_home_ip if allowed_home_ip is not None else AllowedHomeIP.from_env()
        self.trusted_headers = tuple(trusted_headers) if trusted_headers is not None else tuple(TRUSTED_PROXY_HEADERS)
        self.use_leftmost_ip = use_leftmost_ip if use_leftmost_ip is not None else TRUSTED_PROXY_USE_LEFTMOST_IP

    async def dispatch(self, request: Request, call_next):
        client_ip = get_client_ip(request, self.trusted_headers, self.use_leftmost_ip)

        if not is_allowed_ip(client_ip, self.allowed):
            logger.warning(f"Access denied from IP: {client_ip}, Path: {request.url.path}")
            return error_response(403, ACCESS_DENIED_MESSAGE)

        return await call_next(request)
