"""
Middleware that trusts X-Forwarded-* headers set by the load balancer
in front of the API, so generated URLs use the public scheme and host.
"""
import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger(__name__)


class ProxyHeadersMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next):
        forwarded_proto = request.headers.get("X-Forwarded-Proto")
        forwarded_host = request.headers.get("X-Forwarded-Host")

        if forwarded_proto in ("http", "https"):
            request.scope["scheme"] = forwarded_proto

        if forwarded_host:
            # request.url is built from the Host header, not scope["server"]
            host = forwarded_host.split(",")[0].strip()
            headers = [(name, value) for name, value in request.scope["headers"] if name != b"host"]
            headers.append((b"host", host.encode("latin-1")))
            request.scope["headers"] = headers

        logger.debug(f"Request URL: {request.url}")
        return await call_next(request)
