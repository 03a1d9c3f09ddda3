"""
Edge middleware.
Cross-cutting policy applied to every request before routing.
"""
import time
from typing import Callable

from fastapi import Request, Response
from fastapi.responses import PlainTextResponse
from loguru import logger
from starlette.exceptions import HTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from coach_relay.core.logging import format_combined_line, format_dev_line
from coach_relay.core.rate_limit import RateLimitStore

SECURITY_HEADERS = {
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Origin-Agent-Cluster": "?1",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "X-Content-Type-Options": "nosniff",
    "X-DNS-Prefetch-Control": "off",
    "X-Download-Options": "noopen",
    "X-Frame-Options": "SAMEORIGIN",
    "X-Permitted-Cross-Domain-Policies": "none",
    "X-XSS-Protection": "0",
}

RATE_LIMIT_MESSAGE = "Too many requests, please try again later."
PAYLOAD_TOO_LARGE_MESSAGE = "request entity too large"


def client_address(request: Request, trusted_hops: int = 1) -> str:
    """
    Resolve the originating client address.

    Each trusted proxy appends the address it received the request from to
    ``X-Forwarded-For``, so with ``trusted_hops`` proxies in front of us the
    client is that many entries from the right end of the chain.
    """
    peer = request.client.host if request.client else "unknown"
    if trusted_hops <= 0:
        return peer

    forwarded = request.headers.get("x-forwarded-for")
    if not forwarded:
        return peer

    chain = [part.strip() for part in forwarded.split(",") if part.strip()]
    if not chain:
        return peer
    return chain[-min(trusted_hops, len(chain))]


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Attach hardening headers. CSP and COEP are left off for the inline front-end."""

    def __init__(self, app: ASGIApp, headers: dict[str, str] | None = None):
        super().__init__(app)
        self.headers = headers or SECURITY_HEADERS

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        for name, value in self.headers.items():
            response.headers.setdefault(name, value)
        return response


class AccessLogMiddleware(BaseHTTPMiddleware):
    """One log line per request, dev format or Apache combined format."""

    def __init__(self, app: ASGIApp, combined: bool = False, trusted_hops: int = 1):
        super().__init__(app)
        self.combined = combined
        self.trusted_hops = trusted_hops

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        path = request.url.path
        if request.url.query:
            path = f"{path}?{request.url.query}"
        size = response.headers.get("content-length")

        if self.combined:
            line = format_combined_line(
                remote_addr=client_address(request, self.trusted_hops),
                method=request.method,
                path=path,
                http_version=request.scope.get("http_version", "1.1"),
                status=response.status_code,
                size=size,
                referrer=request.headers.get("referer"),
                user_agent=request.headers.get("user-agent"),
            )
        else:
            line = format_dev_line(request.method, path, response.status_code, duration_ms, size)

        if response.status_code >= 500:
            logger.error(line)
        elif response.status_code >= 400:
            logger.warning(line)
        else:
            logger.info(line)

        return response


class BodySizeLimitMiddleware:
    """
    Reject request bodies above ``max_bytes`` with 413.

    A declared ``Content-Length`` is checked before the app runs; chunked
    bodies are counted as they are received and fail inside the app with an
    HTTPException, so the framework renders the 413.
    """

    def __init__(self, app: ASGIApp, max_bytes: int = 1024 * 1024):
        self.app = app
        self.max_bytes = max_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        declared = Request(scope).headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > self.max_bytes:
            await self._reject(scope, receive, send)
            return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_bytes:
                    logger.warning(f"Rejected streamed body over {self.max_bytes} bytes: {scope['path']}")
                    raise HTTPException(status_code=413, detail=PAYLOAD_TOO_LARGE_MESSAGE)
            return message

        await self.app(scope, limited_receive, send)

    async def _reject(self, scope: Scope, receive: Receive, send: Send) -> None:
        logger.warning(f"Rejected request body over {self.max_bytes} bytes: {scope['path']}")
        response = PlainTextResponse(PAYLOAD_TOO_LARGE_MESSAGE, status_code=413)
        await response(scope, receive, send)


class ApiRateLimitMiddleware(BaseHTTPMiddleware):
    """Moving-window rate limit for every path under ``prefix``."""

    def __init__(
        self,
        app: ASGIApp,
        store: RateLimitStore,
        prefix: str = "/api",
        trusted_hops: int = 1,
    ):
        super().__init__(app)
        self.store = store
        self.prefix = prefix.rstrip("/")
        self.trusted_hops = trusted_hops

    def applies_to(self, path: str) -> bool:
        return path == self.prefix or path.startswith(self.prefix + "/")

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not self.applies_to(request.url.path):
            return await call_next(request)

        client = client_address(request, self.trusted_hops)
        decision = self.store.hit(client)
        if not decision.allowed:
            logger.warning(f"Rate limit exceeded for {client} on {request.url.path}")
            return PlainTextResponse(
                RATE_LIMIT_MESSAGE, status_code=429, headers=decision.headers()
            )

        response = await call_next(request)
        for name, value in decision.headers().items():
            response.headers[name] = value
        return response
