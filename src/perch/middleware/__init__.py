"""Middleware: capability-based, no inheritance required.

A middleware is any object with ``before(ctx)`` and/or ``after(ctx)``,
or a bare callable used as ``before``.

Built-in middleware:
    SecurityHeadersMiddleware -- X-Frame-Options, X-Content-Type-Options, Referrer-Policy
"""

from perch.middleware.protocol import (
    AfterMiddleware,
    BeforeMiddleware,
    Middleware,
    RouteContext,
)
from perch.middleware.security_headers import (
    SecurityHeadersConfig,
    SecurityHeadersMiddleware,
)

__all__ = [
    "AfterMiddleware",
    "BeforeMiddleware",
    "Middleware",
    "RouteContext",
    "SecurityHeadersConfig",
    "SecurityHeadersMiddleware",
]
