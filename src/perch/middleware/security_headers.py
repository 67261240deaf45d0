"""Security headers middleware: X-Frame-Options, X-Content-Type-Options, Referrer-Policy.

Adds common security headers in the ``after`` phase, once the handler
has produced its body. Applied only to HTML responses (an explicit
``text/html`` Content-Type, or none at all).
"""

from dataclasses import dataclass

from perch.http.response import Response
from perch.middleware.protocol import RouteContext


@dataclass(frozen=True, slots=True)
class SecurityHeadersConfig:
    """Configuration for security headers.

    All values are applied as-is. Use standard header values.
    """

    x_frame_options: str = "DENY"
    x_content_type_options: str = "nosniff"
    referrer_policy: str = "strict-origin-when-cross-origin"
    content_security_policy: str | None = (
        "default-src 'self'; base-uri 'self'; frame-ancestors 'none'; object-src 'none'"
    )
    strict_transport_security: str | None = None


def _is_html_response(response: Response) -> bool:
    ct = response.get_header("Content-Type")
    return ct is None or ct.startswith("text/html")


class SecurityHeadersMiddleware:
    """Add security headers to HTML responses.

    Usage::

        router.get("/", index).add_middleware(SecurityHeadersMiddleware())

    Or for a whole group::

        router.group("/app", block, middleware=[SecurityHeadersMiddleware(
            SecurityHeadersConfig(x_frame_options="SAMEORIGIN"),
        )])
    """

    __slots__ = ("config",)

    def __init__(self, config: SecurityHeadersConfig | None = None) -> None:
        self.config = config or SecurityHeadersConfig()

    def after(self, ctx: RouteContext) -> None:
        response = ctx.response
        if response.headers_sent or not _is_html_response(response):
            return
        cfg = self.config
        response.header("X-Frame-Options", cfg.x_frame_options)
        response.header("X-Content-Type-Options", cfg.x_content_type_options)
        response.header("Referrer-Policy", cfg.referrer_policy)
        if cfg.content_security_policy:
            response.header("Content-Security-Policy", cfg.content_security_policy)
        if cfg.strict_transport_security:
            response.header("Strict-Transport-Security", cfg.strict_transport_security)
