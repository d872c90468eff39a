"""
Security Headers Middleware

Adds browser hardening headers to every server-rendered page:
X-Frame-Options, X-Content-Type-Options, Referrer-Policy,
Content-Security-Policy, Permissions-Policy and (in production)
Strict-Transport-Security.
"""

import logging
from typing import Callable, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from .config import IS_PRODUCTION, STORAGE_PUBLIC_URL

logger = logging.getLogger(__name__)


def get_csp_policy() -> str:
    """
    Content-Security-Policy for the HTML pages.

    Pages use a same-origin stylesheet and no scripts. Avatars are served from
    the storage bucket; checkout happens on the payment provider's domain via a
    plain link, so no third-party frames are needed.
    """
    img_sources = ["'self'", "data:"]
    if STORAGE_PUBLIC_URL:
        img_sources.append(STORAGE_PUBLIC_URL)
    else:
        img_sources.append("https:")

    directives = [
        "default-src 'self'",
        "script-src 'self'",
        "style-src 'self'",
        f"img-src {' '.join(img_sources)}",
        "font-src 'self' data:",
        "frame-ancestors 'none'",
        "base-uri 'none'",
        "form-action 'self'",
        "object-src 'none'",
    ]
    return "; ".join(directives)


def get_permissions_policy() -> str:
    features = [
        "accelerometer=()",
        "camera=()",
        "geolocation=()",
        "gyroscope=()",
        "microphone=()",
        "payment=()",
        "usb=()",
        "interest-cohort=()",
    ]
    return ", ".join(features)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, exclude_paths: Optional[list[str]] = None):
        super().__init__(app)
        self.exclude_paths = exclude_paths or []
        self.csp_policy = get_csp_policy()
        self.permissions_policy = get_permissions_policy()

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        path = request.url.path
        if any(path.startswith(excluded) for excluded in self.exclude_paths):
            return response

        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = self.csp_policy
        response.headers["Permissions-Policy"] = self.permissions_policy
        response.headers["X-Permitted-Cross-Domain-Policies"] = "none"

        if IS_PRODUCTION:
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains; preload"
            )

        # Dashboard pages carry private booking data
        if path.startswith("/dashboard") and "Cache-Control" not in response.headers:
            response.headers["Cache-Control"] = "no-store"

        return response
