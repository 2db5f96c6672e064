"""Middleware components for rate limiting, validation, logging and security headers."""

from .rate_limiter import RateLimiter, RateLimitResult, client_key, get_rate_limiter
from .request_logger import RequestLoggerMiddleware
from .security_headers import SecurityHeadersMiddleware
from .validator import ValidationResult, validate_tts_request

__all__ = [
    "RateLimiter",
    "RateLimitResult",
    "client_key",
    "get_rate_limiter",
    "RequestLoggerMiddleware",
    "SecurityHeadersMiddleware",
    "ValidationResult",
    "validate_tts_request",
]
