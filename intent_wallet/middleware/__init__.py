from .logging_middleware import RequestLoggingMiddleware
from .rate_limit import MinIntervalLimiter, RateLimitExceeded

__all__ = [
    "MinIntervalLimiter",
    "RateLimitExceeded",
    "RequestLoggingMiddleware",
]
