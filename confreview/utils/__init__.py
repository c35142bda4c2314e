# Utils: rate limiter, paper file helpers
from confreview.utils.files import b64, safe_filename, sniff_document
from confreview.utils.rate_limit import FixedWindowLimiter, RateLimitMiddleware

__all__ = [
    "FixedWindowLimiter",
    "RateLimitMiddleware",
    "b64",
    "safe_filename",
    "sniff_document",
]
