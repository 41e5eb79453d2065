from .limiter import SlidingWindowLimiter
from .models import RateLimitEntry, SecurityEvent, Severity
from .services import SecurityService

__all__ = [
    "RateLimitEntry",
    "SecurityEvent",
    "SecurityService",
    "Severity",
    "SlidingWindowLimiter",
]
