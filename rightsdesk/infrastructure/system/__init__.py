from .clock import SystemClock
from .tokens import SystemTokenGenerator

__all__ = ["SystemClock", "SystemTokenGenerator"]
