from .models import CheckoutSession
from .pricing import BUNDLE_PRICING, INTERVALS, MODULE_PRICING, TRIAL_DAYS, Price, resolve_price
from .repositories import CheckoutSessionsRepository
from .services import CheckoutResult, CheckoutService

__all__ = [
    "BUNDLE_PRICING",
    "CheckoutResult",
    "CheckoutService",
    "CheckoutSession",
    "CheckoutSessionsRepository",
    "INTERVALS",
    "MODULE_PRICING",
    "Price",
    "TRIAL_DAYS",
    "resolve_price",
]
