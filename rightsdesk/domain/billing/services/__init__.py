from .checkout_service import CheckoutResult, CheckoutService

__all__ = ["CheckoutResult", "CheckoutService"]
