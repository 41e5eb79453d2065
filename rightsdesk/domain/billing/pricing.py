from __future__ import annotations

from dataclasses import dataclass

INTERVALS = ("month", "year")
PRODUCT_TYPES = ("bundle", "module")
TRIAL_DAYS = 14


@dataclass(frozen=True)
class Price:
    monthly: int
    annual: int

    def for_interval(self, interval: str) -> int:
        return self.annual if interval == "year" else self.monthly


BUNDLE_PRICING: dict[str, Price] = {
    "starter": Price(79, 790),
    "essentials": Price(149, 1490),
    "publishing-pro": Price(299, 2990),
    "licensing-pro": Price(349, 3490),
    "growth": Price(449, 4490),
    "enterprise": Price(849, 8490),
}

MODULE_PRICING: dict[str, Price] = {
    "royalties": Price(199, 1990),
    "copyright": Price(99, 990),
    "contracts": Price(59, 590),
    "sync": Price(149, 1490),
    "valuation": Price(99, 990),
    "dashboard": Price(149, 1490),
}


def resolve_price(product_type: str, product_id: str) -> Price:
    if product_type == "bundle":
        table = BUNDLE_PRICING
    elif product_type == "module":
        table = MODULE_PRICING
    else:
        raise ValueError(f"Invalid product type: {product_type}")
    price = table.get(product_id)
    if price is None:
        raise ValueError(f"Invalid {product_type} product ID: {product_id}")
    return price


def product_name(product_type: str, product_id: str) -> str:
    # "publishing-pro" -> "Publishing pro Bundle"
    label = product_id[:1].upper() + product_id[1:].replace("-", " ", 1)
    return f"{label} {'Bundle' if product_type == 'bundle' else 'Module'}"
