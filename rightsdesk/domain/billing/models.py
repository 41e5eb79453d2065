from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class CheckoutSession:
    id: int
    session_id: str
    user_id: int
    email: str
    product_type: str
    product_id: str
    interval: str
    product_name: str
    amount_cents: int
    currency: str
    url: str
    success_url: str
    cancel_url: str
    trial_days: int = 0
    trial_modules: tuple[str, ...] = ()
    status: str = "open"
    created_at: Optional[datetime] = None
