from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from ...accounts.models import User
from ...shared.repositories import Clock, TokenGenerator
from ..models import CheckoutSession
from ..pricing import INTERVALS, TRIAL_DAYS, product_name, resolve_price
from ..repositories import CheckoutSessionsRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckoutResult:
    session_id: str
    url: str
    success_url: str
    cancel_url: str
    amount_cents: int
    trial_days: int


class CheckoutService:
    def __init__(
        self,
        *,
        sessions: CheckoutSessionsRepository,
        tokens: TokenGenerator,
        clock: Clock,
        base_url: str = "http://localhost:3000",
        currency: str = "usd",
    ):
        self._sessions = sessions
        self._tokens = tokens
        self._clock = clock
        self._base_url = base_url.rstrip("/")
        self._currency = currency

    async def create_checkout_session(
        self,
        user: User,
        product_type: str,
        product_id: str,
        interval: str = "month",
        trial_modules: Optional[Sequence[str]] = None,
        *,
        origin: Optional[str] = None,
    ) -> CheckoutResult:
        if interval not in INTERVALS:
            raise ValueError(f"Invalid billing interval: {interval}")
        price = resolve_price(product_type, product_id)
        amount_cents = price.for_interval(interval) * 100
        modules = tuple(trial_modules or ())
        trial_days = TRIAL_DAYS if modules else 0

        site = (origin or self._base_url).rstrip("/")
        session_id = f"cs_{self._tokens.hex(12)}"
        url = f"{self._base_url}/checkout/{session_id}"
        success_url = f"{site}/pricing?success=true"
        cancel_url = f"{site}/pricing?canceled=true"

        await self._sessions.create(
            session_id=session_id,
            user_id=user.id,
            email=user.email,
            product_type=product_type,
            product_id=product_id,
            interval=interval,
            product_name=product_name(product_type, product_id),
            amount_cents=amount_cents,
            currency=self._currency,
            url=url,
            success_url=success_url,
            cancel_url=cancel_url,
            trial_days=trial_days,
            trial_modules=modules,
            created_at=self._clock.now(),
        )
        logger.info(
            "Checkout session %s for user %s: %s/%s %s cents",
            session_id,
            user.id,
            product_type,
            product_id,
            amount_cents,
        )
        return CheckoutResult(
            session_id=session_id,
            url=url,
            success_url=success_url,
            cancel_url=cancel_url,
            amount_cents=amount_cents,
            trial_days=trial_days,
        )

    async def get_session(self, session_id: str) -> Optional[CheckoutSession]:
        return await self._sessions.get(session_id)

    async def list_sessions(self, user_id: int) -> list[CheckoutSession]:
        return await self._sessions.list_for_user(user_id)
