from __future__ import annotations

from typing import Iterable, Mapping, Union

from .models import SPLIT_RIGHTS, ContractParty, RoyaltyCalculation

SPLIT_TOLERANCE = 0.01

PartyLike = Union[ContractParty, Mapping]


def _party(value: PartyLike) -> ContractParty:
    if isinstance(value, ContractParty):
        return value
    return ContractParty.from_dict(dict(value))


def validate_royalty_splits(splits: Iterable[PartyLike]) -> list[str]:
    """Each right must total 100% across parties, or be entirely unused."""
    parties = [_party(s) for s in splits]
    errors: list[str] = []
    for party in parties:
        for right in SPLIT_RIGHTS:
            pct = party.share(right)
            if pct < 0 or pct > 100:
                errors.append(f"{party.name or 'Party'}: {right} share must be between 0 and 100")
    for right in SPLIT_RIGHTS:
        total = round(sum(p.share(right) for p in parties), 4)
        if total == 0:
            continue
        if abs(total - 100) > SPLIT_TOLERANCE:
            errors.append(f"{right} splits total {total:g}%, expected 100%")
    return errors


def calculate_agreement_royalty(
    gross: float,
    commission_pct: float,
    expenses: float = 0.0,
    advance_balance: float = 0.0,
) -> RoyaltyCalculation:
    if commission_pct < 0 or commission_pct > 100:
        raise ValueError("commission_pct must be between 0 and 100")
    commission = gross * commission_pct / 100
    net = gross - commission
    net_payable = net - expenses
    recoupment = min(max(net_payable, 0.0), max(advance_balance, 0.0))
    payable = max(0.0, net_payable - recoupment)
    return RoyaltyCalculation(
        gross=round(gross, 2),
        commission=round(commission, 2),
        net=round(net, 2),
        expenses=round(expenses, 2),
        net_payable=round(net_payable, 2),
        recoupment=round(recoupment, 2),
        payable=round(payable, 2),
        remaining_advance=round(advance_balance - recoupment, 2),
    )


def calculate_manual_royalty(gross: float, expenses: float = 0.0) -> RoyaltyCalculation:
    net_payable = gross - expenses
    return RoyaltyCalculation(
        gross=round(gross, 2),
        commission=0.0,
        net=round(gross, 2),
        expenses=round(expenses, 2),
        net_payable=round(net_payable, 2),
        recoupment=0.0,
        payable=round(max(0.0, net_payable), 2),
        remaining_advance=0.0,
    )
