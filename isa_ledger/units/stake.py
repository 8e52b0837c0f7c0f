"""
stake.py - Investor Stake Records

One InvestorStake per (ISA contract, investor) pair, stored at
stake_address(isa, investor). A stake is created on the investor's first
contribution and only ever grows; it is never deleted. Distribution and
refunds update the bookkeeping fields (total_received, refunded) but never
the contributed amount.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from ..core import (
    LedgerView, Unit,
    UNIT_TYPE_ISA_STAKE,
    StakeNotFound,
    record_unit,
)
from ..identity import stake_address


@dataclass(frozen=True, slots=True)
class InvestorStake:
    """Immutable snapshot of one investor's contribution to one ISA."""
    isa: str
    investor: str
    amount: int
    initialized: bool = True
    total_received: int = 0
    refunded: bool = False
    version: int = 0


def load_stake(view: LedgerView, address: str) -> InvestorStake:
    """
    Load a stake record by address.

    Raises:
        StakeNotFound: If no stake exists at the address, or the unit there
                       is not a stake
    """
    if not view.has_unit(address) or view.get_unit(address).unit_type != UNIT_TYPE_ISA_STAKE:
        raise StakeNotFound(f"no investor stake at {address}")
    raw = view.get_unit_state(address)
    return InvestorStake(
        isa=raw['isa'],
        investor=raw['investor'],
        amount=raw['amount'],
        initialized=raw.get('initialized', True),
        total_received=raw.get('total_received', 0),
        refunded=raw.get('refunded', False),
        version=raw.get('version', 0),
    )


def to_state_dict(stake: InvestorStake) -> Dict[str, Any]:
    """Inverse of load_stake()."""
    return {
        'isa': stake.isa,
        'investor': stake.investor,
        'amount': stake.amount,
        'initialized': stake.initialized,
        'total_received': stake.total_received,
        'refunded': stake.refunded,
        'version': stake.version,
    }


def create_stake_unit(isa: str, investor: str, amount: int) -> Unit:
    """Build the record unit for an investor's first contribution."""
    if amount <= 0:
        raise ValueError(f"stake amount must be positive, got {amount}")
    stake = InvestorStake(isa=isa, investor=investor, amount=amount)
    return record_unit(
        stake_address(isa, investor),
        f"Stake of {investor}",
        UNIT_TYPE_ISA_STAKE,
        to_state_dict(stake),
    )


def list_stakes(view: LedgerView, isa: str) -> List[Tuple[str, InvestorStake]]:
    """
    All stakes recorded against one ISA contract, ordered by address.

    Scans the registered units; stakes are never deleted, so the result
    includes refunded ones.
    """
    stakes = []
    for address in view.list_units():
        unit = view.get_unit(address)
        if unit.unit_type != UNIT_TYPE_ISA_STAKE:
            continue
        stake = load_stake(view, address)
        if stake.isa == isa:
            stakes.append((address, stake))
    return stakes
