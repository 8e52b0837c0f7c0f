"""
views.py - Read-Only Queries over ISA State

Every function here takes a LedgerView and returns frozen snapshots. None
of them builds a transaction, so they are safe to call from anywhere,
including against a FakeView in tests.
"""

from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Tuple

from .core import LedgerView, StakeNotFound
from .identity import isa_address, stake_address
from .units.isa import IsaState, IsaStatus, calculate_remaining_to_invest, load_isa
from .units.platform_config import PlatformConfig, load_platform_config
from .units.stake import InvestorStake, list_stakes, load_stake


@dataclass(frozen=True, slots=True)
class FundingStatus:
    """Progress of a contract toward its funding target."""
    isa: str
    status: IsaStatus
    course_cost: int
    total_invested: int
    remaining_to_invest: int
    is_fully_funded: bool
    investor_count: int


@dataclass(frozen=True, slots=True)
class InvestorPosition:
    """
    One investor's economics on one contract.

    pool_share is a fraction in [0, 1]. potential_max_return is what the
    stake collects if the student repays up to max_cap, and
    potential_roi_percent is that return over the contribution.
    """
    isa: str
    stake: str
    investor: str
    invested: int
    pool_share: Decimal
    total_received: int
    potential_max_return: int
    potential_roi_percent: Decimal
    refunded: bool


def get_isa_state(view: LedgerView, student: str) -> IsaState:
    """Raw contract snapshot. Raises IsaNotFound if absent."""
    return load_isa(view, student)


def get_funding_status(view: LedgerView, student: str) -> FundingStatus:
    isa = load_isa(view, student)
    remaining = calculate_remaining_to_invest(isa.course_cost, isa.total_invested)
    return FundingStatus(
        isa=isa.address,
        status=isa.status,
        course_cost=isa.course_cost,
        total_invested=isa.total_invested,
        remaining_to_invest=remaining,
        is_fully_funded=remaining == 0,
        investor_count=len(list_stakes(view, isa.address)),
    )


def get_all_stakes_for_isa(view: LedgerView, student: str) -> List[Tuple[str, InvestorStake]]:
    """
    Every stake on the student's contract as (address, stake), ordered by address.

    Raises:
        IsaNotFound: If the student has no contract
    """
    isa = load_isa(view, student)
    return list_stakes(view, isa.address)


def get_platform_config(view: LedgerView) -> PlatformConfig:
    return load_platform_config(view)


def get_investor_position(view: LedgerView, student: str, investor: str) -> InvestorPosition:
    """
    Summarize an investor's stake in a student's contract.

    Raises:
        IsaNotFound: If the student has no contract
        StakeNotFound: If the investor never contributed
    """
    isa = load_isa(view, student)
    address = stake_address(isa_address(student), investor)
    if not view.has_unit(address):
        raise StakeNotFound(f"{investor} has no stake in {isa.address}")
    stake = load_stake(view, address)

    if isa.total_invested > 0:
        pool_share = Decimal(stake.amount) / Decimal(isa.total_invested)
        potential = (isa.max_cap * stake.amount) // isa.total_invested
    else:
        pool_share = Decimal("0")
        potential = 0
    roi = (Decimal(potential - stake.amount) * 100 / Decimal(stake.amount)).quantize(Decimal("0.01"))

    return InvestorPosition(
        isa=isa.address,
        stake=address,
        investor=investor,
        invested=stake.amount,
        pool_share=pool_share,
        total_received=stake.total_received,
        potential_max_return=potential,
        potential_roi_percent=roi,
        refunded=stake.refunded,
    )
