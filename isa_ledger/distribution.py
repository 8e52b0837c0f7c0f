"""
distribution.py - Pro-Rata Payouts and Dropout Refunds

Moves repayments collected in an ISA vault out to investors.

distribute_payments:
    Admin-only batch payout of ``amount`` from the vault, split by stake:

        share_i = floor(amount * stake_i.amount / total_invested)

    Shares round down, so the sum never exceeds ``amount``; the rounding
    residual stays in the vault and remains distributable later. The
    denominator is the contract's total_invested, not the sum of the
    listed stakes, so a partial list pays each listed investor exactly
    their pool share.

refund_investors:
    Admin-only return of every contribution after a dropout that happened
    before tuition was released. The vault still holds the raised funds;
    each stake gets its amount back once.
"""

from __future__ import annotations
from dataclasses import replace
from typing import List, Optional, Sequence, Tuple

from .core import (
    LedgerView, Move, PendingTransaction, UnitStateChange,
    WalletNotRegistered,
    InvalidAmount, InvalidStake, InvalidStatus, InsufficientCollectedFunds,
    NoFunds, NoInvestors,
    build_transaction, user_origin,
)
from .identity import require_participant
from .units.isa import (
    IsaStatus, isa_state_change, load_isa, token_quantity,
)
from .units.platform_config import load_platform_config, require_admin
from .units.stake import InvestorStake, list_stakes, load_stake
from .units.stake import to_state_dict as stake_to_state_dict

# (stake address, destination wallet or None for the stake's investor)
StakePayout = Tuple[str, Optional[str]]


def calculate_pro_rata_shares(
    amount: int,
    stake_amounts: Sequence[int],
    total_invested: int,
) -> List[int]:
    """
    Split ``amount`` across stakes in proportion to their size.

    PURE FUNCTION - integer floor division, no view access.

    Args:
        amount: Total to split
        stake_amounts: Contributed amount of each stake, in payout order
        total_invested: Contract-wide denominator

    Returns:
        One share per stake; sum(shares) <= amount

    Raises:
        ValueError: If total_invested is not positive

    Example:
        >>> calculate_pro_rata_shares(100_000, [10_000_000, 5_000_000], 15_000_000)
        [66666, 33333]
    """
    if total_invested <= 0:
        raise ValueError(f"total_invested must be positive, got {total_invested}")
    return [(amount * stake_amount) // total_invested for stake_amount in stake_amounts]


def _stake_change(view: LedgerView, address: str, stake: InvestorStake, **updates) -> UnitStateChange:
    new_stake = replace(stake, version=stake.version + 1, **updates)
    return UnitStateChange(
        unit=address,
        old_state=view.get_unit_state(address),
        new_state=stake_to_state_dict(new_stake),
    )


def compute_distribute_payments(
    view: LedgerView,
    caller: str,
    student: str,
    amount: int,
    stakes: Sequence[StakePayout],
) -> PendingTransaction:
    """
    Pay ``amount`` of collected repayments out to the listed stakes.

    Every check runs before anything is built; the resulting transaction
    applies all payouts together or none of them.

    Args:
        view: Read-only ledger access
        caller: Must be the platform admin
        student: Owner of the contract
        amount: Total to distribute
        stakes: Ordered (stake_address, destination) pairs; a None
                destination pays the stake's investor

    Raises:
        UnauthorizedAdmin: caller is not admin
        InvalidAmount: amount <= 0, or too small to give any stake a share
        NoInvestors: empty stake list or nothing invested
        StakeNotFound: a listed stake does not exist
        InvalidStake: a stake belongs to another contract or is listed twice
        ReservedIdentity: a destination is the system wallet or a derived address
        WalletNotRegistered: a destination has no wallet
        InsufficientCollectedFunds: amount > already_paid - total_distributed
        NoFunds: amount exceeds the vault balance
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValueError(f"amount must be an int, got {type(amount).__name__}")
    config = load_platform_config(view)
    require_admin(config, caller)
    isa = load_isa(view, student)
    if amount <= 0:
        raise InvalidAmount(f"distribution amount must be positive, got {amount}")
    if not stakes or isa.total_invested <= 0:
        raise NoInvestors(f"no investors to pay on {isa.address}")

    wallets = view.list_wallets()
    payouts: List[Tuple[str, InvestorStake, str]] = []
    seen = set()
    for address, destination in stakes:
        stake = load_stake(view, address)
        if stake.isa != isa.address:
            raise InvalidStake(f"stake {address} belongs to {stake.isa}, not {isa.address}")
        if address in seen:
            raise InvalidStake(f"stake {address} listed more than once")
        seen.add(address)
        dest = destination or stake.investor
        require_participant(dest, "destination")
        if dest not in wallets:
            raise WalletNotRegistered(f"Wallet {dest} not registered")
        payouts.append((address, stake, dest))

    if amount > isa.collected_undistributed:
        raise InsufficientCollectedFunds(
            f"requested {amount}, collected and undistributed {isa.collected_undistributed}"
        )
    vault_balance = view.get_balance(isa.vault, isa.asset_id)
    if vault_balance < amount:
        raise NoFunds(f"vault holds {vault_balance}, requested {amount}")

    shares = calculate_pro_rata_shares(
        amount, [stake.amount for _, stake, _ in payouts], isa.total_invested
    )
    distributed = sum(shares)
    if distributed == 0:
        raise InvalidAmount(f"{amount} is too small to give any listed stake a share")

    moves = []
    changes = []
    for (address, stake, dest), share in zip(payouts, shares):
        if share == 0:
            continue
        moves.append(Move(
            quantity=token_quantity(share),
            unit_symbol=isa.asset_id,
            source=isa.vault,
            dest=dest,
            contract_id=f"distribute_{isa.address}",
            metadata={'stake': address},
        ))
        changes.append(_stake_change(
            view, address, stake, total_received=stake.total_received + share
        ))
    changes.append(isa_state_change(
        view, isa, total_distributed=isa.total_distributed + distributed
    ))

    return build_transaction(
        view, moves, changes,
        origin=user_origin(caller, isa.address, "distribute_payments"),
    )


def compute_refund_investors(view: LedgerView, caller: str, student: str) -> PendingTransaction:
    """
    Return every unrefunded contribution after an early dropout. Admin only.

    Raises:
        UnauthorizedAdmin: caller is not admin
        InvalidStatus: contract is not DROPPED_OUT, or tuition was already released
        NoInvestors: every stake is already refunded (or none exist)
        NoFunds: the vault cannot cover the refunds
    """
    config = load_platform_config(view)
    require_admin(config, caller)
    isa = load_isa(view, student)
    if isa.status != IsaStatus.DROPPED_OUT:
        raise InvalidStatus(f"refunds require DROPPED_OUT, contract is {isa.status.name}")
    if isa.funds_released:
        raise InvalidStatus("tuition was already released to the university")

    pending = [(address, stake) for address, stake in list_stakes(view, isa.address)
               if not stake.refunded]
    if not pending:
        raise NoInvestors(f"no unrefunded stakes on {isa.address}")

    total = sum(stake.amount for _, stake in pending)
    vault_balance = view.get_balance(isa.vault, isa.asset_id)
    if vault_balance < total:
        raise NoFunds(f"vault holds {vault_balance}, refunds need {total}")

    moves = []
    changes = []
    for address, stake in pending:
        moves.append(Move(
            quantity=token_quantity(stake.amount),
            unit_symbol=isa.asset_id,
            source=isa.vault,
            dest=stake.investor,
            contract_id=f"refund_{isa.address}",
            metadata={'stake': address},
        ))
        changes.append(_stake_change(view, address, stake, refunded=True))
    changes.append(isa_state_change(view, isa, total_refunded=isa.total_refunded + total))

    return build_transaction(
        view, moves, changes,
        origin=user_origin(caller, isa.address, "refund_investors"),
    )
