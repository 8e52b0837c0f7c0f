"""
isa.py - Income-Share Agreement Contract: Funding and Settlement

One ISA contract per student, stored at isa_address(student), with a custody
vault wallet at vault_address(isa). This module implements the funding
ledger (initialize, invest, release to the university) and the settlement
state machine (salary intake, share payments, delinquency, dropout).

ARCHITECTURE (Pure Function Pattern):
=====================================

1. FROZEN DATACLASS: IsaState - snapshot of the contract record
2. ADAPTERS: load_isa() / to_state_dict() - the only LedgerView reads
3. PURE CALCULATIONS (calculate_*): explicit inputs, no view
4. OPERATIONS (compute_*): check authorization, then state, then build a
   PendingTransaction. They never mutate; the Ledger applies the result
   atomically or not at all.

Status lifecycle:

    FUNDING --release--> STUDYING_PAID --salary>0--> WORKING <--pay-- DELINQUENT
                                  |                    |  \\--report_delinquency--^
                                  +--salary=0--> UNEMPLOYED <--salary=0--+
    DELINQUENT keeps its status on salary updates; only pay returns it to WORKING
    any non-terminal --report_dropout--> DROPPED_OUT (terminal)
    already_paid reaches max_cap --> COMPLETED (terminal)

Key Formulas:
    due = floor(last_salary * percent / 100)
    payment = min(due, max_cap - already_paid)
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from decimal import Decimal
from enum import IntEnum
from typing import Any, Dict, List, Optional

from ..core import (
    LedgerView, Move, PendingTransaction, Unit, UnitStateChange,
    UNIT_TYPE_ISA, UNIT_TYPE_TOKEN,
    UnitNotRegistered, WalletNotRegistered,
    AlreadyInitialized, IsaNotFound,
    InvalidStatus, NotFullyFunded, FundingExceedsCourseCost, NothingToPay,
    NoFunds, InvalidAmount, InvalidStake, PaymentNotOverdue,
    InvalidPercent, InvalidCourseCost, InvalidMaxCap,
    UnauthorizedStudent,
    build_transaction, record_unit, user_origin,
)
from ..identity import isa_address, require_participant, stake_address, vault_address
from .platform_config import (
    load_platform_config, require_admin, require_oracle, require_university,
)
from .stake import create_stake_unit, load_stake, to_state_dict as stake_to_state_dict


DEFAULT_PAYMENT_PERIOD_DAYS = 30
MAX_PERCENT = 100


class IsaStatus(IntEnum):
    """Lifecycle status of an ISA contract. Codes are stable and stored as ints."""
    FUNDING = 0
    STUDYING_PAID = 1
    WORKING = 2
    DELINQUENT = 3
    DROPPED_OUT = 4
    COMPLETED = 5
    UNEMPLOYED = 6

    @property
    def is_terminal(self) -> bool:
        return self in (IsaStatus.DROPPED_OUT, IsaStatus.COMPLETED)

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]


_STATUS_LABELS = {
    IsaStatus.FUNDING: "Raising funds",
    IsaStatus.STUDYING_PAID: "Tuition paid",
    IsaStatus.WORKING: "Employed",
    IsaStatus.DELINQUENT: "Payment overdue",
    IsaStatus.DROPPED_OUT: "Dropped out",
    IsaStatus.COMPLETED: "Contract fulfilled",
    IsaStatus.UNEMPLOYED: "Unemployed",
}

# Statuses in which the oracle may report a salary
SALARY_STATUSES = frozenset({
    IsaStatus.STUDYING_PAID, IsaStatus.WORKING,
    IsaStatus.DELINQUENT, IsaStatus.UNEMPLOYED,
})

# Statuses in which the student owes a share
PAYING_STATUSES = frozenset({IsaStatus.WORKING, IsaStatus.DELINQUENT})


# ============================================================================
# FROZEN DATACLASS
# ============================================================================

@dataclass(frozen=True, slots=True)
class IsaState:
    """
    Immutable snapshot of an ISA contract record.

    Amounts are integers in the smallest unit of ``asset_id``.

    Invariants after every successful operation:
        0 <= total_invested <= course_cost
        0 <= total_distributed <= already_paid <= max_cap   (until dropout)
        total_invested == sum of the contract's stake amounts
    """
    address: str
    owner: str
    asset_id: str
    vault: str
    course_cost: int
    percent: int
    max_cap: int
    total_invested: int = 0
    already_paid: int = 0
    total_distributed: int = 0
    last_salary: int = 0
    status: IsaStatus = IsaStatus.FUNDING
    payment_period_days: int = DEFAULT_PAYMENT_PERIOD_DAYS
    working_since: Optional[datetime] = None
    last_payment_time: Optional[datetime] = None
    total_refunded: int = 0
    funds_released: bool = False
    version: int = 0

    @property
    def collected_undistributed(self) -> int:
        """Repayments held in the vault that have not been paid out yet."""
        return self.already_paid - self.total_distributed

    @property
    def remaining_cap(self) -> int:
        return max(0, self.max_cap - self.already_paid)


# ============================================================================
# ADAPTER FUNCTIONS
# ============================================================================

def load_isa(view: LedgerView, student: str) -> IsaState:
    """
    Load the ISA contract owned by ``student``.

    This is the only function that reads contract fields from the view.

    Raises:
        IsaNotFound: If the student never initialized a contract
    """
    return load_isa_at(view, isa_address(student))


def load_isa_at(view: LedgerView, address: str) -> IsaState:
    """Load an ISA contract by its derived address."""
    if not view.has_unit(address) or view.get_unit(address).unit_type != UNIT_TYPE_ISA:
        raise IsaNotFound(f"no ISA contract at {address}")
    raw = view.get_unit_state(address)
    return IsaState(
        address=address,
        owner=raw['owner'],
        asset_id=raw['asset_id'],
        vault=raw['vault'],
        course_cost=raw['course_cost'],
        percent=raw['percent'],
        max_cap=raw['max_cap'],
        total_invested=raw.get('total_invested', 0),
        already_paid=raw.get('already_paid', 0),
        total_distributed=raw.get('total_distributed', 0),
        last_salary=raw.get('last_salary', 0),
        status=IsaStatus(raw.get('status', IsaStatus.FUNDING)),
        payment_period_days=raw.get('payment_period_days', DEFAULT_PAYMENT_PERIOD_DAYS),
        working_since=raw.get('working_since'),
        last_payment_time=raw.get('last_payment_time'),
        total_refunded=raw.get('total_refunded', 0),
        funds_released=raw.get('funds_released', False),
        version=raw.get('version', 0),
    )


def to_state_dict(isa: IsaState) -> Dict[str, Any]:
    """
    Convert an IsaState back to the record's state dict.

    Status is stored as its int code.
    """
    return {
        'owner': isa.owner,
        'asset_id': isa.asset_id,
        'vault': isa.vault,
        'course_cost': isa.course_cost,
        'percent': isa.percent,
        'max_cap': isa.max_cap,
        'total_invested': isa.total_invested,
        'already_paid': isa.already_paid,
        'total_distributed': isa.total_distributed,
        'last_salary': isa.last_salary,
        'status': int(isa.status),
        'payment_period_days': isa.payment_period_days,
        'working_since': isa.working_since,
        'last_payment_time': isa.last_payment_time,
        'total_refunded': isa.total_refunded,
        'funds_released': isa.funds_released,
        'version': isa.version,
    }


def isa_state_change(view: LedgerView, isa: IsaState, **updates) -> UnitStateChange:
    """
    Build the state change moving ``isa`` to a new snapshot.

    The version counter is bumped so that every mutation is distinct
    content, and old_state is the freshly read record so the ledger can
    reject the change if another operation got there first.
    """
    old_state = view.get_unit_state(isa.address)
    new_isa = replace(isa, version=isa.version + 1, **updates)
    return UnitStateChange(unit=isa.address, old_state=old_state, new_state=to_state_dict(new_isa))


# ============================================================================
# PURE CALCULATION FUNCTIONS
# ============================================================================

def _require_int(value: Any, name: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an int, got {type(value).__name__}")


def token_quantity(amount: int) -> Decimal:
    """Convert an integer token amount to a Move quantity."""
    return Decimal(amount)


def calculate_due(last_salary: int, percent: int) -> int:
    """
    Share owed for one period: floor(last_salary * percent / 100).

    PURE FUNCTION - integer arithmetic only.
    """
    return (last_salary * percent) // MAX_PERCENT


def calculate_capped_payment(due: int, already_paid: int, max_cap: int) -> int:
    """
    Cap a due amount so already_paid never exceeds max_cap.

    Returns 0 when the cap is already reached.
    """
    headroom = max(0, max_cap - already_paid)
    return min(due, headroom)


def calculate_remaining_to_invest(course_cost: int, total_invested: int) -> int:
    return max(0, course_cost - total_invested)


def calculate_payment_deadline(isa: IsaState) -> Optional[datetime]:
    """
    When the current payment window closes.

    The window opens at the later of the last payment and the start of
    the current employment spell. Returns None if the student is not in
    an employment spell.
    """
    anchors = [t for t in (isa.last_payment_time, isa.working_since) if t is not None]
    if not anchors:
        return None
    return max(anchors) + timedelta(days=isa.payment_period_days)


# ============================================================================
# FUNDING LEDGER
# ============================================================================

def create_isa_unit(isa: IsaState) -> Unit:
    """Build the ISA contract record unit."""
    return record_unit(isa.address, f"ISA of {isa.owner}", UNIT_TYPE_ISA, to_state_dict(isa))


def compute_initialize_isa(
    view: LedgerView,
    student: str,
    asset_id: str,
    course_cost: int,
    percent: int,
    max_cap: int,
    payment_period_days: int = DEFAULT_PAYMENT_PERIOD_DAYS,
) -> PendingTransaction:
    """
    Create the student's ISA contract and its custody vault.

    The caller (``student``) becomes the owner. All accumulators start at
    zero and the status is FUNDING.

    Args:
        view: Read-only ledger access
        student: Caller identity; becomes the contract owner
        asset_id: Symbol of the registered token the contract accepts
        course_cost: Funding target (> 0)
        percent: Share of each salary owed per period (0..100)
        max_cap: Lifetime repayment ceiling (>= course_cost)
        payment_period_days: Length of a payment window for delinquency (>= 0)

    Raises:
        AlreadyInitialized: If the student already has a contract
        InvalidCourseCost / InvalidPercent / InvalidMaxCap: On bad terms
        ReservedIdentity: If student is the system wallet or a derived address
        UnitNotRegistered: If asset_id is not a registered token
    """
    for name, value in (('course_cost', course_cost), ('percent', percent),
                        ('max_cap', max_cap), ('payment_period_days', payment_period_days)):
        _require_int(value, name)

    address = isa_address(student)
    require_participant(student, "student")
    if view.has_unit(address):
        raise AlreadyInitialized(f"student {student} already has an ISA contract")
    if course_cost <= 0:
        raise InvalidCourseCost(f"course_cost must be positive, got {course_cost}")
    if not 0 <= percent <= MAX_PERCENT:
        raise InvalidPercent(f"percent must be within 0..{MAX_PERCENT}, got {percent}")
    if max_cap < course_cost:
        raise InvalidMaxCap(f"max_cap {max_cap} is below course_cost {course_cost}")
    if payment_period_days < 0:
        raise ValueError(f"payment_period_days must be >= 0, got {payment_period_days}")
    if not view.has_unit(asset_id) or view.get_unit(asset_id).unit_type != UNIT_TYPE_TOKEN:
        raise UnitNotRegistered(f"token {asset_id} not registered")

    vault = vault_address(address)
    isa = IsaState(
        address=address,
        owner=student,
        asset_id=asset_id,
        vault=vault,
        course_cost=course_cost,
        percent=percent,
        max_cap=max_cap,
        payment_period_days=payment_period_days,
    )
    return build_transaction(
        view, [],
        origin=user_origin(student, address, "initialize_isa"),
        units_to_create=(create_isa_unit(isa),),
        wallets_to_create=(vault,),
    )


def compute_invest(
    view: LedgerView,
    investor: str,
    student: str,
    amount: int,
) -> PendingTransaction:
    """
    Contribute ``amount`` tokens from the investor to the contract's vault.

    Creates the investor's stake on first contribution, otherwise grows it.
    The cap check reads total_invested from the freshly loaded record; the
    ledger rejects the result if that record changed before execution.

    Raises:
        ReservedIdentity: investor is the system wallet or a derived address
        InvalidAmount: amount <= 0
        InvalidStatus: contract is not FUNDING
        FundingExceedsCourseCost: total_invested + amount > course_cost
        WalletNotRegistered: investor has no wallet
    """
    _require_int(amount, 'amount')
    require_participant(investor, "investor")
    isa = load_isa(view, student)
    if amount <= 0:
        raise InvalidAmount(f"investment must be positive, got {amount}")
    if isa.status != IsaStatus.FUNDING:
        raise InvalidStatus(f"cannot invest while {isa.status.name}")
    if isa.total_invested + amount > isa.course_cost:
        raise FundingExceedsCourseCost(
            f"{isa.total_invested} + {amount} exceeds course_cost {isa.course_cost}"
        )
    if not investor or investor not in view.list_wallets():
        raise WalletNotRegistered(f"Wallet {investor} not registered")

    moves = [Move(
        quantity=token_quantity(amount),
        unit_symbol=isa.asset_id,
        source=investor,
        dest=isa.vault,
        contract_id=f"invest_{isa.address}",
    )]
    changes: List[UnitStateChange] = [
        isa_state_change(view, isa, total_invested=isa.total_invested + amount)
    ]
    units_to_create = ()

    address = stake_address(isa.address, investor)
    if view.has_unit(address):
        stake = load_stake(view, address)
        if stake.isa != isa.address or stake.investor != investor:
            raise InvalidStake(f"stake {address} does not belong to {investor} on {isa.address}")
        new_stake = replace(stake, amount=stake.amount + amount, version=stake.version + 1)
        changes.append(UnitStateChange(
            unit=address,
            old_state=view.get_unit_state(address),
            new_state=stake_to_state_dict(new_stake),
        ))
    else:
        units_to_create = (create_stake_unit(isa.address, investor, amount),)

    return build_transaction(
        view, moves, changes,
        origin=user_origin(investor, isa.address, "invest"),
        units_to_create=units_to_create,
    )


def compute_release_funds(
    view: LedgerView,
    caller: str,
    student: str,
    require_admin_caller: bool = False,
) -> PendingTransaction:
    """
    Pay the entire vault balance to the university once fully funded.

    No partial release: the whole vault moves in one transfer and the
    contract becomes STUDYING_PAID.

    Args:
        view: Read-only ledger access
        caller: Identity triggering the release
        student: Owner of the contract
        require_admin_caller: Restrict the trigger to the platform admin

    Raises:
        UnauthorizedAdmin: require_admin_caller and caller is not admin
        InvalidStatus: contract is not FUNDING
        NotFullyFunded: total_invested < course_cost
        NoFunds: vault is empty
        WalletNotRegistered: university has no wallet
    """
    config = load_platform_config(view)
    if require_admin_caller:
        require_admin(config, caller)
    isa = load_isa(view, student)
    if isa.status != IsaStatus.FUNDING:
        raise InvalidStatus(f"cannot release funds while {isa.status.name}")
    if isa.total_invested < isa.course_cost:
        raise NotFullyFunded(
            f"funded {isa.total_invested} of {isa.course_cost}"
        )
    vault_balance = view.get_balance(isa.vault, isa.asset_id)
    if vault_balance <= 0:
        raise NoFunds(f"vault {isa.vault} is empty")
    if config.university not in view.list_wallets():
        raise WalletNotRegistered(f"Wallet {config.university} not registered")

    moves = [Move(
        quantity=vault_balance,
        unit_symbol=isa.asset_id,
        source=isa.vault,
        dest=config.university,
        contract_id=f"release_{isa.address}",
    )]
    changes = [isa_state_change(
        view, isa,
        status=IsaStatus.STUDYING_PAID,
        funds_released=True,
    )]
    return build_transaction(
        view, moves, changes,
        origin=user_origin(caller, isa.address, "release_funds_to_university"),
    )


# ============================================================================
# SETTLEMENT STATE MACHINE
# ============================================================================

def compute_update_salary(
    view: LedgerView,
    caller: str,
    student: str,
    salary: int,
) -> PendingTransaction:
    """
    Record the student's latest salary. Oracle only.

    Transitions:
        STUDYING_PAID / UNEMPLOYED + salary > 0  -> WORKING
        WORKING / STUDYING_PAID + salary == 0 -> UNEMPLOYED
        DELINQUENT + any salary stays DELINQUENT (the debt is still open)

    Raises:
        UnauthorizedOracle: caller is not the oracle
        InvalidAmount: salary < 0
        InvalidStatus: contract is FUNDING or terminal
    """
    _require_int(salary, 'salary')
    config = load_platform_config(view)
    require_oracle(config, caller)
    isa = load_isa(view, student)
    if salary < 0:
        raise InvalidAmount(f"salary cannot be negative, got {salary}")
    if isa.status not in SALARY_STATUSES:
        raise InvalidStatus(f"cannot update salary while {isa.status.name}")

    updates: Dict[str, Any] = {'last_salary': salary}
    if isa.status == IsaStatus.DELINQUENT:
        # only pay_share clears delinquency
        updates['status'] = IsaStatus.DELINQUENT
    elif salary == 0:
        updates['status'] = IsaStatus.UNEMPLOYED
    elif isa.status in (IsaStatus.STUDYING_PAID, IsaStatus.UNEMPLOYED):
        updates['status'] = IsaStatus.WORKING
        updates['working_since'] = view.current_time

    return build_transaction(
        view, [], [isa_state_change(view, isa, **updates)],
        origin=user_origin(caller, isa.address, "update_salary"),
    )


def compute_pay_share(view: LedgerView, caller: str, student: str) -> PendingTransaction:
    """
    Student pays one period's share into the vault.

    payment = min(floor(last_salary * percent / 100), max_cap - already_paid)

    A DELINQUENT contract returns to WORKING; reaching max_cap completes it.

    Raises:
        UnauthorizedStudent: caller is not the owner
        InvalidStatus: status is not WORKING or DELINQUENT
        NothingToPay: the capped payment is zero
    """
    isa = load_isa(view, student)
    if caller != isa.owner:
        raise UnauthorizedStudent(f"{caller} does not own {isa.address}")
    if isa.status not in PAYING_STATUSES:
        raise InvalidStatus(f"cannot pay share while {isa.status.name}")

    due = calculate_due(isa.last_salary, isa.percent)
    payment = calculate_capped_payment(due, isa.already_paid, isa.max_cap)
    if payment <= 0:
        raise NothingToPay(
            f"due {due}, paid {isa.already_paid} of cap {isa.max_cap}"
        )

    already_paid = isa.already_paid + payment
    if already_paid >= isa.max_cap:
        status = IsaStatus.COMPLETED
    else:
        status = IsaStatus.WORKING

    moves = [Move(
        quantity=token_quantity(payment),
        unit_symbol=isa.asset_id,
        source=isa.owner,
        dest=isa.vault,
        contract_id=f"pay_share_{isa.address}",
    )]
    changes = [isa_state_change(
        view, isa,
        already_paid=already_paid,
        status=status,
        last_payment_time=view.current_time,
    )]
    return build_transaction(
        view, moves, changes,
        origin=user_origin(caller, isa.address, "pay_share"),
    )


def compute_report_delinquency(view: LedgerView, caller: str, student: str) -> PendingTransaction:
    """
    Flag a WORKING contract as DELINQUENT. Oracle only.

    Allowed once the payment window has closed: payment_period_days after
    the later of the last payment and the start of employment. A contract
    with payment_period_days == 0 accepts the oracle's report at any time.

    Raises:
        UnauthorizedOracle: caller is not the oracle
        InvalidStatus: status is not WORKING
        PaymentNotOverdue: the payment window is still open
    """
    config = load_platform_config(view)
    require_oracle(config, caller)
    isa = load_isa(view, student)
    if isa.status != IsaStatus.WORKING:
        raise InvalidStatus(f"cannot report delinquency while {isa.status.name}")

    deadline = calculate_payment_deadline(isa)
    if deadline is not None and view.current_time < deadline:
        raise PaymentNotOverdue(f"payment window open until {deadline.isoformat()}")

    return build_transaction(
        view, [], [isa_state_change(view, isa, status=IsaStatus.DELINQUENT)],
        origin=user_origin(caller, isa.address, "report_delinquency"),
    )


def compute_report_dropout(view: LedgerView, caller: str, student: str) -> PendingTransaction:
    """
    Terminate a contract after the student leaves the programme. University only.

    Zeroes max_cap and percent, discharging every future obligation.

    Raises:
        UnauthorizedUniversity: caller is not the university
        InvalidStatus: contract is already terminal
    """
    config = load_platform_config(view)
    require_university(config, caller)
    isa = load_isa(view, student)
    if isa.status.is_terminal:
        raise InvalidStatus(f"contract already {isa.status.name}")

    changes = [isa_state_change(
        view, isa,
        status=IsaStatus.DROPPED_OUT,
        max_cap=0,
        percent=0,
    )]
    return build_transaction(
        view, [], changes,
        origin=user_origin(caller, isa.address, "report_dropout"),
    )
