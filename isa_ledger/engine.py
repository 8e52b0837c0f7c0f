"""
engine.py - ISA Operation Surface

IsaEngine binds the pure compute_* functions to a Ledger. Each operation:

1. Computes a PendingTransaction against the ledger's current state
   (authorization first, then entity state; typed errors raise here)
2. Executes it atomically
3. Converts a ledger rejection into TransactionRejected
4. Returns the updated snapshot

The transaction log is the audit trail: every applied operation is logged
with a USER_ACTION origin naming the caller, the contract and the operation.
"""

from __future__ import annotations
from typing import List, Optional, Sequence, Tuple

from .core import (
    ExecuteResult, PendingTransaction, Transaction, TransactionRejected,
)
from .distribution import (
    StakePayout, compute_distribute_payments, compute_refund_investors,
)
from .identity import isa_address
from .ledger import Ledger
from .units.isa import (
    DEFAULT_PAYMENT_PERIOD_DAYS, IsaState,
    compute_initialize_isa, compute_invest, compute_pay_share,
    compute_release_funds, compute_report_delinquency, compute_report_dropout,
    compute_update_salary, load_isa,
)
from .units.platform_config import (
    PlatformConfig, compute_initialize_config, compute_set_oracle,
    compute_set_university, load_platform_config,
)
from .units.stake import InvestorStake, list_stakes
from . import views


class IsaEngine:
    """
    Caller-facing operations for the ISA platform.

    The caller identity is always the first argument; authentication is
    the outer layer's job.

    Example:
        ledger = Ledger("isa", verbose=False)
        ledger.register_unit(token("USDC", "USD Coin"))
        engine = IsaEngine(ledger)
        engine.initialize_config("admin", oracle="oracle", university="uni")
        engine.initialize_isa("alice", "USDC", 15_000_000, 10, 50_000_000)
    """

    def __init__(
        self,
        ledger: Ledger,
        verbose: bool = False,
        release_requires_admin: bool = False,
    ):
        """
        Args:
            ledger: The ledger holding balances and entity records
            verbose: Print one line per operation outcome
            release_requires_admin: Only the admin may release tuition
        """
        self.ledger = ledger
        self.verbose = verbose
        self.release_requires_admin = release_requires_admin

    def _submit(self, operation: str, pending: PendingTransaction) -> ExecuteResult:
        result = self.ledger.execute(pending)
        if result == ExecuteResult.REJECTED:
            reason = self.ledger.last_rejection or "rejected by ledger"
            if self.verbose:
                print(f"[ISA] ✗ {operation} by {pending.origin.source_id}: {reason}")
            raise TransactionRejected(operation, reason)
        if self.verbose:
            print(f"[ISA] ✓ {operation} by {pending.origin.source_id} "
                  f"on {pending.origin.unit_symbol} ({result.value})")
        return result

    # ========================================================================
    # ROLE REGISTRY
    # ========================================================================

    def initialize_config(self, caller: str, oracle: str, university: str) -> PlatformConfig:
        self._submit("initialize_config",
                     compute_initialize_config(self.ledger, caller, oracle, university))
        return load_platform_config(self.ledger)

    def set_oracle(self, caller: str, new_oracle: str) -> PlatformConfig:
        self._submit("set_oracle", compute_set_oracle(self.ledger, caller, new_oracle))
        return load_platform_config(self.ledger)

    def set_university(self, caller: str, new_university: str) -> PlatformConfig:
        self._submit("set_university",
                     compute_set_university(self.ledger, caller, new_university))
        return load_platform_config(self.ledger)

    # ========================================================================
    # FUNDING
    # ========================================================================

    def initialize_isa(
        self,
        student: str,
        asset_id: str,
        course_cost: int,
        percent: int,
        max_cap: int,
        payment_period_days: int = DEFAULT_PAYMENT_PERIOD_DAYS,
    ) -> IsaState:
        pending = compute_initialize_isa(
            self.ledger, student, asset_id, course_cost, percent, max_cap,
            payment_period_days,
        )
        self._submit("initialize_isa", pending)
        return load_isa(self.ledger, student)

    def invest(self, investor: str, student: str, amount: int) -> IsaState:
        self._submit("invest", compute_invest(self.ledger, investor, student, amount))
        return load_isa(self.ledger, student)

    def release_funds_to_university(self, caller: str, student: str) -> IsaState:
        pending = compute_release_funds(
            self.ledger, caller, student,
            require_admin_caller=self.release_requires_admin,
        )
        self._submit("release_funds_to_university", pending)
        return load_isa(self.ledger, student)

    # ========================================================================
    # SETTLEMENT
    # ========================================================================

    def update_salary(self, caller: str, student: str, salary: int) -> IsaState:
        self._submit("update_salary", compute_update_salary(self.ledger, caller, student, salary))
        return load_isa(self.ledger, student)

    def pay_share(self, caller: str, student: str) -> IsaState:
        self._submit("pay_share", compute_pay_share(self.ledger, caller, student))
        return load_isa(self.ledger, student)

    def report_delinquency(self, caller: str, student: str) -> IsaState:
        self._submit("report_delinquency",
                     compute_report_delinquency(self.ledger, caller, student))
        return load_isa(self.ledger, student)

    def report_dropout(self, caller: str, student: str) -> IsaState:
        self._submit("report_dropout", compute_report_dropout(self.ledger, caller, student))
        return load_isa(self.ledger, student)

    # ========================================================================
    # DISTRIBUTION
    # ========================================================================

    def distribute_payments(
        self,
        caller: str,
        student: str,
        amount: int,
        stakes: Optional[Sequence[StakePayout]] = None,
    ) -> IsaState:
        """
        Pay collected repayments out pro rata.

        Without an explicit ``stakes`` list every stake on the contract is
        paid, each to its own investor.
        """
        if stakes is None:
            stakes = [(address, None) for address, _ in list_stakes(self.ledger, isa_address(student))]
        pending = compute_distribute_payments(self.ledger, caller, student, amount, stakes)
        self._submit("distribute_payments", pending)
        return load_isa(self.ledger, student)

    def refund_investors(self, caller: str, student: str) -> IsaState:
        self._submit("refund_investors", compute_refund_investors(self.ledger, caller, student))
        return load_isa(self.ledger, student)

    # ========================================================================
    # QUERY METHODS
    # ========================================================================

    def get_isa_state(self, student: str) -> IsaState:
        return views.get_isa_state(self.ledger, student)

    def get_funding_status(self, student: str) -> views.FundingStatus:
        return views.get_funding_status(self.ledger, student)

    def get_all_stakes_for_isa(self, student: str) -> List[Tuple[str, InvestorStake]]:
        return views.get_all_stakes_for_isa(self.ledger, student)

    def get_platform_config(self) -> PlatformConfig:
        return views.get_platform_config(self.ledger)

    def get_investor_position(self, student: str, investor: str) -> views.InvestorPosition:
        return views.get_investor_position(self.ledger, student, investor)

    def history(self, student: str) -> List[Transaction]:
        """Applied transactions that targeted the student's contract, oldest first."""
        address = isa_address(student)
        return [tx for tx in self.ledger.transaction_log if tx.origin.unit_symbol == address]
