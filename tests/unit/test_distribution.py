"""
test_distribution.py - Unit tests for pro-rata distribution

Tests:
- calculate_pro_rata_shares: floor rounding, residual, bounds (property-based)
- distribute_payments: admin gate, guards in order, payouts and bookkeeping
- Explicit stake lists: partial lists, destinations, duplicates, foreign stakes
"""

import pytest
from decimal import Decimal

from hypothesis import given, settings
from hypothesis import strategies as st

from isa_ledger import (
    IsaStatus, calculate_pro_rata_shares, compute_distribute_payments,
    isa_address, stake_address,
    UnauthorizedAdmin, InvalidAmount, NoInvestors, StakeNotFound, InvalidStake,
    WalletNotRegistered, InsufficientCollectedFunds, NoFunds, ReservedIdentity,
    SYSTEM_WALLET,
)

from tests.fake_view import make_isa_view
from tests.scenario import STUDENT, ASSET, COURSE_COST, balance


ISA = isa_address(STUDENT)
STAKE_A = stake_address(ISA, "investor_a")
STAKE_B = stake_address(ISA, "investor_b")


# ============================================================================
# PURE CALCULATION
# ============================================================================

class TestProRataShares:

    def test_reference_split(self):
        assert calculate_pro_rata_shares(100_000, [10_000_000, 5_000_000], 15_000_000) == [66_666, 33_333]

    def test_exact_split(self):
        assert calculate_pro_rata_shares(300, [100, 200], 300) == [100, 200]

    def test_tiny_amount_gives_zero_shares(self):
        assert calculate_pro_rata_shares(1, [1, 1, 1], 3) == [0, 0, 0]

    def test_denominator_must_be_positive(self):
        with pytest.raises(ValueError):
            calculate_pro_rata_shares(10, [1], 0)

    @given(
        amount=st.integers(min_value=1, max_value=10**12),
        stakes=st.lists(st.integers(min_value=1, max_value=10**9), min_size=1, max_size=20),
    )
    @settings(max_examples=200)
    def test_shares_bounded_and_proportional(self, amount, stakes):
        total = sum(stakes)
        shares = calculate_pro_rata_shares(amount, stakes, total)
        assert sum(shares) <= amount
        assert amount - sum(shares) < len(stakes)
        for share, stake in zip(shares, stakes):
            exact = Decimal(amount) * stake / total
            assert 0 <= exact - share < 1


# ============================================================================
# DISTRIBUTE PAYMENTS (engine)
# ============================================================================

class TestDistributePayments:

    @pytest.fixture
    def paid_isa(self, working_isa):
        working_isa.pay_share(STUDENT, STUDENT)
        return working_isa

    def test_reference_distribution(self, paid_isa, ledger):
        isa = paid_isa.distribute_payments("admin", STUDENT, 100_000)
        assert balance(ledger, "investor_a") == 10_000_000 + 66_666
        assert balance(ledger, "investor_b") == 5_000_000 + 33_333
        assert isa.total_distributed == 99_999
        assert balance(ledger, isa.vault) == 1

    def test_stake_receipts_recorded(self, paid_isa):
        paid_isa.distribute_payments("admin", STUDENT, 100_000)
        received = {stake.investor: stake.total_received
                    for _, stake in paid_isa.get_all_stakes_for_isa(STUDENT)}
        assert received == {"investor_a": 66_666, "investor_b": 33_333}

    def test_residual_distributable_later(self, paid_isa, ledger):
        paid_isa.distribute_payments("admin", STUDENT, 99_999)
        paid_isa.pay_share(STUDENT, STUDENT)
        isa = paid_isa.distribute_payments("admin", STUDENT, 100_001)
        assert isa.total_distributed <= isa.already_paid
        assert balance(ledger, isa.vault) == isa.already_paid - isa.total_distributed

    def test_only_admin(self, paid_isa):
        with pytest.raises(UnauthorizedAdmin):
            paid_isa.distribute_payments("oracle", STUDENT, 100)

    @pytest.mark.parametrize("amount", [0, -1])
    def test_non_positive_amount(self, paid_isa, amount):
        with pytest.raises(InvalidAmount):
            paid_isa.distribute_payments("admin", STUDENT, amount)

    def test_more_than_collected(self, paid_isa):
        with pytest.raises(InsufficientCollectedFunds):
            paid_isa.distribute_payments("admin", STUDENT, 100_001)

    def test_cannot_distribute_twice(self, paid_isa):
        paid_isa.distribute_payments("admin", STUDENT, 100_000)
        with pytest.raises(InsufficientCollectedFunds):
            paid_isa.distribute_payments("admin", STUDENT, 2)

    def test_partial_list_pays_pool_share(self, paid_isa, ledger):
        isa = paid_isa.distribute_payments("admin", STUDENT, 100_000, [(STAKE_B, None)])
        assert balance(ledger, "investor_b") == 5_000_000 + 33_333
        assert balance(ledger, "investor_a") == 10_000_000
        assert isa.total_distributed == 33_333

    def test_custom_destination(self, paid_isa, ledger):
        paid_isa.distribute_payments("admin", STUDENT, 100_000,
                                     [(STAKE_A, "investor_c"), (STAKE_B, None)])
        assert balance(ledger, "investor_c") == 1_000_000 + 66_666
        assert balance(ledger, "investor_a") == 10_000_000

    def test_empty_list(self, paid_isa):
        with pytest.raises(NoInvestors):
            paid_isa.distribute_payments("admin", STUDENT, 100, [])

    def test_unknown_stake(self, paid_isa):
        with pytest.raises(StakeNotFound):
            paid_isa.distribute_payments("admin", STUDENT, 100, [(stake_address(ISA, "ghost"), None)])

    def test_duplicate_stake(self, paid_isa):
        with pytest.raises(InvalidStake):
            paid_isa.distribute_payments("admin", STUDENT, 100, [(STAKE_A, None), (STAKE_A, None)])

    def test_unregistered_destination(self, paid_isa):
        with pytest.raises(WalletNotRegistered):
            paid_isa.distribute_payments("admin", STUDENT, 100, [(STAKE_A, "nowhere")])

    def test_reserved_destination_rejected(self, paid_isa, ledger):
        vault = paid_isa.get_isa_state(STUDENT).vault
        for destination in (SYSTEM_WALLET, vault):
            with pytest.raises(ReservedIdentity):
                paid_isa.distribute_payments("admin", STUDENT, 100_000,
                                             [(STAKE_A, destination), (STAKE_B, None)])
        assert paid_isa.get_isa_state(STUDENT).total_distributed == 0
        assert balance(ledger, vault) == 100_000


    def test_stake_from_other_contract(self, paid_isa, ledger):
        ledger.register_wallet("bob")
        paid_isa.initialize_isa("bob", ASSET, 1_000, 10, 2_000)
        paid_isa.invest("investor_c", "bob", 500)
        foreign = stake_address(isa_address("bob"), "investor_c")
        with pytest.raises(InvalidStake):
            paid_isa.distribute_payments("admin", STUDENT, 100, [(foreign, None)])

    def test_rejected_distribution_changes_nothing(self, paid_isa, ledger):
        before = paid_isa.get_isa_state(STUDENT)
        with pytest.raises(InvalidStake):
            paid_isa.distribute_payments("admin", STUDENT, 100_000,
                                         [(STAKE_A, None), (STAKE_A, None)])
        assert paid_isa.get_isa_state(STUDENT) == before
        assert balance(ledger, "investor_a") == 10_000_000

    def test_too_small_for_any_share(self, paid_isa):
        with pytest.raises(InvalidAmount):
            paid_isa.distribute_payments("admin", STUDENT, 1, [(STAKE_B, None)])


# ============================================================================
# DISTRIBUTE PAYMENTS (pure, FakeView)
# ============================================================================

class TestComputeDistribution:

    def _view(self, **overrides):
        fields = dict(
            status=int(IsaStatus.WORKING), total_invested=COURSE_COST,
            already_paid=100_000, vault_balance=Decimal(100_000),
            stakes={"investor_a": 10_000_000, "investor_b": 5_000_000},
        )
        fields.update(overrides)
        return make_isa_view(**fields)

    def test_one_move_per_nonzero_share(self):
        pending = compute_distribute_payments(
            self._view(), "admin", STUDENT, 100_000, [(STAKE_A, None), (STAKE_B, None)]
        )
        assert [(m.dest, m.quantity) for m in pending.moves] == [
            ("investor_a", Decimal(66_666)), ("investor_b", Decimal(33_333)),
        ]
        assert len(pending.state_changes) == 3
        assert pending.origin.event_type == "distribute_payments"

    def test_nothing_invested(self):
        view = self._view(total_invested=0)
        with pytest.raises(NoInvestors):
            compute_distribute_payments(view, "admin", STUDENT, 10, [(STAKE_A, None)])

    def test_vault_short(self):
        view = self._view(vault_balance=Decimal(50_000))
        with pytest.raises(NoFunds):
            compute_distribute_payments(view, "admin", STUDENT, 60_000, [(STAKE_A, None)])

    def test_collected_checked_before_vault(self):
        view = self._view(already_paid=100, vault_balance=Decimal(0))
        with pytest.raises(InsufficientCollectedFunds):
            compute_distribute_payments(view, "admin", STUDENT, 200, [(STAKE_A, None)])
