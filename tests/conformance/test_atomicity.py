"""
Atomicity Conformance Tests

INVARIANT: Operations are all-or-nothing.

    ∀ operation O:
        O succeeds ⟹ all its moves, state changes and creations are applied
        O fails ⟹ ledger state, log and seen intents are unchanged

Partial application is impossible by construction.
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from decimal import Decimal

from isa_ledger import (
    ExecuteResult, IsaError, NoFunds, TransactionRejected,
    isa_address, vault_address,
)
from isa_ledger.units.isa import compute_initialize_isa

from tests.scenario import (
    STUDENT, ASSET, COURSE_COST, PERCENT, MAX_CAP,
    balance, compare_ledger_states, make_engine, make_ledger,
)


def _snapshot(ledger):
    return ledger.clone(), len(ledger.transaction_log), set(ledger.seen_intent_ids)


def _assert_unchanged(ledger, snapshot):
    before, log_len, seen = snapshot
    diff = compare_ledger_states(before, ledger)
    assert diff["equal"], diff
    assert ledger.registered_wallets == before.registered_wallets
    assert len(ledger.transaction_log) == log_len
    assert ledger.seen_intent_ids == seen


class TestAtomicityProperties:
    """Property-based atomicity tests."""

    @given(st.integers(min_value=1, max_value=40_000_000))
    @settings(max_examples=50, deadline=None)
    def test_invest_all_or_nothing(self, amount):
        """
        PROPERTY: An investment either moves the tokens, grows the stake and
        total_invested together, or changes nothing.
        """
        ledger = make_ledger()
        engine = make_engine(ledger)
        engine.initialize_isa(STUDENT, ASSET, COURSE_COST, PERCENT, MAX_CAP)
        snapshot = _snapshot(ledger)

        try:
            isa = engine.invest("investor_b", STUDENT, amount)
        except (IsaError, TransactionRejected):
            _assert_unchanged(ledger, snapshot)
            return

        assert isa.total_invested == amount
        assert balance(ledger, isa.vault) == amount
        [(_, stake)] = engine.get_all_stakes_for_isa(STUDENT)
        assert stake.amount == amount


class TestAtomicityExamples:

    def test_rejected_invest_leaves_no_stake(self, funding_isa, ledger):
        snapshot = _snapshot(ledger)
        with pytest.raises(TransactionRejected):
            funding_isa.invest("investor_c", STUDENT, 5_000_000)
        _assert_unchanged(ledger, snapshot)

    def test_guard_failure_changes_nothing(self, working_isa, ledger):
        snapshot = _snapshot(ledger)
        with pytest.raises(IsaError):
            working_isa.distribute_payments("admin", STUDENT, 1)
        _assert_unchanged(ledger, snapshot)

    def test_rejected_pay_share_keeps_contract(self, working_isa, ledger):
        ledger.set_balance(STUDENT, ASSET, Decimal("0"))
        snapshot = _snapshot(ledger)
        with pytest.raises(TransactionRejected):
            working_isa.pay_share(STUDENT, STUDENT)
        _assert_unchanged(ledger, snapshot)

    def test_contract_and_vault_created_together(self, engine, ledger):
        first = compute_initialize_isa(ledger, STUDENT, ASSET, COURSE_COST, PERCENT, MAX_CAP)
        second = compute_initialize_isa(ledger, STUDENT, ASSET, 1, 1, 1)
        assert ledger.execute(first) == ExecuteResult.APPLIED
        snapshot = _snapshot(ledger)
        assert ledger.execute(second) == ExecuteResult.REJECTED
        _assert_unchanged(ledger, snapshot)
        assert ledger.get_unit_state(isa_address(STUDENT))["course_cost"] == COURSE_COST

    def test_distribution_batch_is_atomic(self, working_isa, ledger):
        working_isa.pay_share(STUDENT, STUDENT)
        isa = working_isa.get_isa_state(STUDENT)
        # Vault short of the requested amount.
        ledger.set_balance(isa.vault, ASSET, Decimal("70000"))
        snapshot = _snapshot(ledger)
        with pytest.raises(NoFunds):
            working_isa.distribute_payments("admin", STUDENT, 100_000)
        _assert_unchanged(ledger, snapshot)
        assert vault_address(isa.address) == isa.vault
