#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: An Income-Share Agreement, Step by Step

This is a pedagogical walkthrough of the ISA escrow and settlement engine.
Each step builds on the previous one. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:   Setup        - The ledger, token issuance, the role registry
  4-6:   Funding      - Opening a contract, investing, releasing tuition
  7-9:   Settlement   - Salary reports, share payments, pro-rata payouts
  10-12: Guarantees   - Payment windows, safe retries, replay and conservation
  13:    Dropout      - Early dropout and investor refunds

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
import sys

from isa_ledger import (
    Ledger, Move, IsaEngine, IsaError,
    build_transaction, token, compute_pay_share,
    SYSTEM_WALLET, ExecuteResult,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    start_time: datetime = datetime(2025, 1, 1, 9, 0, 0)
    asset: str = "USDC"

    # Contract terms
    course_cost: int = 15_000_000
    percent: int = 10
    max_cap: int = 50_000_000
    payment_period_days: int = 30

    # Funding
    investor_a_amount: int = 10_000_000
    investor_b_amount: int = 5_000_000

    # Employment
    salary: int = 1_000_000

    # Initial issuance
    student_initial: int = 5_000_000
    investor_a_initial: int = 20_000_000
    investor_b_initial: int = 10_000_000


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv

STUDENT = "alice"


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    """Print a step header with learning objective."""
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    print(f"\n--- {text} ---\n")


def show_balances(ledger: Ledger, wallets):
    for wallet in wallets:
        print(f"  {wallet:<36} {int(ledger.get_balance(wallet, CONFIG.asset)):>14,}")


def show_isa(engine: IsaEngine, student: str = STUDENT):
    isa = engine.get_isa_state(student)
    print(f"  status:            {isa.status.name} ({isa.status.label})")
    print(f"  total_invested:    {isa.total_invested:,} / {isa.course_cost:,}")
    print(f"  already_paid:      {isa.already_paid:,} / cap {isa.max_cap:,}")
    print(f"  total_distributed: {isa.total_distributed:,}")
    print(f"  version:           {isa.version}")


# ============================================================================
# PHASE 1: SETUP (Steps 1-3)
# ============================================================================

def step_01_ledger():
    """Create the ledger, the token and the participant wallets."""
    step_header(1, "The Ledger",
        "Every balance and every contract record lives in one ledger.")

    print("""
    The ledger holds two kinds of units:

    1. TOKENS  - fungible balances held in wallets (here: USDC)
    2. RECORDS - entity state at derived addresses (config, contracts, stakes)

    Records never carry balances; tokens never carry state.
    """)

    ledger = Ledger("isa_tutorial", initial_time=CONFIG.start_time, verbose=True)
    ledger.register_unit(token(CONFIG.asset, "USD Coin"))
    for wallet in ("admin", "oracle", "university", STUDENT, "investor_a", "investor_b"):
        ledger.register_wallet(wallet)

    section_header("Registered wallets")
    for wallet in sorted(ledger.registered_wallets):
        print(f"  {wallet}")
    return ledger


def step_02_issuance(ledger: Ledger):
    """Issue tokens from SYSTEM_WALLET so funding is part of the log."""
    step_header(2, "Token Issuance",
        "Value enters the economy only through SYSTEM_WALLET.")

    issuance = {
        STUDENT: CONFIG.student_initial,
        "investor_a": CONFIG.investor_a_initial,
        "investor_b": CONFIG.investor_b_initial,
    }
    for wallet, amount in issuance.items():
        ledger.execute(build_transaction(ledger, [
            Move(Decimal(amount), CONFIG.asset, SYSTEM_WALLET, wallet, f"issue_{wallet}")
        ]))

    section_header("Balances")
    show_balances(ledger, issuance)
    print(f"\n  Total supply: {int(ledger.total_supply(CONFIG.asset)):,}")
    return ledger


def step_03_roles(ledger: Ledger):
    """Create the role registry."""
    step_header(3, "The Role Registry",
        "The first caller becomes admin and names the oracle and university.")

    engine = IsaEngine(ledger, verbose=True)
    config = engine.initialize_config("admin", "oracle", "university")
    print(f"\n  admin={config.admin} oracle={config.oracle} university={config.university}")

    section_header("Only one registry")
    try:
        engine.initialize_config("mallory", "mallory", "mallory")
    except IsaError as e:
        print(f"  Refused: {e.code}: {e}")
    return engine


# ============================================================================
# PHASE 2: FUNDING (Steps 4-6)
# ============================================================================

def step_04_open_contract(engine: IsaEngine):
    step_header(4, "Opening a Contract",
        "A student sets the course cost, the salary share and the lifetime cap.")

    isa = engine.initialize_isa(
        STUDENT, CONFIG.asset, CONFIG.course_cost, CONFIG.percent, CONFIG.max_cap,
        payment_period_days=CONFIG.payment_period_days,
    )
    print(f"\n  contract address: {isa.address}")
    print(f"  vault wallet:     {isa.vault}")
    show_isa(engine)


def step_05_invest(engine: IsaEngine):
    step_header(5, "Investing",
        "Investors fund the course; each gets a stake record.")

    engine.invest("investor_a", STUDENT, CONFIG.investor_a_amount)
    engine.invest("investor_b", STUDENT, CONFIG.investor_b_amount)

    status = engine.get_funding_status(STUDENT)
    section_header("Funding status")
    print(f"  remaining to invest: {status.remaining_to_invest:,}")
    print(f"  fully funded:        {status.is_fully_funded}")
    print(f"  investors:           {status.investor_count}")

    section_header("Overfunding is refused")
    try:
        engine.invest("investor_b", STUDENT, 1)
    except IsaError as e:
        print(f"  Refused: {e.code}: {e}")


def step_06_release(engine: IsaEngine):
    step_header(6, "Paying the University",
        "The full vault goes to the university in one move.")

    isa = engine.release_funds_to_university("admin", STUDENT)
    show_balances(engine.ledger, ["university", isa.vault])
    show_isa(engine)


# ============================================================================
# PHASE 3: SETTLEMENT (Steps 7-9)
# ============================================================================

def step_07_salary(engine: IsaEngine):
    step_header(7, "Salary Reports",
        "The oracle reports employment; the contract starts its payment window.")

    isa = engine.update_salary("oracle", STUDENT, CONFIG.salary)
    print(f"\n  working since: {isa.working_since}")
    show_isa(engine)


def step_08_pay_share(engine: IsaEngine):
    step_header(8, "Paying the Share",
        "The student pays floor(salary * percent / 100) into the vault.")

    engine.ledger.advance_time(CONFIG.start_time + timedelta(days=25))
    isa = engine.pay_share(STUDENT, STUDENT)
    show_balances(engine.ledger, [STUDENT, isa.vault])
    show_isa(engine)


def step_09_distribute(engine: IsaEngine):
    step_header(9, "Pro-Rata Distribution",
        "The admin pays collected funds to investors by stake size.")

    isa = engine.get_isa_state(STUDENT)
    engine.distribute_payments("admin", STUDENT, isa.collected_undistributed)

    section_header("Balances after payout")
    show_balances(engine.ledger, ["investor_a", "investor_b", isa.vault])
    print("""
    Shares round down. The unit left in the vault stays distributable
    and goes out with a later batch.
    """)

    section_header("Investor positions")
    for investor in ("investor_a", "investor_b"):
        position = engine.get_investor_position(STUDENT, investor)
        print(f"  {investor}: share {position.pool_share:.4f}, "
              f"received {position.total_received:,}, "
              f"max return {position.potential_max_return:,} "
              f"({position.potential_roi_percent}% ROI)")


# ============================================================================
# PHASE 4: GUARANTEES (Steps 10-12)
# ============================================================================

def step_10_payment_window(engine: IsaEngine):
    step_header(10, "Payment Windows",
        "Delinquency can be reported only once the window has closed.")

    ledger = engine.ledger
    isa = engine.get_isa_state(STUDENT)
    deadline = isa.last_payment_time + timedelta(days=isa.payment_period_days)
    print(f"\n  last payment: {isa.last_payment_time}")
    print(f"  window closes: {deadline}")

    try:
        engine.report_delinquency("oracle", STUDENT)
    except IsaError as e:
        print(f"\n  Too early: {e.code}")

    ledger.advance_time(deadline)
    engine.report_delinquency("oracle", STUDENT)
    show_isa(engine)

    section_header("Paying clears the flag")
    engine.pay_share(STUDENT, STUDENT)
    show_isa(engine)


def step_11_retries(engine: IsaEngine):
    step_header(11, "Safe Retries",
        "A resubmitted transaction is recognized by its content hash.")

    ledger = engine.ledger
    pending = compute_pay_share(ledger, STUDENT, STUDENT)
    print(f"\n  intent_id: {pending.intent_id}")
    first = ledger.execute(pending)
    second = ledger.execute(pending)
    print(f"  first:  {first.value}")
    print(f"  second: {second.value}")
    assert second == ExecuteResult.ALREADY_APPLIED

    section_header("Two snapshots, one winner")
    stale = compute_pay_share(ledger, STUDENT, STUDENT)
    engine.pay_share(STUDENT, STUDENT)
    result = ledger.execute(stale)
    print(f"  {result.value}: {ledger.last_rejection}")


def step_12_replay(engine: IsaEngine):
    step_header(12, "Replay and Conservation",
        "The log alone rebuilds every balance and every record.")

    ledger = engine.ledger
    replayed = ledger.replay()
    isa = engine.get_isa_state(STUDENT)
    same = replayed.get_unit_state(isa.address) == ledger.get_unit_state(isa.address)
    print(f"\n  transactions replayed: {len(replayed.transaction_log)}")
    print(f"  contract record matches: {same}")

    result = ledger.verify_double_entry()
    print(f"  supply: {result['supplies']}")
    print(f"  SYSTEM_WALLET: {int(ledger.get_balance(SYSTEM_WALLET, CONFIG.asset)):,}")


# ============================================================================
# PHASE 5: DROPOUT (Step 13)
# ============================================================================

def step_13_dropout(engine: IsaEngine):
    step_header(13, "Dropout and Refunds",
        "If a student drops out before tuition is paid, investors get their money back.")

    ledger = engine.ledger
    ledger.register_wallet("bob")
    engine.initialize_isa("bob", CONFIG.asset, 2_000_000, 8, 4_000_000)
    engine.invest("investor_a", "bob", 1_200_000)
    engine.invest("investor_b", "bob", 300_000)

    isa = engine.report_dropout("university", "bob")
    print(f"\n  status: {isa.status.name}, cap now {isa.max_cap}")

    before = {w: int(ledger.get_balance(w, CONFIG.asset)) for w in ("investor_a", "investor_b")}
    isa = engine.refund_investors("admin", "bob")
    for wallet, amount in before.items():
        after = int(ledger.get_balance(wallet, CONFIG.asset))
        print(f"  {wallet}: +{after - amount:,}")
    print(f"  total refunded: {isa.total_refunded:,}")

    section_header("Audit trail for bob")
    for tx in engine.history("bob"):
        print(f"  #{tx.sequence_number:<3} {tx.origin.event_type:<20} by {tx.origin.source_id}")


def main():
    """Run the complete tutorial."""
    print("=" * 70)
    print("       ISA LEDGER - INTERACTIVE TUTORIAL")
    print("=" * 70)
    print("Running in QUICK mode (no pauses)" if QUICK_MODE
          else "Running in INTERACTIVE mode (press Enter to advance)")
    wait_for_enter()

    ledger = step_01_ledger()
    wait_for_enter()
    step_02_issuance(ledger)
    wait_for_enter()
    engine = step_03_roles(ledger)
    wait_for_enter()

    step_04_open_contract(engine)
    wait_for_enter()
    step_05_invest(engine)
    wait_for_enter()
    step_06_release(engine)
    wait_for_enter()

    step_07_salary(engine)
    wait_for_enter()
    step_08_pay_share(engine)
    wait_for_enter()
    step_09_distribute(engine)
    wait_for_enter()

    step_10_payment_window(engine)
    wait_for_enter()
    step_11_retries(engine)
    wait_for_enter()
    step_12_replay(engine)
    wait_for_enter()

    step_13_dropout(engine)

    print("\n" + "=" * 70)
    print("       TUTORIAL COMPLETE!")
    print("=" * 70)
    print("""
    You've learned:

    FUNDING
      - Investments are capped at the course cost
      - Tuition leaves the vault in one move

    SETTLEMENT
      - Payments stop at the lifetime cap
      - Payouts are pro rata and round down

    GUARANTEES
      - Operations apply completely or not at all
      - Retries are recognized; stale snapshots lose
      - The log replays to the same state

    Next steps:
      - See isa_ledger/units/isa.py for the contract state machine
      - Run tests: pytest tests/
    """)


if __name__ == "__main__":
    main()
