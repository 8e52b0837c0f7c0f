"""
conftest.py - Shared pytest fixtures for ISA ledger tests

Provides common fixtures used across unit, conformance and functional tests:
- A test-mode ledger with the USDC token and funded participant wallets
- An IsaEngine with the role registry initialized
- ISA contracts at each lifecycle stage (funding, funded, studying, working)
"""

import pytest

from tests.scenario import (
    STUDENT, ASSET, COURSE_COST, PERCENT, MAX_CAP,
    make_engine, make_ledger,
)


# =============================================================================
# BASIC FIXTURES
# =============================================================================

@pytest.fixture
def ledger():
    """Ledger with USDC and funded participant wallets."""
    return make_ledger()


@pytest.fixture
def engine(ledger):
    """Engine with the role registry initialized by admin."""
    return make_engine(ledger)


# =============================================================================
# LIFECYCLE FIXTURES
# =============================================================================

@pytest.fixture
def funding_isa(engine):
    """Student contract open for funding: 15M course, 10%, 50M cap."""
    engine.initialize_isa(STUDENT, ASSET, COURSE_COST, PERCENT, MAX_CAP)
    return engine


@pytest.fixture
def funded_isa(funding_isa):
    """Contract fully funded by investor_a (10M) and investor_b (5M)."""
    funding_isa.invest("investor_a", STUDENT, 10_000_000)
    funding_isa.invest("investor_b", STUDENT, 5_000_000)
    return funding_isa


@pytest.fixture
def studying_isa(funded_isa):
    """Tuition released to the university."""
    funded_isa.release_funds_to_university("admin", STUDENT)
    return funded_isa


@pytest.fixture
def working_isa(studying_isa):
    """Student employed at a salary of 1,000,000."""
    studying_isa.update_salary("oracle", STUDENT, 1_000_000)
    return studying_isa

