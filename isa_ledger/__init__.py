"""
isa_ledger - Income-Share Agreement Escrow and Settlement

Investors fund a student's tuition through an escrowed ISA contract; after
graduation the student pays a share of salary back into the contract and
the admin distributes it to investors pro rata.

Usage:
    from isa_ledger import Ledger, IsaEngine, token

    ledger = Ledger("isa", verbose=False, test_mode=True)
    ledger.register_unit(token("USDC", "USD Coin"))
    for wallet in ("admin", "oracle", "university", "alice", "investor_a"):
        ledger.register_wallet(wallet)
    ledger.set_balance("investor_a", "USDC", 15_000_000)

    engine = IsaEngine(ledger)
    engine.initialize_config("admin", oracle="oracle", university="university")
    engine.initialize_isa("alice", "USDC", course_cost=15_000_000,
                          percent=10, max_cap=50_000_000)
    engine.invest("investor_a", "alice", 15_000_000)
    engine.release_funds_to_university("admin", "alice")
"""

# Core types
from .core import (
    LedgerView,
    Move,
    Transaction,
    PendingTransaction,
    TransactionOrigin,
    OriginType,
    build_transaction,
    user_origin,
    Unit,
    UnitStateChange,
    ExecuteResult,
    token,
    record_unit,
    SYSTEM_WALLET,
    UNIT_TYPE_TOKEN,
    UNIT_TYPE_PLATFORM_CONFIG,
    UNIT_TYPE_ISA,
    UNIT_TYPE_ISA_STAKE,
    # Errors
    LedgerError,
    TransferRuleViolation,
    UnitNotRegistered,
    WalletNotRegistered,
    TransactionRejected,
    IsaError,
    AuthorizationError,
    UnauthorizedAdmin,
    UnauthorizedOracle,
    UnauthorizedUniversity,
    UnauthorizedStudent,
    ReservedIdentity,
    StateGuardError,
    InvalidStatus,
    NotFullyFunded,
    FundingExceedsCourseCost,
    NothingToPay,
    InsufficientCollectedFunds,
    NoInvestors,
    NoFunds,
    InvalidAmount,
    InvalidStake,
    AlreadyInitialized,
    PaymentNotOverdue,
    InvalidPercent,
    InvalidCourseCost,
    InvalidMaxCap,
    EntityNotFound,
    ConfigNotFound,
    IsaNotFound,
    StakeNotFound,
)

# Ledger
from .ledger import Ledger

# Identity derivation
from .identity import (
    derive_address,
    config_address,
    isa_address,
    stake_address,
    vault_address,
    is_reserved_identity,
)

# Entities
from .units import (
    PlatformConfig,
    IsaState,
    IsaStatus,
    InvestorStake,
    DEFAULT_PAYMENT_PERIOD_DAYS,
    MAX_PERCENT,
    load_platform_config,
    load_isa,
    load_stake,
    list_stakes,
    calculate_due,
    calculate_capped_payment,
    calculate_remaining_to_invest,
    calculate_payment_deadline,
    compute_initialize_config,
    compute_set_oracle,
    compute_set_university,
    compute_initialize_isa,
    compute_invest,
    compute_release_funds,
    compute_update_salary,
    compute_pay_share,
    compute_report_delinquency,
    compute_report_dropout,
)

# Distribution
from .distribution import (
    calculate_pro_rata_shares,
    compute_distribute_payments,
    compute_refund_investors,
)

# Views
from .views import (
    FundingStatus,
    InvestorPosition,
    get_isa_state,
    get_funding_status,
    get_all_stakes_for_isa,
    get_platform_config,
    get_investor_position,
)

# Operation surface
from .engine import IsaEngine

__version__ = "0.1.0"

__all__ = [
    # Core
    'LedgerView', 'Move', 'Transaction', 'PendingTransaction',
    'TransactionOrigin', 'OriginType', 'build_transaction', 'user_origin',
    'Unit', 'UnitStateChange', 'ExecuteResult', 'token', 'record_unit',
    'SYSTEM_WALLET', 'UNIT_TYPE_TOKEN', 'UNIT_TYPE_PLATFORM_CONFIG',
    'UNIT_TYPE_ISA', 'UNIT_TYPE_ISA_STAKE',
    # Errors
    'LedgerError', 'TransferRuleViolation',
    'UnitNotRegistered', 'WalletNotRegistered', 'TransactionRejected',
    'IsaError', 'AuthorizationError', 'UnauthorizedAdmin', 'UnauthorizedOracle',
    'UnauthorizedUniversity', 'UnauthorizedStudent', 'ReservedIdentity', 'StateGuardError',
    'InvalidStatus', 'NotFullyFunded', 'FundingExceedsCourseCost', 'NothingToPay',
    'InsufficientCollectedFunds', 'NoInvestors', 'NoFunds', 'InvalidAmount',
    'InvalidStake', 'AlreadyInitialized', 'PaymentNotOverdue', 'InvalidPercent',
    'InvalidCourseCost', 'InvalidMaxCap', 'EntityNotFound', 'ConfigNotFound',
    'IsaNotFound', 'StakeNotFound',
    # Ledger
    'Ledger',
    # Identity
    'derive_address', 'config_address', 'isa_address', 'stake_address', 'vault_address',
    'is_reserved_identity',
    # Entities
    'PlatformConfig', 'IsaState', 'IsaStatus', 'InvestorStake',
    'DEFAULT_PAYMENT_PERIOD_DAYS', 'MAX_PERCENT',
    'load_platform_config', 'load_isa', 'load_stake', 'list_stakes',
    'calculate_due', 'calculate_capped_payment', 'calculate_remaining_to_invest',
    'calculate_payment_deadline',
    'compute_initialize_config', 'compute_set_oracle', 'compute_set_university',
    'compute_initialize_isa', 'compute_invest', 'compute_release_funds',
    'compute_update_salary', 'compute_pay_share', 'compute_report_delinquency',
    'compute_report_dropout',
    # Distribution
    'calculate_pro_rata_shares', 'compute_distribute_payments', 'compute_refund_investors',
    # Views
    'FundingStatus', 'InvestorPosition', 'get_isa_state', 'get_funding_status',
    'get_all_stakes_for_isa', 'get_platform_config', 'get_investor_position',
    # Engine
    'IsaEngine',
]
