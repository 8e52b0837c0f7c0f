"""
Units module - Entity records stored at derived addresses.

- PlatformConfig: the role registry singleton
- IsaState: one ISA contract per student (funding and settlement)
- InvestorStake: one record per (contract, investor)

All record factories and compute functions are re-exported here for convenience.
"""

# Role registry
from .platform_config import (
    PlatformConfig,
    load_platform_config,
    create_platform_config_unit,
    compute_initialize_config,
    compute_set_oracle,
    compute_set_university,
    require_admin,
    require_oracle,
    require_university,
)

# ISA contracts
from .isa import (
    IsaStatus,
    IsaState,
    DEFAULT_PAYMENT_PERIOD_DAYS,
    MAX_PERCENT,
    load_isa,
    load_isa_at,
    calculate_due,
    calculate_capped_payment,
    calculate_remaining_to_invest,
    calculate_payment_deadline,
    compute_initialize_isa,
    compute_invest,
    compute_release_funds,
    compute_update_salary,
    compute_pay_share,
    compute_report_delinquency,
    compute_report_dropout,
)

# Investor stakes
from .stake import (
    InvestorStake,
    load_stake,
    list_stakes,
    create_stake_unit,
)

__all__ = [
    'PlatformConfig', 'load_platform_config', 'create_platform_config_unit',
    'compute_initialize_config', 'compute_set_oracle', 'compute_set_university',
    'require_admin', 'require_oracle', 'require_university',
    'IsaStatus', 'IsaState', 'DEFAULT_PAYMENT_PERIOD_DAYS', 'MAX_PERCENT',
    'load_isa', 'load_isa_at', 'calculate_due', 'calculate_capped_payment',
    'calculate_remaining_to_invest', 'calculate_payment_deadline',
    'compute_initialize_isa', 'compute_invest', 'compute_release_funds',
    'compute_update_salary', 'compute_pay_share', 'compute_report_delinquency',
    'compute_report_dropout',
    'InvestorStake', 'load_stake', 'list_stakes', 'create_stake_unit',
]
