"""
platform_config.py - Role Registry Singleton

One PlatformConfig record per ledger, stored at config_address(). It names
the three privileged identities:

    admin       - set once at creation (the initializer), never changes
    oracle      - reports salaries and delinquency; rotatable by admin
    university  - receives tuition and reports dropout; rotatable by admin

The record is not a module global: operations that need a role read it
through the LedgerView they are given, and fail with ConfigNotFound if the
registry was never initialized.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict

from ..core import (
    LedgerView, PendingTransaction, Unit, UnitStateChange,
    UNIT_TYPE_PLATFORM_CONFIG,
    AlreadyInitialized, ConfigNotFound,
    UnauthorizedAdmin, UnauthorizedOracle, UnauthorizedUniversity,
    build_transaction, record_unit, user_origin,
)
from ..identity import config_address, require_participant


@dataclass(frozen=True, slots=True)
class PlatformConfig:
    """Immutable snapshot of the role registry."""
    admin: str
    oracle: str
    university: str
    version: int = 0


def _require_identity(value: str, field_name: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{field_name} cannot be empty")
    require_participant(value, field_name)


# ============================================================================
# ADAPTER FUNCTIONS
# ============================================================================

def load_platform_config(view: LedgerView) -> PlatformConfig:
    """
    Load the role registry from ledger state.

    Raises:
        ConfigNotFound: If initialize_config has not run on this ledger
    """
    address = config_address()
    if not view.has_unit(address):
        raise ConfigNotFound("platform config is not initialized")
    raw = view.get_unit_state(address)
    return PlatformConfig(
        admin=raw['admin'],
        oracle=raw['oracle'],
        university=raw['university'],
        version=raw.get('version', 0),
    )


def to_state_dict(config: PlatformConfig) -> Dict[str, Any]:
    """Inverse of load_platform_config()."""
    return {
        'admin': config.admin,
        'oracle': config.oracle,
        'university': config.university,
        'version': config.version,
    }


# ============================================================================
# ROLE CHECKS
# ============================================================================

def require_admin(config: PlatformConfig, caller: str) -> None:
    if caller != config.admin:
        raise UnauthorizedAdmin(f"{caller} is not the platform admin")


def require_oracle(config: PlatformConfig, caller: str) -> None:
    if caller != config.oracle:
        raise UnauthorizedOracle(f"{caller} is not the platform oracle")


def require_university(config: PlatformConfig, caller: str) -> None:
    if caller != config.university:
        raise UnauthorizedUniversity(f"{caller} is not the platform university")


# ============================================================================
# OPERATIONS
# ============================================================================

def create_platform_config_unit(admin: str, oracle: str, university: str) -> Unit:
    """Build the registry record unit; the caller of initialize becomes admin."""
    _require_identity(admin, "admin")
    _require_identity(oracle, "oracle")
    _require_identity(university, "university")
    config = PlatformConfig(admin=admin, oracle=oracle, university=university)
    return record_unit(
        config_address(),
        "ISA platform configuration",
        UNIT_TYPE_PLATFORM_CONFIG,
        to_state_dict(config),
    )


def compute_initialize_config(
    view: LedgerView,
    caller: str,
    oracle: str,
    university: str,
) -> PendingTransaction:
    """
    Create the role registry with ``caller`` as admin.

    Raises:
        AlreadyInitialized: If a registry already exists
        ValueError: If any identity is empty
        ReservedIdentity: If any identity is the system wallet or a derived address
    """
    address = config_address()
    if view.has_unit(address):
        raise AlreadyInitialized("platform config already initialized")
    unit = create_platform_config_unit(caller, oracle, university)
    return build_transaction(
        view, [],
        origin=user_origin(caller, address, "initialize_config"),
        units_to_create=(unit,),
    )


def _compute_role_rotation(
    view: LedgerView,
    caller: str,
    field_name: str,
    new_value: str,
) -> PendingTransaction:
    config = load_platform_config(view)
    require_admin(config, caller)
    _require_identity(new_value, field_name)

    address = config_address()
    old_state = view.get_unit_state(address)
    new_state = {
        **old_state,
        field_name: new_value,
        'version': config.version + 1,
    }
    return build_transaction(
        view, [],
        [UnitStateChange(unit=address, old_state=old_state, new_state=new_state)],
        origin=user_origin(caller, address, f"set_{field_name}"),
    )


def compute_set_oracle(view: LedgerView, caller: str, new_oracle: str) -> PendingTransaction:
    """
    Replace the oracle identity. Admin only.

    Raises:
        ConfigNotFound: If the registry does not exist
        UnauthorizedAdmin: If caller is not the admin
    """
    return _compute_role_rotation(view, caller, 'oracle', new_oracle)


def compute_set_university(view: LedgerView, caller: str, new_university: str) -> PendingTransaction:
    """
    Replace the university identity. Admin only.

    Raises:
        ConfigNotFound: If the registry does not exist
        UnauthorizedAdmin: If caller is not the admin
    """
    return _compute_role_rotation(view, caller, 'university', new_university)
