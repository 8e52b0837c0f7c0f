"""
identity.py - Deterministic Entity Addresses

Every entity in the ledger (platform config, ISA contract, investor stake,
custody vault) lives at an address derived from a namespace tag and the
identities that own it. Derivation replaces a directory service: anyone who
knows the owners can compute where the record is, and the same inputs always
give the same address.

Addresses are "<namespace>:<sha256 hex>", where the digest covers the
namespace and each key with a length prefix so that ("ab", "c") and
("a", "bc") never collide.
"""

from __future__ import annotations
import hashlib

from .core import SYSTEM_WALLET, ReservedIdentity

NAMESPACE_CONFIG = "config"
NAMESPACE_ISA = "isa"
NAMESPACE_STAKE = "stake"
NAMESPACE_VAULT = "vault"

_DERIVED_NAMESPACES = frozenset({
    NAMESPACE_CONFIG, NAMESPACE_ISA, NAMESPACE_STAKE, NAMESPACE_VAULT,
})

# 128-bit prefix of the digest
ADDRESS_HEX_LENGTH = 32


def derive_address(namespace: str, *keys: str) -> str:
    """
    Derive a stable address from a namespace tag and owning identities.

    Pure function: no side effects, no registry lookups.

    Args:
        namespace: Entity kind (e.g. "config", "isa", "stake")
        *keys: Zero or more owning identities, order-sensitive

    Returns:
        Address string such as "isa:5d41402abc4b2a76b9719d911017c592"

    Raises:
        ValueError: If namespace or any key is empty

    Example:
        isa = derive_address("isa", "student-1")
        stake = derive_address("stake", isa, "investor-7")
    """
    if not namespace or not namespace.strip():
        raise ValueError("namespace cannot be empty")
    h = hashlib.sha256()
    for part in (namespace, *keys):
        if not isinstance(part, str):
            raise ValueError(f"address components must be str, got {type(part).__name__}")
        if not part:
            raise ValueError(f"empty key in address for namespace {namespace!r}")
        encoded = part.encode("utf-8")
        h.update(len(encoded).to_bytes(4, "big"))
        h.update(encoded)
    return f"{namespace}:{h.hexdigest()[:ADDRESS_HEX_LENGTH]}"


def config_address() -> str:
    """Address of the platform configuration singleton."""
    return derive_address(NAMESPACE_CONFIG)


def isa_address(student: str) -> str:
    """Address of the ISA contract owned by a student."""
    return derive_address(NAMESPACE_ISA, student)


def stake_address(isa: str, investor: str) -> str:
    """Address of an investor's stake in one ISA contract."""
    return derive_address(NAMESPACE_STAKE, isa, investor)


def vault_address(isa: str) -> str:
    """Address of the custody wallet holding an ISA contract's escrow."""
    return derive_address(NAMESPACE_VAULT, isa)


def is_reserved_identity(value: str) -> bool:
    """
    True for identities no participant may hold: the system wallet and any
    derived entity address ("vault:...", "isa:...", ...).
    """
    if not isinstance(value, str):
        return False
    if value == SYSTEM_WALLET:
        return True
    namespace, sep, _ = value.partition(":")
    return bool(sep) and namespace in _DERIVED_NAMESPACES


def require_participant(value: str, field_name: str) -> None:
    """Raise ReservedIdentity if ``value`` cannot act as a participant."""
    if is_reserved_identity(value):
        raise ReservedIdentity(f"{field_name} {value!r} is a reserved identity")
