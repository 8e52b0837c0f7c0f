"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the ISA ledger.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. conservation.py - Tokens are neither created nor destroyed by ISA operations
2. atomicity.py - All-or-nothing operations
3. idempotency.py - Duplicate execution handling
4. determinism.py - Reproducible behavior and replay
5. canonicalization.py - Content-addressable identity
6. temporal.py - Time and payment windows

These tests use hypothesis for property-based testing.
"""
