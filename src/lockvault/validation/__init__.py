"""Validation and sanity checks for lock vaults."""

from .sanity_checks import SanityChecker, ValidationWarning, validate_snapshots, validate_vault

__all__ = [
    "SanityChecker",
    "ValidationWarning",
    "validate_snapshots",
    "validate_vault"
]
