"""
Exception hierarchy for vault operations.

Every failing operation raises a subclass of VaultError and leaves the vault
unchanged. The four category bases mirror how a caller should react:
fix the input, wait for a state change, wait for capacity, or fix the
asset side (balance / allowance).
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class VaultError(Exception):
    """Base exception for all vault errors.

    Attributes:
        message: Human-readable error description
        details: Additional context about the error
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ==================== Input Validation ====================


class ValidationError(VaultError):
    """Raised when an argument is rejected before any state is read."""


class BelowMinimum(ValidationError):
    """Deposit is smaller than the configured minimum lock amount."""


class InvalidAmount(ValidationError):
    """Amount is negative, or zero where a positive amount is required."""


class ZeroAddress(ValidationError):
    """The zero address was supplied where a real account is required."""


class UnknownRewardToken(ValidationError):
    """Reward token has not been registered by an administrator."""


class InvalidRewardToken(ValidationError):
    """Token cannot serve as a reward token (e.g. it is the lock asset)."""


class CannotWithdrawLockToken(ValidationError):
    """Stray withdrawal targeted the lock asset, which backs principal."""


class UnknownRound(ValidationError):
    """No distribution round exists with the given id."""


# ==================== State Preconditions ====================


class PreconditionError(VaultError):
    """Raised when the vault's current state does not permit the operation."""


class Unauthorized(PreconditionError):
    """Caller lacks the capability required by the operation."""


class ReentrantCall(PreconditionError):
    """A state-mutating operation was entered while another was running."""


class DuplicateMember(PreconditionError):
    """Address is already registered."""


class AlreadyLocked(PreconditionError):
    """Caller already holds an active lock."""


class NoActiveLock(PreconditionError):
    """Caller has no lock to extend."""


class LockExpired(PreconditionError):
    """Lock has reached its end index and can no longer be extended."""


class StillLocked(PreconditionError):
    """Lock has not reached its end index yet."""


class NothingToClaim(PreconditionError):
    """Address has no lock to release."""


class GracePeriodNotElapsed(PreconditionError):
    """Emergency unlock requested before end index plus grace period."""


class NoRewardsAvailable(PreconditionError):
    """Reward token has no funded, undistributed balance."""


class NoVotingPower(PreconditionError):
    """Total voting power is zero, so no proportional split exists."""


class RoundAlreadyComplete(PreconditionError):
    """Every member captured at round start has been processed."""


class CannotWithdrawReserved(PreconditionError):
    """Token balance does not exceed the amount reserved for rewards."""


class NothingToWithdraw(PreconditionError):
    """Vault holds no withdrawable balance of the token."""


# ==================== Resource Exhaustion ====================


class ResourceExhaustedError(VaultError):
    """Raised when a bounded resource is full; retry after attrition."""


class CapacityExceeded(ResourceExhaustedError):
    """Active-lock registry is at capacity."""


RegistryFull = CapacityExceeded


# ==================== External Capability ====================


class ExternalCapabilityError(VaultError):
    """Raised when the asset transfer capability cannot cover a movement."""


class InsufficientBalance(ExternalCapabilityError):
    """Account balance is lower than the requested movement."""


class InsufficientAllowance(ExternalCapabilityError):
    """Spender allowance is lower than the requested movement."""


class InsufficientTokenBalance(ExternalCapabilityError):
    """Vault's actual token balance no longer covers its reward ledger."""
