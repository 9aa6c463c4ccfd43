"""Vault engine: voting power, lock lifecycle, reward funding and distribution."""

from .access import AccessPolicy, Capability, NonReentrantGuard
from .accounting import VaultSnapshot
from .assets import ZERO_ADDRESS, FungibleAsset, InMemoryAsset
from .clock import ManualClock, TimeIndexSource
from .distribution import DistributionRound
from .events import EventLog, VaultEvent
from .registry import ActiveLockRegistry
from .rewards import RewardLedger, RewardTokenConfig
from .vault import LockVault
from .voting_power import LockRecord, VotingPolicy, VotingPowerCalculator, WindowPolicy

__all__ = [
    "AccessPolicy",
    "ActiveLockRegistry",
    "Capability",
    "DistributionRound",
    "EventLog",
    "FungibleAsset",
    "InMemoryAsset",
    "LockRecord",
    "LockVault",
    "ManualClock",
    "NonReentrantGuard",
    "RewardLedger",
    "RewardTokenConfig",
    "TimeIndexSource",
    "VaultEvent",
    "VaultSnapshot",
    "VotingPolicy",
    "VotingPowerCalculator",
    "WindowPolicy",
    "ZERO_ADDRESS",
]
