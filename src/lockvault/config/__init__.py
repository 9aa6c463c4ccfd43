"""Vault configuration."""

from .loader import config_from_dict, load_config
from .schema import (
    DistributionConfig,
    LockParams,
    SimulationConfig,
    VaultConfig,
    VotingPolicyConfig,
)

__all__ = [
    "DistributionConfig",
    "LockParams",
    "SimulationConfig",
    "VaultConfig",
    "VotingPolicyConfig",
    "config_from_dict",
    "load_config",
]
