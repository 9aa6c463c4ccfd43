"""Pydantic schema for vault configuration validation."""

import hashlib
import json
from typing import Any, Dict, Literal

from pydantic import BaseModel, Field, field_validator, model_validator


class LockParams(BaseModel):
    """Lock constants, expressed in time-index units where relevant."""
    lock_period: int = Field(default=50, gt=0, description="Lock duration in time-index units")
    min_lock_amount: int = Field(default=1000, ge=1, description="Minimum gross deposit")
    max_active_users: int = Field(default=1000, gt=0, description="Registry capacity")
    deposit_fee_percent: int = Field(default=1, ge=0, lt=100, description="Fee routed to the beneficiary (%)")
    emergency_grace_period: int = Field(
        default=100, ge=0,
        description="Time-index units after lock end before an admin may force an unlock"
    )


class VotingPolicyConfig(BaseModel):
    """Voting-power policy and lock-window boundary inclusivity."""
    policy: Literal["decay", "growth"] = Field(default="decay", description="Voting-power curve")
    include_start: bool = Field(default=True, description="Voting power counted at start_index")
    include_end: bool = Field(default=False, description="Voting power counted at end_index")

    @model_validator(mode='after')
    def validate_window(self):
        """A window open at both ends still needs a start or an end to anchor it."""
        if not self.include_start and not self.include_end:
            raise ValueError(
                "Voting window must include at least one boundary "
                "(include_start or include_end)"
            )
        return self


class DistributionConfig(BaseModel):
    """Reward distribution batching."""
    batch_size: int = Field(default=100, gt=0, description="Members processed per distribution call")


class SimulationConfig(BaseModel):
    """Parameters for the seeded multi-user simulation."""
    steps: int = Field(default=200, gt=0, description="Number of time-index steps to simulate")
    random_seed: int = Field(default=42, description="Random seed for reproducibility")
    arrival_rate: float = Field(default=2.0, ge=0, description="Mean new lockers per step (Poisson)")
    lock_size_median: float = Field(default=20_000.0, gt=0, description="Median gross lock size")
    lock_size_sigma: float = Field(default=0.8, ge=0, description="Lognormal sigma of lock size")
    claim_probability: float = Field(
        default=0.6, ge=0, le=1,
        description="Chance an expired lock is claimed in a given step"
    )
    relock_probability: float = Field(
        default=0.05, ge=0, le=1,
        description="Chance an active locker re-locks in a given step"
    )
    topup_fraction: float = Field(
        default=0.3, ge=0, le=1,
        description="Share of re-locks that add fresh principal"
    )
    funding_interval: int = Field(default=10, gt=0, description="Steps between reward fundings")
    funding_amount: int = Field(default=100_000, gt=0, description="Reward units per funding")
    min_reward_threshold: int = Field(default=1, ge=0, description="Minimum per-user payout")
    initial_balance: int = Field(default=1_000_000, gt=0, description="Lock-asset balance minted per user")

    @field_validator("steps", "funding_interval", mode="before")
    @classmethod
    def coerce_int(cls, v):
        """Accept integral floats from YAML."""
        if v is None:
            return v
        return int(v)


class VaultConfig(BaseModel):
    """Complete configuration for a lock vault."""
    lock: LockParams = Field(default_factory=LockParams)
    voting: VotingPolicyConfig = Field(default_factory=VotingPolicyConfig)
    distribution: DistributionConfig = Field(default_factory=DistributionConfig)
    simulation: SimulationConfig = Field(default_factory=SimulationConfig)

    def compute_hash(self) -> str:
        """Compute config hash for reproducibility."""
        config_dict = self.model_dump()
        config_str = json.dumps(config_dict, sort_keys=True)
        return hashlib.sha256(config_str.encode()).hexdigest()[:16]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'VaultConfig':
        """Create config from dictionary."""
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return self.model_dump()
