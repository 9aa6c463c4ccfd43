"""Vault accounting - point-in-time state with conservation validation."""

from dataclasses import dataclass, field
from typing import Dict, Optional


@dataclass
class VaultSnapshot:
    """Vault state at a time index.

    Conservation Identity:
    total_locked_tokens = Σ principal over active locks

    Backing:
    lock_asset_balance >= total_locked_tokens
    (principal can only leave through claim or emergency unlock)
    """
    t: int  # Time index
    total_locked_tokens: int  # Vault-wide principal counter
    principal_sum: int  # Recomputed from individual records
    active_users: int
    registry_size: int
    total_voting_power: int
    lock_asset_balance: int  # Vault's actual holding of the lock asset
    available_rewards: Dict[str, int] = field(default_factory=dict)
    reward_balances: Dict[str, int] = field(default_factory=dict)
    pending_round_commitments: Dict[str, int] = field(default_factory=dict)

    def validate_conservation(self) -> tuple[bool, Optional[str]]:
        """
        Validate the principal counter against the records it summarises.

        Returns:
            (is_valid, error_message)
        """
        if self.total_locked_tokens != self.principal_sum:
            return False, (
                f"Conservation violation at t={self.t}: "
                f"total_locked_tokens={self.total_locked_tokens}, "
                f"sum of principals={self.principal_sum}, "
                f"diff={self.total_locked_tokens - self.principal_sum}"
            )
        if self.registry_size != self.active_users:
            return False, (
                f"Registry mismatch at t={self.t}: "
                f"{self.registry_size} registered vs {self.active_users} active locks"
            )
        if self.lock_asset_balance < self.total_locked_tokens:
            return False, (
                f"Principal not backed at t={self.t}: "
                f"holding {self.lock_asset_balance} < locked {self.total_locked_tokens}"
            )
        return True, None

    def validate_non_negative(self) -> tuple[bool, Optional[str]]:
        """Validate all counters are non-negative."""
        buckets = [
            ('total_locked_tokens', self.total_locked_tokens),
            ('total_voting_power', self.total_voting_power),
            ('lock_asset_balance', self.lock_asset_balance),
        ]
        buckets.extend((f'available_rewards[{k}]', v) for k, v in self.available_rewards.items())
        buckets.extend((f'reward_balances[{k}]', v) for k, v in self.reward_balances.items())
        for name, value in buckets:
            if value < 0:
                return False, f"Negative bucket at t={self.t}: {name}={value}"
        return True, None

    def validate_reward_backing(self) -> tuple[bool, Optional[str]]:
        """Each reward token's holding must cover what the ledger and open rounds reserve."""
        for token, available in self.available_rewards.items():
            reserved = available + self.pending_round_commitments.get(token, 0)
            held = self.reward_balances.get(token, 0)
            if held < reserved:
                return False, (
                    f"Reward token {token} under-backed at t={self.t}: "
                    f"holding {held} < reserved {reserved}"
                )
        return True, None
