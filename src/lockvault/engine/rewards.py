"""Reward funding ledger - funded-but-undistributed balances per reward token.

Key Concepts:
- available_rewards: funded and not yet claimed by a distribution round
- A round takes the whole available balance as its pool and zeroes it
- Stray-token withdrawals may only touch what the ledger does not reserve
"""

from dataclasses import dataclass
from typing import Dict, List

from .errors import UnknownRewardToken


@dataclass
class RewardTokenConfig:
    """Per-token reward accounting."""
    token: str
    min_reward_threshold: int = 0  # Shares below this are forfeited, not paid
    available_rewards: int = 0  # Funded, not yet assigned to a round
    total_funded: int = 0
    total_distributed: int = 0


class RewardLedger:
    """Registered reward tokens and their funded balances."""

    def __init__(self):
        self._configs: Dict[str, RewardTokenConfig] = {}

    def __contains__(self, token: str) -> bool:
        return token in self._configs

    def tokens(self) -> List[str]:
        return list(self._configs)

    def register(self, token: str, min_reward_threshold: int) -> RewardTokenConfig:
        """Register `token`, or update its threshold if already known."""
        config = self._configs.get(token)
        if config is None:
            config = RewardTokenConfig(token=token, min_reward_threshold=min_reward_threshold)
            self._configs[token] = config
        else:
            config.min_reward_threshold = min_reward_threshold
        return config

    def get(self, token: str) -> RewardTokenConfig:
        config = self._configs.get(token)
        if config is None:
            raise UnknownRewardToken(f"Reward token {token} is not registered", details={'token': token})
        return config

    def credit(self, token: str, amount: int) -> RewardTokenConfig:
        config = self.get(token)
        config.available_rewards += amount
        config.total_funded += amount
        return config

    def take_pool(self, token: str) -> int:
        """Hand the whole available balance to a round and zero it."""
        config = self.get(token)
        pool = config.available_rewards
        config.available_rewards = 0
        return pool

    def record_payout(self, token: str, amount: int) -> None:
        self.get(token).total_distributed += amount

    def available(self, token: str) -> int:
        config = self._configs.get(token)
        return config.available_rewards if config else 0
