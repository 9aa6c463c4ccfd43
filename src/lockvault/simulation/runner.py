"""Simulation runner - drive a vault with a seeded population of lockers.

Key Features:
- Poisson arrivals with lognormal lock sizes
- Claims after expiry, occasional re-locks and top-ups
- Emergency unlocks once the grace period has run out
- Periodic reward funding; rounds resumed one batch per time index
- Conservation checked against a snapshot at every step
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List

import numpy as np

from ..config.schema import VaultConfig
from ..engine.accounting import VaultSnapshot
from ..engine.assets import InMemoryAsset
from ..engine.clock import ManualClock
from ..engine.distribution import DistributionRound
from ..engine.errors import CapacityExceeded, VaultError
from ..engine.events import RewardDistributed, VaultEvent
from ..engine.vault import LockVault

logger = logging.getLogger(__name__)

OWNER = "0x" + "0a" * 20
FEE_BENEFICIARY = "0x" + "0f" * 20
KEEPER = "0x" + "0c" * 20
FUNDER = OWNER


def user_address(n: int) -> str:
    return f"0x{n:040x}"


@dataclass
class SimulationResult:
    """Complete simulation result."""
    config: VaultConfig
    snapshots: List[VaultSnapshot]
    metrics_over_time: List[Dict[str, Any]]
    final_metrics: Dict[str, Any]
    events: List[VaultEvent] = field(default_factory=list)
    rounds: List[DistributionRound] = field(default_factory=list)
    conservation_errors: List[str] = field(default_factory=list)


class SimulationRunner:
    """Run a vault through a seeded sequence of user and admin actions."""

    def __init__(self, config: VaultConfig):
        """
        Initialize simulation runner.

        Args:
            config: Vault and simulation configuration
        """
        self.config = config
        self.clock = ManualClock()
        self.lock_token = InMemoryAsset("0x" + "11" * 20, symbol="LOCK")
        self.reward_token = InMemoryAsset("0x" + "22" * 20, symbol="RWD")
        self.vault = LockVault(
            lock_token=self.lock_token,
            fee_beneficiary=FEE_BENEFICIARY,
            owner=OWNER,
            config=config,
            clock=self.clock
        )
        self.vault.register_reward_token(OWNER, self.reward_token, config.simulation.min_reward_threshold)
        self.vault.set_authorized_caller(OWNER, KEEPER, True)
        self._next_user = 1
        self._counters: Dict[str, int] = {}

    def run(self, random_seed: int = None) -> SimulationResult:
        """
        Run the simulation.

        Args:
            random_seed: Random seed for reproducibility

        Returns:
            Simulation result
        """
        if random_seed is not None:
            np.random.seed(random_seed)
        else:
            np.random.seed(self.config.simulation.random_seed)

        sim = self.config.simulation
        snapshots: List[VaultSnapshot] = []
        metrics_over_time: List[Dict[str, Any]] = []
        conservation_errors: List[str] = []

        for step in range(sim.steps):
            self._counters = {
                'locks_created': 0,
                'locks_rejected': 0,
                'extensions': 0,
                'claims': 0,
                'emergency_unlocks': 0,
                'failed_actions': 0,
            }
            events_before = len(self.vault.events)

            self._arrivals()
            self._user_actions()
            self._emergency_unlocks()
            if step % sim.funding_interval == 0 and step > 0:
                self._fund()
            self._distribute()

            snapshot = self.vault.snapshot()
            snapshots.append(snapshot)
            for check in (snapshot.validate_conservation, snapshot.validate_non_negative):
                is_valid, error_msg = check()
                if not is_valid:
                    conservation_errors.append(error_msg)
                    logger.error(error_msg)

            step_events = self.vault.events.events[events_before:]
            metrics_over_time.append(self._compute_metrics(snapshot, step_events))
            self.clock.advance(1)

        final_metrics = self._compute_final_metrics(snapshots)
        return SimulationResult(
            config=self.config,
            snapshots=snapshots,
            metrics_over_time=metrics_over_time,
            final_metrics=final_metrics,
            events=list(self.vault.events),
            rounds=self.vault.rounds(),
            conservation_errors=conservation_errors
        )

    def _new_user(self) -> str:
        user = user_address(self._next_user)
        self._next_user += 1
        self.lock_token.mint(user, self.config.simulation.initial_balance)
        self.lock_token.approve(user, self.vault.address, self.config.simulation.initial_balance)
        return user

    def _draw_lock_size(self) -> int:
        sim = self.config.simulation
        raw = np.random.lognormal(math.log(sim.lock_size_median), sim.lock_size_sigma)
        return int(np.clip(raw, self.config.lock.min_lock_amount, sim.initial_balance))

    def _arrivals(self) -> None:
        for _ in range(np.random.poisson(self.config.simulation.arrival_rate)):
            user = self._new_user()
            try:
                self.vault.lock_tokens(user, self._draw_lock_size())
                self._counters['locks_created'] += 1
            except CapacityExceeded:
                self._counters['locks_rejected'] += 1

    def _user_actions(self) -> None:
        sim = self.config.simulation
        now = self.clock.now()
        for user in self.vault.active_users():
            record = self.vault.get_lock(user)
            if record is None:
                continue
            try:
                if now >= record.end_index:
                    if np.random.random() < sim.claim_probability:
                        self.vault.claim_tokens(user)
                        self._counters['claims'] += 1
                elif np.random.random() < sim.relock_probability:
                    topup = 0
                    if np.random.random() < sim.topup_fraction:
                        topup = int(self.lock_token.balance_of(user) * np.random.uniform(0.05, 0.25))
                    self.vault.extend_lock(user, topup)
                    self._counters['extensions'] += 1
            except VaultError as exc:
                self._counters['failed_actions'] += 1
                logger.debug("Simulated action for %s failed: %s", user, exc)

    def _emergency_unlocks(self) -> None:
        grace = self.config.lock.emergency_grace_period
        now = self.clock.now()
        for user in self.vault.active_users():
            record = self.vault.get_lock(user)
            if record is not None and now > record.end_index + grace:
                self.vault.emergency_unlock(OWNER, user)
                self._counters['emergency_unlocks'] += 1

    def _fund(self) -> None:
        amount = self.config.simulation.funding_amount
        self.reward_token.mint(FUNDER, amount)
        self.reward_token.approve(FUNDER, self.vault.address, amount)
        self.vault.fund_rewards(FUNDER, self.reward_token, amount)

    def _distribute(self) -> None:
        """Resume one batch of each open round, else start a new round if funded."""
        pending = self.vault.pending_rounds()
        if pending:
            for round_id in pending:
                self.vault.continue_round(OWNER, round_id)
            return
        if self.vault.available_rewards(self.reward_token) > 0 and self.vault.total_supply() > 0:
            self.vault.start_round(KEEPER, self.reward_token)

    def _compute_metrics(self, snapshot: VaultSnapshot, step_events: List[VaultEvent]) -> Dict[str, Any]:
        distributed = sum(e.amount for e in step_events if isinstance(e, RewardDistributed))
        return {
            't': snapshot.t,
            'active_users': snapshot.active_users,
            'total_locked': snapshot.total_locked_tokens,
            'total_voting_power': snapshot.total_voting_power,
            'available_rewards': snapshot.available_rewards.get(self.reward_token.address, 0),
            'distributed': distributed,
            'pending_rounds': len(self.vault.pending_rounds()),
            **self._counters,
        }

    def _compute_final_metrics(self, snapshots: List[VaultSnapshot]) -> Dict[str, Any]:
        payouts = np.array(
            [e.amount for e in self.vault.events.of_type(RewardDistributed)],
            dtype=np.int64
        )
        rounds = self.vault.rounds()
        completed = [r for r in rounds if r.is_complete]
        locked_series = np.array([s.total_locked_tokens for s in snapshots], dtype=np.int64)

        return {
            'final_locked': int(locked_series[-1]) if len(locked_series) else 0,
            'peak_locked': int(locked_series.max()) if len(locked_series) else 0,
            'final_active_users': snapshots[-1].active_users if snapshots else 0,
            'users_created': self._next_user - 1,
            'fees_collected': self.lock_token.balance_of(FEE_BENEFICIARY),
            'rounds_started': len(rounds),
            'rounds_completed': len(completed),
            'total_distributed': int(payouts.sum()) if len(payouts) else 0,
            'payout_count': int(len(payouts)),
            'median_payout': float(np.median(payouts)) if len(payouts) else 0.0,
            'residual_rewards': sum(r.residual for r in completed),
            'vault_reward_balance': self.reward_token.balance_of(self.vault.address),
        }
