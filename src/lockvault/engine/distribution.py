"""Reward distribution engine - snapshot-based proportional payout in batches.

A round freezes what it pays against when it starts: the registry ordering,
each member's voting power at the snapshot index, their sum, and the reward
token's payout threshold. Every batch, whether run by start_round or a later
continue_round, reads only that frozen data and a persisted checkpoint.
Locks created, extended or claimed between batches, and threshold changes
made mid-round, therefore cannot shift anyone's payout, and no member
present at round start is skipped or paid twice.

share = snapshot_power * pool // total_power  (truncating)
"""

from dataclasses import dataclass, field
from typing import Dict, List, Tuple


@dataclass
class DistributionRound:
    """Audit record of one distribution; never deleted."""
    round_id: int
    reward_token: str
    total_rewards_at_start: int
    snapshot_time_index: int
    registry_size_at_start: int
    total_voting_power_at_start: int
    min_reward_threshold: int = 0  # Token threshold at round start; shares below it are forfeited
    members: Tuple[str, ...] = ()  # Registry ordering at round start
    snapshot_power: Dict[str, int] = field(default_factory=dict)
    last_processed_index: int = 0
    distributed: int = 0
    recipients: int = 0
    skipped: int = 0

    @property
    def is_complete(self) -> bool:
        return self.last_processed_index >= self.registry_size_at_start

    @property
    def remaining_members(self) -> int:
        return self.registry_size_at_start - self.last_processed_index

    @property
    def outstanding(self) -> int:
        """Upper bound of what the round may still pay out."""
        if self.is_complete:
            return 0
        return self.total_rewards_at_start - self.distributed

    @property
    def residual(self) -> int:
        """Dust and forfeited shares left in the vault (final once complete)."""
        return self.total_rewards_at_start - self.distributed


@dataclass
class BatchPlan:
    """Payouts for one slice of a round, computed before any transfer."""
    start: int
    end: int
    payouts: List[Tuple[str, int]] = field(default_factory=list)
    forfeited: List[Tuple[str, int]] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(amount for _, amount in self.payouts)


def compute_share(power: int, pool: int, total_power: int) -> int:
    """Truncating proportional share of `pool`."""
    if total_power <= 0 or power <= 0:
        return 0
    return power * pool // total_power


def batch_limit(round_: DistributionRound, batch_size: int) -> int:
    """Number of members the next batch will process."""
    if batch_size <= 0:
        raise ValueError(f"batch_size must be positive, got {batch_size}")
    return min(batch_size, round_.remaining_members)


def plan_batch(round_: DistributionRound, batch_size: int) -> BatchPlan:
    """
    Work out the next batch of a round without mutating it.

    Args:
        round_: Round to advance
        batch_size: Maximum members to process

    Returns:
        BatchPlan covering [last_processed_index, last_processed_index + limit)
    """
    start = round_.last_processed_index
    end = start + batch_limit(round_, batch_size)
    plan = BatchPlan(start=start, end=end)

    for member in round_.members[start:end]:
        share = compute_share(
            round_.snapshot_power.get(member, 0),
            round_.total_rewards_at_start,
            round_.total_voting_power_at_start
        )
        if share > 0 and share >= round_.min_reward_threshold:
            plan.payouts.append((member, share))
        else:
            plan.forfeited.append((member, share))

    return plan


def apply_batch(round_: DistributionRound, plan: BatchPlan) -> None:
    """Advance the round's checkpoint and totals to the end of `plan`."""
    if plan.start != round_.last_processed_index:
        raise ValueError(
            f"Stale batch plan: starts at {plan.start}, "
            f"round {round_.round_id} checkpoint is {round_.last_processed_index}"
        )
    round_.last_processed_index = plan.end
    round_.distributed += plan.total
    round_.recipients += len(plan.payouts)
    round_.skipped += len(plan.forfeited)
