"""Sanity checks and validation for vault configuration and state."""

from dataclasses import dataclass
from typing import List, Optional

from ..config.schema import VaultConfig
from ..engine.accounting import VaultSnapshot
from ..engine.vault import LockVault


@dataclass
class ValidationWarning:
    """A validation warning with severity and message."""
    severity: str  # "warning" or "error"
    category: str  # e.g., "input", "conservation", "bounds", "rounds"
    message: str
    details: Optional[str] = None


class SanityChecker:
    """Run sanity checks on configuration and vault state."""

    def __init__(self, config: VaultConfig):
        """Initialize with configuration."""
        self.config = config

    def check_config_inputs(self) -> List[ValidationWarning]:
        """
        Check configuration inputs for implausible values.

        Returns:
            List of validation warnings
        """
        warnings = []
        lock = self.config.lock

        if lock.deposit_fee_percent > 10:
            warnings.append(ValidationWarning(
                severity="warning",
                category="bounds",
                message=f"Deposit fee of {lock.deposit_fee_percent}% is unusually high",
                details="Lockers lose the fee up front regardless of rewards"
            ))

        if self.config.distribution.batch_size > lock.max_active_users:
            warnings.append(ValidationWarning(
                severity="warning",
                category="input",
                message="Batch size exceeds registry capacity",
                details=(
                    f"batch_size={self.config.distribution.batch_size}, "
                    f"max_active_users={lock.max_active_users}; every round completes in one call"
                )
            ))

        if lock.emergency_grace_period == 0:
            warnings.append(ValidationWarning(
                severity="warning",
                category="input",
                message="Emergency grace period is zero",
                details="Admins can force-unlock one time index after expiry"
            ))

        if (
            self.config.voting.policy == "growth"
            and self.config.voting.include_start
            and not self.config.voting.include_end
        ):
            warnings.append(ValidationWarning(
                severity="warning",
                category="input",
                message="Growth policy never reaches full virtual principal",
                details="With include_end=false voting power drops to zero at end_index"
            ))

        if self.config.simulation.min_reward_threshold > self.config.simulation.funding_amount:
            warnings.append(ValidationWarning(
                severity="error",
                category="input",
                message="Simulation reward threshold exceeds funding amount",
                details="No simulated member can ever be paid"
            ))

        return warnings

    def check_snapshot(self, snapshot: VaultSnapshot) -> List[ValidationWarning]:
        """
        Check a vault snapshot for accounting issues.

        Args:
            snapshot: Point-in-time vault accounting

        Returns:
            List of validation warnings
        """
        warnings = []

        for check in (
            snapshot.validate_conservation,
            snapshot.validate_non_negative,
            snapshot.validate_reward_backing,
        ):
            is_valid, error_msg = check()
            if not is_valid:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="conservation",
                    message="Accounting invariant violated",
                    details=error_msg
                ))

        if snapshot.registry_size > self.config.lock.max_active_users:
            warnings.append(ValidationWarning(
                severity="error",
                category="bounds",
                message=f"Registry exceeds capacity at t={snapshot.t}",
                details=f"{snapshot.registry_size} > {self.config.lock.max_active_users}"
            ))

        if snapshot.registry_size > 0 and snapshot.registry_size >= 0.9 * self.config.lock.max_active_users:
            warnings.append(ValidationWarning(
                severity="warning",
                category="capacity",
                message=f"Registry {snapshot.registry_size / self.config.lock.max_active_users:.0%} full",
                details="New deposits will fail once capacity is reached"
            ))

        return warnings

    def check_vault(self, vault: LockVault) -> List[ValidationWarning]:
        """
        Check per-lock bounds, registry membership and round checkpoints.

        Args:
            vault: Vault to inspect

        Returns:
            List of validation warnings
        """
        warnings = self.check_snapshot(vault.snapshot())
        now = vault.clock.now()
        members = set(vault.active_users())

        for user in members:
            record = vault.get_lock(user)
            if record is None:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="registry",
                    message=f"Registered address {user} has no active lock"
                ))
                continue
            if record.end_index <= record.start_index:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="bounds",
                    message=f"Lock of {user} has an empty window",
                    details=f"[{record.start_index}, {record.end_index})"
                ))
            power = vault.balance_of_at(user, now)
            bound = vault.calculator.upper_bound(record)
            if not 0 <= power <= bound:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="bounds",
                    message=f"Voting power of {user} out of bounds",
                    details=f"power={power}, bound={bound}"
                ))

        for round_ in vault.rounds():
            if round_.last_processed_index > round_.registry_size_at_start:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="rounds",
                    message=f"Round {round_.round_id} checkpoint past its member count",
                    details=f"{round_.last_processed_index} > {round_.registry_size_at_start}"
                ))
            if round_.distributed > round_.total_rewards_at_start:
                warnings.append(ValidationWarning(
                    severity="error",
                    category="rounds",
                    message=f"Round {round_.round_id} paid more than its pool",
                    details=f"{round_.distributed} > {round_.total_rewards_at_start}"
                ))

        stalled = vault.pending_rounds()
        if stalled:
            warnings.append(ValidationWarning(
                severity="warning",
                category="rounds",
                message=f"{len(stalled)} distribution round(s) awaiting continuation",
                details=f"Round ids: {stalled}"
            ))

        return warnings


def validate_vault(vault: LockVault) -> List[ValidationWarning]:
    """
    Validate a vault's configuration and current state.

    Args:
        vault: Vault to validate

    Returns:
        List of all validation warnings
    """
    checker = SanityChecker(vault.config)
    warnings = []
    warnings.extend(checker.check_config_inputs())
    warnings.extend(checker.check_vault(vault))
    return warnings


def validate_snapshots(config: VaultConfig, snapshots: List[VaultSnapshot]) -> List[ValidationWarning]:
    """
    Validate a series of snapshots (e.g. from a simulation).

    Args:
        config: Vault configuration
        snapshots: Snapshots over time

    Returns:
        List of all validation warnings
    """
    checker = SanityChecker(config)
    warnings = []

    warnings.extend(checker.check_config_inputs())

    # Sample to avoid too many warnings
    sample_indices = list(range(0, len(snapshots), max(1, len(snapshots) // 10)))
    if snapshots:
        sample_indices.append(len(snapshots) - 1)

    for i in sorted(set(sample_indices)):
        warnings.extend(checker.check_snapshot(snapshots[i]))

    return warnings
