"""Lock vault - lock lifecycle, reward funding and distribution rounds.

LockVault is the single coordinating service: it owns every piece of
mutable state (lock records, registry, reward ledger, open rounds, access
policy) inside one VaultState aggregate. Each public state-mutating
operation is one atomic call: it holds the reentrancy guard for its whole
duration, and if it raises, the aggregate is restored to its value at entry,
every asset movement the call made is reverted and the call's notifications
are dropped.

Asset movements are performed last in every operation, after all checks
have passed and the vault's own bookkeeping is updated.

Completed rounds are immutable, so they leave the aggregate when their call
succeeds and live in an append-only archive. The entry copy taken by each
call then covers only state bounded by registry capacity and open rounds.
"""

from __future__ import annotations

import copy
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

from ..config.schema import VaultConfig
from .access import AccessPolicy, Capability, NonReentrantGuard
from .accounting import VaultSnapshot
from .assets import ZERO_ADDRESS, FungibleAsset
from .clock import ManualClock, TimeIndexSource
from .distribution import DistributionRound, apply_batch, plan_batch
from .errors import (
    AlreadyLocked,
    BelowMinimum,
    CannotWithdrawLockToken,
    CannotWithdrawReserved,
    GracePeriodNotElapsed,
    InsufficientAllowance,
    InsufficientBalance,
    InsufficientTokenBalance,
    InvalidAmount,
    InvalidRewardToken,
    LockExpired,
    NoActiveLock,
    NoRewardsAvailable,
    NothingToClaim,
    NothingToWithdraw,
    NoVotingPower,
    RegistryFull,
    RoundAlreadyComplete,
    StillLocked,
    UnknownRound,
    ZeroAddress,
)
from .events import (
    AuthorizedCallerUpdated,
    EmergencyUnlocked,
    EventLog,
    FeeBeneficiaryUpdated,
    LockCreated,
    LockExtended,
    RewardDistributed,
    RewardFunded,
    RewardTokenRegistered,
    RoundCompleted,
    RoundStarted,
    StrayTokenWithdrawn,
    Unlocked,
    VaultEvent,
)
from .registry import ActiveLockRegistry
from .rewards import RewardLedger, RewardTokenConfig
from .voting_power import LockRecord, VotingPolicy, VotingPowerCalculator, WindowPolicy

logger = logging.getLogger(__name__)

DEFAULT_VAULT_ADDRESS = "0x" + "7a" * 20


@dataclass
class VaultState:
    """All persisted vault state."""
    registry: ActiveLockRegistry
    access: AccessPolicy
    fee_beneficiary: str
    batch_size: int
    locks: Dict[str, LockRecord] = field(default_factory=dict)
    rewards: RewardLedger = field(default_factory=RewardLedger)
    rounds: Dict[int, DistributionRound] = field(default_factory=dict)  # Open rounds only
    total_locked_tokens: int = 0
    next_round_id: int = 1


@dataclass(frozen=True)
class AssetMovement:
    """A transfer made during the current call, kept so it can be reverted."""
    asset: FungibleAsset
    sender: str
    to: str
    amount: int
    spender: Optional[str] = None

    def revert(self) -> None:
        self.asset.revert_transfer(self.sender, self.to, self.amount, spender=self.spender)


class LockVault:
    """Time-weighted token-locking vault."""

    def __init__(
        self,
        lock_token: FungibleAsset,
        fee_beneficiary: str,
        owner: str,
        config: Optional[VaultConfig] = None,
        clock: Optional[TimeIndexSource] = None,
        address: str = DEFAULT_VAULT_ADDRESS
    ):
        """
        Initialize vault.

        Args:
            lock_token: Asset users lock
            fee_beneficiary: Receives the deposit fee
            owner: Holds every administrative capability
            config: Vault configuration (defaults to VaultConfig())
            clock: Time-index source (defaults to a ManualClock at 0)
            address: The vault's own account on the assets
        """
        _require_address(fee_beneficiary, "fee beneficiary")
        _require_address(owner, "owner")

        self.config = config or VaultConfig()
        self.clock = clock or ManualClock()
        self.address = address
        self.lock_token = lock_token
        self.calculator = VotingPowerCalculator(
            policy=VotingPolicy(self.config.voting.policy),
            window=WindowPolicy(
                include_start=self.config.voting.include_start,
                include_end=self.config.voting.include_end
            )
        )
        self.events = EventLog()

        self._state = VaultState(
            registry=ActiveLockRegistry(self.config.lock.max_active_users),
            access=AccessPolicy(owner),
            fee_beneficiary=fee_beneficiary,
            batch_size=self.config.distribution.batch_size
        )
        self._reward_assets: Dict[str, FungibleAsset] = {}
        self._completed_rounds: Dict[int, DistributionRound] = {}
        self._guard = NonReentrantGuard()
        self._pending: List[VaultEvent] = []
        self._movements: List[AssetMovement] = []

    # ------------------------------------------------------------------
    # Call discipline
    # ------------------------------------------------------------------

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[VaultState]:
        """Guarded, all-or-nothing scope for one state-mutating call."""
        with self._guard:
            saved = copy.deepcopy(self._state)
            self._pending = []
            self._movements = []
            try:
                yield self._state
            except Exception as exc:
                self._state = saved
                for movement in reversed(self._movements):
                    movement.revert()
                logger.warning(
                    "%s rolled back (%d asset movements reverted): %s",
                    operation, len(self._movements), exc
                )
                self._pending = []
                self._movements = []
                raise
            self._archive_completed_rounds()
            self.events.extend(self._pending)
            self._pending = []
            self._movements = []

    def _emit(self, event: VaultEvent) -> None:
        self._pending.append(event)

    def _send(self, asset: FungibleAsset, to: str, amount: int) -> None:
        """Transfer from the vault's own balance."""
        asset.transfer(self.address, to, amount)
        self._movements.append(AssetMovement(asset, self.address, to, amount))

    def _pull(self, asset: FungibleAsset, owner: str, to: str, amount: int) -> None:
        """Spend `owner`'s allowance to the vault."""
        asset.transfer_from(self.address, owner, to, amount)
        self._movements.append(AssetMovement(asset, owner, to, amount, spender=self.address))

    def _archive_completed_rounds(self) -> None:
        done = [round_id for round_id, r in self._state.rounds.items() if r.is_complete]
        for round_id in done:
            self._completed_rounds[round_id] = self._state.rounds.pop(round_id)

    def _find_round(self, round_id: int) -> DistributionRound:
        round_ = self._state.rounds.get(round_id) or self._completed_rounds.get(round_id)
        if round_ is None:
            raise UnknownRound(f"No distribution round {round_id}", details={'round_id': round_id})
        return round_

    def _now(self) -> int:
        return self.clock.now()

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @property
    def owner(self) -> str:
        return self._state.access.owner

    @property
    def fee_beneficiary(self) -> str:
        return self._state.fee_beneficiary

    @property
    def batch_size(self) -> int:
        return self._state.batch_size

    @property
    def total_locked_tokens(self) -> int:
        """Net principal held for all active locks."""
        return self._state.total_locked_tokens

    @property
    def round_count(self) -> int:
        return len(self._state.rounds) + len(self._completed_rounds)

    def is_authorized(self, principal: str) -> bool:
        return self._state.access.has(principal, Capability.DISTRIBUTE)

    def get_lock(self, user: str) -> Optional[LockRecord]:
        """Copy of `user`'s active lock, or None."""
        record = self._state.locks.get(user)
        if record is None or not record.is_active:
            return None
        return copy.copy(record)

    def active_users(self) -> Tuple[str, ...]:
        return self._state.registry.members()

    def balance_of(self, user: str) -> int:
        return self.balance_of_at(user, self._now())

    def balance_of_at(self, user: str, time_index: int) -> int:
        return self.calculator.adjusted_balance(self._state.locks.get(user), time_index)

    def total_supply(self) -> int:
        return self.total_supply_at(self._now())

    def total_supply_at(self, time_index: int) -> int:
        """Total voting power of registry members at `time_index`."""
        locks = (self._state.locks[member] for member in self._state.registry)
        return self.calculator.total_adjusted_balance(locks, time_index)

    def reward_config(self, token: FungibleAsset) -> RewardTokenConfig:
        return copy.copy(self._state.rewards.get(token.address))

    def available_rewards(self, token: FungibleAsset) -> int:
        return self._state.rewards.available(token.address)

    def get_round(self, round_id: int) -> DistributionRound:
        return copy.deepcopy(self._find_round(round_id))

    def rounds(self) -> List[DistributionRound]:
        """Every round, completed or open, in round-id order."""
        merged = {**self._completed_rounds, **self._state.rounds}
        return [copy.deepcopy(merged[rid]) for rid in sorted(merged)]

    def pending_rounds(self) -> List[int]:
        """Ids of rounds still waiting for continue_round."""
        return sorted(self._state.rounds)

    def pending_round_commitments(self, token_address: str) -> int:
        """What incomplete rounds of `token_address` may still pay out."""
        return sum(r.outstanding for r in self._state.rounds.values() if r.reward_token == token_address)

    def snapshot(self) -> VaultSnapshot:
        """Point-in-time accounting view for validation and reporting."""
        state = self._state
        now = self._now()
        active = [r for r in state.locks.values() if r.is_active]
        tokens = state.rewards.tokens()
        return VaultSnapshot(
            t=now,
            total_locked_tokens=state.total_locked_tokens,
            principal_sum=sum(r.principal for r in active),
            active_users=len(active),
            registry_size=len(state.registry),
            total_voting_power=self.total_supply_at(now),
            lock_asset_balance=self.lock_token.balance_of(self.address),
            available_rewards={t: state.rewards.available(t) for t in tokens},
            reward_balances={t: self._reward_assets[t].balance_of(self.address) for t in tokens},
            pending_round_commitments={t: self.pending_round_commitments(t) for t in tokens}
        )

    # ------------------------------------------------------------------
    # Lock lifecycle
    # ------------------------------------------------------------------

    def lock_tokens(self, caller: str, amount: int) -> LockRecord:
        """
        Lock `amount` of the lock asset for one lock period.

        Args:
            caller: Depositor (must have approved the vault for `amount`)
            amount: Gross deposit; the fee is taken from it

        Returns:
            The new lock record

        Raises:
            BelowMinimum, AlreadyLocked, RegistryFull,
            InsufficientBalance, InsufficientAllowance
        """
        with self._transaction("lock_tokens") as state:
            params = self.config.lock
            if amount < params.min_lock_amount:
                raise BelowMinimum(
                    f"Lock amount {amount} below minimum {params.min_lock_amount}",
                    details={'amount': amount, 'minimum': params.min_lock_amount}
                )
            if self._has_active_lock(caller):
                raise AlreadyLocked(f"{caller} already has an active lock")
            if state.registry.is_full():
                raise RegistryFull(
                    f"Registry full ({state.registry.capacity} active locks)",
                    details={'capacity': state.registry.capacity}
                )
            self._require_funds(caller, amount)

            fee, net = self._split_fee(amount)
            now = self._now()
            record = LockRecord(
                principal=net,
                virtual_principal=net,
                start_index=now,
                end_index=now + params.lock_period
            )
            state.locks[caller] = record
            state.registry.insert(caller)
            state.total_locked_tokens += net

            self._collect_deposit(caller, fee, net)
            self._emit(LockCreated(time_index=now, user=caller, amount=net, fee=fee, end_index=record.end_index))
            logger.info("Lock created: %s locked %d (fee %d) until %d", caller, net, fee, record.end_index)
            return copy.copy(record)

    def extend_lock(self, caller: str, additional_amount: int = 0) -> LockRecord:
        """
        Top up or re-lock an active lock before it expires.

        A top-up (additional_amount > 0) adds net principal, resets
        virtual_principal to principal and restarts the window at now.
        A pure re-lock (0) extends the end to now + lock_period; under the
        growth policy it also re-bases virtual_principal by the accrued
        growth and restarts the window, under the decay policy start_index
        stays where it was.

        Raises:
            InvalidAmount, NoActiveLock, LockExpired,
            InsufficientBalance, InsufficientAllowance
        """
        with self._transaction("extend_lock") as state:
            if additional_amount < 0:
                raise InvalidAmount(f"Additional amount cannot be negative: {additional_amount}")
            record = state.locks.get(caller)
            if record is None or not record.is_active:
                raise NoActiveLock(f"{caller} has no active lock")
            now = self._now()
            if now >= record.end_index:
                raise LockExpired(
                    f"Lock of {caller} expired at {record.end_index}",
                    details={'end_index': record.end_index, 'now': now}
                )

            period = self.config.lock.lock_period
            fee = net = 0
            if additional_amount > 0:
                self._require_funds(caller, additional_amount)
                fee, net = self._split_fee(additional_amount)
                record.principal += net
                record.virtual_principal = record.principal
                record.start_index = now
                state.total_locked_tokens += net
            elif self.calculator.policy is VotingPolicy.GROWTH:
                accrued = self.calculator.accrued_growth(record, now)
                record.virtual_principal = record.principal + accrued
                record.start_index = now
            record.end_index = now + period

            if net:
                self._collect_deposit(caller, fee, net)
            self._emit(LockExtended(
                time_index=now,
                user=caller,
                added=net,
                fee=fee,
                principal=record.principal,
                virtual_principal=record.virtual_principal,
                start_index=record.start_index,
                end_index=record.end_index
            ))
            logger.info(
                "Lock extended: %s added %d, principal %d, virtual %d, window [%d, %d)",
                caller, net, record.principal, record.virtual_principal,
                record.start_index, record.end_index
            )
            return copy.copy(record)

    def claim_tokens(self, caller: str) -> int:
        """
        Release the caller's principal once the lock has reached its end.

        Returns:
            Principal transferred back to the caller

        Raises:
            NothingToClaim, StillLocked
        """
        with self._transaction("claim_tokens") as state:
            record = state.locks.get(caller)
            if record is None or not record.is_active:
                raise NothingToClaim(f"{caller} has nothing to claim")
            now = self._now()
            if now < record.end_index:
                raise StillLocked(
                    f"Lock of {caller} runs until {record.end_index}",
                    details={'end_index': record.end_index, 'now': now}
                )
            amount = self._release(state, caller)
            self._emit(Unlocked(time_index=now, user=caller, amount=amount))
            logger.info("Unlocked: %s claimed %d", caller, amount)
            return amount

    def emergency_unlock(self, caller: str, user: str) -> int:
        """
        Administrative release of a lock left unclaimed past the grace period.

        Returns:
            Principal transferred back to `user`

        Raises:
            Unauthorized, NothingToClaim, GracePeriodNotElapsed
        """
        with self._transaction("emergency_unlock") as state:
            state.access.require(caller, Capability.ADMIN)
            record = state.locks.get(user)
            if record is None or not record.is_active:
                raise NothingToClaim(f"{user} has nothing to unlock")
            now = self._now()
            deadline = record.end_index + self.config.lock.emergency_grace_period
            if now <= deadline:
                raise GracePeriodNotElapsed(
                    f"Emergency unlock of {user} allowed after {deadline}",
                    details={'deadline': deadline, 'now': now}
                )
            amount = self._release(state, user)
            self._emit(EmergencyUnlocked(time_index=now, user=user, amount=amount, by=caller))
            logger.warning("Emergency unlock: %s released %d for %s", caller, amount, user)
            return amount

    # ------------------------------------------------------------------
    # Reward funding ledger
    # ------------------------------------------------------------------

    def register_reward_token(self, caller: str, token: FungibleAsset, min_reward_threshold: int = 0) -> None:
        """Register `token` for funding, or update its payout threshold."""
        with self._transaction("register_reward_token") as state:
            state.access.require(caller, Capability.ADMIN)
            _require_address(token.address, "reward token")
            if token.address == self.lock_token.address:
                raise InvalidRewardToken("The lock asset cannot be a reward token")
            if min_reward_threshold < 0:
                raise InvalidAmount(f"Threshold cannot be negative: {min_reward_threshold}")
            state.rewards.register(token.address, min_reward_threshold)
            self._reward_assets[token.address] = token
            self._emit(RewardTokenRegistered(
                time_index=self._now(), token=token.address, min_reward_threshold=min_reward_threshold
            ))
            logger.info("Reward token %s registered (threshold %d)", token.address, min_reward_threshold)

    def fund_rewards(self, caller: str, token: FungibleAsset, amount: int) -> int:
        """
        Pull `amount` of a registered reward token into the vault.

        Returns:
            The token's available rewards after funding

        Raises:
            Unauthorized, InvalidAmount, UnknownRewardToken,
            InsufficientBalance, InsufficientAllowance
        """
        with self._transaction("fund_rewards") as state:
            state.access.require(caller, Capability.ADMIN)
            if amount <= 0:
                raise InvalidAmount(f"Funding amount must be positive, got {amount}")
            state.rewards.get(token.address)
            self._require_funds(caller, amount, asset=token)

            config = state.rewards.credit(token.address, amount)
            self._pull(token, caller, self.address, amount)
            self._emit(RewardFunded(time_index=self._now(), token=token.address, funder=caller, amount=amount))
            logger.info("Rewards funded: %d of %s by %s", amount, token.address, caller)
            return config.available_rewards

    def withdraw_stray(self, caller: str, token: FungibleAsset, to: Optional[str] = None) -> int:
        """
        Sweep tokens sent to the vault by accident.

        Only the balance above the reserved amount (available rewards plus
        what incomplete rounds still owe) can leave.

        Returns:
            Amount withdrawn

        Raises:
            Unauthorized, CannotWithdrawLockToken, CannotWithdrawReserved,
            NothingToWithdraw, ZeroAddress
        """
        with self._transaction("withdraw_stray") as state:
            state.access.require(caller, Capability.ADMIN)
            if token.address == self.lock_token.address:
                raise CannotWithdrawLockToken("Lock asset backs principal and cannot be swept")
            recipient = to or caller
            _require_address(recipient, "recipient")

            balance = token.balance_of(self.address)
            reserved = state.rewards.available(token.address) + self.pending_round_commitments(token.address)
            if reserved > 0 and balance <= reserved:
                raise CannotWithdrawReserved(
                    f"Balance {balance} of {token.address} does not exceed reserved {reserved}",
                    details={'balance': balance, 'reserved': reserved}
                )
            excess = balance - reserved
            if excess <= 0:
                raise NothingToWithdraw(f"No stray balance of {token.address}")

            self._send(token, recipient, excess)
            self._emit(StrayTokenWithdrawn(time_index=self._now(), token=token.address, to=recipient, amount=excess))
            logger.info("Stray withdrawal: %d of %s to %s", excess, token.address, recipient)
            return excess

    # ------------------------------------------------------------------
    # Reward distribution
    # ------------------------------------------------------------------

    def start_round(self, caller: str, token: FungibleAsset) -> DistributionRound:
        """
        Open a distribution round for `token` and process its first batch.

        The round's pool is the token's whole available balance. Voting power
        of every registry member is frozen at the current time index.

        Returns:
            Copy of the round record after the first batch

        Raises:
            Unauthorized, UnknownRewardToken, NoRewardsAvailable,
            NoVotingPower, InsufficientTokenBalance
        """
        with self._transaction("start_round") as state:
            state.access.require(caller, Capability.DISTRIBUTE)
            config = state.rewards.get(token.address)
            if config.available_rewards == 0:
                raise NoRewardsAvailable(f"No rewards available for {token.address}")

            now = self._now()
            members = state.registry.members()
            snapshot_power = {
                member: self.calculator.adjusted_balance(state.locks[member], now)
                for member in members
            }
            total_power = sum(snapshot_power.values())
            if total_power == 0:
                raise NoVotingPower(f"Total voting power is zero at {now}")

            held = token.balance_of(self.address)
            committed = self.pending_round_commitments(token.address)
            if held - committed < config.available_rewards:
                raise InsufficientTokenBalance(
                    f"Vault holds {held} of {token.address} ({committed} committed to open rounds), "
                    f"ledger expects {config.available_rewards}",
                    details={'held': held, 'committed': committed, 'available': config.available_rewards}
                )

            pool = state.rewards.take_pool(token.address)
            round_ = DistributionRound(
                round_id=state.next_round_id,
                reward_token=token.address,
                total_rewards_at_start=pool,
                snapshot_time_index=now,
                registry_size_at_start=len(members),
                total_voting_power_at_start=total_power,
                min_reward_threshold=config.min_reward_threshold,
                members=members,
                snapshot_power=snapshot_power
            )
            state.rounds[round_.round_id] = round_
            state.next_round_id += 1
            self._emit(RoundStarted(
                time_index=now,
                round_id=round_.round_id,
                token=token.address,
                total_rewards=pool,
                total_voting_power=total_power,
                members=len(members)
            ))
            logger.info(
                "Round %d started: %d of %s over %d members (power %d)",
                round_.round_id, pool, token.address, len(members), total_power
            )
            self._run_batch(state, round_, token)
            return copy.deepcopy(round_)

    def continue_round(self, caller: str, round_id: int) -> DistributionRound:
        """
        Process the next batch of an incomplete round.

        Returns:
            Copy of the round record after the batch

        Raises:
            Unauthorized, UnknownRound, RoundAlreadyComplete
        """
        with self._transaction("continue_round") as state:
            state.access.require(caller, Capability.ADMIN)
            round_ = self._find_round(round_id)
            if round_.is_complete:
                raise RoundAlreadyComplete(
                    f"Round {round_id} already processed all {round_.registry_size_at_start} members"
                )
            self._run_batch(state, round_, self._reward_assets[round_.reward_token])
            return copy.deepcopy(round_)

    def _run_batch(self, state: VaultState, round_: DistributionRound, token: FungibleAsset) -> None:
        plan = plan_batch(round_, state.batch_size)
        apply_batch(round_, plan)
        state.rewards.record_payout(round_.reward_token, plan.total)

        now = self._now()
        for user, amount in plan.payouts:
            self._emit(RewardDistributed(
                time_index=now, round_id=round_.round_id, token=round_.reward_token, user=user, amount=amount
            ))
        forfeited = sum(share for _, share in plan.forfeited)
        if forfeited:
            logger.warning(
                "Round %d: %d below-threshold shares forfeited (%d units)",
                round_.round_id, len(plan.forfeited), forfeited
            )
        logger.debug(
            "Round %d batch [%d, %d): paid %d to %d members",
            round_.round_id, plan.start, plan.end, plan.total, len(plan.payouts)
        )
        if round_.is_complete:
            self._emit(RoundCompleted(
                time_index=now,
                round_id=round_.round_id,
                token=round_.reward_token,
                distributed=round_.distributed,
                residual=round_.residual
            ))
            logger.info(
                "Round %d complete: distributed %d, residual %d",
                round_.round_id, round_.distributed, round_.residual
            )

        for user, amount in plan.payouts:
            self._send(token, user, amount)

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def set_fee_beneficiary(self, caller: str, beneficiary: str) -> None:
        with self._transaction("set_fee_beneficiary") as state:
            state.access.require(caller, Capability.ADMIN)
            _require_address(beneficiary, "fee beneficiary")
            previous = state.fee_beneficiary
            state.fee_beneficiary = beneficiary
            self._emit(FeeBeneficiaryUpdated(time_index=self._now(), previous=previous, beneficiary=beneficiary))
            logger.info("Fee beneficiary changed from %s to %s", previous, beneficiary)

    def set_authorized_caller(self, caller: str, account: str, authorized: bool) -> None:
        """Grant or revoke the right to start distribution rounds."""
        with self._transaction("set_authorized_caller") as state:
            state.access.require(caller, Capability.ADMIN)
            _require_address(account, "authorized caller")
            if authorized:
                state.access.grant(account, Capability.DISTRIBUTE)
            else:
                state.access.revoke(account, Capability.DISTRIBUTE)
            self._emit(AuthorizedCallerUpdated(time_index=self._now(), caller=account, authorized=authorized))

    def set_batch_size(self, caller: str, batch_size: int) -> None:
        """Change how many members each distribution call processes."""
        with self._transaction("set_batch_size") as state:
            state.access.require(caller, Capability.ADMIN)
            if batch_size <= 0:
                raise InvalidAmount(f"Batch size must be positive, got {batch_size}")
            state.batch_size = batch_size
            logger.info("Distribution batch size set to %d", batch_size)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _has_active_lock(self, user: str) -> bool:
        record = self._state.locks.get(user)
        return record is not None and record.is_active

    def _split_fee(self, amount: int) -> Tuple[int, int]:
        fee = amount * self.config.lock.deposit_fee_percent // 100
        return fee, amount - fee

    def _require_funds(self, owner: str, amount: int, asset: Optional[FungibleAsset] = None) -> None:
        """Check balance and allowance before any movement is attempted."""
        asset = asset or self.lock_token
        balance = asset.balance_of(owner)
        if balance < amount:
            raise InsufficientBalance(
                f"{owner} holds {balance}, needs {amount}",
                details={'account': owner, 'balance': balance, 'amount': amount}
            )
        allowance = asset.allowance(owner, self.address)
        if allowance < amount:
            raise InsufficientAllowance(
                f"{owner} approved {allowance} for the vault, needs {amount}",
                details={'account': owner, 'allowance': allowance, 'amount': amount}
            )

    def _collect_deposit(self, depositor: str, fee: int, net: int) -> None:
        if fee > 0:
            self._pull(self.lock_token, depositor, self._state.fee_beneficiary, fee)
        self._pull(self.lock_token, depositor, self.address, net)

    def _release(self, state: VaultState, user: str) -> int:
        record = state.locks.pop(user)
        amount = record.principal
        state.registry.remove(user)
        state.total_locked_tokens -= amount
        self._send(self.lock_token, user, amount)
        return amount


def _require_address(address: Optional[str], role: str) -> None:
    if not address or address == ZERO_ADDRESS:
        raise ZeroAddress(f"Zero address not allowed for {role}")
