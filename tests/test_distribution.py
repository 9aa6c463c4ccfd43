"""Tests for checkpointed reward distribution.

These tests verify:
- Proportional, truncating payouts with threshold forfeiture
- Round preconditions and access rules
- Batches resume from the persisted checkpoint
- Payout ratios are frozen at round start despite registry changes
"""

import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from lockvault.engine.assets import InMemoryAsset
from lockvault.engine.distribution import (
    DistributionRound,
    apply_batch,
    compute_share,
    plan_batch,
)
from lockvault.engine.errors import (
    InsufficientTokenBalance,
    NoRewardsAvailable,
    NoVotingPower,
    ReentrantCall,
    RoundAlreadyComplete,
    Unauthorized,
    UnknownRewardToken,
    UnknownRound,
)
from lockvault.engine.events import RewardDistributed, RoundCompleted, RoundStarted

from vault_helpers import KEEPER, OWNER, deposit, fund, make_vault


def three_lockers(batch_size=100, threshold=1):
    """bob and carol lock at 0, dave at 1; round opens at 40 with 1,000 funded.

    Snapshot powers (decay): bob 198, carol 396, dave 653 -> total 1,247.
    Shares of 1,000: 158, 317, 523 (residual 2).
    """
    vault, clock, lock_token, reward = make_vault(batch_size=batch_size)
    vault.register_reward_token(OWNER, reward, threshold)
    deposit(vault, "bob", 1000)
    deposit(vault, "carol", 2000)
    clock.set(1)
    deposit(vault, "dave", 3000)
    clock.set(40)
    fund(vault, reward, 1000)
    return vault, clock, lock_token, reward


def paid(reward, users=("bob", "carol", "dave")):
    return {u: reward.balance_of(u) for u in users}


class TestShareArithmetic:

    def test_compute_share_truncates(self):
        assert compute_share(198, 1000, 1247) == 158
        assert compute_share(0, 1000, 1247) == 0
        assert compute_share(5, 1000, 0) == 0

    def test_plan_then_apply(self):
        round_ = DistributionRound(
            round_id=1,
            reward_token="r",
            total_rewards_at_start=100,
            snapshot_time_index=0,
            registry_size_at_start=3,
            total_voting_power_at_start=10,
            min_reward_threshold=45,
            members=("a", "b", "c"),
            snapshot_power={"a": 5, "b": 4, "c": 1},
        )
        plan = plan_batch(round_, batch_size=2)
        assert plan.payouts == [("a", 50)]
        assert plan.forfeited == [("b", 40)]
        assert round_.last_processed_index == 0

        apply_batch(round_, plan)
        assert round_.last_processed_index == 2
        assert round_.distributed == 50
        with pytest.raises(ValueError):
            apply_batch(round_, plan)


class TestStartRound:

    def test_equal_split_scenario(self):
        vault, _, _, reward = make_vault()
        deposit(vault, "alice", 505)
        deposit(vault, "bob", 505)
        assert vault.balance_of("alice") == vault.balance_of("bob") == 500
        fund(vault, reward, 1000)

        round_ = vault.start_round(OWNER, reward)

        assert reward.balance_of("alice") == 500
        assert reward.balance_of("bob") == 500
        assert vault.available_rewards(reward) == 0
        assert round_.is_complete
        assert round_.distributed == 1000
        assert len(vault.events.of_type(RewardDistributed)) == 2

    def test_truncating_payouts_and_residual(self):
        vault, _, _, reward = three_lockers()
        round_ = vault.start_round(OWNER, reward)

        assert round_.snapshot_power == {"bob": 198, "carol": 396, "dave": 653}
        assert round_.total_voting_power_at_start == 1247
        assert paid(reward) == {"bob": 158, "carol": 317, "dave": 523}
        assert round_.residual == 2
        assert reward.balance_of(vault.address) == 2
        completed = vault.events.last(RoundCompleted)
        assert (completed.distributed, completed.residual) == (998, 2)

    def test_below_threshold_forfeited(self):
        vault, _, _, reward = three_lockers(threshold=200)
        round_ = vault.start_round(OWNER, reward)

        assert paid(reward) == {"bob": 0, "carol": 317, "dave": 523}
        assert round_.skipped == 1
        assert round_.recipients == 2
        assert reward.balance_of(vault.address) == 1000 - 840

    def test_no_rewards_available(self):
        vault, _, _, reward = make_vault()
        deposit(vault, "alice", 1000)
        with pytest.raises(NoRewardsAvailable):
            vault.start_round(OWNER, reward)

    def test_unknown_token(self):
        vault, _, _, _ = make_vault()
        deposit(vault, "alice", 1000)
        with pytest.raises(UnknownRewardToken):
            vault.start_round(OWNER, InMemoryAsset("0x" + "33" * 20))

    def test_no_voting_power_keeps_rewards(self):
        vault, clock, _, reward = make_vault()
        deposit(vault, "alice", 1000)
        clock.set(50)
        fund(vault, reward, 1000)
        with pytest.raises(NoVotingPower):
            vault.start_round(OWNER, reward)
        assert vault.available_rewards(reward) == 1000
        assert vault.round_count == 0

    def test_include_end_counts_expiring_lock(self):
        vault, clock, _, reward = make_vault(policy="growth", include_end=True)
        deposit(vault, "alice", 1000)
        clock.set(50)
        fund(vault, reward, 1000)
        vault.start_round(OWNER, reward)
        assert reward.balance_of("alice") == 1000

    def test_insufficient_token_balance(self):
        vault, _, _, reward = make_vault()
        deposit(vault, "alice", 1000)
        fund(vault, reward, 1000)
        reward.transfer(vault.address, "elsewhere", 10)
        with pytest.raises(InsufficientTokenBalance):
            vault.start_round(OWNER, reward)
        assert vault.available_rewards(reward) == 1000

    def test_authorized_caller(self):
        vault, _, _, reward = make_vault()
        deposit(vault, "alice", 1000)
        fund(vault, reward, 1000)
        with pytest.raises(Unauthorized):
            vault.start_round(KEEPER, reward)

        vault.set_authorized_caller(OWNER, KEEPER, True)
        assert vault.is_authorized(KEEPER)
        round_ = vault.start_round(KEEPER, reward)
        assert round_.round_id == 1

        vault.set_authorized_caller(OWNER, KEEPER, False)
        assert not vault.is_authorized(KEEPER)

    def test_round_started_event(self):
        vault, _, _, reward = three_lockers()
        vault.start_round(OWNER, reward)
        event = vault.events.last(RoundStarted)
        assert (event.total_rewards, event.total_voting_power, event.members) == (1000, 1247, 3)


class TestContinueRound:

    def test_batches_advance_checkpoint(self):
        vault, _, _, reward = three_lockers(batch_size=2)
        round_ = vault.start_round(OWNER, reward)
        assert round_.last_processed_index == 2
        assert not round_.is_complete
        assert vault.pending_rounds() == [round_.round_id]
        assert paid(reward) == {"bob": 158, "carol": 317, "dave": 0}

        round_ = vault.continue_round(OWNER, round_.round_id)
        assert round_.last_processed_index == 3
        assert round_.is_complete
        assert paid(reward)["dave"] == 523
        assert vault.pending_rounds() == []

        with pytest.raises(RoundAlreadyComplete):
            vault.continue_round(OWNER, round_.round_id)

    def test_unknown_round(self):
        vault, _, _, _ = make_vault()
        with pytest.raises(UnknownRound):
            vault.continue_round(OWNER, 99)

    def test_continue_is_admin_only(self):
        vault, _, _, reward = three_lockers(batch_size=1)
        vault.set_authorized_caller(OWNER, KEEPER, True)
        round_ = vault.start_round(KEEPER, reward)
        with pytest.raises(Unauthorized):
            vault.continue_round(KEEPER, round_.round_id)

    @pytest.mark.parametrize("batch_size", [1, 2])
    def test_resumable_matches_single_batch(self, batch_size):
        single, _, _, single_reward = three_lockers(batch_size=3)
        single.start_round(OWNER, single_reward)

        batched, _, _, batched_reward = three_lockers(batch_size=batch_size)
        round_ = batched.start_round(OWNER, batched_reward)
        calls = 1
        while batched.pending_rounds():
            batched.continue_round(OWNER, round_.round_id)
            calls += 1

        assert calls == -(-3 // batch_size)
        assert paid(batched_reward) == paid(single_reward)

    def test_registry_changes_between_batches(self):
        vault, clock, lock_token, reward = three_lockers(batch_size=1)
        round_ = vault.start_round(OWNER, reward)
        assert paid(reward)["bob"] == 158

        # bob claims (dave swaps into slot 0) and erin joins mid-round
        clock.set(50)
        vault.claim_tokens("bob")
        assert vault.active_users() == ("dave", "carol")
        deposit(vault, "erin", 5000)

        vault.continue_round(OWNER, round_.round_id)
        vault.continue_round(OWNER, round_.round_id)

        assert paid(reward, ("bob", "carol", "dave", "erin")) == {
            "bob": 158, "carol": 317, "dave": 523, "erin": 0
        }
        assert vault.get_round(round_.round_id).is_complete

    def test_batch_size_change_applies_to_next_batch(self):
        vault, _, _, reward = three_lockers(batch_size=1)
        round_ = vault.start_round(OWNER, reward)
        vault.set_batch_size(OWNER, 10)
        round_ = vault.continue_round(OWNER, round_.round_id)
        assert round_.is_complete

    def test_payouts_never_exceed_pool(self):
        vault, clock, _, reward = three_lockers(batch_size=2)
        vault.start_round(OWNER, reward)
        clock.set(41)
        fund(vault, reward, 777)
        # First round still open: its unpaid part is not part of the new pool
        second = vault.start_round(OWNER, reward)
        for round_id in vault.pending_rounds():
            vault.continue_round(OWNER, round_id)

        for round_ in vault.rounds():
            assert round_.is_complete
            assert round_.distributed <= round_.total_rewards_at_start
        assert second.total_rewards_at_start == 777
        total_paid = sum(e.amount for e in vault.events.of_type(RewardDistributed))
        assert reward.balance_of(vault.address) == 1000 + 777 - total_paid

    def test_threshold_fixed_at_round_start(self):
        vault, _, _, reward = make_vault(batch_size=1)
        deposit(vault, "alice", 1000)
        deposit(vault, "bob", 1000)
        fund(vault, reward, 1000)
        round_ = vault.start_round(OWNER, reward)
        assert round_.min_reward_threshold == 1

        vault.register_reward_token(OWNER, reward, 600)
        vault.continue_round(OWNER, round_.round_id)

        assert reward.balance_of("alice") == reward.balance_of("bob") == 500
        assert vault.reward_config(reward).min_reward_threshold == 600

    def test_completed_rounds_leave_working_state(self):
        vault, _, _, reward = make_vault()
        deposit(vault, "alice", 1000)
        deposit(vault, "bob", 1000)
        for _ in range(40):
            fund(vault, reward, 100)
            vault.start_round(OWNER, reward)

        assert vault.round_count == 40
        assert vault._state.rounds == {}
        assert [r.round_id for r in vault.rounds()] == list(range(1, 41))
        assert vault.get_round(7).distributed == 100
        with pytest.raises(RoundAlreadyComplete):
            vault.continue_round(OWNER, 7)


class TestRoundAtomicity:

    def test_failed_payout_reverts_earlier_payouts(self):
        vault, _, _, reward = make_vault()
        deposit(vault, "alice", 1000)
        deposit(vault, "bob", 1000)
        fund(vault, reward, 1000)

        def reenter_on_bob(sender, to, amount):
            if to == "bob":
                vault.claim_tokens("bob")

        reward.on_transfer = reenter_on_bob
        with pytest.raises(ReentrantCall):
            vault.start_round(OWNER, reward)

        assert vault.available_rewards(reward) == 1000
        assert vault.round_count == 0
        assert reward.balance_of("alice") == 0
        assert reward.balance_of(vault.address) == 1000
        assert vault.events.of_type(RewardDistributed) == []

        reward.on_transfer = None
        round_ = vault.start_round(OWNER, reward)
        assert round_.is_complete
        assert reward.balance_of("alice") == reward.balance_of("bob") == 500

    def test_failed_batch_keeps_checkpoint(self):
        vault, _, _, reward = three_lockers(batch_size=2)
        round_ = vault.start_round(OWNER, reward)

        def reenter(sender, to, amount):
            vault.set_batch_size(OWNER, 5)

        reward.on_transfer = reenter
        with pytest.raises(ReentrantCall):
            vault.continue_round(OWNER, round_.round_id)

        assert vault.get_round(round_.round_id).last_processed_index == 2
        assert vault.pending_round_commitments(reward.address) == 525
        assert paid(reward)["dave"] == 0

        reward.on_transfer = None
        vault.continue_round(OWNER, round_.round_id)
        assert paid(reward)["dave"] == 523
