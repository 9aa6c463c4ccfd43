"""Tests for the reward funding ledger and stray-token withdrawal."""

import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from lockvault.engine.assets import InMemoryAsset
from lockvault.engine.errors import (
    CannotWithdrawLockToken,
    CannotWithdrawReserved,
    InsufficientAllowance,
    InvalidAmount,
    InvalidRewardToken,
    NothingToWithdraw,
    Unauthorized,
    UnknownRewardToken,
)
from lockvault.engine.events import RewardFunded, RewardTokenRegistered, StrayTokenWithdrawn

from vault_helpers import OWNER, deposit, fund, give, make_vault


class TestRegisterRewardToken:

    def test_lock_token_rejected(self):
        vault, _, lock_token, _ = make_vault()
        with pytest.raises(InvalidRewardToken):
            vault.register_reward_token(OWNER, lock_token, 1)

    def test_admin_only(self):
        vault, _, _, _ = make_vault()
        with pytest.raises(Unauthorized):
            vault.register_reward_token("mallory", InMemoryAsset("0x" + "44" * 20), 1)

    def test_reregister_updates_threshold_keeps_balance(self):
        vault, _, _, reward = make_vault()
        fund(vault, reward, 300)
        vault.register_reward_token(OWNER, reward, 25)
        config = vault.reward_config(reward)
        assert config.min_reward_threshold == 25
        assert config.available_rewards == 300
        assert vault.events.last(RewardTokenRegistered).min_reward_threshold == 25

    def test_negative_threshold(self):
        vault, _, _, reward = make_vault()
        with pytest.raises(InvalidAmount):
            vault.register_reward_token(OWNER, reward, -1)


class TestFundRewards:

    def test_fund_credits_ledger(self):
        vault, _, _, reward = make_vault()
        assert fund(vault, reward, 400) == 400
        assert fund(vault, reward, 100) == 500
        assert reward.balance_of(vault.address) == 500
        config = vault.reward_config(reward)
        assert config.total_funded == 500
        event = vault.events.last(RewardFunded)
        assert (event.funder, event.amount) == (OWNER, 100)

    def test_unknown_token(self):
        vault, _, _, _ = make_vault()
        other = InMemoryAsset("0x" + "55" * 20)
        give(other, vault, OWNER, 100)
        with pytest.raises(UnknownRewardToken):
            vault.fund_rewards(OWNER, other, 100)

    def test_zero_amount(self):
        vault, _, _, reward = make_vault()
        with pytest.raises(InvalidAmount):
            vault.fund_rewards(OWNER, reward, 0)

    def test_missing_allowance(self):
        vault, _, _, reward = make_vault()
        reward.mint(OWNER, 100)
        with pytest.raises(InsufficientAllowance):
            vault.fund_rewards(OWNER, reward, 100)
        assert vault.available_rewards(reward) == 0
        assert reward.balance_of(OWNER) == 100

    def test_admin_only(self):
        vault, _, _, reward = make_vault()
        give(reward, vault, "mallory", 100)
        with pytest.raises(Unauthorized):
            vault.fund_rewards("mallory", reward, 100)


class TestWithdrawStray:

    def test_lock_token_never_withdrawable(self):
        vault, _, lock_token, _ = make_vault()
        deposit(vault, "alice", 1000)
        with pytest.raises(CannotWithdrawLockToken):
            vault.withdraw_stray(OWNER, lock_token)
        assert lock_token.balance_of(vault.address) == 990

    def test_unregistered_token_swept(self):
        vault, _, _, _ = make_vault()
        stray = InMemoryAsset("0x" + "66" * 20)
        stray.mint(vault.address, 30)
        assert vault.withdraw_stray(OWNER, stray) == 30
        assert stray.balance_of(OWNER) == 30
        event = vault.events.last(StrayTokenWithdrawn)
        assert (event.to, event.amount) == (OWNER, 30)

    def test_nothing_to_withdraw(self):
        vault, _, _, _ = make_vault()
        with pytest.raises(NothingToWithdraw):
            vault.withdraw_stray(OWNER, InMemoryAsset("0x" + "66" * 20))

    def test_only_excess_over_reserved(self):
        vault, _, _, reward = make_vault()
        fund(vault, reward, 1000)
        reward.mint(vault.address, 50)

        assert vault.withdraw_stray(OWNER, reward, to="treasury") == 50
        assert reward.balance_of("treasury") == 50
        assert vault.available_rewards(reward) == 1000

        with pytest.raises(CannotWithdrawReserved):
            vault.withdraw_stray(OWNER, reward)
        assert reward.balance_of(vault.address) == 1000

    def test_open_round_commitments_reserved(self):
        vault, clock, _, reward = make_vault(batch_size=1)
        deposit(vault, "alice", 1000)
        deposit(vault, "bob", 1000)
        fund(vault, reward, 1000)
        round_ = vault.start_round(OWNER, reward)
        assert vault.available_rewards(reward) == 0
        assert vault.pending_round_commitments(reward.address) == 500

        with pytest.raises(CannotWithdrawReserved):
            vault.withdraw_stray(OWNER, reward)

        reward.mint(vault.address, 8)
        assert vault.withdraw_stray(OWNER, reward) == 8

        vault.continue_round(OWNER, round_.round_id)
        assert reward.balance_of("bob") == 500

    def test_admin_only(self):
        vault, _, _, _ = make_vault()
        stray = InMemoryAsset("0x" + "66" * 20)
        stray.mint(vault.address, 30)
        with pytest.raises(Unauthorized):
            vault.withdraw_stray("mallory", stray)
