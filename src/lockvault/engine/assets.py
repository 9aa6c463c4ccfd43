"""Fungible-asset transfer capability.

The vault only needs balances, allowances, two kinds of transfer and a way
to reverse a transfer it made earlier in a call that then failed. Real
deployments plug in whatever asset backend they have; InMemoryAsset is the
reference implementation used by tests and the simulation.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Optional, Protocol, Tuple

from .errors import InsufficientAllowance, InsufficientBalance, InvalidAmount

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x" + "0" * 40

TransferHook = Callable[[str, str, int], None]


class FungibleAsset(Protocol):
    """Transfer/allowance capability the vault relies on."""

    address: str

    def balance_of(self, account: str) -> int:
        ...

    def allowance(self, owner: str, spender: str) -> int:
        ...

    def transfer(self, sender: str, to: str, amount: int) -> None:
        ...

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> None:
        ...

    def revert_transfer(self, sender: str, to: str, amount: int, spender: Optional[str] = None) -> None:
        ...


class InMemoryAsset:
    """Dictionary-backed fungible token.

    `on_transfer`, when set, is invoked with (from, to, amount) once a
    movement has passed its checks and before balances change. It stands in
    for token callbacks that can call back into the vault mid-operation.
    """

    def __init__(self, address: str, symbol: str = "", on_transfer: Optional[TransferHook] = None):
        self.address = address
        self.symbol = symbol or address
        self.on_transfer = on_transfer
        self._balances: Dict[str, int] = {}
        self._allowances: Dict[Tuple[str, str], int] = {}

    def __repr__(self) -> str:
        return f"InMemoryAsset({self.symbol!r})"

    @property
    def total_supply(self) -> int:
        return sum(self._balances.values())

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    def mint(self, account: str, amount: int) -> None:
        if amount < 0:
            raise InvalidAmount(f"Cannot mint negative amount {amount}")
        self._balances[account] = self.balance_of(account) + amount

    def approve(self, owner: str, spender: str, amount: int) -> None:
        if amount < 0:
            raise InvalidAmount(f"Cannot approve negative amount {amount}")
        self._allowances[(owner, spender)] = amount

    def transfer(self, sender: str, to: str, amount: int) -> None:
        self._move(sender, to, amount)

    def transfer_from(self, spender: str, owner: str, to: str, amount: int) -> None:
        allowed = self.allowance(owner, spender)
        if allowed < amount:
            raise InsufficientAllowance(
                f"{self.symbol}: allowance {allowed} < {amount}",
                details={'owner': owner, 'spender': spender, 'allowance': allowed, 'amount': amount}
            )
        self._move(owner, to, amount)
        self._allowances[(owner, spender)] = allowed - amount

    def revert_transfer(self, sender: str, to: str, amount: int, spender: Optional[str] = None) -> None:
        """
        Undo a completed movement of `amount` from `sender` to `to`.

        Used when the call that made the movement fails. The hook is not
        invoked, and a `transfer_from` made by `spender` gets its allowance
        back.
        """
        self._balances[to] = self.balance_of(to) - amount
        self._balances[sender] = self.balance_of(sender) + amount
        if spender is not None:
            self._allowances[(sender, spender)] = self.allowance(sender, spender) + amount
        logger.debug("%s reverted %s -> %s: %d", self.symbol, sender, to, amount)

    def _move(self, sender: str, to: str, amount: int) -> None:
        if amount < 0:
            raise InvalidAmount(f"Cannot transfer negative amount {amount}")
        balance = self.balance_of(sender)
        if balance < amount:
            raise InsufficientBalance(
                f"{self.symbol}: balance {balance} < {amount}",
                details={'account': sender, 'balance': balance, 'amount': amount}
            )
        if self.on_transfer is not None:
            self.on_transfer(sender, to, amount)
        self._balances[sender] = self.balance_of(sender) - amount
        self._balances[to] = self.balance_of(to) + amount
        logger.debug("%s transfer %s -> %s: %d", self.symbol, sender, to, amount)
