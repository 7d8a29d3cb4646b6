from __future__ import annotations

"""
In-memory fungible tokens.

`Token` is a plain balance/allowance ledger used for reserve assets (the
reference stable asset, pool shares). `MintableToken` adds the governance
token's mint capability: an owner grants each minter an allocation and every
`mint` draws it down, failing with `InsufficientAllocation` once exhausted.

Amounts are integer base units. Every debit is checked before any balance is
written, so a rejected call leaves the ledger untouched.
"""

import logging
from typing import Dict, Tuple

from ..errors import (InsufficientAllocation, InsufficientAllowance,
                      InsufficientBalance, InvalidAddress, InvalidAmount,
                      Unauthorized)

log = logging.getLogger(__name__)


def _require_address(addr: str) -> None:
    if not addr:
        raise InvalidAddress("zero address")


def _require_amount(amount: int) -> None:
    if amount < 0:
        raise InvalidAmount("amount must be non-negative", amount=amount)


class Token:
    """Balance/allowance ledger with ERC-20 style semantics."""

    def __init__(self, symbol: str, decimals: int) -> None:
        self.symbol = symbol
        self.decimals = int(decimals)
        self._balances: Dict[str, int] = {}
        self._allowances: Dict[Tuple[str, str], int] = {}
        self._supply = 0

    # --- views ---

    def total_supply(self) -> int:
        return self._supply

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    # --- mutations ---

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        _require_address(recipient)
        _require_amount(amount)
        have = self.balance_of(sender)
        if have < amount:
            raise InsufficientBalance(account=sender, required=amount, actual=have)
        self._balances[sender] = have - amount
        self._balances[recipient] = self.balance_of(recipient) + amount

    def approve(self, owner: str, spender: str, amount: int) -> None:
        _require_address(spender)
        _require_amount(amount)
        self._allowances[(owner, spender)] = amount

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> None:
        self._spend_allowance(spender, owner, amount)
        self.transfer(owner, recipient, amount)
        self._allowances[(owner, spender)] = self.allowance(owner, spender) - amount

    # --- supply hooks ---

    def _credit(self, account: str, amount: int) -> None:
        _require_address(account)
        _require_amount(amount)
        self._balances[account] = self.balance_of(account) + amount
        self._supply += amount

    def _debit(self, account: str, amount: int) -> None:
        _require_amount(amount)
        have = self.balance_of(account)
        if have < amount:
            raise InsufficientBalance(account=account, required=amount, actual=have)
        self._balances[account] = have - amount
        self._supply -= amount

    def _spend_allowance(self, spender: str, owner: str, amount: int) -> None:
        allowed = self.allowance(owner, spender)
        if allowed < amount:
            raise InsufficientAllowance(owner=owner, spender=spender, required=amount, actual=allowed)
        have = self.balance_of(owner)
        if have < amount:
            raise InsufficientBalance(account=owner, required=amount, actual=have)

    def faucet(self, account: str, amount: int) -> None:
        """Credit test/simulation balances for reserve assets."""
        self._credit(account, amount)


class MintableToken(Token):
    """
    Governance token with a per-minter allocation capability.

    The allocation is managed outside the accounting core (by `owner`); the
    treasury only ever mints against what it has been granted.
    """

    def __init__(self, symbol: str, decimals: int, *, owner: str) -> None:
        super().__init__(symbol, decimals)
        _require_address(owner)
        self.owner = owner
        self._allocations: Dict[str, int] = {}

    def allocation_of(self, minter: str) -> int:
        return self._allocations.get(minter, 0)

    def set_allocation(self, caller: str, minter: str, amount: int) -> None:
        if caller != self.owner:
            raise Unauthorized("only owner may set allocations", caller=caller)
        _require_address(minter)
        _require_amount(amount)
        self._allocations[minter] = amount
        log.info("token: allocation %s minter=%s amount=%d", self.symbol, minter, amount)

    def mint(self, minter: str, recipient: str, amount: int) -> None:
        _require_amount(amount)
        remaining = self.allocation_of(minter)
        if amount > remaining:
            raise InsufficientAllocation(minter=minter, requested=amount, remaining=remaining)
        self._credit(recipient, amount)
        self._allocations[minter] = remaining - amount

    def burn(self, holder: str, amount: int) -> None:
        self._debit(holder, amount)

    def burn_from(self, spender: str, holder: str, amount: int) -> None:
        self._spend_allowance(spender, holder, amount)
        self._debit(holder, amount)
        self._allowances[(holder, spender)] = self.allowance(holder, spender) - amount


__all__ = ["Token", "MintableToken"]
