from __future__ import annotations

"""
Rebase Ledger - the rebasing staked token
-----------------------------------------

Holders own a fixed number of internal units ("gons"). The displayed balance
is derived, never stored:

    balance = gons // gons_per_fragment
    gons_per_fragment = TOTAL_GONS // total_supply

TOTAL_GONS is fixed at genesis to the largest multiple of the initial supply
that fits in 256 bits, so the ratio is exact at genesis and only picks up
bounded rounding afterwards. A rebase grows `total_supply`, shrinking the
ratio; no holder's gons change, so every balance grows by the same factor at
once.

The staking pool's own holdings are excluded from circulating supply; profit
is spread over what is circulating, so the pool never compounds on itself.

Supply growth is clamped at MAX_SUPPLY; beyond that a rebase records the
event but the ratio stops moving.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .. import metrics
from ..errors import (InsufficientAllowance, InsufficientBalance,
                      InvalidAddress, InvalidAmount, InvalidParameter,
                      Unauthorized)
from ..fixedpoint import U128_MAX, U256_MAX, WAD

log = logging.getLogger(__name__)

MAX_SUPPLY = U128_MAX


@dataclass(frozen=True)
class RebaseRecord:
    epoch: int
    rebase_pct: int  # 1e18-scaled fraction of circulating supply
    total_staked_before: int
    total_staked_after: int
    amount_rebased: int
    index: int
    height: int


class RebaseLedger:
    def __init__(
        self,
        symbol: str = "sGOV",
        decimals: int = 9,
        *,
        initial_supply: int,
        owner: str,
    ) -> None:
        if initial_supply <= 0:
            raise InvalidParameter("initial_supply must be positive", name="initial_supply", value=initial_supply)
        if not owner:
            raise InvalidAddress("zero owner")
        self.symbol = symbol
        self.decimals = int(decimals)
        self.owner = owner
        self.initial_supply = int(initial_supply)
        self.total_gons = U256_MAX - (U256_MAX % self.initial_supply)

        self._total_supply = self.initial_supply
        self._gons_per_fragment = self.total_gons // self._total_supply
        self._gon_balances: Dict[str, int] = {}
        self._allowances: Dict[Tuple[str, str], int] = {}
        self._history: List[RebaseRecord] = []
        self._index_gons: Optional[int] = None
        self.staking_pool: Optional[str] = None

    # --- setup ---

    def _only_owner(self, caller: str) -> None:
        if caller != self.owner:
            raise Unauthorized("only owner", caller=caller)

    def initialize(self, caller: str, staking_pool: str) -> None:
        """Hand every gon to the staking pool; allowed once."""
        self._only_owner(caller)
        if self.staking_pool is not None:
            raise InvalidParameter("already initialized", name="staking_pool", value=self.staking_pool)
        if not staking_pool:
            raise InvalidAddress("zero staking pool")
        self.staking_pool = staking_pool
        self._gon_balances[staking_pool] = self.total_gons
        log.info("rebase: initialized pool=%s supply=%d", staking_pool, self._total_supply)

    def set_index(self, caller: str, index: int) -> None:
        """Anchor the index (one staked unit at genesis, in display units); allowed once."""
        self._only_owner(caller)
        if self._index_gons is not None:
            raise InvalidParameter("index already set", name="index")
        if index <= 0:
            raise InvalidParameter("index must be positive", name="index", value=index)
        self._index_gons = self.gons_for_balance(index)

    # --- conversions ---

    @property
    def gons_per_fragment(self) -> int:
        return self._gons_per_fragment

    def gons_for_balance(self, amount: int) -> int:
        return amount * self._gons_per_fragment

    def balance_for_gons(self, gons: int) -> int:
        return gons // self._gons_per_fragment

    def index(self) -> int:
        if self._index_gons is None:
            return 0
        return self.balance_for_gons(self._index_gons)

    # --- views ---

    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, account: str) -> int:
        return self._gon_balances.get(account, 0) // self._gons_per_fragment

    def gons_of(self, account: str) -> int:
        return self._gon_balances.get(account, 0)

    def circulating_supply(self) -> int:
        pool = self.balance_of(self.staking_pool) if self.staking_pool else 0
        return self._total_supply - pool

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    def history(self) -> Tuple[RebaseRecord, ...]:
        return tuple(self._history)

    # --- rebase ---

    def rebase(self, caller: str, profit: int, epoch: int, *, height: int = 0) -> int:
        """
        Distribute `profit` over circulating supply. Only the staking pool may
        call this. Returns the new total supply.
        """
        if self.staking_pool is None or caller != self.staking_pool:
            raise Unauthorized("only the staking pool may rebase", caller=caller)
        if profit < 0:
            raise InvalidAmount("profit must be non-negative", amount=profit)

        before = self._total_supply
        circulating = self.circulating_supply()
        if profit == 0:
            self._store(epoch, 0, before, before, 0, height, circulating)
            metrics.record_rebase(0, self.index())
            log.info("rebase: epoch=%d zero profit total=%d", epoch, before)
            return before

        if circulating > 0:
            amount = profit * before // circulating
        else:
            amount = profit

        after = before + amount
        if after > MAX_SUPPLY:
            log.warning("rebase: supply clamped epoch=%d wanted=%d cap=%d", epoch, after, MAX_SUPPLY)
            after = MAX_SUPPLY
        self._total_supply = after
        self._gons_per_fragment = self.total_gons // after

        self._store(epoch, profit, before, after, after - before, height, circulating)
        metrics.record_rebase(profit / 10**self.decimals, self.index())
        log.info(
            "rebase: epoch=%d profit=%d circulating=%d total %d -> %d index=%d",
            epoch, profit, circulating, before, after, self.index(),
        )
        return after

    def _store(self, epoch: int, profit: int, before: int, after: int, amount: int, height: int,
               circulating: int) -> None:
        pct = profit * WAD // circulating if circulating else 0
        self._history.append(
            RebaseRecord(
                epoch=epoch,
                rebase_pct=pct,
                total_staked_before=before,
                total_staked_after=after,
                amount_rebased=amount,
                index=self.index(),
                height=height,
            )
        )

    # --- transfers ---

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        if not recipient:
            raise InvalidAddress("zero recipient")
        if amount < 0:
            raise InvalidAmount("amount must be non-negative", amount=amount)
        have = self.balance_of(sender)
        if have < amount:
            raise InsufficientBalance(account=sender, required=amount, actual=have)
        gons = self.gons_for_balance(amount)
        self._gon_balances[sender] = self._gon_balances.get(sender, 0) - gons
        self._gon_balances[recipient] = self._gon_balances.get(recipient, 0) + gons

    def approve(self, owner: str, spender: str, amount: int) -> None:
        if not spender:
            raise InvalidAddress("zero spender")
        if amount < 0:
            raise InvalidAmount("amount must be non-negative", amount=amount)
        self._allowances[(owner, spender)] = amount

    def increase_allowance(self, owner: str, spender: str, added: int) -> int:
        new = self.allowance(owner, spender) + added
        self.approve(owner, spender, new)
        return new

    def decrease_allowance(self, owner: str, spender: str, subtracted: int) -> int:
        current = self.allowance(owner, spender)
        new = current - subtracted if subtracted < current else 0
        self.approve(owner, spender, new)
        return new

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> None:
        allowed = self.allowance(owner, spender)
        if allowed < amount:
            raise InsufficientAllowance(owner=owner, spender=spender, required=amount, actual=allowed)
        self.transfer(owner, recipient, amount)
        self._allowances[(owner, spender)] = allowed - amount


__all__ = ["MAX_SUPPLY", "RebaseRecord", "RebaseLedger"]
