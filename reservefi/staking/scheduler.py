from __future__ import annotations

"""
Epoch Scheduler - staking entry point and rebase trigger.

Epochs are fixed-length windows counted in blocks. Every call to `rebase()`
does one state check:

    if height >= epoch.end_block:
        ledger.rebase(epoch.distribute, epoch.number)
        epoch.end_block += epoch.length
        epoch.number    += 1
        distributor.distribute(height)          # optional yield policy
        epoch.distribute = max(0, contract_balance - circulating_supply)

otherwise it is a no-op. At most one epoch is advanced per call; a scheduler
that fell several epochs behind catches up over several calls.

Staking hands governance tokens to the scheduler and parks the equivalent
staked tokens in warmup (`WarmupVault`) until `warmup_period` epochs have
passed. Unstaking swaps staked tokens back 1:1.

All checks that can fail are made before the rebase trigger, so a rejected
stake/unstake leaves the epoch untouched. Unstake checks the caller's staked
balance *before* any rebase the call triggers, which can reject an amount that
only becomes available through that same rebase.
"""

import logging
from dataclasses import dataclass, replace
from typing import Dict, Optional

from .. import metrics
from ..adapters.interfaces import FungibleToken, YieldRatePolicy
from ..config import StakingParams
from ..errors import (DepositLocked, InsufficientAllowance,
                      InsufficientBalance, InvalidAddress, InvalidAmount,
                      InvalidParameter, Unauthorized)
from ..guard import ReentrancyGuard, non_reentrant
from .rebase import RebaseLedger
from .warmup import WarmupClaim, WarmupVault

log = logging.getLogger(__name__)


@dataclass
class Epoch:
    length: int
    number: int
    end_block: int
    distribute: int = 0


class EpochScheduler:
    def __init__(
        self,
        token: FungibleToken,
        ledger: RebaseLedger,
        *,
        owner: str,
        params: Optional[StakingParams] = None,
        address: str = "staking",
    ) -> None:
        if not owner:
            raise InvalidAddress("zero owner")
        self.params = params or StakingParams()
        self.params.validate()
        self.token = token
        self.ledger = ledger
        self.owner = owner
        self.address = address
        self.epoch = Epoch(
            length=self.params.epoch_length_blocks,
            number=self.params.first_epoch_number,
            end_block=self.params.first_epoch_block,
        )
        self.warmup_period = self.params.warmup_epochs
        self.warmup = WarmupVault(ledger, scheduler=address, address=f"{address}-warmup")
        self.distributor: Optional[YieldRatePolicy] = None
        self._claims: Dict[str, WarmupClaim] = {}
        self._guard = ReentrancyGuard()

    # --- administration ---

    def _only_owner(self, caller: str) -> None:
        if caller != self.owner:
            raise Unauthorized("only owner", caller=caller)

    def set_distributor(self, caller: str, distributor: Optional[YieldRatePolicy]) -> None:
        self._only_owner(caller)
        self.distributor = distributor

    def set_warmup_period(self, caller: str, epochs: int) -> None:
        self._only_owner(caller)
        if epochs < 0:
            raise InvalidParameter("warmup period must be non-negative", name="warmup_period", value=epochs)
        self.warmup_period = int(epochs)

    # --- views ---

    def contract_balance(self) -> int:
        return self.token.balance_of(self.address)

    def warmup_info(self, account: str) -> Optional[WarmupClaim]:
        claim = self._claims.get(account)
        return replace(claim) if claim is not None else None

    def is_locked(self, account: str) -> bool:
        claim = self._claims.get(account)
        return bool(claim and claim.lock)

    def index(self) -> int:
        return self.ledger.index()

    # --- epoch ---

    @non_reentrant
    def rebase(self, height: int) -> bool:
        """Advance one epoch if due. Returns True when an epoch was advanced."""
        return self._rebase(height)

    def _rebase(self, height: int) -> bool:
        epoch = self.epoch
        if height < epoch.end_block:
            log.debug("staking: epoch %d not due (height=%d end_block=%d)", epoch.number, height, epoch.end_block)
            return False

        self.ledger.rebase(self.address, epoch.distribute, epoch.number, height=height)
        epoch.end_block += epoch.length
        epoch.number += 1

        if self.distributor is not None:
            self.distributor.distribute(height)

        balance = self.contract_balance()
        staked = self.ledger.circulating_supply()
        epoch.distribute = balance - staked if balance > staked else 0

        metrics.record_epoch(epoch.number)
        log.info(
            "staking: epoch -> %d end_block=%d next_distribute=%d",
            epoch.number, epoch.end_block, epoch.distribute,
        )
        return True

    # --- staking ---

    @non_reentrant
    def stake(self, caller: str, amount: int, recipient: str, *, height: int) -> int:
        """
        Take `amount` governance tokens from `caller` and open (or extend) a
        warmup claim for `recipient`. Returns the claim's epoch of expiry.
        """
        if amount <= 0:
            raise InvalidAmount(amount=amount)
        if not recipient:
            raise InvalidAddress("zero recipient")
        claim = self._claims.get(recipient)
        if claim is not None and claim.lock and caller != recipient:
            raise DepositLocked("deposits for account are locked", details={"recipient": recipient})
        allowed = self.token.allowance(caller, self.address)
        if allowed < amount:
            raise InsufficientAllowance(owner=caller, spender=self.address, required=amount, actual=allowed)
        have = self.token.balance_of(caller)
        if have < amount:
            raise InsufficientBalance(account=caller, required=amount, actual=have)
        pool = self.ledger.balance_of(self.address)
        if pool < amount:
            raise InsufficientBalance(account=self.address, required=amount, actual=pool)

        self._rebase(height)
        self.token.transfer_from(self.address, caller, self.address, amount)

        if claim is None:
            claim = WarmupClaim(deposit=0, gons=0, expiry=0)
            self._claims[recipient] = claim
        claim.deposit += amount
        claim.gons += self.ledger.gons_for_balance(amount)
        claim.expiry = self.epoch.number + self.warmup_period
        claim.lock = False

        self.ledger.transfer(self.address, self.warmup.address, amount)
        log.info("staking: stake caller=%s recipient=%s amount=%d expiry=%d", caller, recipient, amount, claim.expiry)
        return claim.expiry

    @non_reentrant
    def claim(self, recipient: str) -> int:
        """Release an expired warmup claim to `recipient`. Returns staked tokens released (0 if not yet)."""
        claim = self._claims.get(recipient)
        if claim is None or claim.gons == 0 or self.epoch.number < claim.expiry:
            return 0
        del self._claims[recipient]
        amount = self.ledger.balance_for_gons(claim.gons)
        self.warmup.retrieve(self.address, recipient, amount)
        log.info("staking: claim recipient=%s amount=%d", recipient, amount)
        return amount

    @non_reentrant
    def forfeit(self, caller: str) -> int:
        """Abandon a warmup claim: the staked tokens go back to the pool, the deposit back to `caller`."""
        claim = self._claims.get(caller)
        if claim is None:
            return 0
        del self._claims[caller]
        self.warmup.retrieve(self.address, self.address, self.ledger.balance_for_gons(claim.gons))
        self.token.transfer(self.address, caller, claim.deposit)
        log.info("staking: forfeit caller=%s deposit=%d", caller, claim.deposit)
        return claim.deposit

    def toggle_deposit_lock(self, caller: str) -> bool:
        """Stop (or allow again) third parties from adding to `caller`'s warmup claim."""
        claim = self._claims.get(caller)
        if claim is None:
            claim = WarmupClaim(deposit=0, gons=0, expiry=0)
            self._claims[caller] = claim
        claim.lock = not claim.lock
        return claim.lock

    @non_reentrant
    def unstake(self, caller: str, amount: int, *, height: int, trigger: bool = True) -> int:
        """Swap `amount` staked tokens back to governance tokens, rebasing first when `trigger`."""
        if amount <= 0:
            raise InvalidAmount(amount=amount)
        allowed = self.ledger.allowance(caller, self.address)
        if allowed < amount:
            raise InsufficientAllowance(owner=caller, spender=self.address, required=amount, actual=allowed)
        have = self.ledger.balance_of(caller)
        if have < amount:
            raise InsufficientBalance(account=caller, required=amount, actual=have)
        backing = self.contract_balance()
        if backing < amount:
            raise InsufficientBalance(account=self.address, required=amount, actual=backing)

        if trigger:
            self._rebase(height)
        self.ledger.transfer_from(self.address, caller, self.address, amount)
        self.token.transfer(self.address, caller, amount)
        log.info("staking: unstake caller=%s amount=%d", caller, amount)
        return amount


__all__ = ["Epoch", "EpochScheduler"]
