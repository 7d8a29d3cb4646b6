from __future__ import annotations

"""
Bond Engine
-----------

Sells governance tokens against one principal asset at a discount to the
oracle TWAP and releases them linearly over a vesting term.

Pricing (all integer, 1e18-scaled prices):

    value   = treasury.value_of(principal, amount)      # token base units
    price   = oracle_price × (10_000 − discount_bps) / 10_000
    payout  = value × 1e18 / price                      # gross, before fee
    fee     = payout × fee_bps / 10_000                 # sent to fee recipient
    net     = payout − fee                              # vests to depositor

A deposit is rejected, in this order, on: zero amount, zero/invalid price,
price above the depositor's `max_price`, `total_debt + payout > max_debt`,
net payout (after the fee) below the dust floor, payout above `max_payout_bps` of the treasury's
mint allocation. All checks run before any token moves.

Stacking: a second deposit before full redemption adds to the open bond and
*resets* the vesting countdown to the full term.

`total_debt` only ever grows. It is the cumulative issuance ceiling of this
market, not a decaying liability.
"""

import logging
from dataclasses import replace
from typing import TYPE_CHECKING, Dict, Optional, cast

from .. import metrics
from ..adapters.interfaces import FungibleToken
from ..config import BondParams, BondTerms
from ..errors import (BondSoldOut, BondTooLarge, BondTooSmall, DepositLocked,
                      InsufficientAllowance, InsufficientBalance,
                      InvalidAddress, InvalidAmount, InvalidParameter,
                      InvalidPrice, ReserveError, SlippageExceeded,
                      Unauthorized, UnsupportedAsset)
from ..fixedpoint import BPS, WAD, apply_bps, mul_div
from ..guard import ReentrancyGuard, non_reentrant
from ..oracle.twap import TwapOracle
from ..treasury.ledger import TreasuryLedger
from .types import Bond, BondParameter, BondQuote

if TYPE_CHECKING:  # pragma: no cover
    from ..staking.scheduler import EpochScheduler

log = logging.getLogger(__name__)


class BondEngine:
    def __init__(
        self,
        principal: FungibleToken,
        treasury: TreasuryLedger,
        oracle: TwapOracle,
        *,
        owner: str,
        fee_recipient: str,
        params: Optional[BondParams] = None,
        scheduler: Optional["EpochScheduler"] = None,
        address: Optional[str] = None,
    ) -> None:
        if not owner or not fee_recipient:
            raise InvalidAddress("zero owner or fee recipient")
        self.params = params or BondParams()
        self.params.validate()
        self.principal = principal
        self.treasury = treasury
        self.token = treasury.token
        self.oracle = oracle
        self.owner = owner
        self.fee_recipient = fee_recipient
        self.scheduler = scheduler
        self.address = address or f"bond-{principal.symbol}"

        self.terms: Optional[BondTerms] = None
        self.total_debt = 0
        self._bonds: Dict[str, Bond] = {}
        self._guard = ReentrancyGuard()

    # --- administration ---

    def _only_owner(self, caller: str) -> None:
        if caller != self.owner:
            raise Unauthorized("only owner", caller=caller)

    def _require_terms(self) -> BondTerms:
        if self.terms is None:
            raise InvalidParameter("bond terms not initialized", name="terms")
        return self.terms

    def initialize(self, caller: str, terms: BondTerms) -> None:
        """Set the bond terms; allowed once."""
        self._only_owner(caller)
        if self.terms is not None:
            raise InvalidParameter("bond terms already initialized", name="terms")
        terms.validate(self.params.min_vesting_blocks)
        self.terms = replace(terms)
        log.info("bond: %s initialized %s", self.principal.symbol, self.terms)

    def set_bond_term(self, caller: str, parameter: BondParameter, value: int) -> BondTerms:
        """Adjust one term; the whole set is re-validated before it is applied."""
        self._only_owner(caller)
        current = self._require_terms()
        updated = replace(current, **{parameter.value: int(value)})
        updated.validate(self.params.min_vesting_blocks)
        if updated.max_debt < self.total_debt:
            raise InvalidParameter(
                "max_debt below outstanding bond debt",
                name=parameter.value, value=int(value), details={"total_debt": self.total_debt},
            )
        self.terms = updated
        log.info("bond: %s set %s=%d", self.principal.symbol, parameter.value, value)
        return updated

    def set_staking(self, caller: str, scheduler: Optional["EpochScheduler"]) -> None:
        self._only_owner(caller)
        self.scheduler = scheduler

    # --- views ---

    def max_payout(self) -> int:
        """Largest single payout: `max_payout_bps` of the treasury's remaining mint allocation."""
        terms = self._require_terms()
        return self.treasury.mint_allocation() * terms.max_payout_bps // BPS

    def _prices(self, timestamp: int):
        terms = self._require_terms()
        oracle_price = self.oracle.price_wad(timestamp)
        if oracle_price <= 0:
            raise InvalidPrice("oracle price unavailable", details={"asset": self.oracle.base_asset})
        price = apply_bps(oracle_price, BPS - terms.discount_bps)
        if price <= 0:
            raise InvalidPrice("discounted price is zero", details={"oracle_price": oracle_price})
        return oracle_price, price

    def bond_price(self, timestamp: int) -> int:
        """Discounted price of one token in reference units, 1e18-scaled."""
        return self._prices(timestamp)[1]

    def quote(self, asset: str, amount: int, *, timestamp: int) -> BondQuote:
        """Price a deposit of `amount` `asset` without touching state."""
        if asset != self.principal.symbol:
            raise UnsupportedAsset(asset=asset, message="not this market's principal")
        if amount <= 0:
            raise InvalidAmount(amount=amount)
        value = self.treasury.value_of(asset, amount)
        oracle_price, price = self._prices(timestamp)
        payout = mul_div(value, WAD, price)
        return BondQuote(value=value, oracle_price=oracle_price, price=price, payout=payout)

    def bond_info(self, depositor: str) -> Optional[Bond]:
        bond = self._bonds.get(depositor)
        return replace(bond) if bond is not None else None

    def percent_vested(self, depositor: str, *, height: int) -> int:
        """Vested share of the open bond in bps (0 when there is none)."""
        bond = self._bonds.get(depositor)
        if bond is None:
            return 0
        return bond.percent_vested_bps(height)

    def pending_payout(self, depositor: str, *, height: int) -> int:
        bond = self._bonds.get(depositor)
        if bond is None:
            return 0
        pct = bond.percent_vested_bps(height)
        if pct >= BPS:
            return bond.payout
        return bond.payout * pct // BPS

    # --- deposit ---

    def _check_deposit(self, caller: str, amount: int, max_price: int, timestamp: int) -> BondQuote:
        terms = self._require_terms()
        if amount <= 0:
            raise InvalidAmount(amount=amount)
        if max_price <= 0:
            raise InvalidParameter("max_price must be positive", name="max_price", value=max_price)

        q = self.quote(self.principal.symbol, amount, timestamp=timestamp)
        if q.price > max_price:
            raise SlippageExceeded(price=q.price, max_price=max_price)
        if self.total_debt + q.payout > terms.max_debt:
            raise BondSoldOut(total_debt=self.total_debt, payout=q.payout, max_debt=terms.max_debt)
        # the dust floor applies to what vests, after the fee
        net = q.payout - apply_bps(q.payout, terms.fee_bps)
        if net <= 0 or net < self.params.min_payout:
            raise BondTooSmall(payout=net, minimum=self.params.min_payout)
        limit = self.max_payout()
        if q.payout > limit:
            raise BondTooLarge(payout=q.payout, maximum=limit)

        self.treasury.ensure_can_deposit(self.address, self.principal.symbol)
        allowed = self.principal.allowance(caller, self.address)
        if allowed < amount:
            raise InsufficientAllowance(owner=caller, spender=self.address, required=amount, actual=allowed)
        have = self.principal.balance_of(caller)
        if have < amount:
            raise InsufficientBalance(account=caller, required=amount, actual=have)
        return q

    @non_reentrant
    def deposit(
        self,
        caller: str,
        amount: int,
        max_price: int,
        *,
        height: int,
        timestamp: int,
        depositor: Optional[str] = None,
    ) -> int:
        """
        Bond `amount` of the principal from `caller` for `depositor` (defaults
        to the caller). Returns the net payout added to the depositor's bond.
        """
        depositor = depositor or caller
        try:
            q = self._check_deposit(caller, amount, max_price, timestamp)
        except ReserveError as exc:
            metrics.record_bond_rejection(exc.code)
            log.info("bond: %s deposit rejected depositor=%s code=%s", self.principal.symbol, depositor, exc.code)
            raise
        terms = self._require_terms()
        payout = q.payout
        fee = apply_bps(payout, terms.fee_bps)
        net = payout - fee

        # Custody goes engine -> treasury; the treasury mints the gross payout back to us.
        self.principal.transfer_from(self.address, caller, self.address, amount)
        self.principal.approve(self.address, self.treasury.address, amount)
        self.treasury.deposit(self.address, amount, self.principal.symbol, payout)
        if fee:
            self.token.transfer(self.address, self.fee_recipient, fee)

        self.total_debt += payout
        bond = self._bonds.get(depositor)
        if bond is None:
            bond = Bond(amount_bonded=0, payout=0, vesting_remaining=0, last_update_block=height, price_paid=0)
            self._bonds[depositor] = bond
        bond.amount_bonded += amount
        bond.payout += net
        bond.vesting_remaining = terms.vesting_blocks
        bond.last_update_block = height
        bond.price_paid = q.price

        metrics.record_bond_deposit(self.principal.symbol, net / 10**self.token.decimals, self.total_debt)
        log.info(
            "bond: %s deposit depositor=%s amount=%d price=%d payout=%d fee=%d total_debt=%d",
            self.principal.symbol, depositor, amount, q.price, net, fee, self.total_debt,
        )
        return net

    # --- redeem ---

    @non_reentrant
    def redeem(self, recipient: str, *, height: int, stake: bool = False) -> int:
        """
        Release the vested part of `recipient`'s bond. Pays everything and
        closes the bond once fully vested. With `stake=True` the payout goes
        into the staking warmup instead of the recipient's wallet.
        Returns the amount released (0 when nothing has vested).
        """
        bond = self._bonds.get(recipient)
        if bond is None:
            return 0
        if stake:
            if self.scheduler is None:
                raise InvalidParameter("no staking scheduler configured", name="scheduler")
            if self.scheduler.is_locked(recipient):
                raise DepositLocked("deposits for account are locked", details={"recipient": recipient})

        pct = bond.percent_vested_bps(height)
        full = pct >= BPS
        if full:
            amount = bond.payout
        else:
            amount = bond.payout * pct // BPS
            if amount == 0:
                log.debug("bond: %s redeem nothing vested recipient=%s", self.principal.symbol, recipient)
                return 0

        # The guard blocks re-entry, so the bond is only rewritten once the payout has moved.
        if stake:
            scheduler = cast("EpochScheduler", self.scheduler)
            self.token.approve(self.address, scheduler.address, amount)
            scheduler.stake(self.address, amount, recipient, height=height)
            if scheduler.warmup_period == 0:
                scheduler.claim(recipient)
        else:
            self.token.transfer(self.address, recipient, amount)

        if full:
            del self._bonds[recipient]
        else:
            elapsed = bond.blocks_since(height)
            bond.payout -= amount
            bond.vesting_remaining -= elapsed
            bond.last_update_block = height

        metrics.record_redemption(full)
        log.info(
            "bond: %s redeem recipient=%s amount=%d full=%s staked=%s",
            self.principal.symbol, recipient, amount, full, stake,
        )
        return amount


__all__ = ["BondEngine"]
