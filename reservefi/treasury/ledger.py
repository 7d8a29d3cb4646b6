from __future__ import annotations

"""
Treasury Ledger - reserves, debt and mint authorization
-------------------------------------------------------

The single owned ledger every other component goes through to move reserves
or mint governance tokens. It keeps:
  • per-asset custody counters (`reserves`) and the aggregate reserve value
    (`total_reserves`, in governance-token base units)
  • outstanding debt per asset (raw asset units), per debtor and globally
    (value units)
  • role flags for depositors, spenders, managers, debtors and the reward
    manager, changed through a timelock

Minting never happens on the treasury's own authority: the governance token's
mint capability grants the treasury an allocation, and `deposit` /
`mint_rewards` draw it down.

Trust boundary: `deposit` mints the caller-supplied `mint_value` without
re-deriving it from an oracle. Only audited depositors (the bond engine)
hold the depositor roles.

Every method validates everything it can before touching state, then moves
tokens, then writes counters.

Excess reserves
~~~~~~~~~~~~~~~
    excess = total_reserves - (token_supply - total_debt)   (floored at 0)

This bounds how much the yield-rate policy may mint as staking rewards.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from .. import metrics
from ..adapters.interfaces import FungibleToken, LiquidityValuator
from ..adapters.token import MintableToken
from ..config import TreasuryParams
from ..errors import (DebtLimitExceeded, InsufficientAllocation,
                      InsufficientReserves, InvalidAddress, InvalidAmount,
                      InvalidParameter, Unauthorized, UnsupportedAsset)
from ..fixedpoint import rescale
from ..guard import ReentrancyGuard, non_reentrant
from .roles import TOKEN_ROLES, QueuedChange, Role, RoleBook

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class TreasuryEvent:
    seq: int
    op: str
    account: str
    asset: str
    amount: int
    value: int
    meta: Dict[str, str] = field(default_factory=dict)


class TreasuryLedger:
    def __init__(
        self,
        token: MintableToken,
        *,
        owner: str,
        params: Optional[TreasuryParams] = None,
        valuator: Optional[LiquidityValuator] = None,
        address: str = "treasury",
    ) -> None:
        if not owner:
            raise InvalidAddress("zero owner")
        self.params = params or TreasuryParams()
        self.params.validate()
        self.token = token
        self.owner = owner
        self.address = address
        self.valuator = valuator

        self.roles = RoleBook(self.params.timelock_blocks)
        self._assets: Dict[str, FungibleToken] = {}
        self.reserves: Dict[str, int] = {}
        self.total_reserves = 0
        self.debt: Dict[str, int] = {}
        self.debtor_debt: Dict[str, int] = {}
        self.total_debt = 0
        self._debt_limits: Dict[str, int] = {}
        self._genesis_open = True
        self._journal: List[TreasuryEvent] = []
        self._guard = ReentrancyGuard()

    # --- access helpers ---

    def _only_owner(self, caller: str) -> None:
        if caller != self.owner:
            raise Unauthorized("only owner", caller=caller)

    def _require_role(self, role: Role, caller: str) -> None:
        if not self.roles.has(role, caller):
            raise Unauthorized("missing role", caller=caller, role=role.value)

    def has_role(self, role: Role, account: str) -> bool:
        return self.roles.has(role, account)

    def is_reserve_token(self, asset: str) -> bool:
        return self.roles.has(Role.RESERVE_TOKEN, asset)

    def is_liquidity_token(self, asset: str) -> bool:
        return self.roles.has(Role.LIQUIDITY_TOKEN, asset)

    def asset(self, symbol: str) -> FungibleToken:
        tok = self._assets.get(symbol)
        if tok is None:
            raise UnsupportedAsset(asset=symbol)
        return tok

    def _record(self, op: str, account: str, asset: str, amount: int, value: int, **meta: str) -> TreasuryEvent:
        ev = TreasuryEvent(
            seq=len(self._journal) + 1,
            op=op,
            account=account,
            asset=asset,
            amount=amount,
            value=value,
            meta=dict(meta),
        )
        self._journal.append(ev)
        return ev

    def journal(self) -> Iterable[TreasuryEvent]:
        return tuple(self._journal)

    # --- valuation ---

    def value_of(self, asset: str, amount: int) -> int:
        """Reference value of `amount` of `asset`, in governance-token base units."""
        if self.is_reserve_token(asset):
            return rescale(amount, self.asset(asset).decimals, self.token.decimals)
        if self.is_liquidity_token(asset):
            if self.valuator is None:
                raise UnsupportedAsset(asset=asset, message="no liquidity valuator configured")
            return self.valuator.valuation(asset, amount)
        raise UnsupportedAsset(asset=asset)

    def excess_reserves(self) -> int:
        liabilities = self.token.total_supply() - self.total_debt
        excess = self.total_reserves - liabilities
        return excess if excess > 0 else 0

    def mint_allocation(self) -> int:
        return self.token.allocation_of(self.address)

    def debt_limit(self, debtor: str) -> int:
        return self._debt_limits.get(debtor, self.params.default_debt_limit)

    # --- role administration ---

    def _apply_role(self, role: Role, account: str, token: Optional[FungibleToken]) -> bool:
        if role in TOKEN_ROLES and not self.roles.has(role, account):
            if token is None or token.symbol != account:
                raise InvalidParameter("token roles need the matching token", name="token", value=account)
            if role is Role.LIQUIDITY_TOKEN and self.valuator is None:
                raise UnsupportedAsset(asset=account, message="no liquidity valuator configured")
            self._assets[account] = token
        enabled = self.roles.flip(role, account)
        log.info("treasury: role %s %s -> %s", role.value, account, enabled)
        return enabled

    def grant_genesis_role(
        self, caller: str, role: Role, account: str, *, token: Optional[FungibleToken] = None
    ) -> bool:
        """Enable a role without the timelock; only before `seal_genesis()`."""
        self._only_owner(caller)
        if not self._genesis_open:
            raise Unauthorized("genesis sealed; queue the change instead", caller=caller, role=role.value)
        if self.roles.has(role, account):
            return True
        return self._apply_role(role, account, token)

    def seal_genesis(self, caller: str) -> None:
        self._only_owner(caller)
        self._genesis_open = False

    def queue(self, caller: str, role: Role, account: str, *, height: int) -> QueuedChange:
        self._only_owner(caller)
        if not account:
            raise InvalidAddress("zero address")
        change = self.roles.queue(role, account, height=height)
        log.info("treasury: queued %s %s ready_height=%d", role.value, account, change.ready_height)
        return change

    def toggle(
        self,
        caller: str,
        role: Role,
        account: str,
        *,
        height: int,
        token: Optional[FungibleToken] = None,
    ) -> bool:
        self._only_owner(caller)
        self.roles.require_ready(role, account, height=height)
        return self._apply_role(role, account, token)

    def set_debt_limit(self, caller: str, debtor: str, limit: int) -> None:
        self._only_owner(caller)
        if limit < 0:
            raise InvalidParameter("debt limit must be non-negative", name="limit", value=limit)
        self._debt_limits[debtor] = limit

    # --- deposits ---

    def ensure_can_deposit(self, caller: str, asset: str) -> None:
        """Raise unless `caller` may deposit `asset`."""
        if self.is_reserve_token(asset):
            self._require_role(Role.RESERVE_DEPOSITOR, caller)
        elif self.is_liquidity_token(asset):
            self._require_role(Role.LIQUIDITY_DEPOSITOR, caller)
        else:
            raise UnsupportedAsset(asset=asset)

    @non_reentrant
    def deposit(self, caller: str, amount: int, asset: str, mint_value: int) -> int:
        """
        Take custody of `amount` of `asset` from `caller`, credit its value to
        reserves and mint `mint_value` governance tokens to `caller`.
        Returns the reserve value credited.
        """
        if amount <= 0:
            raise InvalidAmount(amount=amount)
        if mint_value < 0:
            raise InvalidAmount("mint value must be non-negative", amount=mint_value)
        self.ensure_can_deposit(caller, asset)
        value = self.value_of(asset, amount)
        allocation = self.mint_allocation()
        if mint_value > allocation:
            raise InsufficientAllocation(minter=self.address, requested=mint_value, remaining=allocation)

        self.asset(asset).transfer_from(self.address, caller, self.address, amount)
        self.reserves[asset] = self.reserves.get(asset, 0) + amount
        self.total_reserves += value
        if mint_value:
            self.token.mint(self.address, caller, mint_value)

        self._record("deposit", caller, asset, amount, value, mint=str(mint_value))
        metrics.record_treasury_deposit(asset, self.excess_reserves())
        log.info("treasury: deposit asset=%s amount=%d value=%d minted=%d", asset, amount, value, mint_value)
        return value

    @non_reentrant
    def withdraw(self, caller: str, amount: int, asset: str) -> int:
        """Burn governance tokens of equal value from `caller` and release reserves to them."""
        if amount <= 0:
            raise InvalidAmount(amount=amount)
        if not self.is_reserve_token(asset):
            raise UnsupportedAsset(asset=asset)
        self._require_role(Role.RESERVE_SPENDER, caller)
        held = self.reserves.get(asset, 0)
        if amount > held:
            raise InsufficientReserves(requested=amount, available=held)
        value = self.value_of(asset, amount)

        self.token.burn_from(self.address, caller, value)
        self.asset(asset).transfer(self.address, caller, amount)
        self.reserves[asset] = held - amount
        self.total_reserves -= value

        self._record("withdraw", caller, asset, amount, value)
        log.info("treasury: withdraw asset=%s amount=%d value=%d", asset, amount, value)
        return value

    # --- debt ---

    def _require_manager(self, caller: str, asset: str) -> None:
        if self.is_reserve_token(asset):
            role = Role.RESERVE_MANAGER
        elif self.is_liquidity_token(asset):
            role = Role.LIQUIDITY_MANAGER
        else:
            raise UnsupportedAsset(asset=asset)
        if not (self.roles.has(role, caller) or self.roles.has(Role.DEBTOR, caller)):
            raise Unauthorized("missing manager role", caller=caller, role=role.value)

    @non_reentrant
    def borrow_reserves(self, caller: str, amount: int, asset: str) -> int:
        """
        Lend reserves to a manager. Custody leaves the treasury but the value
        stays in `total_reserves`; it is carried as outstanding debt instead.
        """
        if amount <= 0:
            raise InvalidAmount(amount=amount)
        self._require_manager(caller, asset)
        held = self.reserves.get(asset, 0)
        if amount > held:
            raise InsufficientReserves(requested=amount, available=held)
        value = self.value_of(asset, amount)
        owed = self.debtor_debt.get(caller, 0)
        limit = self.debt_limit(caller)
        if owed + value > limit:
            raise DebtLimitExceeded(debtor=caller, requested=owed + value, limit=limit)

        self.asset(asset).transfer(self.address, caller, amount)
        self.reserves[asset] = held - amount
        self.debt[asset] = self.debt.get(asset, 0) + amount
        self.debtor_debt[caller] = owed + value
        self.total_debt += value

        self._record("borrow", caller, asset, amount, value)
        log.info("treasury: borrow debtor=%s asset=%s amount=%d value=%d", caller, asset, amount, value)
        return value

    @non_reentrant
    def repay_reserves(self, caller: str, amount: int, asset: str) -> int:
        """Return borrowed reserves; clears debt up to what the caller owes."""
        if amount <= 0:
            raise InvalidAmount(amount=amount)
        self._require_manager(caller, asset)
        value = self.value_of(asset, amount)
        owed = self.debtor_debt.get(caller, 0)
        if value > owed:
            raise InvalidAmount("repayment exceeds debt", amount=value, details={"owed": owed})

        self.asset(asset).transfer_from(self.address, caller, self.address, amount)
        self.reserves[asset] = self.reserves.get(asset, 0) + amount
        self.debt[asset] = max(0, self.debt.get(asset, 0) - amount)
        self.debtor_debt[caller] = owed - value
        self.total_debt -= value

        self._record("repay", caller, asset, amount, value)
        log.info("treasury: repay debtor=%s asset=%s amount=%d value=%d", caller, asset, amount, value)
        return value

    @non_reentrant
    def repay_debt_with_token(self, caller: str, amount: int, asset: str) -> int:
        """
        Settle reserve debt by burning governance tokens 1:1 against its value.
        The lent reserves are written off the reserve total.
        """
        if amount <= 0:
            raise InvalidAmount(amount=amount)
        if not self.is_reserve_token(asset):
            raise UnsupportedAsset(asset=asset, message="token repayment only for reserve assets")
        self._require_manager(caller, asset)
        owed = self.debtor_debt.get(caller, 0)
        if amount > owed:
            raise InvalidAmount("repayment exceeds debt", amount=amount, details={"owed": owed})

        self.token.burn_from(self.address, caller, amount)
        raw = rescale(amount, self.token.decimals, self.asset(asset).decimals)
        self.debt[asset] = max(0, self.debt.get(asset, 0) - raw)
        self.debtor_debt[caller] = owed - amount
        self.total_debt -= amount
        self.total_reserves -= amount

        self._record("repay_with_token", caller, asset, raw, amount)
        log.info("treasury: repay_with_token debtor=%s value=%d", caller, amount)
        return amount

    # --- rewards ---

    @non_reentrant
    def mint_rewards(self, caller: str, recipient: str, amount: int) -> None:
        """Mint staking rewards, bounded by excess reserves."""
        self._require_role(Role.REWARD_MANAGER, caller)
        if not recipient:
            raise InvalidAddress("zero recipient")
        if amount <= 0:
            raise InvalidAmount(amount=amount)
        excess = self.excess_reserves()
        if amount > excess:
            raise InsufficientReserves(requested=amount, available=excess)
        self.token.mint(self.address, recipient, amount)
        self._record("mint_rewards", recipient, self.token.symbol, amount, amount, manager=caller)
        metrics.record_rewards_minted(self.excess_reserves())
        log.info("treasury: mint_rewards recipient=%s amount=%d", recipient, amount)

    # --- audit ---

    @non_reentrant
    def audit_reserves(self, caller: str) -> int:
        """Recompute custody counters and total reserves from token balances plus lent reserves."""
        self._only_owner(caller)
        total = 0
        for symbol, tok in sorted(self._assets.items()):
            if not (self.is_reserve_token(symbol) or self.is_liquidity_token(symbol)):
                continue
            held = tok.balance_of(self.address)
            self.reserves[symbol] = held
            total += self.value_of(symbol, held + self.debt.get(symbol, 0))
        self.total_reserves = total
        self._record("audit", caller, "", 0, total)
        log.info("treasury: audit total_reserves=%d", total)
        return total


__all__ = ["TreasuryEvent", "TreasuryLedger"]
