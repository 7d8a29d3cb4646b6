from __future__ import annotations

"""
reservefi.adapters.interfaces
=============================

Structural interfaces for the collaborators the accounting core consumes but
does not own. The in-memory implementations in this package satisfy them; a
host integration can inject anything with the same shape.

Consumed
--------
- FungibleToken        custody of reserve/liquidity assets and the governance token
- MintCapability       `mint(recipient, amount)` against an externally managed
                       allocation, `burn`/`burn_from` for debt repayment
- CumulativePriceSource  the underlying liquidity pool's price accumulators
- LiquidityValuator    reference-asset value of pooled-liquidity collateral
- YieldRatePolicy      mints the next epoch's staking allotment
"""

from typing import Protocol, Tuple, runtime_checkable


@runtime_checkable
class FungibleToken(Protocol):
    symbol: str
    decimals: int

    def total_supply(self) -> int:
        """Return total supply in base units."""

    def balance_of(self, account: str) -> int:
        """Return the balance of `account`."""

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        """Move `amount` from sender to recipient or raise InsufficientBalance."""

    def approve(self, owner: str, spender: str, amount: int) -> None:
        """Set the allowance of spender over owner's balance."""

    def allowance(self, owner: str, spender: str) -> int:
        """Return the remaining allowance."""

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> None:
        """Spend allowance to move owner's funds; raises InsufficientAllowance."""


@runtime_checkable
class MintCapability(FungibleToken, Protocol):
    def allocation_of(self, minter: str) -> int:
        """Remaining amount `minter` may still mint."""

    def mint(self, minter: str, recipient: str, amount: int) -> None:
        """Mint against minter's allocation or raise InsufficientAllocation."""

    def burn(self, holder: str, amount: int) -> None:
        """Destroy holder's own tokens."""

    def burn_from(self, spender: str, holder: str, amount: int) -> None:
        """Destroy holder's tokens using spender's allowance."""


@runtime_checkable
class CumulativePriceSource(Protocol):
    def observe(self, now: int) -> Tuple[int, int, int]:
        """
        Return (price0_cumulative, price1_cumulative, timestamp) as of `now`,
        including accumulation since the pool's last write.
        """

    def symbols(self) -> Tuple[str, str]:
        """(asset0, asset1) symbols; price0 is asset1 per asset0."""


@runtime_checkable
class LiquidityValuator(Protocol):
    def valuation(self, pooled_asset: str, amount: int) -> int:
        """Reference value of `amount` pool shares, in governance-token decimals."""


@runtime_checkable
class YieldRatePolicy(Protocol):
    def distribute(self, height: int) -> int:
        """Mint newly available yield for the epoch ending at/before `height`; return amount minted."""


__all__ = [
    "FungibleToken",
    "MintCapability",
    "CumulativePriceSource",
    "LiquidityValuator",
    "YieldRatePolicy",
]
