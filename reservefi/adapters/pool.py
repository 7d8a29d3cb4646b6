from __future__ import annotations

"""
Constant-product liquidity pool with cumulative price accumulators.

This is the minimal pool surface the oracle and liquidity valuation need:
reserves of two assets, a pool-share token, and Uniswap-V2 style UQ112x112
price accumulators. Accumulators advance by `price × seconds elapsed` on the
first write of each timestamp, so a price only counts for the time it was
actually quoted; single-block manipulation barely moves a long average.

price0_cumulative tracks asset1 per asset0, price1_cumulative the inverse.
"""

import logging
from typing import Tuple

from ..errors import InsufficientReserves, InvalidAmount, UnsupportedAsset
from ..fixedpoint import encode_uq112x112, sqrt
from .token import Token

log = logging.getLogger(__name__)

SWAP_FEE_BPS = 30


class ConstantProductPool(Token):
    """x·y=k pool; the pool itself is the share token (symbol = pool symbol)."""

    def __init__(self, asset0: Token, asset1: Token, *, symbol: str, created_at: int = 0) -> None:
        super().__init__(symbol, 18)
        self.address = symbol
        self.asset0 = asset0
        self.asset1 = asset1
        self._reserve0 = 0
        self._reserve1 = 0
        self._timestamp_last = int(created_at)
        self.price0_cumulative_last = 0
        self.price1_cumulative_last = 0

    # --- views ---

    def symbols(self) -> Tuple[str, str]:
        return self.asset0.symbol, self.asset1.symbol

    def get_reserves(self) -> Tuple[int, int, int]:
        return self._reserve0, self._reserve1, self._timestamp_last

    def observe(self, now: int) -> Tuple[int, int, int]:
        """Cumulative prices as of `now`, counterfactually accruing since the last write."""
        p0, p1 = self.price0_cumulative_last, self.price1_cumulative_last
        elapsed = now - self._timestamp_last
        if elapsed > 0 and self._reserve0 and self._reserve1:
            p0 += encode_uq112x112(self._reserve1, self._reserve0) * elapsed
            p1 += encode_uq112x112(self._reserve0, self._reserve1) * elapsed
        return p0, p1, now

    # --- mutations ---

    def _update(self, balance0: int, balance1: int, now: int) -> None:
        elapsed = now - self._timestamp_last
        if elapsed > 0 and self._reserve0 and self._reserve1:
            self.price0_cumulative_last += encode_uq112x112(self._reserve1, self._reserve0) * elapsed
            self.price1_cumulative_last += encode_uq112x112(self._reserve0, self._reserve1) * elapsed
        self._reserve0 = balance0
        self._reserve1 = balance1
        if now > self._timestamp_last:
            self._timestamp_last = now

    def add_liquidity(self, provider: str, amount0: int, amount1: int, *, now: int) -> int:
        """Deposit both assets from `provider` and mint pool shares to them."""
        if amount0 <= 0 or amount1 <= 0:
            raise InvalidAmount("liquidity amounts must be positive")
        supply = self.total_supply()
        if supply == 0:
            liquidity = sqrt(amount0 * amount1)
        else:
            liquidity = min(amount0 * supply // self._reserve0, amount1 * supply // self._reserve1)
        if liquidity <= 0:
            raise InvalidAmount("insufficient liquidity minted")
        self.asset0.transfer(provider, self.address, amount0)
        self.asset1.transfer(provider, self.address, amount1)
        self._credit(provider, liquidity)
        self._update(self._reserve0 + amount0, self._reserve1 + amount1, now)
        log.debug("pool: %s add_liquidity provider=%s shares=%d", self.symbol, provider, liquidity)
        return liquidity

    def quote_out(self, asset_in: str, amount_in: int) -> int:
        if asset_in == self.asset0.symbol:
            r_in, r_out = self._reserve0, self._reserve1
        elif asset_in == self.asset1.symbol:
            r_in, r_out = self._reserve1, self._reserve0
        else:
            raise UnsupportedAsset(asset=asset_in)
        if r_in == 0 or r_out == 0:
            raise InsufficientReserves(requested=amount_in, available=0)
        in_with_fee = amount_in * (10_000 - SWAP_FEE_BPS)
        return (in_with_fee * r_out) // (r_in * 10_000 + in_with_fee)

    def swap(self, trader: str, asset_in: str, amount_in: int, *, now: int) -> int:
        """Exact-input swap; returns amount out."""
        if amount_in <= 0:
            raise InvalidAmount(amount=amount_in)
        out = self.quote_out(asset_in, amount_in)
        if asset_in == self.asset0.symbol:
            self.asset0.transfer(trader, self.address, amount_in)
            self.asset1.transfer(self.address, trader, out)
            self._update(self._reserve0 + amount_in, self._reserve1 - out, now)
        else:
            self.asset1.transfer(trader, self.address, amount_in)
            self.asset0.transfer(self.address, trader, out)
            self._update(self._reserve0 - out, self._reserve1 + amount_in, now)
        return out


__all__ = ["ConstantProductPool", "SWAP_FEE_BPS"]
