from __future__ import annotations

"""
Reference-asset valuation of pooled-liquidity collateral.

A pool share is valued at its slice of the pool's "risk-free" value
2·√k, where k = reserve0 × reserve1 normalised so that √k lands in the
governance token's decimals. Using √k instead of marked-to-market reserves
makes the value independent of the current pool price, so a price push
inside the pool does not inflate what a share is worth to the treasury.
"""

from typing import Dict

from ..errors import UnsupportedAsset
from ..fixedpoint import sqrt
from .pool import ConstantProductPool


class LiquidityValuation:
    def __init__(self, *, token_decimals: int = 9) -> None:
        self.token_decimals = int(token_decimals)
        self._pools: Dict[str, ConstantProductPool] = {}

    def register(self, pool: ConstantProductPool) -> None:
        self._pools[pool.symbol] = pool

    def _pool(self, pooled_asset: str) -> ConstantProductPool:
        pool = self._pools.get(pooled_asset)
        if pool is None:
            raise UnsupportedAsset(asset=pooled_asset, message="no valuation for pooled asset")
        return pool

    def k_value(self, pooled_asset: str) -> int:
        pool = self._pool(pooled_asset)
        r0, r1, _ = pool.get_reserves()
        decimals = pool.asset0.decimals + pool.asset1.decimals
        target = 2 * self.token_decimals
        if decimals >= target:
            return (r0 * r1) // 10 ** (decimals - target)
        return r0 * r1 * 10 ** (target - decimals)

    def total_value(self, pooled_asset: str) -> int:
        return 2 * sqrt(self.k_value(pooled_asset))

    def valuation(self, pooled_asset: str, amount: int) -> int:
        pool = self._pool(pooled_asset)
        supply = pool.total_supply()
        if supply == 0:
            return 0
        return self.total_value(pooled_asset) * amount // supply


__all__ = ["LiquidityValuation"]
