from __future__ import annotations

"""
Fixed-window time-weighted average price of the governance token.

The oracle stores one observation of the pool's cumulative price. Once a full
averaging window has elapsed, `update()` computes

    average = (cumulative_now - cumulative_last) / elapsed

as UQ112x112 and replaces the observation. Inside the window `update()` is a
no-op, so anyone may call it any number of times without moving the price.
`consult()` refreshes lazily and scales an input amount of the governance
token by the stored average, returning reference-asset units.

A zero average (empty pool, or no complete window yet) is returned as 0; the
bond engine treats that as `InvalidPrice`, never as a free bond.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .. import metrics
from ..adapters.interfaces import CumulativePriceSource
from ..errors import InvalidParameter, UnsupportedAsset
from ..fixedpoint import decode_uq112x112, rescale

log = logging.getLogger(__name__)


@dataclass
class PriceObservation:
    price_cumulative_last: int
    timestamp_last: int
    price_average: Optional[int] = None  # UQ112x112, quote per base unit
    updates: int = 0


class TwapOracle:
    """TWAP of `base_asset` quoted in the pool's other asset."""

    def __init__(
        self,
        pool: CumulativePriceSource,
        base_asset: str,
        *,
        window: int,
        now: int,
        base_decimals: int = 9,
        quote_decimals: int = 18,
    ) -> None:
        if window <= 0:
            raise InvalidParameter("window must be positive", name="window", value=window)
        symbols = pool.symbols()
        if base_asset not in symbols:
            raise UnsupportedAsset(asset=base_asset, message="asset not in pool")
        self.pool = pool
        self.base_asset = base_asset
        self.window = int(window)
        self.base_decimals = int(base_decimals)
        self.quote_decimals = int(quote_decimals)
        self._base_is_0 = symbols[0] == base_asset
        cumulative, ts = self._current(now)
        self.observation = PriceObservation(price_cumulative_last=cumulative, timestamp_last=ts)

    def _current(self, now: int):
        p0, p1, ts = self.pool.observe(now)
        return (p0 if self._base_is_0 else p1), ts

    def elapsed(self, now: int) -> int:
        return now - self.observation.timestamp_last

    def update(self, now: int) -> bool:
        """Recompute the average if a full window has elapsed. Returns True when updated."""
        cumulative, ts = self._current(now)
        obs = self.observation
        elapsed = ts - obs.timestamp_last
        if elapsed < self.window:
            log.debug("oracle: window not elapsed (elapsed=%d window=%d)", elapsed, self.window)
            metrics.record_oracle_update(False)
            return False
        obs.price_average = (cumulative - obs.price_cumulative_last) // elapsed
        obs.price_cumulative_last = cumulative
        obs.timestamp_last = ts
        obs.updates += 1
        metrics.record_oracle_update(True)
        log.info("oracle: updated %s average=%d elapsed=%d", self.base_asset, obs.price_average, elapsed)
        return True

    def consult(self, amount_in: int, now: int) -> int:
        """Quote-asset amount for `amount_in` base units at the stored average."""
        if self.elapsed(now) >= self.window:
            self.update(now)
        avg = self.observation.price_average
        if not avg:
            return 0
        return decode_uq112x112(avg, amount_in)

    def price_wad(self, now: int) -> int:
        """Price of one whole base token in quote units, scaled to 1e18."""
        out = self.consult(10**self.base_decimals, now)
        return rescale(out, self.quote_decimals, 18)


__all__ = ["PriceObservation", "TwapOracle"]
