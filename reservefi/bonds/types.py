from __future__ import annotations

"""
Bond records and quotes.

- Bond is the single open position of one depositor. Amounts are base units:
  `amount_bonded` in the principal asset, `payout` in governance tokens still
  owed, and `price_paid` the discounted price (1e18-scaled) of the latest
  deposit.
- BondQuote is the result of pricing a deposit without touching state.

This module is intentionally small and pure.
"""


from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict

from ..fixedpoint import BPS


class BondParameter(Enum):
    """Bond terms adjustable after initialization."""

    VESTING = "vesting_blocks"
    PAYOUT = "max_payout_bps"
    FEE = "fee_bps"
    DEBT = "max_debt"
    DISCOUNT = "discount_bps"


@dataclass
class Bond:
    amount_bonded: int
    payout: int
    vesting_remaining: int
    last_update_block: int
    price_paid: int

    def blocks_since(self, height: int) -> int:
        return max(0, height - self.last_update_block)

    def percent_vested_bps(self, height: int) -> int:
        """Vested share of the remaining payout, in bps, capped at 100%."""
        if self.vesting_remaining <= 0:
            return BPS
        pct = self.blocks_since(height) * BPS // self.vesting_remaining
        return pct if pct < BPS else BPS

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class BondQuote:
    """
    value:        deposit value in governance-token base units
    oracle_price: TWAP price of one token in reference units (1e18-scaled)
    price:        discounted price actually charged (1e18-scaled)
    payout:       gross payout before fee
    """

    value: int
    oracle_price: int
    price: int
    payout: int

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


__all__ = ["BondParameter", "Bond", "BondQuote"]
