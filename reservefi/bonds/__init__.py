"""
Bond market: discounted issuance against deposited collateral, vested over a
block-counted term.
"""

from .engine import BondEngine
from .types import Bond, BondParameter, BondQuote

__all__ = ["BondEngine", "Bond", "BondParameter", "BondQuote"]
