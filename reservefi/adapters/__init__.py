"""
In-memory implementations of the collaborators the accounting core consumes:
tokens and the mint capability, the liquidity pool, pooled-liquidity
valuation, and a reference yield-rate policy.
"""

from .distributor import RateDistributor, RewardInfo
from .interfaces import (CumulativePriceSource, FungibleToken,
                         LiquidityValuator, MintCapability, YieldRatePolicy)
from .pool import ConstantProductPool
from .token import MintableToken, Token
from .valuation import LiquidityValuation

__all__ = [
    "Token",
    "MintableToken",
    "ConstantProductPool",
    "LiquidityValuation",
    "RateDistributor",
    "RewardInfo",
    "FungibleToken",
    "MintCapability",
    "CumulativePriceSource",
    "LiquidityValuator",
    "YieldRatePolicy",
]
