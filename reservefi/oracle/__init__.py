"""Manipulation-resistant price oracle."""

from .twap import PriceObservation, TwapOracle

__all__ = ["PriceObservation", "TwapOracle"]
