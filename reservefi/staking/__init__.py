"""
Staking: the rebasing staked-token ledger, warmup custody and the epoch
scheduler that drives rebases.
"""

from .rebase import MAX_SUPPLY, RebaseLedger, RebaseRecord
from .scheduler import Epoch, EpochScheduler
from .warmup import WarmupClaim, WarmupVault

__all__ = [
    "MAX_SUPPLY",
    "RebaseLedger",
    "RebaseRecord",
    "Epoch",
    "EpochScheduler",
    "WarmupClaim",
    "WarmupVault",
]
