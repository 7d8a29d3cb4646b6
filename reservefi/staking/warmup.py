from __future__ import annotations

"""
Warmup custody for freshly staked positions.

Stakes do not hand out the staked token straight away: the scheduler parks it
in a `WarmupVault` and records a `WarmupClaim` for the recipient. The claim
is held in gons so it keeps earning rebases while it waits; once the epoch
number reaches `expiry` the scheduler asks the vault to release it.
"""

from dataclasses import dataclass

from ..errors import Unauthorized
from .rebase import RebaseLedger


@dataclass
class WarmupClaim:
    deposit: int  # governance tokens handed in
    gons: int
    expiry: int  # epoch number from which the claim may be taken
    lock: bool = False


class WarmupVault:
    """Holds staked tokens in warmup; only the scheduler may move them."""

    def __init__(self, ledger: RebaseLedger, *, scheduler: str, address: str = "staking-warmup") -> None:
        self.ledger = ledger
        self.scheduler = scheduler
        self.address = address

    def held(self) -> int:
        return self.ledger.balance_of(self.address)

    def retrieve(self, caller: str, staker: str, amount: int) -> None:
        if caller != self.scheduler:
            raise Unauthorized("only the staking scheduler may retrieve", caller=caller)
        self.ledger.transfer(self.address, staker, amount)


__all__ = ["WarmupClaim", "WarmupVault"]
