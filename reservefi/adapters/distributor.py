from __future__ import annotations

"""
Reference yield-rate policy.

Each recipient is paid `rate_ppm` millionths of the governance token's supply
once per distributor epoch. Rewards are minted through the treasury's
`mint_rewards`, and each mint is clamped to the treasury's excess reserves so
staking yield can never exceed what the reserves back.

The distributor keeps its own block cadence; the epoch scheduler simply calls
`distribute(height)` after each rebase and the call is a no-op until
`next_epoch_block` has been reached.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, List

from ..errors import InvalidAddress, InvalidParameter, Unauthorized
from ..fixedpoint import PPM
from .token import MintableToken

if TYPE_CHECKING:  # pragma: no cover
    from ..treasury.ledger import TreasuryLedger

log = logging.getLogger(__name__)


@dataclass
class RewardInfo:
    recipient: str
    rate_ppm: int


class RateDistributor:
    def __init__(
        self,
        treasury: "TreasuryLedger",
        token: MintableToken,
        *,
        owner: str,
        epoch_length: int,
        next_epoch_block: int,
        address: str = "distributor",
    ) -> None:
        if epoch_length <= 0:
            raise InvalidParameter("epoch_length must be positive", name="epoch_length", value=epoch_length)
        self.treasury = treasury
        self.token = token
        self.owner = owner
        self.address = address
        self.epoch_length = int(epoch_length)
        self.next_epoch_block = int(next_epoch_block)
        self.info: List[RewardInfo] = []

    def _only_owner(self, caller: str) -> None:
        if caller != self.owner:
            raise Unauthorized("only owner", caller=caller)

    def add_recipient(self, caller: str, recipient: str, rate_ppm: int) -> None:
        self._only_owner(caller)
        if not recipient:
            raise InvalidAddress("zero address")
        if not (0 <= rate_ppm <= PPM):
            raise InvalidParameter("rate must be within [0, 1e6]", name="rate_ppm", value=rate_ppm)
        self.info.append(RewardInfo(recipient=recipient, rate_ppm=rate_ppm))

    def remove_recipient(self, caller: str, index: int) -> RewardInfo:
        self._only_owner(caller)
        return self.info.pop(index)

    def next_reward_at(self, rate_ppm: int) -> int:
        return self.token.total_supply() * rate_ppm // PPM

    def next_reward_for(self, recipient: str) -> int:
        return sum(self.next_reward_at(i.rate_ppm) for i in self.info if i.recipient == recipient)

    def distribute(self, height: int) -> int:
        """Mint each recipient's allotment if the distributor epoch is due."""
        if self.next_epoch_block > height:
            return 0
        self.next_epoch_block += self.epoch_length
        minted = 0
        for info in self.info:
            if info.rate_ppm <= 0:
                continue
            want = self.next_reward_at(info.rate_ppm)
            amount = min(want, self.treasury.excess_reserves())
            if amount < want:
                log.warning(
                    "distributor: reward clamped to excess reserves recipient=%s want=%d got=%d",
                    info.recipient, want, amount,
                )
            if amount > 0:
                self.treasury.mint_rewards(self.address, info.recipient, amount)
                minted += amount
        log.info("distributor: height=%d minted=%d next_epoch_block=%d", height, minted, self.next_epoch_block)
        return minted


__all__ = ["RewardInfo", "RateDistributor"]
