from __future__ import annotations

"""
Wiring for a complete in-memory protocol.

`build_system()` creates the governance and reference tokens, seeds the
liquidity pool, and connects treasury, oracle, bond markets, rebase ledger,
epoch scheduler and reward distributor with their genesis roles. The CLI
`simulate` command and the test-suite fixtures both start from here.

Amounts passed to `build_system` are whole tokens; everything inside the
returned system is base units.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional

from .adapters.distributor import RateDistributor
from .adapters.pool import ConstantProductPool
from .adapters.token import MintableToken, Token
from .adapters.valuation import LiquidityValuation
from .bonds.engine import BondEngine
from .config import ReserveConfig
from .oracle.twap import TwapOracle
from .staking.rebase import RebaseLedger
from .staking.scheduler import EpochScheduler
from .treasury.ledger import TreasuryLedger
from .treasury.roles import Role

log = logging.getLogger(__name__)


@dataclass
class ReserveSystem:
    config: ReserveConfig
    owner: str
    token: MintableToken
    reference: Token
    pool: ConstantProductPool
    valuation: LiquidityValuation
    treasury: TreasuryLedger
    oracle: TwapOracle
    ledger: RebaseLedger
    scheduler: EpochScheduler
    distributor: RateDistributor
    bonds: Dict[str, BondEngine]

    def tokens(self, whole: int) -> int:
        return whole * 10**self.token.decimals

    def reference_units(self, whole: int) -> int:
        return whole * 10**self.reference.decimals


def build_system(
    cfg: Optional[ReserveConfig] = None,
    *,
    owner: str = "dao",
    timestamp: int = 0,
    liquidity_tokens: int = 1_000_000,
    liquidity_reference: int = 1_000_000,
    reserve_seed: int = 2_000_000,
    mint_allocation: int = 10_000_000,
) -> ReserveSystem:
    cfg = cfg or ReserveConfig()
    cfg.validate()
    tok_unit = 10**cfg.token_decimals
    ref_unit = 10**cfg.reference_decimals

    token = MintableToken("GOV", cfg.token_decimals, owner=owner)
    reference = Token("DAI", cfg.reference_decimals)

    # Seed liquidity so the pool quotes a price from genesis.
    pool = ConstantProductPool(token, reference, symbol="GOV-DAI", created_at=timestamp)
    token.set_allocation(owner, owner, liquidity_tokens * tok_unit)
    token.mint(owner, owner, liquidity_tokens * tok_unit)
    reference.faucet(owner, (liquidity_reference + reserve_seed) * ref_unit)
    pool.add_liquidity(owner, liquidity_tokens * tok_unit, liquidity_reference * ref_unit, now=timestamp)

    valuation = LiquidityValuation(token_decimals=cfg.token_decimals)
    valuation.register(pool)
    treasury = TreasuryLedger(token, owner=owner, params=cfg.treasury, valuator=valuation)
    token.set_allocation(owner, treasury.address, mint_allocation * tok_unit)

    oracle = TwapOracle(
        pool,
        token.symbol,
        window=cfg.oracle.window_seconds,
        now=timestamp,
        base_decimals=cfg.token_decimals,
        quote_decimals=cfg.reference_decimals,
    )

    ledger = RebaseLedger("sGOV", cfg.token_decimals, initial_supply=cfg.staking.initial_supply, owner=owner)
    scheduler = EpochScheduler(token, ledger, owner=owner, params=cfg.staking)
    ledger.initialize(owner, scheduler.address)
    ledger.set_index(owner, tok_unit)

    distributor = RateDistributor(
        treasury,
        token,
        owner=owner,
        epoch_length=cfg.distributor.epoch_length_blocks,
        next_epoch_block=cfg.staking.first_epoch_block,
    )
    distributor.add_recipient(owner, scheduler.address, cfg.distributor.reward_rate_ppm)
    scheduler.set_distributor(owner, distributor)

    bonds: Dict[str, BondEngine] = {}
    for principal in (reference, pool):
        engine = BondEngine(
            principal,
            treasury,
            oracle,
            owner=owner,
            fee_recipient=f"{owner}-fees",
            params=cfg.bond,
            scheduler=scheduler,
        )
        engine.initialize(owner, cfg.terms)
        bonds[principal.symbol] = engine

    treasury.grant_genesis_role(owner, Role.RESERVE_TOKEN, reference.symbol, token=reference)
    treasury.grant_genesis_role(owner, Role.LIQUIDITY_TOKEN, pool.symbol, token=pool)
    treasury.grant_genesis_role(owner, Role.RESERVE_DEPOSITOR, owner)
    treasury.grant_genesis_role(owner, Role.RESERVE_DEPOSITOR, bonds[reference.symbol].address)
    treasury.grant_genesis_role(owner, Role.LIQUIDITY_DEPOSITOR, bonds[pool.symbol].address)
    treasury.grant_genesis_role(owner, Role.REWARD_MANAGER, distributor.address)
    treasury.seal_genesis(owner)

    # Back the liquidity tokens already in circulation.
    if reserve_seed:
        reference.approve(owner, treasury.address, reserve_seed * ref_unit)
        treasury.deposit(owner, reserve_seed * ref_unit, reference.symbol, 0)

    log.info(
        "system: built owner=%s supply=%d reserves=%d excess=%d",
        owner, token.total_supply(), treasury.total_reserves, treasury.excess_reserves(),
    )
    return ReserveSystem(
        config=cfg,
        owner=owner,
        token=token,
        reference=reference,
        pool=pool,
        valuation=valuation,
        treasury=treasury,
        oracle=oracle,
        ledger=ledger,
        scheduler=scheduler,
        distributor=distributor,
        bonds=bonds,
    )


__all__ = ["ReserveSystem", "build_system"]
