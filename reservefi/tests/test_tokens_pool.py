import pytest

from reservefi.adapters import (ConstantProductPool, CumulativePriceSource,
                                FungibleToken, LiquidityValuation,
                                MintableToken, Token)
from reservefi.errors import (InsufficientAllocation, InsufficientAllowance,
                              InsufficientBalance, InvalidAddress,
                              Unauthorized, UnsupportedAsset)
from reservefi.fixedpoint import decode_uq112x112

GOV = 10**9
DAI = 10**18


def _mk_pool(gov_amount: int = 1_000, dai_amount: int = 1_000):
    gov = Token("GOV", 9)
    dai = Token("DAI", 18)
    gov.faucet("lp", gov_amount * GOV)
    dai.faucet("lp", dai_amount * DAI)
    pool = ConstantProductPool(gov, dai, symbol="GOV-DAI", created_at=0)
    pool.add_liquidity("lp", gov_amount * GOV, dai_amount * DAI, now=0)
    return gov, dai, pool


def test_token_transfer_and_allowance():
    t = Token("DAI", 18)
    t.faucet("alice", 100)
    t.transfer("alice", "bob", 40)
    assert t.balance_of("alice") == 60
    assert t.balance_of("bob") == 40
    assert t.total_supply() == 100

    with pytest.raises(InsufficientBalance):
        t.transfer("alice", "bob", 61)
    with pytest.raises(InvalidAddress):
        t.transfer("alice", "", 1)

    t.approve("alice", "carol", 30)
    with pytest.raises(InsufficientAllowance):
        t.transfer_from("carol", "alice", "carol", 31)
    assert t.balance_of("alice") == 60  # untouched after rejection
    t.transfer_from("carol", "alice", "carol", 30)
    assert t.allowance("alice", "carol") == 0
    assert t.balance_of("carol") == 30
    assert isinstance(t, FungibleToken)


def test_mint_capability_allocation():
    gov = MintableToken("GOV", 9, owner="dao")
    with pytest.raises(Unauthorized):
        gov.set_allocation("mallory", "treasury", 100)
    gov.set_allocation("dao", "treasury", 100)
    gov.mint("treasury", "alice", 60)
    assert gov.allocation_of("treasury") == 40
    with pytest.raises(InsufficientAllocation) as ei:
        gov.mint("treasury", "alice", 41)
    assert ei.value.details["remaining"] == 40
    assert gov.balance_of("alice") == 60

    gov.burn("alice", 10)
    assert gov.total_supply() == 50
    gov.approve("alice", "treasury", 20)
    gov.burn_from("treasury", "alice", 20)
    assert gov.balance_of("alice") == 30
    assert gov.allowance("alice", "treasury") == 0
    with pytest.raises(InsufficientAllowance):
        gov.burn_from("treasury", "alice", 1)


def test_pool_accumulates_time_weighted_price():
    gov, dai, pool = _mk_pool()
    assert isinstance(pool, CumulativePriceSource)
    assert pool.symbols() == ("GOV", "DAI")
    r0, r1, ts = pool.get_reserves()
    assert (r0, r1, ts) == (1_000 * GOV, 1_000 * DAI, 0)

    p0, p1, now = pool.observe(10)
    assert now == 10
    assert decode_uq112x112(p0 // 10, GOV) == DAI  # 1 GOV = 1 DAI
    # the inverse price truncates in UQ112x112
    assert abs(decode_uq112x112(p1 // 10, DAI) - GOV) <= 1
    # observe() is counterfactual; stored accumulators only move on writes
    assert pool.price0_cumulative_last == 0


def test_pool_swap_moves_price_and_accumulator():
    gov, dai, pool = _mk_pool()
    gov.faucet("trader", 100 * GOV)
    out = pool.swap("trader", "GOV", 100 * GOV, now=60)
    assert 0 < out < 100 * DAI
    assert dai.balance_of("trader") == out
    r0, r1, _ = pool.get_reserves()
    assert r0 == 1_100 * GOV
    assert r1 == 1_000 * DAI - out
    # the first 60 seconds were accrued at the pre-swap price
    assert decode_uq112x112(pool.price0_cumulative_last // 60, GOV) == DAI
    with pytest.raises(UnsupportedAsset):
        pool.swap("trader", "XYZ", 1, now=61)


def test_liquidity_valuation_uses_sqrt_k():
    gov, dai, pool = _mk_pool()
    val = LiquidityValuation(token_decimals=9)
    with pytest.raises(UnsupportedAsset):
        val.valuation("GOV-DAI", 1)
    val.register(pool)
    assert val.k_value("GOV-DAI") == 10**24
    assert val.total_value("GOV-DAI") == 2_000 * GOV
    supply = pool.total_supply()
    assert val.valuation("GOV-DAI", supply) == 2_000 * GOV
    half = val.valuation("GOV-DAI", supply // 2)
    assert abs(half - 1_000 * GOV) <= 1

    # a price push does not inflate the sqrt(k)-based value much
    gov.faucet("whale", 500 * GOV)
    pool.swap("whale", "GOV", 500 * GOV, now=5)
    assert val.total_value("GOV-DAI") >= 2_000 * GOV
    assert val.total_value("GOV-DAI") < 2_010 * GOV
