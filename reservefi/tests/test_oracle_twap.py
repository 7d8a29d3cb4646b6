import pytest

from reservefi import metrics
from reservefi.adapters import ConstantProductPool, Token
from reservefi.errors import InvalidParameter, UnsupportedAsset
from reservefi.oracle import TwapOracle

GOV = 10**9
DAI = 10**18
WINDOW = 3_600


def _mk_oracle(window: int = WINDOW):
    gov = Token("GOV", 9)
    dai = Token("DAI", 18)
    gov.faucet("lp", 1_000 * GOV)
    dai.faucet("lp", 1_000 * DAI)
    pool = ConstantProductPool(gov, dai, symbol="GOV-DAI", created_at=0)
    pool.add_liquidity("lp", 1_000 * GOV, 1_000 * DAI, now=0)
    oracle = TwapOracle(pool, "GOV", window=window, now=0, base_decimals=9, quote_decimals=18)
    return gov, dai, pool, oracle


def _skipped() -> float:
    return metrics.REGISTRY.get_sample_value("reservefi_oracle_updates_total", {"result": "skipped"}) or 0.0


def test_no_price_before_first_window():
    _, _, _, oracle = _mk_oracle()
    assert oracle.consult(GOV, 10) == 0
    assert oracle.price_wad(WINDOW - 1) == 0
    assert oracle.update(WINDOW - 1) is False
    assert oracle.observation.price_average is None


def test_update_after_window_sets_average():
    _, _, _, oracle = _mk_oracle()
    assert oracle.update(WINDOW) is True
    assert oracle.observation.updates == 1
    assert oracle.observation.timestamp_last == WINDOW
    assert oracle.consult(GOV, WINDOW) == DAI
    assert oracle.price_wad(WINDOW) == 10**18


def test_second_update_inside_window_is_noop():
    gov, _, pool, oracle = _mk_oracle()
    assert oracle.update(WINDOW) is True
    before = oracle.consult(GOV, WINDOW)
    snapshot = (oracle.observation.price_cumulative_last, oracle.observation.price_average)

    # a large swap right after the update cannot move the stored average
    gov.faucet("whale", 500 * GOV)
    pool.swap("whale", "GOV", 500 * GOV, now=WINDOW + 10)

    skipped = _skipped()
    assert oracle.update(WINDOW + 100) is False
    assert _skipped() == skipped + 1
    assert (oracle.observation.price_cumulative_last, oracle.observation.price_average) == snapshot
    assert oracle.consult(GOV, WINDOW + 100) == before
    assert oracle.observation.updates == 1


def test_consult_refreshes_lazily_and_is_time_weighted():
    gov, _, pool, oracle = _mk_oracle()
    oracle.update(WINDOW)
    gov.faucet("whale", 1_000 * GOV)
    pool.swap("whale", "GOV", 1_000 * GOV, now=WINDOW)  # price roughly quartered

    spot = pool.quote_out("GOV", GOV)
    p = oracle.consult(GOV, 2 * WINDOW)  # lazily updates
    assert oracle.observation.updates == 2
    assert p < DAI
    assert abs(p - spot) <= spot // 100  # whole window at the new price


def test_constructor_validation():
    gov, dai, pool, _ = _mk_oracle()
    with pytest.raises(InvalidParameter):
        TwapOracle(pool, "GOV", window=0, now=0)
    with pytest.raises(UnsupportedAsset):
        TwapOracle(pool, "XYZ", window=WINDOW, now=0)


def test_empty_pool_prices_zero():
    gov = Token("GOV", 9)
    dai = Token("DAI", 18)
    pool = ConstantProductPool(gov, dai, symbol="GOV-DAI", created_at=0)
    oracle = TwapOracle(pool, "GOV", window=60, now=0)
    assert oracle.update(60) is True
    assert oracle.consult(GOV, 60) == 0
    assert oracle.price_wad(60) == 0
