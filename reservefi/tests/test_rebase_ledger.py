import pytest

from reservefi.errors import (InsufficientAllowance, InsufficientBalance,
                              InvalidParameter, Unauthorized)
from reservefi.fixedpoint import WAD
from reservefi.staking import MAX_SUPPLY, RebaseLedger

GOV = 10**9
POOL = "staking"


def _mk_ledger(initial_supply: int = 1_000_000 * GOV, **holders: int) -> RebaseLedger:
    ledger = RebaseLedger("sGOV", 9, initial_supply=initial_supply, owner="dao")
    ledger.initialize("dao", POOL)
    for who, amount in holders.items():
        ledger.transfer(POOL, who, amount)
    return ledger


def _sum_balances(ledger: RebaseLedger, accounts) -> int:
    return sum(ledger.balance_of(a) for a in accounts)


def test_genesis_units_divide_exactly():
    ledger = _mk_ledger(initial_supply=5_000_000 * GOV)
    assert ledger.total_gons % (5_000_000 * GOV) == 0
    assert ledger.gons_per_fragment * ledger.total_supply() == ledger.total_gons
    assert ledger.balance_of(POOL) == 5_000_000 * GOV
    assert ledger.circulating_supply() == 0
    with pytest.raises(InvalidParameter):
        ledger.initialize("dao", "other")


def test_rebase_grows_balances_by_profit_share():
    # circulating = total = 1,000,000; profit 100,000 -> supply 1,100,000
    ledger = _mk_ledger(alice=GOV, bob=999_999 * GOV)
    assert ledger.circulating_supply() == 1_000_000 * GOV
    new_total = ledger.rebase(POOL, 100_000 * GOV, 1, height=2_200)
    assert new_total == 1_100_000 * GOV
    assert ledger.balance_of("alice") == 1_100_000_000  # 1.1 tokens
    rec = ledger.history()[-1]
    assert rec.epoch == 1
    assert rec.amount_rebased == 100_000 * GOV
    assert rec.total_staked_before == 1_000_000 * GOV
    assert rec.total_staked_after == 1_100_000 * GOV
    assert rec.rebase_pct == WAD // 10
    assert rec.height == 2_200


def test_pool_holdings_do_not_compound():
    # half the supply still sits in the pool: profit is spread over circulating only
    ledger = _mk_ledger(alice=500_000 * GOV)
    ledger.rebase(POOL, 50_000 * GOV, 1)
    assert ledger.total_supply() == 1_100_000 * GOV
    assert abs(ledger.balance_of("alice") - 550_000 * GOV) <= 1
    assert abs(ledger.circulating_supply() - 550_000 * GOV) <= 1


def test_zero_profit_short_circuits():
    ledger = _mk_ledger()
    gpf = ledger.gons_per_fragment
    assert ledger.rebase(POOL, 0, 7) == 1_000_000 * GOV
    assert ledger.gons_per_fragment == gpf
    rec = ledger.history()[-1]
    assert (rec.epoch, rec.amount_rebased, rec.rebase_pct) == (7, 0, 0)


def test_profit_with_nothing_circulating():
    ledger = _mk_ledger()
    assert ledger.rebase(POOL, 10 * GOV, 1) == 1_000_010 * GOV
    assert ledger.history()[-1].rebase_pct == 0


def test_only_pool_may_rebase():
    ledger = _mk_ledger()
    with pytest.raises(Unauthorized):
        ledger.rebase("dao", 1, 1)
    assert ledger.history() == ()


def test_rebase_fairness_across_holders():
    holders = {"a": 1, "b": 7 * GOV, "c": 123_456_789_012, "d": 250_000 * GOV}
    ledger = _mk_ledger(**holders)
    old_supply = ledger.total_supply()
    before = {h: ledger.balance_of(h) for h in holders}
    new_supply = ledger.rebase(POOL, 12_345 * GOV, 1)
    for h, b in before.items():
        expected = b * new_supply // old_supply
        assert abs(ledger.balance_of(h) - expected) <= 1


def test_conservation_over_transfers_and_rebases():
    accounts = [POOL, "a", "b", "c", "d"]
    ledger = _mk_ledger(a=100_000 * GOV, b=50_000 * GOV, c=3, d=1)
    steps = [
        ("t", "a", "b", 12_345 * GOV),
        ("r", 5_000 * GOV),
        ("t", "b", "c", 777_777),
        ("r", 1),
        ("t", "c", "d", 5),
        ("r", 80_000 * GOV),
        ("t", "a", "d", 1_000 * GOV),
        ("r", 0),
    ]
    epoch = 0
    for step in steps:
        if step[0] == "t":
            _, src, dst, amount = step
            ledger.transfer(src, dst, amount)
        else:
            epoch += 1
            ledger.rebase(POOL, step[1], epoch)
        total = ledger.total_supply()
        assert abs(_sum_balances(ledger, accounts) - total) <= len(accounts)
    assert len(ledger.history()) == 4


def test_round_trip_conversion():
    ledger = _mk_ledger(alice=333_333 * GOV)
    ledger.rebase(POOL, 33_333 * GOV, 1)
    for x in (1, 2, 999, 10**9 + 7, 123_456_789_012_345, ledger.total_supply()):
        assert abs(ledger.balance_for_gons(ledger.gons_for_balance(x)) - x) <= 1


def test_supply_is_clamped():
    ledger = _mk_ledger(alice=GOV)
    ledger.rebase(POOL, MAX_SUPPLY, 1)
    assert ledger.total_supply() == MAX_SUPPLY
    assert ledger.gons_per_fragment == ledger.total_gons // MAX_SUPPLY
    # still usable afterwards
    ledger.rebase(POOL, GOV, 2)
    assert ledger.total_supply() == MAX_SUPPLY


def test_transfers_and_allowances():
    ledger = _mk_ledger(alice=10 * GOV)
    with pytest.raises(InsufficientBalance):
        ledger.transfer("alice", "bob", 10 * GOV + 1)
    assert ledger.balance_of("alice") == 10 * GOV

    ledger.approve("alice", "bob", 4 * GOV)
    with pytest.raises(InsufficientAllowance):
        ledger.transfer_from("bob", "alice", "bob", 5 * GOV)
    ledger.transfer_from("bob", "alice", "bob", 4 * GOV)
    assert ledger.balance_of("bob") == 4 * GOV
    assert ledger.allowance("alice", "bob") == 0

    assert ledger.increase_allowance("alice", "bob", 3) == 3
    assert ledger.decrease_allowance("alice", "bob", 10) == 0


def test_index_tracks_growth():
    ledger = _mk_ledger(alice=1_000_000 * GOV)
    assert ledger.index() == 0
    ledger.set_index("dao", GOV)
    assert ledger.index() == GOV
    with pytest.raises(InvalidParameter):
        ledger.set_index("dao", GOV)
    ledger.rebase(POOL, 100_000 * GOV, 1)
    assert ledger.index() == 1_100_000_000
    assert ledger.history()[-1].index == 1_100_000_000
