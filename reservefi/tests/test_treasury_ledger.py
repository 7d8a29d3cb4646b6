import pytest

from reservefi.adapters import MintableToken, RateDistributor, Token
from reservefi.config import TreasuryParams
from reservefi.errors import (DebtLimitExceeded, InsufficientAllocation,
                              InsufficientReserves, InvalidAmount, NotQueued,
                              TimelockPending, Unauthorized, UnsupportedAsset)
from reservefi.treasury import Role, TreasuryLedger

GOV = 10**9
DAI = 10**18
OWNER = "dao"


def _mk_treasury(allocation: int = 1_000_000 * GOV, timelock: int = 10):
    gov = MintableToken("GOV", 9, owner=OWNER)
    dai = Token("DAI", 18)
    t = TreasuryLedger(gov, owner=OWNER, params=TreasuryParams(timelock_blocks=timelock))
    gov.set_allocation(OWNER, t.address, allocation)
    t.grant_genesis_role(OWNER, Role.RESERVE_TOKEN, "DAI", token=dai)
    t.grant_genesis_role(OWNER, Role.RESERVE_DEPOSITOR, "alice")
    return gov, dai, t


def _deposit(dai: Token, t: TreasuryLedger, who: str, amount: int, mint: int) -> int:
    dai.faucet(who, amount)
    dai.approve(who, t.address, amount)
    return t.deposit(who, amount, "DAI", mint)


def test_deposit_credits_reserves_and_mints():
    gov, dai, t = _mk_treasury()
    value = _deposit(dai, t, "alice", 100 * DAI, 90 * GOV)
    assert value == 100 * GOV
    assert t.reserves["DAI"] == 100 * DAI
    assert t.total_reserves == 100 * GOV
    assert dai.balance_of(t.address) == 100 * DAI
    assert gov.balance_of("alice") == 90 * GOV
    assert t.mint_allocation() == 1_000_000 * GOV - 90 * GOV
    assert t.excess_reserves() == 10 * GOV
    (ev,) = t.journal()
    assert ev.op == "deposit" and ev.amount == 100 * DAI and ev.value == 100 * GOV


def test_deposit_rejections_leave_no_trace():
    gov, dai, t = _mk_treasury(allocation=50 * GOV)
    dai.faucet("bob", 10 * DAI)
    dai.approve("bob", t.address, 10 * DAI)
    with pytest.raises(Unauthorized):
        t.deposit("bob", 10 * DAI, "DAI", 0)
    with pytest.raises(UnsupportedAsset):
        t.deposit("alice", 10 * DAI, "XYZ", 0)
    with pytest.raises(InvalidAmount):
        t.deposit("alice", 0, "DAI", 0)

    dai.faucet("alice", 100 * DAI)
    dai.approve("alice", t.address, 100 * DAI)
    with pytest.raises(InsufficientAllocation):
        t.deposit("alice", 100 * DAI, "DAI", 60 * GOV)
    assert dai.balance_of("alice") == 100 * DAI
    assert t.total_reserves == 0
    assert gov.total_supply() == 0
    assert list(t.journal()) == []


def test_role_changes_go_through_timelock():
    _, dai, t = _mk_treasury(timelock=10)
    t.seal_genesis(OWNER)
    with pytest.raises(Unauthorized):
        t.grant_genesis_role(OWNER, Role.RESERVE_DEPOSITOR, "bob")
    with pytest.raises(Unauthorized):
        t.queue("mallory", Role.RESERVE_DEPOSITOR, "bob", height=100)
    with pytest.raises(NotQueued):
        t.toggle(OWNER, Role.RESERVE_DEPOSITOR, "bob", height=100)

    change = t.queue(OWNER, Role.RESERVE_DEPOSITOR, "bob", height=100)
    assert change.ready_height == 110
    with pytest.raises(TimelockPending):
        t.toggle(OWNER, Role.RESERVE_DEPOSITOR, "bob", height=109)
    assert t.toggle(OWNER, Role.RESERVE_DEPOSITOR, "bob", height=110) is True
    assert t.has_role(Role.RESERVE_DEPOSITOR, "bob")

    # toggling again (after another queue) revokes
    t.queue(OWNER, Role.RESERVE_DEPOSITOR, "bob", height=200)
    assert t.toggle(OWNER, Role.RESERVE_DEPOSITOR, "bob", height=210) is False
    assert not t.has_role(Role.RESERVE_DEPOSITOR, "bob")


def test_liquidity_token_needs_valuator():
    gov = MintableToken("GOV", 9, owner=OWNER)
    lp = Token("GOV-DAI", 18)
    t = TreasuryLedger(gov, owner=OWNER)
    with pytest.raises(UnsupportedAsset):
        t.grant_genesis_role(OWNER, Role.LIQUIDITY_TOKEN, "GOV-DAI", token=lp)
    assert not t.is_liquidity_token("GOV-DAI")


def test_borrow_and_repay_reserves():
    _, dai, t = _mk_treasury()
    t.grant_genesis_role(OWNER, Role.RESERVE_MANAGER, "mgr")
    t.set_debt_limit(OWNER, "mgr", 50 * GOV)
    _deposit(dai, t, "alice", 100 * DAI, 0)

    with pytest.raises(Unauthorized):
        t.borrow_reserves("bob", 10 * DAI, "DAI")

    assert t.borrow_reserves("mgr", 40 * DAI, "DAI") == 40 * GOV
    assert dai.balance_of("mgr") == 40 * DAI
    assert t.reserves["DAI"] == 60 * DAI
    assert t.debt["DAI"] == 40 * DAI
    assert t.debtor_debt["mgr"] == 40 * GOV
    assert t.total_debt == 40 * GOV
    assert t.total_reserves == 100 * GOV  # lent, not lost

    with pytest.raises(DebtLimitExceeded):
        t.borrow_reserves("mgr", 20 * DAI, "DAI")
    assert t.total_debt == 40 * GOV

    dai.approve("mgr", t.address, 40 * DAI)
    assert t.repay_reserves("mgr", 40 * DAI, "DAI") == 40 * GOV
    assert t.total_debt == 0
    assert t.reserves["DAI"] == 100 * DAI
    assert t.debtor_debt["mgr"] == 0


def test_repay_debt_with_token_burns():
    gov, dai, t = _mk_treasury()
    t.grant_genesis_role(OWNER, Role.RESERVE_MANAGER, "mgr")
    t.set_debt_limit(OWNER, "mgr", 100 * GOV)
    _deposit(dai, t, "alice", 100 * DAI, 0)
    t.borrow_reserves("mgr", 40 * DAI, "DAI")

    gov.set_allocation(OWNER, OWNER, 40 * GOV)
    gov.mint(OWNER, "mgr", 40 * GOV)
    gov.approve("mgr", t.address, 40 * GOV)
    with pytest.raises(InvalidAmount):
        t.repay_debt_with_token("mgr", 41 * GOV, "DAI")

    assert t.repay_debt_with_token("mgr", 40 * GOV, "DAI") == 40 * GOV
    assert gov.balance_of("mgr") == 0
    assert gov.total_supply() == 0
    assert t.total_debt == 0
    assert t.debt["DAI"] == 0
    assert t.total_reserves == 60 * GOV


def test_withdraw_burns_equal_value():
    gov, dai, t = _mk_treasury()
    t.grant_genesis_role(OWNER, Role.RESERVE_SPENDER, "alice")
    _deposit(dai, t, "alice", 100 * DAI, 100 * GOV)
    gov.approve("alice", t.address, 50 * GOV)
    assert t.withdraw("alice", 50 * DAI, "DAI") == 50 * GOV
    assert gov.balance_of("alice") == 50 * GOV
    assert dai.balance_of("alice") == 50 * DAI
    assert t.total_reserves == 50 * GOV
    with pytest.raises(InsufficientReserves):
        t.withdraw("alice", 51 * DAI, "DAI")


def test_mint_rewards_bounded_by_excess():
    gov, dai, t = _mk_treasury()
    t.grant_genesis_role(OWNER, Role.REWARD_MANAGER, "dist")
    _deposit(dai, t, "alice", 100 * DAI, 0)
    assert t.excess_reserves() == 100 * GOV

    with pytest.raises(Unauthorized):
        t.mint_rewards("alice", "staking", GOV)
    t.mint_rewards("dist", "staking", 30 * GOV)
    assert gov.balance_of("staking") == 30 * GOV
    assert t.excess_reserves() == 70 * GOV
    with pytest.raises(InsufficientReserves):
        t.mint_rewards("dist", "staking", 71 * GOV)


def test_distributor_clamps_to_excess():
    gov, dai, t = _mk_treasury()
    d = RateDistributor(t, gov, owner=OWNER, epoch_length=10, next_epoch_block=0)
    t.grant_genesis_role(OWNER, Role.REWARD_MANAGER, d.address)
    _deposit(dai, t, "alice", 100 * DAI, 90 * GOV)
    d.add_recipient(OWNER, "staking", 1_000_000)  # wants 100% of supply
    assert d.next_reward_for("staking") == 90 * GOV

    assert d.distribute(0) == 10 * GOV
    assert gov.balance_of("staking") == 10 * GOV
    assert t.excess_reserves() == 0
    assert d.next_epoch_block == 10
    assert d.distribute(5) == 0  # not due yet


def test_audit_reserves_recounts_custody():
    _, dai, t = _mk_treasury()
    _deposit(dai, t, "alice", 100 * DAI, 0)
    dai.faucet(t.address, 5 * DAI)  # donation outside deposit()
    with pytest.raises(Unauthorized):
        t.audit_reserves("alice")
    assert t.audit_reserves(OWNER) == 105 * GOV
    assert t.reserves["DAI"] == 105 * DAI
    assert t.total_reserves == 105 * GOV
