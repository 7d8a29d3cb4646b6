from __future__ import annotations

import json

from typer.testing import CliRunner

from reservefi.cli.inspect import get_app

runner = CliRunner()


def _run(*args: str):
    return runner.invoke(get_app(), list(args))


def test_quote_matches_discounted_payout():
    res = _run("quote", "--value", "100", "--price", "1.00", "--discount-bps", "500")
    assert res.exit_code == 0, res.output
    out = json.loads(res.stdout)
    assert out["price"] == 95 * 10**16
    assert out["payout"] == 105_263_157_894
    assert out["fee"] == 0
    assert out["payout_tokens"] == "105.263157894"


def test_quote_with_fee():
    res = _run("quote", "--value", "100", "--discount-bps", "500", "--fee-bps", "100")
    assert res.exit_code == 0, res.output
    out = json.loads(res.stdout)
    assert out["fee"] == 1_052_631_578
    assert out["net_payout"] == 105_263_157_894 - 1_052_631_578


def test_quote_rejects_bad_input():
    assert _run("quote", "--value", "100", "--discount-bps", "20000").exit_code == 1
    assert _run("quote", "--value", "abc").exit_code == 2
    assert _run("quote", "--value", "100", "--discount-bps", "10000").exit_code == 1


def test_config_prints_defaults():
    res = _run("config")
    assert res.exit_code == 0, res.output
    cfg = json.loads(res.stdout)
    assert cfg["terms"]["vesting_blocks"] == 33_110
    assert cfg["oracle"]["window_seconds"] == 3_600


def test_config_reads_file(tmp_path):
    path = tmp_path / "reserve.json"
    path.write_text(json.dumps({"terms": {"discount_bps": 250}}), encoding="utf-8")
    res = _run("config", "--config-file", str(path))
    assert res.exit_code == 0, res.output
    assert json.loads(res.stdout)["terms"]["discount_bps"] == 250


def test_simulate_bond_stake_and_rebase():
    res = _run("simulate", "--deposit", "100", "--epochs", "3")
    assert res.exit_code == 0, res.output
    out = json.loads(res.stdout)
    assert out["redeemed"] > 0
    assert out["token_balance"] == 0
    assert out["staked_balance"] >= out["redeemed"]
    assert out["rebases"] == 4
    assert out["epoch"] == 5
    assert out["excess_reserves"] >= 0


def test_simulate_without_staking_keeps_tokens():
    res = _run("simulate", "--deposit", "100", "--epochs", "0", "--no-stake")
    assert res.exit_code == 0, res.output
    out = json.loads(res.stdout)
    assert out["token_balance"] == out["redeemed"]
    assert out["staked_balance"] == 0
