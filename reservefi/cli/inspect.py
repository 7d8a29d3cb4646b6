from __future__ import annotations

"""
reservefi.cli.inspect
---------------------

Operator tooling for the accounting core:
- `config`   print the effective configuration (defaults, file, environment)
- `quote`    price a bond from a deposit value, oracle price and discount
- `simulate` wire an in-memory protocol, bond, vest, stake and run epochs

Examples
--------
# Effective config, with a YAML file layered under the environment
RESERVEFI_CONFIG_FILE=reserve.yaml python -m reservefi.cli.inspect config

# 100 reference units at price 1.00 and a 5% discount
python -m reservefi.cli.inspect quote --value 100 --price 1.00 --discount-bps 500

# Bond 250 reference units, stake the payout, then run 3 epochs
python -m reservefi.cli.inspect simulate --deposit 250 --epochs 3
"""

import json
import logging
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, NoReturn, Optional

import typer

from ..config import ReserveConfig, from_env, from_file, load, pretty
from ..errors import ReserveError
from ..fixedpoint import BPS, WAD, apply_bps, mul_div, require_bps

app = typer.Typer(
    name="reservefi-inspect",
    add_completion=False,
    no_args_is_help=True,
    help="Inspect configuration, price bonds and simulate the reserve protocol.",
)

# -------------------- utils --------------------

def _load_config(config_file: Optional[Path]) -> ReserveConfig:
    if config_file is not None:
        return from_env(base=from_file(config_file))
    return load()


def _to_wad(text: str, name: str) -> int:
    try:
        d = Decimal(text)
    except InvalidOperation:
        typer.secho(f"{name} must be a decimal number, got {text!r}", err=True, fg=typer.colors.RED)
        raise typer.Exit(2)
    if d <= 0:
        typer.secho(f"{name} must be positive", err=True, fg=typer.colors.RED)
        raise typer.Exit(2)
    return int(d * WAD)


def _fmt_units(amount: int, decimals: int) -> str:
    s = str(Decimal(amount) / (Decimal(10) ** decimals))
    if "." in s:
        s = s.rstrip("0").rstrip(".")
    return s or "0"


def _fail(exc: ReserveError) -> NoReturn:
    typer.echo(json.dumps({"error": exc.to_dict()}, indent=2, sort_keys=True), err=True)
    raise typer.Exit(1)


# -------------------- commands --------------------

@app.callback()
def main(
    log_level: str = typer.Option("WARNING", "--log-level", help="Python logging level (DEBUG, INFO, ...)."),
) -> None:
    logging.basicConfig(level=getattr(logging, log_level.upper(), logging.WARNING),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")


@app.command("config")
def cmd_config(
    config_file: Optional[Path] = typer.Option(None, "--config-file", help="JSON/YAML config file."),
) -> None:
    """Print the effective configuration as JSON."""
    try:
        cfg = _load_config(config_file)
    except ReserveError as exc:
        _fail(exc)
    typer.echo(pretty(cfg))


@app.command("quote")
def cmd_quote(
    value: str = typer.Option(..., "--value", help="Deposit value in whole reference units (e.g. 100)."),
    price: str = typer.Option("1", "--price", help="Oracle price of one token in reference units."),
    discount_bps: int = typer.Option(500, "--discount-bps", help="Discount to the oracle price (bps)."),
    fee_bps: int = typer.Option(0, "--fee-bps", help="Fee taken from the gross payout (bps)."),
    token_decimals: int = typer.Option(9, "--token-decimals", help="Governance token decimals."),
) -> None:
    """Compute the discounted price and payout for a deposit value."""
    try:
        require_bps(discount_bps, "discount_bps")
        require_bps(fee_bps, "fee_bps")
    except ReserveError as exc:
        _fail(exc)
    value_units = _to_wad(value, "value") * 10**token_decimals // WAD
    oracle_price = _to_wad(price, "price")
    discounted = apply_bps(oracle_price, BPS - discount_bps)
    if discounted <= 0:
        typer.secho("discounted price is zero", err=True, fg=typer.colors.RED)
        raise typer.Exit(1)
    payout = mul_div(value_units, WAD, discounted)
    fee = apply_bps(payout, fee_bps)
    out: Dict[str, Any] = {
        "value": value_units,
        "oracle_price": oracle_price,
        "price": discounted,
        "payout": payout,
        "fee": fee,
        "net_payout": payout - fee,
        "payout_tokens": _fmt_units(payout, token_decimals),
    }
    typer.echo(json.dumps(out, indent=2, sort_keys=True))


@app.command("simulate")
def cmd_simulate(
    deposit: int = typer.Option(100, "--deposit", min=1, help="Reference units to bond."),
    epochs: int = typer.Option(3, "--epochs", min=0, max=10_000, help="Epochs to run after staking."),
    stake: bool = typer.Option(True, "--stake/--no-stake", help="Stake the bond payout on redemption."),
    block_time: int = typer.Option(13, "--block-time", min=1, help="Seconds per block."),
    config_file: Optional[Path] = typer.Option(None, "--config-file", help="JSON/YAML config file."),
) -> None:
    """Run bond -> vest -> redeem (-> stake) -> epochs and print a JSON summary."""
    from ..system import build_system

    try:
        cfg = _load_config(config_file)
        system = build_system(cfg)
        bond = system.bonds[system.reference.symbol]
        user = "alice"

        timestamp = cfg.oracle.window_seconds
        height = timestamp // block_time
        system.oracle.update(timestamp)

        amount = system.reference_units(deposit)
        system.reference.faucet(user, amount)
        system.reference.approve(user, bond.address, amount)
        max_price = bond.bond_price(timestamp)
        payout = bond.deposit(user, amount, max_price, height=height, timestamp=timestamp)

        height += cfg.terms.vesting_blocks
        redeemed = bond.redeem(user, height=height, stake=stake)

        for _ in range(epochs):
            height += cfg.staking.epoch_length_blocks
            system.scheduler.rebase(height)
    except ReserveError as exc:
        _fail(exc)

    dec = system.token.decimals
    summary: Dict[str, Any] = {
        "bond_price": max_price,
        "payout": payout,
        "redeemed": redeemed,
        "staked": stake,
        "token_balance": system.token.balance_of(user),
        "staked_balance": system.ledger.balance_of(user),
        "staked_balance_tokens": _fmt_units(system.ledger.balance_of(user), dec),
        "epoch": system.scheduler.epoch.number,
        "index": system.ledger.index(),
        "rebases": len(system.ledger.history()),
        "bond_total_debt": bond.total_debt,
        "token_supply": system.token.total_supply(),
        "total_reserves": system.treasury.total_reserves,
        "excess_reserves": system.treasury.excess_reserves(),
        "height": height,
    }
    typer.echo(json.dumps(summary, indent=2, sort_keys=True))


def get_app() -> typer.Typer:
    return app


if __name__ == "__main__":
    app()
