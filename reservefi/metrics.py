from __future__ import annotations

"""
Prometheus metrics for the reserve-currency accounting core.

We expose counters, gauges and histograms covering:
- bonds: deposits by asset, payouts, redemptions (partial/full), rejections
- oracle: TWAP updates (updated/skipped)
- treasury: deposits by asset, excess reserves, reward mints
- staking: rebases (zero/positive), current epoch, index, total bond debt

This module is dependency-light and can be served from any ASGI server via
`make_prometheus_asgi_app`.
"""


from typing import Optional

from prometheus_client import (CONTENT_TYPE_LATEST, CollectorRegistry, Counter,
                               Gauge, Histogram, generate_latest)

# Use a dedicated registry so embedding apps can choose to merge or expose it directly.
REGISTRY = CollectorRegistry()

# ────────────────────────────────────────────────────────────────────────────────
# Label conventions
#   asset: principal/reserve asset symbol
#   status: "partial" | "full"
#   result: "updated" | "skipped"
#   kind: "zero" | "positive"
#   code: ReserveError.code of a rejected operation
# ────────────────────────────────────────────────────────────────────────────────

BOND_DEPOSITS = Counter(
    "reservefi_bond_deposits_total",
    "Total accepted bond deposits by principal asset.",
    labelnames=("asset",),
    registry=REGISTRY,
)

BOND_REDEMPTIONS = Counter(
    "reservefi_bond_redemptions_total",
    "Total bond redemptions that paid out, by status.",
    labelnames=("status",),
    registry=REGISTRY,
)

BOND_REJECTIONS = Counter(
    "reservefi_bond_rejections_total",
    "Total rejected bond deposits by error code.",
    labelnames=("code",),
    registry=REGISTRY,
)

ORACLE_UPDATES = Counter(
    "reservefi_oracle_updates_total",
    "TWAP update calls by result.",
    labelnames=("result",),
    registry=REGISTRY,
)

TREASURY_DEPOSITS = Counter(
    "reservefi_treasury_deposits_total",
    "Total treasury deposits by asset.",
    labelnames=("asset",),
    registry=REGISTRY,
)

REWARDS_MINTED = Counter(
    "reservefi_rewards_minted_total",
    "Total reward mint operations authorized against excess reserves.",
    registry=REGISTRY,
)

REBASES = Counter(
    "reservefi_rebases_total",
    "Total rebases by kind.",
    labelnames=("kind",),
    registry=REGISTRY,
)

# Monetary amounts are tracked in *tokens* (float) to keep bucket scales reasonable.
_AMOUNT_BUCKETS = (
    0.01,
    0.1,
    1,
    10,
    100,
    1_000,
    10_000,
    100_000,
    1_000_000,
)

BOND_PAYOUT_TOKENS = Histogram(
    "reservefi_bond_payout_tokens",
    "Distribution of gross bond payouts (in tokens).",
    buckets=_AMOUNT_BUCKETS,
    registry=REGISTRY,
)

REBASE_PROFIT_TOKENS = Histogram(
    "reservefi_rebase_profit_tokens",
    "Distribution of profit distributed per rebase (in tokens).",
    buckets=_AMOUNT_BUCKETS,
    registry=REGISTRY,
)

# Gauges
TOTAL_BOND_DEBT = Gauge(
    "reservefi_total_bond_debt",
    "Outstanding bond debt (base units) by principal asset.",
    labelnames=("asset",),
    registry=REGISTRY,
)

EXCESS_RESERVES = Gauge(
    "reservefi_excess_reserves",
    "Treasury excess reserves (base units) as of the last mutation.",
    registry=REGISTRY,
)

EPOCH_NUMBER = Gauge(
    "reservefi_epoch_number",
    "Current staking epoch number.",
    registry=REGISTRY,
)

REBASE_INDEX = Gauge(
    "reservefi_rebase_index",
    "Current rebase index (base units).",
    registry=REGISTRY,
)

# ────────────────────────────────────────────────────────────────────────────────
# Recording helpers
# ────────────────────────────────────────────────────────────────────────────────


def record_bond_deposit(asset: str, payout_tokens: float, total_debt: int) -> None:
    """Record an accepted bond deposit and the resulting debt level."""
    BOND_DEPOSITS.labels(asset=asset).inc()
    if payout_tokens >= 0:
        BOND_PAYOUT_TOKENS.observe(float(payout_tokens))
    TOTAL_BOND_DEBT.labels(asset=asset).set(total_debt)


def record_bond_rejection(code: str) -> None:
    BOND_REJECTIONS.labels(code=code).inc()


def record_redemption(full: bool) -> None:
    BOND_REDEMPTIONS.labels(status="full" if full else "partial").inc()


def record_oracle_update(updated: bool) -> None:
    ORACLE_UPDATES.labels(result="updated" if updated else "skipped").inc()


def record_treasury_deposit(asset: str, excess_reserves: int) -> None:
    TREASURY_DEPOSITS.labels(asset=asset).inc()
    EXCESS_RESERVES.set(excess_reserves)


def record_rewards_minted(excess_reserves: int) -> None:
    REWARDS_MINTED.inc()
    EXCESS_RESERVES.set(excess_reserves)


def record_rebase(profit_tokens: float, index: int) -> None:
    """Record a rebase; zero-profit rebases are counted but not observed."""
    if profit_tokens > 0:
        REBASES.labels(kind="positive").inc()
        REBASE_PROFIT_TOKENS.observe(float(profit_tokens))
    else:
        REBASES.labels(kind="zero").inc()
    REBASE_INDEX.set(index)


def record_epoch(number: int) -> None:
    EPOCH_NUMBER.set(number)


# ────────────────────────────────────────────────────────────────────────────────
# ASGI mounting helper
# ────────────────────────────────────────────────────────────────────────────────


def make_prometheus_asgi_app(registry: Optional[CollectorRegistry] = None):
    """
    Return a minimal ASGI app that serves Prometheus metrics at '/'.
    No external web framework required.
    """
    reg = registry or REGISTRY

    async def app(scope, receive, send):  # type: ignore[override]
        if scope["type"] != "http" or (scope.get("path") or "/") != "/":
            await send({"type": "http.response.start", "status": 404, "headers": []})
            await send({"type": "http.response.body", "body": b"Not Found"})
            return
        payload = generate_latest(reg)
        headers = [
            (b"content-type", CONTENT_TYPE_LATEST.encode("ascii")),
            (b"cache-control", b"no-cache, no-store, must-revalidate"),
        ]
        await send({"type": "http.response.start", "status": 200, "headers": headers})
        await send({"type": "http.response.body", "body": payload})

    return app


__all__ = [
    "REGISTRY",
    "BOND_DEPOSITS",
    "BOND_REDEMPTIONS",
    "BOND_REJECTIONS",
    "ORACLE_UPDATES",
    "TREASURY_DEPOSITS",
    "REWARDS_MINTED",
    "REBASES",
    "BOND_PAYOUT_TOKENS",
    "REBASE_PROFIT_TOKENS",
    "TOTAL_BOND_DEBT",
    "EXCESS_RESERVES",
    "EPOCH_NUMBER",
    "REBASE_INDEX",
    "record_bond_deposit",
    "record_bond_rejection",
    "record_redemption",
    "record_oracle_update",
    "record_treasury_deposit",
    "record_rewards_minted",
    "record_rebase",
    "record_epoch",
    "make_prometheus_asgi_app",
]
