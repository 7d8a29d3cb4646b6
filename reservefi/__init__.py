from __future__ import annotations
"""
reservefi - accounting core of a reserve-currency protocol.

The package issues governance tokens against deposited collateral at a
TWAP-derived discount (bonds), vests that issuance over a block schedule,
keeps the treasury's reserve/debt ledger that authorizes minting, and runs a
rebasing staked-token ledger that grows holder balances every epoch.

Public surface (lazily loaded):
- config, errors, metrics, fixedpoint, guard
- adapters, oracle, treasury, bonds, staking, cli, system
"""


from typing import List

from .version import __version__

__all__: List[str] = [
    "__version__",
    # lazily importable subpackages/modules
    "config",
    "errors",
    "metrics",
    "fixedpoint",
    "guard",
    "adapters",
    "oracle",
    "treasury",
    "bonds",
    "staking",
    "cli",
    "system",
]

# --- Lazy module loader (PEP 562) -------------------------------------------------
import importlib


_lazy_modules = set(__all__) - {"__version__"}


def __getattr__(name: str):
    if name in _lazy_modules:
        return importlib.import_module(f".{name}", __name__)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__():
    return sorted(set(globals().keys()) | _lazy_modules)


def get_version() -> str:
    """Return the reservefi package version string."""
    return __version__
