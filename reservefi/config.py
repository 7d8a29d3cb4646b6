from __future__ import annotations
"""
reservefi.config - admin-configurable parameters for the accounting core

Covers:
- Bond terms (vesting, max payout, fee, discount, debt ceiling) and the
  protocol-wide bond minimums (shortest vesting, dust payout)
- TWAP oracle averaging window
- Treasury role timelock and default debtor limit
- Staking epochs, warmup and genesis supply of the rebasing token
- Reward distributor cadence and rate

Ratios are basis points (10_000 = 100%) unless the name says otherwise;
amounts are integer base units (governance token: 9 decimals).

Environment overrides (all optional; sensible defaults provided):

  # Bond terms
  RESERVEFI_BOND_VESTING_BLOCKS=33110
  RESERVEFI_BOND_MAX_PAYOUT_BPS=50
  RESERVEFI_BOND_FEE_BPS=100
  RESERVEFI_BOND_DISCOUNT_BPS=500
  RESERVEFI_BOND_MAX_DEBT=1000000000000000
  RESERVEFI_BOND_MIN_VESTING_BLOCKS=10000
  RESERVEFI_BOND_MIN_PAYOUT=10000000

  # Oracle
  RESERVEFI_ORACLE_WINDOW_SECONDS=3600

  # Treasury
  RESERVEFI_TREASURY_TIMELOCK_BLOCKS=6000
  RESERVEFI_TREASURY_DEFAULT_DEBT_LIMIT=0

  # Staking
  RESERVEFI_STAKING_EPOCH_LENGTH_BLOCKS=2200
  RESERVEFI_STAKING_FIRST_EPOCH_NUMBER=1
  RESERVEFI_STAKING_FIRST_EPOCH_BLOCK=0
  RESERVEFI_STAKING_WARMUP_EPOCHS=0
  RESERVEFI_STAKING_INITIAL_SUPPLY=5000000000000000

  # Distributor
  RESERVEFI_DISTRIBUTOR_EPOCH_LENGTH_BLOCKS=2200
  RESERVEFI_DISTRIBUTOR_REWARD_RATE_PPM=3000

You can also load from a JSON or YAML file via
`RESERVEFI_CONFIG_FILE=/path/to/config.(json|yaml|yml)`.
File values override defaults; environment overrides the file.
"""


from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, Optional, Type, TypeVar
import json
import os
from pathlib import Path

from .errors import InvalidParameter
from .fixedpoint import BPS, PPM

try:
    import yaml  # type: ignore
except ImportError:  # pragma: no cover - yaml is optional
    yaml = None  # type: ignore

T = TypeVar("T")


# -------------------------- Data classes --------------------------


@dataclass
class BondParams:
    """Protocol-wide bond floors that individual terms cannot undercut."""
    min_vesting_blocks: int = 10_000       # ~36h at 13s blocks
    min_payout: int = 10_000_000           # 0.01 token (9 decimals)

    def validate(self) -> None:
        if self.min_vesting_blocks <= 0:
            raise InvalidParameter("min_vesting_blocks must be positive",
                                   name="min_vesting_blocks", value=self.min_vesting_blocks)
        if self.min_payout < 0:
            raise InvalidParameter("min_payout must be non-negative",
                                   name="min_payout", value=self.min_payout)


@dataclass
class BondTerms:
    """
    Singleton terms of a bond market.

    vesting_blocks: blocks over which a payout becomes claimable
    max_payout_bps: largest single payout as a share of the mint allocation
    fee_bps:        share of each payout routed to the fee recipient
    discount_bps:   discount applied to the oracle price
    max_debt:       ceiling on outstanding bond debt (token base units)
    """
    vesting_blocks: int = 33_110
    max_payout_bps: int = 50
    fee_bps: int = 100
    discount_bps: int = 500
    max_debt: int = 1_000_000 * 10**9

    def validate(self, min_vesting_blocks: int = 0) -> None:
        if self.vesting_blocks < max(min_vesting_blocks, 1):
            raise InvalidParameter(
                f"vesting_blocks must be at least {max(min_vesting_blocks, 1)}",
                name="vesting_blocks", value=self.vesting_blocks,
            )
        for name, v in (("max_payout_bps", self.max_payout_bps),
                        ("fee_bps", self.fee_bps),
                        ("discount_bps", self.discount_bps)):
            if not (0 <= v <= BPS):
                raise InvalidParameter(f"{name} must be between 0 and {BPS} (got {v}).",
                                       name=name, value=v)
        if self.max_payout_bps == 0:
            raise InvalidParameter("max_payout_bps must be positive",
                                   name="max_payout_bps", value=self.max_payout_bps)
        if self.max_debt < 0:
            raise InvalidParameter("max_debt must be non-negative", name="max_debt", value=self.max_debt)


@dataclass
class OracleParams:
    """TWAP averaging window in seconds."""
    window_seconds: int = 3_600

    def validate(self) -> None:
        if self.window_seconds <= 0:
            raise InvalidParameter("window_seconds must be positive",
                                   name="window_seconds", value=self.window_seconds)


@dataclass
class TreasuryParams:
    """Role-change timelock (blocks) and debt limit for debtors without an explicit one."""
    timelock_blocks: int = 6_000
    default_debt_limit: int = 0

    def validate(self) -> None:
        if self.timelock_blocks < 0:
            raise InvalidParameter("timelock_blocks must be non-negative",
                                   name="timelock_blocks", value=self.timelock_blocks)
        if self.default_debt_limit < 0:
            raise InvalidParameter("default_debt_limit must be non-negative",
                                   name="default_debt_limit", value=self.default_debt_limit)


@dataclass
class StakingParams:
    """Epoch schedule and genesis supply of the rebasing staked token."""
    epoch_length_blocks: int = 2_200         # ~8h at 13s blocks
    first_epoch_number: int = 1
    first_epoch_block: int = 0
    warmup_epochs: int = 0
    initial_supply: int = 5_000_000 * 10**9

    def validate(self) -> None:
        if self.epoch_length_blocks <= 0:
            raise InvalidParameter("epoch_length_blocks must be positive",
                                   name="epoch_length_blocks", value=self.epoch_length_blocks)
        if self.first_epoch_block < 0 or self.first_epoch_number < 0:
            raise InvalidParameter("first epoch block/number must be non-negative")
        if self.warmup_epochs < 0:
            raise InvalidParameter("warmup_epochs must be non-negative",
                                   name="warmup_epochs", value=self.warmup_epochs)
        if self.initial_supply <= 0:
            raise InvalidParameter("initial_supply must be positive",
                                   name="initial_supply", value=self.initial_supply)


@dataclass
class DistributorParams:
    """Reward cadence (blocks) and rate in millionths of token supply per epoch."""
    epoch_length_blocks: int = 2_200
    reward_rate_ppm: int = 3_000

    def validate(self) -> None:
        if self.epoch_length_blocks <= 0:
            raise InvalidParameter("epoch_length_blocks must be positive",
                                   name="epoch_length_blocks", value=self.epoch_length_blocks)
        if not (0 <= self.reward_rate_ppm <= PPM):
            raise InvalidParameter(f"reward_rate_ppm must be between 0 and {PPM}",
                                   name="reward_rate_ppm", value=self.reward_rate_ppm)


@dataclass
class ReserveConfig:
    """Top-level configuration container."""
    terms: BondTerms = field(default_factory=BondTerms)
    bond: BondParams = field(default_factory=BondParams)
    oracle: OracleParams = field(default_factory=OracleParams)
    treasury: TreasuryParams = field(default_factory=TreasuryParams)
    staking: StakingParams = field(default_factory=StakingParams)
    distributor: DistributorParams = field(default_factory=DistributorParams)

    token_decimals: int = 9  # governance token base
    reference_decimals: int = 18  # reference stable asset

    def validate(self) -> None:
        self.bond.validate()
        self.terms.validate(self.bond.min_vesting_blocks)
        self.oracle.validate()
        self.treasury.validate()
        self.staking.validate()
        self.distributor.validate()
        if self.token_decimals <= 0 or self.reference_decimals <= 0:
            raise InvalidParameter("token decimals must be positive")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# -------------------------- Loaders --------------------------


def _getenv_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    try:
        return int(str(v).replace("_", ""))
    except ValueError as e:
        raise InvalidParameter(f"Invalid int for {name}: {v!r}", name=name, value=v) from e


def _getenv_bps(name: str, default: int) -> int:
    bps = _getenv_int(name, default)
    if not (0 <= bps <= BPS):
        raise InvalidParameter(f"{name} must be between 0 and {BPS} bps (got {bps}).", name=name, value=bps)
    return bps


def from_env(base: Optional[ReserveConfig] = None, prefix: str = "RESERVEFI_") -> ReserveConfig:
    """
    Build a ReserveConfig from environment variables, optionally layering on top of `base`.
    """
    cfg = base or ReserveConfig()

    terms = BondTerms(
        vesting_blocks=_getenv_int(f"{prefix}BOND_VESTING_BLOCKS", cfg.terms.vesting_blocks),
        max_payout_bps=_getenv_bps(f"{prefix}BOND_MAX_PAYOUT_BPS", cfg.terms.max_payout_bps),
        fee_bps=_getenv_bps(f"{prefix}BOND_FEE_BPS", cfg.terms.fee_bps),
        discount_bps=_getenv_bps(f"{prefix}BOND_DISCOUNT_BPS", cfg.terms.discount_bps),
        max_debt=_getenv_int(f"{prefix}BOND_MAX_DEBT", cfg.terms.max_debt),
    )
    bond = BondParams(
        min_vesting_blocks=_getenv_int(f"{prefix}BOND_MIN_VESTING_BLOCKS", cfg.bond.min_vesting_blocks),
        min_payout=_getenv_int(f"{prefix}BOND_MIN_PAYOUT", cfg.bond.min_payout),
    )
    oracle = OracleParams(
        window_seconds=_getenv_int(f"{prefix}ORACLE_WINDOW_SECONDS", cfg.oracle.window_seconds),
    )
    treasury = TreasuryParams(
        timelock_blocks=_getenv_int(f"{prefix}TREASURY_TIMELOCK_BLOCKS", cfg.treasury.timelock_blocks),
        default_debt_limit=_getenv_int(f"{prefix}TREASURY_DEFAULT_DEBT_LIMIT", cfg.treasury.default_debt_limit),
    )
    staking = StakingParams(
        epoch_length_blocks=_getenv_int(f"{prefix}STAKING_EPOCH_LENGTH_BLOCKS", cfg.staking.epoch_length_blocks),
        first_epoch_number=_getenv_int(f"{prefix}STAKING_FIRST_EPOCH_NUMBER", cfg.staking.first_epoch_number),
        first_epoch_block=_getenv_int(f"{prefix}STAKING_FIRST_EPOCH_BLOCK", cfg.staking.first_epoch_block),
        warmup_epochs=_getenv_int(f"{prefix}STAKING_WARMUP_EPOCHS", cfg.staking.warmup_epochs),
        initial_supply=_getenv_int(f"{prefix}STAKING_INITIAL_SUPPLY", cfg.staking.initial_supply),
    )
    distributor = DistributorParams(
        epoch_length_blocks=_getenv_int(
            f"{prefix}DISTRIBUTOR_EPOCH_LENGTH_BLOCKS", cfg.distributor.epoch_length_blocks
        ),
        reward_rate_ppm=_getenv_int(f"{prefix}DISTRIBUTOR_REWARD_RATE_PPM", cfg.distributor.reward_rate_ppm),
    )

    new_cfg = ReserveConfig(
        terms=terms,
        bond=bond,
        oracle=oracle,
        treasury=treasury,
        staking=staking,
        distributor=distributor,
        token_decimals=cfg.token_decimals,
        reference_decimals=cfg.reference_decimals,
    )
    new_cfg.validate()
    return new_cfg


def _section(cls: Type[T], data: Dict[str, Any]) -> T:
    """Build a section dataclass from a mapping, ignoring unknown keys."""
    known = {f.name for f in fields(cls)}  # type: ignore[arg-type]
    return cls(**{k: v for k, v in (data or {}).items() if k in known})  # type: ignore[call-arg]


def from_file(path: str | os.PathLike[str]) -> ReserveConfig:
    """
    Load configuration from a JSON or YAML file.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(p)

    text = p.read_text(encoding="utf-8")
    if p.suffix.lower() in (".yaml", ".yml"):
        if yaml is None:
            raise RuntimeError("YAML config requested but PyYAML is not installed.")
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text or "{}")

    cfg = ReserveConfig(
        terms=_section(BondTerms, data.get("terms", {})),
        bond=_section(BondParams, data.get("bond", {})),
        oracle=_section(OracleParams, data.get("oracle", {})),
        treasury=_section(TreasuryParams, data.get("treasury", {})),
        staking=_section(StakingParams, data.get("staking", {})),
        distributor=_section(DistributorParams, data.get("distributor", {})),
        token_decimals=data.get("token_decimals", ReserveConfig().token_decimals),
        reference_decimals=data.get("reference_decimals", ReserveConfig().reference_decimals),
    )
    cfg.validate()
    return cfg


def load() -> ReserveConfig:
    """
    Load configuration using the following precedence:
      1) File at $RESERVEFI_CONFIG_FILE (JSON/YAML)
      2) Environment variables (RESERVEFI_*), applied on top of defaults or file values
    """
    file_path = os.getenv("RESERVEFI_CONFIG_FILE")
    base = from_file(file_path) if file_path else ReserveConfig()
    return from_env(base=base)


# -------------------------- Utilities --------------------------


def pretty(cfg: Optional[ReserveConfig] = None) -> str:
    """Return a human-readable JSON string of the current config."""
    obj = (cfg or load()).to_dict()
    return json.dumps(obj, indent=2, sort_keys=True)


__all__ = [
    "BondParams",
    "BondTerms",
    "OracleParams",
    "TreasuryParams",
    "StakingParams",
    "DistributorParams",
    "ReserveConfig",
    "from_env",
    "from_file",
    "load",
    "pretty",
]
