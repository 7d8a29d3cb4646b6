from __future__ import annotations
# reservefi/errors.py
"""
Error types for the reserve-currency accounting core. Every rejection raised by
the bond engine, treasury, oracle consumers and staking ledgers is one of these
named conditions. They are lightweight, serializable, and safe to surface over
RPC/logs.

Categories:
- ValidationError       bad input (zero amount/address, out-of-range parameter)
- EconomicLimitError    expected, recoverable market/limit conditions
- AuthorizationError    missing capability/role
- InvariantError        protections around ledger invariants

No operation retries internally; retry policy belongs to the caller.
"""


from typing import Any, Dict, Mapping, Optional
import json


class ReserveError(Exception):
    """Base class for reservefi domain errors."""

    code: str = "RESERVEFI_ERROR"

    def __init__(self, message: str = "", *, details: Optional[Mapping[str, Any]] = None) -> None:
        self.message = message or self.__class__.__name__
        self.details = dict(details or {})
        super().__init__(self.__str__())

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.details:
            # Keep this compact and stable for logs
            try:
                packed = json.dumps(self.details, sort_keys=True, separators=(",", ":"))
            except (TypeError, ValueError):
                packed = str(self.details)
            return f"{self.code}: {self.message} [{packed}]"
        return f"{self.code}: {self.message}"


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------


class ValidationError(ReserveError, ValueError):
    """Input rejected before any state was touched."""
    code = "RESERVEFI_VALIDATION"


class EconomicLimitError(ReserveError):
    """An expected economic limit was hit (ceiling, slippage, price, balance)."""
    code = "RESERVEFI_ECONOMIC_LIMIT"


class AuthorizationError(ReserveError):
    """Caller lacks the capability or role for the operation."""
    code = "RESERVEFI_UNAUTHORIZED"


class InvariantError(ReserveError):
    """An operation would break a ledger invariant."""
    code = "RESERVEFI_INVARIANT"


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class InvalidAmount(ValidationError):
    code = "RESERVEFI_INVALID_AMOUNT"

    def __init__(
        self,
        message: str = "amount must be positive",
        *,
        amount: Optional[int] = None,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        d = dict(details or {})
        if amount is not None:
            d.setdefault("amount", int(amount))
        super().__init__(message, details=d)


class InvalidAddress(ValidationError):
    code = "RESERVEFI_INVALID_ADDRESS"


class InvalidParameter(ValidationError):
    """A configuration value is outside its allowed range."""
    code = "RESERVEFI_INVALID_PARAMETER"

    def __init__(
        self,
        message: str = "parameter out of range",
        *,
        name: Optional[str] = None,
        value: Any = None,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        d = dict(details or {})
        if name is not None:
            d.setdefault("name", name)
            d.setdefault("value", value)
        super().__init__(message, details=d)


class UnsupportedAsset(ValidationError):
    code = "RESERVEFI_UNSUPPORTED_ASSET"

    def __init__(
        self,
        *,
        asset: str,
        message: str = "asset not accepted",
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        d = dict(details or {})
        d["asset"] = asset
        super().__init__(message, details=d)


# ---------------------------------------------------------------------------
# Economic limits
# ---------------------------------------------------------------------------


class BondSoldOut(EconomicLimitError):
    """Issuing the bond would push outstanding debt above the ceiling."""
    code = "RESERVEFI_BOND_SOLD_OUT"

    def __init__(
        self,
        *,
        total_debt: int,
        payout: int,
        max_debt: int,
        message: str = "max capacity reached",
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        d = dict(details or {})
        d.update({"total_debt": int(total_debt), "payout": int(payout), "max_debt": int(max_debt)})
        super().__init__(message, details=d)


class BondTooSmall(EconomicLimitError):
    code = "RESERVEFI_BOND_TOO_SMALL"

    def __init__(
        self,
        *,
        payout: int,
        minimum: int,
        message: str = "bond too small",
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        d = dict(details or {})
        d.update({"payout": int(payout), "minimum": int(minimum)})
        super().__init__(message, details=d)


class BondTooLarge(EconomicLimitError):
    code = "RESERVEFI_BOND_TOO_LARGE"

    def __init__(
        self,
        *,
        payout: int,
        maximum: int,
        message: str = "bond too large",
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        d = dict(details or {})
        d.update({"payout": int(payout), "maximum": int(maximum)})
        super().__init__(message, details=d)


class SlippageExceeded(EconomicLimitError):
    code = "RESERVEFI_SLIPPAGE"

    def __init__(
        self,
        *,
        price: int,
        max_price: int,
        message: str = "slippage limit: more than max price",
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        d = dict(details or {})
        d.update({"price": int(price), "max_price": int(max_price)})
        super().__init__(message, details=d)


class InvalidPrice(EconomicLimitError):
    """Oracle price is zero, missing or otherwise degenerate."""
    code = "RESERVEFI_INVALID_PRICE"


class InsufficientReserves(EconomicLimitError):
    code = "RESERVEFI_INSUFFICIENT_RESERVES"

    def __init__(
        self,
        *,
        requested: int,
        available: int,
        message: str = "insufficient reserves",
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        d = dict(details or {})
        d.update({"requested": int(requested), "available": int(available)})
        super().__init__(message, details=d)


class DebtLimitExceeded(EconomicLimitError):
    code = "RESERVEFI_DEBT_LIMIT"

    def __init__(
        self,
        *,
        debtor: str,
        requested: int,
        limit: int,
        message: str = "exceeds debt limit",
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        d = dict(details or {})
        d.update({"debtor": debtor, "requested": int(requested), "limit": int(limit)})
        super().__init__(message, details=d)


class InsufficientBalance(EconomicLimitError):
    code = "RESERVEFI_INSUFFICIENT_BALANCE"

    def __init__(
        self,
        *,
        account: str,
        required: int,
        actual: int,
        message: str = "insufficient balance",
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        d = dict(details or {})
        d.update({"account": account, "required": int(required), "actual": int(actual)})
        super().__init__(message, details=d)


class InsufficientAllowance(EconomicLimitError):
    code = "RESERVEFI_INSUFFICIENT_ALLOWANCE"

    def __init__(
        self,
        *,
        owner: str,
        spender: str,
        required: int,
        actual: int,
        message: str = "insufficient allowance",
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        d = dict(details or {})
        d.update({"owner": owner, "spender": spender, "required": int(required), "actual": int(actual)})
        super().__init__(message, details=d)


class InsufficientAllocation(EconomicLimitError):
    """Mint capability refused: the minter's allocation is exhausted."""
    code = "RESERVEFI_INSUFFICIENT_ALLOCATION"

    def __init__(
        self,
        *,
        minter: str,
        requested: int,
        remaining: int,
        message: str = "mint exceeds allocation",
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        d = dict(details or {})
        d.update({"minter": minter, "requested": int(requested), "remaining": int(remaining)})
        super().__init__(message, details=d)


# ---------------------------------------------------------------------------
# Authorization
# ---------------------------------------------------------------------------


class Unauthorized(AuthorizationError):
    code = "RESERVEFI_UNAUTHORIZED"

    def __init__(
        self,
        message: str = "caller not authorized",
        *,
        caller: Optional[str] = None,
        role: Optional[str] = None,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        d = dict(details or {})
        if caller is not None:
            d.setdefault("caller", caller)
        if role is not None:
            d.setdefault("role", role)
        super().__init__(message, details=d)


class DepositLocked(AuthorizationError):
    """Recipient has locked their warmup claim against third-party deposits."""
    code = "RESERVEFI_DEPOSIT_LOCKED"


class TimelockPending(AuthorizationError):
    code = "RESERVEFI_TIMELOCK_PENDING"

    def __init__(
        self,
        *,
        ready_height: int,
        height: int,
        message: str = "queue not expired",
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        d = dict(details or {})
        d.update({"ready_height": int(ready_height), "height": int(height)})
        super().__init__(message, details=d)


class NotQueued(AuthorizationError):
    code = "RESERVEFI_NOT_QUEUED"


# ---------------------------------------------------------------------------
# Invariants
# ---------------------------------------------------------------------------


class Reentrancy(InvariantError):
    """A guarded entry point was re-entered while still executing."""
    code = "RESERVEFI_REENTRANCY"


__all__ = [
    "ReserveError",
    "ValidationError",
    "EconomicLimitError",
    "AuthorizationError",
    "InvariantError",
    "InvalidAmount",
    "InvalidAddress",
    "InvalidParameter",
    "UnsupportedAsset",
    "BondSoldOut",
    "BondTooSmall",
    "BondTooLarge",
    "SlippageExceeded",
    "InvalidPrice",
    "InsufficientReserves",
    "DebtLimitExceeded",
    "InsufficientBalance",
    "InsufficientAllowance",
    "InsufficientAllocation",
    "Unauthorized",
    "DepositLocked",
    "TimelockPending",
    "NotQueued",
    "Reentrancy",
]
