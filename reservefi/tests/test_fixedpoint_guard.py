import pytest

from reservefi.errors import InvalidAmount, InvalidParameter, Reentrancy
from reservefi.fixedpoint import (BPS, Q112, U256_MAX, apply_bps,
                                  decode_uq112x112, encode_uq112x112, mul_div,
                                  require_bps, require_nonneg,
                                  rescale, sqrt)
from reservefi.guard import ReentrancyGuard, non_reentrant


def test_mul_div_rounding():
    assert mul_div(7, 3, 2) == 10
    # no intermediate overflow concerns for big operands
    assert mul_div(U256_MAX, U256_MAX, U256_MAX) == U256_MAX
    with pytest.raises(ZeroDivisionError):
        mul_div(1, 1, 0)


def test_apply_bps_and_range_checks():
    assert apply_bps(10_000, 500) == 500
    assert apply_bps(199, 50) == 0  # truncates
    assert apply_bps(123, BPS) == 123
    assert require_bps(0, "x") == 0
    with pytest.raises(InvalidParameter):
        require_bps(BPS + 1, "fee_bps")
    with pytest.raises(InvalidAmount):
        require_nonneg(-1)


def test_rescale_between_decimals():
    assert rescale(100 * 10**18, 18, 9) == 100 * 10**9
    assert rescale(5, 9, 18) == 5 * 10**9
    assert rescale(999_999_999, 18, 9) == 0
    assert rescale(42, 9, 9) == 42


def test_uq112x112_encode_decode():
    half = encode_uq112x112(1, 2)
    assert half == Q112 // 2
    assert decode_uq112x112(encode_uq112x112(3, 2), 10) == 15
    # price of a 9-decimal asset in an 18-decimal asset at parity
    p = encode_uq112x112(10**24, 10**15)
    assert decode_uq112x112(p, 10**9) == 10**18
    with pytest.raises(ZeroDivisionError):
        encode_uq112x112(1, 0)


def test_sqrt_floors():
    assert sqrt(0) == 0
    assert sqrt(15) == 3
    assert sqrt(10**30) == 10**15
    with pytest.raises(InvalidAmount):
        sqrt(-4)


class _Vault:
    def __init__(self) -> None:
        self._guard = ReentrancyGuard()
        self.calls = 0
        self.hook = None

    @non_reentrant
    def touch(self) -> int:
        self.calls += 1
        if self.hook is not None:
            self.hook()
        return self.calls


def test_guard_rejects_reentry_and_releases():
    v = _Vault()
    v.hook = v.touch
    with pytest.raises(Reentrancy) as ei:
        v.touch()
    assert ei.value.details["op"] == "touch"
    assert ei.value.details["active"] == "touch"
    assert v._guard.entered is False

    # Sequential calls are fine once released.
    v.hook = None
    assert v.touch() == 2
    assert v.touch() == 3


def test_guard_hook_can_catch_and_continue():
    v = _Vault()
    caught = []

    def hook():
        try:
            v.touch()
        except Reentrancy as exc:
            caught.append(exc)

    v.hook = hook
    assert v.touch() == 1
    assert len(caught) == 1
    assert v.calls == 1
