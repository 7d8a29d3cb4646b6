from __future__ import annotations

import os

import pytest

from reservefi.config import ReserveConfig
from reservefi.system import ReserveSystem, build_system

OWNER = "dao"


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    # Keep operator environment out of config-loading tests.
    for key in list(os.environ):
        if key.startswith("RESERVEFI_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def system() -> ReserveSystem:
    """Default protocol at timestamp 0: 1M/1M pool, 2M reserve seed, oracle cold."""
    return build_system(ReserveConfig(), owner=OWNER)


@pytest.fixture
def warm_system(system: ReserveSystem):
    """Protocol with one full oracle window observed; returns (system, timestamp)."""
    ts = system.config.oracle.window_seconds
    assert system.oracle.update(ts) is True
    return system, ts
