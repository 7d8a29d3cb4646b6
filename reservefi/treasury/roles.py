from __future__ import annotations

"""
Treasury roles and the role-change timelock.

Authorization flags are per (role, address). Outside of genesis, every change
is first queued and can only be toggled once `timelock_blocks` have passed,
giving holders time to react to a new depositor, spender or manager.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Set, Tuple

from ..errors import NotQueued, TimelockPending


class Role(Enum):
    RESERVE_DEPOSITOR = "reserve_depositor"
    RESERVE_SPENDER = "reserve_spender"
    RESERVE_TOKEN = "reserve_token"
    RESERVE_MANAGER = "reserve_manager"
    LIQUIDITY_DEPOSITOR = "liquidity_depositor"
    LIQUIDITY_TOKEN = "liquidity_token"
    LIQUIDITY_MANAGER = "liquidity_manager"
    DEBTOR = "debtor"
    REWARD_MANAGER = "reward_manager"


TOKEN_ROLES = frozenset({Role.RESERVE_TOKEN, Role.LIQUIDITY_TOKEN})


@dataclass(frozen=True)
class QueuedChange:
    role: Role
    account: str
    ready_height: int


class RoleBook:
    """Role membership plus pending (timelocked) changes."""

    def __init__(self, timelock_blocks: int) -> None:
        self.timelock_blocks = int(timelock_blocks)
        self._members: Dict[Role, Set[str]] = {r: set() for r in Role}
        self._queue: Dict[Tuple[Role, str], QueuedChange] = {}

    def has(self, role: Role, account: str) -> bool:
        return account in self._members[role]

    def members(self, role: Role) -> Tuple[str, ...]:
        return tuple(sorted(self._members[role]))

    def queued(self, role: Role, account: str) -> QueuedChange | None:
        return self._queue.get((role, account))

    def queue(self, role: Role, account: str, *, height: int) -> QueuedChange:
        change = QueuedChange(role=role, account=account, ready_height=height + self.timelock_blocks)
        self._queue[(role, account)] = change
        return change

    def require_ready(self, role: Role, account: str, *, height: int) -> QueuedChange:
        change = self._queue.get((role, account))
        if change is None:
            raise NotQueued("role change not queued", details={"role": role.value, "account": account})
        if height < change.ready_height:
            raise TimelockPending(ready_height=change.ready_height, height=height)
        return change

    def flip(self, role: Role, account: str) -> bool:
        """Toggle membership and clear any queued change; returns the new state."""
        self._queue.pop((role, account), None)
        members = self._members[role]
        if account in members:
            members.discard(account)
            return False
        members.add(account)
        return True


__all__ = ["Role", "TOKEN_ROLES", "QueuedChange", "RoleBook"]
