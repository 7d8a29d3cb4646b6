"""
Treasury ledger: reserve/debt counters, role timelock and mint authorization.
"""

from .ledger import TreasuryEvent, TreasuryLedger
from .roles import TOKEN_ROLES, QueuedChange, Role, RoleBook

__all__ = ["TreasuryLedger", "TreasuryEvent", "Role", "RoleBook", "QueuedChange", "TOKEN_ROLES"]
