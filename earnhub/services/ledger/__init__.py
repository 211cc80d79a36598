"""
Ledger store package.

Transactional balance updates paired with append-only audit records.
"""

from earnhub.services.ledger.store import (
    BalanceDelta,
    LedgerStore,
    LedgerTransaction,
    ReconciliationResult,
)


__all__ = [
    "BalanceDelta",
    "LedgerStore",
    "LedgerTransaction",
    "ReconciliationResult",
]
