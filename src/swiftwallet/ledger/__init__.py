"""Ledger module for user balances and transaction records."""

from swiftwallet.ledger.database import close_db, init_db
from swiftwallet.ledger.models import (
    Balance,
    Transaction,
    TransactionStatus,
    TransactionType,
    User,
)
from swiftwallet.ledger.repository import LedgerRepository
from swiftwallet.ledger.store import BalanceTotals, LedgerScope, LedgerStore

__all__ = [
    # Models
    "User",
    "Balance",
    "Transaction",
    # Enums
    "TransactionStatus",
    "TransactionType",
    # Database
    "close_db",
    "init_db",
    "LedgerRepository",
    "LedgerStore",
    "LedgerScope",
    "BalanceTotals",
]
