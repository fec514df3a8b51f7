"""Utility modules for SwiftWallet."""

from swiftwallet.utils.amounts import parse_amount
from swiftwallet.utils.locks import RowLockRegistry, RowLockSet, row_locks

__all__ = ["RowLockRegistry", "RowLockSet", "parse_amount", "row_locks"]
