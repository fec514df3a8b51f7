"""Ledger store: atomic balance mutation over the repository.

Every multi-step mutation runs inside one ``atomic`` scope:

    async with store.atomic(("alice", "polygon"), ("bob", "polygon")) as scope:
        await store.adjust("alice", "polygon", Decimal("-10.5"), scope)
        await store.adjust("bob", "polygon", Decimal("10"), scope)
        await scope.repo.create_transaction(...)

All writes in a scope commit together or roll back together. Row locks are
taken before the scope's session opens and released only after it has
committed or rolled back, so no concurrent reader sees a half-applied
operation.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from decimal import Decimal
from typing import AsyncIterator, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from swiftwallet.chains import is_supported_chain
from swiftwallet.errors import IntegrityFailure, UnsupportedChain
from swiftwallet.ledger.models import Transaction, User
from swiftwallet.ledger.repository import ZERO, LedgerRepository
from swiftwallet.utils.locks import RowKey, RowLockRegistry, RowLockSet, row_locks

logger = logging.getLogger(__name__)


@dataclass
class BalanceTotals:
    """Per-chain balances of a user and their sum."""

    user_id: str
    by_chain: dict[str, Decimal] = field(default_factory=dict)
    total: Decimal = ZERO

    def get(self, chain: str) -> Decimal:
        return self.by_chain.get(chain, ZERO)


class LedgerScope:
    """An open atomic scope: a session inside a begun transaction plus its row locks."""

    def __init__(self, session: AsyncSession, locks: RowLockSet):
        self.session = session
        self.repo = LedgerRepository(session)
        self.locks = locks

    def require(self, user_id: str, chain: str) -> None:
        """Fail unless the row was declared, and so locked, when the scope opened.

        Locks are only ever taken up front in sorted order. Taking one later
        could deadlock against a scope holding the same rows.
        """
        if not self.locks.holds((user_id, chain)):
            raise IntegrityFailure(
                f"Row {user_id}/{chain} was not declared by this scope",
                user_id=user_id,
                chain=chain,
            )


class LedgerStore:
    """Durable (user, chain) -> balance mapping with atomic read-modify-write."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        lock_timeout: Optional[float] = 30.0,
    ):
        self._session_factory = session_factory
        self._locks = RowLockRegistry(timeout=lock_timeout)

    @asynccontextmanager
    async def atomic(
        self, *keys: RowKey, operation: str = "ledger_scope"
    ) -> AsyncIterator[LedgerScope]:
        """Open an atomic scope holding locks on the given (user, chain) rows.

        Every row the scope will write must be passed here. Locks are taken
        in sorted order before the session opens.
        """
        async with row_locks(self._locks, keys, operation) as held:
            async with self._session_factory() as session:
                scope = LedgerScope(session, held)
                try:
                    yield scope
                    await session.commit()
                except SQLAlchemyError as e:
                    await session.rollback()
                    logger.error(f"Atomic scope {operation} rolled back: {e}")
                    raise IntegrityFailure(
                        f"Atomic scope {operation} could not commit", cause=type(e).__name__
                    ) from e
                except Exception:
                    await session.rollback()
                    logger.debug(f"Atomic scope {operation} rolled back")
                    raise

    @asynccontextmanager
    async def _reader(self, scope: Optional[LedgerScope]) -> AsyncIterator[LedgerRepository]:
        if scope is not None:
            yield scope.repo
            return
        async with self._session_factory() as session:
            yield LedgerRepository(session)

    # Balances
    async def adjust(
        self,
        user_id: str,
        chain: str,
        delta: Decimal,
        scope: Optional[LedgerScope] = None,
    ) -> Decimal:
        """Add delta to the (user, chain) balance and return the new amount.

        Raises InsufficientBalance, leaving the stored amount unchanged, when
        the result would be negative. Without a scope the store opens and
        commits its own. Within a scope the row must be one the scope declared.
        """
        if not is_supported_chain(chain):
            raise UnsupportedChain(chain)

        if scope is None:
            async with self.atomic((user_id, chain), operation="adjust") as own:
                return await self.adjust(user_id, chain, delta, own)

        scope.require(user_id, chain)
        balance = await scope.repo.apply_delta(user_id, chain, delta)
        logger.debug(f"Adjusted {user_id}/{chain} by {delta} -> {balance.amount}")
        return Decimal(balance.amount)

    async def balance_of(
        self, user_id: str, chain: str, scope: Optional[LedgerScope] = None
    ) -> Decimal:
        """Current amount on one chain, zero when no row exists."""
        async with self._reader(scope) as repo:
            balance = await repo.get_balance(user_id, chain, for_update=scope is not None)
            return Decimal(balance.amount) if balance is not None else ZERO

    async def totals(self, user_id: str, scope: Optional[LedgerScope] = None) -> BalanceTotals:
        """Per-chain balances and their sum across chains."""
        async with self._reader(scope) as repo:
            balances = await repo.get_all_balances(user_id)

        totals = BalanceTotals(user_id=user_id)
        for balance in balances:
            amount = Decimal(balance.amount)
            totals.by_chain[balance.chain] = amount
            totals.total += amount
        return totals

    # Users
    async def get_user(self, user_id: str) -> Optional[User]:
        async with self._reader(None) as repo:
            return await repo.get_user(user_id)

    async def user_exists(self, user_id: str) -> bool:
        return await self.get_user(user_id) is not None

    async def create_user(self, user_id: str, email: Optional[str] = None) -> User:
        """Create a user in its own scope."""
        async with self.atomic(operation="create_user") as scope:
            return await scope.repo.create_user(user_id, email)

    # Transactions
    async def get_transaction(self, tx_hash: str) -> Optional[Transaction]:
        async with self._reader(None) as repo:
            return await repo.get_transaction(tx_hash)
