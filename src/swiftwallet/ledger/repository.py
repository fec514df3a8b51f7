"""Repository for ledger queries bound to a single session."""

from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from swiftwallet.errors import InsufficientBalance, IntegrityFailure
from swiftwallet.ledger.models import (
    Balance,
    Transaction,
    TransactionStatus,
    TransactionType,
    User,
)
from swiftwallet.utils.amounts import MICRO, ZERO


class LedgerRepository:
    """Session-bound database operations.

    The repository never commits; the caller owns the session's transaction.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    # User operations
    async def get_user(self, user_id: str) -> Optional[User]:
        """Get user by ID."""
        return await self.session.get(User, user_id)

    async def create_user(self, user_id: str, email: Optional[str] = None) -> User:
        """Create a new user."""
        user = User(id=user_id, email=email)
        self.session.add(user)
        await self.session.flush()
        return user

    # Balance operations
    async def get_balance(
        self, user_id: str, chain: str, for_update: bool = False
    ) -> Optional[Balance]:
        """Get the balance row for user/chain, optionally re-read under a row lock."""
        stmt = select(Balance).where(Balance.user_id == user_id, Balance.chain == chain)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_all_balances(self, user_id: str) -> list[Balance]:
        """Get all balances for a user."""
        stmt = select(Balance).where(Balance.user_id == user_id).order_by(Balance.id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_or_create_balance(self, user_id: str, chain: str) -> Balance:
        """Get the latest balance row for user/chain, creating it at zero."""
        balance = await self.get_balance(user_id, chain, for_update=True)
        if balance is None:
            balance = Balance(user_id=user_id, chain=chain, amount=ZERO)
            self.session.add(balance)
            await self.session.flush()
        return balance

    async def apply_delta(self, user_id: str, chain: str, delta: Decimal) -> Balance:
        """Add delta (negative for debits) to a balance.

        Raises InsufficientBalance without touching the row if the result
        would be negative.
        """
        balance = await self.get_or_create_balance(user_id, chain)
        current = Decimal(balance.amount)
        candidate = current + delta
        if candidate < ZERO:
            raise InsufficientBalance(chain, current=current, required=-delta)

        balance.amount = candidate.quantize(MICRO)
        await self.session.flush()
        return balance

    # Transaction operations
    async def create_transaction(
        self,
        tx_hash: str,
        type: TransactionType,
        from_user_id: str,
        to_user_id: str,
        chain: str,
        amount: Decimal,
        gas_cost: Decimal = ZERO,
        bridge_cost: Decimal = ZERO,
        total_deducted: Optional[Decimal] = None,
        status: TransactionStatus = TransactionStatus.CONFIRMED,
        block_number: Optional[int] = None,
        from_chain: Optional[str] = None,
        to_chain: Optional[str] = None,
        bridged: bool = False,
        bridge_tx_hash: Optional[str] = None,
    ) -> Transaction:
        """Append a transaction record."""
        expected_total = amount + gas_cost + bridge_cost
        if total_deducted is None:
            total_deducted = expected_total
        elif total_deducted != expected_total:
            raise IntegrityFailure(
                "total_deducted must equal amount + gas_cost + bridge_cost",
                total_deducted=total_deducted,
                expected=expected_total,
            )

        tx = Transaction(
            tx_hash=tx_hash,
            type=type,
            from_user_id=from_user_id,
            to_user_id=to_user_id,
            chain=chain,
            from_chain=from_chain,
            to_chain=to_chain,
            amount=amount,
            gas_cost=gas_cost,
            bridge_cost=bridge_cost,
            total_deducted=total_deducted,
            status=status,
            block_number=block_number,
            bridged=bridged,
            bridge_tx_hash=bridge_tx_hash,
        )
        self.session.add(tx)
        await self.session.flush()
        return tx

    async def get_transaction(self, tx_hash: str) -> Optional[Transaction]:
        """Get transaction by hash."""
        stmt = select(Transaction).where(Transaction.tx_hash == tx_hash)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

