"""SQLAlchemy models for the ledger."""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

# USD amounts, six decimal places
AMOUNT = Numeric(20, 6)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class TransactionType(str, Enum):
    """Kind of ledger movement."""

    TRANSFER = "transfer"
    BRIDGE = "bridge"


class TransactionStatus(str, Enum):
    """Status of a transaction."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class User(Base):
    """Ledger account holder."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), unique=True, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )

    # Relationships
    balances: Mapped[list["Balance"]] = relationship(back_populates="user", lazy="selectin")


class Balance(Base):
    """User balance on a single chain. Never negative."""

    __tablename__ = "balances"
    __table_args__ = (Index("ix_balances_user_chain", "user_id", "chain", unique=True),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False)
    chain: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[Decimal] = mapped_column(AMOUNT, default=Decimal("0"), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    # Relationships
    user: Mapped["User"] = relationship(back_populates="balances")


class Transaction(Base):
    """Append-only record of a transfer or bridge.

    total_deducted = amount + gas_cost + bridge_cost
    """

    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    tx_hash: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    type: Mapped[TransactionType] = mapped_column(
        String(20), default=TransactionType.TRANSFER, nullable=False
    )
    from_user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False)
    to_user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False)
    chain: Mapped[str] = mapped_column(String(20), nullable=False)  # Settlement chain
    from_chain: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)  # Bridge only
    to_chain: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)  # Bridge only
    amount: Mapped[Decimal] = mapped_column(AMOUNT, nullable=False)
    gas_cost: Mapped[Decimal] = mapped_column(AMOUNT, default=Decimal("0"), nullable=False)
    bridge_cost: Mapped[Decimal] = mapped_column(AMOUNT, default=Decimal("0"), nullable=False)
    total_deducted: Mapped[Decimal] = mapped_column(AMOUNT, nullable=False)
    status: Mapped[TransactionStatus] = mapped_column(
        String(20), default=TransactionStatus.CONFIRMED, nullable=False
    )
    block_number: Mapped[Optional[int]] = mapped_column(nullable=True)
    bridged: Mapped[bool] = mapped_column(default=False)
    bridge_tx_hash: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )

    def to_dict(self) -> dict:
        """Convert to a JSON-friendly dictionary."""
        return {
            "txHash": self.tx_hash,
            "type": TransactionType(self.type).value,
            "fromUserId": self.from_user_id,
            "toUserId": self.to_user_id,
            "chain": self.chain,
            "fromChain": self.from_chain,
            "toChain": self.to_chain,
            "amount": str(self.amount),
            "gasCost": str(self.gas_cost),
            "bridgeCost": str(self.bridge_cost),
            "totalDeducted": str(self.total_deducted),
            "status": TransactionStatus(self.status).value,
            "blockNumber": self.block_number,
            "bridged": self.bridged,
            "bridgeTxHash": self.bridge_tx_hash,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
