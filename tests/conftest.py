"""Pytest configuration and fixtures."""

import os
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["DEBUG"] = "false"
os.environ["SEED_DEMO_DATA"] = "false"

from swiftwallet.engine import TransactionEngine
from swiftwallet.ledger.database import make_session_factory
from swiftwallet.ledger.models import Base
from swiftwallet.ledger.store import LedgerStore
from swiftwallet.routing.oracle import PriceOracle
from swiftwallet.submitter import SimulatedSubmitter


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """Create a file-backed database engine for testing.

    A file is used rather than :memory: so that concurrent scopes get their
    own connections.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}",
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return make_session_factory(db_engine)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for testing."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def store(session_factory) -> LedgerStore:
    """Create ledger store for testing."""
    return LedgerStore(session_factory, lock_timeout=5.0)


@pytest.fixture
def make_user(store):
    """Factory creating a user with starting balances, e.g. ``await make_user("alice", ethereum=100)``."""

    async def _make_user(user_id: str, **balances) -> str:
        await store.create_user(user_id)
        for chain, amount in balances.items():
            await store.adjust(user_id, chain, Decimal(str(amount)))
        return user_id

    return _make_user


@pytest.fixture
def oracle() -> PriceOracle:
    return PriceOracle()


@pytest.fixture
def submitter() -> SimulatedSubmitter:
    return SimulatedSubmitter()


@pytest.fixture
def engine(store, oracle, submitter) -> TransactionEngine:
    """Transaction engine with default tables and a simulated submitter."""
    return TransactionEngine(store, oracle=oracle, submitter=submitter)
