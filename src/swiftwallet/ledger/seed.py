"""Demo data for local runs."""

import logging
from decimal import Decimal

from swiftwallet.ledger.store import LedgerStore

logger = logging.getLogger(__name__)

DEMO_USERS: dict[str, dict] = {
    "user1": {
        "email": "user1@example.com",
        "balances": {
            "ethereum": Decimal("1000.5"),
            "polygon": Decimal("500.25"),
            "arbitrum": Decimal("750.0"),
            "optimism": Decimal("250.75"),
            "solana": Decimal("500.25"),
        },
    },
    "user2": {
        "email": "user2@example.com",
        "balances": {
            "ethereum": Decimal("2000.0"),
            "polygon": Decimal("1000"),
            "arbitrum": Decimal("1500"),
            "optimism": Decimal("500"),
            "solana": Decimal("350"),
        },
    },
}


async def seed_demo_users(store: LedgerStore) -> int:
    """Create the demo users and credit their balances. Returns users created."""
    created = 0
    for user_id, data in DEMO_USERS.items():
        if await store.user_exists(user_id):
            continue

        keys = [(user_id, chain) for chain in data["balances"]]
        async with store.atomic(*keys, operation="seed") as scope:
            await scope.repo.create_user(user_id, data["email"])
            for chain, amount in data["balances"].items():
                await store.adjust(user_id, chain, amount, scope)
        created += 1

    logger.info(f"Seeded {created} demo user(s)")
    return created
