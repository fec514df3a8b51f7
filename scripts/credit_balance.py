#!/usr/bin/env python3
"""Credit (or debit, with a negative amount) a user's balance on one chain."""

import argparse
import asyncio
import sys
from decimal import Decimal

from dotenv import load_dotenv

load_dotenv()

from swiftwallet.config import get_settings
from swiftwallet.errors import LedgerError
from swiftwallet.ledger.database import close_db, get_session_factory, init_db
from swiftwallet.ledger.store import LedgerStore


async def credit_balance(user_id: str, chain: str, amount: Decimal, create: bool) -> int:
    await init_db()
    store = LedgerStore(get_session_factory(), lock_timeout=get_settings().lock_timeout_seconds)
    try:
        if not await store.user_exists(user_id):
            if not create:
                print(f"User {user_id} not found (use --create to add it)")
                return 1
            await store.create_user(user_id)
            print(f"Created user {user_id}")

        try:
            new_amount = await store.adjust(user_id, chain.lower(), amount)
        except LedgerError as e:
            print(f"Failed: {e}")
            return 1

        print(f"Adjusted {chain.lower()} balance of {user_id} by {amount}")
        print(f"New balance: {new_amount}")
        return 0
    finally:
        await close_db()


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("user_id")
    parser.add_argument("chain", help="e.g. ethereum, polygon, solana")
    parser.add_argument("amount", type=Decimal)
    parser.add_argument("--create", action="store_true", help="Create the user if missing")
    args = parser.parse_args()

    return asyncio.run(credit_balance(args.user_id, args.chain, args.amount, args.create))


if __name__ == "__main__":
    sys.exit(main())
