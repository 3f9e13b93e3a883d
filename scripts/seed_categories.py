"""Seed the default income and expense categories for an account."""

from __future__ import annotations

import argparse
import asyncio

from smartledger.database.session import db_manager
from smartledger.services.category_service import CategoryService


async def seed(account_id: str) -> None:
    """Create default categories if the account has none yet."""

    try:
        async with db_manager.session_scope() as session:
            categories = await CategoryService().seed_defaults(session, account_id)
    finally:
        await db_manager.dispose()

    print(f"Category seed completed: {len(categories)} categories for {account_id}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("account_id", help="Owner user id the categories belong to")
    asyncio.run(seed(parser.parse_args().account_id))
