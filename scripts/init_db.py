#!/usr/bin/env python3
"""
Script to initialize the history database tables.

Usage:
    python scripts/init_db.py
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from academic_bot.config import get_settings
from academic_bot.db.sqlite import Database


async def main() -> None:
    """Create chats, history and feedback tables."""
    settings = get_settings()
    db = Database.from_settings(settings)

    print("Initializing database...")
    print("-" * 50)
    print(f"URL: {settings.db_url}")

    await db.init()
    print("✅ Tables created")

    print("-" * 50)
    await db.close()


if __name__ == "__main__":
    asyncio.run(main())
