"""
Database initialisation script.
Creates the users, turnarounds and task tables.
"""
import asyncio

from groundcrew.core.config import get_settings
from groundcrew.database import close_db, init_db


async def main():
    settings = get_settings()
    print(f"Creating tables on {settings.DATABASE_URL.split('@')[-1]}...")
    await init_db()
    await close_db()
    print("✓ Tables ready")


if __name__ == "__main__":
    asyncio.run(main())
