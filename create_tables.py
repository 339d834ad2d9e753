"""
Database table creation script for Identity Reconciliation API
This script creates all database tables and tests the database connection.
Run this script after setting up your database to initialize the schema.
"""

import asyncio
import logging

from sqlalchemy import select, func

from database import db_manager
from models import Contact

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def create_tables(manager=db_manager) -> bool:
    """
    Create all database tables defined in the models
    Returns True when the contacts table exists and can be queried
    """
    logger.info("Starting database table creation...")

    if not await manager.test_connection():
        logger.error("Database connection failed - cannot create tables")
        return False

    await manager.create_tables()

    async with manager.get_session() as session:
        count = await session.scalar(select(func.count()).select_from(Contact))
        logger.info(f"Contacts table accessible - current count: {count}")

    return True


async def main() -> bool:
    """Main function to run the table creation"""
    logger.info("Identity Reconciliation API - Database Setup")
    logger.info("=" * 50)

    try:
        success = await create_tables()
    finally:
        await db_manager.dispose()

    if success:
        logger.info("Database setup completed successfully!")
        logger.info("You can now start the API server with: python main.py")
    else:
        logger.error("Database setup failed!")
        logger.error("Please check your database configuration and try again")

    return success


if __name__ == "__main__":
    asyncio.run(main())
