"""
Database table creation script for the Contact Reconciliation Service
This script creates all database tables and tests the database connection.
Run this script after setting up your database to initialize the schema.
"""

import asyncio
import logging
import sys
from typing import Optional

from database import DatabaseManager, db_manager
from repositories.contact_repository import ContactRepository

logger = logging.getLogger(__name__)


async def create_tables(manager: Optional[DatabaseManager] = None) -> bool:
    """
    Create all database tables defined in the models
    Returns False instead of raising so the script can report the failure
    """
    manager = manager or db_manager
    try:
        logger.info("Starting database table creation...")

        # Test database connection first
        if not await manager.test_connection():
            logger.error("Database connection failed - cannot create tables")
            return False

        await manager.create_tables()

        async with manager.get_session() as session:
            # Test that we can query the contacts table (even if empty)
            count = await ContactRepository(session).count()
            logger.info(f"Contacts table accessible - current count: {count}")

        return True

    except Exception as e:
        logger.error(f"Failed to create database tables: {e}")
        return False


async def main() -> bool:
    """Main function to run the table creation"""
    logger.info("Contact Reconciliation API - Database Setup")

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
    logging.basicConfig(level=logging.INFO)
    sys.exit(0 if asyncio.run(main()) else 1)
