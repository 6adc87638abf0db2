"""
Infrastructure Setup Script for Restaurant Reviews Backend
This script checks the database connections, transaction support and indexes.
"""

import logging

from src.config import LOG_FORMAT
from src.db.mongodb_client import mongo_client
from src.db.redis_client import redis_client
from src.db.transactions import transaction_coordinator

logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
logger = logging.getLogger(__name__)


def check_database_connections() -> bool:
    """Check if all database connections are working."""
    logger.info("Checking database connections...")

    # Check MongoDB
    try:
        mongo_client.client.admin.command("ping")
        logger.info("✅ MongoDB connection: OK")
    except Exception as e:
        logger.error(f"❌ MongoDB connection error: {e}")
        return False

    # Check Redis
    try:
        redis_client.client.ping()
        logger.info("✅ Redis connection: OK")
    except Exception as e:
        logger.error(f"❌ Redis connection error: {e}")
        return False

    return True


def check_transaction_support():
    """Report whether review writes will run inside transactions."""
    if transaction_coordinator.transactions_available():
        logger.info("✅ Multi-document transactions: available")
    else:
        logger.warning("⚠️ Multi-document transactions: unavailable, review writes run without isolation")
        logger.info("💡 Run MongoDB as a replica set to enable transactions")


def main() -> bool:
    """Main setup function."""
    logger.info("🚀 Setting up Restaurant Reviews Backend...")

    if not check_database_connections():
        logger.error("❌ Database connection check failed!")
        return False

    check_transaction_support()

    mongo_client.create_indexes()
    logger.info("✅ Indexes created")

    logger.info("💡 To load sample data, run:")
    logger.info("   python -m src.loaders.document_loader")
    logger.info("✅ Setup complete! Ready to start the server.")
    return True


if __name__ == "__main__":
    main()
