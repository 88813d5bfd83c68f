"""
Create database tables and the candidate vector collection
"""
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.core.database import init_db
from app.core.exceptions import VectorStoreError
from app.core.logging_config import configure_logging
from app.vector_store.service import vector_store
import structlog

logger = structlog.get_logger()


def main():
    """Main initialization function"""
    configure_logging()
    logger.info("initializing_database")

    init_db()

    try:
        vector_store.ensure_collection()
        logger.info("vector_collection_ready", collection=vector_store.collection_name)
    except VectorStoreError as e:
        # Tables are usable without the index; vectorization retries on later edits
        logger.error("vector_collection_init_failed", error=e.message, **e.details)

    logger.info("database_initialization_complete")


if __name__ == "__main__":
    main()
