"""
Script to clear cards, card labels, user labels and users. System labels are kept.
"""
import sys
import logging
from pathlib import Path

# Add the api directory to Python path so we can import from cardwise
script_dir = Path(__file__).parent
api_dir = script_dir.parent
sys.path.insert(0, str(api_dir))

from sqlmodel import Session, text
from cardwise.core.database import engine

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


def clear_tables():
    """Clear all user data. System labels are kept."""
    with Session(engine) as session:
        try:
            # Delete links and user labels first (due to foreign key constraints)
            logger.info("Deleting all card labels...")
            result = session.exec(text("DELETE FROM card_label"))
            logger.info(f"Deleted {result.rowcount} card label(s)")

            logger.info("Deleting all user labels...")
            result = session.exec(text("DELETE FROM label WHERE type = 'user'"))
            logger.info(f"Deleted {result.rowcount} label(s)")

            logger.info("Deleting all cards...")
            result = session.exec(text("DELETE FROM card"))
            logger.info(f"Deleted {result.rowcount} card(s)")

            logger.info("Deleting all users...")
            result = session.exec(text('DELETE FROM "user"'))
            logger.info(f"Deleted {result.rowcount} user(s)")

            session.commit()
            logger.info("Successfully cleared user data")

        except Exception as e:
            session.rollback()
            logger.error("Error clearing tables: %s", e, exc_info=True)
            raise


if __name__ == "__main__":
    logger.info("Starting table clearing...")
    try:
        clear_tables()
        logger.info("Successfully completed!")
    except Exception as e:
        logger.error("Error during table clearing: %s", e, exc_info=True)
        sys.exit(1)
