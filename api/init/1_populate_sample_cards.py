"""
Script to populate a demo user with sample vocabulary cards.
Cards that already exist for the user are skipped. Some cards are answered
right away so the deck starts with a mix of Learning and Review cards.
Every sample card carries the built-in "word" label.

Usage: python init/1_populate_sample_cards.py [user_id]
"""
import sys
import logging
from pathlib import Path

# Add the api directory to Python path so we can import from cardwise
script_dir = Path(__file__).parent
api_dir = script_dir.parent
sys.path.insert(0, str(api_dir))

from cardwise.core.config import settings
from cardwise.core.database import engine, init_db
from cardwise.core.exceptions import DuplicateCard
from cardwise.models.enums import Rating
from cardwise.repositories import SqlModelCardRepository
from cardwise.services.memory_model import SchedulerParameters
from cardwise.services.scheduling_service import SchedulingEngine

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

DEFAULT_USER = "user123"

# (word, translation, sample sentence, ratings to apply after creation)
SAMPLE_CARDS = [
    ("hello", "hola", "Hello, how are you today?", []),
    ("world", "mundo", "The world is beautiful.", [Rating.GOOD]),
    ("computer", "computadora", "I work on my computer every day.", [Rating.AGAIN, Rating.EASY]),
    ("language", "idioma", "Learning a new language is fun.", []),
    ("study", "estudiar", "I study English every evening.", [Rating.PERFECT]),
]


def populate_sample_cards(user_id: str) -> int:
    """
    Create the sample cards for a user.

    Args:
        user_id: User to create the cards for

    Returns:
        Number of cards created
    """
    scheduler = SchedulingEngine(
        SqlModelCardRepository(engine),
        parameters=SchedulerParameters.from_settings(settings),
    )

    word_label = next(label for label in scheduler.list_system_labels() if label.name == "word")

    created = 0
    for word, translation, sentence, ratings in SAMPLE_CARDS:
        try:
            card = scheduler.create_card(user_id, word, translation, sentence, labels=[word_label.id])
        except DuplicateCard:
            logger.info(f"Skipping '{word}', already present")
            continue

        for rating in ratings:
            card = scheduler.answer_card(user_id, card.id, rating)
        created += 1
        logger.info(f"Created '{word}' (state={card.state}, due={card.due.isoformat()})")

    return created


if __name__ == "__main__":
    user_id = sys.argv[1] if len(sys.argv) > 1 else DEFAULT_USER
    logger.info(f"Populating sample cards for user {user_id}...")
    try:
        init_db()
        count = populate_sample_cards(user_id)
        logger.info(f"Successfully completed! Created {count} card(s)")
    except Exception as e:
        logger.error("Error populating sample cards: %s", e, exc_info=True)
        sys.exit(1)
