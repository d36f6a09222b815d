"""Add case-insensitive unique index on card word and translation

Revision ID: 002_card_ci_unique
Revises: 001_initial
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '002_card_ci_unique'
down_revision = '001_initial'
branch_labels = None
depends_on = None


def upgrade() -> None:
    connection = op.get_bind()

    # Step 1: Remove duplicates based on case-insensitive comparison
    # Keep the card with the lowest ID, delete others
    connection.execute(
        sa.text("""
            DELETE FROM card
            WHERE id NOT IN (
                SELECT MIN(id)
                FROM card
                GROUP BY user_id, LOWER(TRIM(word)), LOWER(TRIM(translation))
            )
        """)
    )

    # Step 2: Create the unique index so concurrent creates cannot both insert
    connection.execute(
        sa.text("""
            CREATE UNIQUE INDEX uq_card_user_word_translation_ci
            ON card (user_id, LOWER(TRIM(word)), LOWER(TRIM(translation)));
        """)
    )


def downgrade() -> None:
    op.drop_index('uq_card_user_word_translation_ci', table_name='card')
