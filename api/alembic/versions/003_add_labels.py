"""Add label and card_label tables

Revision ID: 003_labels
Revises: 002_card_ci_unique
Create Date: 2026-10-19 00:00:00.000000

"""
from datetime import datetime, timezone

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '003_labels'
down_revision = '002_card_ci_unique'
branch_labels = None
depends_on = None


def upgrade() -> None:
    label_table = op.create_table(
        'label',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('type', sa.String(), nullable=False),
        sa.Column('color', sa.String(), nullable=False, server_default='#3B82F6'),
        sa.Column('description', sa.String(), nullable=False, server_default=''),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'name', 'type', name='uq_label_user_name_type'),
    )
    op.create_index(op.f('ix_label_user_id'), 'label', ['user_id'], unique=False)

    op.create_table(
        'card_label',
        sa.Column('card_id', sa.Integer(), nullable=False),
        sa.Column('label_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['card_id'], ['card.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['label_id'], ['label.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('card_id', 'label_id'),
    )
    op.create_index(op.f('ix_card_label_label_id'), 'card_label', ['label_id'], unique=False)

    # System labels shared by every user
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    op.bulk_insert(
        label_table,
        [
            {
                'name': 'word',
                'type': 'system',
                'user_id': None,
                'color': '#3B82F6',
                'description': 'Cards created from individual words',
                'created_at': now,
            },
            {
                'name': 'sentence',
                'type': 'system',
                'user_id': None,
                'color': '#10B981',
                'description': 'Cards created from sentences',
                'created_at': now,
            },
        ],
    )


def downgrade() -> None:
    op.drop_index(op.f('ix_card_label_label_id'), table_name='card_label')
    op.drop_table('card_label')
    op.drop_index(op.f('ix_label_user_id'), table_name='label')
    op.drop_table('label')
