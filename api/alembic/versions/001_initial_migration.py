"""Initial migration - create user and card tables

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'user',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'card',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('word', sa.String(), nullable=False),
        sa.Column('translation', sa.String(), nullable=False, server_default=''),
        sa.Column('context', sa.String(), nullable=False, server_default=''),
        sa.Column('state', sa.Integer(), nullable=False),
        sa.Column('due', sa.DateTime(), nullable=False),
        sa.Column('stability', sa.Float(), nullable=False),
        sa.Column('difficulty', sa.Float(), nullable=False),
        sa.Column('elapsed_days', sa.Float(), nullable=False),
        sa.Column('scheduled_days', sa.Float(), nullable=False),
        sa.Column('reps', sa.Integer(), nullable=False),
        sa.Column('lapses', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('last_reviewed_at', sa.DateTime(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['user_id'], ['user.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_card_user_id'), 'card', ['user_id'], unique=False)
    op.create_index(op.f('ix_card_due'), 'card', ['due'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_card_due'), table_name='card')
    op.drop_index(op.f('ix_card_user_id'), table_name='card')
    op.drop_table('card')
    op.drop_table('user')
