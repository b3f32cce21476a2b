"""create round_history

Revision ID: 3a7c91d2e5b4
Revises:
Create Date: 2026-10-19 00:00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3a7c91d2e5b4'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)

    # db.create_all() may already have built it on a dev database
    if 'round_history' in set(insp.get_table_names()):
        return

    op.create_table(
        'round_history',
        sa.Column('id', sa.String(length=32), primary_key=True),
        sa.Column('game_type', sa.String(length=32), nullable=False),
        sa.Column('start_time', sa.BigInteger(), nullable=True),
        sa.Column('ended_at', sa.Float(), nullable=False),
        sa.Column('result', sa.String(length=32), nullable=False),
        sa.Column('winner_id', sa.String(length=64), nullable=True),
        sa.Column('player_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('scores', sa.Text(), nullable=True),
    )
    op.create_index('ix_round_history_game_type', 'round_history', ['game_type'])


def downgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    if 'round_history' not in set(insp.get_table_names()):
        return
    op.drop_index('ix_round_history_game_type', table_name='round_history')
    op.drop_table('round_history')
