"""Initial schema - match cache, prediction pool, source URLs

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'matches',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('home_team', sa.String(200), nullable=False),
        sa.Column('away_team', sa.String(200), nullable=False),
        sa.Column('match_date', sa.Date(), nullable=False),
        sa.Column('match_time', sa.String(10), nullable=True),
        sa.Column('league', sa.String(200), nullable=True),
        sa.Column('odds_home', sa.Float(), nullable=False),
        sa.Column('odds_draw', sa.Float(), nullable=False),
        sa.Column('odds_away', sa.Float(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now()),
        sa.UniqueConstraint('home_team', 'away_team', 'match_date', name='uq_matches_natural_key'),
    )
    op.create_index('ix_matches_date_time', 'matches', ['match_date', 'match_time'])

    op.create_table(
        'predictions',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('category', sa.String(20), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index('ix_predictions_category', 'predictions', ['category'])

    op.create_table(
        'source_urls',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('url', sa.String(1000), nullable=False, unique=True),
        sa.Column('label', sa.String(200), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table('source_urls')
    op.drop_index('ix_predictions_category', table_name='predictions')
    op.drop_table('predictions')
    op.drop_index('ix_matches_date_time', table_name='matches')
    op.drop_table('matches')
