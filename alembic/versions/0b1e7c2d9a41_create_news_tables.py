"""create_news_tables

Revision ID: 0b1e7c2d9a41
Revises:
Create Date: 2026-10-18 09:12:44.318201

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0b1e7c2d9a41'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create articles, reactions, lifecycle log, stocks, announcements and profiles tables."""
    op.create_table('articles',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('title', sa.String(length=500), nullable=False),
        sa.Column('summary', sa.Text(), nullable=True),
        sa.Column('body', sa.Text(), nullable=True),
        sa.Column('cover_image_url', sa.String(length=1000), nullable=True),
        sa.Column('category', sa.String(length=100), nullable=False),
        sa.Column('source_url', sa.String(length=1000), nullable=True),
        sa.Column('stocks_mentioned', sa.JSON(), nullable=True),
        sa.Column('created_by', sa.String(length=100), nullable=True),
        sa.Column('fingerprint', sa.String(length=1000), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='active'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_articles_status_created_at', 'articles', ['status', 'created_at'])
    op.create_index('idx_articles_category', 'articles', ['category'])
    op.create_index('ix_articles_fingerprint', 'articles', ['fingerprint'])

    op.create_table('article_reactions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('article_id', sa.String(length=36), nullable=False),
        sa.Column('helpful_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('love_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('insightful_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('concerning_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_article_reactions_article_id', 'article_reactions', ['article_id'], unique=True)

    op.create_table('lifecycle_log',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('action', sa.String(length=20), nullable=False),
        sa.Column('article_id', sa.String(length=36), nullable=False),
        sa.Column('article_title', sa.String(length=500), nullable=True),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_lifecycle_log_article_id', 'lifecycle_log', ['article_id'])
    op.create_index('ix_lifecycle_log_timestamp', 'lifecycle_log', ['timestamp'])

    op.create_table('stocks',
        sa.Column('symbol', sa.String(length=20), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('sector', sa.String(length=100), nullable=True),
        sa.Column('current_price', sa.Float(), nullable=True),
        sa.Column('price_change_percent', sa.Float(), nullable=True),
        sa.Column('volume', sa.BigInteger(), nullable=True),
        sa.Column('market_cap', sa.Float(), nullable=True),
        sa.PrimaryKeyConstraint('symbol')
    )
    op.create_index('ix_stocks_market_cap', 'stocks', ['market_cap'])

    op.create_table('announcements',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('title', sa.String(length=300), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('priority', sa.String(length=20), nullable=False, server_default='medium'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('expires_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )

    # Admin flags are managed directly in the database
    op.create_table('profiles',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('is_admin', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.PrimaryKeyConstraint('id')
    )


def downgrade() -> None:
    """Drop all news tables."""
    op.drop_table('profiles')
    op.drop_table('announcements')
    op.drop_index('ix_stocks_market_cap', 'stocks')
    op.drop_table('stocks')
    op.drop_index('ix_lifecycle_log_timestamp', 'lifecycle_log')
    op.drop_index('ix_lifecycle_log_article_id', 'lifecycle_log')
    op.drop_table('lifecycle_log')
    op.drop_index('ix_article_reactions_article_id', 'article_reactions')
    op.drop_table('article_reactions')
    op.drop_index('ix_articles_fingerprint', 'articles')
    op.drop_index('idx_articles_category', 'articles')
    op.drop_index('idx_articles_status_created_at', 'articles')
    op.drop_table('articles')
