"""create catalog and job tables

Revision ID: 7c1e4a9b2d30
Revises:
Create Date: 2026-10-18 09:12:44.218305
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '7c1e4a9b2d30'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

providertype = sa.Enum('TMDB', 'JIKAN', 'MANGADEX', name='providertype')
mediatype = sa.Enum('MOVIE', 'TV', 'ANIME', 'MANGA', name='mediatype')
syncjobtype = sa.Enum(
    'TRENDING_SYNC', 'POPULAR_SYNC', 'TOP_RATED_SYNC', 'DRAMAS_SYNC', 'UPCOMING_SYNC', 'CLEANUP',
    name='syncjobtype',
)
syncjobstatus = sa.Enum('RUNNING', 'COMPLETED', 'FAILED', 'CANCELLED', name='syncjobstatus')
loglevel = sa.Enum('DEBUG', 'INFO', 'WARN', 'ERROR', name='loglevel')


def upgrade() -> None:
    op.create_table(
        'media',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('provider_id', sa.String(100), nullable=False),
        sa.Column('provider_type', providertype, nullable=False),
        sa.Column('type', mediatype, nullable=False),
        sa.Column('title', sa.String(500), nullable=False),
        sa.Column('alt_titles', sa.JSON(), nullable=False),
        sa.Column('synopsis', sa.Text(), nullable=True),
        sa.Column('cover_image', sa.String(500), nullable=True),
        sa.Column('backdrop_image', sa.String(500), nullable=True),
        sa.Column('status', sa.String(50), nullable=True),
        sa.Column('genres', sa.JSON(), nullable=False),
        sa.Column('tags', sa.JSON(), nullable=False),
        sa.Column('countries', sa.JSON(), nullable=False),
        sa.Column('languages', sa.JSON(), nullable=False),
        sa.Column('score', sa.Float(), nullable=True),
        sa.Column('popularity', sa.Float(), nullable=True),
        sa.Column('year', sa.Integer(), nullable=True),
        sa.Column('adult', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint('provider_id', 'provider_type', name='uq_media_provider'),
    )
    op.create_index('ix_media_type', 'media', ['type'])
    op.create_index('ix_media_type_score', 'media', ['type', 'score'])

    op.create_table(
        'anime_data',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('media_id', sa.Integer(), sa.ForeignKey('media.id', ondelete='CASCADE'), nullable=False),
        sa.Column('anime_type', sa.String(50), nullable=True),
        sa.Column('episodes', sa.Integer(), nullable=True),
        sa.Column('duration', sa.String(100), nullable=True),
        sa.Column('season', sa.String(20), nullable=True),
        sa.Column('airing', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('airing_from', sa.String(50), nullable=True),
        sa.Column('airing_to', sa.String(50), nullable=True),
        sa.Column('rating', sa.String(100), nullable=True),
        sa.Column('studios', sa.JSON(), nullable=False),
    )
    op.create_index('ix_anime_data_media_id', 'anime_data', ['media_id'], unique=True)

    op.create_table(
        'manga_data',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('media_id', sa.Integer(), sa.ForeignKey('media.id', ondelete='CASCADE'), nullable=False),
        sa.Column('last_chapter', sa.String(50), nullable=True),
        sa.Column('last_volume', sa.String(50), nullable=True),
        sa.Column('rating', sa.String(50), nullable=True),
        sa.Column('publication_demographic', sa.String(50), nullable=True),
    )
    op.create_index('ix_manga_data_media_id', 'manga_data', ['media_id'], unique=True)

    op.create_table(
        'media_categories',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('media_id', sa.Integer(), sa.ForeignKey('media.id', ondelete='CASCADE'), nullable=False),
        sa.Column('category_title', sa.String(100), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_media_categories_media_id', 'media_categories', ['media_id'])
    op.create_index('ix_media_categories_title_position', 'media_categories', ['category_title', 'position'])

    op.create_table(
        'sync_jobs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('job_type', syncjobtype, nullable=False),
        sa.Column('status', syncjobstatus, nullable=False),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('error_msg', sa.Text(), nullable=True),
        sa.Column('items_total', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('items_synced', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('metadata', sa.JSON(), nullable=False),
    )
    op.create_index('ix_sync_jobs_status', 'sync_jobs', ['status'])
    op.create_index('ix_sync_jobs_started_at', 'sync_jobs', ['started_at'])

    op.create_table(
        'sync_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('job_id', sa.Integer(), sa.ForeignKey('sync_jobs.id', ondelete='CASCADE'), nullable=False),
        sa.Column('level', loglevel, nullable=False),
        sa.Column('message', sa.String(1000), nullable=False),
        sa.Column('details', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_sync_logs_created_at', 'sync_logs', ['created_at'])
    op.create_index('ix_sync_logs_job_created', 'sync_logs', ['job_id', 'created_at'])


def downgrade() -> None:
    op.drop_index('ix_sync_logs_job_created', table_name='sync_logs')
    op.drop_index('ix_sync_logs_created_at', table_name='sync_logs')
    op.drop_table('sync_logs')
    op.drop_index('ix_sync_jobs_started_at', table_name='sync_jobs')
    op.drop_index('ix_sync_jobs_status', table_name='sync_jobs')
    op.drop_table('sync_jobs')
    op.drop_index('ix_media_categories_title_position', table_name='media_categories')
    op.drop_index('ix_media_categories_media_id', table_name='media_categories')
    op.drop_table('media_categories')
    op.drop_index('ix_manga_data_media_id', table_name='manga_data')
    op.drop_table('manga_data')
    op.drop_index('ix_anime_data_media_id', table_name='anime_data')
    op.drop_table('anime_data')
    op.drop_index('ix_media_type_score', table_name='media')
    op.drop_index('ix_media_type', table_name='media')
    op.drop_table('media')

    for enum in (loglevel, syncjobstatus, syncjobtype, mediatype, providertype):
        enum.drop(op.get_bind(), checkfirst=True)
