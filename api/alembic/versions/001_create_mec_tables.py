"""create_mec_tables

Revision ID: 001
Revises:
Create Date: 2026-10-19 10:12:41.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if not inspector.has_table('mec_institutions'):
        op.create_table('mec_institutions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=500), nullable=False),
        sa.Column('short_name', sa.String(length=50), nullable=True),
        sa.Column('organization_kind', sa.String(length=100), nullable=False),
        sa.Column('category', sa.String(length=100), nullable=False),
        sa.Column('state_code', sa.String(length=2), nullable=False),
        sa.Column('municipality', sa.String(length=255), nullable=True),
        sa.Column('municipality_code', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_mec_institutions_id'), 'mec_institutions', ['id'], unique=False)
        op.create_index(op.f('ix_mec_institutions_code'), 'mec_institutions', ['code'], unique=True)
        op.create_index(op.f('ix_mec_institutions_name'), 'mec_institutions', ['name'], unique=False)
        op.create_index(op.f('ix_mec_institutions_state_code'), 'mec_institutions', ['state_code'], unique=False)

    if not inspector.has_table('mec_courses'):
        op.create_table('mec_courses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.Integer(), nullable=False),
        sa.Column('institution_code', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=500), nullable=False),
        sa.Column('degree_kind', sa.String(length=100), nullable=False),
        sa.Column('modality', sa.String(length=50), nullable=False),
        sa.Column('knowledge_area', sa.String(length=255), nullable=True),
        sa.Column('hours_load', sa.Integer(), nullable=True),
        sa.Column('status_kind', sa.String(length=50), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.ForeignKeyConstraint(['institution_code'], ['mec_institutions.code'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_mec_courses_id'), 'mec_courses', ['id'], unique=False)
        op.create_index(op.f('ix_mec_courses_code'), 'mec_courses', ['code'], unique=True)
        op.create_index(op.f('ix_mec_courses_institution_code'), 'mec_courses', ['institution_code'], unique=False)
        op.create_index(op.f('ix_mec_courses_name'), 'mec_courses', ['name'], unique=False)
        op.create_index(op.f('ix_mec_courses_knowledge_area'), 'mec_courses', ['knowledge_area'], unique=False)

    if not inspector.has_table('mec_sync_logs'):
        op.create_table('mec_sync_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('triggered_by', sa.String(length=100), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('started_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('institutions_inserted', sa.Integer(), nullable=False),
        sa.Column('institutions_updated', sa.Integer(), nullable=False),
        sa.Column('courses_inserted', sa.Integer(), nullable=False),
        sa.Column('courses_updated', sa.Integer(), nullable=False),
        sa.Column('total_rows_processed', sa.Integer(), nullable=False),
        sa.Column('parse_errors_count', sa.Integer(), nullable=False),
        sa.Column('source_file_size', sa.BigInteger(), nullable=True),
        sa.Column('source_url', sa.Text(), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('error_details', sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_mec_sync_logs_id'), 'mec_sync_logs', ['id'], unique=False)
        op.create_index(op.f('ix_mec_sync_logs_status'), 'mec_sync_logs', ['status'], unique=False)
        op.create_index(op.f('ix_mec_sync_logs_started_at'), 'mec_sync_logs', ['started_at'], unique=False)

    if not inspector.has_table('cache_entries'):
        op.create_table('cache_entries',
        sa.Column('key', sa.String(length=255), nullable=False),
        sa.Column('value', sa.JSON(), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('key')
        )
        op.create_index(op.f('ix_cache_entries_expires_at'), 'cache_entries', ['expires_at'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    # Orden inverso por la FK de mec_courses
    for table in ('cache_entries', 'mec_sync_logs', 'mec_courses', 'mec_institutions'):
        if inspector.has_table(table):
            op.drop_table(table)
