"""create issues and image_fingerprints tables

Revision ID: 4b7e2c9d1a03
Revises:
Create Date: 2025-10-02 09:41:12.318207

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '4b7e2c9d1a03'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'issues',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('category', sa.String(), nullable=False),
        sa.Column('priority', sa.String(), nullable=False, server_default='MEDIUM'),
        sa.Column('latitude', sa.Float(), nullable=False),
        sa.Column('longitude', sa.Float(), nullable=False),
        sa.Column('address', sa.String(), nullable=True),
        sa.Column('photos', sa.JSON(), nullable=False),
        sa.Column('photo_state', sa.String(), nullable=False, server_default='pending'),
        sa.Column('status', sa.String(), nullable=False, server_default='REPORTED'),
        sa.Column('reported_by', sa.Integer(), nullable=True),
        sa.Column('city', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_issues_id', 'issues', ['id'])
    op.create_index('ix_issues_category_created_at', 'issues', ['category', 'created_at'])

    op.create_table(
        'image_fingerprints',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('issue_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('issues.id', ondelete='CASCADE'), nullable=False),
        sa.Column('average_hash', sa.String(length=64), nullable=True),
        sa.Column('difference_hash', sa.String(length=64), nullable=True),
        sa.Column('exact_digest', sa.String(length=32), nullable=True),
        sa.Column('storage_url', sa.String(), nullable=False),
        sa.Column('storage_id', sa.String(), nullable=False),
        sa.Column('file_size', sa.Integer(), nullable=True),
        sa.Column('width', sa.Integer(), nullable=True),
        sa.Column('height', sa.Integer(), nullable=True),
        sa.Column('format', sa.String(), nullable=True),
        sa.Column('uploaded_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint(
            'average_hash IS NOT NULL OR difference_hash IS NOT NULL',
            name='ck_image_fingerprints_has_hash'
        ),
    )
    op.create_index('ix_image_fingerprints_id', 'image_fingerprints', ['id'])
    op.create_index('ix_image_fingerprints_issue_id', 'image_fingerprints', ['issue_id'])
    op.create_index('ix_image_fingerprints_average_hash', 'image_fingerprints', ['average_hash'])
    op.create_index('ix_image_fingerprints_difference_hash', 'image_fingerprints', ['difference_hash'])
    op.create_index('ix_image_fingerprints_exact_digest', 'image_fingerprints', ['exact_digest'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('image_fingerprints')
    op.drop_index('ix_issues_category_created_at', table_name='issues')
    op.drop_index('ix_issues_id', table_name='issues')
    op.drop_table('issues')
