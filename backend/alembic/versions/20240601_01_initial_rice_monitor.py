"""create users, fields and submissions tables"""

from alembic import op
import sqlalchemy as sa
from typing import Sequence, Union

revision: str = '20240601_01'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('email', sa.String(), nullable=False, unique=True),
        sa.Column('name', sa.String(), nullable=True),
        sa.Column('picture', sa.String(), nullable=True),
        sa.Column('role', sa.String(), nullable=False, server_default='observer'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_table(
        'fields',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('location', sa.String(), nullable=False),
        sa.Column('rice_variety', sa.String(), nullable=True),
        sa.Column('tentative_date', sa.String(), nullable=True),
        sa.Column('coordinates', sa.JSON(), nullable=True),
        sa.Column('area', sa.Float(), nullable=True),
        sa.Column('owner_id', sa.String(36), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_fields_owner_id', 'fields', ['owner_id'])
    op.create_table(
        'submissions',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('field_id', sa.String(36), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('growth_stage', sa.String(), nullable=False),
        sa.Column('plant_conditions', sa.JSON(), nullable=True),
        sa.Column('trait_measurements', sa.JSON(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('observer_name', sa.String(), nullable=True),
        sa.Column('images', sa.JSON(), nullable=True),
        sa.Column('status', sa.String(), nullable=False, server_default='submitted'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_submissions_user_id', 'submissions', ['user_id'])
    op.create_index('ix_submissions_field_id', 'submissions', ['field_id'])
    op.create_index('ix_submissions_user_created', 'submissions', ['user_id', 'created_at'])


def downgrade() -> None:
    op.drop_index('ix_submissions_user_created', table_name='submissions')
    op.drop_index('ix_submissions_field_id', table_name='submissions')
    op.drop_index('ix_submissions_user_id', table_name='submissions')
    op.drop_table('submissions')
    op.drop_index('ix_fields_owner_id', table_name='fields')
    op.drop_table('fields')
    op.drop_table('users')
