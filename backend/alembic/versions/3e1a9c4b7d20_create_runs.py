"""create runs

Revision ID: 3e1a9c4b7d20
Revises:
Create Date: 2025-12-20 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3e1a9c4b7d20'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'runs',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('status', sa.String(length=20), server_default='PENDING', nullable=False),
        sa.Column('reject_reason', sa.String(length=32), nullable=True),
        sa.Column('computed_metrics', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('raw_data', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('claimed_distance_m', sa.Float(), nullable=True),
        sa.Column('claimed_duration_s', sa.Float(), nullable=True),
        sa.Column('activity_type', sa.String(length=20), server_default='RUN', nullable=False),
        sa.Column('polyline', sa.String(), nullable=True),
        sa.Column('metadata', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('finalized_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_runs_user_id', 'runs', ['user_id'])
    op.create_index('ix_runs_status', 'runs', ['status'])


def downgrade() -> None:
    op.drop_index('ix_runs_status', table_name='runs')
    op.drop_index('ix_runs_user_id', table_name='runs')
    op.drop_table('runs')
