"""add run_hexes, run_zone_contributions, zone_ownerships, run_loops

Revision ID: 8b52d6f0e4a1
Revises: 3e1a9c4b7d20
Create Date: 2025-12-24 18:30:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '8b52d6f0e4a1'
down_revision: Union[str, Sequence[str], None] = '3e1a9c4b7d20'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'run_hexes',
        sa.Column('run_id', sa.String(length=64), nullable=False),
        sa.Column('sequence_index', sa.Integer(), nullable=False),
        sa.Column('h3_index', sa.String(length=16), nullable=False),
        sa.ForeignKeyConstraint(['run_id'], ['runs.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('run_id', 'sequence_index')
    )
    op.create_index('ix_run_hexes_h3_index', 'run_hexes', ['h3_index'])

    op.create_table(
        'run_zone_contributions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('run_id', sa.String(length=64), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('cycle_key', sa.String(length=10), nullable=False),
        sa.Column('cycle_start', sa.DateTime(timezone=True), nullable=False),
        sa.Column('cycle_end', sa.DateTime(timezone=True), nullable=False),
        sa.Column('h3_index', sa.String(length=16), nullable=False),
        sa.Column('distance_m', sa.Float(), nullable=False),
        sa.Column('first_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('source', sa.String(length=20), nullable=False),
        sa.ForeignKeyConstraint(['run_id'], ['runs.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('run_id', 'cycle_key', 'source', 'h3_index', name='uq_run_zone_contribution')
    )
    op.create_index('ix_run_zone_contributions_run_id', 'run_zone_contributions', ['run_id'])
    op.create_index('ix_run_zone_contributions_cycle_hex', 'run_zone_contributions', ['cycle_key', 'h3_index'])
    op.create_index('ix_run_zone_contributions_cycle_user', 'run_zone_contributions', ['cycle_key', 'user_id'])

    op.create_table(
        'zone_ownerships',
        sa.Column('cycle_key', sa.String(length=10), nullable=False),
        sa.Column('h3_index', sa.String(length=16), nullable=False),
        sa.Column('cycle_start', sa.DateTime(timezone=True), nullable=False),
        sa.Column('cycle_end', sa.DateTime(timezone=True), nullable=False),
        sa.Column('owner_user_id', sa.String(length=64), nullable=False),
        sa.Column('owner_distance_m', sa.Float(), nullable=False),
        sa.Column('tie_break_first_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('cycle_key', 'h3_index')
    )
    op.create_index('ix_zone_ownerships_cycle_owner', 'zone_ownerships', ['cycle_key', 'owner_user_id'])

    op.create_table(
        'run_loops',
        sa.Column('run_id', sa.String(length=64), nullable=False),
        sa.Column('cycle_key', sa.String(length=10), nullable=False),
        sa.Column('loop_start_index', sa.Integer(), nullable=False),
        sa.Column('loop_end_index', sa.Integer(), nullable=False),
        sa.Column('boundary_hexes', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('enclosed_hexes', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.ForeignKeyConstraint(['run_id'], ['runs.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('run_id')
    )
    op.create_index('ix_run_loops_cycle_key', 'run_loops', ['cycle_key'])


def downgrade() -> None:
    op.drop_index('ix_run_loops_cycle_key', table_name='run_loops')
    op.drop_table('run_loops')
    op.drop_index('ix_zone_ownerships_cycle_owner', table_name='zone_ownerships')
    op.drop_table('zone_ownerships')
    op.drop_index('ix_run_zone_contributions_cycle_user', table_name='run_zone_contributions')
    op.drop_index('ix_run_zone_contributions_cycle_hex', table_name='run_zone_contributions')
    op.drop_index('ix_run_zone_contributions_run_id', table_name='run_zone_contributions')
    op.drop_table('run_zone_contributions')
    op.drop_index('ix_run_hexes_h3_index', table_name='run_hexes')
    op.drop_table('run_hexes')
