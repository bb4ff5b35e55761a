"""Initial schema: violations, status history, complaints, visitors, hosts

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '0001_initial_schema'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all tables for the ViolationLedger service."""

    # Create violations table
    op.create_table(
        'violations',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('plate_number', sa.String(length=32), nullable=False),
        sa.Column('location', sa.String(length=255), nullable=False),
        sa.Column('gps_id', sa.String(length=100), nullable=True),
        sa.Column('geofence_zone', sa.String(length=100), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('detected_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('warning_sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('escalated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('host_id', sa.String(length=255), nullable=True),
        sa.Column('host_name', sa.String(length=255), nullable=True),
        sa.Column('host_phone', sa.String(length=50), nullable=True),
        sa.Column('violation_type', sa.String(length=100), nullable=True),
        sa.Column('photo_url', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by', sa.String(length=255), nullable=False),
        sa.Column('ticket_issued', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_violations_plate_number', 'violations', ['plate_number'], unique=False)
    op.create_index('ix_violations_location', 'violations', ['location'], unique=False)
    op.create_index('ix_violations_status', 'violations', ['status'], unique=False)
    op.create_index('ix_violations_detected_at', 'violations', ['detected_at'], unique=False)

    # Create status_changes table
    op.create_table(
        'status_changes',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('violation_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('from_status', sa.String(length=20), nullable=False),
        sa.Column('to_status', sa.String(length=20), nullable=False),
        sa.Column('actor_id', sa.String(length=255), nullable=True),
        sa.Column('extra_fields', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['violation_id'], ['violations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_status_changes_violation_id', 'status_changes', ['violation_id'], unique=False)

    # Create complaints table
    op.create_table(
        'complaints',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('reporter_name', sa.String(length=255), nullable=True),
        sa.Column('reporter_phone', sa.String(length=50), nullable=True),
        sa.Column('location', sa.String(length=255), nullable=True),
        sa.Column('plate_number', sa.String(length=32), nullable=True),
        sa.Column('violation_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('created_by', sa.String(length=255), nullable=True),
        sa.ForeignKeyConstraint(['violation_id'], ['violations.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_complaints_plate_number', 'complaints', ['plate_number'], unique=False)
    op.create_index('ix_complaints_status', 'complaints', ['status'], unique=False)

    # Create visitors table
    op.create_table(
        'visitors',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('host_id', sa.String(length=255), nullable=False),
        sa.Column('host_name', sa.String(length=255), nullable=False),
        sa.Column('plate_number', sa.String(length=32), nullable=False),
        sa.Column('vehicle_category', sa.String(length=50), nullable=False),
        sa.Column('gps_id', sa.String(length=100), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('created_by', sa.String(length=255), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_visitors_plate_number', 'visitors', ['plate_number'], unique=False)

    # Create hosts table
    op.create_table(
        'hosts',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_hosts_name', 'hosts', ['name'], unique=False)


def downgrade() -> None:
    """Drop all tables in reverse order of creation."""
    op.drop_index('ix_hosts_name', table_name='hosts')
    op.drop_table('hosts')
    op.drop_index('ix_visitors_plate_number', table_name='visitors')
    op.drop_table('visitors')
    op.drop_index('ix_complaints_status', table_name='complaints')
    op.drop_index('ix_complaints_plate_number', table_name='complaints')
    op.drop_table('complaints')
    op.drop_index('ix_status_changes_violation_id', table_name='status_changes')
    op.drop_table('status_changes')
    op.drop_index('ix_violations_detected_at', table_name='violations')
    op.drop_index('ix_violations_status', table_name='violations')
    op.drop_index('ix_violations_location', table_name='violations')
    op.drop_index('ix_violations_plate_number', table_name='violations')
    op.drop_table('violations')
