"""create_seat_booking_tables

Revision ID: 3f1c9a7d2e48
Revises:
Create Date: 2026-10-19 10:02:11.480392

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID, JSONB


# revision identifiers, used by Alembic.
revision: str = '3f1c9a7d2e48'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'admin_users',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('last_login', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_admin_users_email', 'admin_users', ['email'])

    op.create_table(
        'invitation_codes',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('code', sa.String(100), nullable=False, unique=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('current_usage', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('max_usage', sa.Integer(), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('participant_name', sa.String(255), nullable=True),
        sa.Column('allowed_levels', JSONB(), nullable=False),
        sa.Column('created_by', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint('current_usage >= 0', name='ck_invitation_codes_usage_non_negative'),
        sa.CheckConstraint(
            'max_usage IS NULL OR current_usage <= max_usage',
            name='ck_invitation_codes_usage_within_max'
        ),
        sa.CheckConstraint('max_usage IS NULL OR max_usage > 0', name='ck_invitation_codes_max_usage_positive'),
    )
    op.create_index('ix_invitation_codes_code', 'invitation_codes', ['code'])
    op.create_index('ix_invitation_codes_status', 'invitation_codes', ['status', 'code'])

    op.create_table(
        'seats',
        sa.Column('id', sa.String(10), primary_key=True),
        sa.Column('row', sa.String(5), nullable=False),
        sa.Column('number', sa.Integer(), nullable=False),
    )
    op.create_index('ix_seats_row_number', 'seats', ['row', 'number'], unique=True)

    op.create_table(
        'bookings',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('seat_id', sa.String(10), nullable=False),
        sa.Column('level', sa.String(50), nullable=False),
        sa.Column('customer_name', sa.String(255), nullable=False),
        sa.Column('mobile_number', sa.String(50), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('code_used', sa.String(100), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='booked'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['seat_id'], ['seats.id'], ),
    )
    op.create_index(
        'uq_bookings_seat_level_booked',
        'bookings',
        ['seat_id', 'level'],
        unique=True,
        postgresql_where=sa.text("status = 'booked'")
    )
    op.create_index('ix_bookings_level_status', 'bookings', ['level', 'status'])
    op.create_index('ix_bookings_code_used', 'bookings', ['code_used'])
    op.create_index('ix_bookings_created_at', 'bookings', ['created_at'])


def downgrade() -> None:
    op.drop_index('ix_bookings_created_at', table_name='bookings')
    op.drop_index('ix_bookings_code_used', table_name='bookings')
    op.drop_index('ix_bookings_level_status', table_name='bookings')
    op.drop_index('uq_bookings_seat_level_booked', table_name='bookings')
    op.drop_table('bookings')

    op.drop_index('ix_seats_row_number', table_name='seats')
    op.drop_table('seats')

    op.drop_index('ix_invitation_codes_status', table_name='invitation_codes')
    op.drop_index('ix_invitation_codes_code', table_name='invitation_codes')
    op.drop_table('invitation_codes')

    op.drop_index('ix_admin_users_email', table_name='admin_users')
    op.drop_table('admin_users')
