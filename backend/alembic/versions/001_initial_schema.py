"""Initial Saifauto schema

Revision ID: 001_initial
Revises:
Create Date: 2025-01-10

Staff users, cars, clients and bookings. Money as NUMERIC(10,2) in MAD.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # === STAFF USERS ===
    op.create_table(
        'staff_users',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('firebase_uid', sa.String(128), unique=True, nullable=False, index=True),
        sa.Column('email', sa.String(255), unique=True, nullable=False, index=True),
        sa.Column('full_name', sa.String(255), nullable=True),
        sa.Column('is_admin', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )

    # === CARS ===
    op.create_table(
        'cars',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('make', sa.String(100), nullable=False),
        sa.Column('model', sa.String(100), nullable=False),
        sa.Column('year', sa.Integer(), nullable=True),
        sa.Column('color', sa.String(50), nullable=True),
        sa.Column('category', sa.String(100), nullable=True),
        sa.Column('license_plate', sa.String(32), unique=True, nullable=False, index=True),
        sa.Column(
            'status',
            sa.Enum('Available', 'Rented', 'Maintenance', name='carstatus'),
            server_default='Available',
            nullable=False,
            index=True,
        ),
        sa.Column('daily_rate', sa.Numeric(10, 2), nullable=False),
        sa.Column('images', postgresql.JSONB(), server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column('primary_image', sa.String(1024), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )

    # === CLIENTS ===
    op.create_table(
        'clients',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), unique=True, nullable=False, index=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )

    # === BOOKINGS ===
    op.create_table(
        'bookings',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('car_id', sa.Integer(), sa.ForeignKey('cars.id', ondelete='SET NULL'), nullable=True, index=True),
        sa.Column('client_id', sa.Integer(), sa.ForeignKey('clients.id', ondelete='SET NULL'), nullable=True, index=True),
        sa.Column('start_date', sa.DateTime(), nullable=False, index=True),
        sa.Column('end_date', sa.DateTime(), nullable=False),
        sa.Column('pickup_location', sa.String(255), nullable=True),
        sa.Column('dropoff_location', sa.String(255), nullable=True),
        sa.Column(
            'status',
            sa.Enum('Confirmed', 'Active', 'Completed', 'Cancelled', name='bookingstatus'),
            server_default='Confirmed',
            nullable=False,
            index=True,
        ),
        sa.Column('total_price', sa.Numeric(10, 2), nullable=True),
        sa.Column('first_name', sa.String(255), nullable=True),
        sa.Column('last_name', sa.String(255), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('service_type', sa.String(100), nullable=True),
        sa.Column(
            'source',
            sa.Enum('web', 'message', name='bookingsource'),
            server_default='web',
            nullable=False,
        ),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint('end_date > start_date', name='ck_bookings_dates'),
    )


def downgrade() -> None:
    op.drop_table('bookings')
    op.drop_table('clients')
    op.drop_table('cars')
    op.drop_table('staff_users')
    op.execute('DROP TYPE IF EXISTS bookingsource')
    op.execute('DROP TYPE IF EXISTS bookingstatus')
    op.execute('DROP TYPE IF EXISTS carstatus')
