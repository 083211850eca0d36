"""Initial database schema

Revision ID: 0001
Revises:
Create Date: 2026-10-16 09:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Upgrade database schema."""
    # Create tours table
    op.create_table('tours',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('duration_days', sa.Integer(), nullable=False),
        sa.Column('price_per_person', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('max_group_size', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('itinerary', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('price_per_person > 0', name='ck_tour_price_positive'),
        sa.CheckConstraint('price_per_person <= 100000', name='ck_tour_price_max'),
        sa.CheckConstraint('max_group_size >= 1', name='ck_tour_group_size_min'),
        sa.CheckConstraint('max_group_size <= 100', name='ck_tour_group_size_max'),
        sa.CheckConstraint('duration_days >= 1', name='ck_tour_duration_positive'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_tours_title'), 'tours', ['title'], unique=False)
    op.create_index(op.f('ix_tours_status'), 'tours', ['status'], unique=False)

    # Create tour_availabilities table
    op.create_table('tour_availabilities',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('tour_id', sa.Uuid(), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('total_slots', sa.Integer(), nullable=False),
        sa.Column('available_slots', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('total_slots >= 0', name='ck_availability_total_non_negative'),
        sa.CheckConstraint('total_slots <= 1000', name='ck_availability_total_max'),
        sa.CheckConstraint('available_slots >= 0', name='ck_availability_available_non_negative'),
        sa.CheckConstraint('available_slots <= total_slots', name='ck_availability_available_lte_total'),
        sa.CheckConstraint('end_date >= start_date', name='ck_availability_date_range'),
        sa.ForeignKeyConstraint(['tour_id'], ['tours.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_tour_availabilities_tour_id'), 'tour_availabilities', ['tour_id'], unique=False)
    op.create_index(op.f('ix_tour_availabilities_start_date'), 'tour_availabilities', ['start_date'], unique=False)

    # Create bookings table
    op.create_table('bookings',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.String(length=128), nullable=False),
        sa.Column('tour_id', sa.Uuid(), nullable=False),
        sa.Column('availability_id', sa.Uuid(), nullable=False),
        sa.Column('travelers_count', sa.Integer(), nullable=False),
        sa.Column('total_price', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('travelers_count > 0', name='ck_booking_travelers_positive'),
        sa.CheckConstraint('total_price > 0', name='ck_booking_total_price_positive'),
        sa.CheckConstraint("status IN ('PENDING', 'CONFIRMED', 'CANCELLED')", name='ck_booking_status_valid'),
        sa.CheckConstraint('length(user_id) > 0', name='ck_booking_user_id_not_empty'),
        sa.ForeignKeyConstraint(['tour_id'], ['tours.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['availability_id'], ['tour_availabilities.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_bookings_user_id'), 'bookings', ['user_id'], unique=False)
    op.create_index(op.f('ix_bookings_tour_id'), 'bookings', ['tour_id'], unique=False)
    op.create_index(op.f('ix_bookings_availability_id'), 'bookings', ['availability_id'], unique=False)
    op.create_index(op.f('ix_bookings_status'), 'bookings', ['status'], unique=False)

    # Create payments table
    op.create_table('payments',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('booking_id', sa.Uuid(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('method', sa.String(length=20), nullable=False),
        sa.Column('provider', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('provider_transaction_id', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('amount > 0', name='ck_payment_amount_positive'),
        sa.CheckConstraint("status IN ('PENDING', 'SUCCESS', 'FAILED')", name='ck_payment_status_valid'),
        sa.ForeignKeyConstraint(['booking_id'], ['bookings.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_payments_booking_id'), 'payments', ['booking_id'], unique=False)
    op.create_index(op.f('ix_payments_status'), 'payments', ['status'], unique=False)

    # Create reviews table
    op.create_table('reviews',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.String(length=128), nullable=False),
        sa.Column('tour_id', sa.Uuid(), nullable=False),
        sa.Column('rating', sa.Integer(), nullable=False),
        sa.Column('comment', sa.Text(), nullable=False),
        sa.Column('approved', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('rating >= 1 AND rating <= 5', name='ck_review_rating_range'),
        sa.ForeignKeyConstraint(['tour_id'], ['tours.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'tour_id', name='uq_review_user_tour')
    )
    op.create_index(op.f('ix_reviews_user_id'), 'reviews', ['user_id'], unique=False)
    op.create_index(op.f('ix_reviews_tour_id'), 'reviews', ['tour_id'], unique=False)


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_index(op.f('ix_reviews_tour_id'), table_name='reviews')
    op.drop_index(op.f('ix_reviews_user_id'), table_name='reviews')
    op.drop_table('reviews')

    op.drop_index(op.f('ix_payments_status'), table_name='payments')
    op.drop_index(op.f('ix_payments_booking_id'), table_name='payments')
    op.drop_table('payments')

    op.drop_index(op.f('ix_bookings_status'), table_name='bookings')
    op.drop_index(op.f('ix_bookings_availability_id'), table_name='bookings')
    op.drop_index(op.f('ix_bookings_tour_id'), table_name='bookings')
    op.drop_index(op.f('ix_bookings_user_id'), table_name='bookings')
    op.drop_table('bookings')

    op.drop_index(op.f('ix_tour_availabilities_start_date'), table_name='tour_availabilities')
    op.drop_index(op.f('ix_tour_availabilities_tour_id'), table_name='tour_availabilities')
    op.drop_table('tour_availabilities')

    op.drop_index(op.f('ix_tours_status'), table_name='tours')
    op.drop_index(op.f('ix_tours_title'), table_name='tours')
    op.drop_table('tours')
