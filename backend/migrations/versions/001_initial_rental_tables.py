"""
Alembic migration: Create rental desk schema.

Creates the garment inventory, rental checkouts and their order items, the
append-only payment ledger, the status history audit trail and damage
records. Ledger and history rows reference order items without a foreign
key so they outlive a hard delete of the item.

Revision ID: 001
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# Revision identifiers, used by Alembic
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')

INVENTORY_STATUS = sa.Enum(
    'available', 'rented', 'maintenance', name='inventory_status', create_constraint=True
)
ORDER_TYPE = sa.Enum('online', 'walk_in', name='rental_order_type', create_constraint=True)
RENTAL_STATUS = sa.Enum(
    'pending',
    'ready_to_pickup',
    'rented',
    'returned',
    'completed',
    'cancelled',
    name='rental_status',
    create_constraint=True,
)
HISTORY_ACTION = sa.Enum(
    'created',
    'status_update',
    'decline',
    'payment',
    'notes_update',
    'damage_report',
    name='rental_history_action',
    create_constraint=True,
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            'created_at',
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
            comment='Timestamp when record was created',
        ),
        sa.Column(
            'updated_at',
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
            comment='Timestamp when record was last updated',
        ),
    ]


def upgrade() -> None:
    """
    Upgrade database schema with the rental desk tables.

    Order items carry a version counter for optimistic locking; their status
    is indexed together with created_at for the pending-first listing.
    """
    op.create_table(
        'rental_inventory',
        sa.Column('id', sa.Uuid(), primary_key=True, comment='Unique identifier for the record'),
        sa.Column('name', sa.String(length=200), nullable=False, comment='Garment name'),
        sa.Column('category', sa.String(length=100), nullable=True, comment='Garment category'),
        sa.Column(
            'rental_price',
            sa.Numeric(precision=10, scale=2),
            nullable=False,
            comment='Rental price per period',
        ),
        sa.Column('status', INVENTORY_STATUS, nullable=False, comment='Availability status'),
        sa.Column(
            'damage_notes',
            sa.Text(),
            nullable=True,
            comment='Damage description captured at return',
        ),
        sa.Column(
            'damaged_by',
            sa.String(length=200),
            nullable=True,
            comment='Customer the damage is attributed to',
        ),
        *_timestamps(),
        sa.CheckConstraint('rental_price >= 0', name='ck_rental_inventory_price_non_negative'),
        comment='Rentable garments and their availability',
    )
    op.create_index('ix_rental_inventory_status', 'rental_inventory', ['status'])
    op.create_index('ix_rental_inventory_status_name', 'rental_inventory', ['status', 'name'])

    op.create_table(
        'rental_orders',
        sa.Column('id', sa.Uuid(), primary_key=True, comment='Unique identifier for the record'),
        sa.Column(
            'order_number',
            sa.String(length=50),
            nullable=False,
            comment='Human-readable order number',
        ),
        sa.Column(
            'customer_id',
            sa.String(length=100),
            nullable=True,
            comment='Customer identifier from the customer service',
        ),
        sa.Column(
            'customer_name',
            sa.String(length=200),
            nullable=False,
            comment='Customer display name',
        ),
        *_timestamps(),
        comment='Rental checkouts',
    )
    op.create_index('ix_rental_orders_order_number', 'rental_orders', ['order_number'], unique=True)
    op.create_index('ix_rental_orders_customer_id', 'rental_orders', ['customer_id'])

    op.create_table(
        'rental_order_items',
        sa.Column('id', sa.Uuid(), primary_key=True, comment='Unique identifier for the record'),
        sa.Column(
            'order_id',
            sa.Uuid(),
            sa.ForeignKey('rental_orders.id', ondelete='CASCADE'),
            nullable=False,
            comment='Owning checkout',
        ),
        sa.Column('order_type', ORDER_TYPE, nullable=False, comment='How the rental was placed'),
        sa.Column('approval_status', RENTAL_STATUS, nullable=False, comment='Lifecycle status'),
        sa.Column('rental_start_date', sa.Date(), nullable=True, comment='First day of the rental period'),
        sa.Column('rental_end_date', sa.Date(), nullable=True, comment='Rental due date'),
        sa.Column(
            'final_price',
            sa.Numeric(precision=10, scale=2),
            nullable=False,
            comment='Total rental price',
        ),
        sa.Column('pricing_factors', JSON_TYPE, nullable=False, comment='Downpayment and realized penalty'),
        sa.Column(
            'specific_data',
            JSON_TYPE,
            nullable=False,
            comment='Garment names, bundle composition and notes',
        ),
        sa.Column(
            'inventory_item_id',
            sa.Uuid(),
            sa.ForeignKey('rental_inventory.id', ondelete='SET NULL'),
            nullable=True,
            comment='Garment rented by a single-garment line',
        ),
        sa.Column('version_id', sa.Integer(), nullable=False, comment='Optimistic locking counter'),
        sa.Column(
            'last_payment_at',
            sa.DateTime(timezone=True),
            nullable=True,
            comment='Timestamp of the latest payment',
        ),
        *_timestamps(),
        sa.CheckConstraint('final_price >= 0', name='ck_rental_order_items_final_price_non_negative'),
        sa.CheckConstraint(
            'rental_end_date IS NULL OR rental_start_date IS NULL '
            'OR rental_end_date >= rental_start_date',
            name='ck_rental_order_items_period_order',
        ),
        comment='Rental lines with lifecycle status',
    )
    op.create_index('ix_rental_order_items_order_id', 'rental_order_items', ['order_id'])
    op.create_index('ix_rental_order_items_approval_status', 'rental_order_items', ['approval_status'])
    op.create_index('ix_rental_order_items_rental_end_date', 'rental_order_items', ['rental_end_date'])
    op.create_index('ix_rental_order_items_inventory_item_id', 'rental_order_items', ['inventory_item_id'])
    op.create_index(
        'ix_rental_order_items_status_created',
        'rental_order_items',
        ['approval_status', 'created_at'],
    )

    op.create_table(
        'rental_payments',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('order_item_id', sa.Uuid(), nullable=False, comment='Rental order item paid for'),
        sa.Column('amount', sa.Numeric(precision=10, scale=2), nullable=False, comment='Amount paid'),
        sa.Column(
            'payment_method',
            sa.String(length=50),
            nullable=False,
            server_default='cash',
            comment='How the payment was collected',
        ),
        sa.Column('notes', sa.String(length=500), nullable=True, comment='Payment notes'),
        sa.Column(
            'remaining_balance',
            sa.Numeric(precision=10, scale=2),
            nullable=False,
            comment='Balance left after this payment',
        ),
        sa.Column('recorded_by', sa.String(length=100), nullable=True, comment='Staff member'),
        sa.Column(
            'created_at',
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint('amount > 0', name='ck_rental_payments_amount_positive'),
        comment='Append-only rental payment ledger',
    )
    op.create_index('ix_rental_payments_order_item_id', 'rental_payments', ['order_item_id'])
    op.create_index(
        'ix_rental_payments_item_created',
        'rental_payments',
        ['order_item_id', 'created_at'],
    )

    op.create_table(
        'rental_status_history',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('order_item_id', sa.Uuid(), nullable=False, comment='Rental order item'),
        sa.Column('action', HISTORY_ACTION, nullable=False, comment='Kind of event'),
        sa.Column('previous_status', sa.String(length=50), nullable=True, comment='Status before the event'),
        sa.Column('new_status', sa.String(length=50), nullable=False, comment='Status after the event'),
        sa.Column('notes', sa.Text(), nullable=True, comment='Human-readable description'),
        sa.Column('actor', sa.String(length=100), nullable=True, comment='Staff member who triggered the event'),
        sa.Column(
            'created_at',
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        comment='Rental lifecycle audit trail',
    )
    op.create_index('ix_rental_status_history_order_item_id', 'rental_status_history', ['order_item_id'])
    op.create_index(
        'ix_rental_status_history_item_created',
        'rental_status_history',
        ['order_item_id', 'created_at'],
    )

    op.create_table(
        'damage_records',
        sa.Column('id', sa.Uuid(), primary_key=True, comment='Unique identifier for the record'),
        sa.Column(
            'inventory_item_id',
            sa.Uuid(),
            sa.ForeignKey('rental_inventory.id', ondelete='CASCADE'),
            nullable=False,
            comment='Damaged garment',
        ),
        sa.Column('order_item_id', sa.Uuid(), nullable=True, comment='Rental order item the damage was reported on'),
        sa.Column('customer_id', sa.String(length=100), nullable=True, comment='Customer identifier'),
        sa.Column('customer_name', sa.String(length=200), nullable=True, comment='Customer display name'),
        sa.Column('handled_by', sa.String(length=100), nullable=True, comment='Staff member who processed the return'),
        sa.Column(
            'damage_type',
            sa.String(length=50),
            nullable=False,
            server_default='rental_return',
            comment='Origin of the damage report',
        ),
        sa.Column('description', sa.Text(), nullable=False, comment='Damage description'),
        sa.Column(
            'repair_cost',
            sa.Numeric(precision=10, scale=2),
            nullable=False,
            server_default='0',
            comment='Estimated repair cost',
        ),
        sa.Column(
            'repair_status',
            sa.String(length=50),
            nullable=False,
            server_default='pending',
            comment='Repair progress',
        ),
        *_timestamps(),
        comment='Damage reported on returned garments',
    )
    op.create_index('ix_damage_records_inventory_item_id', 'damage_records', ['inventory_item_id'])
    op.create_index('ix_damage_records_order_item_id', 'damage_records', ['order_item_id'])
    op.create_index(
        'ix_damage_records_item_created',
        'damage_records',
        ['inventory_item_id', 'created_at'],
    )


def downgrade() -> None:
    """
    Downgrade database schema by dropping the rental desk tables.

    Drops tables in reverse dependency order, then the enum types.
    """
    op.drop_table('damage_records')
    op.drop_table('rental_status_history')
    op.drop_table('rental_payments')
    op.drop_table('rental_order_items')
    op.drop_table('rental_orders')
    op.drop_table('rental_inventory')

    bind = op.get_bind()
    HISTORY_ACTION.drop(bind, checkfirst=True)
    RENTAL_STATUS.drop(bind, checkfirst=True)
    ORDER_TYPE.drop(bind, checkfirst=True)
    INVENTORY_STATUS.drop(bind, checkfirst=True)
