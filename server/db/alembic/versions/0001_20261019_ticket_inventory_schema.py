"""Ticket inventory schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00.000000

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
    # Event configuration
    op.create_table('events',
        sa.Column('id', sa.String(length=128), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('seating_type', sa.String(length=16), nullable=False),
        sa.Column('total_capacity', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.CheckConstraint('total_capacity IS NULL OR total_capacity >= 0', name='ck_event_total_capacity_non_negative'),
        sa.CheckConstraint("seating_type IN ('general', 'reserved')", name='ck_event_seating_type_valid'),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table('ticket_tiers',
        sa.Column('event_id', sa.String(length=128), nullable=False),
        sa.Column('id', sa.String(length=128), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('capacity', sa.Integer(), nullable=False),
        sa.CheckConstraint('capacity >= 0', name='ck_ticket_tier_capacity_non_negative'),
        sa.ForeignKeyConstraint(['event_id'], ['events.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('event_id', 'id', name='pk_ticket_tiers')
    )

    op.create_table('seats',
        sa.Column('event_id', sa.String(length=128), nullable=False),
        sa.Column('seat_id', sa.String(length=255), nullable=False),
        sa.Column('section_id', sa.String(length=128), nullable=False),
        sa.Column('section_name', sa.String(length=255), nullable=True),
        sa.Column('row', sa.String(length=32), nullable=False),
        sa.Column('number', sa.String(length=32), nullable=False),
        sa.ForeignKeyConstraint(['event_id'], ['events.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('event_id', 'seat_id', name='pk_seats')
    )

    # Orders are written by the order subsystem
    op.create_table('orders',
        sa.Column('id', sa.String(length=128), nullable=False),
        sa.Column('event_id', sa.String(length=128), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table('order_items',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('order_id', sa.String(length=128), nullable=False),
        sa.Column('ticket_type', sa.String(length=255), nullable=True),
        sa.Column('seat_section_id', sa.String(length=128), nullable=True),
        sa.Column('seat_row', sa.String(length=32), nullable=True),
        sa.Column('seat_number', sa.String(length=32), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_order_item_quantity_positive'),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_order_items_order_id'), 'order_items', ['order_id'], unique=False)

    # Holds
    op.create_table('holds',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('event_id', sa.String(length=128), nullable=False),
        sa.Column('session_id', sa.String(length=128), nullable=False),
        sa.Column('unit_type', sa.String(length=16), nullable=False),
        sa.Column('unit_id', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('held_until', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_hold_quantity_positive'),
        sa.CheckConstraint("unit_type = 'ga' OR quantity = 1", name='ck_hold_seat_quantity_one'),
        sa.CheckConstraint('length(session_id) > 0', name='ck_hold_session_id_not_empty'),
        sa.ForeignKeyConstraint(['event_id'], ['events.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('event_id', 'session_id', 'unit_id', name='uq_holds_event_session_unit')
    )
    op.create_index('ix_holds_event_id_held_until', 'holds', ['event_id', 'held_until'], unique=False)
    op.create_index('ix_holds_held_until', 'holds', ['held_until'], unique=False)

    # Admin blocks and audit log
    op.create_table('inventory_blocks',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('event_id', sa.String(length=128), nullable=False),
        sa.Column('unit_type', sa.String(length=16), nullable=False),
        sa.Column('unit_id', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('created_by', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_inventory_block_quantity_positive'),
        sa.CheckConstraint("unit_type = 'ga' OR quantity = 1", name='ck_inventory_block_seat_quantity_one'),
        sa.CheckConstraint('length(reason) > 0', name='ck_inventory_block_reason_not_empty'),
        sa.CheckConstraint('length(created_by) > 0', name='ck_inventory_block_created_by_not_empty'),
        sa.ForeignKeyConstraint(['event_id'], ['events.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_inventory_blocks_event_id'), 'inventory_blocks', ['event_id'], unique=False)

    op.create_table('inventory_logs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('event_id', sa.String(length=128), nullable=False),
        sa.Column('action', sa.String(length=32), nullable=False),
        sa.Column('unit_type', sa.String(length=16), nullable=False),
        sa.Column('unit_ids', sa.JSON(), nullable=False),
        sa.Column('quantity_change', sa.Integer(), nullable=False),
        sa.Column('previous_value', sa.Integer(), nullable=True),
        sa.Column('new_value', sa.Integer(), nullable=True),
        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('actor', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('quantity_change != 0', name='ck_inventory_log_change_nonzero'),
        sa.CheckConstraint('length(actor) > 0', name='ck_inventory_log_actor_not_empty'),
        sa.ForeignKeyConstraint(['event_id'], ['events.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_inventory_logs_event_id_created_at', 'inventory_logs', ['event_id', 'created_at'], unique=False)


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_index('ix_inventory_logs_event_id_created_at', table_name='inventory_logs')
    op.drop_table('inventory_logs')
    op.drop_index(op.f('ix_inventory_blocks_event_id'), table_name='inventory_blocks')
    op.drop_table('inventory_blocks')
    op.drop_index('ix_holds_held_until', table_name='holds')
    op.drop_index('ix_holds_event_id_held_until', table_name='holds')
    op.drop_table('holds')
    op.drop_index(op.f('ix_order_items_order_id'), table_name='order_items')
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('seats')
    op.drop_table('ticket_tiers')
    op.drop_table('events')
