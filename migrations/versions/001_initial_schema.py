"""Initial schema for user profiles, restaurants, menu items, orders and order items

Revision ID: 001_initial_schema
Revises:
Create Date: 2025-01-06

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


order_status = sa.Enum('active', 'closed', name='order_status')


def upgrade() -> None:
    # Profiles mirror the identity provider's users
    op.create_table(
        'user_profiles',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('avatar_url', sa.String(1024), nullable=True),
        sa.Column('is_admin', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_user_profiles_email', 'user_profiles', ['email'])

    op.create_table(
        'restaurants',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('phone', sa.String(50), nullable=False),
        sa.Column('additional', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        'menu_items',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('restaurant_id', sa.Uuid(), sa.ForeignKey('restaurants.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('price', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('type', sa.String(100), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_menu_items_restaurant_id', 'menu_items', ['restaurant_id'])

    # One order per day: the id is the date as YYYYMMDD
    op.create_table(
        'orders',
        sa.Column('id', sa.String(8), primary_key=True),
        sa.Column('restaurant_id', sa.Uuid(), sa.ForeignKey('restaurants.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', order_status, nullable=False, server_default='active'),
        sa.Column('created_by', sa.String(64), sa.ForeignKey('user_profiles.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('auto_close_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_orders_restaurant_id', 'orders', ['restaurant_id'])

    op.create_table(
        'order_items',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('order_id', sa.String(8), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('menu_item_id', sa.Uuid(), sa.ForeignKey('menu_items.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.String(64), sa.ForeignKey('user_profiles.id'), nullable=False),
        sa.Column('no_sauce', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('additional', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])
    op.create_index('ix_order_items_menu_item_id', 'order_items', ['menu_item_id'])
    op.create_index('ix_order_items_user_id', 'order_items', ['user_id'])


def downgrade() -> None:
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('menu_items')
    op.drop_table('restaurants')
    op.drop_table('user_profiles')
    order_status.drop(op.get_bind(), checkfirst=True)
