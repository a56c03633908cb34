"""Initial schema

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


ITEM_STATUSES = "'sale', 'preReserved', 'reserved', 'performed', 'realized'"
ORDER_STATUSES = "'form', 'expect_payment', 'handling', 'processing', 'performed', 'cancelled'"
INVOICE_STATES = "'expect_payment', 'handling', 'processing', 'performed', 'canceled', 'refunded'"
SUBSCRIPTION_STATES = "'active', 'inactive'"


def upgrade() -> None:
    """Create initial database schema"""

    # Создание таблицы users
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('telegram_id', sa.BigInteger(), nullable=False),
        sa.Column('chat_id', sa.BigInteger(), nullable=False),
        sa.Column('username', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('telegram_id'),
    )
    op.create_index('idx_users_telegram_id', 'users', ['telegram_id'], unique=False)

    # Создание таблицы products
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('price', sa.Numeric(12, 2), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('subscription_period', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('price >= 0', name='chk_products_price'),
        sa.CheckConstraint('subscription_period >= 0', name='chk_products_period'),
    )

    # Создание таблицы items
    op.create_table(
        'items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('payload', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.CheckConstraint(f'status IN ({ITEM_STATUSES})', name='chk_items_status'),
    )
    op.create_index('idx_items_product_status', 'items', ['product_id', 'status'], unique=False)
    op.create_index('idx_items_status_updated', 'items', ['status', 'updated_at'], unique=False)

    # Создание таблицы orders
    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('total_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('ttl', sa.DateTime(), nullable=False),
        sa.Column('notified_status', sa.String(20), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['item_id'], ['items.id']),
        sa.CheckConstraint(f'status IN ({ORDER_STATUSES})', name='chk_orders_status'),
    )
    op.create_index('idx_orders_user_id', 'orders', ['user_id'], unique=False)
    op.create_index('idx_orders_status_ttl', 'orders', ['status', 'ttl'], unique=False)
    op.create_index('idx_orders_item_id', 'orders', ['item_id'], unique=False)

    # Создание таблицы invoices
    op.create_table(
        'invoices',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('state', sa.String(20), nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('payment_method', sa.String(20), nullable=False),
        sa.Column('provider_id', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id']),
        sa.CheckConstraint(f'state IN ({INVOICE_STATES})', name='chk_invoices_state'),
    )
    op.create_index('idx_invoices_order_id', 'invoices', ['order_id'], unique=False)
    op.create_index('idx_invoices_state_updated', 'invoices', ['state', 'updated_at'], unique=False)

    # Создание таблицы subscriptions
    op.create_table(
        'subscriptions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('state', sa.String(20), nullable=False),
        sa.Column('deadline', sa.DateTime(), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('notified_state', sa.String(20), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id']),
        sa.UniqueConstraint('order_id'),
        sa.CheckConstraint(f'state IN ({SUBSCRIPTION_STATES})', name='chk_subscriptions_state'),
    )
    op.create_index(
        'idx_subscriptions_state_deadline', 'subscriptions', ['state', 'deadline'], unique=False
    )
    op.create_index('idx_subscriptions_user_id', 'subscriptions', ['user_id'], unique=False)


def downgrade() -> None:
    """Drop all tables"""
    op.drop_table('subscriptions')
    op.drop_table('invoices')
    op.drop_table('orders')
    op.drop_table('items')
    op.drop_table('products')
    op.drop_table('users')
