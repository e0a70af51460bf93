"""Sync core: transactions, loans, products, app settings

Revision ID: 20261019_sync_core
Revises:
Create Date: 2026-10-19

Creates the four per-user collections merged by POST /api/sync:
1. transactions (append-only, created_at drives change detection)
2. loans (natural key user_id + loan_id)
3. products (natural key user_id + name)
4. app_settings (one row per user)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_sync_core'
down_revision = None
branch_labels = None
depends_on = None


def _amount(name):
    return sa.Column(name, sa.Numeric(asdecimal=False), nullable=True)


def _timestamps(*names):
    return [
        sa.Column(n, sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False)
        for n in names
    ]


def upgrade():
    # ==========================================================================
    # 1. TRANSACTIONS
    # ==========================================================================
    op.create_table('transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=128), nullable=False),
        sa.Column('date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('product_id', sa.String(length=128), nullable=True),
        sa.Column('product_name', sa.String(length=255), nullable=True),
        _amount('quantity'),
        _amount('order_price'),
        _amount('selling_price'),
        _amount('profit'),
        *_timestamps('created_at'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('transactions', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_transactions_user_id'), ['user_id'], unique=False)
        batch_op.create_index('ix_transactions_user_created', ['user_id', 'created_at'], unique=False)
        batch_op.create_index('ix_transactions_user_date', ['user_id', 'date'], unique=False)

    # ==========================================================================
    # 2. LOANS
    # ==========================================================================
    op.create_table('loans',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=128), nullable=False),
        sa.Column('loan_id', sa.String(length=128), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=True),
        sa.Column('phone_number', sa.String(length=64), nullable=True),
        sa.Column('national_id', sa.String(length=64), nullable=True),
        sa.Column('date_taken', sa.DateTime(timezone=True), nullable=True),
        sa.Column('date_paid', sa.DateTime(timezone=True), nullable=True),
        _amount('total_amount'),
        sa.Column('status', sa.String(length=32), nullable=True),
        sa.Column('products', sa.JSON(), nullable=False),
        sa.Column('reminders', sa.JSON(), nullable=False),
        sa.Column('reminder_sent', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('last_reminder_date', sa.DateTime(timezone=True), nullable=True),
        *_timestamps('created_at', 'updated_at'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'loan_id', name='uq_loans_user_loan'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('loans', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_loans_user_id'), ['user_id'], unique=False)
        batch_op.create_index('ix_loans_user_updated', ['user_id', 'updated_at'], unique=False)

    # ==========================================================================
    # 3. PRODUCTS
    # ==========================================================================
    op.create_table('products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=128), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        _amount('order_price'),
        _amount('selling_price'),
        _amount('reserve_stock'),
        _amount('market_stock'),
        *_timestamps('created_at', 'updated_at'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'name', name='uq_products_user_name'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('products', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_products_user_id'), ['user_id'], unique=False)
        batch_op.create_index('ix_products_user_updated', ['user_id', 'updated_at'], unique=False)

    # ==========================================================================
    # 4. APP SETTINGS
    # ==========================================================================
    op.create_table('app_settings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=128), nullable=False),
        sa.Column('settings', sa.JSON(), nullable=False),
        *_timestamps('created_at', 'updated_at'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', name='uq_app_settings_user'),
        sqlite_autoincrement=True
    )


def downgrade():
    op.drop_table('app_settings')

    with op.batch_alter_table('products', schema=None) as batch_op:
        batch_op.drop_index('ix_products_user_updated')
        batch_op.drop_index(batch_op.f('ix_products_user_id'))
    op.drop_table('products')

    with op.batch_alter_table('loans', schema=None) as batch_op:
        batch_op.drop_index('ix_loans_user_updated')
        batch_op.drop_index(batch_op.f('ix_loans_user_id'))
    op.drop_table('loans')

    with op.batch_alter_table('transactions', schema=None) as batch_op:
        batch_op.drop_index('ix_transactions_user_date')
        batch_op.drop_index('ix_transactions_user_created')
        batch_op.drop_index(batch_op.f('ix_transactions_user_id'))
    op.drop_table('transactions')
