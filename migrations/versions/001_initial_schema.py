"""Initial schema - create all tables

Revision ID: 001
Revises:
Create Date: 2026-10-18 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

QUANTITY = sa.Numeric(precision=12, scale=3)


def upgrade() -> None:
    # Networks (redes)
    op.create_table(
        'networks',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('color', sa.String(length=50), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('hex', sa.String(length=9), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id', name='pk_networks'),
    )
    op.create_index('ix_networks_color', 'networks', ['color'], unique=True)

    # Cells (células); quantity_kg is the cached balance of historico_kg
    op.create_table(
        'cells',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('leader', sa.String(length=255), nullable=False),
        sa.Column('supervisors', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('network_id', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('quantity_kg', QUANTITY, nullable=False, server_default='0'),
        sa.Column('kg_version', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('kg_updated_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['network_id'], ['networks.id'], name='fk_cells_network_id_networks'),
        sa.PrimaryKeyConstraint('id', name='pk_cells'),
    )
    op.create_index('ix_cells_name', 'cells', ['name'])
    op.create_index('ix_cells_network_id', 'cells', ['network_id'])

    op.create_table(
        'historico_kg',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('cell_id', sa.Integer(), nullable=False),
        sa.Column('quantity', QUANTITY, nullable=False),
        sa.Column('movement_type', sa.String(length=3), nullable=False),
        sa.Column('source_transaction_id', sa.String(length=100), nullable=False),
        sa.Column('line_index', sa.Integer(), nullable=False),
        sa.Column('delivered_at', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['cell_id'], ['cells.id'], name='fk_historico_kg_cell_id_cells'),
        sa.PrimaryKeyConstraint('id', name='pk_historico_kg'),
        sa.UniqueConstraint('source_transaction_id', 'line_index', name='uq_historico_kg_source_line'),
    )
    op.create_index('ix_historico_kg_cell_id', 'historico_kg', ['cell_id'])
    op.create_index('ix_historico_kg_delivered_at', 'historico_kg', ['delivered_at'])

    # Catalog
    op.create_table(
        'categories',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('color', sa.String(length=9), nullable=True),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id', name='pk_categories'),
    )
    op.create_index('ix_categories_name', 'categories', ['name'], unique=True)

    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('unit', sa.String(length=20), nullable=False, server_default='kg'),
        sa.Column('category_id', sa.Integer(), nullable=False),
        sa.Column('barcode', sa.String(length=50), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id'], name='fk_products_category_id_categories'),
        sa.PrimaryKeyConstraint('id', name='pk_products'),
    )
    op.create_index('ix_products_name', 'products', ['name'])
    op.create_index('ix_products_category_id', 'products', ['category_id'])
    op.create_index('ix_products_barcode', 'products', ['barcode'])

    # Receipts (recebimentos)
    op.create_table(
        'receipts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('reference', sa.String(length=100), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=10), nullable=False, server_default='draft'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('posted_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id', name='pk_receipts'),
    )
    op.create_index('ix_receipts_reference', 'receipts', ['reference'], unique=True)
    op.create_index('ix_receipts_created_at', 'receipts', ['created_at'])

    op.create_table(
        'receipt_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('receipt_id', sa.Integer(), nullable=False),
        sa.Column('line_index', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('quantity', QUANTITY, nullable=False),
        sa.Column('unit', sa.String(length=20), nullable=True),
        sa.Column('expires_at', sa.Date(), nullable=True),
        sa.Column('priority', sa.String(length=10), nullable=False, server_default='normal'),
        sa.Column('barcode', sa.String(length=50), nullable=True),
        sa.Column('lot_code', sa.String(length=50), nullable=True),
        sa.ForeignKeyConstraint(['receipt_id'], ['receipts.id'], name='fk_receipt_items_receipt_id_receipts'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], name='fk_receipt_items_product_id_products'),
        sa.PrimaryKeyConstraint('id', name='pk_receipt_items'),
        sa.UniqueConstraint('receipt_id', 'line_index', name='uq_receipt_items_line'),
    )
    op.create_index('ix_receipt_items_receipt_id', 'receipt_items', ['receipt_id'])
    op.create_index('ix_receipt_items_product_id', 'receipt_items', ['product_id'])

    # Withdrawals (retiradas)
    op.create_table(
        'withdrawals',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('reference', sa.String(length=100), nullable=False),
        sa.Column('responsible_person', sa.String(length=255), nullable=False),
        sa.Column('sector', sa.String(length=255), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=10), nullable=False, server_default='draft'),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('posted_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id', name='pk_withdrawals'),
    )
    op.create_index('ix_withdrawals_reference', 'withdrawals', ['reference'], unique=True)
    op.create_index('ix_withdrawals_created_at', 'withdrawals', ['created_at'])

    op.create_table(
        'withdrawal_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('withdrawal_id', sa.Integer(), nullable=False),
        sa.Column('line_index', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('quantity', QUANTITY, nullable=False),
        sa.Column('unit', sa.String(length=20), nullable=True),
        sa.ForeignKeyConstraint(['withdrawal_id'], ['withdrawals.id'], name='fk_withdrawal_items_withdrawal_id_withdrawals'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], name='fk_withdrawal_items_product_id_products'),
        sa.PrimaryKeyConstraint('id', name='pk_withdrawal_items'),
        sa.UniqueConstraint('withdrawal_id', 'line_index', name='uq_withdrawal_items_line'),
    )
    op.create_index('ix_withdrawal_items_withdrawal_id', 'withdrawal_items', ['withdrawal_id'])
    op.create_index('ix_withdrawal_items_product_id', 'withdrawal_items', ['product_id'])

    # Stock balance and its append-only ledger
    op.create_table(
        'stock',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('quantity_on_hand', QUANTITY, nullable=False, server_default='0'),
        sa.Column('version', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], name='fk_stock_product_id_products'),
        sa.PrimaryKeyConstraint('id', name='pk_stock'),
        sa.UniqueConstraint('product_id', name='uq_stock_product_id'),
    )

    op.create_table(
        'stock_movements',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('quantity_delta', QUANTITY, nullable=False),
        sa.Column('movement_type', sa.String(length=3), nullable=False),
        sa.Column('unit', sa.String(length=20), nullable=True),
        sa.Column('source_transaction_id', sa.String(length=100), nullable=False),
        sa.Column('line_index', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], name='fk_stock_movements_product_id_products'),
        sa.PrimaryKeyConstraint('id', name='pk_stock_movements'),
        sa.UniqueConstraint('source_transaction_id', 'line_index', name='uq_stock_movements_source_line'),
    )
    op.create_index('ix_stock_movements_product_id', 'stock_movements', ['product_id'])
    op.create_index('ix_stock_movements_source_transaction_id', 'stock_movements', ['source_transaction_id'])
    op.create_index('ix_stock_movements_created_at', 'stock_movements', ['created_at'])


def downgrade() -> None:
    # Drop tables in reverse order (respecting foreign key constraints)
    op.drop_table('stock_movements')
    op.drop_table('stock')
    op.drop_table('withdrawal_items')
    op.drop_table('withdrawals')
    op.drop_table('receipt_items')
    op.drop_table('receipts')
    op.drop_table('products')
    op.drop_table('categories')
    op.drop_table('historico_kg')
    op.drop_table('cells')
    op.drop_table('networks')
