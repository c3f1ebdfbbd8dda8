"""Initial schema: suppliers, products, purchase invoices, price history

Revision ID: 20241024_initial_schema
Revises:
Create Date: 2024-10-24 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '20241024_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def _created_at() -> sa.Column:
    return sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False)


def upgrade() -> None:
    op.create_table('suppliers',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
    )

    op.create_table('products',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('sku', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('base_uom', sa.String(length=8), nullable=False, server_default='piece'),
        sa.Column('pieces_per_transport_unit', sa.Integer(), nullable=True),
        sa.Column('category', sa.String(length=64), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
        sa.CheckConstraint("base_uom in ('piece', 'kg')", name='products_base_uom_check'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sku'),
    )

    op.create_table('purchase_invoices',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('supplier_id', sa.Integer(), nullable=False),
        sa.Column('invoice_no', sa.String(length=64), nullable=False),
        sa.Column('invoice_date', sa.Date(), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False, server_default='EUR'),
        sa.Column('net_amount', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('tax_amount', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('gross_amount', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('allocation_policy', sa.String(length=16), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('supplier_id', 'invoice_no', name='purchase_invoices_supplier_invoice_unique'),
    )

    op.create_table('purchase_invoice_items',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('invoice_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=True),
        sa.Column('line_no', sa.Integer(), nullable=False),
        sa.Column('line_type', sa.String(length=16), nullable=False),
        sa.Column('qty', sa.Numeric(18, 6), nullable=False),
        sa.Column('uom', sa.String(length=16), nullable=False),
        sa.Column('unit_price_net', sa.Numeric(18, 6), nullable=False),
        sa.Column('tax_rate', sa.Numeric(10, 4), nullable=True),
        sa.Column('discount_abs', sa.Numeric(18, 6), nullable=False, server_default='0'),
        _created_at(),
        sa.CheckConstraint("line_type in ('product', 'surcharge', 'shipping')", name='purchase_invoice_items_line_type_check'),
        sa.ForeignKeyConstraint(['invoice_id'], ['purchase_invoices.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_purchase_invoice_items_invoice_id'), 'purchase_invoice_items', ['invoice_id'], unique=False)
    op.create_index(op.f('ix_purchase_invoice_items_product_id'), 'purchase_invoice_items', ['product_id'], unique=False)

    op.create_table('purchase_price_history',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('date_effective', sa.Date(), nullable=False),
        sa.Column('uom', sa.String(length=8), nullable=False),
        sa.Column('qty_in_base_units', sa.Numeric(18, 6), nullable=False),
        sa.Column('base_price_per_unit_net', sa.Numeric(18, 6), nullable=False),
        sa.Column('surcharge_per_unit_net', sa.Numeric(18, 6), nullable=False, server_default='0'),
        sa.Column('price_per_base_unit_net', sa.Numeric(18, 6), nullable=False),
        sa.Column('source_item_id', sa.Integer(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['source_item_id'], ['purchase_invoice_items.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('purchase_price_history_product_date_idx', 'purchase_price_history', ['product_id', 'date_effective'], unique=False)

    op.create_table('settings_cost_allocation',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('supplier_id', sa.Integer(), nullable=False),
        sa.Column('active_from', sa.Date(), nullable=False),
        sa.Column('policy', sa.String(length=16), nullable=False),
        _created_at(),
        sa.CheckConstraint("policy in ('none', 'per_kg', 'per_piece')", name='settings_cost_allocation_policy_check'),
        sa.ForeignKeyConstraint(['supplier_id'], ['suppliers.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('settings_cost_allocation_supplier_active_idx', 'settings_cost_allocation', ['supplier_id', 'active_from'], unique=False)


def downgrade() -> None:
    op.drop_index('settings_cost_allocation_supplier_active_idx', table_name='settings_cost_allocation')
    op.drop_table('settings_cost_allocation')
    op.drop_index('purchase_price_history_product_date_idx', table_name='purchase_price_history')
    op.drop_table('purchase_price_history')
    op.drop_index(op.f('ix_purchase_invoice_items_product_id'), table_name='purchase_invoice_items')
    op.drop_index(op.f('ix_purchase_invoice_items_invoice_id'), table_name='purchase_invoice_items')
    op.drop_table('purchase_invoice_items')
    op.drop_table('purchase_invoices')
    op.drop_table('products')
    op.drop_table('suppliers')
