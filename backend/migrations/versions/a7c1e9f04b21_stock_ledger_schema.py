"""stock ledger schema

Revision ID: a7c1e9f04b21
Revises:
Create Date: 2026-10-18 00:00:00.000000

Creates the stock ledger and point-of-sale schema:
- products: catalog read model owning the Stock Record (full_packs, loose_units)
- sales / sale_lines: completed checkouts with price snapshots
- inventory_logs: append-only audit trail
- stock_reconciliations: shortfalls accepted by override sales
- staff_activities: per-staff activity feed
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'a7c1e9f04b21'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ============================================================================
    # products: catalog + Stock Record (total_units is derived, never stored)
    # ============================================================================
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('sku', sa.String(length=64), nullable=True),
        sa.Column('category', sa.String(length=64), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('unit_type', sa.String(length=32), nullable=False),
        sa.Column('cost_per_pack_cents', sa.Integer(), nullable=False),
        sa.Column('selling_price_per_pack_cents', sa.Integer(), nullable=False),
        sa.Column('units_per_pack', sa.Integer(), nullable=False),
        sa.Column('full_packs', sa.Integer(), nullable=False),
        sa.Column('loose_units', sa.Integer(), nullable=False),
        sa.Column('min_stock_level', sa.Integer(), nullable=False),
        sa.Column('max_stock_level', sa.Integer(), nullable=False),
        sa.Column('created_by_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'sku', name='uq_products_tenant_sku'),
        sa.CheckConstraint('units_per_pack >= 1', name='ck_products_units_per_pack'),
        sa.CheckConstraint('full_packs >= 0', name='ck_products_full_packs'),
        sa.CheckConstraint('loose_units >= 0', name='ck_products_loose_units'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_products_tenant_id', 'products', ['tenant_id'])
    op.create_index('ix_products_tenant_status', 'products', ['tenant_id', 'status'])
    op.create_index('ix_products_tenant_name', 'products', ['tenant_id', 'name'])

    # ============================================================================
    # sales + sale_lines
    # ============================================================================
    op.create_table(
        'sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('receipt_number', sa.String(length=32), nullable=False),
        sa.Column('attendant_id', sa.Integer(), nullable=False),
        sa.Column('created_by_id', sa.Integer(), nullable=False),
        sa.Column('subtotal_cents', sa.Integer(), nullable=False),
        sa.Column('total_amount_cents', sa.Integer(), nullable=False),
        sa.Column('amount_paid_cents', sa.Integer(), nullable=False),
        sa.Column('change_due_cents', sa.Integer(), nullable=False),
        sa.Column('payment_method', sa.String(length=16), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('ignore_stock', sa.Boolean(), nullable=False),
        sa.Column('stock_warnings', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'receipt_number', name='uq_sales_tenant_receipt'),
        sa.CheckConstraint('amount_paid_cents >= total_amount_cents', name='ck_sales_paid_covers_total'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sales_tenant_id', 'sales', ['tenant_id'])
    op.create_index('ix_sales_status', 'sales', ['status'])
    op.create_index('ix_sales_tenant_created', 'sales', ['tenant_id', 'created_at'])
    op.create_index('ix_sales_attendant_created', 'sales', ['attendant_id', 'created_at'])

    op.create_table(
        'sale_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('line_number', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('product_name', sa.String(length=100), nullable=False),
        sa.Column('unit_type', sa.String(length=32), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('line_total_cents', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id']),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sale_id', 'line_number', name='uq_sale_lines_sale_line'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_sale_lines_sale_id', 'sale_lines', ['sale_id'])
    op.create_index('ix_sale_lines_product_id', 'sale_lines', ['product_id'])

    # ============================================================================
    # inventory_logs: append-only audit trail
    # ============================================================================
    op.create_table(
        'inventory_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(length=16), nullable=False),
        sa.Column('performed_by_id', sa.Integer(), nullable=False),
        sa.Column('details', sa.JSON(), nullable=False),
        sa.Column('previous_state', sa.JSON(), nullable=True),
        sa.Column('new_state', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_inventory_logs_tenant_id', 'inventory_logs', ['tenant_id'])
    op.create_index('ix_inventory_logs_performed_by_id', 'inventory_logs', ['performed_by_id'])
    op.create_index('ix_invlog_product_created', 'inventory_logs', ['product_id', 'created_at'])
    op.create_index('ix_invlog_tenant_action', 'inventory_logs', ['tenant_id', 'action'])

    # ============================================================================
    # stock_reconciliations
    # ============================================================================
    op.create_table(
        'stock_reconciliations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('attendant_id', sa.Integer(), nullable=False),
        sa.Column('product_name', sa.String(length=100), nullable=False),
        sa.Column('quantity_sold', sa.Integer(), nullable=False),
        sa.Column('available_stock', sa.Integer(), nullable=False),
        sa.Column('deficit', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('resolved_by_id', sa.Integer(), nullable=True),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('resolution_notes', sa.String(length=500), nullable=True),
        sa.Column('action', sa.String(length=32), nullable=True),
        sa.Column('created_by_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id']),
        sa.ForeignKeyConstraint(['product_id'], ['products.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('deficit > 0', name='ck_recon_deficit_positive'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_stock_reconciliations_tenant_id', 'stock_reconciliations', ['tenant_id'])
    op.create_index('ix_stock_reconciliations_sale_id', 'stock_reconciliations', ['sale_id'])
    op.create_index('ix_stock_reconciliations_product_id', 'stock_reconciliations', ['product_id'])
    op.create_index('ix_stock_reconciliations_attendant_id', 'stock_reconciliations', ['attendant_id'])
    op.create_index('ix_recon_tenant_status', 'stock_reconciliations', ['tenant_id', 'status'])
    op.create_index('ix_recon_tenant_created', 'stock_reconciliations', ['tenant_id', 'created_at'])

    # ============================================================================
    # staff_activities: best-effort activity feed
    # ============================================================================
    op.create_table(
        'staff_activities',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('staff_id', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(length=32), nullable=False),
        sa.Column('details', sa.JSON(), nullable=False),
        sa.Column('device_info', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_staff_activity_tenant_created', 'staff_activities', ['tenant_id', 'created_at'])
    op.create_index('ix_staff_activity_staff_created', 'staff_activities', ['staff_id', 'created_at'])


def downgrade():
    op.drop_table('staff_activities')
    op.drop_table('stock_reconciliations')
    op.drop_table('inventory_logs')
    op.drop_table('sale_lines')
    op.drop_table('sales')
    op.drop_table('products')
