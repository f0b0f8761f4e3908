"""create locations, products, variations, mappings, inventory and sales tables

Revision ID: 001
Revises:
Create Date: 2025-06-02 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'locations',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('external_id', sa.Text(), nullable=False, unique=True),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('address', sa.Text()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'products',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('external_id', sa.Text(), unique=True),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('category', sa.Text()),
        sa.Column('sku', sa.Text()),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('synced_at', sa.DateTime(timezone=True)),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('idx_products_name', 'products', ['name'])

    op.create_table(
        'product_variations',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('product_id', sa.Uuid(as_uuid=True), sa.ForeignKey('products.id', ondelete='CASCADE'), nullable=False),
        sa.Column('external_variation_id', sa.Text(), unique=True),
        sa.Column('name', sa.Text()),
        sa.Column('sku', sa.Text()),
        sa.Column('price', sa.Numeric(12, 2)),
        sa.Column('synced_at', sa.DateTime(timezone=True)),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('idx_variations_product', 'product_variations', ['product_id'])

    op.create_table(
        'catalog_mappings',
        sa.Column('external_id', sa.Text(), primary_key=True),
        sa.Column('product_id', sa.Uuid(as_uuid=True), sa.ForeignKey('products.id', ondelete='CASCADE'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('idx_catalog_mappings_product', 'catalog_mappings', ['product_id'])

    op.create_table(
        'inventory',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('location_id', sa.Uuid(as_uuid=True), sa.ForeignKey('locations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('product_id', sa.Uuid(as_uuid=True), sa.ForeignKey('products.id', ondelete='CASCADE'), nullable=False),
        sa.Column('variation_id', sa.Uuid(as_uuid=True), sa.ForeignKey('product_variations.id', ondelete='CASCADE')),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('counted_at', sa.DateTime(timezone=True)),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint('quantity >= 0', name='inventory_quantity_non_negative'),
    )
    op.create_index(
        'idx_inventory_key', 'inventory', ['location_id', 'product_id', 'variation_id'],
        unique=True, postgresql_nulls_not_distinct=True,
    )

    op.create_table(
        'sales',
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column('external_id', sa.Text(), nullable=False, unique=True),
        sa.Column('order_id', sa.Text()),
        sa.Column('location_id', sa.Uuid(as_uuid=True), sa.ForeignKey('locations.id', ondelete='SET NULL')),
        sa.Column('product_id', sa.Uuid(as_uuid=True), sa.ForeignKey('products.id', ondelete='SET NULL')),
        sa.Column('variation_id', sa.Uuid(as_uuid=True), sa.ForeignKey('product_variations.id', ondelete='SET NULL')),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('unit_price', sa.Numeric(12, 2)),
        sa.Column('total_amount', sa.Numeric(12, 2)),
        sa.Column('sale_date', sa.DateTime(timezone=True)),
        sa.Column('synced_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('idx_sales_sale_date', 'sales', ['sale_date'])
    op.create_index('idx_sales_location', 'sales', ['location_id'])


def downgrade() -> None:
    op.drop_table('sales')
    op.drop_table('inventory')
    op.drop_table('catalog_mappings')
    op.drop_table('product_variations')
    op.drop_table('products')
    op.drop_table('locations')
