"""create products, inventory movements and stock tables

Revision ID: a1c4e7b20d3f
Revises:
Create Date: 2026-10-19

"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'a1c4e7b20d3f'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(length=60), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('code', name='uq_products_code'),
    )

    op.create_table(
        'inventory_movements',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('unique_key', sa.String(length=255), nullable=False),
        sa.Column('product_key', sa.String(length=80), nullable=False),
        sa.Column('product_code', sa.String(length=60), nullable=False),
        sa.Column('product_desc', sa.String(length=255), nullable=False),
        sa.Column('date', sa.String(length=10), nullable=False),
        sa.Column('move_type', sa.String(length=20), nullable=False),
        sa.Column('qty', sa.Numeric(18, 6), nullable=False),
        sa.Column('unit_cost', sa.Numeric(18, 6), nullable=False),
        sa.Column('source', sa.String(length=20), nullable=False),
        sa.Column('doc_ref', sa.String(length=160), nullable=False),
        sa.Column('timestamp', sa.BigInteger(), nullable=False),
        sa.Column('provider_name', sa.String(length=160), nullable=True),
        sa.Column('provider_nit', sa.String(length=40), nullable=True),
        sa.Column('lot_date', sa.String(length=10), nullable=True),
        sa.UniqueConstraint('unique_key', name='uq_inventory_movements_unique_key'),
    )
    op.create_index('ix_inventory_movements_product_key', 'inventory_movements', ['product_key'])
    op.create_index('ix_inventory_movements_doc_ref', 'inventory_movements', ['doc_ref'])
    op.create_index('ix_inventory_movements_timestamp', 'inventory_movements', ['timestamp'])
    op.create_index('ix_inventory_movements_product_ts', 'inventory_movements', ['product_key', 'timestamp'])
    op.create_index('ix_inventory_movements_doc_source', 'inventory_movements', ['doc_ref', 'source'])

    op.create_table(
        'inventory_stock',
        sa.Column('product_key', sa.String(length=80), primary_key=True),
        sa.Column('product_code', sa.String(length=60), nullable=False),
        sa.Column('product_desc', sa.String(length=255), nullable=False),
        sa.Column('on_hand', sa.Numeric(18, 6), nullable=False),
        sa.Column('avg_cost', sa.Numeric(18, 6), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_inventory_stock_product_code', 'inventory_stock', ['product_code'])


def downgrade():
    op.drop_index('ix_inventory_stock_product_code', table_name='inventory_stock')
    op.drop_table('inventory_stock')

    op.drop_index('ix_inventory_movements_doc_source', table_name='inventory_movements')
    op.drop_index('ix_inventory_movements_product_ts', table_name='inventory_movements')
    op.drop_index('ix_inventory_movements_timestamp', table_name='inventory_movements')
    op.drop_index('ix_inventory_movements_doc_ref', table_name='inventory_movements')
    op.drop_index('ix_inventory_movements_product_key', table_name='inventory_movements')
    op.drop_table('inventory_movements')

    op.drop_table('products')
