"""Initial schema - product ledger, payment idempotency, images, AI sourcing

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '0001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

UTC_NOW = sa.text("timezone('utc', now())")
EMPTY_JSON_LIST = sa.text("'[]'::jsonb")


def upgrade() -> None:
    op.create_table(
        'products',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=False), server_default=UTC_NOW, nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=False), server_default=UTC_NOW, nullable=False),
        sa.Column('title', sa.String(), nullable=False, server_default=''),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('category', sa.String(), nullable=False, server_default='clothes'),
        sa.Column('clothing_subcategory', sa.String(), nullable=False, server_default=''),
        sa.Column('price_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('currency', sa.String(length=3), nullable=False, server_default='usd'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='draft'),
        sa.Column('inventory', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('sold_out_since', sa.TIMESTAMP(timezone=False), nullable=True),
        sa.Column('archived_at', sa.TIMESTAMP(timezone=False), nullable=True),
        sa.Column('photos', postgresql.JSONB(), nullable=False, server_default=EMPTY_JSON_LIST),
        sa.Column('tags', postgresql.JSONB(), nullable=False, server_default=EMPTY_JSON_LIST),
        sa.Column('search_keywords', postgresql.JSONB(), nullable=False, server_default=EMPTY_JSON_LIST),
        sa.Column('source_notes', sa.Text(), nullable=False, server_default=''),
        sa.Column('buy_price_max_cents', sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('inventory >= 0', name='ck_products_inventory_non_negative'),
        sa.CheckConstraint('price_cents >= 0', name='ck_products_price_non_negative'),
        sa.CheckConstraint("status IN ('draft', 'active', 'archived')", name='productstatus'),
    )
    op.create_index('ix_products_status', 'products', ['status'])
    op.create_index('ix_products_sold_out_since', 'products', ['sold_out_since'])

    op.create_table(
        'processed_payment_sessions',
        sa.Column('session_id', sa.String(), nullable=False),
        sa.Column('processed_at', sa.TIMESTAMP(timezone=False), server_default=UTC_NOW, nullable=False),
        sa.PrimaryKeyConstraint('session_id'),
    )

    op.create_table(
        'product_images',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('product_id', sa.String(), nullable=False),
        sa.Column('content_type', sa.String(), nullable=False),
        sa.Column('data', sa.LargeBinary(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=False), server_default=UTC_NOW, nullable=False),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_product_images_product_id', 'product_images', ['product_id'])

    op.create_table(
        'ai_opportunities',
        sa.Column('opp_id', sa.String(), nullable=False),
        sa.Column('category', sa.String(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('max_buy_price_cents', sa.Integer(), nullable=False),
        sa.Column('suggested_price_cents', sa.Integer(), nullable=False),
        sa.Column('expected_margin_pct', sa.Integer(), nullable=True),
        sa.Column('search_keywords', postgresql.JSONB(), nullable=False, server_default=EMPTY_JSON_LIST),
        sa.Column('buy_links', postgresql.JSONB(), nullable=False, server_default=EMPTY_JSON_LIST),
        sa.Column('local_pickup', postgresql.JSONB(), nullable=False, server_default=EMPTY_JSON_LIST),
        sa.Column('condition_checklist', postgresql.JSONB(), nullable=False, server_default=EMPTY_JSON_LIST),
        sa.Column('notes', sa.Text(), nullable=False, server_default=''),
        sa.Column('created_at', sa.TIMESTAMP(timezone=False), server_default=UTC_NOW, nullable=False),
        sa.PrimaryKeyConstraint('opp_id'),
    )
    op.create_index('ix_ai_opportunities_created_at', 'ai_opportunities', ['created_at'])

    op.create_table(
        'activity_log',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(length=50), nullable=False),
        sa.Column('entity_type', sa.String(length=50), nullable=False),
        sa.Column('entity_id', sa.String(length=255), nullable=False),
        sa.Column('platform', sa.String(length=50), nullable=True),
        sa.Column('details', postgresql.JSONB(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=False), server_default=UTC_NOW, nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_activity_log_action', 'activity_log', ['action'])
    op.create_index('ix_activity_log_entity_type', 'activity_log', ['entity_type'])
    op.create_index('ix_activity_log_entity_id', 'activity_log', ['entity_id'])
    op.create_index('ix_activity_log_platform', 'activity_log', ['platform'])
    op.create_index('ix_activity_log_created_at', 'activity_log', ['created_at'])


def downgrade() -> None:
    op.drop_table('activity_log')
    op.drop_table('ai_opportunities')
    op.drop_index('ix_product_images_product_id', table_name='product_images')
    op.drop_table('product_images')
    op.drop_table('processed_payment_sessions')
    op.drop_index('ix_products_sold_out_since', table_name='products')
    op.drop_index('ix_products_status', table_name='products')
    op.drop_table('products')
