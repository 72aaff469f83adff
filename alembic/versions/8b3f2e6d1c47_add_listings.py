"""add_listings

Revision ID: 8b3f2e6d1c47
Revises: 5d1e7c2a9b34
Create Date: 2026-10-19 16:40:08.517203

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '8b3f2e6d1c47'
down_revision: Union[str, Sequence[str], None] = '5d1e7c2a9b34'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """
    Add listings and the listings proposed to leads.
    """
    op.create_table(
        'listings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('assigned_user_id', sa.String(length=36), nullable=True),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('address', sa.String(length=255), nullable=False),
        sa.Column('address_detail', sa.String(length=100), nullable=True),
        sa.Column('property_type', sa.String(length=10), nullable=False),
        sa.Column('transaction_type', sa.String(length=6), nullable=False),
        sa.Column('price_selling', sa.Integer(), nullable=True),
        sa.Column('deposit', sa.Integer(), nullable=True),
        sa.Column('rent', sa.Integer(), nullable=True),
        sa.Column('admin_fee', sa.Integer(), nullable=True),
        sa.Column('area_supply_m2', sa.Float(), nullable=True),
        sa.Column('area_private_m2', sa.Float(), nullable=True),
        sa.Column('floor', sa.Integer(), nullable=True),
        sa.Column('total_floors', sa.Integer(), nullable=True),
        sa.Column('room_count', sa.Integer(), nullable=True),
        sa.Column('bathroom_count', sa.Integer(), nullable=True),
        sa.Column('direction', sa.String(length=20), nullable=True),
        sa.Column('status', sa.String(length=10), nullable=False),
        sa.Column('owner_contact', sa.String(length=20), nullable=True),
        sa.Column('memo', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['assigned_user_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_listings_tenant_id', 'listings', ['tenant_id'])
    op.create_index('ix_listings_tenant_address', 'listings', ['tenant_id', 'address'])
    op.create_index('ix_listings_tenant_created', 'listings', ['tenant_id', 'created_at'])

    op.create_table(
        'lead_listings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('lead_id', sa.Integer(), nullable=False),
        sa.Column('listing_id', sa.Integer(), nullable=False),
        sa.Column('proposed_by', sa.String(length=36), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['lead_id'], ['leads.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['listing_id'], ['listings.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['proposed_by'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('lead_id', 'listing_id', name='uq_lead_listing')
    )
    op.create_index('ix_lead_listings_tenant_id', 'lead_listings', ['tenant_id'])


def downgrade() -> None:
    op.drop_index('ix_lead_listings_tenant_id', table_name='lead_listings')
    op.drop_table('lead_listings')

    op.drop_index('ix_listings_tenant_created', table_name='listings')
    op.drop_index('ix_listings_tenant_address', table_name='listings')
    op.drop_index('ix_listings_tenant_id', table_name='listings')
    op.drop_table('listings')
