"""create_agency_crm_schema

Revision ID: 5d1e7c2a9b34
Revises:
Create Date: 2026-10-19 10:12:41.208311

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5d1e7c2a9b34'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """
    Create the agency CRM schema.

    Creates:
    - users and user_identities (legacy identity links)
    - tenants, tenant_memberships and subscriptions
    - leads and contracts (one contract per lead)
    - audit_logs
    """
    # 1. Users
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'user_identities',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('provider', sa.String(length=50), nullable=False),
        sa.Column('provider_user_id', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('provider', 'provider_user_id', name='uq_provider_user')
    )
    op.create_index('ix_user_identities_user_id', 'user_identities', ['user_id'])
    op.create_index('ix_user_identities_provider_user_id', 'user_identities', ['provider_user_id'])

    # 2. Tenants
    op.create_table(
        'tenants',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=50), nullable=False),
        sa.Column('invite_code', sa.String(length=16), nullable=False),
        sa.Column('license_no', sa.String(length=50), nullable=True),
        sa.Column('config', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_tenants_invite_code', 'tenants', ['invite_code'], unique=True)

    op.create_table(
        'tenant_memberships',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=False),
        sa.Column('role', sa.String(length=6), nullable=False),
        sa.Column('status', sa.String(length=7), nullable=False),
        sa.Column('joined_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('left_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'user_id', name='uq_tenant_user')
    )
    op.create_index('ix_tenant_memberships_tenant_id', 'tenant_memberships', ['tenant_id'])
    op.create_index('ix_tenant_memberships_user_id', 'tenant_memberships', ['user_id'])
    op.create_index(
        'ix_tenant_memberships_user_role_status',
        'tenant_memberships',
        ['user_id', 'role', 'status'],
    )

    op.create_table(
        'subscriptions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('plan', sa.String(length=50), nullable=False),
        sa.Column('status', sa.String(length=8), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id')
    )

    # 3. Leads and contracts
    op.create_table(
        'leads',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('assigned_user_id', sa.String(length=36), nullable=True),
        sa.Column('stage', sa.String(length=20), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('source', sa.String(length=50), nullable=True),
        sa.Column('property_type', sa.String(length=9), nullable=True),
        sa.Column('transaction_type', sa.String(length=6), nullable=True),
        sa.Column('price_min', sa.Integer(), nullable=False),
        sa.Column('price_max', sa.Integer(), nullable=False),
        sa.Column('deposit_min', sa.Integer(), nullable=False),
        sa.Column('deposit_max', sa.Integer(), nullable=False),
        sa.Column('preferred_region', sa.String(length=100), nullable=True),
        sa.Column('move_in_date', sa.Date(), nullable=True),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('memo', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['assigned_user_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_leads_tenant_id', 'leads', ['tenant_id'])
    op.create_index('ix_leads_tenant_stage', 'leads', ['tenant_id', 'stage'])
    op.create_index('ix_leads_tenant_created', 'leads', ['tenant_id', 'created_at'])

    op.create_table(
        'contracts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('lead_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=True),
        sa.Column('custom_id', sa.String(length=50), nullable=True),
        sa.Column('contract_date', sa.Date(), nullable=False),
        sa.Column('transaction_type', sa.String(length=6), nullable=False),
        sa.Column('price', sa.Integer(), nullable=False),
        sa.Column('deposit', sa.Integer(), nullable=False),
        sa.Column('rent', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=10), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['lead_id'], ['leads.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('lead_id', name='uq_contract_lead')
    )
    op.create_index('ix_contracts_tenant_id', 'contracts', ['tenant_id'])
    op.create_index('ix_contracts_tenant_lead', 'contracts', ['tenant_id', 'lead_id'])

    # 4. Audit trail
    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=36), nullable=True),
        sa.Column('action', sa.String(length=64), nullable=False),
        sa.Column('details', sa.JSON(), nullable=False),
        sa.Column('ip_address', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_audit_logs_user_id', 'audit_logs', ['user_id'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])


def downgrade() -> None:
    """
    Drop the agency CRM schema.

    WARNING: This deletes all agencies, leads, contracts and audit history.
    """
    op.drop_index('ix_audit_logs_action', table_name='audit_logs')
    op.drop_index('ix_audit_logs_user_id', table_name='audit_logs')
    op.drop_table('audit_logs')

    op.drop_index('ix_contracts_tenant_lead', table_name='contracts')
    op.drop_index('ix_contracts_tenant_id', table_name='contracts')
    op.drop_table('contracts')

    op.drop_index('ix_leads_tenant_created', table_name='leads')
    op.drop_index('ix_leads_tenant_stage', table_name='leads')
    op.drop_index('ix_leads_tenant_id', table_name='leads')
    op.drop_table('leads')

    op.drop_table('subscriptions')

    op.drop_index('ix_tenant_memberships_user_role_status', table_name='tenant_memberships')
    op.drop_index('ix_tenant_memberships_user_id', table_name='tenant_memberships')
    op.drop_index('ix_tenant_memberships_tenant_id', table_name='tenant_memberships')
    op.drop_table('tenant_memberships')

    op.drop_index('ix_tenants_invite_code', table_name='tenants')
    op.drop_table('tenants')

    op.drop_index('ix_user_identities_provider_user_id', table_name='user_identities')
    op.drop_index('ix_user_identities_user_id', table_name='user_identities')
    op.drop_table('user_identities')

    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
