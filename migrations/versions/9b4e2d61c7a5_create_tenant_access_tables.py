"""create tenant access tables

Revision ID: 9b4e2d61c7a5
Revises: 3f1c9a7d2b10
Create Date: 2026-09-14
"""
from alembic import op
import sqlalchemy as sa
from datetime import datetime

# revision identifiers, used by Alembic
revision = '9b4e2d61c7a5'
down_revision = '3f1c9a7d2b10'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'tenant_entitlement_grants',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('tenant_id', sa.String(36), sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('capability_id', sa.String(36), sa.ForeignKey('capability_catalog.id'), nullable=False),
        sa.Column('grant_source', sa.String(20), nullable=False, server_default='direct'),
        sa.Column('source_reference', sa.String(100), nullable=False, server_default=''),
        sa.Column('starts_at', sa.DateTime(), nullable=False, default=datetime.utcnow),
        sa.Column('expires_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), default=datetime.utcnow),
        sa.Column('updated_at', sa.DateTime(), default=datetime.utcnow, onupdate=datetime.utcnow),
        sa.UniqueConstraint(
            'tenant_id', 'capability_id', 'grant_source', 'source_reference',
            name='uq_tenant_entitlement_grant'
        )
    )

    op.create_table(
        'tenant_rights',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('tenant_id', sa.String(36), sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('right_code', sa.String(100), nullable=False),
        sa.Column('name', sa.String(150), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(50), nullable=False),
        sa.Column('action', sa.String(20), nullable=False),
        sa.Column('is_required', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('right_definition_id', sa.String(36), sa.ForeignKey('capability_rights.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(), default=datetime.utcnow),
        sa.Column('updated_at', sa.DateTime(), default=datetime.utcnow, onupdate=datetime.utcnow),
        sa.UniqueConstraint('tenant_id', 'right_code', name='uq_tenant_right_code')
    )

    op.create_table(
        'grantee_assignments',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('tenant_id', sa.String(36), sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('role_id', sa.String(36), sa.ForeignKey('roles.id'), nullable=False),
        sa.Column('right_id', sa.String(36), sa.ForeignKey('tenant_rights.id'), nullable=False),
        sa.Column('created_at', sa.DateTime(), default=datetime.utcnow),
        sa.Column('updated_at', sa.DateTime(), default=datetime.utcnow, onupdate=datetime.utcnow),
        sa.UniqueConstraint('tenant_id', 'role_id', 'right_id', name='uq_grantee_assignment')
    )

    op.create_table(
        'assignment_history',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('tenant_id', sa.String(36), sa.ForeignKey('tenants.id', ondelete='CASCADE'), nullable=False),
        sa.Column('old_plan_id', sa.String(36), sa.ForeignKey('plans.id'), nullable=True),
        sa.Column('new_plan_id', sa.String(36), sa.ForeignKey('plans.id'), nullable=True),
        sa.Column('actor_id', sa.String(36), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
    )

    # Every tenant-scoped query filters on tenant_id
    op.create_index('ix_tenant_entitlement_grants_tenant_id', 'tenant_entitlement_grants', ['tenant_id'])
    op.create_index('ix_tenant_rights_tenant_id', 'tenant_rights', ['tenant_id'])
    op.create_index('ix_grantee_assignments_tenant_id', 'grantee_assignments', ['tenant_id'])
    op.create_index('ix_assignment_history_tenant_id', 'assignment_history', ['tenant_id'])


def downgrade():
    op.drop_index('ix_assignment_history_tenant_id')
    op.drop_index('ix_grantee_assignments_tenant_id')
    op.drop_index('ix_tenant_rights_tenant_id')
    op.drop_index('ix_tenant_entitlement_grants_tenant_id')
    op.drop_table('assignment_history')
    op.drop_table('grantee_assignments')
    op.drop_table('tenant_rights')
    op.drop_table('tenant_entitlement_grants')
