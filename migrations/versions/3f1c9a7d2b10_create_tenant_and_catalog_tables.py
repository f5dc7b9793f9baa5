"""create tenant and catalog tables

Revision ID: 3f1c9a7d2b10
Revises: None
Create Date: 2026-09-14
"""
from alembic import op
import sqlalchemy as sa
from datetime import datetime

# revision identifiers, used by Alembic
revision = '3f1c9a7d2b10'
down_revision = None
branch_labels = None
depends_on = None


def timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), default=datetime.utcnow),
        sa.Column('updated_at', sa.DateTime(), default=datetime.utcnow, onupdate=datetime.utcnow),
    ]


def upgrade():
    op.create_table(
        'plans',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('code', sa.String(100), nullable=False, unique=True),
        sa.Column('name', sa.String(150), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, default=True),
        *timestamps()
    )

    op.create_table(
        'tenants',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('subdomain', sa.String(100), nullable=False, unique=True),
        sa.Column('is_active', sa.Boolean(), default=True),
        sa.Column('current_plan_id', sa.String(36), sa.ForeignKey('plans.id'), nullable=True),
        *timestamps()
    )

    op.create_table(
        'roles',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('tenant_id', sa.String(36), sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('key', sa.String(50), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.String(255)),
        *timestamps(),
        sa.UniqueConstraint('tenant_id', 'key', name='uq_role_tenant_key')
    )

    op.create_table(
        'capability_catalog',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('code', sa.String(100), nullable=False, unique=True),
        sa.Column('name', sa.String(150), nullable=False),
        sa.Column('category', sa.String(50), nullable=False, server_default='general'),
        sa.Column('phase', sa.String(20), nullable=False, server_default='ga'),
        sa.Column('surface_id', sa.String(255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *timestamps()
    )

    op.create_table(
        'capability_rights',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('capability_id', sa.String(36), sa.ForeignKey('capability_catalog.id', ondelete='CASCADE'), nullable=False),
        sa.Column('right_code', sa.String(100), nullable=False),
        sa.Column('display_name', sa.String(150), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(50), nullable=False),
        sa.Column('action', sa.String(20), nullable=False),
        sa.Column('is_required', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('display_order', sa.Integer(), nullable=False, server_default='0'),
        *timestamps(),
        sa.UniqueConstraint('capability_id', 'right_code', name='uq_capability_right_code')
    )
    op.create_index('ix_capability_rights_right_code', 'capability_rights', ['right_code'])

    op.create_table(
        'grantee_templates',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('right_id', sa.String(36), sa.ForeignKey('capability_rights.id', ondelete='CASCADE'), nullable=False),
        sa.Column('role_key', sa.String(50), nullable=False),
        sa.Column('is_recommended', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('reason', sa.String(255), nullable=True),
        *timestamps(),
        sa.UniqueConstraint('right_id', 'role_key', name='uq_grantee_template_role')
    )

    op.create_table(
        'plan_entitlements',
        sa.Column('plan_id', sa.String(36), sa.ForeignKey('plans.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('capability_id', sa.String(36), sa.ForeignKey('capability_catalog.id', ondelete='CASCADE'), primary_key=True),
    )

    op.create_table(
        'bundles',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('code', sa.String(100), nullable=False, unique=True),
        sa.Column('name', sa.String(150), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *timestamps()
    )

    op.create_table(
        'bundle_items',
        sa.Column('bundle_id', sa.String(36), sa.ForeignKey('bundles.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('capability_id', sa.String(36), sa.ForeignKey('capability_catalog.id', ondelete='CASCADE'), primary_key=True),
    )

    op.create_table(
        'plan_bundles',
        sa.Column('plan_id', sa.String(36), sa.ForeignKey('plans.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('bundle_id', sa.String(36), sa.ForeignKey('bundles.id', ondelete='CASCADE'), primary_key=True),
    )


def downgrade():
    op.drop_table('plan_bundles')
    op.drop_table('bundle_items')
    op.drop_table('bundles')
    op.drop_table('plan_entitlements')
    op.drop_table('grantee_templates')
    op.drop_index('ix_capability_rights_right_code')
    op.drop_table('capability_rights')
    op.drop_table('capability_catalog')
    op.drop_table('roles')
    op.drop_table('tenants')
    op.drop_table('plans')
