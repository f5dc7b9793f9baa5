# licensing/models/tenant_access.py
from licensing.extensions import db
from licensing.core.database import BaseModel, generate_uuid, utcnow
from licensing.core.constants import GrantSource


class TenantEntitlementGrant(BaseModel):
    """A tenant currently has access to a capability, and why"""

    __tablename__ = "tenant_entitlement_grants"

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    tenant_id = db.Column(db.String(36), db.ForeignKey("tenants.id"), nullable=False, index=True)
    capability_id = db.Column(db.String(36), db.ForeignKey("capability_catalog.id"), nullable=False)
    grant_source = db.Column(db.String(20), nullable=False, default=GrantSource.DIRECT.value)
    source_reference = db.Column(db.String(100), nullable=False, default="")
    starts_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=True)

    capability = db.relationship("CapabilityDefinition", lazy="joined")

    __table_args__ = (
        db.UniqueConstraint(
            "tenant_id",
            "capability_id",
            "grant_source",
            "source_reference",
            name="uq_tenant_entitlement_grant",
        ),
    )

    def is_active_at(self, moment):
        return self.expires_at is None or self.expires_at > moment

    def to_dict(self):
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "capability_id": self.capability_id,
            "capability_code": self.capability.code if self.capability else None,
            "grant_source": self.grant_source,
            "source_reference": self.source_reference,
            "starts_at": self.starts_at.isoformat() if self.starts_at else None,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }


class TenantRight(BaseModel):
    """
    Tenant-private copy of a catalog right.

    Keyed by ``(tenant_id, right_code)`` rather than by the catalog row so that
    several capabilities declaring the same code share one tenant right, and
    so the tenant can diverge from the catalog without touching it.
    """

    __tablename__ = "tenant_rights"

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    tenant_id = db.Column(db.String(36), db.ForeignKey("tenants.id"), nullable=False, index=True)
    right_code = db.Column(db.String(100), nullable=False)
    name = db.Column(db.String(150), nullable=False)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(50), nullable=False)
    action = db.Column(db.String(20), nullable=False)
    is_required = db.Column(db.Boolean, default=False, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    right_definition_id = db.Column(
        db.String(36), db.ForeignKey("capability_rights.id", ondelete="SET NULL"), nullable=True
    )

    assignments = db.relationship("GranteeAssignment", backref="right", lazy="dynamic")

    __table_args__ = (db.UniqueConstraint("tenant_id", "right_code", name="uq_tenant_right_code"),)

    def __repr__(self):
        return f"<TenantRight {self.right_code} for tenant {self.tenant_id}>"

    def to_dict(self):
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "right_code": self.right_code,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "action": self.action,
            "is_required": self.is_required,
            "is_active": self.is_active,
            "right_definition_id": self.right_definition_id,
        }


class GranteeAssignment(BaseModel):
    __tablename__ = "grantee_assignments"

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    tenant_id = db.Column(db.String(36), db.ForeignKey("tenants.id"), nullable=False, index=True)
    role_id = db.Column(db.String(36), db.ForeignKey("roles.id"), nullable=False)
    right_id = db.Column(db.String(36), db.ForeignKey("tenant_rights.id"), nullable=False)

    role = db.relationship("Role", lazy="joined")

    __table_args__ = (
        db.UniqueConstraint("tenant_id", "role_id", "right_id", name="uq_grantee_assignment"),
    )

    def __repr__(self):
        return f"<GranteeAssignment role={self.role_id} right={self.right_id}>"
