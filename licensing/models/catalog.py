# licensing/models/catalog.py
"""
Global catalog: what can be bought and which rights each capability needs.

None of these tables carry a tenant id. They are written only through
``CatalogAuthoringRepository``.
"""
from licensing.extensions import db
from licensing.core.database import BaseModel, generate_uuid
from licensing.core.constants import CapabilityPhase


class CapabilityDefinition(BaseModel):
    __tablename__ = "capability_catalog"

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    code = db.Column(db.String(100), unique=True, nullable=False)
    name = db.Column(db.String(150), nullable=False)
    category = db.Column(db.String(50), nullable=False, default="general")
    phase = db.Column(db.String(20), nullable=False, default=CapabilityPhase.GA.value)
    surface_id = db.Column(db.String(255), nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    rights = db.relationship(
        "RightDefinition",
        backref="capability",
        lazy="select",
        cascade="all, delete-orphan",
        order_by="RightDefinition.display_order",
    )

    def __repr__(self):
        return f"<CapabilityDefinition {self.code}>"

    def to_dict(self):
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "category": self.category,
            "phase": self.phase,
            "surface_id": self.surface_id,
            "is_active": self.is_active,
        }


class RightDefinition(BaseModel):
    __tablename__ = "capability_rights"

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    capability_id = db.Column(
        db.String(36), db.ForeignKey("capability_catalog.id", ondelete="CASCADE"), nullable=False
    )
    right_code = db.Column(db.String(100), nullable=False)
    display_name = db.Column(db.String(150), nullable=False)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(50), nullable=False)
    action = db.Column(db.String(20), nullable=False)
    is_required = db.Column(db.Boolean, default=False, nullable=False)
    display_order = db.Column(db.Integer, default=0, nullable=False)

    grantee_templates = db.relationship(
        "GranteeTemplate",
        backref="right",
        lazy="select",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        db.UniqueConstraint("capability_id", "right_code", name="uq_capability_right_code"),
    )

    def __repr__(self):
        return f"<RightDefinition {self.right_code}>"

    def to_dict(self, include_templates=False):
        data = {
            "id": self.id,
            "capability_id": self.capability_id,
            "right_code": self.right_code,
            "display_name": self.display_name,
            "description": self.description,
            "category": self.category,
            "action": self.action,
            "is_required": self.is_required,
            "display_order": self.display_order,
        }
        if include_templates:
            data["grantee_templates"] = [template.to_dict() for template in self.grantee_templates]
        return data


class GranteeTemplate(BaseModel):
    __tablename__ = "grantee_templates"

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    right_id = db.Column(
        db.String(36), db.ForeignKey("capability_rights.id", ondelete="CASCADE"), nullable=False
    )
    role_key = db.Column(db.String(50), nullable=False)
    is_recommended = db.Column(db.Boolean, default=True, nullable=False)
    reason = db.Column(db.String(255), nullable=True)

    __table_args__ = (db.UniqueConstraint("right_id", "role_key", name="uq_grantee_template_role"),)

    def __repr__(self):
        return f"<GranteeTemplate {self.role_key} for right {self.right_id}>"

    def to_dict(self):
        return {
            "id": self.id,
            "right_id": self.right_id,
            "role_key": self.role_key,
            "is_recommended": self.is_recommended,
            "reason": self.reason,
        }


class Plan(BaseModel):
    __tablename__ = "plans"

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    code = db.Column(db.String(100), unique=True, nullable=False)
    name = db.Column(db.String(150), nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    def to_dict(self):
        return {"id": self.id, "code": self.code, "name": self.name, "is_active": self.is_active}


class PlanEntitlement(db.Model):
    __tablename__ = "plan_entitlements"

    plan_id = db.Column(db.String(36), db.ForeignKey("plans.id", ondelete="CASCADE"), primary_key=True)
    capability_id = db.Column(
        db.String(36), db.ForeignKey("capability_catalog.id", ondelete="CASCADE"), primary_key=True
    )


class Bundle(BaseModel):
    __tablename__ = "bundles"

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    code = db.Column(db.String(100), unique=True, nullable=False)
    name = db.Column(db.String(150), nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)


class BundleItem(db.Model):
    __tablename__ = "bundle_items"

    bundle_id = db.Column(db.String(36), db.ForeignKey("bundles.id", ondelete="CASCADE"), primary_key=True)
    capability_id = db.Column(
        db.String(36), db.ForeignKey("capability_catalog.id", ondelete="CASCADE"), primary_key=True
    )


class PlanBundle(db.Model):
    __tablename__ = "plan_bundles"

    plan_id = db.Column(db.String(36), db.ForeignKey("plans.id", ondelete="CASCADE"), primary_key=True)
    bundle_id = db.Column(db.String(36), db.ForeignKey("bundles.id", ondelete="CASCADE"), primary_key=True)
