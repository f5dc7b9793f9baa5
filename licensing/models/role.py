from licensing.extensions import db
from licensing.core.database import BaseModel, generate_uuid
from licensing.core.constants import DEFAULT_ROLES


class Role(BaseModel):
    """
    Tenant role from the identity store.

    The provisioning core never creates or edits roles on its own; it only
    resolves conventional role keys (``tenant_admin``, ``staff``...) to the
    tenant's role ids.
    """

    __tablename__ = "roles"

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    tenant_id = db.Column(db.String(36), db.ForeignKey("tenants.id"), nullable=False)
    key = db.Column(db.String(50), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.String(255))

    __table_args__ = (db.UniqueConstraint("tenant_id", "key", name="uq_role_tenant_key"),)

    def __repr__(self):
        return f"<Role {self.key} for tenant {self.tenant_id}>"

    def to_dict(self):
        return {
            "id": self.id,
            "key": self.key,
            "name": self.name,
            "description": self.description,
            "tenant_id": self.tenant_id,
        }

    @staticmethod
    def create_default_roles(tenant_id, keys=None):
        """Create the conventional roles for a new tenant"""
        created_roles = []
        for key, (name, description) in DEFAULT_ROLES.items():
            if keys is not None and key not in keys:
                continue
            role = Role(tenant_id=tenant_id, key=key, name=name, description=description)
            db.session.add(role)
            created_roles.append(role)

        db.session.commit()
        return created_roles
