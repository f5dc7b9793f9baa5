from licensing.extensions import db
from licensing.core.database import BaseModel, generate_uuid


class Tenant(BaseModel):
    __tablename__ = "tenants"

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    name = db.Column(db.String(100), nullable=False)
    subdomain = db.Column(db.String(100), unique=True, nullable=False)
    is_active = db.Column(db.Boolean, default=True)

    # Plan the tenant is billed for; only written together with an AssignmentHistory row
    current_plan_id = db.Column(db.String(36), db.ForeignKey("plans.id"), nullable=True)

    roles = db.relationship("Role", backref="tenant", lazy="dynamic")

    def __repr__(self):
        return f"<Tenant {self.subdomain}>"

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "subdomain": self.subdomain,
            "is_active": self.is_active,
            "current_plan_id": self.current_plan_id,
        }
