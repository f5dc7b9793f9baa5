# licensing/models/assignment_history.py
from typing import Any, Dict, Optional

from licensing.extensions import db
from licensing.core.database import generate_uuid, utcnow


class AssignmentHistory(db.Model):
    """Append-only log of plan changes per tenant"""

    __tablename__ = "assignment_history"

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    tenant_id = db.Column(
        db.String(36), db.ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    old_plan_id = db.Column(db.String(36), db.ForeignKey("plans.id"), nullable=True)
    new_plan_id = db.Column(db.String(36), db.ForeignKey("plans.id"), nullable=True)
    actor_id = db.Column(db.String(36), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def __repr__(self):
        return f"<AssignmentHistory {self.tenant_id}: {self.old_plan_id} -> {self.new_plan_id}>"

    @staticmethod
    def build(
        tenant_id: str,
        old_plan_id: Optional[str],
        new_plan_id: Optional[str],
        actor_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> "AssignmentHistory":
        return AssignmentHistory(
            id=generate_uuid(),
            tenant_id=tenant_id,
            old_plan_id=old_plan_id,
            new_plan_id=new_plan_id,
            actor_id=actor_id,
            notes=notes,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "old_plan_id": self.old_plan_id,
            "new_plan_id": self.new_plan_id,
            "actor_id": self.actor_id,
            "notes": self.notes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
