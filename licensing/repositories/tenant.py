# licensing/repositories/tenant.py
"""
Tenant-scoped write path.

Every query here is filtered by ``tenant_id``; nothing in this module reads
or writes another tenant's rows or any catalog table.
"""
from datetime import datetime
from typing import Iterable, List, Optional, Set, Tuple

from sqlalchemy.orm import Session

from licensing.core.database import insert_if_absent, utcnow
from licensing.extensions import db
from licensing.models import (
    AssignmentHistory,
    GranteeAssignment,
    RightDefinition,
    Role,
    Tenant,
    TenantEntitlementGrant,
    TenantRight,
)


class TenantAccessRepository:
    def __init__(self, session: Optional[Session] = None):
        self.session = session or db.session

    # Identity store (read-only)

    def get_tenant(self, tenant_id: str) -> Optional[Tenant]:
        return self.session.get(Tenant, tenant_id)

    def find_role_by_key(self, tenant_id: str, role_key: str) -> Optional[Role]:
        return self.session.query(Role).filter_by(tenant_id=tenant_id, key=role_key).first()

    def get_roles(self, tenant_id: str, role_ids: Optional[Iterable[str]] = None) -> List[Role]:
        query = self.session.query(Role).filter_by(tenant_id=tenant_id)
        if role_ids is not None:
            query = query.filter(Role.id.in_(list(role_ids)))
        return query.order_by(Role.key).all()

    # Tenant rights

    def get_tenant_right(self, tenant_id: str, right_id: str) -> Optional[TenantRight]:
        return self.session.query(TenantRight).filter_by(tenant_id=tenant_id, id=right_id).first()

    def list_tenant_rights(
        self, tenant_id: str, right_codes: Optional[Iterable[str]] = None, active_only=False
    ) -> List[TenantRight]:
        query = self.session.query(TenantRight).filter_by(tenant_id=tenant_id)
        if right_codes is not None:
            query = query.filter(TenantRight.right_code.in_(list(right_codes)))
        if active_only:
            query = query.filter(TenantRight.is_active.is_(True))
        return query.order_by(TenantRight.right_code).all()

    def ensure_tenant_right(
        self, tenant_id: str, definition: RightDefinition
    ) -> Tuple[TenantRight, bool]:
        """Materialize a catalog right for the tenant unless it already exists"""
        return insert_if_absent(
            self.session,
            TenantRight,
            {"tenant_id": tenant_id, "right_code": definition.right_code},
            name=definition.display_name,
            description=definition.description,
            category=definition.category,
            action=definition.action,
            is_required=definition.is_required,
            is_active=True,
            right_definition_id=definition.id,
        )

    def deactivate_tenant_right(self, tenant_right: TenantRight):
        tenant_right.is_active = False
        self.session.flush()

    def reactivate_tenant_right(self, tenant_right: TenantRight):
        tenant_right.is_active = True
        self.session.flush()

    def set_right_required(self, tenant_right: TenantRight, is_required: bool):
        tenant_right.is_required = is_required
        self.session.flush()

    # Grantee assignments

    def ensure_assignment(
        self, tenant_id: str, role_id: str, right_id: str
    ) -> Tuple[GranteeAssignment, bool]:
        return insert_if_absent(
            self.session,
            GranteeAssignment,
            {"tenant_id": tenant_id, "role_id": role_id, "right_id": right_id},
        )

    def get_assignment_role_ids(self, tenant_id: str, right_id: str) -> Set[str]:
        rows = (
            self.session.query(GranteeAssignment.role_id)
            .filter_by(tenant_id=tenant_id, right_id=right_id)
            .all()
        )
        return {row[0] for row in rows}

    def get_assignments(self, tenant_id: str, right_ids: Iterable[str]) -> List[GranteeAssignment]:
        ids = list(right_ids)
        if not ids:
            return []
        return (
            self.session.query(GranteeAssignment)
            .filter(GranteeAssignment.tenant_id == tenant_id, GranteeAssignment.right_id.in_(ids))
            .all()
        )

    def remove_assignments(
        self, tenant_id: str, right_id: str, role_ids: Optional[Iterable[str]] = None
    ) -> int:
        query = self.session.query(GranteeAssignment).filter_by(tenant_id=tenant_id, right_id=right_id)
        if role_ids is not None:
            query = query.filter(GranteeAssignment.role_id.in_(list(role_ids)))
        removed = query.delete(synchronize_session="fetch")
        self.session.flush()
        return removed

    # Entitlement grants

    def list_grants(self, tenant_id: str, active_at: Optional[datetime] = None) -> List[TenantEntitlementGrant]:
        grants = (
            self.session.query(TenantEntitlementGrant)
            .filter_by(tenant_id=tenant_id)
            .order_by(TenantEntitlementGrant.starts_at)
            .all()
        )
        if active_at is None:
            return grants
        return [grant for grant in grants if grant.is_active_at(active_at)]

    def active_capability_ids(
        self, tenant_id: str, now: Optional[datetime] = None, exclude: Iterable[str] = ()
    ) -> Set[str]:
        excluded = set(exclude)
        return {
            grant.capability_id
            for grant in self.list_grants(tenant_id, active_at=now or utcnow())
            if grant.capability_id not in excluded
        }

    def ensure_grant(
        self,
        tenant_id: str,
        capability_id: str,
        grant_source: str,
        source_reference: str,
        expires_at: Optional[datetime] = None,
    ) -> Tuple[TenantEntitlementGrant, bool]:
        grant, created = insert_if_absent(
            self.session,
            TenantEntitlementGrant,
            {
                "tenant_id": tenant_id,
                "capability_id": capability_id,
                "grant_source": grant_source,
                "source_reference": source_reference,
            },
            expires_at=expires_at,
        )
        if not created and grant.expires_at != expires_at:
            grant.expires_at = expires_at
            self.session.flush()
        return grant, created

    def delete_grants(
        self,
        tenant_id: str,
        grant_source: str,
        source_reference: str,
        capability_ids: Optional[Iterable[str]] = None,
    ) -> int:
        query = self.session.query(TenantEntitlementGrant).filter_by(
            tenant_id=tenant_id, grant_source=grant_source, source_reference=source_reference
        )
        if capability_ids is not None:
            query = query.filter(TenantEntitlementGrant.capability_id.in_(list(capability_ids)))
        deleted = query.delete(synchronize_session="fetch")
        self.session.flush()
        return deleted

    def delete_grant(self, grant: TenantEntitlementGrant):
        self.session.delete(grant)
        self.session.flush()

    # Plan pointer and history

    def set_current_plan(self, tenant: Tenant, plan_id: Optional[str]):
        tenant.current_plan_id = plan_id
        self.session.flush()

    def append_history(
        self,
        tenant_id: str,
        old_plan_id: Optional[str],
        new_plan_id: Optional[str],
        actor_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> AssignmentHistory:
        entry = AssignmentHistory.build(tenant_id, old_plan_id, new_plan_id, actor_id, notes)
        self.session.add(entry)
        self.session.flush()
        return entry

    def list_history(self, tenant_id: str) -> List[AssignmentHistory]:
        return (
            self.session.query(AssignmentHistory)
            .filter_by(tenant_id=tenant_id)
            .order_by(AssignmentHistory.created_at.desc())
            .all()
        )

    def commit(self):
        self.session.commit()

    def rollback(self):
        self.session.rollback()
