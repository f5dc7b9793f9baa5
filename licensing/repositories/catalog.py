# licensing/repositories/catalog.py
"""
Catalog repositories.

``CapabilityCatalogStore`` is the read path every other component uses.
``CatalogAuthoringRepository`` is the only write path into catalog tables and
is only handed to ``CapabilityDefinitionService``.
"""
import logging
from typing import FrozenSet, Iterable, List, Optional, Set

from flask import current_app
from sqlalchemy.orm import Session

from licensing.extensions import cache, db
from licensing.models import (
    BundleItem,
    CapabilityDefinition,
    GranteeTemplate,
    Plan,
    PlanBundle,
    PlanEntitlement,
    RightDefinition,
    Bundle,
)

logger = logging.getLogger(__name__)


def _entitlement_cache_key(plan_id):
    return f"licensing:entitlements:{plan_id}"


class CapabilityCatalogStore:
    """Read-only access to plans, capabilities and their rights"""

    def __init__(self, session: Optional[Session] = None):
        self.session = session or db.session

    def get_capability(self, capability_id: str) -> Optional[CapabilityDefinition]:
        return self.session.get(CapabilityDefinition, capability_id)

    def get_capabilities(self, capability_ids: Iterable[str]) -> List[CapabilityDefinition]:
        ids = list(capability_ids)
        if not ids:
            return []
        return (
            self.session.query(CapabilityDefinition)
            .filter(CapabilityDefinition.id.in_(ids))
            .order_by(CapabilityDefinition.code)
            .all()
        )

    def get_plan(self, plan_id: str) -> Optional[Plan]:
        return self.session.get(Plan, plan_id)

    def get_right(self, right_id: str) -> Optional[RightDefinition]:
        return self.session.get(RightDefinition, right_id)

    def get_rights_for_capability(self, capability_id: str) -> List[RightDefinition]:
        return (
            self.session.query(RightDefinition)
            .filter_by(capability_id=capability_id)
            .order_by(RightDefinition.display_order, RightDefinition.right_code)
            .all()
        )

    def get_templates_for_right(self, right_id: str) -> List[GranteeTemplate]:
        return (
            self.session.query(GranteeTemplate)
            .filter_by(right_id=right_id)
            .order_by(GranteeTemplate.role_key)
            .all()
        )

    def find_rights_by_code(
        self, right_code: str, capability_ids: Optional[Iterable[str]] = None
    ) -> List[RightDefinition]:
        query = self.session.query(RightDefinition).filter_by(right_code=right_code)
        if capability_ids is not None:
            query = query.filter(RightDefinition.capability_id.in_(list(capability_ids)))
        return query.order_by(RightDefinition.created_at).all()

    def right_codes_for_capabilities(self, capability_ids: Iterable[str], required_only=False) -> Set[str]:
        ids = list(capability_ids)
        if not ids:
            return set()
        query = self.session.query(RightDefinition.right_code).filter(RightDefinition.capability_id.in_(ids))
        if required_only:
            query = query.filter(RightDefinition.is_required.is_(True))
        rows = query.all()
        return {row[0] for row in rows}

    def resolve_entitlement_set(self, plan_id: Optional[str]) -> FrozenSet[str]:
        """Capability ids a plan includes: direct entitlements plus everything in its bundles"""
        if not plan_id:
            return frozenset()

        key = _entitlement_cache_key(plan_id)
        cached = cache.get(key)
        if cached is not None:
            return frozenset(cached)

        direct = {
            row[0]
            for row in self.session.query(PlanEntitlement.capability_id)
            .filter(PlanEntitlement.plan_id == plan_id)
            .all()
        }
        bundled = {
            row[0]
            for row in self.session.query(BundleItem.capability_id)
            .join(PlanBundle, PlanBundle.bundle_id == BundleItem.bundle_id)
            .join(Bundle, Bundle.id == BundleItem.bundle_id)
            .filter(PlanBundle.plan_id == plan_id, Bundle.is_active.is_(True))
            .all()
        }

        capability_ids = direct | bundled
        logger.debug(f"Resolved {len(capability_ids)} capabilities for plan {plan_id}")
        cache.set(
            key,
            sorted(capability_ids),
            timeout=current_app.config.get("ENTITLEMENT_CACHE_TIMEOUT", 300),
        )
        return frozenset(capability_ids)


class CatalogAuthoringRepository:
    """Write path for capability rights and grantee templates"""

    def __init__(self, session: Optional[Session] = None):
        self.session = session or db.session

    def right_code_exists(self, capability_id: str, right_code: str, exclude_right_id=None) -> bool:
        query = self.session.query(RightDefinition.id).filter_by(
            capability_id=capability_id, right_code=right_code
        )
        if exclude_right_id:
            query = query.filter(RightDefinition.id != exclude_right_id)
        return query.first() is not None

    def create_right(self, capability_id: str, **fields) -> RightDefinition:
        right = RightDefinition(capability_id=capability_id, **fields)
        self.session.add(right)
        self.session.flush()
        return right

    def add_template(self, right: RightDefinition, role_key: str, is_recommended=True, reason=None):
        template = GranteeTemplate(role_key=role_key, is_recommended=is_recommended, reason=reason)
        right.grantee_templates.append(template)
        self.session.flush()
        return template

    def update_right(self, right: RightDefinition, **changes) -> RightDefinition:
        for key, value in changes.items():
            setattr(right, key, value)
        self.session.flush()
        return right

    def delete_right(self, right: RightDefinition):
        self.session.delete(right)
        self.session.flush()

    def replace_templates(self, right: RightDefinition, templates: List[dict]) -> List[GranteeTemplate]:
        for existing in list(right.grantee_templates):
            right.grantee_templates.remove(existing)
        self.session.flush()

        created = [
            self.add_template(
                right,
                template["role_key"],
                template.get("is_recommended", True),
                template.get("reason"),
            )
            for template in templates
        ]
        return created

    def commit(self):
        self.session.commit()

    def rollback(self):
        self.session.rollback()
