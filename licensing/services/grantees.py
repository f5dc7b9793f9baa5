# licensing/services/grantees.py
import logging
from typing import Any, Dict, Iterable, List, Optional

from flask import current_app

from licensing.core.constants import RoleKey
from licensing.core.exceptions import (
    InvariantViolation,
    NotFoundError,
    TenantNotFoundError,
    ValidationError,
)
from licensing.repositories.catalog import CapabilityCatalogStore
from licensing.repositories.tenant import TenantAccessRepository

logger = logging.getLogger(__name__)


class TenantGranteeConfigurationService:
    """Lets a tenant decide which of its roles hold each of its rights"""

    def __init__(self, catalog: CapabilityCatalogStore, tenant_repo: TenantAccessRepository):
        self.catalog = catalog
        self.tenant_repo = tenant_repo

    @property
    def admin_role_key(self) -> str:
        return current_app.config.get("ADMIN_ROLE_KEY", RoleKey.TENANT_ADMIN.value)

    def _require_tenant(self, tenant_id):
        if self.tenant_repo.get_tenant(tenant_id) is None:
            raise TenantNotFoundError(f"Tenant '{tenant_id}' not found")

    def _require_right(self, tenant_id, right_id):
        right = self.tenant_repo.get_tenant_right(tenant_id, right_id)
        if right is None:
            raise NotFoundError(f"Right '{right_id}' not found for tenant")
        return right

    def get_tenant_rights_with_grantees(
        self, tenant_id: str, capability_id: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        self._require_tenant(tenant_id)

        codes = None
        if capability_id:
            if self.catalog.get_capability(capability_id) is None:
                raise NotFoundError(f"Capability '{capability_id}' not found")
            codes = self.catalog.right_codes_for_capabilities([capability_id])

        rights = self.tenant_repo.list_tenant_rights(tenant_id, codes)
        grantees: Dict[str, List[Dict[str, Any]]] = {right.id: [] for right in rights}
        for assignment in self.tenant_repo.get_assignments(tenant_id, grantees.keys()):
            grantees[assignment.right_id].append(
                {
                    "role_id": assignment.role_id,
                    "role_key": assignment.role.key,
                    "role_name": assignment.role.name,
                }
            )

        data = []
        for right in rights:
            item = right.to_dict()
            item["grantees"] = sorted(grantees[right.id], key=lambda g: g["role_key"])
            data.append(item)
        return data

    def update_right_grantees(self, tenant_id: str, right_id: str, role_ids: Iterable[str]) -> Dict[str, Any]:
        """
        Replace the set of roles holding a tenant right.

        Every check runs before the first write: the roles must belong to the
        tenant, and a required right must stay with the administrative role.
        """
        self._require_tenant(tenant_id)
        right = self._require_right(tenant_id, right_id)

        if not right.is_active:
            raise ValidationError(
                "Right is not active for this tenant",
                errors=[{"field": "right_id", "code": "inactive", "message": f"Right '{right.right_code}' is inactive"}],
            )

        desired = set(role_ids)
        known = {role.id for role in self.tenant_repo.get_roles(tenant_id, desired)}
        unknown = desired - known
        if unknown:
            raise ValidationError(
                "Unknown roles for this tenant",
                errors=[
                    {"field": "role_ids", "code": "unknown_role", "message": "Role does not belong to tenant", "value": role_id}
                    for role_id in sorted(unknown)
                ],
            )

        if right.is_required:
            admin = self.tenant_repo.find_role_by_key(tenant_id, self.admin_role_key)
            if admin is not None and admin.id not in desired:
                raise InvariantViolation(
                    f"Required right '{right.right_code}' must stay assigned to the '{self.admin_role_key}' role",
                    payload={"right_code": right.right_code, "role_key": self.admin_role_key},
                )

        current = self.tenant_repo.get_assignment_role_ids(tenant_id, right.id)
        added = desired - current
        removed = current - desired

        for role_id in sorted(added):
            self.tenant_repo.ensure_assignment(tenant_id, role_id, right.id)
        if removed:
            self.tenant_repo.remove_assignments(tenant_id, right.id, removed)
        self.tenant_repo.commit()

        logger.info(
            f"Updated grantees of {right.right_code}: +{len(added)} -{len(removed)}",
            extra={"tenant_id": tenant_id},
        )
        return {
            "right_id": right.id,
            "right_code": right.right_code,
            "role_ids": sorted(desired),
            "added": sorted(added),
            "removed": sorted(removed),
        }

    def reset_to_defaults(self, tenant_id: str, right_id: str) -> Dict[str, Any]:
        """Restore the role set implied by the right's grantee templates"""
        self._require_tenant(tenant_id)
        right = self._require_right(tenant_id, right_id)

        # Templates of every granted capability declaring the code, as provisioning applied them
        definitions = self.catalog.find_rights_by_code(
            right.right_code, self.tenant_repo.active_capability_ids(tenant_id)
        )
        if not definitions and right.right_definition_id:
            definition = self.catalog.get_right(right.right_definition_id)
            definitions = [definition] if definition else []
        if not definitions:
            definitions = self.catalog.find_rights_by_code(right.right_code)[:1]
        if not definitions:
            raise NotFoundError(f"No catalog definition found for right '{right.right_code}'")

        role_keys = []
        for definition in definitions:
            for template in self.catalog.get_templates_for_right(definition.id):
                if template.role_key not in role_keys:
                    role_keys.append(template.role_key)
        if right.is_required and self.admin_role_key not in role_keys:
            role_keys.append(self.admin_role_key)

        warnings = []
        role_ids = []
        for key in role_keys:
            role = self.tenant_repo.find_role_by_key(tenant_id, key)
            if role is None:
                message = f"Role '{key}' not found; skipped"
                logger.warning(message, extra={"tenant_id": tenant_id})
                warnings.append(message)
                continue
            role_ids.append(role.id)

        result = self.update_right_grantees(tenant_id, right.id, role_ids)
        result["warnings"] = warnings
        return result


def build_grantee_service(session=None) -> TenantGranteeConfigurationService:
    return TenantGranteeConfigurationService(CapabilityCatalogStore(session), TenantAccessRepository(session))
