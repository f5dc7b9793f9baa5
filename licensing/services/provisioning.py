# licensing/services/provisioning.py
"""
Materialization of catalog rights into tenant rights and grantee assignments.

Nothing here commits. Each capability in a batch runs in its own savepoint so
that one failing capability is rolled back on its own and reported in the
result while the rest of the batch carries on; the caller owns the outer
transaction.
"""
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from licensing.core.constants import PLAN_SOURCE_PREFIX, GrantSource, RoleKey
from licensing.core.database import utcnow
from licensing.core.exceptions import (
    AtomicityFailure,
    NotFoundError,
    TenantNotFoundError,
    ValidationError,
)
from licensing.core.metrics import metrics
from licensing.core.monitoring import capture_provisioning_failure
from licensing.models import TenantRight
from licensing.repositories.catalog import CapabilityCatalogStore
from licensing.repositories.tenant import TenantAccessRepository

logger = logging.getLogger(__name__)


@dataclass
class CapabilityResult:
    capability_id: str
    rights_created: int = 0
    rights_reactivated: int = 0
    rights_deactivated: int = 0
    assignments_created: int = 0
    assignments_removed: int = 0
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CapabilityFailure:
    capability_id: str
    operation: str
    error: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PlanChangeResult:
    tenant_id: str
    old_plan_id: Optional[str]
    new_plan_id: Optional[str]
    added: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    kept: List[str] = field(default_factory=list)
    provisioned: List[CapabilityResult] = field(default_factory=list)
    deprovisioned: List[CapabilityResult] = field(default_factory=list)
    failures: List[CapabilityFailure] = field(default_factory=list)
    deactivated_rights: List[str] = field(default_factory=list)
    history_id: Optional[str] = None
    changed: bool = True

    @property
    def succeeded(self) -> bool:
        return not self.failures

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["succeeded"] = self.succeeded
        return data


def plan_source_reference(plan_id: str) -> str:
    return f"{PLAN_SOURCE_PREFIX}{plan_id}"


class TenantProvisioningEngine:
    def __init__(self, catalog: CapabilityCatalogStore, tenant_repo: TenantAccessRepository):
        self.catalog = catalog
        self.tenant_repo = tenant_repo

    @property
    def admin_role_key(self) -> str:
        return current_app.config.get("ADMIN_ROLE_KEY", RoleKey.TENANT_ADMIN.value)

    def _require_tenant(self, tenant_id):
        tenant = self.tenant_repo.get_tenant(tenant_id)
        if tenant is None:
            raise TenantNotFoundError(f"Tenant '{tenant_id}' not found")
        return tenant

    def _require_capability(self, capability_id):
        capability = self.catalog.get_capability(capability_id)
        if capability is None:
            raise NotFoundError(f"Capability '{capability_id}' not found")
        return capability

    def provision_capability(self, tenant_id: str, capability_id: str) -> CapabilityResult:
        """
        Ensure the tenant holds every right the capability declares, assigned
        to the roles named by each right's grantee templates.

        Safe to repeat: existing tenant rights and assignments are left alone,
        and a duplicate insert from a concurrent call resolves to the existing row.
        """
        self._require_tenant(tenant_id)
        capability = self._require_capability(capability_id)
        result = CapabilityResult(capability_id=capability_id)
        log_extra = {"tenant_id": tenant_id}

        definitions = self.catalog.get_rights_for_capability(capability_id)
        if not definitions:
            logger.info(f"Capability {capability.code} declares no rights; nothing to provision", extra=log_extra)
            return result

        roles = {}

        def resolve_role(key):
            if key not in roles:
                roles[key] = self.tenant_repo.find_role_by_key(tenant_id, key)
            return roles[key]

        for definition in definitions:
            tenant_right, created = self.tenant_repo.ensure_tenant_right(tenant_id, definition)
            if created:
                result.rights_created += 1
            elif not tenant_right.is_active:
                self.tenant_repo.reactivate_tenant_right(tenant_right)
                self.tenant_repo.set_right_required(tenant_right, definition.is_required)
                result.rights_reactivated += 1
            elif definition.is_required and not tenant_right.is_required:
                # Another capability materialized this code as optional
                self.tenant_repo.set_right_required(tenant_right, True)

            role_keys = [template.role_key for template in self.catalog.get_templates_for_right(definition.id)]
            if not role_keys:
                message = f"Right {definition.right_code} has no grantee templates"
                logger.warning(message, extra=log_extra)
                result.warnings.append(message)
            if definition.is_required and self.admin_role_key not in role_keys:
                role_keys.append(self.admin_role_key)

            for key in role_keys:
                role = resolve_role(key)
                if role is None:
                    message = f"Role '{key}' not found; skipping assignment of {definition.right_code}"
                    logger.warning(message, extra=log_extra)
                    result.warnings.append(message)
                    continue

                _, assigned = self.tenant_repo.ensure_assignment(tenant_id, role.id, tenant_right.id)
                if assigned:
                    result.assignments_created += 1

        logger.info(
            f"Provisioned {capability.code}: {result.rights_created} rights created, "
            f"{result.rights_reactivated} reactivated, {result.assignments_created} assignments created",
            extra=log_extra,
        )
        return result

    def deprovision_capability(
        self,
        tenant_id: str,
        capability_id: str,
        retained_capability_ids: Optional[Iterable[str]] = None,
    ) -> CapabilityResult:
        """
        Revoke the tenant rights a capability brought in.

        A right code that any retained capability also declares stays active
        with its assignments. Revoked rights lose their assignments and are
        marked inactive, never deleted.
        """
        self._require_tenant(tenant_id)
        result = CapabilityResult(capability_id=capability_id)

        if retained_capability_ids is None:
            retained = self.tenant_repo.active_capability_ids(tenant_id, exclude=[capability_id])
        else:
            retained = set(retained_capability_ids) - {capability_id}

        codes = self.catalog.right_codes_for_capabilities([capability_id])
        retained_codes = self.catalog.right_codes_for_capabilities(retained)
        retained_required = self.catalog.right_codes_for_capabilities(retained, required_only=True)

        for tenant_right in self.tenant_repo.list_tenant_rights(tenant_id, codes, active_only=True):
            if tenant_right.right_code in retained_codes:
                logger.debug(
                    f"Keeping {tenant_right.right_code}; still declared by a retained capability",
                    extra={"tenant_id": tenant_id},
                )
                self._refresh_required(tenant_right, retained_required)
                continue

            result.assignments_removed += self.tenant_repo.remove_assignments(tenant_id, tenant_right.id)
            self.tenant_repo.deactivate_tenant_right(tenant_right)
            result.rights_deactivated += 1

        logger.info(
            f"Deprovisioned capability {capability_id}: {result.rights_deactivated} rights deactivated",
            extra={"tenant_id": tenant_id},
        )
        return result

    def _refresh_required(self, tenant_right: TenantRight, required_codes: Set[str]):
        """A kept right is required only while some granted capability requires it"""
        is_required = tenant_right.right_code in required_codes
        if tenant_right.is_required != is_required:
            self.tenant_repo.set_right_required(tenant_right, is_required)

    def _run_isolated(
        self,
        operation: str,
        tenant_id: str,
        capability_id: str,
        func: Callable[[], CapabilityResult],
        failures: List[CapabilityFailure],
    ) -> Optional[CapabilityResult]:
        """Run one capability in a savepoint; record a failure instead of raising"""
        try:
            with self.tenant_repo.session.begin_nested():
                outcome = func()
        except Exception as e:
            logger.error(
                f"{operation} failed for capability {capability_id}: {e}",
                extra={"tenant_id": tenant_id},
                exc_info=True,
            )
            capture_provisioning_failure(e, tenant_id, capability_id, operation)
            metrics.increment(f"{operation}_failures")
            failures.append(CapabilityFailure(capability_id, operation, str(e)))
            return None

        metrics.increment(f"{operation}_succeeded")
        return outcome

    def apply_plan_change(
        self,
        tenant_id: str,
        old_plan_id: Optional[str],
        new_plan_id: Optional[str],
        actor_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> PlanChangeResult:
        """
        Move a tenant from one plan to another.

        Only the delta is touched: capabilities in both plans keep their rights
        and assignments. Per-capability failures are collected in the result.
        The plan pointer and the history row are written together or not at
        all; if that write fails ``AtomicityFailure`` is raised and the caller
        must roll back.
        """
        tenant = self._require_tenant(tenant_id)
        for plan_id in (old_plan_id, new_plan_id):
            if plan_id and self.catalog.get_plan(plan_id) is None:
                raise NotFoundError(f"Plan '{plan_id}' not found")

        old_set = self.catalog.resolve_entitlement_set(old_plan_id)
        new_set = self.catalog.resolve_entitlement_set(new_plan_id)

        result = PlanChangeResult(
            tenant_id=tenant_id,
            old_plan_id=old_plan_id,
            new_plan_id=new_plan_id,
            added=sorted(new_set - old_set),
            removed=sorted(old_set - new_set),
            kept=sorted(old_set & new_set),
        )
        log_extra = {"tenant_id": tenant_id}
        logger.info(
            f"Plan change {old_plan_id} -> {new_plan_id}: "
            f"+{len(result.added)} -{len(result.removed)} ={len(result.kept)}",
            extra=log_extra,
        )

        if old_plan_id and old_plan_id != new_plan_id:
            self.tenant_repo.delete_grants(
                tenant_id, GrantSource.DIRECT.value, plan_source_reference(old_plan_id)
            )
        if new_plan_id:
            for capability_id in sorted(new_set):
                self.tenant_repo.ensure_grant(
                    tenant_id, capability_id, GrantSource.DIRECT.value, plan_source_reference(new_plan_id)
                )

        # Trial and comp grants outlive the plan
        retained = set(new_set) | self.tenant_repo.active_capability_ids(tenant_id)

        for capability_id in result.removed:
            if capability_id in retained:
                logger.info(f"Capability {capability_id} still granted outside the plan; keeping", extra=log_extra)
                continue
            outcome = self._run_isolated(
                "deprovision",
                tenant_id,
                capability_id,
                lambda cid=capability_id: self.deprovision_capability(tenant_id, cid, retained),
                result.failures,
            )
            if outcome is not None:
                result.deprovisioned.append(outcome)

        for capability_id in result.added:
            outcome = self._run_isolated(
                "provision",
                tenant_id,
                capability_id,
                lambda cid=capability_id: self.provision_capability(tenant_id, cid),
                result.failures,
            )
            if outcome is not None:
                result.provisioned.append(outcome)

        try:
            with self.tenant_repo.session.begin_nested():
                self.tenant_repo.set_current_plan(tenant, new_plan_id)
                entry = self.tenant_repo.append_history(tenant_id, old_plan_id, new_plan_id, actor_id, notes)
        except SQLAlchemyError as e:
            logger.error(f"Could not record plan change: {e}", extra=log_extra, exc_info=True)
            capture_provisioning_failure(e, tenant_id, None, "plan_pointer")
            raise AtomicityFailure(
                f"Plan pointer and assignment history for tenant '{tenant_id}' could not be written together"
            ) from e

        result.history_id = entry.id
        if result.failures:
            logger.warning(
                f"Plan change completed with {len(result.failures)} failed capabilities",
                extra=log_extra,
            )
        return result

    def grant_capability(
        self,
        tenant_id: str,
        capability_id: str,
        grant_source: str,
        expires_at: Optional[datetime] = None,
        source_reference: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Record a grant outside the plan (trial, comp) and provision the capability"""
        if grant_source not in {source.value for source in GrantSource}:
            raise ValidationError(
                "Invalid grant source",
                errors=[{"field": "grant_source", "code": "invalid_choice", "message": f"Unknown grant source '{grant_source}'"}],
            )
        self._require_tenant(tenant_id)
        self._require_capability(capability_id)

        grant, created = self.tenant_repo.ensure_grant(
            tenant_id, capability_id, grant_source, source_reference or "", expires_at
        )
        provisioned = self.provision_capability(tenant_id, capability_id)
        metrics.increment("grants_recorded")

        return {"grant": grant.to_dict(), "created": created, "provisioning": provisioned.to_dict()}

    def expire_grants(self, tenant_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Drop expired grants and revoke capabilities no longer covered by any grant"""
        self._require_tenant(tenant_id)
        now = now or utcnow()

        expired = [grant for grant in self.tenant_repo.list_grants(tenant_id) if not grant.is_active_at(now)]
        expired_ids = {grant.capability_id for grant in expired}
        for grant in expired:
            self.tenant_repo.delete_grant(grant)

        still_active = self.tenant_repo.active_capability_ids(tenant_id, now=now)
        failures: List[CapabilityFailure] = []
        deprovisioned = []
        for capability_id in sorted(expired_ids - still_active):
            outcome = self._run_isolated(
                "deprovision",
                tenant_id,
                capability_id,
                lambda cid=capability_id: self.deprovision_capability(tenant_id, cid, still_active),
                failures,
            )
            if outcome is not None:
                deprovisioned.append(outcome.to_dict())

        return {
            "expired": len(expired),
            "deprovisioned": deprovisioned,
            "failures": [failure.to_dict() for failure in failures],
        }

    def sync_tenant(self, tenant_id: str) -> PlanChangeResult:
        """
        Re-provision every granted capability and deactivate orphaned rights.

        Heals a tenant left half-migrated by an earlier partial failure.
        """
        tenant = self._require_tenant(tenant_id)
        active = self.tenant_repo.active_capability_ids(tenant_id)

        result = PlanChangeResult(
            tenant_id=tenant_id,
            old_plan_id=tenant.current_plan_id,
            new_plan_id=tenant.current_plan_id,
            kept=sorted(active),
            changed=False,
        )

        for capability_id in result.kept:
            outcome = self._run_isolated(
                "provision",
                tenant_id,
                capability_id,
                lambda cid=capability_id: self.provision_capability(tenant_id, cid),
                result.failures,
            )
            if outcome is not None:
                result.provisioned.append(outcome)

        declared = self.catalog.right_codes_for_capabilities(active)
        required = self.catalog.right_codes_for_capabilities(active, required_only=True)
        for tenant_right in self.tenant_repo.list_tenant_rights(tenant_id, active_only=True):
            if tenant_right.right_code in declared:
                self._refresh_required(tenant_right, required)
                continue
            self.tenant_repo.remove_assignments(tenant_id, tenant_right.id)
            self.tenant_repo.deactivate_tenant_right(tenant_right)
            result.deactivated_rights.append(tenant_right.right_code)

        logger.info(
            f"Synced {len(active)} capabilities, deactivated {len(result.deactivated_rights)} orphaned rights",
            extra={"tenant_id": tenant_id},
        )
        return result

    def get_provisioning_status(self, tenant_id: str) -> List[Dict[str, Any]]:
        self._require_tenant(tenant_id)
        capability_ids = self.tenant_repo.active_capability_ids(tenant_id)
        active_codes: Set[str] = {
            right.right_code for right in self.tenant_repo.list_tenant_rights(tenant_id, active_only=True)
        }

        status = []
        for capability in self.catalog.get_capabilities(capability_ids):
            declared = self.catalog.right_codes_for_capabilities([capability.id])
            present = declared & active_codes
            if present == declared:
                state = "complete"
            elif present:
                state = "partial"
            else:
                state = "missing"

            status.append(
                {
                    "capability_id": capability.id,
                    "capability_code": capability.code,
                    "declared_rights": sorted(declared),
                    "active_rights": sorted(present),
                    "missing_rights": sorted(declared - present),
                    "status": state,
                }
            )
        return status


def build_provisioning_engine(session=None) -> TenantProvisioningEngine:
    return TenantProvisioningEngine(CapabilityCatalogStore(session), TenantAccessRepository(session))
