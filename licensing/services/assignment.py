# licensing/services/assignment.py
import logging
from typing import Any, Dict, List, Optional

from licensing.core.database import utcnow
from licensing.core.exceptions import AtomicityFailure, NotFoundError, TenantNotFoundError
from licensing.core.metrics import metrics
from licensing.repositories.catalog import CapabilityCatalogStore
from licensing.repositories.tenant import TenantAccessRepository
from licensing.services.provisioning import PlanChangeResult, TenantProvisioningEngine

logger = logging.getLogger(__name__)


class LicenseAssignmentOrchestrator:
    """
    Entry point for the billing flow.

    Owns the transaction: provisioning runs uncommitted, then the plan
    pointer, history row and every successfully provisioned capability are
    committed together.
    """

    def __init__(
        self,
        catalog: CapabilityCatalogStore,
        tenant_repo: TenantAccessRepository,
        engine: TenantProvisioningEngine,
    ):
        self.catalog = catalog
        self.tenant_repo = tenant_repo
        self.engine = engine

    def _require_tenant(self, tenant_id):
        tenant = self.tenant_repo.get_tenant(tenant_id)
        if tenant is None:
            raise TenantNotFoundError(f"Tenant '{tenant_id}' not found")
        return tenant

    def _require_plan(self, plan_id):
        plan = self.catalog.get_plan(plan_id)
        if plan is None:
            raise NotFoundError(f"Plan '{plan_id}' not found")
        return plan

    def assign_plan(
        self, tenant_id: str, new_plan_id: str, actor_id: Optional[str], notes: Optional[str] = None
    ) -> PlanChangeResult:
        tenant = self._require_tenant(tenant_id)
        self._require_plan(new_plan_id)
        old_plan_id = tenant.current_plan_id

        try:
            if old_plan_id == new_plan_id:
                # Retried checkout for the plan already assigned
                result = self.engine.sync_tenant(tenant_id)
            else:
                result = self.engine.apply_plan_change(tenant_id, old_plan_id, new_plan_id, actor_id, notes)
            self.tenant_repo.commit()
        except AtomicityFailure:
            self.tenant_repo.rollback()
            metrics.increment("plan_assignment_aborted")
            raise
        except Exception:
            self.tenant_repo.rollback()
            raise

        metrics.increment("plan_assignments")
        logger.info(
            f"Assigned plan {new_plan_id} (was {old_plan_id}) by {actor_id or 'system'}; "
            f"{len(result.failures)} failures",
            extra={"tenant_id": tenant_id},
        )
        return result

    def preview_plan_change(self, tenant_id: str, new_plan_id: str) -> Dict[str, Any]:
        tenant = self._require_tenant(tenant_id)
        self._require_plan(new_plan_id)

        old_set = self.catalog.resolve_entitlement_set(tenant.current_plan_id)
        new_set = self.catalog.resolve_entitlement_set(new_plan_id)

        def codes(capability_ids):
            return [capability.code for capability in self.catalog.get_capabilities(capability_ids)]

        return {
            "tenant_id": tenant_id,
            "current_plan_id": tenant.current_plan_id,
            "new_plan_id": new_plan_id,
            "added": codes(new_set - old_set),
            "removed": codes(old_set - new_set),
            "kept": codes(old_set & new_set),
        }

    def get_assignment_history(self, tenant_id: str) -> List[Dict[str, Any]]:
        self._require_tenant(tenant_id)
        return [entry.to_dict() for entry in self.tenant_repo.list_history(tenant_id)]

    def get_tenant_licensing_summary(self, tenant_id: str) -> Dict[str, Any]:
        tenant = self._require_tenant(tenant_id)
        plan = self.catalog.get_plan(tenant.current_plan_id) if tenant.current_plan_id else None

        return {
            "tenant_id": tenant_id,
            "current_plan": plan.to_dict() if plan else None,
            "grants": [grant.to_dict() for grant in self.tenant_repo.list_grants(tenant_id, active_at=utcnow())],
            "active_rights": len(self.tenant_repo.list_tenant_rights(tenant_id, active_only=True)),
        }


def build_orchestrator(session=None) -> LicenseAssignmentOrchestrator:
    catalog = CapabilityCatalogStore(session)
    tenant_repo = TenantAccessRepository(session)
    return LicenseAssignmentOrchestrator(catalog, tenant_repo, TenantProvisioningEngine(catalog, tenant_repo))
