# licensing/api/plans/routes.py
import logging

from flask import Blueprint, current_app, g, jsonify, request

from licensing.core.constants import Permission
from licensing.core.database import session_manager
from licensing.core.exceptions import ValidationError
from licensing.core.metrics import track_performance
from licensing.core.monitoring import capture_error
from licensing.core.permissions import require_permission
from licensing.extensions import limiter
from licensing.services.assignment import build_orchestrator
from licensing.services.provisioning import build_provisioning_engine
from .schemas import CapabilityGrantSchema, PlanAssignSchema

logger = logging.getLogger(__name__)
plans_bp = Blueprint("plans", __name__)
plan_assign_schema = PlanAssignSchema()
grant_schema = CapabilityGrantSchema()


def _assignment_rate_limit():
    return current_app.config.get("PLAN_ASSIGNMENT_RATE_LIMIT", "30 per minute")


@plans_bp.route("/<tenant_id>/plan", methods=["POST"])
@limiter.limit(_assignment_rate_limit)
@track_performance
@capture_error
@require_permission(Permission.ASSIGN_PLANS, tenant_scoped=True)
def assign_plan(tenant_id):
    """Move the tenant to a plan and provision the difference"""
    data = plan_assign_schema.load(request.get_json())
    result = build_orchestrator().assign_plan(tenant_id, data["plan_id"], g.actor_id, data["notes"])
    return jsonify(result.to_dict())


@plans_bp.route("/<tenant_id>/plan/preview", methods=["GET"])
@require_permission(Permission.ASSIGN_PLANS, tenant_scoped=True)
def preview_plan(tenant_id):
    plan_id = request.args.get("plan_id")
    if not plan_id:
        raise ValidationError(
            "plan_id is required",
            errors=[{"field": "plan_id", "code": "required", "message": "Missing query parameter"}],
        )
    return jsonify(build_orchestrator().preview_plan_change(tenant_id, plan_id))


@plans_bp.route("/<tenant_id>/plan/history", methods=["GET"])
@require_permission(Permission.ASSIGN_PLANS, tenant_scoped=True)
def plan_history(tenant_id):
    return jsonify({"tenant_id": tenant_id, "history": build_orchestrator().get_assignment_history(tenant_id)})


@plans_bp.route("/<tenant_id>/plan/summary", methods=["GET"])
@require_permission(Permission.ASSIGN_PLANS, tenant_scoped=True)
def plan_summary(tenant_id):
    return jsonify(build_orchestrator().get_tenant_licensing_summary(tenant_id))


@plans_bp.route("/<tenant_id>/grants", methods=["POST"])
@capture_error
@require_permission(Permission.ASSIGN_PLANS, tenant_scoped=True)
def grant_capability(tenant_id):
    data = grant_schema.load(request.get_json())
    with session_manager():
        result = build_provisioning_engine().grant_capability(
            tenant_id,
            data["capability_id"],
            data["grant_source"],
            expires_at=data["expires_at"],
            source_reference=data["source_reference"],
        )
    return jsonify(result), 201


@plans_bp.route("/<tenant_id>/sync", methods=["POST"])
@track_performance
@capture_error
@require_permission(Permission.ASSIGN_PLANS, tenant_scoped=True)
def sync_tenant(tenant_id):
    """Expire lapsed grants, then re-provision everything still granted"""
    engine = build_provisioning_engine()
    with session_manager():
        expired = engine.expire_grants(tenant_id)
        result = engine.sync_tenant(tenant_id)
    logger.info(f"Sync requested by {g.actor_id}", extra={"tenant_id": tenant_id})
    return jsonify({"expired": expired, "sync": result.to_dict()})
