# licensing/api/tenant_access/routes.py
from flask import Blueprint, jsonify, request

from licensing.core.constants import Permission
from licensing.core.monitoring import capture_error
from licensing.core.permissions import require_permission
from licensing.services.grantees import build_grantee_service
from licensing.services.provisioning import build_provisioning_engine
from .schemas import GranteesUpdateSchema

tenant_access_bp = Blueprint("tenant_access", __name__)
grantees_schema = GranteesUpdateSchema()


@tenant_access_bp.route("/<tenant_id>/rights", methods=["GET"])
@require_permission(Permission.MANAGE_TENANT_ACCESS, tenant_scoped=True)
def list_tenant_rights(tenant_id):
    """Tenant rights with the roles holding them, optionally for one capability"""
    rights = build_grantee_service().get_tenant_rights_with_grantees(
        tenant_id, request.args.get("capability_id")
    )
    return jsonify({"tenant_id": tenant_id, "rights": rights})


@tenant_access_bp.route("/<tenant_id>/rights/<right_id>/grantees", methods=["PUT"])
@capture_error
@require_permission(Permission.MANAGE_TENANT_ACCESS, tenant_scoped=True)
def update_grantees(tenant_id, right_id):
    data = grantees_schema.load(request.get_json())
    return jsonify(build_grantee_service().update_right_grantees(tenant_id, right_id, data["role_ids"]))


@tenant_access_bp.route("/<tenant_id>/rights/<right_id>/reset", methods=["POST"])
@capture_error
@require_permission(Permission.MANAGE_TENANT_ACCESS, tenant_scoped=True)
def reset_grantees(tenant_id, right_id):
    return jsonify(build_grantee_service().reset_to_defaults(tenant_id, right_id))


@tenant_access_bp.route("/<tenant_id>/provisioning", methods=["GET"])
@require_permission(Permission.MANAGE_TENANT_ACCESS, tenant_scoped=True)
def provisioning_status(tenant_id):
    status = build_provisioning_engine().get_provisioning_status(tenant_id)
    return jsonify({"tenant_id": tenant_id, "capabilities": status})
