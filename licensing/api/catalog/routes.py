# licensing/api/catalog/routes.py
from flask import Blueprint, jsonify, request

from licensing.core.constants import Permission
from licensing.core.metrics import track_performance
from licensing.core.monitoring import capture_error
from licensing.core.permissions import require_permission
from licensing.core.validation import CapabilityDefinitionValidator
from licensing.services.definitions import build_definition_service
from .schemas import (
    CapabilityRightsCreateSchema,
    RightSetValidateSchema,
    RightUpdateSchema,
    TemplatesReplaceSchema,
)

catalog_bp = Blueprint("catalog", __name__)
rights_create_schema = CapabilityRightsCreateSchema()
right_set_schema = RightSetValidateSchema()
right_update_schema = RightUpdateSchema()
templates_schema = TemplatesReplaceSchema()


@catalog_bp.route("/capabilities/<capability_id>/rights", methods=["GET"])
@require_permission(Permission.MANAGE_CATALOG)
def list_capability_rights(capability_id):
    """Rights of a capability with their grantee templates"""
    rights = build_definition_service().get_capability_rights(capability_id)
    return jsonify({"capability_id": capability_id, "rights": rights})


@catalog_bp.route("/capabilities/<capability_id>/rights", methods=["POST"])
@track_performance
@capture_error
@require_permission(Permission.MANAGE_CATALOG)
def create_capability_rights(capability_id):
    data = rights_create_schema.load(request.get_json())
    created = build_definition_service().create_capability_rights(capability_id, data["rights"])
    return jsonify({"rights": [right.to_dict(include_templates=True) for right in created]}), 201


@catalog_bp.route("/capabilities/<capability_id>/suggestions", methods=["GET"])
@require_permission(Permission.MANAGE_CATALOG)
def suggest_rights(capability_id):
    suggestions = build_definition_service().suggest_rights_for_capability(capability_id)
    return jsonify({"capability_id": capability_id, "suggestions": suggestions})


@catalog_bp.route("/capabilities/<capability_id>/validation", methods=["GET"])
@require_permission(Permission.MANAGE_CATALOG)
def validate_capability(capability_id):
    return jsonify(build_definition_service().validate_capability_configuration(capability_id))


@catalog_bp.route("/rights/validate", methods=["POST"])
@require_permission(Permission.MANAGE_CATALOG)
def validate_right_set():
    """Dry-run validation of a right set; never writes"""
    data = right_set_schema.load(request.get_json())
    result = CapabilityDefinitionValidator.validate_capability_right_set(data["rights"])
    return jsonify(result.to_dict())


@catalog_bp.route("/rights/<right_id>", methods=["PUT"])
@capture_error
@require_permission(Permission.MANAGE_CATALOG)
def update_right(right_id):
    data = right_update_schema.load(request.get_json())
    right = build_definition_service().update_right(right_id, **data)
    return jsonify(right.to_dict(include_templates=True))


@catalog_bp.route("/rights/<right_id>", methods=["DELETE"])
@require_permission(Permission.MANAGE_CATALOG)
def delete_right(right_id):
    build_definition_service().delete_right(right_id)
    return "", 204


@catalog_bp.route("/rights/<right_id>/templates", methods=["PUT"])
@require_permission(Permission.MANAGE_CATALOG)
def replace_templates(right_id):
    data = templates_schema.load(request.get_json())
    templates = build_definition_service().replace_grantee_templates(right_id, data["templates"])
    return jsonify({"right_id": right_id, "grantee_templates": [t.to_dict() for t in templates]})
