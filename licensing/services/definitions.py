# licensing/services/definitions.py
"""
Authoring of global capability -> right definitions and their default
grantee templates.
"""
import logging
from typing import Any, Dict, List

from flask import current_app
from sqlalchemy.exc import IntegrityError

from licensing.core.constants import CONVENTIONAL_ROLE_KEYS, RightAction, RoleKey
from licensing.core.exceptions import ConflictError, NotFoundError
from licensing.core.validation import (
    CapabilityDefinitionValidator,
    FieldError,
    ValidationResult,
)
from licensing.repositories.catalog import CapabilityCatalogStore, CatalogAuthoringRepository

logger = logging.getLogger(__name__)

validator = CapabilityDefinitionValidator


class CapabilityDefinitionService:
    def __init__(self, catalog: CapabilityCatalogStore, authoring: CatalogAuthoringRepository):
        self.catalog = catalog
        self.authoring = authoring

    def _require_capability(self, capability_id):
        capability = self.catalog.get_capability(capability_id)
        if capability is None:
            raise NotFoundError(f"Capability '{capability_id}' not found")
        return capability

    def _require_right(self, right_id):
        right = self.catalog.get_right(right_id)
        if right is None:
            raise NotFoundError(f"Right '{right_id}' not found")
        return right

    @staticmethod
    def _validate_templates(templates: List[Dict[str, Any]], field_prefix: str) -> ValidationResult:
        """Role keys must be well-formed, conventional and unique per right"""
        keys = [template.get("role_key") for template in templates]
        result = validator.validate_role_key_batch(keys, f"{field_prefix}.role_key")
        for key in keys:
            if isinstance(key, str) and validator.validate_role_key(key).valid and key not in CONVENTIONAL_ROLE_KEYS:
                result.errors.append(
                    FieldError(
                        f"{field_prefix}.role_key",
                        "unknown_role",
                        f"Role key '{key}' is not one of: {', '.join(sorted(CONVENTIONAL_ROLE_KEYS))}",
                        key,
                    )
                )
        return result

    def validate_rights(self, capability_id: str, rights: List[Dict[str, Any]]) -> ValidationResult:
        """Everything that can be checked before the first write"""
        result = validator.validate_capability_right_set(rights)
        for index, right in enumerate(rights or []):
            result.merge(
                self._validate_templates(right.get("grantee_templates") or [], f"rights[{index}].grantee_templates")
            )
        return result

    def create_capability_rights(self, capability_id: str, rights: List[Dict[str, Any]]):
        """
        Create rights and their grantee templates for a capability.

        Each right is its own unit: the right is committed, then its templates
        are inserted; if a template insert fails the right is deleted again
        (compensating rollback) and the error is raised. Rights committed
        earlier in the same call are kept and listed in the error payload.
        """
        self._require_capability(capability_id)

        result = self.validate_rights(capability_id, rights)
        result.raise_for_errors("Invalid capability rights")
        for warning in result.warnings:
            logger.warning(f"Capability {capability_id}: {warning}")

        conflicts = [
            right["right_code"]
            for right in rights
            if self.authoring.right_code_exists(capability_id, right["right_code"])
        ]
        if conflicts:
            raise ConflictError(
                f"Right codes already defined for capability: {', '.join(conflicts)}",
                payload={"conflicts": conflicts},
            )

        created = []
        for right_data in rights:
            code = right_data["right_code"]
            category, action = validator.parse_right_code(code)

            try:
                right = self.authoring.create_right(
                    capability_id,
                    right_code=code,
                    display_name=right_data.get("display_name") or code,
                    description=right_data.get("description"),
                    category=category,
                    action=action,
                    is_required=bool(right_data.get("is_required", False)),
                    display_order=right_data.get("display_order", len(created)),
                )
                self.authoring.commit()
            except IntegrityError:
                self.authoring.rollback()
                raise ConflictError(
                    f"Right code '{code}' already defined for capability",
                    payload={"created": [r.right_code for r in created]},
                )

            right_id = right.id
            try:
                for template in right_data.get("grantee_templates") or []:
                    self.authoring.add_template(
                        right,
                        template["role_key"],
                        template.get("is_recommended", True),
                        template.get("reason"),
                    )
                self.authoring.commit()
            except Exception as e:
                self.authoring.rollback()
                logger.error(
                    f"Grantee template insert failed for {code}; removing right {right_id}: {e}"
                )
                self._compensate(right_id)
                if isinstance(e, IntegrityError):
                    raise ConflictError(
                        f"Duplicate grantee template for right '{code}'",
                        payload={"created": [r.right_code for r in created]},
                    )
                if hasattr(e, "payload"):
                    e.payload = dict(e.payload or {}, created=[r.right_code for r in created])
                raise

            logger.info(f"Created right {code} for capability {capability_id}")
            created.append(right)

        return created

    def _compensate(self, right_id):
        right = self.catalog.get_right(right_id)
        if right is not None:
            self.authoring.delete_right(right)
            self.authoring.commit()

    def get_capability_rights(self, capability_id: str) -> List[Dict[str, Any]]:
        self._require_capability(capability_id)
        return [
            right.to_dict(include_templates=True)
            for right in self.catalog.get_rights_for_capability(capability_id)
        ]

    def update_right(self, right_id: str, **changes):
        right = self._require_right(right_id)

        new_code = changes.pop("right_code", None)
        if new_code is not None and new_code != right.right_code:
            validator.validate_right_code(new_code).raise_for_errors("Invalid right code")
            if self.authoring.right_code_exists(right.capability_id, new_code, exclude_right_id=right.id):
                raise ConflictError(f"Right code '{new_code}' already defined for capability")
            category, action = validator.parse_right_code(new_code)
            changes.update(right_code=new_code, category=category, action=action)

        allowed = {"right_code", "display_name", "description", "category", "action", "is_required", "display_order"}
        self.authoring.update_right(right, **{k: v for k, v in changes.items() if k in allowed})
        self.authoring.commit()
        return right

    def delete_right(self, right_id: str):
        right = self._require_right(right_id)
        code = right.right_code
        self.authoring.delete_right(right)
        self.authoring.commit()
        logger.info(f"Deleted right {code} and its grantee templates")

    def replace_grantee_templates(self, right_id: str, templates: List[Dict[str, Any]]):
        right = self._require_right(right_id)
        self._validate_templates(templates, "grantee_templates").raise_for_errors("Invalid grantee templates")

        created = self.authoring.replace_templates(right, templates)
        self.authoring.commit()
        return created

    def suggest_rights_for_capability(self, capability_id: str) -> List[Dict[str, Any]]:
        """Propose a view/manage/export triple with recommended roles"""
        capability = self._require_capability(capability_id)
        surface = capability.surface_id or capability.code

        admin = current_app.config.get("ADMIN_ROLE_KEY", RoleKey.TENANT_ADMIN.value)
        operational = current_app.config.get("OPERATIONAL_ROLE_KEY", RoleKey.STAFF.value)
        operational_actions = {RightAction.VIEW.value, RightAction.CREATE.value, RightAction.EDIT.value}

        suggestions = []
        for action, display_name, description, is_required in (
            (RightAction.VIEW.value, "View", f"View {capability.name} information", True),
            (RightAction.MANAGE.value, "Manage", f"Manage {capability.name} (create, update, delete)", False),
            (RightAction.EXPORT.value, "Export", f"Export {capability.name} data", False),
        ):
            roles = [admin] + ([operational] if action in operational_actions else [])
            suggestions.append(
                {
                    "right_code": validator.suggest_right_code(surface, action),
                    "display_name": display_name,
                    "description": description,
                    "is_required": is_required,
                    "recommended_roles": roles,
                }
            )
        return suggestions

    def validate_capability_configuration(self, capability_id: str) -> Dict[str, Any]:
        self._require_capability(capability_id)
        rights = self.catalog.get_rights_for_capability(capability_id)

        result = ValidationResult()
        if rights:
            result.merge(validator.validate_capability_right_set([right.right_code for right in rights]))
        else:
            result.errors.append(FieldError("rights", "empty", "Capability has no rights defined"))

        for right in rights:
            if not right.grantee_templates:
                result.warnings.append(
                    f"Right '{right.right_code}' has no grantee templates; only the administrative role will receive it if required"
                )

        return result.to_dict()


def build_definition_service(session=None) -> CapabilityDefinitionService:
    return CapabilityDefinitionService(
        CapabilityCatalogStore(session), CatalogAuthoringRepository(session)
    )
