# tests/unit/services/test_grantees.py
import pytest

from licensing.core.exceptions import InvariantViolation, NotFoundError, ValidationError
from licensing.extensions import db
from licensing.models import GranteeAssignment, GranteeTemplate, TenantRight
from licensing.services.grantees import build_grantee_service
from licensing.services.provisioning import build_provisioning_engine


@pytest.fixture
def service(app):
    return build_grantee_service()


@pytest.fixture
def provisioned(app, test_tenant, members_capability):
    build_provisioning_engine().provision_capability(test_tenant.id, members_capability.id)
    db.session.commit()
    return {
        right.right_code: right
        for right in db.session.query(TenantRight).filter_by(tenant_id=test_tenant.id)
    }


def holder_ids(right_id):
    return {a.role_id for a in db.session.query(GranteeAssignment).filter_by(right_id=right_id)}


def test_rights_are_annotated_with_grantees(service, test_tenant, provisioned):
    rights = service.get_tenant_rights_with_grantees(test_tenant.id)

    by_code = {right["right_code"]: right for right in rights}
    assert [g["role_key"] for g in by_code["members:view"]["grantees"]] == ["staff", "tenant_admin", "volunteer"]
    assert [g["role_key"] for g in by_code["members:delete"]["grantees"]] == ["tenant_admin"]


def test_rights_can_be_filtered_by_capability(service, test_tenant, provisioned, make_capability):
    events = make_capability("events", {"events:view": ["tenant_admin"]})
    build_provisioning_engine().provision_capability(test_tenant.id, events.id)

    rights = service.get_tenant_rights_with_grantees(test_tenant.id, events.id)
    assert [right["right_code"] for right in rights] == ["events:view"]

    with pytest.raises(NotFoundError):
        service.get_tenant_rights_with_grantees(test_tenant.id, "missing")


def test_update_right_grantees_reports_delta(service, test_tenant, roles, provisioned):
    delete_right = provisioned["members:delete"]

    result = service.update_right_grantees(
        test_tenant.id, delete_right.id, [roles["tenant_admin"].id, roles["staff"].id]
    )

    assert result["added"] == [roles["staff"].id]
    assert result["removed"] == []
    assert holder_ids(delete_right.id) == {roles["tenant_admin"].id, roles["staff"].id}


def test_optional_right_may_drop_admin(service, test_tenant, roles, provisioned):
    delete_right = provisioned["members:delete"]

    result = service.update_right_grantees(test_tenant.id, delete_right.id, [])

    assert result["removed"] == [roles["tenant_admin"].id]
    assert holder_ids(delete_right.id) == set()


def test_required_right_cannot_lose_admin(service, test_tenant, roles, provisioned):
    view_right = provisioned["members:view"]
    before = holder_ids(view_right.id)

    with pytest.raises(InvariantViolation) as exc_info:
        service.update_right_grantees(test_tenant.id, view_right.id, [roles["staff"].id, roles["member"].id])

    assert exc_info.value.status_code == 422
    assert holder_ids(view_right.id) == before


def test_roles_of_other_tenants_are_rejected(service, test_tenant, make_tenant, provisioned, roles):
    other = make_tenant("other-org")
    foreign_role = other.roles.first()

    with pytest.raises(ValidationError):
        service.update_right_grantees(
            test_tenant.id, provisioned["members:delete"].id, [roles["tenant_admin"].id, foreign_role.id]
        )


def test_rights_of_other_tenants_are_not_found(service, make_tenant, provisioned):
    other = make_tenant("other-org")

    with pytest.raises(NotFoundError):
        service.update_right_grantees(other.id, provisioned["members:delete"].id, [])


def test_inactive_right_cannot_be_edited(service, test_tenant, roles, provisioned):
    right = provisioned["members:delete"]
    right.is_active = False
    db.session.commit()

    with pytest.raises(ValidationError):
        service.update_right_grantees(test_tenant.id, right.id, [roles["tenant_admin"].id])


def test_reset_to_defaults_restores_template_roles(service, test_tenant, roles, provisioned):
    view_right = provisioned["members:view"]
    service.update_right_grantees(
        test_tenant.id, view_right.id, [roles["tenant_admin"].id, roles["member"].id]
    )

    result = service.reset_to_defaults(test_tenant.id, view_right.id)

    expected = {roles["tenant_admin"].id, roles["staff"].id, roles["volunteer"].id}
    assert holder_ids(view_right.id) == expected
    assert set(result["role_ids"]) == expected
    assert result["removed"] == [roles["member"].id]


def test_reset_follows_current_templates(service, test_tenant, roles, provisioned):
    delete_right = provisioned["members:delete"]
    db.session.add(GranteeTemplate(right_id=delete_right.right_definition_id, role_key="staff"))
    db.session.commit()

    service.reset_to_defaults(test_tenant.id, delete_right.id)

    assert holder_ids(delete_right.id) == {roles["tenant_admin"].id, roles["staff"].id}


def test_reset_falls_back_to_definition_by_code(service, test_tenant, roles, provisioned):
    delete_right = provisioned["members:delete"]
    delete_right.right_definition_id = None
    db.session.commit()

    service.reset_to_defaults(test_tenant.id, delete_right.id)

    assert holder_ids(delete_right.id) == {roles["tenant_admin"].id}


def test_required_flag_from_later_capability_protects_admin(service, test_tenant, roles, make_capability):
    engine = build_provisioning_engine()
    directory = make_capability("directory", {"members:view": ["tenant_admin", "staff"]})
    members = make_capability("members", {"!members:view": ["tenant_admin", "staff"]})
    engine.provision_capability(test_tenant.id, directory.id)
    engine.provision_capability(test_tenant.id, members.id)
    db.session.commit()
    view_right = db.session.query(TenantRight).filter_by(tenant_id=test_tenant.id, right_code="members:view").one()

    with pytest.raises(InvariantViolation):
        service.update_right_grantees(test_tenant.id, view_right.id, [roles["staff"].id])

    assert roles["tenant_admin"].id in holder_ids(view_right.id)


def test_reset_ignores_templates_of_revoked_capability(service, test_tenant, roles, make_capability, make_plan):
    engine = build_provisioning_engine()
    directory = make_capability("directory", {"members:view": ["staff", "volunteer"]})
    members = make_capability("members", {"members:view": ["staff"]})
    engine.provision_capability(test_tenant.id, directory.id)
    full = make_plan("full", [directory, members])
    lite = make_plan("lite", [members])
    engine.apply_plan_change(test_tenant.id, None, full.id)
    engine.apply_plan_change(test_tenant.id, full.id, lite.id)
    db.session.commit()
    view_right = db.session.query(TenantRight).filter_by(tenant_id=test_tenant.id, right_code="members:view").one()

    service.reset_to_defaults(test_tenant.id, view_right.id)

    assert holder_ids(view_right.id) == {roles["staff"].id}
