# tests/unit/api/catalog/test_catalog_routes.py
import pytest

from licensing.core.constants import Permission
from licensing.extensions import db
from licensing.models import RightDefinition


@pytest.fixture
def capability(make_capability):
    return make_capability("members", surface_id="admin/community/members")


@pytest.fixture
def catalog_headers(make_headers):
    return make_headers(Permission.MANAGE_CATALOG)


RIGHTS = {
    "rights": [
        {
            "right_code": "members:view",
            "is_required": True,
            "grantee_templates": [{"role_key": "tenant_admin"}, {"role_key": "staff"}],
        },
        {"right_code": "members:delete", "grantee_templates": [{"role_key": "tenant_admin"}]},
    ]
}


def test_create_rights(client, capability, catalog_headers):
    response = client.post(
        f"/api/catalog/capabilities/{capability.id}/rights", json=RIGHTS, headers=catalog_headers
    )

    assert response.status_code == 201
    codes = [right["right_code"] for right in response.json["rights"]]
    assert codes == ["members:view", "members:delete"]
    assert len(response.json["rights"][0]["grantee_templates"]) == 2


def test_create_rights_requires_catalog_permission(client, capability, make_headers):
    response = client.post(
        f"/api/catalog/capabilities/{capability.id}/rights",
        json=RIGHTS,
        headers=make_headers(Permission.MANAGE_TENANT_ACCESS),
    )
    assert response.status_code == 403
    assert db.session.query(RightDefinition).count() == 0


def test_create_rights_requires_token(client, capability):
    response = client.post(f"/api/catalog/capabilities/{capability.id}/rights", json=RIGHTS)
    assert response.status_code == 401


def test_platform_admin_passes_every_gate(client, capability, make_headers):
    response = client.post(
        f"/api/catalog/capabilities/{capability.id}/rights",
        json=RIGHTS,
        headers=make_headers(platform_admin=True),
    )
    assert response.status_code == 201


def test_malformed_payload_is_400(client, capability, catalog_headers):
    response = client.post(
        f"/api/catalog/capabilities/{capability.id}/rights", json={"rights": "nope"}, headers=catalog_headers
    )
    assert response.status_code == 400
    assert "rights" in response.json["errors"]


def test_invalid_right_code_returns_field_errors(client, capability, catalog_headers):
    payload = {"rights": [{"right_code": "Members:View"}]}
    response = client.post(
        f"/api/catalog/capabilities/{capability.id}/rights", json=payload, headers=catalog_headers
    )

    assert response.status_code == 400
    assert response.json["error"] == "ValidationError"
    assert response.json["errors"][0]["field"] == "rights[0].right_code"


def test_duplicate_code_is_409(client, capability, catalog_headers):
    url = f"/api/catalog/capabilities/{capability.id}/rights"
    client.post(url, json=RIGHTS, headers=catalog_headers)

    response = client.post(url, json=RIGHTS, headers=catalog_headers)

    assert response.status_code == 409
    assert response.json["error"] == "ConflictError"


def test_unknown_capability_is_404(client, catalog_headers):
    response = client.post("/api/catalog/capabilities/missing/rights", json=RIGHTS, headers=catalog_headers)
    assert response.status_code == 404


def test_list_rights_and_suggestions(client, capability, catalog_headers):
    client.post(f"/api/catalog/capabilities/{capability.id}/rights", json=RIGHTS, headers=catalog_headers)

    response = client.get(f"/api/catalog/capabilities/{capability.id}/rights", headers=catalog_headers)
    assert response.status_code == 200
    assert len(response.json["rights"]) == 2

    response = client.get(f"/api/catalog/capabilities/{capability.id}/suggestions", headers=catalog_headers)
    assert response.status_code == 200
    assert response.json["suggestions"][0]["right_code"] == "members:view"

    response = client.get(f"/api/catalog/capabilities/{capability.id}/validation", headers=catalog_headers)
    assert response.status_code == 200
    assert response.json["valid"] is True


def test_validate_right_set_is_a_dry_run(client, catalog_headers):
    response = client.post(
        "/api/catalog/rights/validate",
        json={"rights": ["members:manage", "members:manage", 7]},
        headers=catalog_headers,
    )

    assert response.status_code == 200
    assert response.json["valid"] is False
    assert {e["code"] for e in response.json["errors"]} == {"duplicate", "invalid_type"}
    assert len(response.json["warnings"]) == 1


def test_update_and_delete_right(client, capability, catalog_headers):
    created = client.post(
        f"/api/catalog/capabilities/{capability.id}/rights", json=RIGHTS, headers=catalog_headers
    ).json["rights"]
    delete_id = created[1]["id"]

    response = client.put(
        f"/api/catalog/rights/{delete_id}", json={"right_code": "members:export"}, headers=catalog_headers
    )
    assert response.status_code == 200
    assert response.json["action"] == "export"

    response = client.put(
        f"/api/catalog/rights/{delete_id}/templates",
        json={"templates": [{"role_key": "tenant_admin"}, {"role_key": "staff"}]},
        headers=catalog_headers,
    )
    assert response.status_code == 200
    assert len(response.json["grantee_templates"]) == 2

    response = client.delete(f"/api/catalog/rights/{delete_id}", headers=catalog_headers)
    assert response.status_code == 204
    assert db.session.get(RightDefinition, delete_id) is None
