# tests/unit/core/test_extensions.py
from licensing.extensions import tenant_rate_limit_key


def test_plan_routes_are_limited_per_tenant(app):
    with app.test_request_context("/api/tenants/tenant-1/plan", method="POST"):
        assert tenant_rate_limit_key() == "tenant:tenant-1"


def test_other_routes_are_limited_per_address(app):
    with app.test_request_context("/api/health", environ_base={"REMOTE_ADDR": "10.0.0.7"}):
        assert tenant_rate_limit_key() == "10.0.0.7"


def test_missing_token_uses_api_error_shape(client):
    response = client.get("/api/metrics")

    assert response.status_code == 401
    assert response.json["error"] == "AuthenticationError"
