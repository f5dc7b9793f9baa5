# conftest.py
from uuid import uuid4

import pytest
from flask_jwt_extended import create_access_token

from licensing import create_app
from licensing.extensions import db
from licensing.core.metrics import metrics
from licensing.models import (
    Bundle,
    BundleItem,
    CapabilityDefinition,
    GranteeTemplate,
    Plan,
    PlanBundle,
    PlanEntitlement,
    RightDefinition,
    Role,
    Tenant,
)


@pytest.fixture
def app():
    """Fresh app and in-memory database per test"""
    app = create_app("testing")

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture(autouse=True)
def reset_metrics():
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def make_tenant(app):
    """Create a tenant with the given conventional roles (all of them by default)"""

    def _make_tenant(subdomain=None, role_keys=None):
        subdomain = subdomain or f"tenant-{uuid4().hex[:8]}"
        tenant = Tenant(name=subdomain.title(), subdomain=subdomain, is_active=True)
        db.session.add(tenant)
        db.session.commit()
        Role.create_default_roles(tenant.id, keys=role_keys)
        return tenant

    return _make_tenant


@pytest.fixture
def test_tenant(make_tenant):
    return make_tenant("test-business")


@pytest.fixture
def roles(test_tenant):
    """Roles of the test tenant keyed by role key"""
    return {role.key: role for role in db.session.query(Role).filter_by(tenant_id=test_tenant.id)}


@pytest.fixture
def make_capability(app):
    """
    Seed a capability straight into the catalog.

    ``rights`` maps a right code to its template role keys; a code prefixed
    with ``!`` is a required right.
    """

    def _make_capability(code, rights=None, surface_id=None, name=None):
        capability = CapabilityDefinition(
            code=code, name=name or code.replace("_", " ").title(), surface_id=surface_id
        )
        db.session.add(capability)
        db.session.flush()

        for order, (right_code, role_keys) in enumerate((rights or {}).items()):
            is_required = right_code.startswith("!")
            right_code = right_code.lstrip("!")
            category, action = right_code.split(":", 1)
            right = RightDefinition(
                capability_id=capability.id,
                right_code=right_code,
                display_name=right_code,
                category=category,
                action=action,
                is_required=is_required,
                display_order=order,
            )
            right.grantee_templates = [GranteeTemplate(role_key=key) for key in role_keys]
            db.session.add(right)

        db.session.commit()
        return capability

    return _make_capability


@pytest.fixture
def make_plan(app):
    def _make_plan(code, capabilities=(), bundles=()):
        plan = Plan(code=code, name=code.title())
        db.session.add(plan)
        db.session.flush()
        for capability in capabilities:
            db.session.add(PlanEntitlement(plan_id=plan.id, capability_id=capability.id))
        for bundle in bundles:
            db.session.add(PlanBundle(plan_id=plan.id, bundle_id=bundle.id))
        db.session.commit()
        return plan

    return _make_plan


@pytest.fixture
def make_bundle(app):
    def _make_bundle(code, capabilities=(), is_active=True):
        bundle = Bundle(code=code, name=code.title(), is_active=is_active)
        db.session.add(bundle)
        db.session.flush()
        for capability in capabilities:
            db.session.add(BundleItem(bundle_id=bundle.id, capability_id=capability.id))
        db.session.commit()
        return bundle

    return _make_bundle


@pytest.fixture
def members_capability(make_capability):
    """members:view (required; admin, staff, volunteer) and members:delete (admin only)"""
    return make_capability(
        "members",
        {
            "!members:view": ["tenant_admin", "staff", "volunteer"],
            "members:delete": ["tenant_admin"],
        },
        surface_id="admin/community/members",
    )


@pytest.fixture
def starter_plan(make_plan, members_capability):
    return make_plan("starter", [members_capability])


@pytest.fixture
def make_headers(app):
    """Bearer headers for a token carrying the given permissions"""

    def _make_headers(*permissions, tenant_id=None, platform_admin=False, identity="user-1"):
        claims = {
            "permissions": [getattr(p, "value", p) for p in permissions],
            "platform_admin": platform_admin,
        }
        if tenant_id:
            claims["tenant_id"] = tenant_id
        token = create_access_token(identity=identity, additional_claims=claims)
        return {"Authorization": f"Bearer {token}"}

    return _make_headers
