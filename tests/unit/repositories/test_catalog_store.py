# tests/unit/repositories/test_catalog_store.py
from licensing.repositories.catalog import CapabilityCatalogStore, CatalogAuthoringRepository


def test_entitlement_set_unions_direct_and_bundled_capabilities(app, make_capability, make_bundle, make_plan):
    members = make_capability("members", {"members:view": ["tenant_admin"]})
    events = make_capability("events", {"events:view": ["tenant_admin"]})
    donations = make_capability("donations", {"donations:view": ["tenant_admin"]})

    bundle = make_bundle("engagement", [events, donations])
    plan = make_plan("growth", [members, events], bundles=[bundle])

    store = CapabilityCatalogStore()
    assert store.resolve_entitlement_set(plan.id) == frozenset({members.id, events.id, donations.id})


def test_inactive_bundle_contributes_nothing(app, make_capability, make_bundle, make_plan):
    members = make_capability("members", {"members:view": ["tenant_admin"]})
    events = make_capability("events", {"events:view": ["tenant_admin"]})
    bundle = make_bundle("retired", [events], is_active=False)
    plan = make_plan("legacy", [members], bundles=[bundle])

    assert CapabilityCatalogStore().resolve_entitlement_set(plan.id) == frozenset({members.id})


def test_no_plan_resolves_to_empty_set(app):
    assert CapabilityCatalogStore().resolve_entitlement_set(None) == frozenset()


def test_right_codes_for_capabilities(app, make_capability):
    members = make_capability("members", {"members:view": [], "reports:view": []})
    events = make_capability("events", {"events:view": [], "reports:view": []})

    store = CapabilityCatalogStore()
    assert store.right_codes_for_capabilities([members.id, events.id]) == {
        "members:view",
        "events:view",
        "reports:view",
    }
    assert store.right_codes_for_capabilities([]) == set()
    assert len(store.find_rights_by_code("reports:view")) == 2
    assert len(store.find_rights_by_code("reports:view", [events.id])) == 1


def test_authoring_right_code_exists_honours_exclusion(app, make_capability):
    members = make_capability("members", {"members:view": ["tenant_admin"]})
    right = CapabilityCatalogStore().get_rights_for_capability(members.id)[0]

    repo = CatalogAuthoringRepository()
    assert repo.right_code_exists(members.id, "members:view")
    assert not repo.right_code_exists(members.id, "members:view", exclude_right_id=right.id)
    assert not repo.right_code_exists(members.id, "members:delete")
