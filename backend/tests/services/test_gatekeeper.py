"""Allow-list gatekeeper tests."""

from inspector.schemas.inspector import RelationDescriptor, RelationKind
from inspector.services.catalog import CatalogCache
from inspector.services.gatekeeper import (
    AllowListGatekeeper,
    compute_allow_list,
    parse_allow_list,
)


def _tables(*names: str) -> list[RelationDescriptor]:
    return [RelationDescriptor(name=n, kind=RelationKind.TABLE) for n in names]


class TestParseAllowList:
    def test_unset_is_unconfigured(self):
        assert parse_allow_list(None) is None

    def test_blank_is_unconfigured(self):
        assert parse_allow_list("") is None
        assert parse_allow_list(" , ,") is None

    def test_entries_are_trimmed(self):
        assert parse_allow_list(" users , orders,,") == frozenset({"users", "orders"})

    def test_case_is_preserved(self):
        assert parse_allow_list("Users") == frozenset({"Users"})


class TestComputeAllowList:
    def test_intersection_keeps_discovery_order(self):
        discovered = ["users", "orders", "secret"]
        assert compute_allow_list(discovered, {"orders", "users"}) == ["users", "orders"]

    def test_unconfigured_is_everything(self):
        discovered = ["users", "orders", "secret"]
        assert compute_allow_list(discovered, None) == discovered

    def test_configured_names_not_discovered_are_dropped(self):
        assert compute_allow_list(["users"], {"users", "ghost"}) == ["users"]

    def test_result_is_subset_of_both(self):
        discovered = ["a", "b", "c", "d"]
        configured = {"b", "d", "e"}
        result = compute_allow_list(discovered, configured)
        assert set(result) <= set(discovered) & configured
        assert set(result) == {"b", "d"}

    def test_empty_configuration_grants_nothing(self):
        assert compute_allow_list(["users"], frozenset()) == []

    def test_duplicates_kept_once(self):
        assert compute_allow_list(["users", "users", "orders"], None) == ["users", "orders"]


class TestValidate:
    def test_false_before_publish(self):
        gatekeeper = AllowListGatekeeper(CatalogCache())
        assert gatekeeper.validate("users") is False

    def test_exact_membership(self):
        catalog = CatalogCache()
        catalog.publish(_tables("users", "orders"))
        gatekeeper = AllowListGatekeeper(catalog)

        assert gatekeeper.validate("users") is True
        assert gatekeeper.validate("orders") is True
        assert gatekeeper.validate("secret") is False

    def test_case_sensitive(self):
        catalog = CatalogCache()
        catalog.publish(_tables("users"))
        gatekeeper = AllowListGatekeeper(catalog)

        assert gatekeeper.validate("Users") is False
        assert gatekeeper.validate("USERS") is False

    def test_near_matches_rejected(self):
        catalog = CatalogCache()
        catalog.publish(_tables("users"))
        gatekeeper = AllowListGatekeeper(catalog)

        for name in ("users ", " users", "users;", 'users"', "users--", ""):
            assert gatekeeper.validate(name) is False

    def test_resolve_returns_catalog_entry(self):
        catalog = CatalogCache()
        catalog.publish(_tables("users"))
        descriptor = AllowListGatekeeper(catalog).resolve("users")
        assert descriptor == RelationDescriptor(name="users", kind=RelationKind.TABLE)
