"""Tests for tier3_platform: default-version selection, hostnames, operations."""
from __future__ import annotations

import pytest

from modules_sdk.tier0_core.errors import (
    ConfigurationError,
    InstanceNotFoundError,
    InvalidArgumentError,
    NoDefaultVersionError,
    UnexpectedStateError,
    UnknownModuleError,
    UnsupportedOperationError,
)
from modules_sdk.tier0_core.identity import StaticIdentity
from modules_sdk.tier3_platform.backends import InMemoryBackend, ServingStatus
from modules_sdk.tier3_platform.hostname import HostnameResolver
from modules_sdk.tier3_platform.modules import ModulesService
from modules_sdk.tier3_platform.traffic import select_default_version

DOMAIN = "myapp.example.com"


# ── traffic ────────────────────────────────────────────────────────────────

class TestSelectDefaultVersion:
    def test_full_allocation_wins(self):
        assert select_default_version({"a": 0.4, "b": 1.0, "c": 0.2}) == "b"

    def test_full_allocation_wins_over_smaller_id(self):
        assert select_default_version({"z": 1.0, "a": 1.0}) == "z"

    def test_strict_maximum_wins(self):
        assert select_default_version({"v1": 0.3, "v2": 0.6, "v3": 0.1}) == "v2"

    def test_tie_resolves_to_smallest_id(self):
        assert select_default_version({"version-b": 0.5, "version-a": 0.5}) == "version-a"

    def test_tie_is_order_independent(self):
        first = select_default_version({"b": 0.3, "a": 0.3, "c": 0.3})
        second = select_default_version({"c": 0.3, "a": 0.3, "b": 0.3})
        assert first == second == "a"

    def test_zero_weights_still_select(self):
        assert select_default_version({"v2": 0.0, "v1": 0.0}) == "v1"

    def test_result_is_a_key(self):
        split = {"x": 0.2, "y": 0.25, "z": 0.2}
        assert select_default_version(split) in split

    def test_empty_raises(self):
        with pytest.raises(NoDefaultVersionError, match="module 'api'"):
            select_default_version({}, module="api")


# ── hostname ───────────────────────────────────────────────────────────────

class _ExplodingBackend:
    """Fails the test if any backend call is made."""

    def __getattr__(self, name):
        raise AssertionError(f"backend.{name} must not be called")


class TestLegacyHostname:
    @pytest.fixture
    def resolver(self, legacy_backend):
        return HostnameResolver(legacy_backend, StaticIdentity(module="default", version="v1.123"))

    def test_current_version(self, resolver):
        assert resolver.resolve() == f"v1.{DOMAIN}"

    def test_with_instance(self, resolver):
        assert resolver.resolve(instance=0) == f"0.v1.{DOMAIN}"

    def test_explicit_version_and_instance(self, resolver):
        assert resolver.resolve("default", "v2", "3") == f"3.v2.{DOMAIN}"

    def test_non_default_module_rejected(self, resolver):
        with pytest.raises(UnknownModuleError, match="Module 'module1' not found."):
            resolver.resolve("module1")

    def test_unknown_current_version(self, legacy_backend):
        resolver = HostnameResolver(legacy_backend, StaticIdentity(module="default", version=""))
        with pytest.raises(ConfigurationError):
            resolver.resolve()
        with pytest.raises(ConfigurationError):
            resolver.resolve(instance=0)

    def test_unknown_current_version_with_explicit_version(self, legacy_backend):
        resolver = HostnameResolver(legacy_backend, StaticIdentity(module="default", version=""))
        assert resolver.resolve(version="v2") == f"v2.{DOMAIN}"


class TestInstanceHostname:
    @pytest.fixture
    def resolver(self, backend, identity):
        return HostnameResolver(backend, identity)

    def test_manual_instance(self, resolver):
        assert resolver.resolve("module1", "v1", 2) == f"2.v1.module1.{DOMAIN}"

    def test_instance_as_string(self, resolver):
        assert resolver.resolve("module1", "v1", "2") == f"2.v1.module1.{DOMAIN}"

    def test_defaults_to_current_module_and_version(self, resolver):
        assert resolver.resolve(instance=4) == f"4.v1.module1.{DOMAIN}"

    def test_instance_out_of_range(self, resolver):
        with pytest.raises(InstanceNotFoundError):
            resolver.resolve("module1", "v1", 5)

    def test_instance_out_of_range_for_smaller_version(self, resolver):
        with pytest.raises(InstanceNotFoundError):
            resolver.resolve("module1", "v2", 2)

    def test_automatic_scaling_unsupported(self, resolver):
        with pytest.raises(UnsupportedOperationError, match="manually scaled"):
            resolver.resolve("module2", "v1", 0)

    def test_unknown_version_names_both(self, resolver):
        with pytest.raises(UnknownModuleError) as exc_info:
            resolver.resolve("module1", "v9", 0)
        assert exc_info.value.user_message == "Module 'module1' or version 'v9' not found."

    def test_unknown_current_version(self, backend):
        resolver = HostnameResolver(backend, StaticIdentity(module="module1", version=""))
        with pytest.raises(ConfigurationError):
            resolver.resolve(instance=0)

    def test_padded_instance_rejected(self, resolver):
        with pytest.raises(InvalidArgumentError):
            resolver.resolve("module1", "v1", " 2")

    def test_negative_instance_rejected_before_backend(self, identity):
        resolver = HostnameResolver(_ExplodingBackend(), identity)
        with pytest.raises(InvalidArgumentError):
            resolver.resolve("module1", "v1", -1)


class TestVersionHostname:
    @pytest.fixture
    def resolver(self, backend, identity):
        return HostnameResolver(backend, identity)

    def test_inferred_version_present(self, resolver):
        assert resolver.resolve() == f"v1.module1.{DOMAIN}"

    def test_inferred_version_absent_falls_back(self, resolver):
        assert resolver.resolve("other-module") == f"other-module.{DOMAIN}"

    def test_inferred_version_unknown_module(self, resolver):
        with pytest.raises(UnknownModuleError) as exc_info:
            resolver.resolve("ghost")
        assert exc_info.value.user_message == "Module 'ghost' not found."
        assert exc_info.value.detail == "Invalid module."

    def test_explicit_version_not_checked(self, resolver):
        assert resolver.resolve("module1", "v9") == f"v9.module1.{DOMAIN}"

    def test_explicit_version_on_unknown_module(self, resolver):
        assert resolver.resolve("ghost", "v1") == f"v1.ghost.{DOMAIN}"

    def test_resolution_is_repeatable(self, resolver):
        assert resolver.resolve("module1", "v1", 1) == resolver.resolve("module1", "v1", 1)
        assert resolver.resolve("other-module") == resolver.resolve("other-module")


# ── modules service ────────────────────────────────────────────────────────

class TestModulesService:
    def test_get_modules(self, service):
        assert service.get_modules() == ["default", "module1", "module2", "other-module"]

    def test_get_versions_defaults_to_current_module(self, service):
        assert service.get_versions() == ["v1", "v2"]

    def test_get_versions_for_module(self, service):
        assert service.get_versions("module2") == ["v1"]

    def test_get_versions_unknown_module(self, service):
        with pytest.raises(UnknownModuleError):
            service.get_versions("ghost")

    def test_get_versions_rejects_non_string(self, service):
        with pytest.raises(InvalidArgumentError):
            service.get_versions(5)

    def test_get_default_version(self, service, backend):
        backend.set_traffic_split("module1", {"v1": 0.3, "v2": 0.7})
        assert service.get_default_version() == "v2"

    def test_get_default_version_without_split(self, service):
        with pytest.raises(NoDefaultVersionError):
            service.get_default_version("module2")

    def test_get_num_instances(self, service):
        assert service.get_num_instances() == 5
        assert service.get_num_instances("module1", "v2") == 2

    def test_get_num_instances_automatic_scaling(self, service):
        with pytest.raises(UnsupportedOperationError):
            service.get_num_instances("module2", "v1")

    def test_get_num_instances_rejects_integer_version(self, service):
        with pytest.raises(InvalidArgumentError):
            service.get_num_instances("module1", 1)

    def test_set_num_instances(self, service):
        service.set_num_instances(8, "module1", "v2")
        assert service.get_num_instances("module1", "v2") == 8

    def test_set_num_instances_defaults(self, service):
        service.set_num_instances(3)
        assert service.get_num_instances("module1", "v1") == 3

    def test_set_num_instances_rejects_string(self, service):
        with pytest.raises(InvalidArgumentError):
            service.set_num_instances("3")

    def test_set_num_instances_invalid_version(self, service):
        with pytest.raises(UnknownModuleError):
            service.set_num_instances(3, "module1", "v9")

    def test_stop_then_start(self, service, backend):
        service.stop_version("module1", "v2")
        assert backend.get_version("module1", "v2").serving_status is ServingStatus.STOPPED
        service.start_version("module1", "v2")
        assert backend.get_version("module1", "v2").serving_status is ServingStatus.SERVING

    def test_stop_defaults_to_current(self, service, backend):
        service.stop_version()
        assert backend.get_version("module1", "v1").serving_status is ServingStatus.STOPPED

    def test_start_already_serving(self, service):
        with pytest.raises(UnexpectedStateError):
            service.start_version("module1", "v1")

    def test_start_rejects_integer_module(self, service):
        with pytest.raises(InvalidArgumentError):
            service.start_version(1, "v1")

    def test_get_hostname(self, service):
        assert service.get_hostname("module1", "v1", 0) == f"0.v1.module1.{DOMAIN}"

    def test_get_hostname_rejects_list_instance(self, service):
        with pytest.raises(InvalidArgumentError):
            service.get_hostname("module1", "v1", [0])


# ── public API (default service from config) ───────────────────────────────

class TestPublicApi:
    @pytest.fixture
    def seeded(self, monkeypatch):
        from modules_sdk.tier3_platform.backends import get_backend
        monkeypatch.setenv("GAE_SERVICE", "default")
        monkeypatch.setenv("GAE_VERSION", "v1.123")
        b = get_backend()
        assert isinstance(b, InMemoryBackend)
        b.default_hostname = DOMAIN
        b.add_version("default", "v1")
        b.set_traffic_split("default", {"v1": 1.0})
        return b

    def test_module_level_functions(self, seeded):
        import modules_sdk

        assert modules_sdk.get_modules() == ["default"]
        assert modules_sdk.get_versions() == ["v1"]
        assert modules_sdk.get_default_version() == "v1"
        assert modules_sdk.get_num_instances() == 1
        assert modules_sdk.get_hostname() == f"v1.{DOMAIN}"
        assert modules_sdk.get_hostname(instance="0") == f"0.v1.{DOMAIN}"

    def test_module_level_mutations(self, seeded):
        import modules_sdk

        modules_sdk.set_num_instances(2)
        assert modules_sdk.get_num_instances() == 2
        modules_sdk.stop_version()
        with pytest.raises(UnexpectedStateError):
            modules_sdk.stop_version()
        modules_sdk.start_version("default", "v1")

    def test_get_service_is_memoised(self):
        from modules_sdk.tier3_platform.modules import get_service
        assert get_service() is get_service()

    def test_service_accepts_injected_backend(self, legacy_backend):
        svc = ModulesService(legacy_backend, StaticIdentity(module="default", version="v2"))
        assert svc.get_hostname() == f"v2.{DOMAIN}"
