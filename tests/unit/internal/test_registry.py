from __future__ import annotations

import logging

import pytest

from rtinject.exceptions import (
    RTInjectCycleDetectedError,
    RTInjectInternalError,
    RTInjectMissingProviderError,
)
from rtinject.lock_mode import LockMode
from rtinject.providers import Provider, constant, transient
from rtinject.registry import ProviderRegistry, ProvidersLease
from rtinject.service_info import ServiceInfo


class ServiceA:
    pass


class ServiceB:
    pass


SERVICE_A = ServiceInfo.of(ServiceA)
SERVICE_B = ServiceInfo.of(ServiceB)


@pytest.fixture(params=[LockMode.THREAD, LockMode.NONE])
def registry(request: pytest.FixtureRequest) -> ProviderRegistry:
    return ProviderRegistry(request.param)


def test_register_creates_slot(registry: ProviderRegistry) -> None:
    registry.register(SERVICE_A, transient(ServiceA))

    assert SERVICE_A in registry
    assert len(registry) == 1
    assert registry.provider_count(SERVICE_A) == 1


def test_register_appends_to_existing_slot(registry: ProviderRegistry) -> None:
    registry.register(SERVICE_A, transient(ServiceA))
    registry.register(SERVICE_A, constant(ServiceA()))

    assert registry.provider_count(SERVICE_A) == 2


def test_checkout_missing_identity(registry: ProviderRegistry) -> None:
    with pytest.raises(RTInjectMissingProviderError) as exc_info:
        registry.checkout(SERVICE_A)

    assert exc_info.value.service_info == SERVICE_A


def test_checkout_empties_slot_and_reclaim_restores_it(registry: ProviderRegistry) -> None:
    provider = transient(ServiceA)
    registry.register(SERVICE_A, provider)

    providers = registry.checkout(SERVICE_A)

    assert providers == [provider]
    assert registry.provider_count(SERVICE_A) == 0
    with pytest.raises(RTInjectCycleDetectedError) as exc_info:
        registry.checkout(SERVICE_A)
    assert exc_info.value.cycle == [SERVICE_A]

    registry.reclaim(SERVICE_A, providers)

    assert registry.checkout(SERVICE_A) == [provider]


def test_reclaim_onto_occupied_slot_is_internal_error(registry: ProviderRegistry) -> None:
    registry.register(SERVICE_A, transient(ServiceA))

    with pytest.raises(RTInjectInternalError):
        registry.reclaim(SERVICE_A, [])


def test_reclaim_unknown_identity_is_internal_error(registry: ProviderRegistry) -> None:
    with pytest.raises(RTInjectInternalError):
        registry.reclaim(SERVICE_A, [])


def test_register_during_checkout_is_internal_error(registry: ProviderRegistry) -> None:
    registry.register(SERVICE_A, transient(ServiceA))
    registry.checkout(SERVICE_A)

    with pytest.raises(RTInjectInternalError):
        registry.register(SERVICE_A, transient(ServiceA))


def test_merge_appends_provider_lists(registry: ProviderRegistry) -> None:
    first = transient(ServiceA)
    second = transient(ServiceA)
    other_b = transient(ServiceB)
    registry.register(SERVICE_A, first)
    other = ProviderRegistry()
    other.register(SERVICE_A, second)
    other.register(SERVICE_B, other_b)

    registry.merge(other)

    assert registry.checkout(SERVICE_A) == [first, second]
    assert registry.checkout(SERVICE_B) == [other_b]


def test_remove_returns_providers(registry: ProviderRegistry) -> None:
    provider = transient(ServiceA)
    registry.register(SERVICE_A, provider)

    assert registry.remove(SERVICE_A) == [provider]
    assert registry.remove(SERVICE_A) is None
    assert SERVICE_A not in registry


def test_providers_iterates_present_slots(registry: ProviderRegistry) -> None:
    provider_a = transient(ServiceA)
    provider_b = transient(ServiceB)
    registry.register(SERVICE_A, provider_a)
    registry.register(SERVICE_B, provider_b)
    registry.checkout(SERVICE_B)

    providers: list[Provider] = list(registry.providers())

    assert providers == [provider_a]


class TestProvidersLease:
    def test_context_manager_reclaims(self, registry: ProviderRegistry) -> None:
        registry.register(SERVICE_A, transient(ServiceA))

        with registry.lease(SERVICE_A) as lease:
            assert len(lease) == 1
            assert registry.provider_count(SERVICE_A) == 0

        assert lease.released
        assert registry.provider_count(SERVICE_A) == 1

    def test_release_is_idempotent(self, registry: ProviderRegistry) -> None:
        registry.register(SERVICE_A, transient(ServiceA))
        lease = registry.lease(SERVICE_A)

        lease.release()
        lease.release()

        assert registry.provider_count(SERVICE_A) == 1

    def test_reclaims_on_exception(self, registry: ProviderRegistry) -> None:
        registry.register(SERVICE_A, transient(ServiceA))

        with pytest.raises(RuntimeError), registry.lease(SERVICE_A):
            raise RuntimeError

        assert registry.provider_count(SERVICE_A) == 1

    def test_missing_ok_yields_empty_lease(self, registry: ProviderRegistry) -> None:
        lease = registry.lease(SERVICE_A, missing_ok=True)

        assert list(lease) == []
        lease.release()
        assert SERVICE_A not in registry

    def test_missing_without_missing_ok_raises(self, registry: ProviderRegistry) -> None:
        with pytest.raises(RTInjectMissingProviderError):
            registry.lease(SERVICE_A)

    def test_garbage_collected_lease_reclaims(self, registry: ProviderRegistry) -> None:
        registry.register(SERVICE_A, transient(ServiceA))

        lease = registry.lease(SERVICE_A)
        del lease

        assert registry.provider_count(SERVICE_A) == 1

    def test_failed_release_during_collection_is_logged(
        self,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        registry = ProviderRegistry()
        registry.register(SERVICE_A, transient(ServiceA))
        lease = registry.lease(SERVICE_A)
        registry.remove(SERVICE_A)

        with caplog.at_level(logging.ERROR, logger="rtinject.registry"):
            lease.__del__()

        assert "releasing providers" in caplog.text
        assert isinstance(lease, ProvidersLease)
