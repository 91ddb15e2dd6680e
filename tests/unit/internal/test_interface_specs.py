from __future__ import annotations

from abc import ABC
from typing import Protocol, runtime_checkable

import pytest

from rtinject.exceptions import (
    RTInjectInvalidProviderError,
    RTInjectInvalidRegistrationError,
    RTInjectMissingProviderError,
)
from rtinject.interfaces import InterfaceSpec, downcast, interface, is_instance_of
from rtinject.service_info import ServiceInfo


class Storage(ABC):
    pass


class DiskStorage(Storage):
    pass


class MemoryStorage(Storage):
    pass


class Unrelated:
    pass


class Closeable(Protocol):
    def close(self) -> None: ...


@runtime_checkable
class Flushable(Protocol):
    def flush(self) -> None: ...


class Buffer:
    def close(self) -> None:
        pass

    def flush(self) -> None:
        pass


STORAGE = ServiceInfo.of(Storage)


def test_interface_keeps_declaration_order() -> None:
    spec = interface(Storage, MemoryStorage, DiskStorage)

    assert spec == InterfaceSpec(Storage, (MemoryStorage, DiskStorage))
    assert spec.service_info == STORAGE


def test_interface_rejects_non_subclass() -> None:
    with pytest.raises(RTInjectInvalidRegistrationError, match="does not subclass"):
        interface(Storage, Unrelated)


def test_interface_rejects_non_class_implementation() -> None:
    with pytest.raises(RTInjectInvalidRegistrationError, match="must be a class"):
        interface(Storage, "DiskStorage")  # type: ignore[arg-type]


def test_protocol_interface_accepts_structural_implementations() -> None:
    spec = interface(Closeable, Buffer)

    assert spec.implementations == (Buffer,)


def test_accepts_the_interface_itself_and_declared_classes() -> None:
    spec = interface(Storage, DiskStorage)

    assert spec.accepts(STORAGE)
    assert spec.accepts(ServiceInfo.of(DiskStorage))
    assert not spec.accepts(ServiceInfo.of(MemoryStorage))


def test_downcast_returns_matching_instance() -> None:
    spec = interface(Storage, DiskStorage, MemoryStorage)
    storage = MemoryStorage()

    assert spec.downcast(storage) is storage


def test_downcast_without_match_is_missing_provider() -> None:
    spec = interface(Storage, DiskStorage)

    with pytest.raises(RTInjectMissingProviderError):
        spec.downcast(MemoryStorage())


def test_downcast_checks_class_keys_without_declaration() -> None:
    disk = DiskStorage()

    assert downcast(STORAGE, disk, {}) is disk
    with pytest.raises(RTInjectInvalidProviderError):
        downcast(STORAGE, Unrelated(), {})


def test_downcast_uses_declared_interface() -> None:
    spec = interface(Storage, DiskStorage)

    with pytest.raises(RTInjectMissingProviderError):
        downcast(STORAGE, MemoryStorage(), {STORAGE: spec})


def test_downcast_passes_non_class_keys_through() -> None:
    value = object()

    assert downcast(ServiceInfo.of("primary-storage"), value, {}) is value


def test_is_instance_of_skips_static_protocols() -> None:
    assert is_instance_of(Unrelated(), Closeable)


def test_is_instance_of_checks_runtime_protocols() -> None:
    assert is_instance_of(Buffer(), Flushable)
    assert not is_instance_of(Unrelated(), Flushable)
