from __future__ import annotations

import logging
from collections.abc import Iterator
from types import TracebackType
from typing import TYPE_CHECKING

from rtinject.exceptions import (
    RTInjectCycleDetectedError,
    RTInjectError,
    RTInjectInternalError,
    RTInjectMissingProviderError,
)
from rtinject.lock_mode import LockMode, make_lock
from rtinject.service_info import ServiceInfo

if TYPE_CHECKING:
    from typing_extensions import Self

    from rtinject.providers import Provider

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Map service identities to slots holding their providers.

    A slot is either present (a list, possibly empty) or checked out (``None``).
    Checking a slot out for the duration of an activation doubles as cycle
    detection: a re-entrant request for the same identity finds the slot empty
    and fails fast.
    """

    __slots__ = ("_lock", "_slots")

    def __init__(self, lock_mode: LockMode = LockMode.THREAD) -> None:
        self._slots: dict[ServiceInfo, list[Provider] | None] = {}
        self._lock = make_lock(lock_mode)

    def register(self, service_info: ServiceInfo, provider: Provider) -> None:
        """Append a provider to the slot of ``service_info``, creating it if absent."""
        with self._lock:
            providers = self._slots.setdefault(service_info, [])
            if providers is None:
                msg = f"cannot register a provider for {service_info.name} while it is activating"
                raise RTInjectInternalError(msg)
            providers.append(provider)

    def checkout(self, service_info: ServiceInfo) -> list[Provider]:
        """Take every provider of ``service_info`` out of its slot.

        Raises:
            RTInjectMissingProviderError: If the identity was never registered.
            RTInjectCycleDetectedError: If the slot is already checked out.

        """
        with self._lock:
            if service_info not in self._slots:
                raise RTInjectMissingProviderError(service_info)
            providers = self._slots[service_info]
            if providers is None:
                logger.debug("Providers for %s are already checked out", service_info.name)
                raise RTInjectCycleDetectedError(service_info, [service_info])
            self._slots[service_info] = None
            return providers

    def reclaim(self, service_info: ServiceInfo, providers: list[Provider]) -> None:
        """Put providers taken by ``checkout`` back into their slot.

        Raises:
            RTInjectInternalError: If the identity vanished or the slot was refilled
                while checked out.

        """
        with self._lock:
            if service_info not in self._slots:
                msg = f"activated provider for {service_info.name} is no longer registered"
                raise RTInjectInternalError(msg)
            if self._slots[service_info] is not None:
                msg = f"another provider for {service_info.name} was added during its activation"
                raise RTInjectInternalError(msg)
            self._slots[service_info] = providers

    def lease(self, service_info: ServiceInfo, *, missing_ok: bool = False) -> ProvidersLease:
        """Check providers out and return a lease that reclaims them on release.

        With ``missing_ok`` an unregistered identity yields an empty lease.
        """
        try:
            providers = self.checkout(service_info)
        except RTInjectMissingProviderError:
            if not missing_ok:
                raise
            return ProvidersLease(None, service_info, [])
        return ProvidersLease(self, service_info, providers)

    def merge(self, other: ProviderRegistry) -> None:
        """Append every provider list of ``other`` onto this registry.

        Used only during configuration, never concurrently with checkout.
        """
        for service_info, providers in other._slots.items():
            if providers is None:
                msg = f"cannot merge providers for {service_info.name} while they are activating"
                raise RTInjectInternalError(msg)
            self._slots.setdefault(service_info, []).extend(providers)

    def remove(self, service_info: ServiceInfo) -> list[Provider] | None:
        """Remove a slot and return its providers, if it was present."""
        with self._lock:
            return self._slots.pop(service_info, None)

    def provider_count(self, service_info: ServiceInfo) -> int:
        """Return the number of providers in a present slot, or 0."""
        providers = self._slots.get(service_info)
        return 0 if providers is None else len(providers)

    def providers(self) -> Iterator[Provider]:
        """Iterate every provider of every present slot."""
        for providers in self._slots.values():
            if providers is not None:
                yield from providers

    def __contains__(self, service_info: object) -> bool:
        return service_info in self._slots

    def __len__(self) -> int:
        return len(self._slots)


class ProvidersLease:
    """Checked-out providers of one identity, reclaimed exactly once on release.

    Use it as a context manager. A lease that is garbage collected without
    being released is reclaimed then.
    """

    __slots__ = ("_providers", "_registry", "_released", "service_info")

    def __init__(
        self,
        registry: ProviderRegistry | None,
        service_info: ServiceInfo,
        providers: list[Provider],
    ) -> None:
        self._registry = registry
        self.service_info = service_info
        self._providers = providers
        self._released = False

    @property
    def providers(self) -> list[Provider]:
        return self._providers

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        """Return the providers to the registry. Later calls do nothing."""
        if self._released:
            return
        self._released = True
        if self._registry is not None:
            self._registry.reclaim(self.service_info, self._providers)

    def __len__(self) -> int:
        return len(self._providers)

    def __iter__(self) -> Iterator[Provider]:
        return iter(self._providers)

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.release()

    def __del__(self) -> None:
        if getattr(self, "_released", True):
            return
        try:
            self.release()
        except RTInjectError:
            logger.exception(
                "An error occurred while releasing providers for %s",
                self.service_info.name,
            )
