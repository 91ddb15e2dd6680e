from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from rtinject.exceptions import (
    RTInjectInvalidProviderError,
    RTInjectInvalidRegistrationError,
    RTInjectMissingProviderError,
)
from rtinject.service_info import ServiceInfo


@dataclass(frozen=True, slots=True)
class InterfaceSpec:
    """A closed, ordered list of classes that may satisfy an interface request.

    The list is supplied once at configuration time. The engine never scans
    for implementers; it only checks produced instances against this list.
    """

    interface: Any
    """The abstract dependency key (usually an ABC or a ``Protocol``)."""
    implementations: tuple[type[Any], ...]
    """Concrete classes in the order they are tried while downcasting."""

    @property
    def service_info(self) -> ServiceInfo:
        return ServiceInfo.of(self.interface)

    def accepts(self, implementation: ServiceInfo) -> bool:
        """Return whether a provider building ``implementation`` may bind to this interface."""
        return implementation.key is self.interface or implementation.key in self.implementations

    def downcast(self, instance: Any) -> Any:
        """Return ``instance`` when it matches a declared implementation.

        Raises:
            RTInjectMissingProviderError: If no declared class matches.

        """
        for implementation in self.implementations:
            if isinstance(instance, implementation):
                return instance
        raise RTInjectMissingProviderError(self.service_info)


def interface(abstract: Any, *implementations: type[Any]) -> InterfaceSpec:
    """Declare the closed set of classes implementing ``abstract``.

    Args:
        abstract: The interface dependency key.
        *implementations: Concrete classes, in downcast order.

    Returns:
        The interface declaration, ready for ``InjectorBuilder.interface`` or
        ``Module.interface``.

    Raises:
        RTInjectInvalidRegistrationError: If an implementation is not a class
            or does not subclass a nominal (non-protocol) interface class.

    """
    for implementation in implementations:
        if not isinstance(implementation, type):
            msg = f"Interface implementation {implementation!r} must be a class."
            raise RTInjectInvalidRegistrationError(msg)
        if _is_nominal_class(abstract) and not issubclass(implementation, abstract):
            msg = (
                f"{ServiceInfo.of(implementation).name} does not subclass "
                f"{ServiceInfo.of(abstract).name}."
            )
            raise RTInjectInvalidRegistrationError(msg)
    return InterfaceSpec(interface=abstract, implementations=tuple(implementations))


def downcast(
    service_info: ServiceInfo,
    instance: Any,
    interfaces: Mapping[ServiceInfo, InterfaceSpec],
) -> Any:
    """Check a provided instance against the requested identity.

    Declared interfaces are matched against their implementer list. Other
    class keys require an instance of the class. Non-class keys pass through.
    """
    spec = interfaces.get(service_info)
    if spec is not None:
        return spec.downcast(instance)
    if not is_instance_of(instance, service_info.key):
        raise RTInjectInvalidProviderError(service_info)
    return instance


def is_instance_of(instance: Any, key: Any) -> bool:
    """Return whether ``instance`` satisfies a class key, when that can be checked."""
    if not isinstance(key, type):
        return True
    if getattr(key, "_is_protocol", False) and not getattr(key, "_is_runtime_protocol", False):
        return True
    return isinstance(instance, key)


def _is_nominal_class(candidate: Any) -> bool:
    return isinstance(candidate, type) and not getattr(candidate, "_is_protocol", False)
