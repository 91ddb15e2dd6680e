from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import TYPE_CHECKING, Any

from rtinject.exceptions import (
    RTInjectInvalidImplementationError,
    RTInjectInvalidRegistrationError,
)
from rtinject.injector import Injector
from rtinject.interfaces import InterfaceSpec, interface
from rtinject.lock_mode import LockMode
from rtinject.providers import BaseServiceFactory, Lifetime, Provider, provider_for
from rtinject.registry import ProviderRegistry
from rtinject.request_info import RequestInfo
from rtinject.service_info import ServiceInfo

if TYPE_CHECKING:
    from typing_extensions import Self

logger = logging.getLogger(__name__)


def _merge_interface(
    interfaces: dict[ServiceInfo, InterfaceSpec],
    spec: InterfaceSpec,
) -> None:
    existing = interfaces.get(spec.service_info)
    if existing is not None and existing != spec:
        msg = (
            f"Interface {spec.service_info.name} is already declared with different "
            "implementations."
        )
        raise RTInjectInvalidRegistrationError(msg)
    interfaces[spec.service_info] = spec


class Module:
    """A reusable group of providers, scoped arguments and interface declarations.

    Add it to a builder with ``InjectorBuilder.add_module``. Providers are
    appended to the builder's providers; parameters and interface declarations
    are merged into the builder's configuration.

    Examples:
        .. code-block:: python

            storage = Module()
            storage.provide(singleton(Database))
            storage.with_arg(Database, "sqlite:///app.db")

            builder = Injector.builder()
            builder.add_module(storage)

    """

    def __init__(self) -> None:
        self._registry = ProviderRegistry(LockMode.NONE)
        self._parameters = RequestInfo()
        self._interfaces: dict[ServiceInfo, InterfaceSpec] = {}
        self._consumed = False

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    @property
    def parameters(self) -> Mapping[str, Any]:
        return self._parameters.parameters

    @property
    def interfaces(self) -> Mapping[ServiceInfo, InterfaceSpec]:
        return self._interfaces

    def provide(
        self,
        factory: Callable[..., Any] | BaseServiceFactory | Provider,
        *,
        lifetime: Lifetime = Lifetime.TRANSIENT,
        provides: Any = None,
        dependencies: Mapping[str, Any] | None = None,
    ) -> Self:
        """Register a provider, or a class or callable wrapped for ``lifetime``."""
        self._ensure_not_consumed()
        provider = provider_for(
            factory,
            lifetime=lifetime,
            provides=provides,
            dependencies=dependencies,
        )
        self._registry.register(provider.result, provider)
        return self

    def with_arg(self, target: Any, value: Any, arg_type: Any = None) -> Self:
        """Supply a scoped argument to every activation of ``target``."""
        self._ensure_not_consumed()
        self._parameters = self._parameters.with_arg(target, value, arg_type)
        return self

    def insert_parameter(self, key: str, value: Any) -> Any | None:
        """Set a raw parameter and return the previous value, if any."""
        self._ensure_not_consumed()
        return self._parameters.insert_parameter(key, value)

    def remove_parameter(self, key: str) -> Any | None:
        """Remove a raw parameter and return its value, if any."""
        self._ensure_not_consumed()
        return self._parameters.remove_parameter(key)

    def interface(self, abstract: Any, *implementations: type[Any]) -> Self:
        """Declare the closed, ordered set of classes implementing ``abstract``."""
        self._ensure_not_consumed()
        _merge_interface(self._interfaces, interface(abstract, *implementations))
        return self

    def _consume(self) -> None:
        self._ensure_not_consumed()
        self._consumed = True

    def _ensure_not_consumed(self) -> None:
        if self._consumed:
            msg = "Module was already added to a builder. Create a new Module instead."
            raise RTInjectInvalidRegistrationError(msg)


class InjectorBuilder:
    """Accumulate providers and configuration, then build an ``Injector``.

    Args:
        lock_mode: Locking applied to registry slots and singleton caches.
            ``LockMode.THREAD`` (default) makes the injector safe to share across
            threads; ``LockMode.NONE`` drops locking for single-threaded use.

    """

    def __init__(self, lock_mode: LockMode = LockMode.THREAD) -> None:
        self._lock_mode = lock_mode
        self._registry = ProviderRegistry(lock_mode)
        self._root_info = RequestInfo()
        self._interfaces: dict[ServiceInfo, InterfaceSpec] = {}
        self._built = False

    @property
    def lock_mode(self) -> LockMode:
        return self._lock_mode

    @property
    def root_info(self) -> RequestInfo:
        """Context the built injector resolves ``get`` requests from."""
        return self._root_info

    def provide(
        self,
        factory: Callable[..., Any] | BaseServiceFactory | Provider,
        *,
        lifetime: Lifetime = Lifetime.TRANSIENT,
        provides: Any = None,
        dependencies: Mapping[str, Any] | None = None,
    ) -> Self:
        """Register a provider, or a class or callable wrapped for ``lifetime``.

        Args:
            factory: A ``Provider``, a service factory, or a class or callable
                whose signature describes its dependencies.
            lifetime: Lifetime used when ``factory`` is not already a provider.
            provides: Dependency key of the built service.
            dependencies: Explicit ``{parameter_name: request}`` mapping.

        Returns:
            The builder, for chaining.

        Raises:
            RTInjectInvalidRegistrationError: If the builder was already built or
                the factory signature is unusable.

        """
        self._ensure_not_built()
        return self.add_provider(
            provider_for(factory, lifetime=lifetime, provides=provides, dependencies=dependencies),
        )

    def add_provider(self, provider: Provider) -> Self:
        """Register ``provider`` under its result identity."""
        self._ensure_not_built()
        self._registry.register(provider.result, provider)
        return self

    def remove_providers(self, service: Any) -> list[Provider]:
        """Remove and return every provider registered for ``service``."""
        self._ensure_not_built()
        return self._registry.remove(ServiceInfo.of(service)) or []

    def add_module(self, module: Module) -> Self:
        """Merge a module's providers, parameters and interface declarations.

        Parameters set by the module replace parameters with the same key.

        Raises:
            RTInjectInvalidRegistrationError: If the module was already added or
                declares an interface differently.

        """
        self._ensure_not_built()
        module._consume()
        for spec in module.interfaces.values():
            _merge_interface(self._interfaces, spec)
        self._registry.merge(module.registry)
        for key, value in module.parameters.items():
            self._root_info.insert_parameter(key, value)
        return self

    def add_modules(self, modules: Iterable[Module]) -> Self:
        for module in modules:
            self.add_module(module)
        return self

    def with_arg(self, target: Any, value: Any, arg_type: Any = None) -> Self:
        """Supply a scoped argument to every activation of ``target``.

        Examples:
            .. code-block:: python

                builder.provide(transient(Greeter))
                builder.with_arg(Greeter, "hello")

        """
        self._ensure_not_built()
        self._root_info = self._root_info.with_arg(target, value, arg_type)
        return self

    def interface(self, abstract: Any, *implementations: type[Any]) -> Self:
        """Declare the closed, ordered set of classes implementing ``abstract``.

        Raises:
            RTInjectInvalidRegistrationError: If an implementation does not
                subclass ``abstract`` or the interface is already declared
                differently.

        """
        self._ensure_not_built()
        _merge_interface(self._interfaces, interface(abstract, *implementations))
        return self

    def build(self) -> Injector:
        """Validate interface bindings, apply the lock mode and build the injector.

        Raises:
            RTInjectInvalidImplementationError: If a provider is bound to an
                interface that does not declare its implementation.
            RTInjectInvalidRegistrationError: If the builder was already built.

        """
        self._ensure_not_built()
        providers = list(self._registry.providers())
        for provider in providers:
            self._validate_interface_binding(provider)
        for provider in providers:
            provider.bind(self._lock_mode)
        self._built = True

        logger.debug(
            "Built injector with %d services, %d providers and %d interfaces (lock mode %s)",
            len(self._registry),
            len(providers),
            len(self._interfaces),
            self._lock_mode.value,
        )
        return Injector(
            self._registry,
            self._root_info,
            self._interfaces,
            self._lock_mode,
        )

    def _validate_interface_binding(self, provider: Provider) -> None:
        result = provider.result
        implementation = provider.implementation
        if result == implementation:
            return
        spec = self._interfaces.get(result)
        if spec is None or not spec.accepts(implementation):
            raise RTInjectInvalidImplementationError(result, implementation)

    def _ensure_not_built(self) -> None:
        if self._built:
            msg = "InjectorBuilder was already built. Create a new builder instead."
            raise RTInjectInvalidRegistrationError(msg)
