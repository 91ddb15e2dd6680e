from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, TypeVar, overload

from rtinject.exceptions import RTInjectConditionsNotMetError, RTInjectInternalError
from rtinject.lock_mode import LockMode
from rtinject.request_info import RequestInfo
from rtinject.requests import parse_request

if TYPE_CHECKING:
    from rtinject.builder import InjectorBuilder
    from rtinject.interfaces import InterfaceSpec
    from rtinject.registry import ProviderRegistry
    from rtinject.service_info import ServiceInfo

T = TypeVar("T")


class Injector:
    """Resolve requests against a frozen provider registry.

    Build one with ``Injector.builder()``. Requests are dependency keys or
    request annotations such as ``Maybe[T]``, ``Owned[T]``, ``All[T]``,
    ``Services[T]``, ``Factory[T]``, ``Arg[T]`` and ``tuple[A, B]``. Clones
    share the registry, the root context and the interface declarations.

    Examples:
        .. code-block:: python

            builder = Injector.builder()
            builder.provide(singleton(Database))
            builder.provide(transient(UserRepository))
            injector = builder.build()

            repository = injector.get(UserRepository)

    """

    __slots__ = ("_interfaces", "_lock_mode", "_registry", "_root_info")

    def __init__(
        self,
        registry: ProviderRegistry,
        root_info: RequestInfo | None = None,
        interfaces: Mapping[ServiceInfo, InterfaceSpec] | None = None,
        lock_mode: LockMode = LockMode.THREAD,
    ) -> None:
        self._registry = registry
        self._root_info = RequestInfo() if root_info is None else root_info
        self._interfaces: Mapping[ServiceInfo, InterfaceSpec] = MappingProxyType(
            dict(interfaces or {}),
        )
        self._lock_mode = lock_mode

    @staticmethod
    def builder(lock_mode: LockMode = LockMode.THREAD) -> InjectorBuilder:
        """Return a new ``InjectorBuilder``."""
        from rtinject.builder import InjectorBuilder

        return InjectorBuilder(lock_mode=lock_mode)

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    @property
    def root_info(self) -> RequestInfo:
        """Context every ``get`` starts from, carrying configured scoped arguments."""
        return self._root_info

    @property
    def interfaces(self) -> Mapping[ServiceInfo, InterfaceSpec]:
        return self._interfaces

    @property
    def lock_mode(self) -> LockMode:
        return self._lock_mode

    @overload
    def get(self, request: type[T]) -> T: ...

    @overload
    def get(self, request: Any) -> Any: ...

    def get(self, request: Any) -> Any:
        """Resolve a request from the root context.

        Args:
            request: Dependency key or request annotation.

        Returns:
            The resolved value. Its shape depends on the request.

        Raises:
            RTInjectMissingProviderError: If a required service has no provider.
            RTInjectMultipleProvidersError: If a single-value request matches
                several providers.
            RTInjectCycleDetectedError: If a service depends on itself.
            RTInjectError: For every other resolution failure.

        """
        return self.get_with(request, self._root_info)

    @overload
    def get_with(self, request: type[T], info: RequestInfo) -> T: ...

    @overload
    def get_with(self, request: Any, info: RequestInfo) -> Any: ...

    def get_with(self, request: Any, info: RequestInfo) -> Any:
        """Resolve a request from a given context.

        Service factories use this to resolve their dependencies with the
        service path and scoped parameters of the current activation.
        """
        plan = parse_request(request)
        try:
            return plan.resolve(self, info)
        except RTInjectConditionsNotMetError as error:
            msg = f"conditions-not-met for {error.service_info.name} escaped provider iteration"
            raise RTInjectInternalError(msg) from error

    def clone(self) -> Injector:
        """Return a handle sharing this injector's registry and configuration."""
        return Injector(self._registry, self._root_info, self._interfaces, self._lock_mode)

    def __copy__(self) -> Injector:
        return self.clone()

    def __repr__(self) -> str:
        return f"Injector(services={len(self._registry)}, lock_mode={self._lock_mode.value})"
