from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from enum import Enum, auto
from typing import TYPE_CHECKING, Any

from rtinject._internal.dependencies import (
    FactoryDependenciesExtractor,
    FactoryDependency,
    FactoryReturnTypeExtractor,
)
from rtinject.exceptions import (
    RTInjectActivationFailedError,
    RTInjectConditionsNotMetError,
    RTInjectCycleDetectedError,
    RTInjectError,
    RTInjectMissingDependencyError,
    RTInjectMissingProviderError,
    RTInjectOwnedNotSupportedError,
)
from rtinject.lock_mode import LockMode, make_lock
from rtinject.request_info import RequestInfo, arg_parameter_key
from rtinject.requests import parse_request
from rtinject.service_info import ServiceInfo

if TYPE_CHECKING:
    from typing_extensions import TypeAlias

    from rtinject.injector import Injector

    Condition: TypeAlias = Callable[[Injector, RequestInfo], bool]

logger = logging.getLogger(__name__)

_UNSET: Any = object()
_DEPENDENCIES_EXTRACTOR = FactoryDependenciesExtractor()
_RETURN_TYPE_EXTRACTOR = FactoryReturnTypeExtractor()


class Lifetime(Enum):
    """Define cache behavior for factory-backed providers."""

    TRANSIENT = auto()
    """Build a new value for every request. Supports owned requests."""

    SINGLETON = auto()
    """Build once on first request and share the value for the provider lifetime."""


class BaseServiceFactory(ABC):
    """Build one service from an injector and a request context."""

    @property
    @abstractmethod
    def result(self) -> ServiceInfo:
        """Identity of the built service."""

    def invoke(self, injector: Injector, info: RequestInfo) -> Any:
        """Push this factory's result onto the request path and build the service."""
        return self.invoke_in(injector, info.with_request(self.result))

    @abstractmethod
    def invoke_in(self, injector: Injector, info: RequestInfo) -> Any:
        """Resolve dependencies against ``info`` as is and build the service."""

    def map(
        self,
        mapping: Callable[[Any], Any],
        *,
        provides: Any = None,
    ) -> MappedServiceFactory:
        """Return a factory that post-processes this factory's result.

        Args:
            mapping: Callable applied to every built value.
            provides: Dependency key of the mapped value. Defaults to the return
                annotation of ``mapping``.

        """
        return MappedServiceFactory(self, mapping, provides=provides)


class ServiceFactory(BaseServiceFactory):
    """Call a class or function with dependencies resolved from its signature.

    Each annotated parameter becomes a request. Plain types resolve to single
    services; ``Maybe``, ``Owned``, ``All``, ``Services``, ``Arg``, ``Factory``,
    tuples, ``Injector`` and ``RequestInfo`` select other request shapes.

    Args:
        func: Class or callable building the service.
        provides: Dependency key of the built service. Defaults to the class
            itself or the return annotation.
        dependencies: Explicit ``{parameter_name: request}`` mapping used
            instead of signature inference.

    Raises:
        RTInjectInvalidRegistrationError: If the result type cannot be inferred
            or an explicit dependency names an unknown parameter.
        RTInjectProviderDependencyInferenceError: If a required parameter has
            no request.

    """

    def __init__(
        self,
        func: Callable[..., Any],
        *,
        provides: Any = None,
        dependencies: Mapping[str, Any] | None = None,
    ) -> None:
        self._func = func
        self._result = ServiceInfo.of(
            provides if provides is not None else _RETURN_TYPE_EXTRACTOR.extract(func),
        )
        if dependencies is None:
            self._dependencies = tuple(_DEPENDENCIES_EXTRACTOR.extract(func))
        else:
            self._dependencies = tuple(_DEPENDENCIES_EXTRACTOR.validate_explicit(func, dependencies))

        # Malformed request annotations fail at registration.
        for dependency in self._dependencies:
            parse_request(dependency.request)

    @property
    def result(self) -> ServiceInfo:
        return self._result

    @property
    def func(self) -> Callable[..., Any]:
        return self._func

    @property
    def dependencies(self) -> tuple[FactoryDependency, ...]:
        return self._dependencies

    def invoke_in(self, injector: Injector, info: RequestInfo) -> Any:
        args, kwargs = self.resolve_dependencies(injector, info)
        return self.call(args, kwargs)

    def resolve_dependencies(
        self,
        injector: Injector,
        info: RequestInfo,
    ) -> tuple[list[Any], dict[str, Any]]:
        """Resolve every dependency against ``info`` in declaration order.

        Raises:
            RTInjectMissingDependencyError: If a dependency has no provider.

        """
        args: list[Any] = []
        kwargs: dict[str, Any] = {}
        for dependency in self._dependencies:
            try:
                value = injector.get_with(dependency.request, info)
            except RTInjectMissingProviderError as error:
                raise RTInjectMissingDependencyError(self._result, error.service_info) from error
            if dependency.positional_only:
                args.append(value)
            else:
                kwargs[dependency.name] = value
        return args, kwargs

    def call(self, args: list[Any], kwargs: dict[str, Any]) -> Any:
        return self._func(*args, **kwargs)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._result.name})"


class FallibleServiceFactory(ServiceFactory):
    """Service factory whose call may fail with one of a declared set of errors.

    A declared error raised by the callable becomes
    ``RTInjectActivationFailedError`` for the built service, with the original
    error as ``inner`` and ``__cause__``. Errors raised while resolving the
    factory's own dependencies pass through unchanged.
    """

    def __init__(
        self,
        func: Callable[..., Any],
        *,
        errors: tuple[type[BaseException], ...] = (Exception,),
        provides: Any = None,
        dependencies: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(func, provides=provides, dependencies=dependencies)
        self._errors = errors

    @property
    def errors(self) -> tuple[type[BaseException], ...]:
        return self._errors

    def call(self, args: list[Any], kwargs: dict[str, Any]) -> Any:
        try:
            return self._func(*args, **kwargs)
        except RTInjectError:
            raise
        except self._errors as error:
            raise RTInjectActivationFailedError(self._result, error) from error


class MappedServiceFactory(BaseServiceFactory):
    """Apply a mapping function to the value built by another factory."""

    def __init__(
        self,
        inner: BaseServiceFactory,
        mapping: Callable[[Any], Any],
        *,
        provides: Any = None,
    ) -> None:
        self._inner = inner
        self._mapping = mapping
        self._result = ServiceInfo.of(
            provides if provides is not None else _RETURN_TYPE_EXTRACTOR.extract(mapping),
        )

    @property
    def result(self) -> ServiceInfo:
        return self._result

    @property
    def inner(self) -> BaseServiceFactory:
        return self._inner

    def invoke_in(self, injector: Injector, info: RequestInfo) -> Any:
        # The request path carries the mapped result, not the inner one.
        return self._mapping(self._inner.invoke_in(injector, info))

    def __repr__(self) -> str:
        return f"MappedServiceFactory({self._inner!r} -> {self._result.name})"


class Provider(ABC):
    """Produce instances of one service identity.

    Providers are registered on an ``InjectorBuilder`` or ``Module`` and chained
    with ``with_interface``, ``with_condition`` and ``with_arg``.
    """

    @property
    @abstractmethod
    def result(self) -> ServiceInfo:
        """Identity this provider is registered under."""

    @property
    def implementation(self) -> ServiceInfo:
        """Concrete identity this provider builds."""
        return self.result

    @abstractmethod
    def provide(self, injector: Injector, info: RequestInfo) -> Any:
        """Return a (possibly shared) instance."""

    def provide_owned(self, injector: Injector, info: RequestInfo) -> Any:
        """Return an instance exclusively owned by the caller.

        Raises:
            RTInjectOwnedNotSupportedError: Unless the provider builds a fresh
                instance per request.

        """
        raise RTInjectOwnedNotSupportedError(self.result)

    def bind(self, lock_mode: LockMode) -> None:
        """Apply the injector lock mode. Called once by ``InjectorBuilder.build``."""

    def with_interface(self, interface: Any) -> InterfaceProvider:
        """Expose this provider under an interface declared on the builder."""
        return InterfaceProvider(self, interface)

    def with_condition(self, condition: Condition) -> ConditionalProvider:
        """Provide only when ``condition(injector, info)`` is true."""
        return ConditionalProvider(self, condition)

    def with_arg(self, value: Any, arg_type: Any = None) -> ArgProvider:
        """Supply a scoped argument to the service built by this provider.

        Args:
            value: Argument value.
            arg_type: Type requested with ``Arg[...]``. Defaults to ``type(value)``.

        """
        return ArgProvider(self, value, arg_type)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.result.name})"


class TransientProvider(Provider):
    """Invoke the factory on every request."""

    def __init__(self, factory: BaseServiceFactory) -> None:
        self._factory = factory

    @property
    def result(self) -> ServiceInfo:
        return self._factory.result

    @property
    def factory(self) -> BaseServiceFactory:
        return self._factory

    def provide(self, injector: Injector, info: RequestInfo) -> Any:
        return self._factory.invoke(injector, info)

    def provide_owned(self, injector: Injector, info: RequestInfo) -> Any:
        return self._factory.invoke(injector, info)


class SingletonProvider(Provider):
    """Invoke the factory once and share the value.

    A failing factory caches nothing, so the next request retries. A request
    that re-enters the provider from its own factory, for example through an
    interface binding of the same provider, is reported as a cycle.
    """

    def __init__(self, factory: BaseServiceFactory) -> None:
        self._factory = factory
        self._instance: Any = _UNSET
        self._lock = make_lock(LockMode.THREAD)
        self._initializing_thread: int | None = None

    @property
    def result(self) -> ServiceInfo:
        return self._factory.result

    @property
    def factory(self) -> BaseServiceFactory:
        return self._factory

    @property
    def initialized(self) -> bool:
        return self._instance is not _UNSET

    def bind(self, lock_mode: LockMode) -> None:
        self._lock = make_lock(lock_mode)

    def provide(self, injector: Injector, info: RequestInfo) -> Any:
        instance = self._instance
        if instance is not _UNSET:
            return instance
        if self._initializing_thread == threading.get_ident():
            raise RTInjectCycleDetectedError(self.result, [self.result])
        with self._lock:
            if self._instance is _UNSET:
                self._initializing_thread = threading.get_ident()
                try:
                    self._instance = self._factory.invoke(injector, info)
                finally:
                    self._initializing_thread = None
                logger.debug("Initialized singleton %s", self.result.name)
            return self._instance


class ConstantProvider(Provider):
    """Always return the same pre-built value."""

    def __init__(self, value: Any, *, provides: Any = None) -> None:
        self._value = value
        self._result = ServiceInfo.of(type(value) if provides is None else provides)

    @property
    def result(self) -> ServiceInfo:
        return self._result

    @property
    def value(self) -> Any:
        return self._value

    def provide(self, injector: Injector, info: RequestInfo) -> Any:
        return self._value


class _WrappingProvider(Provider):
    def __init__(self, inner: Provider) -> None:
        self._inner = inner

    @property
    def inner(self) -> Provider:
        return self._inner

    @property
    def result(self) -> ServiceInfo:
        return self._inner.result

    @property
    def implementation(self) -> ServiceInfo:
        return self._inner.implementation

    def bind(self, lock_mode: LockMode) -> None:
        self._inner.bind(lock_mode)


class ConditionalProvider(_WrappingProvider):
    """Provide only when a condition holds.

    When the condition is false the provider is skipped, as if it were not
    registered.
    """

    def __init__(self, inner: Provider, condition: Condition) -> None:
        super().__init__(inner)
        self._condition = condition

    def provide(self, injector: Injector, info: RequestInfo) -> Any:
        self._check(injector, info)
        return self._inner.provide(injector, info)

    def provide_owned(self, injector: Injector, info: RequestInfo) -> Any:
        self._check(injector, info)
        return self._inner.provide_owned(injector, info)

    def _check(self, injector: Injector, info: RequestInfo) -> None:
        if not self._condition(injector, info):
            raise RTInjectConditionsNotMetError(self.result)


class InterfaceProvider(_WrappingProvider):
    """Expose an inner provider under an interface identity."""

    def __init__(self, inner: Provider, interface: Any) -> None:
        super().__init__(inner)
        self._result = ServiceInfo.of(interface)

    @property
    def result(self) -> ServiceInfo:
        return self._result

    def provide(self, injector: Injector, info: RequestInfo) -> Any:
        return self._inner.provide(injector, info)

    def provide_owned(self, injector: Injector, info: RequestInfo) -> Any:
        return self._inner.provide_owned(injector, info)


class ArgProvider(_WrappingProvider):
    """Insert a scoped argument for the inner provider's service before delegating."""

    def __init__(self, inner: Provider, value: Any, arg_type: Any = None) -> None:
        super().__init__(inner)
        self._value = value
        self._key = arg_parameter_key(
            inner.implementation,
            ServiceInfo.of(type(value) if arg_type is None else arg_type),
        )

    @property
    def parameter_key(self) -> str:
        return self._key

    def provide(self, injector: Injector, info: RequestInfo) -> Any:
        return self._inner.provide(injector, info.with_parameter(self._key, self._value))

    def provide_owned(self, injector: Injector, info: RequestInfo) -> Any:
        return self._inner.provide_owned(injector, info.with_parameter(self._key, self._value))


def as_service_factory(
    factory: Callable[..., Any] | BaseServiceFactory,
    *,
    provides: Any = None,
    dependencies: Mapping[str, Any] | None = None,
) -> BaseServiceFactory:
    """Wrap a class or callable in a ``ServiceFactory`` unless it already is one."""
    if isinstance(factory, BaseServiceFactory):
        return factory
    return ServiceFactory(factory, provides=provides, dependencies=dependencies)


def transient(
    factory: Callable[..., Any] | BaseServiceFactory,
    *,
    provides: Any = None,
    dependencies: Mapping[str, Any] | None = None,
) -> TransientProvider:
    """Return a provider that builds a new instance on every request.

    Examples:
        .. code-block:: python

            builder.provide(transient(UserRepository))

    """
    return TransientProvider(
        as_service_factory(factory, provides=provides, dependencies=dependencies),
    )


def singleton(
    factory: Callable[..., Any] | BaseServiceFactory,
    *,
    provides: Any = None,
    dependencies: Mapping[str, Any] | None = None,
) -> SingletonProvider:
    """Return a provider that builds one shared instance on first request."""
    return SingletonProvider(
        as_service_factory(factory, provides=provides, dependencies=dependencies),
    )


def constant(value: Any, *, provides: Any = None) -> ConstantProvider:
    """Return a provider that always returns ``value``."""
    return ConstantProvider(value, provides=provides)


def fallible(
    factory: Callable[..., Any],
    *,
    errors: tuple[type[BaseException], ...] = (Exception,),
    provides: Any = None,
    dependencies: Mapping[str, Any] | None = None,
) -> FallibleServiceFactory:
    """Return a service factory whose declared errors become activation failures.

    Wrap the result with ``transient`` or ``singleton`` to register it.

    Examples:
        .. code-block:: python

            builder.provide(singleton(fallible(connect, errors=(OSError,))))

    """
    return FallibleServiceFactory(
        factory,
        errors=errors,
        provides=provides,
        dependencies=dependencies,
    )


def provider_for(
    factory: Callable[..., Any] | BaseServiceFactory | Provider,
    *,
    lifetime: Lifetime = Lifetime.TRANSIENT,
    provides: Any = None,
    dependencies: Mapping[str, Any] | None = None,
) -> Provider:
    """Return ``factory`` unchanged if it is a provider, else wrap it for ``lifetime``."""
    if isinstance(factory, Provider):
        return factory
    if lifetime is Lifetime.SINGLETON:
        return singleton(factory, provides=provides, dependencies=dependencies)
    return transient(factory, provides=provides, dependencies=dependencies)
