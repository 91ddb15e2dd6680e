from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rtinject.service_info import ServiceInfo


class RTInjectError(Exception):
    """Represent a base class for all rtinject-specific failures.

    Catch this type when you want to handle any rtinject error path without
    matching each concrete exception class individually.
    """


class RTInjectInvalidRegistrationError(RTInjectError):
    """Signal invalid registration or configuration.

    Raised by ``InjectorBuilder`` and ``Module`` when providers, interface
    declarations or modules cannot be combined, and when a builder is reused
    after ``build()``.
    """


class RTInjectProviderDependencyInferenceError(RTInjectInvalidRegistrationError):
    """Signal that required factory dependencies cannot be inferred.

    Common triggers are missing or unresolvable type annotations on required
    factory parameters.

    Typical fixes include adding parameter annotations or passing explicit
    ``dependencies=...`` when creating the service factory.
    """


class RTInjectMissingProviderError(RTInjectError):
    """Signal that no provider is registered for a requested service.

    Raised by ``Injector.get`` when the requested identity was never registered,
    when every registered provider skipped itself, or when an interface request
    produced an instance that matches none of the declared implementations.
    ``Maybe[...]`` requests turn this error into ``None``.
    """

    def __init__(self, service_info: ServiceInfo) -> None:
        self.service_info = service_info
        super().__init__(f"{service_info.name} has no provider")


class RTInjectMissingDependencyError(RTInjectError):
    """Signal that a dependency of a service has no provider.

    Raised instead of ``RTInjectMissingProviderError`` once the missing
    identity was requested by a factory, so the message names the service that
    failed to construct.
    """

    def __init__(self, service_info: ServiceInfo, dependency_info: ServiceInfo) -> None:
        self.service_info = service_info
        self.dependency_info = dependency_info
        super().__init__(
            f"{dependency_info.name} has no provider (required by {service_info.name})",
        )


class RTInjectCycleDetectedError(RTInjectError):
    """Signal re-entrant activation of a service.

    ``cycle`` lists the identities in detection order: the re-entered identity
    first, then every enclosing frame up to the outermost request. A cycle
    ``A -> B -> A`` requested through ``A`` yields ``[A, B, A]``.
    """

    def __init__(self, service_info: ServiceInfo, cycle: list[ServiceInfo]) -> None:
        self.service_info = service_info
        self.cycle = cycle
        path = " -> ".join(item.name for item in reversed(cycle))
        super().__init__(
            f"a cycle was detected during activation of {service_info.name} [{path}]",
        )


class RTInjectInvalidImplementationError(RTInjectError):
    """Signal an interface binding to an undeclared implementation.

    Raised by ``InjectorBuilder.build`` when ``Provider.with_interface`` binds a
    provider whose implementation is not listed in the interface declaration.
    """

    def __init__(self, service_info: ServiceInfo, implementation: ServiceInfo) -> None:
        self.service_info = service_info
        self.implementation = implementation
        super().__init__(
            f"{implementation.name} is not registered as an implementer of {service_info.name}",
        )


class RTInjectInvalidProviderError(RTInjectError):
    """Signal that a registered provider returned a value of the wrong type."""

    def __init__(self, service_info: ServiceInfo) -> None:
        self.service_info = service_info
        super().__init__(
            f"the registered provider for {service_info.name} returned the wrong type",
        )


class RTInjectMultipleProvidersError(RTInjectError):
    """Signal that a single-value request matched several providers.

    ``count`` is the number of registered providers for the identity. Request
    ``All[T]`` or ``Services[T]`` to receive every implementation instead.
    """

    def __init__(self, service_info: ServiceInfo, count: int) -> None:
        self.service_info = service_info
        self.count = count
        super().__init__(
            f"the requested service {service_info.name} has {count} providers registered "
            "(did you mean to request All[T] or Services[T] instead?)",
        )


class RTInjectOwnedNotSupportedError(RTInjectError):
    """Signal that a provider cannot hand out an exclusively-owned instance.

    Cached lifecycles (singletons and constants) only produce shared instances.
    """

    def __init__(self, service_info: ServiceInfo) -> None:
        self.service_info = service_info
        super().__init__(
            f"the registered provider can't provide an owned variant of {service_info.name}",
        )


class RTInjectConditionsNotMetError(RTInjectError):
    """Signal that a conditional provider chose not to provide its service.

    Provider iteration consumes this error and skips the provider. It never
    reaches a caller of ``Injector.get``.
    """

    def __init__(self, service_info: ServiceInfo) -> None:
        self.service_info = service_info
        super().__init__(
            f"the conditions for providing the service {service_info.name} have not been met",
        )


class RTInjectActivationFailedError(RTInjectError):
    """Signal that a service factory failed while constructing its service.

    ``inner`` holds the original error, which is also chained as ``__cause__``.
    """

    def __init__(
        self,
        service_info: ServiceInfo,
        inner: BaseException | None = None,
        message: str | None = None,
    ) -> None:
        self.service_info = service_info
        self.inner = inner
        if message is None:
            message = f"an error occurred during activation of {service_info.name}"
            if inner is not None:
                message = f"{message}: {inner}"
        super().__init__(message)


class RTInjectArgRequestError(RTInjectActivationFailedError):
    """Signal that an ``Arg[T]`` request could not be satisfied."""

    reason = "argument request failed"

    def __init__(self, service_info: ServiceInfo) -> None:
        super().__init__(
            service_info,
            message=f"an error occurred during activation of {service_info.name}: {self.reason}",
        )


class RTInjectNoParentRequestError(RTInjectArgRequestError):
    """Signal an ``Arg[T]`` request made outside of any service factory.

    Scoped arguments are routed to the service on top of the request path, so
    requesting one directly from the injector has no target service.
    """

    reason = "no parent request was found"


class RTInjectMissingParameterError(RTInjectArgRequestError):
    """Signal that no scoped argument was configured for the requesting service.

    Typical fixes are ``builder.with_arg(Service, value)``,
    ``module.with_arg(Service, value)`` or ``provider.with_arg(value)``.
    """

    reason = "no value assigned for this argument"


class RTInjectParameterTypeInvalidError(RTInjectArgRequestError):
    """Signal that a configured scoped argument has the wrong runtime type."""

    reason = "argument value is the wrong type"


class RTInjectInternalError(RTInjectError):
    """Signal a violated engine invariant.

    This indicates a bug in rtinject itself rather than in user configuration.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"an unexpected error occurred: {message}")
