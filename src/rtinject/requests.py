"""Parse request annotations into resolution plans and run them."""

from __future__ import annotations

import copy
import functools
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Annotated, Any, get_args, get_origin

from rtinject._internal.activation import activate, extend_cycle
from rtinject.exceptions import (
    RTInjectActivationFailedError,
    RTInjectConditionsNotMetError,
    RTInjectCycleDetectedError,
    RTInjectInvalidRegistrationError,
    RTInjectMissingParameterError,
    RTInjectMissingProviderError,
    RTInjectMultipleProvidersError,
    RTInjectNoParentRequestError,
    RTInjectParameterTypeInvalidError,
)
from rtinject.interfaces import is_instance_of
from rtinject.markers import (
    AllMarker,
    ArgMarker,
    FactoryMarker,
    MaybeMarker,
    OwnedMarker,
    RequestMarker,
    ServicesMarker,
    build_annotated_key,
    extract_request_marker,
)
from rtinject.request_info import RequestInfo, arg_parameter_key
from rtinject.service_info import ServiceInfo
from rtinject.services import Factory, Services

if TYPE_CHECKING:
    from rtinject.injector import Injector

_UNSET: Any = object()
_VARIADIC_TUPLE_ARGS = 2


class RequestPlan(ABC):
    """Resolution strategy for one request annotation."""

    @abstractmethod
    def resolve(self, injector: Injector, info: RequestInfo) -> Any:
        """Resolve the request against ``info``."""


@dataclass(frozen=True, slots=True)
class SingleRequest(RequestPlan):
    """Exactly one implementation, shared or owned."""

    service_info: ServiceInfo
    owned: bool = False

    def resolve(self, injector: Injector, info: RequestInfo) -> Any:
        with injector.registry.lease(self.service_info) as lease:
            result = _UNSET
            for provider in lease:
                try:
                    value = activate(injector, provider, self.service_info, info, owned=self.owned)
                except RTInjectConditionsNotMetError:
                    continue
                except RTInjectCycleDetectedError as error:
                    raise extend_cycle(error, self.service_info) from error
                if result is not _UNSET:
                    raise RTInjectMultipleProvidersError(self.service_info, len(lease))
                result = value
        if result is _UNSET:
            raise RTInjectMissingProviderError(self.service_info)
        return result


@dataclass(frozen=True, slots=True)
class MaybeRequest(RequestPlan):
    """The inner request, or ``None`` when it has no provider."""

    inner: RequestPlan

    def resolve(self, injector: Injector, info: RequestInfo) -> Any:
        try:
            return self.inner.resolve(injector, info)
        except RTInjectMissingProviderError:
            return None


@dataclass(frozen=True, slots=True)
class ServicesRequest(RequestPlan):
    """A lazy sequence over every provider of an identity."""

    service_info: ServiceInfo
    owned: bool = False

    def resolve(self, injector: Injector, info: RequestInfo) -> Services[Any]:
        lease = injector.registry.lease(self.service_info, missing_ok=True)
        return Services(injector, info, lease, owned=self.owned)


@dataclass(frozen=True, slots=True)
class AllRequest(RequestPlan):
    """Every activated implementation, collected eagerly into a tuple."""

    service_info: ServiceInfo
    owned: bool = False

    def resolve(self, injector: Injector, info: RequestInfo) -> tuple[Any, ...]:
        lease = injector.registry.lease(self.service_info, missing_ok=True)
        with Services(injector, info, lease, owned=self.owned) as services:
            return tuple(services)


@dataclass(frozen=True, slots=True)
class TupleRequest(RequestPlan):
    """Each element resolved left to right against the same context."""

    items: tuple[RequestPlan, ...]

    def resolve(self, injector: Injector, info: RequestInfo) -> tuple[Any, ...]:
        return tuple(item.resolve(injector, info) for item in self.items)


@dataclass(frozen=True, slots=True)
class InjectorRequest(RequestPlan):
    """The injector performing the resolution."""

    def resolve(self, injector: Injector, info: RequestInfo) -> Injector:
        return injector


@dataclass(frozen=True, slots=True)
class RequestInfoRequest(RequestPlan):
    """The current request context."""

    def resolve(self, injector: Injector, info: RequestInfo) -> RequestInfo:
        return info


@dataclass(frozen=True, slots=True)
class ArgRequest(RequestPlan):
    """A scoped argument routed to the service on top of the request path.

    The value is returned as a shallow copy. A value that cannot be copied fails
    as an activation error for the ``Arg[T]`` identity.
    """

    service_info: ServiceInfo
    """Identity of the ``Arg[T]`` request itself, used in errors."""
    argument: ServiceInfo
    """Identity of ``T``."""

    def resolve(self, injector: Injector, info: RequestInfo) -> Any:
        service_path = info.service_path
        if not service_path:
            raise RTInjectNoParentRequestError(self.service_info)
        key = arg_parameter_key(service_path[-1], self.argument)
        value = info.get_parameter(key, _UNSET)
        if value is _UNSET:
            raise RTInjectMissingParameterError(self.service_info)
        if not is_instance_of(value, self.argument.key):
            raise RTInjectParameterTypeInvalidError(self.service_info)
        try:
            return copy.copy(value)
        except (TypeError, copy.Error) as error:
            raise RTInjectActivationFailedError(self.service_info, error) from error


@dataclass(frozen=True, slots=True)
class FactoryRequest(RequestPlan):
    """A deferred request bound to the current injector and context."""

    request: Any

    def resolve(self, injector: Injector, info: RequestInfo) -> Factory[Any]:
        return Factory(injector, self.request, info)


@functools.lru_cache(maxsize=None)
def parse_request(request: Any) -> RequestPlan:
    """Turn a request annotation into a resolution plan.

    Raises:
        RTInjectInvalidRegistrationError: If the annotation combines request
            shapes in an unsupported way.

    """
    from rtinject.injector import Injector

    if request is Injector:
        return InjectorRequest()
    if request is RequestInfo:
        return RequestInfoRequest()
    if request is Services or request is Factory:
        msg = f"{request.__name__} must be parameterized, for example {request.__name__}[Service]."
        raise RTInjectInvalidRegistrationError(msg)

    marker = extract_request_marker(request)
    if marker is None:
        if get_origin(request) is tuple:
            return _parse_tuple(request)
        return SingleRequest(ServiceInfo.of(request))

    inner = _marker_inner(request, marker)
    if isinstance(marker, MaybeMarker):
        return MaybeRequest(parse_request(inner))
    if isinstance(marker, OwnedMarker):
        return SingleRequest(_plain_service_info(inner, "Owned"), owned=True)
    if isinstance(marker, AllMarker):
        service_info, owned = _collection_item(inner, "All")
        return AllRequest(service_info, owned=owned)
    if isinstance(marker, ServicesMarker):
        service_info, owned = _collection_item(inner, "Services")
        return ServicesRequest(service_info, owned=owned)
    if isinstance(marker, ArgMarker):
        argument = _plain_service_info(inner, "Arg")
        return ArgRequest(
            ServiceInfo(key=request, name=f"rtinject.Arg[{argument.name}]"),
            argument,
        )
    if isinstance(marker, FactoryMarker):
        parse_request(inner)
        return FactoryRequest(inner)

    msg = f"Unsupported request marker {marker!r}."
    raise RTInjectInvalidRegistrationError(msg)


def _marker_inner(request: Any, marker: RequestMarker) -> Any:
    # Every marker wraps the same base type. The base of the outer annotation is
    # the one forward references were resolved on.
    base = get_args(request)[0]
    if get_origin(marker.inner) is Annotated:
        return build_annotated_key((base, *get_args(marker.inner)[1:]))
    return base


def _parse_tuple(request: Any) -> TupleRequest:
    items = get_args(request)
    if items in ((), ((),)):
        return TupleRequest(())
    if len(items) == _VARIADIC_TUPLE_ARGS and items[1] is Ellipsis:
        msg = f"Variable-length tuple requests are not supported: {request!r}. Request All[T] instead."
        raise RTInjectInvalidRegistrationError(msg)
    return TupleRequest(tuple(parse_request(item) for item in items))


def _collection_item(inner: Any, shape: str) -> tuple[ServiceInfo, bool]:
    marker = extract_request_marker(inner)
    if isinstance(marker, OwnedMarker):
        return _plain_service_info(_marker_inner(inner, marker), shape), True
    return _plain_service_info(inner, shape), False


def _plain_service_info(inner: Any, shape: str) -> ServiceInfo:
    if extract_request_marker(inner) is not None:
        msg = f"{shape}[...] does not accept the nested request {inner!r}."
        raise RTInjectInvalidRegistrationError(msg)
    return ServiceInfo.of(inner)


__all__ = [
    "AllRequest",
    "ArgRequest",
    "FactoryRequest",
    "InjectorRequest",
    "MaybeRequest",
    "RequestInfoRequest",
    "RequestPlan",
    "ServicesRequest",
    "SingleRequest",
    "TupleRequest",
    "parse_request",
]
