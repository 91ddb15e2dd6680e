from __future__ import annotations

from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import Any

from rtinject.service_info import ServiceInfo

_ARG_KEY_PREFIX = "rtinject.Arg"


def arg_parameter_key(target: ServiceInfo, argument: ServiceInfo) -> str:
    """Return the parameter key of a scoped argument.

    The key is derived from the service that receives the argument and the
    argument type, so two services can each receive their own ``Arg[str]``.
    """
    return f"{_ARG_KEY_PREFIX}[target={target.name},type={argument.name}]"


class RequestInfo:
    """Carry the service path and scoped parameters of one resolution.

    ``service_path`` is the chain of services currently being activated,
    outermost first. Parameters are copy-on-write: a child created by
    ``with_request`` shares its parent's mapping until either side writes.
    """

    __slots__ = ("_owns_parameters", "_parameters", "_service_path")

    def __init__(
        self,
        service_path: Iterable[ServiceInfo] = (),
        parameters: Mapping[str, Any] | None = None,
    ) -> None:
        self._service_path: tuple[ServiceInfo, ...] = tuple(service_path)
        self._parameters: dict[str, Any] = dict(parameters) if parameters else {}
        self._owns_parameters = True

    @classmethod
    def _sharing(
        cls,
        service_path: tuple[ServiceInfo, ...],
        parent: RequestInfo,
    ) -> RequestInfo:
        child = cls.__new__(cls)
        child._service_path = service_path
        child._parameters = parent._parameters
        child._owns_parameters = False
        parent._owns_parameters = False
        return child

    @property
    def service_path(self) -> tuple[ServiceInfo, ...]:
        """Services currently being activated, outermost first."""
        return self._service_path

    @property
    def parameters(self) -> Mapping[str, Any]:
        """Read-only view of the scoped parameters."""
        return MappingProxyType(self._parameters)

    def with_request(self, service: ServiceInfo) -> RequestInfo:
        """Return a child context with ``service`` pushed onto the service path."""
        return RequestInfo._sharing((*self._service_path, service), self)

    def with_parameter(self, key: str, value: Any) -> RequestInfo:
        """Return a child context with one parameter set or shadowed."""
        child = RequestInfo._sharing(self._service_path, self)
        child.insert_parameter(key, value)
        return child

    def with_arg(self, target: Any, value: Any, arg_type: Any = None) -> RequestInfo:
        """Return a child context carrying a scoped argument for ``target``.

        Args:
            target: Dependency key of the service that receives the argument.
            value: Argument value.
            arg_type: Declared argument type. Defaults to ``type(value)``.

        """
        key = arg_parameter_key(
            ServiceInfo.of(target),
            ServiceInfo.of(type(value) if arg_type is None else arg_type),
        )
        return self.with_parameter(key, value)

    def insert_parameter(self, key: str, value: Any) -> Any | None:
        """Set a parameter in place and return the previous value, if any."""
        self._own_parameters()
        previous = self._parameters.get(key)
        self._parameters[key] = value
        return previous

    def remove_parameter(self, key: str) -> Any | None:
        """Remove a parameter in place and return its value, if any."""
        if key not in self._parameters:
            return None
        self._own_parameters()
        return self._parameters.pop(key)

    def get_parameter(self, key: str, default: Any = None) -> Any:
        """Return a parameter value or ``default``."""
        return self._parameters.get(key, default)

    def has_parameter(self, key: str) -> bool:
        """Return whether a parameter is set."""
        return key in self._parameters

    def clone(self) -> RequestInfo:
        """Return a cheap copy sharing parameters until either side writes."""
        return RequestInfo._sharing(self._service_path, self)

    def __copy__(self) -> RequestInfo:
        return self.clone()

    def _own_parameters(self) -> None:
        if not self._owns_parameters:
            self._parameters = dict(self._parameters)
            self._owns_parameters = True

    def __repr__(self) -> str:
        path = ", ".join(service.name for service in self._service_path)
        return f"RequestInfo(service_path=[{path}], parameters={len(self._parameters)})"
