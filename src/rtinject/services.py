from __future__ import annotations

from collections.abc import Iterator
from types import TracebackType
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from rtinject._internal.activation import activate, extend_cycle
from rtinject.exceptions import (
    RTInjectConditionsNotMetError,
    RTInjectCycleDetectedError,
    RTInjectOwnedNotSupportedError,
)
from rtinject.markers import FactoryMarker, ServicesMarker, build_request_annotation

if TYPE_CHECKING:
    from typing_extensions import Self

    from rtinject.injector import Injector
    from rtinject.providers import Provider
    from rtinject.registry import ProvidersLease
    from rtinject.request_info import RequestInfo
    from rtinject.service_info import ServiceInfo

T = TypeVar("T")


class Services(Generic[T]):
    """Lazy, single-pass sequence of every implementation of a service.

    Request it with ``Services[T]`` or ``Services[Owned[T]]``. The providers of
    ``T`` stay checked out until the sequence is closed, so requesting ``T``
    again while it is open is reported as a cycle. Close it explicitly, use it
    as a context manager, or exhaust it.

    Examples:
        .. code-block:: python

            with injector.get(Services[Plugin]) as plugins:
                for plugin in plugins:
                    plugin.start()

    """

    __slots__ = ("_info", "_injector", "_lease", "_owned", "_providers")

    if not TYPE_CHECKING:

        def __class_getitem__(cls, item: Any) -> Any:
            return build_request_annotation(item, ServicesMarker(item))

    def __init__(
        self,
        injector: Injector,
        info: RequestInfo,
        lease: ProvidersLease,
        *,
        owned: bool = False,
    ) -> None:
        self._injector = injector
        self._info = info
        self._lease = lease
        self._owned = owned
        self._providers: Iterator[Provider] = iter(lease)

    @property
    def service_info(self) -> ServiceInfo:
        return self._lease.service_info

    @property
    def owned(self) -> bool:
        return self._owned

    @property
    def closed(self) -> bool:
        return self._lease.released

    def close(self) -> None:
        """Return the checked-out providers. Later calls do nothing."""
        self._lease.release()

    def __iter__(self) -> Self:
        return self

    def __next__(self) -> T:
        if self._lease.released:
            raise StopIteration
        for provider in self._providers:
            try:
                return activate(
                    self._injector,
                    provider,
                    self._lease.service_info,
                    self._info,
                    owned=self._owned,
                )
            except RTInjectConditionsNotMetError:
                continue
            except RTInjectOwnedNotSupportedError:
                if self._owned:
                    continue
                raise
            except RTInjectCycleDetectedError as error:
                raise extend_cycle(error, self._lease.service_info) from error
        self.close()
        raise StopIteration

    def __len__(self) -> int:
        """Return the number of registered providers, including skipped ones."""
        return len(self._lease)

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"Services({self._lease.service_info.name}, {state})"


class Factory(Generic[T]):
    """Deferred request bound to an injector and a request context.

    Request it with ``Factory[X]`` to resolve ``X`` later, possibly several
    times, with extra scoped arguments.

    Examples:
        .. code-block:: python

            class ReportJob:
                def __init__(self, renderers: Factory[Renderer]) -> None:
                    self.renderers = renderers

                def run(self, title: str) -> None:
                    renderer = self.renderers.with_arg(Renderer, title).get()

    """

    __slots__ = ("_injector", "_request", "_request_info")

    if not TYPE_CHECKING:

        def __class_getitem__(cls, item: Any) -> Any:
            return build_request_annotation(item, FactoryMarker(item))

    def __init__(self, injector: Injector, request: Any, request_info: RequestInfo) -> None:
        self._injector = injector
        self._request = request
        self._request_info = request_info

    @property
    def request(self) -> Any:
        return self._request

    @property
    def request_info(self) -> RequestInfo:
        """Context the deferred request resolves against."""
        return self._request_info

    def get(self) -> T:
        """Resolve the deferred request now."""
        return self._injector.get_with(self._request, self._request_info)

    def with_arg(self, target: Any, value: Any, arg_type: Any = None) -> Factory[T]:
        """Return a factory whose context carries a scoped argument for ``target``."""
        return Factory(
            self._injector,
            self._request,
            self._request_info.with_arg(target, value, arg_type),
        )

    def __repr__(self) -> str:
        return f"Factory({self._request!r})"
