from __future__ import annotations

from typing import TYPE_CHECKING, Any

from rtinject.exceptions import RTInjectCycleDetectedError
from rtinject.interfaces import downcast

if TYPE_CHECKING:
    from rtinject.injector import Injector
    from rtinject.providers import Provider
    from rtinject.request_info import RequestInfo
    from rtinject.service_info import ServiceInfo


def activate(
    injector: Injector,
    provider: Provider,
    service_info: ServiceInfo,
    info: RequestInfo,
    *,
    owned: bool,
) -> Any:
    """Run one provider and check its value against the requested identity."""
    if owned:
        value = provider.provide_owned(injector, info)
    else:
        value = provider.provide(injector, info)
    return downcast(service_info, value, injector.interfaces)


def extend_cycle(
    error: RTInjectCycleDetectedError,
    service_info: ServiceInfo,
) -> RTInjectCycleDetectedError:
    """Return ``error`` re-targeted at the enclosing frame for ``service_info``."""
    return RTInjectCycleDetectedError(service_info, [*error.cycle, service_info])
