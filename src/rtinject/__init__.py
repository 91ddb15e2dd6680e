from rtinject.builder import InjectorBuilder, Module
from rtinject.exceptions import (
    RTInjectActivationFailedError,
    RTInjectArgRequestError,
    RTInjectConditionsNotMetError,
    RTInjectCycleDetectedError,
    RTInjectError,
    RTInjectInternalError,
    RTInjectInvalidImplementationError,
    RTInjectInvalidProviderError,
    RTInjectInvalidRegistrationError,
    RTInjectMissingDependencyError,
    RTInjectMissingParameterError,
    RTInjectMissingProviderError,
    RTInjectMultipleProvidersError,
    RTInjectNoParentRequestError,
    RTInjectOwnedNotSupportedError,
    RTInjectParameterTypeInvalidError,
    RTInjectProviderDependencyInferenceError,
)
from rtinject.injector import Injector
from rtinject.interfaces import InterfaceSpec, interface
from rtinject.lock_mode import LockMode
from rtinject.markers import All, Arg, Maybe, Owned
from rtinject.providers import (
    FallibleServiceFactory,
    Lifetime,
    MappedServiceFactory,
    Provider,
    ServiceFactory,
    constant,
    fallible,
    singleton,
    transient,
)
from rtinject.request_info import RequestInfo
from rtinject.service_info import ServiceInfo
from rtinject.services import Factory, Services

__all__ = [
    "All",
    "Arg",
    "Factory",
    "FallibleServiceFactory",
    "Injector",
    "InjectorBuilder",
    "InterfaceSpec",
    "Lifetime",
    "LockMode",
    "MappedServiceFactory",
    "Maybe",
    "Module",
    "Owned",
    "Provider",
    "RTInjectActivationFailedError",
    "RTInjectArgRequestError",
    "RTInjectConditionsNotMetError",
    "RTInjectCycleDetectedError",
    "RTInjectError",
    "RTInjectInternalError",
    "RTInjectInvalidImplementationError",
    "RTInjectInvalidProviderError",
    "RTInjectInvalidRegistrationError",
    "RTInjectMissingDependencyError",
    "RTInjectMissingParameterError",
    "RTInjectMissingProviderError",
    "RTInjectMultipleProvidersError",
    "RTInjectNoParentRequestError",
    "RTInjectOwnedNotSupportedError",
    "RTInjectParameterTypeInvalidError",
    "RTInjectProviderDependencyInferenceError",
    "RequestInfo",
    "ServiceFactory",
    "ServiceInfo",
    "Services",
    "constant",
    "fallible",
    "interface",
    "singleton",
    "transient",
]
