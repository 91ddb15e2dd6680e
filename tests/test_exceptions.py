"""Tests for the exception hierarchy and error messages."""

import pytest

from rtinject import ServiceInfo
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


class Service:
    pass


class Dependency:
    pass


SERVICE = ServiceInfo.of(Service)
DEPENDENCY = ServiceInfo.of(Dependency)


class TestHierarchy:
    @pytest.mark.parametrize(
        "error",
        [
            RTInjectMissingProviderError(SERVICE),
            RTInjectMissingDependencyError(SERVICE, DEPENDENCY),
            RTInjectCycleDetectedError(SERVICE, [SERVICE]),
            RTInjectInvalidImplementationError(SERVICE, DEPENDENCY),
            RTInjectInvalidProviderError(SERVICE),
            RTInjectMultipleProvidersError(SERVICE, 2),
            RTInjectOwnedNotSupportedError(SERVICE),
            RTInjectConditionsNotMetError(SERVICE),
            RTInjectActivationFailedError(SERVICE),
            RTInjectNoParentRequestError(SERVICE),
            RTInjectMissingParameterError(SERVICE),
            RTInjectParameterTypeInvalidError(SERVICE),
            RTInjectInternalError("broken"),
            RTInjectInvalidRegistrationError("bad"),
            RTInjectProviderDependencyInferenceError("bad"),
        ],
    )
    def test_every_error_is_an_rtinject_error(self, error: RTInjectError) -> None:
        assert isinstance(error, RTInjectError)

    def test_inference_error_is_a_registration_error(self) -> None:
        assert issubclass(
            RTInjectProviderDependencyInferenceError,
            RTInjectInvalidRegistrationError,
        )


class TestMessages:
    def test_missing_provider(self) -> None:
        assert str(RTInjectMissingProviderError(SERVICE)) == f"{SERVICE.name} has no provider"

    def test_missing_dependency(self) -> None:
        error = RTInjectMissingDependencyError(SERVICE, DEPENDENCY)

        assert str(error) == f"{DEPENDENCY.name} has no provider (required by {SERVICE.name})"

    def test_cycle_is_printed_outermost_first(self) -> None:
        error = RTInjectCycleDetectedError(SERVICE, [SERVICE, DEPENDENCY, SERVICE])

        assert f"[{SERVICE.name} -> {DEPENDENCY.name} -> {SERVICE.name}]" in str(error)

    def test_multiple_providers_suggests_collections(self) -> None:
        error = RTInjectMultipleProvidersError(SERVICE, 3)

        assert "3 providers" in str(error)
        assert "All[T]" in str(error)

    def test_activation_failed_includes_inner_error(self) -> None:
        inner = OSError("connection refused")

        error = RTInjectActivationFailedError(SERVICE, inner)

        assert error.inner is inner
        assert str(error).endswith("connection refused")

    def test_arg_errors_carry_reason(self) -> None:
        error = RTInjectMissingParameterError(SERVICE)

        assert isinstance(error, RTInjectArgRequestError)
        assert error.inner is None
        assert str(error).endswith(RTInjectMissingParameterError.reason)

    def test_internal_error_keeps_message(self) -> None:
        error = RTInjectInternalError("slot vanished")

        assert error.message == "slot vanished"
        assert "slot vanished" in str(error)
