from __future__ import annotations

import inspect
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from inspect import Parameter
from typing import Any, get_type_hints

from rtinject.exceptions import (
    RTInjectInvalidRegistrationError,
    RTInjectProviderDependencyInferenceError,
)

_MISSING_ANNOTATION: Any = object()
_IMPLICIT_FIRST_PARAMETER_NAMES = {"self", "cls"}
_VARIADIC_KINDS = (Parameter.VAR_POSITIONAL, Parameter.VAR_KEYWORD)


@dataclass(frozen=True, slots=True)
class FactoryDependency:
    """One parameter of a service factory and the request that satisfies it."""

    name: str
    request: Any
    positional_only: bool = False


@dataclass(slots=True)
class FactoryDependenciesExtractor:
    """Extract ordered dependency requests from service factory signatures."""

    def extract(self, factory: Callable[..., Any]) -> list[FactoryDependency]:
        """Infer one request per annotated parameter of ``factory``.

        Optional parameters without annotations are left to their defaults.
        Variadic parameters are never injected.

        Raises:
            RTInjectProviderDependencyInferenceError: If a required parameter has
                no usable annotation.

        """
        callable_obj, skip_first = self._signature_target(factory)
        parameters = self._parameters(callable_obj, skip_first_parameter=skip_first)
        annotations, annotation_error = self._resolved_type_hints(callable_obj)
        provider_name = factory_name(factory)
        dependencies: list[FactoryDependency] = []

        for parameter in parameters:
            if parameter.kind in _VARIADIC_KINDS:
                continue
            request = self._resolve_parameter_annotation(
                parameter=parameter,
                annotations=annotations,
                annotation_error=annotation_error,
                provider_name=provider_name,
            )
            if request is _MISSING_ANNOTATION:
                continue
            dependencies.append(
                FactoryDependency(
                    name=parameter.name,
                    request=request,
                    positional_only=parameter.kind is Parameter.POSITIONAL_ONLY,
                ),
            )

        return dependencies

    def validate_explicit(
        self,
        factory: Callable[..., Any],
        dependencies: Mapping[str, Any],
    ) -> list[FactoryDependency]:
        """Check an explicit ``{parameter: request}`` mapping against the signature.

        Returns the dependencies in signature order.

        Raises:
            RTInjectInvalidRegistrationError: If a name is not a parameter of the
                factory.
            RTInjectProviderDependencyInferenceError: If a required parameter is
                left without a request.

        """
        callable_obj, skip_first = self._signature_target(factory)
        parameters = self._parameters(callable_obj, skip_first_parameter=skip_first)
        parameters_by_name = {
            parameter.name: parameter
            for parameter in parameters
            if parameter.kind not in _VARIADIC_KINDS
        }
        provider_name = factory_name(factory)

        for name in dependencies:
            if name not in parameters_by_name:
                msg = f"Explicit dependency for unknown parameter '{name}' in provider '{provider_name}'."
                raise RTInjectInvalidRegistrationError(msg)

        missing_required_parameters = [
            name
            for name, parameter in parameters_by_name.items()
            if parameter.default is Parameter.empty and name not in dependencies
        ]
        if missing_required_parameters:
            missing_parameters = ", ".join(f"'{name}'" for name in missing_required_parameters)
            msg = (
                f"Explicit dependencies for provider '{provider_name}' are incomplete. "
                f"Missing required parameters: {missing_parameters}."
            )
            raise RTInjectProviderDependencyInferenceError(msg)

        return [
            FactoryDependency(
                name=name,
                request=dependencies[name],
                positional_only=parameter.kind is Parameter.POSITIONAL_ONLY,
            )
            for name, parameter in parameters_by_name.items()
            if name in dependencies
        ]

    def _resolve_parameter_annotation(
        self,
        *,
        parameter: Parameter,
        annotations: dict[str, Any],
        annotation_error: Exception | None,
        provider_name: str,
    ) -> Any:
        annotation = annotations.get(parameter.name, _MISSING_ANNOTATION)
        if annotation is not _MISSING_ANNOTATION:
            return annotation

        raw_annotation = parameter.annotation
        if raw_annotation is not Parameter.empty and not isinstance(raw_annotation, str):
            return raw_annotation

        if parameter.default is not Parameter.empty:
            return _MISSING_ANNOTATION

        error_message = (
            f"Unable to infer dependency for required parameter '{parameter.name}' "
            f"in provider '{provider_name}'. Add a type annotation or pass explicit dependencies."
        )
        if annotation_error is None:
            raise RTInjectProviderDependencyInferenceError(error_message)
        msg = f"{error_message} Original annotation error: {annotation_error}"
        raise RTInjectProviderDependencyInferenceError(msg) from annotation_error

    def _signature_target(self, factory: Callable[..., Any]) -> tuple[Callable[..., Any], bool]:
        if isinstance(factory, type):
            return factory.__init__, True
        return factory, False

    def _parameters(
        self,
        callable_obj: Callable[..., Any],
        *,
        skip_first_parameter: bool,
    ) -> tuple[Parameter, ...]:
        try:
            parameters = tuple(inspect.signature(callable_obj).parameters.values())
        except (TypeError, ValueError) as error:
            msg = f"Unable to read the signature of provider '{factory_name(callable_obj)}'."
            raise RTInjectInvalidRegistrationError(msg) from error
        if (
            skip_first_parameter
            and parameters
            and parameters[0].name in _IMPLICIT_FIRST_PARAMETER_NAMES
        ):
            return parameters[1:]
        return parameters

    def _resolved_type_hints(
        self,
        callable_obj: Callable[..., Any],
    ) -> tuple[dict[str, Any], Exception | None]:
        try:
            return get_type_hints(callable_obj, include_extras=True), None
        except (AttributeError, NameError, TypeError) as error:
            return {}, error


@dataclass(slots=True)
class FactoryReturnTypeExtractor:
    """Work out which dependency key a service factory produces."""

    def extract(self, factory: Callable[..., Any]) -> Any:
        """Return the class itself for classes, else the return annotation.

        Raises:
            RTInjectInvalidRegistrationError: If a function has no usable return
                annotation.

        """
        if isinstance(factory, type):
            return factory

        try:
            return_annotation = get_type_hints(factory, include_extras=True).get(
                "return",
                _MISSING_ANNOTATION,
            )
            annotation_error: Exception | None = None
        except (AttributeError, NameError, TypeError) as error:
            return_annotation = _MISSING_ANNOTATION
            annotation_error = error

        if return_annotation is _MISSING_ANNOTATION:
            try:
                raw_return_annotation = inspect.signature(factory).return_annotation
            except (TypeError, ValueError):
                raw_return_annotation = inspect.Signature.empty
            if raw_return_annotation is not inspect.Signature.empty and not isinstance(
                raw_return_annotation,
                str,
            ):
                return_annotation = raw_return_annotation

        if return_annotation is _MISSING_ANNOTATION:
            msg = (
                f"Unable to infer return type for provider '{factory_name(factory)}'. "
                "Add a return type annotation or pass provides= explicitly."
            )
            if annotation_error is None:
                raise RTInjectInvalidRegistrationError(msg)
            full_msg = f"{msg} Original annotation error: {annotation_error}"
            raise RTInjectInvalidRegistrationError(full_msg) from annotation_error

        return return_annotation


def factory_name(factory: Callable[..., Any]) -> str:
    """Return a readable name for a factory callable."""
    return getattr(factory, "__qualname__", repr(factory))
