from __future__ import annotations

import importlib
import warnings
from typing import Any

from rtinject.exceptions import RTInjectInvalidRegistrationError
from rtinject.providers import ServiceFactory, SingletonProvider

_PYDANTIC_V1_WARNING_PATTERN = (
    r"Core Pydantic V1 functionality isn't compatible with Python 3\.14 or greater\."
)


def _load_pydantic_settings_base() -> type[Any] | None:
    return _load_base_settings("pydantic_settings")


def _load_pydantic_v1_base() -> type[Any] | None:
    with warnings.catch_warnings():
        warnings.filterwarnings(
            "ignore",
            message=_PYDANTIC_V1_WARNING_PATTERN,
            category=UserWarning,
        )
        return _load_base_settings("pydantic.v1")


def _load_base_settings(module_name: str) -> type[Any] | None:
    try:
        module = importlib.import_module(module_name)
    except ImportError:
        return None
    base_settings = getattr(module, "BaseSettings", None)
    if isinstance(base_settings, type):
        return base_settings
    return None


def _build_settings_bases() -> tuple[type[Any], ...]:
    bases: list[type[Any]] = []
    for candidate in (_load_pydantic_settings_base(), _load_pydantic_v1_base()):
        if candidate is not None and candidate not in bases:
            bases.append(candidate)
    return tuple(bases)


SETTINGS_BASES: tuple[type[Any], ...] = _build_settings_bases()


def is_pydantic_settings_subclass(candidate: object) -> bool:
    """Return whether a class is a supported Pydantic settings model.

    Both ``pydantic_settings.BaseSettings`` and legacy
    ``pydantic.v1.BaseSettings`` are recognized when installed. Without
    Pydantic every candidate is rejected.

    Args:
        candidate: Object to test.

    Returns:
        ``True`` when ``candidate`` is a class deriving from a discovered
        settings base; otherwise ``False``.

    """
    if not isinstance(candidate, type):
        return False
    return any(issubclass(candidate, base) for base in SETTINGS_BASES)


def settings_provider(settings_class: type[Any]) -> SingletonProvider:
    """Return a singleton provider that loads ``settings_class`` once.

    The settings model is built with no arguments, so values come from the
    environment and the model's own configuration.

    Examples:
        .. code-block:: python

            class AppSettings(BaseSettings):
                database_url: str = "sqlite://"


            builder.add_provider(settings_provider(AppSettings))

    Raises:
        RTInjectInvalidRegistrationError: If ``settings_class`` is not a
            Pydantic settings model.

    """
    if not is_pydantic_settings_subclass(settings_class):
        msg = f"{settings_class!r} is not a pydantic BaseSettings subclass."
        raise RTInjectInvalidRegistrationError(msg)
    return SingletonProvider(
        ServiceFactory(lambda: settings_class(), provides=settings_class),
    )


__all__ = [
    "SETTINGS_BASES",
    "is_pydantic_settings_subclass",
    "settings_provider",
]
