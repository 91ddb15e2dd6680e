"""Pytest fixtures for tests that configure and resolve from an injector.

Enable the plugin with ``pytest_plugins = ["rtinject.integrations.pytest_plugin"]``
in a ``conftest.py``. Override ``rtinject_builder`` to register the providers a
test suite needs; ``rtinject_injector`` builds it.
"""

from __future__ import annotations

import pytest

from rtinject.builder import InjectorBuilder
from rtinject.injector import Injector
from rtinject.lock_mode import LockMode


@pytest.fixture()
def rtinject_lock_mode() -> LockMode:
    """Lock mode used by ``rtinject_builder``. Override to test unlocked injectors."""
    return LockMode.THREAD


@pytest.fixture()
def rtinject_builder(rtinject_lock_mode: LockMode) -> InjectorBuilder:
    """Create a per-test ``InjectorBuilder``.

    The fixture is function-scoped, so registrations are isolated between
    tests unless users override the fixture scope explicitly.

    Returns:
        A new, empty ``InjectorBuilder``.

    """
    return InjectorBuilder(lock_mode=rtinject_lock_mode)


@pytest.fixture()
def rtinject_injector(rtinject_builder: InjectorBuilder) -> Injector:
    """Build the injector from ``rtinject_builder``.

    Register providers on ``rtinject_builder`` before requesting this fixture;
    the builder cannot be modified after the injector is built.
    """
    return rtinject_builder.build()
