"""Shared pytest fixtures for rtinject tests."""

import pytest

from rtinject.builder import InjectorBuilder
from rtinject.lock_mode import LockMode

pytest_plugins = ["rtinject.integrations.pytest_plugin"]


@pytest.fixture()
def builder() -> InjectorBuilder:
    """Thread-safe builder."""
    return InjectorBuilder()


@pytest.fixture()
def unlocked_builder() -> InjectorBuilder:
    """Builder for single-threaded injectors."""
    return InjectorBuilder(lock_mode=LockMode.NONE)

