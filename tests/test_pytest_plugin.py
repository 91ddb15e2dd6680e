"""Tests for the rtinject pytest plugin fixtures."""

import pytest

from rtinject import Injector, InjectorBuilder, LockMode, singleton


class Clock:
    pass


@pytest.fixture()
def rtinject_builder(rtinject_lock_mode: LockMode) -> InjectorBuilder:
    builder = InjectorBuilder(lock_mode=rtinject_lock_mode)
    builder.provide(singleton(Clock))
    return builder


def test_injector_fixture_builds_overridden_builder(rtinject_injector: Injector) -> None:
    assert rtinject_injector.get(Clock) is rtinject_injector.get(Clock)


def test_default_lock_mode_is_thread(rtinject_injector: Injector) -> None:
    assert rtinject_injector.lock_mode is LockMode.THREAD


class TestLockModeOverride:
    @pytest.fixture()
    def rtinject_lock_mode(self) -> LockMode:
        return LockMode.NONE

    def test_overridden_lock_mode_reaches_injector(self, rtinject_injector: Injector) -> None:
        assert rtinject_injector.lock_mode is LockMode.NONE
