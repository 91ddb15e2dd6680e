from __future__ import annotations

import threading
from contextlib import AbstractContextManager, nullcontext
from enum import Enum
from typing import Any


class LockMode(Enum):
    """Select locking behavior for registry slots and singleton caches.

    The mode is chosen once on ``InjectorBuilder`` and applied uniformly to
    every provider and registry slot by ``build()``.
    """

    THREAD = "thread"
    """Guard slot checkout/reclaim and singleton initialization with ``threading.Lock``."""

    NONE = "none"
    """Disable locking for injectors that never cross a thread boundary."""


def make_lock(lock_mode: LockMode) -> AbstractContextManager[Any]:
    """Return a lock object for the given mode.

    ``LockMode.NONE`` yields a reusable no-op context manager.
    """
    if lock_mode is LockMode.THREAD:
        return threading.Lock()
    return nullcontext()
