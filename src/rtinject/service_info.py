from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class ServiceInfo:
    """Identify a requested service by its dependency key.

    Equality and hashing use ``key`` only. ``name`` exists for diagnostics.
    """

    key: Any
    """The dependency key, usually a class."""
    name: str = field(compare=False)
    """Human-readable name used in error messages."""

    @classmethod
    def of(cls, key: Any) -> ServiceInfo:
        """Build the identity of a dependency key."""
        return cls(key=key, name=display_name(key))

    def __repr__(self) -> str:
        return f"ServiceInfo({self.name})"


def display_name(key: Any) -> str:
    """Return ``module.QualName`` for classes and ``repr`` for other keys."""
    if isinstance(key, type):
        module = key.__module__
        if module == "builtins":
            return key.__qualname__
        return f"{module}.{key.__qualname__}"
    return repr(key)
