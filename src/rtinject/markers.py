from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Annotated, Any, TypeVar, get_args, get_origin

T = TypeVar("T")
_ANNOTATED_MARKER_MIN_ARGS = 2


@dataclass(frozen=True)
class RequestMarker:
    """Base of the ``Annotated`` metadata that selects a request shape.

    ``inner`` keeps the full nested request so that shapes compose even though
    ``Annotated`` flattens nested metadata. The last marker in the metadata is
    the outermost shape.
    """

    inner: Any


@dataclass(frozen=True)
class MaybeMarker(RequestMarker):
    """Marker that turns a missing provider into ``None``."""


@dataclass(frozen=True)
class OwnedMarker(RequestMarker):
    """Marker for an exclusively-owned instance."""


@dataclass(frozen=True)
class AllMarker(RequestMarker):
    """Marker for eagerly collecting every implementation."""


@dataclass(frozen=True)
class ServicesMarker(RequestMarker):
    """Marker for a lazy, single-pass sequence of implementations."""


@dataclass(frozen=True)
class ArgMarker(RequestMarker):
    """Marker for a scoped argument routed to the requesting service."""


@dataclass(frozen=True)
class FactoryMarker(RequestMarker):
    """Marker for a deferred request bound to the current injector and context."""


if TYPE_CHECKING:
    Maybe = T | None  # type: ignore[misc]
    """Mark a request as optional.

    At runtime ``Maybe[T]`` becomes ``Annotated[T, MaybeMarker(T)]`` and
    resolves to ``None`` when no provider is registered.
    """

    Owned = T  # type: ignore[misc]
    """Request an exclusively-owned instance.

    Only providers that build a fresh instance per request (transient
    providers) support owned requests.
    """

    All = tuple[T, ...]
    """Resolve every implementation registered for a service.

    ``All[T]`` type-checks as ``tuple[T, ...]`` and resolves to an empty tuple
    when nothing is registered.
    """

    Arg = T  # type: ignore[misc]
    """Request a scoped argument configured for the requesting service."""

else:

    class Maybe:
        """Mark a request as optional.

        At runtime ``Maybe[T]`` resolves to ``Annotated[T, MaybeMarker(T)]``.

        Examples:
            .. code-block:: python

                class Service:
                    def __init__(self, cache: Maybe[Cache]) -> None:
                        self.cache = cache  # None when no Cache provider exists

        """

        def __class_getitem__(cls, item: Any) -> Any:
            return build_request_annotation(item, MaybeMarker(item))

    class Owned:
        """Request an exclusively-owned instance.

        At runtime ``Owned[T]`` resolves to ``Annotated[T, OwnedMarker(T)]``.
        Combine with ``Maybe``, ``All`` or ``Services`` for optional and
        collection variants.
        """

        def __class_getitem__(cls, item: Any) -> Any:
            return build_request_annotation(item, OwnedMarker(item))

    class All:
        """Resolve every implementation registered for a service.

        At runtime ``All[T]`` resolves to ``Annotated[T, AllMarker(T)]`` and
        produces a tuple. ``All[Owned[T]]`` collects owned instances and skips
        providers that only produce shared ones.
        """

        def __class_getitem__(cls, item: Any) -> Any:
            return build_request_annotation(item, AllMarker(item))

    class Arg:
        """Request a scoped argument configured for the requesting service.

        At runtime ``Arg[T]`` resolves to ``Annotated[T, ArgMarker(T)]``. The
        value is looked up under a key derived from the service on top of the
        request path and ``T``.

        Examples:
            .. code-block:: python

                class Greeter:
                    def __init__(self, greeting: Arg[str]) -> None:
                        self.greeting = greeting


                builder.provide(transient(Greeter))
                builder.with_arg(Greeter, "hello")

        """

        def __class_getitem__(cls, item: Any) -> Any:
            return build_request_annotation(item, ArgMarker(item))


def build_request_annotation(item: Any, marker: RequestMarker) -> Any:
    """Return ``Annotated[base, ..., marker]`` keeping the metadata of ``item``."""
    if get_origin(item) is Annotated:
        args = get_args(item)
        return build_annotated_key((args[0], *args[1:], marker))
    return build_annotated_key((item, marker))


def extract_request_marker(annotation: Any) -> RequestMarker | None:
    """Return the outermost request marker of an annotation, if any."""
    if get_origin(annotation) is not Annotated:
        return None
    annotation_args = get_args(annotation)
    if len(annotation_args) < _ANNOTATED_MARKER_MIN_ARGS:
        return None
    metadata = annotation_args[1:]
    return next(
        (item for item in reversed(metadata) if isinstance(item, RequestMarker)),
        None,
    )


def build_annotated_key(params: tuple[object, ...]) -> Any:
    """Return Annotated[...] with a pre-built params tuple (Py 3.10+ compatible)."""
    try:
        return Annotated.__class_getitem__(params)  # type: ignore[attr-defined]
    except AttributeError:
        return Annotated.__getitem__(params)  # type: ignore[attr-defined]
