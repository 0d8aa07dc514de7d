"""Domain models used throughout the framework."""

import enum
from dataclasses import dataclass
from typing import Annotated, Any, ClassVar, Generic, Optional, TypeVar, Union, get_args, get_origin

from spindle.errors import IllegalComponentError
from spindle.markers import Provider, is_qualifier

__all__ = [
    "ComponentKey",
    "Indirection",
    "DependencyReference",
    "reference_to",
    "Found",
    "NotFound",
    "NOT_FOUND",
    "Resolution",
]

V = TypeVar("V")


@dataclass(frozen=True)
class ComponentKey:
    """Identity of a binding: the requested type plus an optional qualifier.

    Attributes:
        type: The requested type, as declared by the binding or injection point.
        qualifier: A qualifier instance distinguishing bindings of the same type.
    """

    type: Any
    qualifier: Optional[Any] = None

    @staticmethod
    def of(annotation: Any, qualifier: Optional[Any] = None) -> "ComponentKey":
        """Build a key from a type, reading any qualifier from ``Annotated`` metadata.

        Example:
            >>> ComponentKey.of(Annotated[Database, Named("reporting")])
            ComponentKey(type=Database, qualifier=Named(value='reporting'))
        """
        base_type, qualifiers = _unwrap(annotation)
        return ComponentKey(base_type, _single_qualifier(annotation, qualifiers, qualifier))

    def __str__(self):
        name = getattr(self.type, "__qualname__", None) or repr(self.type)
        if self.qualifier is None:
            return name
        return f"{name} {self.qualifier}"


class Indirection(enum.Enum):
    """How an injection point wants its dependency delivered."""

    DIRECT = "direct"
    LAZY = "lazy"


@dataclass(frozen=True)
class DependencyReference:
    """A dependency declared by a component.

    ``LAZY`` references are satisfied with a zero-argument callable rather
    than a value; they must still point at a binding, but they never close
    a cycle.
    """

    key: ComponentKey
    indirection: Indirection = Indirection.DIRECT

    @property
    def lazy(self) -> bool:
        return self.indirection is Indirection.LAZY


def reference_to(annotation: Any, qualifier: Optional[Any] = None) -> Optional[DependencyReference]:
    """Classify an annotation as a direct or lazy reference to a component.

    Args:
        annotation: A type, ``Annotated[T, ...]`` or ``Provider[T]`` (in either nesting).
        qualifier: An additional qualifier supplied outside the annotation.

    Returns:
        The reference, or None if the annotation wraps the component in a
        container other than :class:`~spindle.markers.Provider`.

    Raises:
        IllegalComponentError: If more than one qualifier applies.
    """
    base_type, qualifiers = _unwrap(annotation)
    indirection = Indirection.DIRECT

    if get_origin(base_type) is Provider:
        (wrapped,) = get_args(base_type)
        base_type, inner_qualifiers = _unwrap(wrapped)
        qualifiers = qualifiers + inner_qualifiers
        indirection = Indirection.LAZY

    if get_origin(base_type) is not None:
        return None

    return DependencyReference(
        ComponentKey(base_type, _single_qualifier(annotation, qualifiers, qualifier)),
        indirection,
    )


def _unwrap(annotation: Any) -> tuple[Any, list[Any]]:
    if get_origin(annotation) is Annotated:
        base_type, *metadata = get_args(annotation)
        return base_type, [m for m in metadata if is_qualifier(m)]
    return annotation, []


def _single_qualifier(annotation, qualifiers: list[Any], extra: Optional[Any]) -> Optional[Any]:
    if extra is not None:
        qualifiers = qualifiers + [extra]
    if len(qualifiers) > 1:
        raise IllegalComponentError(
            annotation, f"more than one qualifier given: {qualifiers}"
        )
    return next(iter(qualifiers), None)


@dataclass(frozen=True)
class Found(Generic[V]):
    """A successful lookup."""

    value: V
    present: ClassVar[bool] = True

    def get(self) -> V:
        return self.value

    def or_else(self, default: Any) -> V:
        return self.value


@dataclass(frozen=True)
class NotFound:
    """A lookup for a key that is not bound, or asks for an unsupported container."""

    present: ClassVar[bool] = False

    def get(self):
        raise LookupError("No component found")

    def or_else(self, default: Any) -> Any:
        return default


NOT_FOUND = NotFound()

Resolution = Union[Found, NotFound]
