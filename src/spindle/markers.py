"""Markers that flag classes, members and annotations for injection.

The markers are plain attributes and ``typing.Annotated`` metadata; they are
read once, when a component is bound, and never inspected again.

Example:
    >>> class Service:
    ...     repository: Annotated[Repository, Inject]
    ...
    ...     @inject
    ...     def __init__(self, clock: Clock, audit: Annotated[Log, Named("audit")]):
    ...         ...
    ...
    ...     @inject
    ...     def install(self, cache: Provider[Cache]):
    ...         ...
"""

import inspect
from dataclasses import dataclass
from typing import Any, Protocol, TypeVar

from spindle.errors import IllegalComponentError

__all__ = ["Inject", "inject", "is_injectable", "qualifier", "is_qualifier", "Named", "Provider"]

T = TypeVar("T", covariant=True)

_INJECT_FLAG = "__inject__"
_QUALIFIER_FLAG = "__qualifier__"


class Inject:
    """``Annotated`` metadata marking a class attribute as an injectable field."""

    def __init__(self):
        raise TypeError("Inject is a marker and cannot be instantiated")


class Provider(Protocol[T]):
    """A deferred factory: calling it resolves the wrapped component.

    Declaring a dependency as ``Provider[T]`` instead of ``T`` defers its
    resolution until the provider is called, which is the only sanctioned
    way of closing a loop between components.
    """

    def __call__(self) -> T: ...


def inject(target):
    """Mark a constructor, alternate constructor or method as an injection point.

    Applied to a class, the class's own ``__init__`` is marked, which is the
    usual way of injecting through a dataclass-generated constructor.

    Raises:
        IllegalComponentError: If the target is a class without its own
            ``__init__``, or is not a class, function or classmethod.
    """
    if inspect.isclass(target):
        init = vars(target).get("__init__")
        if init is None:
            raise IllegalComponentError(
                target, "@inject on a class requires the class to declare __init__"
            )
        setattr(init, _INJECT_FLAG, True)
        return target

    if isinstance(target, classmethod):
        setattr(target.__func__, _INJECT_FLAG, True)
        return target

    if inspect.isfunction(target):
        setattr(target, _INJECT_FLAG, True)
        return target

    raise IllegalComponentError(
        target, "only classes, functions and classmethods can be marked with @inject"
    )


def is_injectable(member: Any) -> bool:
    if isinstance(member, classmethod):
        member = member.__func__
    return getattr(member, _INJECT_FLAG, False) is True


def qualifier(cls):
    """Class decorator declaring a qualifier kind.

    Instances of a qualifier kind distinguish several bindings of the same
    type, so they must be hashable; frozen dataclasses are the natural fit.
    """
    setattr(cls, _QUALIFIER_FLAG, True)
    return cls


def is_qualifier(value: Any) -> bool:
    return not inspect.isclass(value) and getattr(type(value), _QUALIFIER_FLAG, False) is True


@qualifier
@dataclass(frozen=True)
class Named:
    """Qualifier distinguishing bindings by name."""

    value: str

    def __str__(self):
        return f"@Named({self.value!r})"
