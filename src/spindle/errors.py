"""Exceptions raised while binding, validating and resolving components."""

from typing import Any, Iterable

__all__ = [
    "DependencyError",
    "IllegalComponentError",
    "DependencyNotFoundError",
    "CyclicDependencyError",
]


class DependencyError(Exception):
    """Base class for every error raised by the framework."""

    pass


class IllegalComponentError(DependencyError):
    """Raised at bind time when a component cannot be described for injection.

    Attributes:
        component: The class, function or qualifier that was rejected.
        reason: Human-readable explanation of what is wrong with it.
    """

    def __init__(self, component: Any, reason: str):
        super().__init__(f"Illegal component {component!r}: {reason}")
        self.component = component
        self.reason = reason


class DependencyNotFoundError(DependencyError):
    """Raised by validation when a declared dependency has no binding.

    Attributes:
        component: Key of the binding that declared the dependency.
        dependency: Key of the dependency that could not be found.
    """

    def __init__(self, component, dependency):
        super().__init__(
            f"Dependency {dependency} of component {component} is not bound"
        )
        self.component = component
        self.dependency = dependency


class CyclicDependencyError(DependencyError):
    """Raised by validation when direct dependencies form a closed loop.

    Attributes:
        components: The distinct keys taking part in the cycle.
    """

    def __init__(self, components: Iterable):
        self.components = frozenset(components)
        super().__init__(
            "Cyclic dependencies found between "
            f"{sorted(str(component) for component in self.components)}"
        )
