"""Validation of the dependency graph formed by a set of bindings.

Each node is a bound :class:`~spindle.domain.ComponentKey`; each edge is a
:class:`~spindle.domain.DependencyReference` declared by that binding.
Validation walks every node depth-first, in insertion order, and raises on
the first missing binding or direct cycle it meets. Lazy edges must point
at a bound key, but are never followed, so they cannot close a cycle.
"""

import logging
from typing import Iterable, Iterator

from spindle.domain import ComponentKey, DependencyReference
from spindle.errors import CyclicDependencyError, DependencyNotFoundError

__all__ = ["DependencyGraph"]

logger = logging.getLogger(__name__)


class DependencyGraph:
    """Adjacency lists of dependency references, keyed by component."""

    def __init__(self):
        self._dependencies: dict[ComponentKey, tuple[DependencyReference, ...]] = {}

    def add_dependencies(
        self, component: ComponentKey, dependencies: Iterable[DependencyReference]
    ):
        """
        Register the dependencies declared by a component.

        Args:
            component: The key the component is bound under.
            dependencies: References in declaration order.
        """
        self._dependencies[component] = tuple(dependencies)

    def __contains__(self, component: ComponentKey) -> bool:
        return component in self._dependencies

    def validate(self):
        """
        Check that every dependency is bound and that no direct cycle exists.

        Raises:
            DependencyNotFoundError: If a reference points at an unbound key.
            CyclicDependencyError: If direct references lead back to a key
                that is still being visited.
        """
        validated: set[ComponentKey] = set()
        for component in self._dependencies:
            if component not in validated:
                self._visit(component, validated)
        logger.debug("Validated dependency graph of %d components", len(validated))

    def _visit(self, root: ComponentKey, validated: set[ComponentKey]):
        """
        Depth-first walk from ``root`` with an explicit stack.

        Keys whose whole subgraph has been walked are added to ``validated``;
        they cannot take part in an undiscovered cycle, so later walks stop there.
        """
        path: list[ComponentKey] = [root]
        pending: list[Iterator[DependencyReference]] = [iter(self._dependencies[root])]

        while pending:
            reference = next(pending[-1], None)
            if reference is None:
                pending.pop()
                validated.add(path.pop())
                continue

            owner = path[-1]
            dependency = reference.key
            if dependency not in self._dependencies:
                raise DependencyNotFoundError(owner, dependency)
            if reference.lazy or dependency in validated:
                continue
            if dependency in path:
                raise CyclicDependencyError(path[path.index(dependency):])

            path.append(dependency)
            pending.append(iter(self._dependencies[dependency]))
