"""Read-only resolution of components from a validated set of bindings.

A :class:`Context` is only ever produced by
:meth:`~spindle.config.ContextConfig.get_context`, after the dependency
graph has been validated, so resolving a bound key never fails for lack of
a dependency. Nothing is cached: class bindings are built afresh on every
lookup, instance bindings always yield the same object.
"""

import logging
from typing import Any, Mapping

from spindle.descriptor import ComponentDescriptor
from spindle.domain import (
    NOT_FOUND,
    ComponentKey,
    DependencyReference,
    Found,
    Resolution,
    reference_to,
)
from spindle.errors import IllegalComponentError

__all__ = ["Context"]

logger = logging.getLogger(__name__)


class Context:
    """
    Resolves components by key.

    Keys may be given as a bare type, ``Annotated[T, qualifier]``,
    ``Provider[T]`` or a :class:`~spindle.domain.ComponentKey`.

    Example:
        >>> context.get(Database)                         # Found(<Database>)
        >>> context.get(Annotated[Database, Named("ro")]) # qualified
        >>> context.get(Provider[Database]).get()()       # deferred
        >>> context[Database]                             # raises KeyError if unbound
    """

    def __init__(self, descriptors: Mapping[ComponentKey, ComponentDescriptor]):
        self._descriptors = descriptors

    def get(self, key: Any) -> Resolution:
        """Look up a component.

        Returns:
            ``Found(value)`` for a bound key, or ``NOT_FOUND`` if the key is not
            bound or asks for a container other than ``Provider``.
        """
        reference = _as_reference(key)
        if reference is None or reference.key not in self._descriptors:
            logger.debug("No component bound for %s", key)
            return NOT_FOUND
        return Found(self.resolve(reference))

    def resolve(self, reference: DependencyReference) -> Any:
        """Produce the value for a reference known to be bound."""
        if reference.lazy:
            return _DeferredProvider(self, reference.key)
        logger.debug("Resolving %s", reference.key)
        return self._descriptors[reference.key].provide(self)

    def __getitem__(self, key: Any) -> Any:
        resolution = self.get(key)
        if not resolution.present:
            raise KeyError(key)
        return resolution.get()

    def __contains__(self, key: Any) -> bool:
        reference = _as_reference(key)
        return reference is not None and reference.key in self._descriptors

    def __len__(self):
        return len(self._descriptors)


class _DeferredProvider:
    """Zero-argument callable resolving a key each time it is called."""

    def __init__(self, context: Context, key: ComponentKey):
        self._context = context
        self._key = key

    def __call__(self) -> Any:
        return self._context.resolve(DependencyReference(self._key))

    def __repr__(self):
        return f"Provider[{self._key}]"


def _as_reference(key: Any):
    if isinstance(key, ComponentKey):
        return DependencyReference(key)
    if isinstance(key, DependencyReference):
        return key
    try:
        return reference_to(key)
    except IllegalComponentError:
        return None
