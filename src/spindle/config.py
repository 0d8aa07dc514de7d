"""Binding registry: declare components, then validate them into a context.

Bindings are accumulated on a :class:`ContextConfig`. Every binding's
descriptor is built as soon as it is bound, so malformed components fail
immediately with :class:`~spindle.errors.IllegalComponentError`. Calling
:meth:`ContextConfig.get_context` validates the whole dependency graph and
returns a read-only :class:`~spindle.context.Context`.

Example:
    >>> config = ContextConfig()
    >>> config.bind(Clock, SystemClock())
    >>> config.bind(Repository, SqlRepository, Named("primary"))
    >>>
    >>> @config.provides(profiles=["!test"])
    >>> def make_mailer(clock: Clock) -> Mailer:
    ...     return SmtpMailer(clock)
    >>>
    >>> context = config.get_context({"prod"})
    >>> repository = context[Annotated[Repository, Named("primary")]]
"""

import inspect
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Iterable, Optional

from spindle.context import Context
from spindle.descriptor import (
    ComponentDescriptor,
    FunctionDescriptor,
    InjectionDescriptor,
    InstanceDescriptor,
)
from spindle.domain import ComponentKey
from spindle.errors import IllegalComponentError
from spindle.graph import DependencyGraph
from spindle.markers import is_qualifier

__all__ = ["Binding", "ContextConfig"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Binding:
    """A key bound to a descriptor, active under the given profiles.

    Attributes:
        key: The type and qualifier the binding satisfies.
        descriptor: Describes the dependencies and how to produce the component.
        profiles: Profile patterns under which the binding is active. Empty
            means active in all profiles; ``"!name"`` excludes a profile.
    """

    key: ComponentKey
    descriptor: ComponentDescriptor
    profiles: tuple[str, ...] = ()


class ContextConfig:
    """Registry of bindings, supporting profile-based selection."""

    def __init__(self):
        self._bindings: list[Binding] = []

    def bind(self, type_: Any, target: Any, *qualifiers: Any, profiles: Optional[list[str]] = None):
        """Bind a type to an implementation class or to a pre-built instance.

        Classes are bound as components built by injection; anything else is
        bound as an instance. Use :meth:`bind_instance` to bind a class object
        itself as a value.

        Args:
            type_: The type requested by dependents.
            target: An implementation class or an instance.
            *qualifiers: Qualifier values; one binding is registered per qualifier.
            profiles: Optional list of profiles for which the binding is active.

        Raises:
            IllegalComponentError: If a qualifier is not a qualifier kind, or the
                implementation class cannot be injected.
        """
        if inspect.isclass(target):
            self.bind_component(type_, target, *qualifiers, profiles=profiles)
        else:
            self.bind_instance(type_, target, *qualifiers, profiles=profiles)

    def bind_instance(self, type_: Any, instance: Any, *qualifiers: Any, profiles: Optional[list[str]] = None):
        _check_qualifiers(instance, qualifiers)
        self._register(type_, InstanceDescriptor(instance), qualifiers, profiles)

    def bind_component(self, type_: Any, implementation: type, *qualifiers: Any, profiles: Optional[list[str]] = None):
        _check_qualifiers(implementation, qualifiers)
        self._register(type_, InjectionDescriptor(implementation), qualifiers, profiles)

    def bind_factory(self, type_: Optional[Any], func: Callable, *qualifiers: Any, profiles: Optional[list[str]] = None):
        """Bind a type to a provider function, called on every resolution.

        Args:
            type_: The type requested by dependents; if None, the function's
                return annotation is used.
            func: The provider function; its annotated parameters are its dependencies.

        Raises:
            IllegalComponentError: If no type is given and the function has no
                return annotation, or a parameter cannot be injected.
        """
        _check_qualifiers(func, qualifiers)
        descriptor = FunctionDescriptor(func)
        if type_ is None:
            type_ = descriptor.provided_type
        if type_ is None:
            raise IllegalComponentError(
                func, "no type given and the function has no return annotation"
            )
        self._register(type_, descriptor, qualifiers, profiles)

    def provides(self, type_: Optional[Any] = None, *qualifiers: Any, profiles: Optional[list[str]] = None) -> Callable:
        """Decorator to bind a class or provider function.

        Args:
            type_: The type to bind; defaults to the class itself, or the
                function's return annotation.
            *qualifiers: Qualifier values for the binding.
            profiles: Optional list of profiles for which the binding is active.

        Returns:
            A decorator that binds its target and returns it unchanged.

        Example:
            @config.provides(Cache, Named("local"), profiles=["dev"])
            class InMemoryCache:
                ...
        """

        def decorator(obj):
            if inspect.isclass(obj):
                self.bind_component(type_ or obj, obj, *qualifiers, profiles=profiles)
            elif inspect.isfunction(obj):
                self.bind_factory(type_, obj, *qualifiers, profiles=profiles)
            else:
                raise IllegalComponentError(obj, "not a class or function")
            return obj

        return decorator

    def registered_bindings(self, profiles: Optional[set[str]] = None) -> list[Binding]:
        """Retrieve bindings in registration order, optionally filtered by active profiles.

        Args:
            profiles: A set of active profile names. If None, returns all bindings.
        """
        if profiles is None:
            return list(self._bindings)
        return [b for b in self._bindings if _profiles_match(b.profiles, profiles)]

    def get_context(self, profiles: Optional[set[str]] = None) -> Context:
        """Validate the selected bindings and return a context resolving them.

        Later bindings of an identical key replace earlier ones. The context
        holds a read-only snapshot, so binding more components afterwards
        does not affect it.

        Args:
            profiles: An optional set of profile names used to select bindings.

        Raises:
            DependencyNotFoundError: If a binding depends on an unbound key.
            CyclicDependencyError: If bindings depend on each other directly in a loop.
        """
        descriptors: dict[ComponentKey, ComponentDescriptor] = {}
        for binding in self.registered_bindings(profiles):
            if binding.key in descriptors:
                logger.warning(
                    "Binding %r for %s replaces %r",
                    binding.descriptor,
                    binding.key,
                    descriptors[binding.key],
                )
            descriptors[binding.key] = binding.descriptor

        graph = DependencyGraph()
        for key, descriptor in descriptors.items():
            graph.add_dependencies(key, descriptor.dependencies)
        graph.validate()

        logger.debug("Created context of %d bindings for profiles %s", len(descriptors), profiles)
        return Context(MappingProxyType(descriptors))

    def _register(self, type_, descriptor: ComponentDescriptor, qualifiers: tuple, profiles: Optional[list[str]]):
        keys = [ComponentKey.of(type_, q) for q in qualifiers] or [ComponentKey.of(type_)]
        for key in keys:
            binding = Binding(key, descriptor, tuple(profiles or ()))
            self._bindings.append(binding)
            logger.debug("Bound %s to %r in profiles %s", key, descriptor, binding.profiles)


def _check_qualifiers(target: Any, qualifiers: Iterable[Any]):
    for value in qualifiers:
        if not is_qualifier(value):
            raise IllegalComponentError(target, f"{value!r} is not a qualifier")


def _profiles_match(stated: tuple[str, ...], selected: set[str]) -> bool:
    """Check if a binding's profile patterns match the selected profiles.

    Example:
        >>> _profiles_match(("dev",), {"dev"})      # True
        >>> _profiles_match(("!test",), {"dev"})    # True
        >>> _profiles_match(("!test",), {"test"})   # False
        >>> _profiles_match(("prod",), {"dev"})     # False
    """
    provided = [p for p in stated if not p.startswith("!")]
    excluded = [p[1:] for p in stated if p.startswith("!")]

    return not any(e in selected for e in excluded) and (
        not provided or any(p in selected for p in provided)
    )
