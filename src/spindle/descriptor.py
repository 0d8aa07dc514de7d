"""Component descriptors: what a component needs, and how to build it.

A descriptor is computed once, when a component is bound, and exposes two
things to the rest of the framework:

    - ``dependencies``: the ordered references the component requires, which
      the dependency graph validates before anything is constructed.
    - ``provide(resolver)``: a factory producing a fully wired instance,
      obtaining each dependency from the resolver.

:class:`InjectionDescriptor` derives both from a class by looking for
injection points (see :mod:`spindle.markers`). Injection happens in a fixed
order: the selected constructor, then every injectable field along the
class hierarchy, then every injectable method, superclass methods first.
"""

import inspect
import logging
from dataclasses import dataclass
from typing import (
    Annotated,
    Any,
    Callable,
    ClassVar,
    Final,
    Optional,
    Protocol,
    TypeVar,
    get_args,
    get_origin,
    get_type_hints,
)

from spindle.domain import DependencyReference, reference_to
from spindle.errors import IllegalComponentError
from spindle.markers import Inject, is_injectable

__all__ = [
    "Resolver",
    "ComponentDescriptor",
    "InstanceDescriptor",
    "InjectionDescriptor",
    "FunctionDescriptor",
]

logger = logging.getLogger(__name__)

_VARIADIC = (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)


class Resolver(Protocol):
    """Supplies the value for a dependency reference while a component is built."""

    def resolve(self, reference: DependencyReference) -> Any: ...


class ComponentDescriptor(Protocol):
    """Capability every binding exposes to the registry and the context."""

    dependencies: tuple[DependencyReference, ...]

    def provide(self, resolver: Resolver) -> Any: ...


class InstanceDescriptor:
    """Describes a pre-built value: no dependencies, always the same object."""

    dependencies: tuple[DependencyReference, ...] = ()

    def __init__(self, value: Any):
        self.value = value

    def provide(self, resolver: Resolver) -> Any:
        return self.value

    def __repr__(self):
        return f"InstanceDescriptor({self.value!r})"


@dataclass(frozen=True)
class _Parameter:
    name: str
    kind: Any
    reference: DependencyReference


@dataclass(frozen=True)
class _Invocation:
    """A callable together with the references its parameters are resolved from."""

    target: Callable
    parameters: tuple[_Parameter, ...]

    @property
    def references(self) -> list[DependencyReference]:
        return [parameter.reference for parameter in self.parameters]

    def invoke(self, resolver: Resolver, *leading: Any) -> Any:
        args = list(leading)
        kwargs = {}
        for parameter in self.parameters:
            value = resolver.resolve(parameter.reference)
            if parameter.kind is inspect.Parameter.KEYWORD_ONLY:
                kwargs[parameter.name] = value
            else:
                args.append(value)
        return self.target(*args, **kwargs)


@dataclass(frozen=True)
class _Field:
    name: str
    reference: DependencyReference


class InjectionDescriptor:
    """Describes a class whose instances are built through its injection points.

    Raises:
        IllegalComponentError: If the class is abstract or a protocol, has no
            usable constructor, declares an immutable injectable field, or an
            injectable method with type parameters of its own.
    """

    def __init__(self, implementation: Any):
        if not inspect.isclass(implementation):
            raise IllegalComponentError(implementation, "not a class")
        if inspect.isabstract(implementation) or _is_protocol(implementation):
            raise IllegalComponentError(
                implementation, "abstract classes and protocols cannot be instantiated"
            )

        self.implementation = implementation
        self._constructor = _select_constructor(implementation)
        self._fields = _collect_fields(implementation)
        self._methods = _collect_methods(implementation)

        self.dependencies: tuple[DependencyReference, ...] = (
            *self._constructor.references,
            *(field.reference for field in self._fields),
            *(reference for method in self._methods for reference in method.references),
        )
        logger.debug(
            "Described %s with %d field(s), %d method(s) and %d dependencies",
            implementation.__qualname__,
            len(self._fields),
            len(self._methods),
            len(self.dependencies),
        )

    def provide(self, resolver: Resolver) -> Any:
        instance = self._constructor.invoke(resolver)
        for field in self._fields:
            setattr(instance, field.name, resolver.resolve(field.reference))
        for method in self._methods:
            method.invoke(resolver, instance)
        return instance

    def __repr__(self):
        return f"InjectionDescriptor({self.implementation.__qualname__})"


class FunctionDescriptor:
    """Describes a provider function whose parameters are its dependencies.

    Example:
        >>> def make_repository(database: Database) -> Repository:
        ...     return SqlRepository(database)
        >>> FunctionDescriptor(make_repository).provided_type
        <class 'Repository'>
    """

    def __init__(self, func: Callable):
        if not inspect.isfunction(func):
            raise IllegalComponentError(func, "not a function")
        self.func = func
        self._invocation = _Invocation(func, _parameters(func, func, skip_first=False))
        self.dependencies: tuple[DependencyReference, ...] = tuple(
            self._invocation.references
        )
        self.provided_type: Optional[Any] = _resolved_hints(func, func).get("return")

    def provide(self, resolver: Resolver) -> Any:
        return self._invocation.invoke(resolver)

    def __repr__(self):
        return f"FunctionDescriptor({self.func.__qualname__})"


def _is_protocol(cls: Any) -> bool:
    return getattr(cls, "_is_protocol", False) is True


def _hierarchy(cls: type) -> list[type]:
    """The class and its ancestors, most-derived first, excluding ``object``."""
    return [klass for klass in cls.__mro__ if klass is not object]


def _select_constructor(cls: type) -> _Invocation:
    """Select the single injectable constructor, or fall back to a zero-argument one.

    Candidates are the effective ``__init__`` and any alternate-constructor
    classmethods along the hierarchy, each flagged with ``@inject``.
    """
    candidates: list[_Invocation] = []

    init = cls.__init__
    if is_injectable(init):
        candidates.append(_Invocation(cls, _parameters(cls, init, skip_first=True)))

    shadowed: set[str] = set()
    for klass in _hierarchy(cls):
        for name, member in vars(klass).items():
            if name in shadowed:
                continue
            shadowed.add(name)
            if isinstance(member, classmethod) and is_injectable(member):
                candidates.append(
                    _Invocation(
                        member.__get__(None, cls),
                        _parameters(cls, member.__func__, skip_first=True),
                    )
                )

    if len(candidates) > 1:
        raise IllegalComponentError(cls, "more than one @inject constructor")
    if candidates:
        return candidates[0]

    try:
        signature = inspect.signature(cls)
    except (TypeError, ValueError) as e:
        raise IllegalComponentError(cls, f"constructor cannot be inspected: {e}") from e
    if any(
        parameter.default is inspect.Parameter.empty and parameter.kind not in _VARIADIC
        for parameter in signature.parameters.values()
    ):
        raise IllegalComponentError(
            cls, "no @inject constructor and no zero-argument constructor"
        )
    return _Invocation(cls, ())


def _collect_fields(cls: type) -> list[_Field]:
    fields: list[_Field] = []
    shadowed: set[str] = set()

    for klass in _hierarchy(cls):
        frozen = "__dataclass_params__" in vars(klass) and klass.__dataclass_params__.frozen
        for name, annotation in _resolved_annotations(cls, klass).items():
            if name in shadowed:
                continue
            shadowed.add(name)
            if not _marked_inject(annotation):
                continue
            if frozen or _is_immutable(annotation):
                raise IllegalComponentError(
                    cls, f"injectable field {klass.__qualname__}.{name} is immutable"
                )
            reference = reference_to(annotation)
            if reference is None:
                raise IllegalComponentError(
                    cls, f"field {klass.__qualname__}.{name} uses an unsupported container"
                )
            fields.append(_Field(name, reference))

    return fields


def _marked_inject(annotation: Any) -> bool:
    origin = get_origin(annotation)
    if origin is Annotated:
        base_type, *metadata = get_args(annotation)
        return any(m is Inject for m in metadata) or _marked_inject(base_type)
    if origin in (Final, ClassVar):
        return any(_marked_inject(arg) for arg in get_args(annotation))
    return False


def _is_immutable(annotation: Any) -> bool:
    if annotation in (Final, ClassVar):
        return True
    origin = get_origin(annotation)
    if origin in (Final, ClassVar):
        return True
    if origin is Annotated:
        return _is_immutable(get_args(annotation)[0])
    return False


def _collect_methods(cls: type) -> list[_Invocation]:
    """Collect injectable methods, superclass methods first.

    A method is dropped when a more-derived class already contributed the
    same signature, or when ``cls`` itself overrides that signature without
    ``@inject``.
    """
    overridden_without_inject = [
        _method_signature(name, function)
        for name, function in _functions(cls)
        if not is_injectable(function)
    ]

    collected: list[tuple[str, tuple]] = []
    levels: list[list[_Invocation]] = []
    for klass in _hierarchy(cls):
        level = []
        for name, function in _functions(klass):
            if name == "__init__" or not is_injectable(function):
                continue
            signature = _method_signature(name, function)
            if signature in collected or signature in overridden_without_inject:
                continue
            collected.append(signature)
            if _declares_type_parameters(cls, function):
                raise IllegalComponentError(
                    cls, f"injectable method {function.__qualname__} is generic"
                )
            level.append(_Invocation(function, _parameters(cls, function, skip_first=True)))
        levels.append(level)

    return [method for level in reversed(levels) for method in level]


def _functions(klass: type) -> list[tuple[str, Callable]]:
    return [
        (name, member)
        for name, member in vars(klass).items()
        if inspect.isfunction(member)
    ]


def _method_signature(name: str, function: Callable) -> tuple[str, tuple]:
    """The method name and its resolved parameter types after ``self``.

    Annotations that cannot be resolved are compared as written.
    """
    parameters = list(inspect.signature(function).parameters.values())[1:]
    try:
        hints = get_type_hints(function, include_extras=True)
    except NameError:
        hints = {}
    return name, tuple(hints.get(parameter.name, parameter.annotation) for parameter in parameters)


def _declares_type_parameters(owner: type, function: Callable) -> bool:
    if getattr(function, "__type_params__", ()):
        return True
    hints = _resolved_hints(owner, function)
    return any(
        _contains_type_var(annotation)
        for name, annotation in hints.items()
        if name != "return"
    )


def _contains_type_var(annotation: Any) -> bool:
    if isinstance(annotation, TypeVar):
        return True
    return any(_contains_type_var(arg) for arg in get_args(annotation))


def _resolved_annotations(owner: type, klass: type) -> dict[str, Any]:
    try:
        return inspect.get_annotations(klass, eval_str=True)
    except NameError as e:
        raise IllegalComponentError(owner, f"cannot resolve annotations: {e}") from e


def _resolved_hints(owner: Any, function: Callable) -> dict[str, Any]:
    try:
        return get_type_hints(function, include_extras=True)
    except NameError as e:
        raise IllegalComponentError(owner, f"cannot resolve annotations: {e}") from e


def _parameters(owner: Any, function: Callable, skip_first: bool) -> tuple[_Parameter, ...]:
    """Turn the parameters of an injection point into dependency references.

    Raises:
        IllegalComponentError: If a parameter is variadic, unannotated, or
            wrapped in a container other than ``Provider``.
    """
    hints = _resolved_hints(owner, function)
    parameters = list(inspect.signature(function).parameters.values())
    if skip_first:
        parameters = parameters[1:]

    result = []
    for parameter in parameters:
        if parameter.kind in _VARIADIC:
            raise IllegalComponentError(
                owner,
                f"injection point {function.__qualname__} declares variadic "
                f"parameter {parameter.name}",
            )
        if parameter.name not in hints:
            raise IllegalComponentError(
                owner,
                f"dependency <{parameter.name}> of {function.__qualname__} is not annotated",
            )
        reference = reference_to(hints[parameter.name])
        if reference is None:
            raise IllegalComponentError(
                owner,
                f"dependency <{parameter.name}> of {function.__qualname__} "
                "uses an unsupported container",
            )
        result.append(_Parameter(parameter.name, parameter.kind, reference))
    return tuple(result)
