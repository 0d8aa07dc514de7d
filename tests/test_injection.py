from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Annotated, ClassVar, Final, Protocol, TypeVar

import pytest

from spindle.descriptor import FunctionDescriptor, InjectionDescriptor, InstanceDescriptor
from spindle.domain import ComponentKey, DependencyReference, Indirection
from spindle.errors import IllegalComponentError
from spindle.markers import Inject, Named, Provider, inject

T = TypeVar("T")


class Dependency:
    pass


class AnotherDependency:
    pass


class StubResolver:
    def __init__(self, values):
        self.values = values

    def resolve(self, reference):
        value = self.values[reference.key]
        if reference.lazy:
            return lambda: value
        return value


def direct(type_, qualifier=None):
    return DependencyReference(ComponentKey(type_, qualifier))


def lazy(type_, qualifier=None):
    return DependencyReference(ComponentKey(type_, qualifier), Indirection.LAZY)


@pytest.fixture
def dependency():
    return Dependency()


@pytest.fixture
def another_dependency():
    return AnotherDependency()


@pytest.fixture
def resolver(dependency, another_dependency):
    return StubResolver(
        {
            ComponentKey(Dependency): dependency,
            ComponentKey(AnotherDependency): another_dependency,
            ComponentKey(Dependency, Named("chosen")): dependency,
        }
    )


# Constructor injection


class DefaultConstructor:
    pass


class InjectConstructor:
    @inject
    def __init__(self, dependency: Dependency):
        self.dependency = dependency


class ProviderInjectConstructor:
    @inject
    def __init__(self, dependency: Provider[Dependency]):
        self.dependency = dependency


class KeywordOnlyInjectConstructor:
    @inject
    def __init__(self, *, dependency: Dependency, another: AnotherDependency):
        self.dependency = dependency
        self.another = another


class InheritedInjectConstructor(InjectConstructor):
    pass


class AlternateConstructor:
    def __init__(self, dependency, source):
        self.dependency = dependency
        self.source = source

    @inject
    @classmethod
    def create(cls, dependency: Dependency):
        return cls(dependency, "create")


@inject
@dataclass
class DataclassConstructor:
    dependency: Dependency


def test_should_call_default_constructor_if_no_inject_constructor(resolver):
    descriptor = InjectionDescriptor(DefaultConstructor)

    assert isinstance(descriptor.provide(resolver), DefaultConstructor)
    assert descriptor.dependencies == ()


def test_should_inject_dependency_via_inject_constructor(resolver, dependency):
    descriptor = InjectionDescriptor(InjectConstructor)

    assert descriptor.provide(resolver).dependency is dependency
    assert descriptor.dependencies == (direct(Dependency),)


def test_should_inject_provider_via_inject_constructor(resolver, dependency):
    descriptor = InjectionDescriptor(ProviderInjectConstructor)

    assert descriptor.dependencies == (lazy(Dependency),)
    assert descriptor.provide(resolver).dependency() is dependency


def test_should_pass_keyword_only_constructor_parameters_by_name(
    resolver, dependency, another_dependency
):
    component = InjectionDescriptor(KeywordOnlyInjectConstructor).provide(resolver)

    assert component.dependency is dependency
    assert component.another is another_dependency


def test_should_use_inherited_inject_constructor(resolver, dependency):
    component = InjectionDescriptor(InheritedInjectConstructor).provide(resolver)

    assert isinstance(component, InheritedInjectConstructor)
    assert component.dependency is dependency


def test_should_inject_dependency_via_inject_classmethod(resolver, dependency):
    descriptor = InjectionDescriptor(AlternateConstructor)
    component = descriptor.provide(resolver)

    assert descriptor.dependencies == (direct(Dependency),)
    assert component.dependency is dependency
    assert component.source == "create"


def test_should_inject_dependency_via_dataclass_constructor(resolver, dependency):
    assert InjectionDescriptor(DataclassConstructor).provide(resolver).dependency is dependency


class AbstractComponent(ABC):
    @abstractmethod
    def run(self):
        pass


class ComponentProtocol(Protocol):
    def run(self) -> None: ...


class MultiInjectConstructors:
    @inject
    def __init__(self, dependency: Dependency):
        self.dependency = dependency

    @inject
    @classmethod
    def create(cls):
        return cls(Dependency())


class NoInjectNorDefaultConstructor:
    def __init__(self, name: str):
        self.name = name


class UnannotatedInjectConstructor:
    @inject
    def __init__(self, dependency):
        self.dependency = dependency


class VariadicInjectConstructor:
    @inject
    def __init__(self, *dependencies: Dependency):
        self.dependencies = dependencies


class UnsupportedContainerInjectConstructor:
    @inject
    def __init__(self, dependencies: list[Dependency]):
        self.dependencies = dependencies


@pytest.mark.parametrize(
    "implementation, reason",
    [
        (AbstractComponent, "abstract"),
        (ComponentProtocol, "protocols"),
        (MultiInjectConstructors, "more than one @inject constructor"),
        (NoInjectNorDefaultConstructor, "no zero-argument constructor"),
        (UnannotatedInjectConstructor, "not annotated"),
        (VariadicInjectConstructor, "variadic"),
        (UnsupportedContainerInjectConstructor, "unsupported container"),
    ],
)
def test_should_throw_exception_for_illegal_constructor(implementation, reason):
    with pytest.raises(IllegalComponentError, match=reason) as e:
        InjectionDescriptor(implementation)

    assert e.value.component is implementation


def test_should_throw_exception_if_component_is_not_a_class():
    with pytest.raises(IllegalComponentError, match="not a class"):
        InjectionDescriptor(Dependency())


def test_should_throw_exception_if_inject_marks_class_without_own_init():
    with pytest.raises(IllegalComponentError, match="declare __init__"):

        @inject
        class WithoutInit(InjectConstructor):
            pass


# Field injection


class ComponentWithFieldInjection:
    dependency: Annotated[Dependency, Inject]
    name: str = "not injected"


class SubclassWithFieldInjection(ComponentWithFieldInjection):
    another: Annotated[AnotherDependency, Inject]


class ProviderInjectField:
    dependency: Annotated[Provider[Dependency], Inject]


class QualifiedInjectField:
    dependency: Annotated[Dependency, Inject, Named("chosen")]


def test_should_inject_dependency_via_field(resolver, dependency):
    descriptor = InjectionDescriptor(ComponentWithFieldInjection)
    component = descriptor.provide(resolver)

    assert component.dependency is dependency
    assert component.name == "not injected"
    assert descriptor.dependencies == (direct(Dependency),)


def test_should_inject_dependency_via_superclass_inject_fields(
    resolver, dependency, another_dependency
):
    descriptor = InjectionDescriptor(SubclassWithFieldInjection)
    component = descriptor.provide(resolver)

    assert component.dependency is dependency
    assert component.another is another_dependency
    assert descriptor.dependencies == (direct(AnotherDependency), direct(Dependency))


def test_should_inject_provider_via_inject_field(resolver, dependency):
    descriptor = InjectionDescriptor(ProviderInjectField)

    assert descriptor.dependencies == (lazy(Dependency),)
    assert descriptor.provide(resolver).dependency() is dependency


def test_should_include_qualifier_from_inject_field(resolver, dependency):
    descriptor = InjectionDescriptor(QualifiedInjectField)

    assert descriptor.dependencies == (direct(Dependency, Named("chosen")),)
    assert descriptor.provide(resolver).dependency is dependency


class FinalInjectField:
    dependency: Final[Annotated[Dependency, Inject]]


class AnnotatedFinalInjectField:
    dependency: Annotated[Final[Dependency], Inject]


class ClassVarInjectField:
    dependency: ClassVar[Annotated[Dependency, Inject]]


@dataclass(frozen=True)
class FrozenDataclassInjectField:
    dependency: Annotated[Dependency, Inject] = None


@pytest.mark.parametrize(
    "implementation",
    [FinalInjectField, AnnotatedFinalInjectField, ClassVarInjectField, FrozenDataclassInjectField],
)
def test_should_throw_exception_if_inject_field_is_immutable(implementation):
    with pytest.raises(IllegalComponentError, match="is immutable"):
        InjectionDescriptor(implementation)


# Method injection


class InjectMethodWithNoDependency:
    called = False

    @inject
    def install(self):
        self.called = True


class InjectMethodWithDependency:
    @inject
    def install(self, dependency: Dependency):
        self.dependency = dependency


class SuperClassWithInjectMethod:
    super_called = 0

    @inject
    def install(self):
        self.super_called += 1


class SubclassWithInjectMethod(SuperClassWithInjectMethod):
    sub_called = 0

    @inject
    def install_another(self):
        self.sub_called = self.super_called + 1


class SubclassOverrideSuperClassWithInject(SuperClassWithInjectMethod):
    @inject
    def install(self):
        super().install()


class SubclassOverrideSuperClassWithNoInject(SuperClassWithInjectMethod):
    def install(self):
        super().install()


class ProviderInjectMethod:
    @inject
    def install(self, dependency: Provider[Dependency]):
        self.dependency = dependency


def test_should_call_inject_method_even_if_no_dependency_declared(resolver):
    assert InjectionDescriptor(InjectMethodWithNoDependency).provide(resolver).called


def test_should_inject_dependency_via_inject_method(resolver, dependency):
    descriptor = InjectionDescriptor(InjectMethodWithDependency)

    assert descriptor.provide(resolver).dependency is dependency
    assert descriptor.dependencies == (direct(Dependency),)


def test_should_inject_dependencies_via_inject_method_from_superclass(resolver):
    component = InjectionDescriptor(SubclassWithInjectMethod).provide(resolver)

    assert component.super_called == 1
    assert component.sub_called == 2


def test_should_only_call_once_if_subclass_inject_method_with_inject(resolver):
    component = InjectionDescriptor(SubclassOverrideSuperClassWithInject).provide(resolver)

    assert component.super_called == 1


def test_should_not_call_inject_method_if_override_with_no_inject(resolver):
    component = InjectionDescriptor(SubclassOverrideSuperClassWithNoInject).provide(resolver)

    assert component.super_called == 0


def test_should_inject_provider_via_inject_method(resolver, dependency):
    descriptor = InjectionDescriptor(ProviderInjectMethod)

    assert descriptor.dependencies == (lazy(Dependency),)
    assert descriptor.provide(resolver).dependency() is dependency


class AllInjectionPoints:
    another: Annotated[AnotherDependency, Inject]

    @inject
    def __init__(self, dependency: Dependency):
        self.order = ["constructor"]

    @inject
    def install(self, dependency: Provider[Dependency]):
        self.order.append("method" if hasattr(self, "another") else "method before field")


def test_should_order_dependencies_constructor_then_fields_then_methods(resolver):
    descriptor = InjectionDescriptor(AllInjectionPoints)

    assert descriptor.dependencies == (
        direct(Dependency),
        direct(AnotherDependency),
        lazy(Dependency),
    )
    assert descriptor.provide(resolver).order == ["constructor", "method"]


class InjectMethodWithTypeParameter:
    @inject
    def install(self, value: T):
        pass


class InjectMethodWithProviderOfTypeParameter:
    @inject
    def install(self, value: Provider[T]):
        pass


class InjectMethodWithQualifiedTypeParameter:
    @inject
    def install(self, value: Annotated[T, Named("chosen")]):
        pass


@pytest.mark.parametrize(
    "implementation",
    [
        InjectMethodWithTypeParameter,
        InjectMethodWithProviderOfTypeParameter,
        InjectMethodWithQualifiedTypeParameter,
    ],
)
def test_should_throw_exception_if_inject_method_has_type_parameter(implementation):
    with pytest.raises(IllegalComponentError, match="is generic"):
        InjectionDescriptor(implementation)


class SuperClassWithStringAnnotatedInjectMethod:
    calls = 0

    @inject
    def install(self, dependency: "Dependency"):
        self.calls += 1


class SubclassOverrideStringAnnotatedWithInject(SuperClassWithStringAnnotatedInjectMethod):
    @inject
    def install(self, dependency: Dependency):
        super().install(dependency)


def test_should_only_call_once_if_override_spells_annotation_differently(resolver):
    descriptor = InjectionDescriptor(SubclassOverrideStringAnnotatedWithInject)

    assert descriptor.dependencies == (direct(Dependency),)
    assert descriptor.provide(resolver).calls == 1


class UnresolvableInjectField:
    dependency: "Annotated[UndefinedDependency, Inject]"


def test_should_throw_exception_if_field_annotation_cannot_be_resolved():
    with pytest.raises(IllegalComponentError, match="cannot resolve annotations") as e:
        InjectionDescriptor(UnresolvableInjectField)

    assert e.value.component is UnresolvableInjectField


# Other descriptors


def make_pair(dependency: Dependency, another: Provider[AnotherDependency]) -> tuple:
    return dependency, another()


def test_should_describe_function_parameters_as_dependencies(
    resolver, dependency, another_dependency
):
    descriptor = FunctionDescriptor(make_pair)

    assert descriptor.provided_type is tuple
    assert descriptor.dependencies == (direct(Dependency), lazy(AnotherDependency))
    assert descriptor.provide(resolver) == (dependency, another_dependency)


def test_should_throw_exception_on_unannotated_function_parameter():
    def make_foo(_ignored):
        pass

    with pytest.raises(IllegalComponentError, match="not annotated"):
        FunctionDescriptor(make_foo)


def test_should_always_provide_the_same_instance(resolver, dependency):
    descriptor = InstanceDescriptor(dependency)

    assert descriptor.dependencies == ()
    assert descriptor.provide(resolver) is dependency
    assert descriptor.provide(resolver) is dependency
