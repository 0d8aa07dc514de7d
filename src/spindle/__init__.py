"""Spindle dependency injection framework.

Spindle wires object graphs from explicit bindings. Every binding is described
as soon as it is declared, and the whole graph is checked for missing and
cyclic dependencies before any component is constructed. Only then is a
read-only context handed out, which builds components on demand.

Key Features:
    - Constructor, field and method injection, inheritance-aware
    - Qualifiers distinguishing several bindings of one type
    - ``Provider[T]`` dependencies for deferred, cycle-breaking resolution
    - Profile-based selection of bindings
    - No caching or proxies: instances are built fresh on every lookup

Basic Usage:
    >>> from spindle.config import ContextConfig
    >>> from spindle.markers import inject
    >>>
    >>> class Service:
    ...     @inject
    ...     def __init__(self, database: Database):
    ...         self.database = database
    >>>
    >>> config = ContextConfig()
    >>> config.bind(Database, Database())
    >>> config.bind(Service, Service)
    >>> service = config.get_context()[Service]

The framework consists of several core modules:
    - config: Binding registration and context creation
    - context: Read-only component resolution
    - descriptor: Injection point discovery and component factories
    - graph: Missing and cyclic dependency detection
    - domain: Core domain models (ComponentKey, DependencyReference, Found/NotFound)
    - markers: ``inject``, ``Inject``, ``qualifier``, ``Named`` and ``Provider``
    - errors: Framework-specific exceptions
"""
