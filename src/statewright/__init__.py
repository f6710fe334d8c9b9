"""statewright - finite state machines attached to host objects.

Build a :class:`~statewright.spec.model.Specification` once per host type,
then bind each host to a :class:`~statewright.engine.machine.Machine`::

    spec = (
        SpecificationBuilder("article")
        .state("new").event("submit", to="awaiting_review")
        .state("awaiting_review")
        .build()
    )
    machine = Machine(article, spec)
    machine.fire("submit")
"""
from __future__ import annotations

from .exceptions import (
    StatewrightError,
    BuildError,
    UnknownStateError,
    NoSuchTransitionError,
    HaltSignal,
    TransitionFailure,
    PersistenceError,
    ConfigError,
)
from .spec import Event, State, Specification, SpecificationBuilder, build_specification
from .engine import (
    Machine,
    HostBinding,
    AttributeBinding,
    MappingBinding,
    HostHooks,
    event_action,
    on_entry,
    on_exit,
    TransitionContext,
    TransitionResult,
    TransitionStatus,
)
from .handlers import (
    GuardRegistry,
    ActionRegistry,
    guard_registry,
    action_registry,
    register_guard,
    register_action,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Errors
    "StatewrightError",
    "BuildError",
    "UnknownStateError",
    "NoSuchTransitionError",
    "HaltSignal",
    "TransitionFailure",
    "PersistenceError",
    "ConfigError",
    # Specification graph
    "Event",
    "State",
    "Specification",
    "SpecificationBuilder",
    "build_specification",
    # Engine
    "Machine",
    "HostBinding",
    "AttributeBinding",
    "MappingBinding",
    "HostHooks",
    "event_action",
    "on_entry",
    "on_exit",
    "TransitionContext",
    "TransitionResult",
    "TransitionStatus",
    # Named handlers
    "GuardRegistry",
    "ActionRegistry",
    "guard_registry",
    "action_registry",
    "register_guard",
    "register_action",
]
