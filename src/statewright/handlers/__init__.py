from .registries import (
    DomainRegistry,
    GuardRegistry,
    ActionRegistry,
    guard_registry,
    action_registry,
    register_guard,
    register_action,
)

__all__ = [
    "DomainRegistry",
    "GuardRegistry",
    "ActionRegistry",
    "guard_registry",
    "action_registry",
    "register_guard",
    "register_action",
]
