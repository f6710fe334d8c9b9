from .binding import (
    HostBinding,
    AttributeBinding,
    MappingBinding,
    HostHooks,
    event_action,
    on_entry,
    on_exit,
)
from .context import TransitionContext, TransitionResult, TransitionStatus
from .machine import Machine

__all__ = [
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
]
