"""Host binding: where a host keeps its current state, and its own hooks.

The engine reads and writes the current state only through a
:class:`HostBinding`. Hosts that want per-event actions or per-state
entry/exit hooks mark methods explicitly::

    class Article:
        @event_action("submit")
        def submit(self, reviewer):
            ...

        @on_entry("accepted")
        def notify_author(self, prior_state, event, *args, **kwargs):
            ...

Marked methods are collected once, when the host is bound to a machine.
"""
from __future__ import annotations

from collections.abc import MutableMapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional, Protocol, runtime_checkable

HOOK_MARKER = "__statewright_hooks__"

_ACTION = "action"
_ENTRY = "entry"
_EXIT = "exit"


@runtime_checkable
class HostBinding(Protocol):
    """Load/store contract for a host's current state."""

    def load_state(self, host: Any) -> Optional[str]:
        """Return the stored state name, or None/'' when the host has none."""
        ...

    def store_state(self, host: Any, state: str) -> Optional[bool]:
        """Commit ``state``. Returning ``False`` reports a failed commit."""
        ...


class AttributeBinding:
    """Keep the state name in an attribute of the host object."""

    def __init__(self, attribute: str = "workflow_state") -> None:
        self.attribute = attribute

    def load_state(self, host: Any) -> Optional[str]:
        return getattr(host, self.attribute, None)

    def store_state(self, host: Any, state: str) -> None:
        setattr(host, self.attribute, state)

    def __repr__(self) -> str:
        return f"AttributeBinding({self.attribute!r})"


class MappingBinding:
    """Keep the state name under a key of a mutable-mapping host (e.g. a record dict)."""

    def __init__(self, key: str = "workflow_state") -> None:
        self.key = key

    def load_state(self, host: MutableMapping[str, Any]) -> Optional[str]:
        return host.get(self.key)

    def store_state(self, host: MutableMapping[str, Any], state: str) -> None:
        host[self.key] = state

    def __repr__(self) -> str:
        return f"MappingBinding({self.key!r})"


def _marker(kind: str, name: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        marks = list(getattr(fn, HOOK_MARKER, ()))
        marks.append((kind, name))
        setattr(fn, HOOK_MARKER, tuple(marks))
        return fn

    return decorator


def event_action(event: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Mark a host method as the action for ``event``: ``method(*args, **kwargs)``."""
    return _marker(_ACTION, event)


def on_entry(state: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Mark a host method run on entering ``state``: ``method(prior, event, *args, **kwargs)``."""
    return _marker(_ENTRY, state)


def on_exit(state: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Mark a host method run on leaving ``state``: ``method(new, event, *args, **kwargs)``."""
    return _marker(_EXIT, state)


def _frozen(values: Optional[Mapping[str, Callable[..., Any]]] = None) -> Mapping[str, Callable[..., Any]]:
    return MappingProxyType(dict(values or {}))


@dataclass(frozen=True)
class HostHooks:
    """Callables supplied by the host, keyed by event name or state name."""

    actions: Mapping[str, Callable[..., Any]] = field(default_factory=_frozen)
    entries: Mapping[str, Callable[..., Any]] = field(default_factory=_frozen)
    exits: Mapping[str, Callable[..., Any]] = field(default_factory=_frozen)

    @classmethod
    def empty(cls) -> "HostHooks":
        return cls()

    @classmethod
    def of(
        cls,
        *,
        actions: Optional[Mapping[str, Callable[..., Any]]] = None,
        entries: Optional[Mapping[str, Callable[..., Any]]] = None,
        exits: Optional[Mapping[str, Callable[..., Any]]] = None,
    ) -> "HostHooks":
        return cls(actions=_frozen(actions), entries=_frozen(entries), exits=_frozen(exits))

    @classmethod
    def collect(cls, host: Any) -> "HostHooks":
        """Gather methods marked with the decorators above, bound to ``host``.

        Classes are walked base-first so a subclass marking the same name wins.
        """
        found: Dict[str, Dict[str, Callable[..., Any]]] = {_ACTION: {}, _ENTRY: {}, _EXIT: {}}
        for klass in reversed(type(host).__mro__):
            for attr, value in vars(klass).items():
                target = value.__func__ if isinstance(value, (staticmethod, classmethod)) else value
                for kind, name in getattr(target, HOOK_MARKER, ()):
                    found[kind][name] = getattr(host, attr)
        return cls.of(actions=found[_ACTION], entries=found[_ENTRY], exits=found[_EXIT])


__all__ = [
    "HostBinding",
    "AttributeBinding",
    "MappingBinding",
    "HostHooks",
    "event_action",
    "on_entry",
    "on_exit",
]
