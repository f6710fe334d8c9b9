from __future__ import annotations

from typing import Any, Dict, Mapping, Optional


class StatewrightError(Exception):
    """Base exception for statewright."""

    context: Dict[str, Any]

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        if context is not None:
            # Store a shallow copy to avoid accidental mutation.
            self.context = dict(context)
        else:
            self.context = {}

    def to_json_error(self) -> Dict[str, Any]:
        """Return a JSON-serializable error payload."""
        return {
            "message": str(self),
            "code": self.__class__.__name__,
            "context": self.context,
        }


class BuildError(StatewrightError, ValueError):
    """Raised when a specification definition is malformed."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        StatewrightError.__init__(self, message, context=context)
        ValueError.__init__(self, message)


class UnknownStateError(StatewrightError, KeyError):
    """Raised when a state name is not part of a specification."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        StatewrightError.__init__(self, message, context=context)
        KeyError.__init__(self, message)

    def __str__(self) -> str:
        # KeyError repr-quotes its argument; keep the plain message.
        return str(self.args[0]) if self.args else ""


class NoSuchTransitionError(StatewrightError, LookupError):
    """Raised when an event cannot be fired from the current state."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        StatewrightError.__init__(self, message, context=context)
        LookupError.__init__(self, message)


class HaltSignal(StatewrightError):
    """Raised to abort an in-progress transition, leaving state unchanged."""

    def __init__(
        self,
        reason: Optional[str] = None,
        *,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(reason or "transition halted", context=context)
        self.reason = reason


class TransitionFailure(StatewrightError, RuntimeError):
    """Unexpected error raised while running an action, exit hook or persist."""

    def __init__(
        self,
        message: str = "",
        *,
        error: Optional[BaseException] = None,
        from_state: Optional[str] = None,
        to_state: Optional[str] = None,
        event: Optional[str] = None,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        ctx = dict(context or {})
        if from_state:
            ctx["from"] = from_state
        if to_state:
            ctx["to"] = to_state
        if event:
            ctx["event"] = event
        StatewrightError.__init__(self, message, context=ctx)
        RuntimeError.__init__(self, message)
        self.error = error
        self.from_state = from_state
        self.to_state = to_state
        self.event = event


class PersistenceError(TransitionFailure):
    """Raised when a host binding reports that storing the new state failed."""


class ConfigError(StatewrightError, ValueError):
    """Raised for unreadable or invalid configuration and specification documents."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        StatewrightError.__init__(self, message, context=context)
        ValueError.__init__(self, message)


__all__ = [
    "StatewrightError",
    "BuildError",
    "UnknownStateError",
    "NoSuchTransitionError",
    "HaltSignal",
    "TransitionFailure",
    "PersistenceError",
    "ConfigError",
]
