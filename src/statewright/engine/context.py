"""Per-fire bookkeeping and the value returned to callers of ``Machine.fire``."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from ..exceptions import HaltSignal, TransitionFailure
from ..spec.model import State


class TransitionStatus(str, Enum):
    SUCCESS = "success"
    HALTED = "halted"
    ERROR = "error"


@dataclass
class TransitionContext:
    """State of one in-flight fire attempt. Never persisted.

    ``to_state`` stays None until a guard chain has selected an event.
    """

    host: Any
    event: str
    from_state: State
    to_state: Optional[State] = None
    args: Tuple[Any, ...] = ()
    kwargs: Dict[str, Any] = field(default_factory=dict)
    halted: bool = False
    halted_because: Optional[str] = None
    error: Optional[BaseException] = None
    restore_error: Optional[BaseException] = None

    def halt(self, reason: Optional[str] = None) -> None:
        """Stop the transition once the current step returns."""
        self.halted = True
        self.halted_because = reason

    def halt_now(self, reason: Optional[str] = None) -> None:
        """Stop the transition and raise :class:`HaltSignal` to the caller."""
        self.halt(reason)
        raise HaltSignal(reason, context=self.describe())

    def describe(self) -> Dict[str, Any]:
        return {
            "event": self.event,
            "from": self.from_state.name,
            "to": self.to_state.name if self.to_state is not None else None,
        }


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of a fire call: success, halted, or error handled by on_error."""

    status: TransitionStatus
    event: str
    from_state: State
    to_state: Optional[State]
    value: Any = None
    halted_because: Optional[str] = None
    error: Optional[BaseException] = None
    restore_error: Optional[BaseException] = None

    @classmethod
    def from_context(cls, ctx: TransitionContext, status: TransitionStatus, value: Any = None) -> "TransitionResult":
        return cls(
            status=status,
            event=ctx.event,
            from_state=ctx.from_state,
            to_state=ctx.to_state,
            value=value,
            halted_because=ctx.halted_because,
            error=ctx.error,
            restore_error=ctx.restore_error,
        )

    @property
    def ok(self) -> bool:
        return self.status is TransitionStatus.SUCCESS

    @property
    def halted(self) -> bool:
        return self.status is not TransitionStatus.SUCCESS

    def __bool__(self) -> bool:
        return self.ok

    def unwrap(self) -> Any:
        """Return the action's value, or raise for a halted/failed transition."""
        to_name = self.to_state.name if self.to_state is not None else None
        ctx = {"event": self.event, "from": self.from_state.name, "to": to_name}
        if self.status is TransitionStatus.HALTED:
            raise HaltSignal(self.halted_because, context=ctx)
        if self.status is TransitionStatus.ERROR:
            raise TransitionFailure(
                f"Transition '{self.event}' from '{self.from_state}' failed: {self.error}",
                error=self.error,
                from_state=self.from_state.name,
                to_state=to_name,
                event=self.event,
            ) from self.error
        return self.value


__all__ = ["TransitionStatus", "TransitionContext", "TransitionResult"]
