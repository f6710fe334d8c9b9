"""Transition engine.

A :class:`Machine` ties one host object to a shared :class:`Specification`
and runs the hook protocol for every fired event:

1. resolve the event in the current state
2. pick the first same-named event whose guard chain passes (guards may halt)
3. ``before_transition`` hooks (may halt)
4. the event action (inline, else the host's marked action)
5. halt check
6. ``on_transition`` hooks
7. exit hooks: spec-scoped, then the source state's inline hooks, then host
8. persist the target state through the binding
9. ``on_error`` hooks, only when steps 4, 7 or 8 raised
10. entry hooks: spec-scoped, then the target state's inline hooks, then host
11. ``after_transition`` hooks

The machine holds no lock: fire calls on one host must be serialized by the
caller.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from ..exceptions import HaltSignal, NoSuchTransitionError, PersistenceError
from ..spec.model import Event, Specification, State
from .binding import AttributeBinding, HostBinding, HostHooks
from .context import TransitionContext, TransitionResult, TransitionStatus

logger = logging.getLogger(__name__)


class Machine:
    """Runs a Specification against one host."""

    def __init__(
        self,
        host: Any,
        spec: Specification,
        *,
        binding: Optional[HostBinding] = None,
        hooks: Optional[HostHooks] = None,
    ) -> None:
        self._host = host
        self._spec = spec
        self._binding: HostBinding = binding if binding is not None else AttributeBinding()
        self._hooks = hooks if hooks is not None else HostHooks.collect(host)
        self._active: List[TransitionContext] = []
        self._last: Optional[TransitionContext] = None

    @property
    def host(self) -> Any:
        return self._host

    @property
    def spec(self) -> Specification:
        return self._spec

    @property
    def binding(self) -> HostBinding:
        return self._binding

    @property
    def hooks(self) -> HostHooks:
        return self._hooks

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def load_state(self) -> str:
        """Name of the stored state, falling back to the initial state."""
        raw = self._binding.load_state(self._host)
        if raw and self._spec.has_state(str(raw)):
            return str(raw)
        if raw:
            logger.debug(
                "Stored state %r is not part of %s; using initial state",
                raw,
                self._spec.name,
            )
        return self._spec.initial_state.name

    @property
    def current_state(self) -> State:
        return self._spec.state(self.load_state())

    def is_in(self, state: str) -> bool:
        """True when the host is in ``state``; unknown names raise UnknownStateError."""
        self._spec.state(state)
        return self.load_state() == state

    def _guards_allow(self, state: State, event: str, args: tuple, kwargs: Dict[str, Any]) -> bool:
        # Guards see a throwaway context, so halting from a guard just reads as "no".
        scratch = TransitionContext(host=self._host, event=event, from_state=state, args=args, kwargs=dict(kwargs))
        self._active.append(scratch)
        try:
            selected = self._first_passing(state, event, args, kwargs, scratch)
        except HaltSignal:
            return False
        finally:
            self._active.pop()
        return selected is not None and not scratch.halted

    def can_fire(self, event: str, *args: Any, **kwargs: Any) -> bool:
        """Whether ``event`` would be accepted now. Runs guards only."""
        state = self.current_state
        if event not in state.events:
            return False
        return self._guards_allow(state, event, args, kwargs)

    def available_events(self, *args: Any, **kwargs: Any) -> List[str]:
        """Event names of the current state whose guards currently pass."""
        state = self.current_state
        return [name for name in state.events if self._guards_allow(state, name, args, kwargs)]

    @property
    def last_context(self) -> Optional[TransitionContext]:
        return self._last

    def _context(self) -> Optional[TransitionContext]:
        if self._active:
            return self._active[-1]
        return self._last

    @property
    def halted(self) -> bool:
        ctx = self._context()
        return bool(ctx and ctx.halted)

    @property
    def halted_because(self) -> Optional[str]:
        ctx = self._context()
        return ctx.halted_because if ctx else None

    # ------------------------------------------------------------------
    # Halting (from inside hooks, guards and actions)
    # ------------------------------------------------------------------

    def _require_active(self) -> TransitionContext:
        if not self._active:
            raise RuntimeError("halt() can only be called while a transition is in progress")
        return self._active[-1]

    def halt(self, reason: Optional[str] = None) -> None:
        self._require_active().halt(reason)

    def halt_now(self, reason: Optional[str] = None) -> None:
        self._require_active().halt_now(reason)

    # ------------------------------------------------------------------
    # Firing
    # ------------------------------------------------------------------

    def _first_passing(
        self,
        state: State,
        event: str,
        args: tuple,
        kwargs: Dict[str, Any],
        ctx: TransitionContext,
    ) -> Optional[Event]:
        for candidate in state.events.get(event, ()):
            passed = candidate.guards_pass(self._host, *args, **kwargs)
            if ctx.halted:
                logger.debug("Guard halted %s -> %s", event, candidate.transitions_to)
                return None
            if passed:
                logger.debug("Guards passed for %s -> %s", event, candidate.transitions_to)
                return candidate
            logger.debug("Guards blocked %s -> %s", event, candidate.transitions_to)
        return None

    def _select(self, ctx: TransitionContext) -> Optional[Event]:
        """Pick the event to run; None when a guard halted the fire."""
        state, event = ctx.from_state, ctx.event
        context = {"specification": self._spec.name, "state": state.name, "event": event}
        if event not in state.events:
            raise NoSuchTransitionError(
                f"There is no event '{event}' defined for the '{state.name}' state",
                context=context,
            )
        selected = self._first_passing(state, event, ctx.args, ctx.kwargs, ctx)
        if ctx.halted:
            return None
        if selected is None:
            raise NoSuchTransitionError(
                f"No guard allowed event '{event}' from the '{state.name}' state",
                context=context,
            )
        return selected

    def fire(self, event: str, *args: Any, **kwargs: Any) -> TransitionResult:
        """Fire ``event``; see the module docstring for the exact sequence.

        Returns a SUCCESS result, a HALTED result for a non-raising halt, or an
        ERROR result when an ``on_error`` hook handled a failure. Raises
        :class:`NoSuchTransitionError` when the event is not available,
        :class:`HaltSignal` for a raising halt, and any unhandled error.
        """
        ctx = TransitionContext(
            host=self._host,
            event=event,
            from_state=self.current_state,
            args=args,
            kwargs=dict(kwargs),
        )

        self._active.append(ctx)
        try:
            selected = self._select(ctx)
            if selected is None:
                return self._halted_result(ctx)
            ctx.to_state = self._spec.state(selected.transitions_to)
            logger.debug("Firing %s on %s: %s -> %s", event, self._spec.name, ctx.from_state, ctx.to_state)
            return self._run(ctx, selected)
        except HaltSignal as signal:
            if not ctx.halted:
                ctx.halt(signal.reason)
            logger.info("Transition %s halted (raised): %s", event, ctx.halted_because)
            raise
        finally:
            self._active.pop()
            self._last = ctx

    def fire_strict(self, event: str, *args: Any, **kwargs: Any) -> Any:
        """Fire and unwrap: halted or failed transitions raise."""
        return self.fire(event, *args, **kwargs).unwrap()

    def _transition_hooks(self, hooks: Iterable[Any], ctx: TransitionContext) -> None:
        for hook in hooks:
            hook(self._host, ctx.from_state, ctx.to_state, ctx.event, *ctx.args, **ctx.kwargs)

    def _halted_result(self, ctx: TransitionContext) -> TransitionResult:
        logger.info("Transition %s halted: %s", ctx.event, ctx.halted_because)
        return TransitionResult.from_context(ctx, TransitionStatus.HALTED)

    def _run(self, ctx: TransitionContext, selected: Event) -> TransitionResult:
        self._transition_hooks(self._spec.before_transition, ctx)
        if ctx.halted:
            return self._halted_result(ctx)

        try:
            value = self._run_action(ctx, selected)
        except HaltSignal:
            raise
        except Exception as exc:
            if not self._spec.on_error:
                logger.debug("Action for %s raised %r; no on_error hook", ctx.event, exc)
                raise
            return self._recover(ctx, exc, store_attempted=False)
        if ctx.halted:
            return self._halted_result(ctx)

        self._transition_hooks(self._spec.on_transition, ctx)

        store_attempted = False
        try:
            self._run_exit(ctx)
            store_attempted = True
            self._persist(ctx)
        except HaltSignal:
            raise
        except Exception as exc:
            if not self._spec.on_error:
                logger.debug("Leaving %s raised %r; no on_error hook", ctx.from_state, exc)
                raise
            return self._recover(ctx, exc, store_attempted=store_attempted)

        self._run_entry(ctx)
        self._transition_hooks(self._spec.after_transition, ctx)
        logger.debug("Transition %s complete: now %s", ctx.event, ctx.to_state)
        return TransitionResult.from_context(ctx, TransitionStatus.SUCCESS, value)

    def _run_action(self, ctx: TransitionContext, selected: Event) -> Any:
        if selected.action is not None:
            return selected.action(self._host, *ctx.args, **ctx.kwargs)
        host_action = self._hooks.actions.get(ctx.event)
        if host_action is not None:
            return host_action(*ctx.args, **ctx.kwargs)
        return None

    def _run_exit(self, ctx: TransitionContext) -> None:
        self._transition_hooks(self._spec.on_exit, ctx)
        for hook in ctx.from_state.on_exit:
            hook(self._host, ctx.to_state, ctx.event, *ctx.args, **ctx.kwargs)
        host_exit = self._hooks.exits.get(ctx.from_state.name)
        if host_exit is not None:
            host_exit(ctx.to_state, ctx.event, *ctx.args, **ctx.kwargs)

    def _run_entry(self, ctx: TransitionContext) -> None:
        self._transition_hooks(self._spec.on_entry, ctx)
        for hook in ctx.to_state.on_entry:
            hook(self._host, ctx.from_state, ctx.event, *ctx.args, **ctx.kwargs)
        host_entry = self._hooks.entries.get(ctx.to_state.name)
        if host_entry is not None:
            host_entry(ctx.from_state, ctx.event, *ctx.args, **ctx.kwargs)

    def _persist(self, ctx: TransitionContext) -> None:
        stored = self._binding.store_state(self._host, ctx.to_state.name)
        if stored is False:
            raise PersistenceError(
                f"Storing state '{ctx.to_state}' was rejected by {self._binding!r}",
                from_state=ctx.from_state.name,
                to_state=ctx.to_state.name,
                event=ctx.event,
            )

    def _restore_source(self, ctx: TransitionContext) -> None:
        # The binding may have written the target before failing.
        try:
            self._binding.store_state(self._host, ctx.from_state.name)
        except Exception as exc:
            logger.warning("Restoring %s after failed %s also failed: %s", ctx.from_state, ctx.event, exc)
            ctx.restore_error = exc

    def _recover(self, ctx: TransitionContext, exc: Exception, *, store_attempted: bool) -> TransitionResult:
        """Route ``exc`` to on_error hooks and leave the host in the source state.

        The source state is written back only when the failure came from the
        store step; earlier failures never reached the binding.
        """
        logger.warning(
            "Transition %s (%s -> %s) failed, running on_error: %s",
            ctx.event,
            ctx.from_state,
            ctx.to_state,
            exc,
        )
        ctx.error = exc
        if store_attempted:
            self._restore_source(ctx)
        for hook in self._spec.on_error:
            hook(self._host, exc, ctx.from_state, ctx.to_state, ctx.event, *ctx.args, **ctx.kwargs)
        ctx.halt(str(exc))
        return TransitionResult.from_context(ctx, TransitionStatus.ERROR)


__all__ = ["Machine"]
