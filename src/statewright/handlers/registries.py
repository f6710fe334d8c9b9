"""Domain-aware registries for named guards and actions.

Specifications may reference guards and actions by name instead of passing
callables inline. Names are resolved through these registries when a
specification is built, so a missing handler fails the build rather than a
later transition.

Handlers can be registered for one domain (usually a specification name) or
for the shared domain, which acts as the fallback:

    registry.register("is_paid", paid_fn, domain="invoice")
    registry.register("always", lambda host, *a, **kw: True)

    registry.get("is_paid", domain="invoice")  # paid_fn
    registry.get("always", domain="invoice")   # shared fallback
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Generic, Optional, TypeVar

# Type variable for handler functions
T = TypeVar("T", bound=Callable[..., Any])


class DomainRegistry(Generic[T]):
    """Registry of handlers keyed by name, with per-domain overrides.

    Attributes:
        SHARED_DOMAIN: Constant for handlers that apply to all domains
    """

    SHARED_DOMAIN = "shared"
    kind = "handler"

    def __init__(self) -> None:
        self._handlers: Dict[str, T] = {}

    def _make_key(self, name: str, domain: str = SHARED_DOMAIN) -> str:
        if domain == self.SHARED_DOMAIN:
            return name
        return f"{domain}:{name}"

    def register(self, name: str, handler: T, domain: str = SHARED_DOMAIN) -> None:
        """Register a handler function. Overwrites an existing registration."""
        if not callable(handler):
            raise TypeError(f"{self.kind} '{name}' must be callable")
        self._handlers[self._make_key(name, domain)] = handler

    def add(self, name: str, handler: T, domain: str = SHARED_DOMAIN) -> None:
        """Add a handler function (alias for register)."""
        self.register(name, handler, domain)

    def get(self, name: str, domain: str = SHARED_DOMAIN) -> Optional[T]:
        """Get a handler by name, with shared-domain fallback."""
        if domain != self.SHARED_DOMAIN:
            key = self._make_key(name, domain)
            if key in self._handlers:
                return self._handlers[key]

        return self._handlers.get(name)

    def require(self, name: str, domain: str = SHARED_DOMAIN) -> T:
        """Like get(), but raise LookupError when the handler is missing."""
        handler = self.get(name, domain)
        if handler is None:
            raise LookupError(f"Unknown {self.kind}: {name} (domain: {domain})")
        return handler

    def has(self, name: str, domain: str = SHARED_DOMAIN) -> bool:
        return self.get(name, domain) is not None

    def list_handlers(self, domain: Optional[str] = None) -> Dict[str, T]:
        """List all handlers, optionally resolved for one domain."""
        if domain is None:
            return dict(self._handlers)

        result: Dict[str, T] = {}
        prefix = f"{domain}:"

        for key, handler in self._handlers.items():
            if key.startswith(prefix):
                result[key[len(prefix):]] = handler
            elif ":" not in key and key not in result:
                # Don't override domain-specific handlers.
                result[key] = handler

        return result

    def reset(self) -> None:
        """Clear all handlers."""
        self._handlers.clear()


class GuardRegistry(DomainRegistry[Callable[..., bool]]):
    """Registry of guard predicates called as ``guard(host, *args, **kwargs)``."""

    kind = "guard"

    def check(
        self,
        name: str,
        host: Any,
        *args: Any,
        domain: str = DomainRegistry.SHARED_DOMAIN,
        **kwargs: Any,
    ) -> bool:
        return bool(self.require(name, domain)(host, *args, **kwargs))


class ActionRegistry(DomainRegistry[Callable[..., Any]]):
    """Registry of transition actions called as ``action(host, *args, **kwargs)``."""

    kind = "action"

    def execute(
        self,
        name: str,
        host: Any,
        *args: Any,
        domain: str = DomainRegistry.SHARED_DOMAIN,
        **kwargs: Any,
    ) -> Any:
        return self.require(name, domain)(host, *args, **kwargs)


# Global registry instances
guard_registry = GuardRegistry()
action_registry = ActionRegistry()


def register_guard(name: str, domain: str = DomainRegistry.SHARED_DOMAIN):
    """Decorator to register a guard function in the global registry."""

    def decorator(fn):
        guard_registry.register(name, fn, domain)
        return fn

    return decorator


def register_action(name: str, domain: str = DomainRegistry.SHARED_DOMAIN):
    """Decorator to register an action function in the global registry."""

    def decorator(fn):
        action_registry.register(name, fn, domain)
        return fn

    return decorator


__all__ = [
    "DomainRegistry",
    "GuardRegistry",
    "ActionRegistry",
    "guard_registry",
    "action_registry",
    "register_guard",
    "register_action",
]
