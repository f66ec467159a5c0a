"""Custom rule registry for EagerForm.

Rules are looked up by name: a field opts into a rule by carrying the
``<prefix>-<name>`` attribute. Registration order is preserved and decides
the order in which a field's rules are launched.

A registry is shared by every FormValidator that uses it. Register rules
during setup, before validation starts; afterwards the registry is only read.
"""

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from eagerform.core.errors import ConfigError
from eagerform.core.types import Field

if TYPE_CHECKING:
    from eagerform.rules.pipeline import RuleContext

# Rule predicate signature: (field, attribute value, context) -> None
# Raising RuleRejected (or any exception) fails the field; returning passes it.
RulePredicate = Callable[[Field, str, "RuleContext"], Any]

# Attribute suffixes that can't be used as rule names
RESERVED_WORDS = frozenset({"error", "debounce", "delay"})


class RuleRegistry:
    """Ordered registry of rule predicates.

    Example:
        registry = RuleRegistry()

        @registry.rule("even")
        async def even(field, value, ctx):
            if int(field.value) % 2:
                raise RuleRejected("Please enter an even number")
    """

    def __init__(self) -> None:
        self._rules: dict[str, RulePredicate] = {}

    def register(self, name: str, predicate: RulePredicate) -> None:
        """Register a rule predicate by name.

        Re-registering an existing name replaces the predicate.

        Args:
            name: Rule name, used as the attribute suffix
            predicate: Callable or coroutine function implementing the rule

        Raises:
            ConfigError: If the name is reserved or the predicate isn't callable
        """
        if name in RESERVED_WORDS:
            raise ConfigError(f"{name} is a reserved word")
        if not callable(predicate):
            raise ConfigError("Rule predicate must be a callable")
        self._rules[name] = predicate

    def rule(self, name: str) -> Callable[[RulePredicate], RulePredicate]:
        """Decorator form of ``register``."""

        def decorator(fn: RulePredicate) -> RulePredicate:
            self.register(name, fn)
            return fn

        return decorator

    def names(self) -> list[str]:
        """Registered rule names in registration order."""
        return list(self._rules)

    def items(self) -> list[tuple[str, RulePredicate]]:
        return list(self._rules.items())

    def clear(self) -> None:
        """Clear all registrations. Primarily for testing."""
        self._rules.clear()


def create_default_registry() -> RuleRegistry:
    """Create a registry holding the built-in rules (match, reference, remote)."""
    from eagerform.rules.builtin import register_builtin_rules

    registry = RuleRegistry()
    register_builtin_rules(registry)
    return registry


default_registry = create_default_registry()


def rule(name: str) -> Callable[[RulePredicate], RulePredicate]:
    """Decorator to register a rule in the default registry.

    Usage:
        @rule("even")
        async def even(field, value, ctx):
            ...
    """
    return default_registry.rule(name)
