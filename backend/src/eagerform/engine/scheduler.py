"""Event scheduler: per-field, per-event debounce and delay.

Timing for an event on a field is resolved from, in order:
1. ``<prefix>-<event>-debounce`` / ``<prefix>-<event>-delay`` attributes
2. ``<prefix>-debounce`` / ``<prefix>-delay`` attributes
3. The per-event defaults in ValidatorOptions

Debounce is trailing-edge: every occurrence restarts the timer and one
invocation fires after the quiet period. Delay defers the invocation and
replaces any delayed invocation already scheduled for the same field and
event. With both configured, the delayed invocation feeds the debouncer.
"""

import asyncio
import logging
import re
from collections.abc import Callable

from eagerform.config import ValidatorOptions
from eagerform.core.types import Field, FormEvent

logger = logging.getLogger(__name__)

DEBOUNCE = "debounce"
DELAY = "delay"

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def parse_milliseconds(raw: str | None) -> int:
    """Parse the leading integer of an attribute value; anything else is 0."""
    if raw is None:
        return 0
    match = _LEADING_INT.match(raw)
    return int(match.group(1)) if match else 0


class EventScheduler:
    """Schedules pipeline invocations for trigger events.

    Timers are keyed by (field handle, event type, timer kind), so each field
    owns at most one debounce timer and one delay timer per event type.
    """

    def __init__(self, options: ValidatorOptions, invoke: Callable[[Field], None]):
        """Initialize the scheduler.

        Args:
            options: Validator options (timing defaults, attribute prefix)
            invoke: Runs the validation pass for a field
        """
        self.options = options
        self.invoke = invoke
        self._timers: dict[tuple[str, str, str], asyncio.TimerHandle] = {}

    def timing(self, field: Field, event_type: str, kind: str) -> int:
        """Resolve the debounce or delay for an event on a field, in milliseconds."""
        specific = self.options.attribute(event_type, kind)
        generic = self.options.attribute(kind)

        if field.has_attribute(specific):
            return parse_milliseconds(field.get_attribute(specific))
        if field.has_attribute(generic):
            return parse_milliseconds(field.get_attribute(generic))

        defaults = self.options.debounce if kind == DEBOUNCE else self.options.delay
        return defaults.get(event_type) or 0

    def schedule(self, event: FormEvent) -> None:
        """Schedule validation of the event's target."""
        field = event.target
        delay = self.timing(field, event.type, DELAY)

        if delay > 0:
            self._start(
                (field.id, event.type, DELAY),
                delay,
                lambda: self._debounced(field, event.type),
            )
        else:
            self._debounced(field, event.type)

    def _debounced(self, field: Field, event_type: str) -> None:
        bounce = self.timing(field, event_type, DEBOUNCE)
        if bounce > 0:
            self._start((field.id, event_type, DEBOUNCE), bounce, lambda: self.invoke(field))
        else:
            self.invoke(field)

    def _start(
        self,
        key: tuple[str, str, str],
        milliseconds: int,
        callback: Callable[[], None],
    ) -> None:
        # Replacing a timer cancels the previous one
        previous = self._timers.pop(key, None)
        if previous is not None:
            previous.cancel()

        def fire() -> None:
            if self._timers.get(key) is handle:
                del self._timers[key]
            callback()

        loop = asyncio.get_running_loop()
        handle = loop.call_later(milliseconds / 1000, fire)
        self._timers[key] = handle
        logger.debug("Scheduled %s of %dms for field %s on %s", key[2], milliseconds, key[0], key[1])

    def pending(self, field: Field | None = None) -> int:
        """Number of active timers, optionally for one field."""
        if field is None:
            return len(self._timers)
        return sum(1 for key in self._timers if key[0] == field.id)

    def cancel(self, field: Field | None = None) -> None:
        """Cancel active timers for a field, or all timers."""
        for key in list(self._timers):
            if field is None or key[0] == field.id:
                self._timers.pop(key).cancel()
