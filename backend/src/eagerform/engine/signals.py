"""Signals emitted around validation.

- before-validate: before a triggered pass; handlers may cancel it
- after-validate: after a triggered pass is dispatched (not awaited)
- validation-complete: after a submit has been handled
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from eagerform.core.types import Field, Form

logger = logging.getLogger(__name__)

BEFORE_VALIDATE = "before-validate"
AFTER_VALIDATE = "after-validate"
VALIDATION_COMPLETE = "validation-complete"

VALID_SIGNALS = (BEFORE_VALIDATE, AFTER_VALIDATE, VALIDATION_COMPLETE)


@dataclass
class Signal:
    """A signal occurrence passed to handlers."""

    name: str
    form: Form
    target: Field | None = None
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


SignalHandler = Callable[[Signal], None]


class SignalBus:
    """Dispatches signals to connected handlers in connection order."""

    def __init__(self, form: Form):
        self.form = form
        self._handlers: dict[str, list[SignalHandler]] = {name: [] for name in VALID_SIGNALS}

    def connect(self, name: str, handler: SignalHandler) -> None:
        if name not in self._handlers:
            raise ValueError(
                f"Unknown signal '{name}'. Available signals: " + ", ".join(VALID_SIGNALS)
            )
        self._handlers[name].append(handler)

    def disconnect(self, name: str, handler: SignalHandler) -> None:
        if handler in self._handlers.get(name, []):
            self._handlers[name].remove(handler)

    def emit(self, name: str, target: Field | None = None) -> Signal:
        """Emit a signal.

        A failing handler is logged and does not stop the others.

        Returns:
            The signal, so callers can check ``cancelled``
        """
        signal = Signal(name=name, form=self.form, target=target)
        for handler in list(self._handlers[name]):
            try:
                handler(signal)
            except Exception as e:
                logger.error("Signal handler for '%s' failed: %s", name, e)
        return signal
