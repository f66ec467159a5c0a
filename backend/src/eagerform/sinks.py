"""In-memory collaborators.

Headless implementations of the feedback sink, submit control and viewport
helper. They record what the engine asked for, which is what the CLI prints
and what embedding applications can mirror into their own UI.
"""

from dataclasses import dataclass, field

from eagerform.core.types import Field


class MemoryFeedbackSink:
    """Keeps classes per target handle and the feedback message per field."""

    def __init__(self) -> None:
        self.classes: dict[str, set[str]] = {}
        self.messages: dict[str, str] = {}

    def render(self, field: Field, message: str) -> None:
        self.messages[field.id] = message

    def clear_feedback(self, field: Field) -> None:
        self.messages.pop(field.id, None)

    def toggle_classes(
        self,
        target: str,
        add: tuple[str, ...] = (),
        remove: tuple[str, ...] = (),
    ) -> None:
        current = self.classes.setdefault(target, set())
        current.difference_update(remove)
        current.update(add)

    def classes_of(self, target: str) -> set[str]:
        return set(self.classes.get(target, set()))

    def message_for(self, field: Field) -> str:
        return self.messages.get(field.id, "")


@dataclass
class MemorySubmitControl:
    """Submit control that records its enabled flag."""

    enabled: bool = True
    history: list[str] = field(default_factory=list)

    def enable(self) -> None:
        self.enabled = True
        self.history.append("enable")

    def disable(self) -> None:
        self.enabled = False
        self.history.append("disable")


@dataclass
class MemoryViewport:
    """Viewport helper that records scroll and focus requests."""

    scrolled: list[tuple[str, int]] = field(default_factory=list)
    focused: list[str] = field(default_factory=list)

    def bring_into_view(self, field: Field, offset: int) -> None:
        self.scrolled.append((field.id, offset))

    def focus(self, field: Field) -> None:
        self.focused.append(field.id)
