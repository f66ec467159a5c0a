"""Core types for the EagerForm validation engine.

This module defines the objects the engine operates on and the protocols
for the collaborators it drives:
- Field / Form: headless form controls carrying declarative attributes
- FormEvent: a trigger, submit or reset occurrence
- ValidityKind / FieldStatus: enumerations of failure reasons and field states
- NativeConstraintAdapter, FeedbackSink, SubmitControl, ViewportHelper
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Protocol


class ValidityKind(Enum):
    """Reason a field failed validation.

    Declared in the platform's enumeration order, which decides the winning
    kind when several native violations are reported together.
    """

    VALUE_MISSING = "valueMissing"
    TYPE_MISMATCH = "typeMismatch"
    PATTERN_MISMATCH = "patternMismatch"
    TOO_LONG = "tooLong"
    TOO_SHORT = "tooShort"
    RANGE_UNDERFLOW = "rangeUnderflow"
    RANGE_OVERFLOW = "rangeOverflow"
    STEP_MISMATCH = "stepMismatch"
    BAD_INPUT = "badInput"
    CUSTOM_ERROR = "customError"
    NETWORK_ERROR = "networkError"


class FieldStatus(Enum):
    """Validation status of a single field."""

    IDLE = "idle"
    CHECKING = "checking"
    VALID = "valid"
    INVALID = "invalid"


# Input types that never take part in validation
BUTTON_TYPES = frozenset({"button", "submit", "reset"})


def _new_handle() -> str:
    return uuid.uuid4().hex


@dataclass(eq=False)
class Field:
    """A single form control.

    Attributes:
        name: Control name; unnamed fields are skipped unless configured
        type: Input type (text, email, number, checkbox, ...)
        value: Current content
        checked: Checked state for checkbox/radio controls
        attributes: Declarative attributes (name -> string value)
        parent: Handle of the logical parent/group, if any
        container: True for grouping elements (fieldset-like)
        id: Explicit handle used to key timers, requests and state
    """

    name: str | None = None
    type: str = "text"
    value: str = ""
    checked: bool = False
    attributes: dict[str, str] = field(default_factory=dict)
    parent: str | None = None
    container: bool = False
    id: str = field(default_factory=_new_handle)

    def __post_init__(self) -> None:
        self.type = (self.type or "text").lower()

    def has_attribute(self, name: str) -> bool:
        return name in self.attributes

    def get_attribute(self, name: str, default: str | None = None) -> str | None:
        return self.attributes.get(name, default)

    @property
    def is_button(self) -> bool:
        return self.type in BUTTON_TYPES


@dataclass(eq=False)
class Form:
    """An ordered collection of fields in document order."""

    fields: list[Field] = field(default_factory=list)
    name: str = ""
    id: str = field(default_factory=_new_handle)

    def __iter__(self) -> Iterator[Field]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    def add(self, item: Field) -> Field:
        self.fields.append(item)
        return item

    def find(self, key: str) -> Field | None:
        """Find a field by handle (``#id``) or by name."""
        if key.startswith("#"):
            handle = key[1:]
            return next((f for f in self.fields if f.id == handle), None)
        return next((f for f in self.fields if f.name == key), None)

    def siblings(self, item: Field) -> list[Field]:
        """Same-named controls sharing the field's logical parent (radio/checkbox groups)."""
        if not item.name:
            return [item]
        return [
            f for f in self.fields
            if f.name == item.name and f.parent == item.parent and not f.container
        ]


@dataclass
class FormEvent:
    """An event delivered to the form.

    Attributes:
        type: Event type ("blur", "change", "keyup", "submit", "reset", ...)
        target: The field the event occurred on (None for form-level events)
        key: Key name for keyboard events (e.g. "Tab")
        default_prevented: Set when a handler prevents the default action
    """

    type: str
    target: Field | None = None
    key: str | None = None
    default_prevented: bool = False

    def prevent_default(self) -> None:
        self.default_prevented = True


@dataclass(frozen=True)
class ConstraintReport:
    """Result of the native constraint check for a field.

    Attributes:
        valid: True when no constraint is violated
        violated_kinds: Violated kinds in the platform's enumeration order
    """

    valid: bool
    violated_kinds: tuple[ValidityKind, ...] = ()


# =============================================================================
# Collaborator Protocols
# =============================================================================


class NativeConstraintAdapter(Protocol):
    """Reports platform-detected constraint violations for a field."""

    def check(self, field: Field) -> ConstraintReport:
        ...

    def fallback_message(self, field: Field) -> str:
        """Platform-native message used when no translation applies."""
        ...


class FeedbackSink(Protocol):
    """Renders feedback messages and state classes.

    ``target`` is a handle: a field id, a logical parent id or a form id.
    """

    def render(self, field: Field, message: str) -> None:
        ...

    def clear_feedback(self, field: Field) -> None:
        ...

    def toggle_classes(
        self,
        target: str,
        add: tuple[str, ...] = (),
        remove: tuple[str, ...] = (),
    ) -> None:
        ...


class SubmitControl(Protocol):
    """The form's submit control."""

    def enable(self) -> None:
        ...

    def disable(self) -> None:
        ...


class ViewportHelper(Protocol):
    """Scroll and focus helper used to highlight the first error."""

    def bring_into_view(self, field: Field, offset: int) -> None:
        ...

    def focus(self, field: Field) -> None:
        ...
