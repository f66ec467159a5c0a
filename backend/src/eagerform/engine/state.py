"""Per-field validation state machine.

States: Idle, Checking(g), Valid, Invalid(kind, message).

Every pass starts with ``begin``, which bumps the field's generation and moves
it to Checking. Settlements carry the generation they were dispatched with;
a settlement whose generation is no longer current is discarded without
touching the state.

Several rules may settle within one generation. Each settlement overwrites
the previous one, so the last rule to settle decides the final state. This is
deliberate: rules run concurrently and the outcome follows completion time,
not registration order.
"""

import logging
from dataclasses import dataclass, replace

from eagerform.core.types import Field, FieldStatus, ValidityKind

logger = logging.getLogger(__name__)


@dataclass
class FieldState:
    """Engine-owned state of a field.

    Attributes:
        status: Current status
        generation: Generation of the latest pass
        kind: Validity kind when Invalid
        message: Display message when Invalid
        custom_message: Custom-error marker ('' when not set)
    """

    status: FieldStatus = FieldStatus.IDLE
    generation: int = 0
    kind: ValidityKind | None = None
    message: str = ""
    custom_message: str = ""

    @property
    def has_custom_error(self) -> bool:
        return bool(self.custom_message)


class FieldStateMachine:
    """Owns the state of every field, keyed by field handle."""

    def __init__(self) -> None:
        self._states: dict[str, FieldState] = {}

    def _state(self, field: Field) -> FieldState:
        if field.id not in self._states:
            self._states[field.id] = FieldState()
        return self._states[field.id]

    def snapshot(self, field: Field) -> FieldState:
        """Return a copy of the field's state."""
        return replace(self._state(field))

    def has_custom_error(self, field: Field) -> bool:
        return self._state(field).has_custom_error

    def begin(self, field: Field) -> int:
        """Start a new pass and return its generation."""
        state = self._state(field)
        state.generation += 1
        state.status = FieldStatus.CHECKING
        logger.debug("Field '%s' checking (generation %d)", field.name, state.generation)
        return state.generation

    def is_current(self, field: Field, generation: int) -> bool:
        return self._state(field).generation == generation

    def settle_valid(self, field: Field, generation: int) -> bool:
        """Mark the field valid and clear its custom marker.

        Returns:
            False if the generation is stale and nothing changed
        """
        state = self._state(field)
        if not self._accepts(field, state, generation):
            return False
        state.status = FieldStatus.VALID
        state.kind = None
        state.message = ""
        state.custom_message = ""
        logger.debug("Field '%s' valid (generation %d)", field.name, generation)
        return True

    def settle_invalid(
        self,
        field: Field,
        generation: int,
        kind: ValidityKind,
        message: str,
    ) -> bool:
        """Mark the field invalid.

        Custom and network failures also set the custom marker, so the field
        keeps failing form-level checks until a rule passes.

        Returns:
            False if the generation is stale and nothing changed
        """
        state = self._state(field)
        if not self._accepts(field, state, generation):
            return False
        state.status = FieldStatus.INVALID
        state.kind = kind
        state.message = message
        if kind in (ValidityKind.CUSTOM_ERROR, ValidityKind.NETWORK_ERROR):
            state.custom_message = message
        logger.debug(
            "Field '%s' invalid: %s (generation %d)", field.name, kind.value, generation
        )
        return True

    def reset(self, field: Field) -> None:
        """Return the field to Idle.

        The generation is bumped so that in-flight settlements are discarded.
        """
        state = self._state(field)
        state.generation += 1
        state.status = FieldStatus.IDLE
        state.kind = None
        state.message = ""
        state.custom_message = ""

    def _accepts(self, field: Field, state: FieldState, generation: int) -> bool:
        if state.generation != generation:
            logger.debug(
                "Discarding stale result for field '%s' (generation %d, current %d)",
                field.name,
                generation,
                state.generation,
            )
            return False
        if state.status == FieldStatus.IDLE:
            raise RuntimeError(f"Field '{field.name}' settled without a pass")
        return True
