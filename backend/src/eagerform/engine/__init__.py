"""Validation engine: scheduling, state, feedback and the form coordinator."""

from eagerform.engine.feedback import FeedbackPresenter
from eagerform.engine.form import FormValidator
from eagerform.engine.scheduler import EventScheduler, parse_milliseconds
from eagerform.engine.signals import (
    AFTER_VALIDATE,
    BEFORE_VALIDATE,
    VALIDATION_COMPLETE,
    Signal,
    SignalBus,
)
from eagerform.engine.state import FieldState, FieldStateMachine

__all__ = [
    "AFTER_VALIDATE",
    "BEFORE_VALIDATE",
    "VALIDATION_COMPLETE",
    "EventScheduler",
    "FeedbackPresenter",
    "FieldState",
    "FieldStateMachine",
    "FormValidator",
    "Signal",
    "SignalBus",
    "parse_milliseconds",
]
