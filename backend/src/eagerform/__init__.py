"""EagerForm: an asyncio engine for eager, attribute-driven form validation."""

from eagerform.config import FeedbackClasses, ValidatorOptions, load_options
from eagerform.core import (
    ConfigError,
    EagerFormError,
    Field,
    FieldStatus,
    Form,
    FormEvent,
    RuleRejected,
    ValidityKind,
)
from eagerform.engine import FormValidator
from eagerform.rules import RuleRegistry, default_registry, rule

__version__ = "1.0.2"

__all__ = [
    "ConfigError",
    "EagerFormError",
    "FeedbackClasses",
    "Field",
    "FieldStatus",
    "Form",
    "FormEvent",
    "FormValidator",
    "RuleRegistry",
    "RuleRejected",
    "ValidatorOptions",
    "ValidityKind",
    "default_registry",
    "load_options",
    "rule",
]
