from eagerform.core.errors import (
    ConfigError,
    EagerFormError,
    RequestAborted,
    RuleRejected,
    RuleTransportError,
)
from eagerform.core.types import (
    ConstraintReport,
    FeedbackSink,
    Field,
    FieldStatus,
    Form,
    FormEvent,
    NativeConstraintAdapter,
    SubmitControl,
    ValidityKind,
    ViewportHelper,
)

__all__ = [
    "ConfigError",
    "ConstraintReport",
    "EagerFormError",
    "FeedbackSink",
    "Field",
    "FieldStatus",
    "Form",
    "FormEvent",
    "NativeConstraintAdapter",
    "RequestAborted",
    "RuleRejected",
    "RuleTransportError",
    "SubmitControl",
    "ValidityKind",
    "ViewportHelper",
]
