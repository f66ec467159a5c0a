"""Exceptions raised by the EagerForm engine.

Validation failures are never raised to callers; they become field state and
messages. The exceptions here cover setup errors and the signalling used
between rule predicates and the pipeline.
"""


class EagerFormError(Exception):
    """Base class for EagerForm errors."""
    pass


class ConfigError(EagerFormError):
    """Fatal configuration error detected at setup.

    Raised for unknown locales, reserved or non-callable rules and invalid
    option or catalog files.
    """
    pass


class RuleRejected(EagerFormError):
    """Raised by a rule predicate to fail validation.

    Attributes:
        reason: Message shown when no override attribute applies
    """

    def __init__(self, reason: str = ""):
        super().__init__(reason)
        self.reason = reason

    def __str__(self) -> str:
        return self.reason


class RuleTransportError(EagerFormError):
    """A remote rule could not reach its endpoint."""
    pass


class RequestAborted(EagerFormError):
    """A remote request was aborted by a newer request for the same field."""
    pass
