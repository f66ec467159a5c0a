"""Custom rules: registry, pipeline, built-ins and the remote executor.

Usage:
    from eagerform.rules import RuleRejected, rule

    @rule("even")
    async def even(field, value, ctx):
        if int(field.value or 0) % 2:
            raise RuleRejected("Please enter an even number")
"""

from eagerform.core.errors import RuleRejected
from eagerform.rules.builtin import (
    match_rule,
    reference_rule,
    register_builtin_rules,
    remote_rule,
)
from eagerform.rules.pipeline import RuleContext, RuleOutcome, RulePipeline
from eagerform.rules.registry import (
    RESERVED_WORDS,
    RulePredicate,
    RuleRegistry,
    create_default_registry,
    default_registry,
    rule,
)
from eagerform.rules.remote import RemoteRequest, RemoteRequestOptions, RemoteRuleExecutor

__all__ = [
    "RESERVED_WORDS",
    "RemoteRequest",
    "RemoteRequestOptions",
    "RemoteRuleExecutor",
    "RuleContext",
    "RuleOutcome",
    "RulePipeline",
    "RulePredicate",
    "RuleRegistry",
    "RuleRejected",
    "create_default_registry",
    "default_registry",
    "match_rule",
    "reference_rule",
    "register_builtin_rules",
    "remote_rule",
    "rule",
]
