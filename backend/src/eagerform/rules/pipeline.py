"""Custom rule pipeline.

For a field, every registered rule whose attribute is present is launched as
its own asyncio task. The rules run concurrently and settle independently;
each settlement is reported through a callback as a RuleOutcome. Ordering
between rules is left to completion time.
"""

import asyncio
import inspect
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from eagerform.core.errors import RequestAborted, RuleRejected, RuleTransportError
from eagerform.core.types import Field, Form, FormEvent, ValidityKind
from eagerform.messages.resolver import MessageResolver
from eagerform.rules.registry import RulePredicate, RuleRegistry

if TYPE_CHECKING:
    from eagerform.rules.remote import RemoteRuleExecutor

logger = logging.getLogger(__name__)


@dataclass
class RuleContext:
    """Runtime context passed to every rule predicate.

    Attributes:
        name: Rule name
        attribute: Full attribute name (``data-eager-remote``)
        form: The form the field belongs to
        resolver: Message resolver for the form's locale
        remote: The form's remote rule executor
        dispatch: Delivers an event to the form (used by the reference rule)
    """

    name: str
    attribute: str
    form: Form
    resolver: MessageResolver
    remote: "RemoteRuleExecutor"
    dispatch: Callable[[FormEvent], None]


@dataclass(frozen=True)
class RuleOutcome:
    """Settlement of a single rule for a single pass.

    Attributes:
        rule: Rule name
        passed: True if the rule accepted the field
        kind: Validity kind for failures (customError or networkError)
        message: Resolved failure message ('' when passed)
    """

    rule: str
    passed: bool
    kind: ValidityKind | None = None
    message: str = ""


class RulePipeline:
    """Launches the custom rules attached to a field."""

    def __init__(
        self,
        registry: RuleRegistry,
        resolver: MessageResolver,
        attribute_prefix: str = "data-eager",
    ):
        self.registry = registry
        self.resolver = resolver
        self.attribute_prefix = attribute_prefix

    def attached(self, field: Field) -> list[tuple[str, str, RulePredicate]]:
        """Rules attached to a field, in registration order.

        Returns:
            List of (rule name, attribute name, predicate)
        """
        rules = []
        for name, predicate in self.registry.items():
            attribute = f"{self.attribute_prefix}-{name}"
            if field.has_attribute(attribute):
                rules.append((name, attribute, predicate))
        return rules

    def launch(
        self,
        field: Field,
        make_context: Callable[[str, str], RuleContext],
        on_settle: Callable[[RuleOutcome], None],
    ) -> list[asyncio.Task]:
        """Launch every attached rule as an independent task.

        Args:
            field: The field under validation
            make_context: Builds a RuleContext from (rule name, attribute)
            on_settle: Called once per rule that settles

        Returns:
            The launched tasks (not awaited)
        """
        rules = self.attached(field)
        if not rules:
            return []

        loop = asyncio.get_running_loop()
        tasks = []
        for name, attribute, predicate in rules:
            ctx = make_context(name, attribute)
            task = loop.create_task(
                self._run(field, predicate, ctx, on_settle),
                name=f"eagerform-rule-{name}-{field.id}",
            )
            tasks.append(task)
        return tasks

    async def _run(
        self,
        field: Field,
        predicate: RulePredicate,
        ctx: RuleContext,
        on_settle: Callable[[RuleOutcome], None],
    ) -> None:
        value = field.get_attribute(ctx.attribute, "")
        try:
            result = predicate(field, value, ctx)
            if inspect.isawaitable(result):
                await result
        except RequestAborted:
            logger.debug("Rule '%s' on field '%s' was aborted", ctx.name, field.name)
            return
        except RuleTransportError:
            on_settle(RuleOutcome(
                rule=ctx.name,
                passed=False,
                kind=ValidityKind.NETWORK_ERROR,
                message=self.resolver.resolve(ValidityKind.NETWORK_ERROR, field),
            ))
            return
        except RuleRejected as e:
            reason = e.reason
        except Exception as e:
            logger.warning(
                "Rule '%s' failed on field '%s': %s", ctx.name, field.name, e
            )
            reason = str(e)
        else:
            on_settle(RuleOutcome(rule=ctx.name, passed=True))
            return

        on_settle(RuleOutcome(
            rule=ctx.name,
            passed=False,
            kind=ValidityKind.CUSTOM_ERROR,
            message=self.failure_message(field, ctx.attribute, reason),
        ))

    def failure_message(self, field: Field, attribute: str, reason: str) -> str:
        """Pick the failure message for a rejected rule.

        Order: per-rule attribute > global attribute > rejection reason >
        platform fallback.
        """
        return (
            field.get_attribute(f"{attribute}-error")
            or field.get_attribute(f"{self.attribute_prefix}-error")
            or reason
            or self.resolver.fallback(field)
        )
