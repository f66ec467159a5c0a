"""Built-in rules shipped with EagerForm.

- match: the field's value must equal the value of the named field
- reference: re-validates the named field whenever this one is validated
- remote: validates the value against an HTTP endpoint
"""

from typing import TYPE_CHECKING

from eagerform.core.errors import RuleRejected
from eagerform.core.types import Field, FormEvent

if TYPE_CHECKING:
    from eagerform.rules.pipeline import RuleContext
    from eagerform.rules.registry import RuleRegistry


async def match_rule(field: Field, value: str, ctx: "RuleContext") -> None:
    """Fail unless the field's value equals the referenced field's value.

    The attribute value names the other field (``password``) or its handle
    (``#password-id``).
    """
    target = ctx.form.find(value)
    if target is None or field.value != target.value:
        raise RuleRejected(ctx.resolver.translate("valueNotEqual", "The values don't match"))


async def reference_rule(field: Field, value: str, ctx: "RuleContext") -> None:
    """Trigger a change event on the referenced field when it has content.

    Meant to be used alongside ``match`` on the original field, so editing the
    original re-validates its confirmation. Always passes.
    """
    target = ctx.form.find(value)
    if target is not None and target.value:
        ctx.dispatch(FormEvent("change", target))


async def remote_rule(field: Field, value: str, ctx: "RuleContext") -> None:
    """Validate the field through the form's remote executor."""
    await ctx.remote.run(field, ctx.attribute)


def register_builtin_rules(registry: "RuleRegistry") -> None:
    """Register the built-in rules into a registry."""
    registry.register("match", match_rule)
    registry.register("reference", reference_rule)
    registry.register("remote", remote_rule)
