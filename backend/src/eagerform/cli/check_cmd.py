"""Check command: validate a form definition from the command line."""

import asyncio
from pathlib import Path

import click

from eagerform.config import ValidatorOptions
from eagerform.core.errors import ConfigError
from eagerform.core.types import Form, FormEvent
from eagerform.engine.form import FormValidator
from eagerform.loader import FormLoader
from eagerform.messages.catalog import MessageCatalog
from eagerform.sinks import MemoryFeedbackSink

_CHECKED_VALUES = ("1", "true", "on", "yes", "checked")


def _parse_assignment(raw: str) -> tuple[str, str]:
    name, sep, value = raw.partition("=")
    if not sep or not name:
        raise click.BadParameter(f"Expected name=value, got '{raw}'", param_hint="--set")
    return name, value


def _apply_values(form: Form, assignments: tuple[str, ...]) -> None:
    """Apply ``--set`` values to the form's fields."""
    for raw in assignments:
        key, value = _parse_assignment(raw)
        target = form.find(key)
        if target is None:
            raise click.BadParameter(f"No field named '{key}'", param_hint="--set")

        if target.type == "checkbox":
            target.checked = value.lower() in _CHECKED_VALUES
        elif target.type == "radio":
            # Check the radio of the group carrying the value
            for item in form:
                if item.type == "radio" and item.name == target.name:
                    item.checked = item.value == value
        else:
            target.value = value


async def _run_check(form: Form, options: ValidatorOptions, catalog: MessageCatalog):
    sink = MemoryFeedbackSink()
    validator = FormValidator(form, options, sink=sink, catalog=catalog)
    try:
        validator.handle_submit(FormEvent("submit"))
        await validator.wait_settled()
        results = [(item, validator.state(item)) for item in form]
        return results, validator.is_valid(), sink
    finally:
        await validator.aclose()


@click.command()
@click.argument("form_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--locale", default=None, help="Locale used for messages (overrides the form's).")
@click.option(
    "--locales-dir",
    default=None,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Directory of additional locale YAML files.",
)
@click.option(
    "--set",
    "assignments",
    multiple=True,
    metavar="NAME=VALUE",
    help="Set a field value before validating (repeatable).",
)
def check(form_path: Path, locale: str | None, locales_dir: Path | None, assignments: tuple[str, ...]):
    """Validate a form definition and report every field's state."""
    try:
        form, options = FormLoader().load_file(form_path)
        if locale:
            options.locale = locale

        catalog = MessageCatalog.default()
        if locales_dir is not None:
            catalog.load_directory(locales_dir)
    except ConfigError as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        raise SystemExit(1)

    _apply_values(form, assignments)

    try:
        results, valid, sink = asyncio.run(_run_check(form, options, catalog))
    except ConfigError as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        raise SystemExit(1)

    click.echo(f"Form '{form.name or form.id}' ({len(form)} fields):")
    for item, state in results:
        if item.container or item.is_button:
            continue
        label = item.name or f"#{item.id}"
        if state.message:
            click.echo(click.style(f"  ✗ {label}: {state.message}", fg="red"))
        else:
            click.echo(f"  ✓ {label} ({state.status.value})")

    if not valid:
        click.echo(click.style("\nForm is invalid.", fg="red", bold=True))
        raise SystemExit(1)

    click.echo(click.style("\nForm is valid.", fg="green", bold=True))
