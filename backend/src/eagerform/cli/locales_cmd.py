"""Locale CLI commands: validate and list message catalogs."""

from pathlib import Path

import click

from eagerform.core.errors import ConfigError
from eagerform.loader import validate_yaml_file
from eagerform.messages.catalog import _LOCALES_DIR, MessageCatalog


@click.group()
def locales():
    """Locale catalog commands."""
    pass


@locales.command()
@click.option(
    "--path",
    "target_path",
    default=None,
    type=click.Path(exists=True, path_type=Path),
    help="Locale YAML file or directory (defaults to the bundled locales).",
)
def validate(target_path: Path | None):
    """Validate locale YAML files against the locale JSON Schema."""
    target_path = target_path or _LOCALES_DIR
    if target_path.is_dir():
        files = sorted(target_path.glob("*.yaml"))
    else:
        files = [target_path]

    if not files:
        click.echo(f"Error: No locale files found at {target_path}", err=True)
        raise SystemExit(1)

    issues = []
    for path in files:
        issues.extend(validate_yaml_file(path, "locale.schema.json"))

    for issue in issues:
        click.echo(click.style(str(issue), fg="red"))

    if issues:
        click.echo(click.style(f"\n{len(issues)} schema error(s) found", fg="red", bold=True))
        raise SystemExit(1)

    click.echo(click.style(f"All {len(files)} locale file(s) are valid.", fg="green", bold=True))


@locales.command("list")
@click.option(
    "--locales-dir",
    default=None,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Directory of additional locale YAML files.",
)
def list_cmd(locales_dir: Path | None):
    """List loaded locales and their message counts."""
    try:
        catalog = MessageCatalog.default()
        if locales_dir is not None:
            catalog.load_directory(locales_dir)
    except ConfigError as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        raise SystemExit(1)

    for name in catalog.locales():
        click.echo(f"  {name} ({len(catalog.messages(name))} messages)")
