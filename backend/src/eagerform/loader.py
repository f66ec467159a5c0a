"""
loader.py: YAML form definitions and JSON Schema checks for EagerForm files.

Form definitions and locale catalogs are YAML documents validated against
the JSON Schemas bundled in ``eagerform/schemas``.

Usage:
    from eagerform.loader import FormLoader, validate_yaml_file

    issues = validate_yaml_file(Path("forms/signup.yaml"), "form.schema.json")
    form, options = FormLoader().load_file(Path("forms/signup.yaml"))
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError

from eagerform.core.errors import ConfigError
from eagerform.core.types import Field, Form

if TYPE_CHECKING:
    from eagerform.config import ValidatorOptions

logger = logging.getLogger(__name__)

_SCHEMAS_DIR = Path(__file__).parent / "schemas"


@dataclass
class SchemaIssue:
    """A single schema finding for a YAML document."""

    file: Path | None
    message: str
    path: str = ""          # location within the document, e.g. "form/fields[0]"

    def __str__(self) -> str:
        loc = f" at {self.path}" if self.path else ""
        return f"[ERROR] {self.file or '<document>'}{loc}: {self.message}"


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _load_schema(name: str) -> dict[str, Any]:
    schema_path = _SCHEMAS_DIR / name
    with schema_path.open() as fh:
        return json.load(fh)


def _json_path(error: ValidationError) -> str:
    """Convert a jsonschema ValidationError path to a readable string."""
    parts = []
    for p in error.absolute_path:
        if isinstance(p, int):
            parts.append(f"[{p}]")
        else:
            parts.append(str(p))
    return "/".join(parts).replace("/[", "[")


def _attribute_value(value: Any) -> str:
    # Bare YAML keys (``required:``) load as None and mean a present, empty attribute
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def validate_document(
    data: Any,
    schema_name: str,
    *,
    source: Path | None = None,
) -> list[SchemaIssue]:
    """
    Validate an already parsed document against the named schema.

    Args:
        data:        The parsed YAML/JSON document.
        schema_name: Filename of the schema (e.g. ``"form.schema.json"``).
        source:      File the document came from, used in issue reports.

    Returns:
        A list of :class:`SchemaIssue` objects (empty on success).
    """
    if data is None:
        return [SchemaIssue(file=source, message="Document is empty")]

    validator = Draft202012Validator(_load_schema(schema_name))
    return [
        SchemaIssue(file=source, message=error.message, path=_json_path(error))
        for error in sorted(validator.iter_errors(data), key=lambda e: list(e.path))
    ]


def validate_yaml_file(yaml_path: Path, schema_name: str) -> list[SchemaIssue]:
    """Parse a YAML file and validate it against the named schema."""
    try:
        with yaml_path.open() as fh:
            raw = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        return [SchemaIssue(file=yaml_path, message=f"YAML parse error: {exc}")]

    return validate_document(raw, schema_name, source=yaml_path)


class FormLoader:
    """Loads form definitions from YAML files."""

    def load_file(self, path: Path) -> tuple[Form, ValidatorOptions]:
        """Load a form definition and its options.

        Raises:
            ConfigError: If the file cannot be parsed or fails schema validation
        """
        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot read form file {path}: {e}") from e

        issues = validate_document(data, "form.schema.json", source=path)
        if issues:
            raise ConfigError("; ".join(str(issue) for issue in issues))

        return self.parse(data["form"])

    def parse(self, data: dict[str, Any]) -> tuple[Form, ValidatorOptions]:
        """Parse the ``form:`` mapping of a definition."""
        from eagerform.config import ValidatorOptions

        form = Form(name=data.get("name", ""))
        if data.get("id"):
            form.id = data["id"]

        for field_data in data.get("fields", []):
            form.add(self._parse_field(field_data))

        options = ValidatorOptions.from_dict(data.get("options") or {})
        logger.debug("Loaded form '%s' with %d fields", form.name, len(form))
        return form, options

    def _parse_field(self, data: dict[str, Any]) -> Field:
        value = data.get("value")
        item = Field(
            name=data.get("name"),
            type=data.get("type", "text"),
            value="" if value is None else str(value),
            checked=data.get("checked", False),
            attributes={
                key: _attribute_value(raw)
                for key, raw in (data.get("attributes") or {}).items()
            },
            parent=data.get("parent"),
            container=data.get("container", False),
        )
        if data.get("id"):
            item.id = data["id"]
        return item
