"""Validator options and option loading."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from eagerform.core.errors import ConfigError


@dataclass
class FeedbackClasses:
    """State classes toggled on fields, parents and the form."""

    form_validated: str = "was-validated"
    input_valid: str = "is-valid"
    input_invalid: str = "is-invalid"
    parent_valid: str = "has-valid-input"
    parent_invalid: str = "has-invalid-input"
    disabled: str = "disabled"
    parent_busy: str = "is-validating"


@dataclass
class ValidatorOptions:
    """Options for a FormValidator.

    Attributes:
        locale: Catalog locale used for messages (must be loaded)
        show_success_state: Apply valid classes to passing fields
        auto_scroll: Bring the first error into view on failed submit
        focus_first_error: Focus the first error on failed submit
        offset_focus: Offset passed to the viewport helper
        revalidate: Event types that trigger validation
        no_trigger_on_tab: Ignore keyboard events caused by the tab key
        delay: Per-event delay defaults in milliseconds
        debounce: Per-event debounce defaults in milliseconds
        validate_without_name: Validate fields that have no name
        capture_submit: Handle submit events
        disable_submit: Disable the submit control while the form is invalid
        capture_reset: Handle reset events
        attribute_prefix: Prefix of declarative attributes
        suppress_attribute: Marker attribute that excludes a field
        show_busy_state: Mark the logical parent while a remote rule runs
        remote_timeout: Timeout for remote rules in seconds (None = no timeout)
        classes: State class names
    """

    locale: str = "en"
    show_success_state: bool = True
    auto_scroll: bool = True
    focus_first_error: bool = True
    offset_focus: int = 50
    revalidate: list[str] = field(default_factory=lambda: ["blur", "change", "keyup"])
    no_trigger_on_tab: bool = True
    delay: dict[str, int] = field(default_factory=dict)
    debounce: dict[str, int] = field(default_factory=lambda: {"blur": 100})
    validate_without_name: bool = False
    capture_submit: bool = True
    disable_submit: bool = True
    capture_reset: bool = True
    attribute_prefix: str = "data-eager"
    suppress_attribute: str = "novalidate"
    show_busy_state: bool = True
    remote_timeout: float | None = None
    classes: FeedbackClasses = field(default_factory=FeedbackClasses)

    def attribute(self, *parts: str) -> str:
        """Build a declarative attribute name, e.g. ``attribute("blur", "debounce")``."""
        return "-".join((self.attribute_prefix, *parts))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ValidatorOptions:
        """Create options from a YAML/JSON dict.

        Keys may be camelCase (``showSuccessState``) or snake_case.

        Raises:
            ConfigError: On unknown keys
        """
        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            name = _snake_case(key)
            if name not in known:
                raise ConfigError(f"Unknown option '{key}'")
            if name == "classes":
                value = _classes_from_dict(value or {})
            kwargs[name] = value
        return cls(**kwargs)

    @classmethod
    def from_env(cls) -> ValidatorOptions:
        """Create options from environment variables.

        Resolution order:
        1. EAGERFORM_OPTIONS env var (path to a YAML options file)
        2. Defaults
        EAGERFORM_LOCALE, when set, overrides the locale of either.
        """
        options_path = os.environ.get("EAGERFORM_OPTIONS")
        options = load_options(Path(options_path)) if options_path else cls()

        locale = os.environ.get("EAGERFORM_LOCALE")
        if locale:
            options.locale = locale
        return options


def load_options(path: Path) -> ValidatorOptions:
    """Load ValidatorOptions from a YAML file.

    The document may hold the options at the top level or under ``options:``.
    """
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot read options file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Options file {path} must contain a mapping")
    if "options" in data:
        data = data["options"] or {}
    return ValidatorOptions.from_dict(data)


def _classes_from_dict(data: dict[str, Any]) -> FeedbackClasses:
    known = {f.name for f in fields(FeedbackClasses)}
    kwargs = {}
    for key, value in data.items():
        # Class option names may carry a "Class" suffix (inputValidClass)
        name = _snake_case(key).removesuffix("_class")
        if name not in known:
            raise ConfigError(f"Unknown class option '{key}'")
        kwargs[name] = value
    return FeedbackClasses(**kwargs)


def _snake_case(name: str) -> str:
    return re.sub(r"([A-Z])", r"_\1", name).lower()
