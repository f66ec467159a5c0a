"""Message resolution for failed fields.

Turns a validity kind and a field into display text:
1. Inline per-kind attribute (``data-eager-value-missing-error``)
2. Inline global attribute (``data-eager-error``)
3. Catalog key with type suffix (``valueMissingCheckbox``)
4. Catalog generic key (``valueMissing``)
5. Platform fallback message (returned as-is)

Templates support ``{count}``, ``{maxlength}``, ``{minlength}``, ``{step}``,
``{min}`` and ``{max}`` placeholders.
"""

import re
from typing import Callable

from eagerform.core.types import Field, ValidityKind
from eagerform.messages.catalog import MessageCatalog

# Pattern: {identifier}, surrounding whitespace allowed
PLACEHOLDER = re.compile(r"\{(\s*[\w.]+\s*)\}")

_SURROGATE_PAIR = re.compile("[\ud800-\udbff][\udc00-\udfff]")

_NUMERIC_TYPES = ("number", "range")
_DATE_TYPES = {"date": False, "datetime-local": True}

# Kinds whose catalog messages may be specialised per field type (e.g. typeMismatchEmail)
_TYPED_KINDS = frozenset(
    {
        ValidityKind.VALUE_MISSING,
        ValidityKind.TYPE_MISMATCH,
        ValidityKind.RANGE_OVERFLOW,
        ValidityKind.RANGE_UNDERFLOW,
        ValidityKind.BAD_INPUT,
    }
)


def unicode_length(value: str | None) -> int:
    """Count code points, treating a UTF-16 surrogate pair as one character."""
    if not value:
        return 0
    return len(value) - len(_SURROGATE_PAIR.findall(value))


def interpolate(template: str, values: dict[str, str]) -> str:
    """Replace ``{identifier}`` placeholders; unknown identifiers become ''."""

    def replace(match: re.Match) -> str:
        return values.get(match.group(1).strip(), "")

    return PLACEHOLDER.sub(replace, template)


def _kebab_case(name: str) -> str:
    return re.sub(r"[A-Z]", lambda m: f"-{m.group(0).lower()}", name)


class MessageResolver:
    """Resolves display messages for a single locale."""

    def __init__(
        self,
        catalog: MessageCatalog,
        locale: str,
        attribute_prefix: str = "data-eager",
        fallback: Callable[[Field], str] | None = None,
    ):
        """Initialize the resolver.

        Args:
            catalog: Message catalog (must contain the locale)
            locale: Locale used for lookups and formatting
            attribute_prefix: Prefix of the inline override attributes
            fallback: Platform message provider for a field
        """
        self.catalog = catalog
        self.locale = locale
        self.attribute_prefix = attribute_prefix
        self.fallback = fallback or (lambda field: "")
        # Fail early on unknown locales
        self.catalog.locale_format(locale)

    def translate(self, key: str, fallback: str | None = None) -> str | None:
        return self.catalog.translate(self.locale, key, fallback)

    def resolve(
        self,
        kind: ValidityKind,
        field: Field,
        custom_message: str = "",
    ) -> str:
        """Resolve the message for a failed field.

        Args:
            kind: The validity kind the field failed with
            field: The failed field
            custom_message: Current custom-error message (used for customError)

        Returns:
            The display message
        """
        if kind == ValidityKind.CUSTOM_ERROR:
            return custom_message or self.fallback(field)

        key = kind.value
        message = field.get_attribute(
            f"{self.attribute_prefix}-{_kebab_case(key)}-error"
        ) or field.get_attribute(f"{self.attribute_prefix}-error")

        if not message and kind in _TYPED_KINDS:
            suffix = field.type[:1].upper() + field.type[1:]
            message = self.translate(f"{key}{suffix}")
        if not message:
            message = self.translate(key)

        if not message:
            return self.fallback(field)

        return interpolate(message, self.template_values(field))

    def template_values(self, field: Field) -> dict[str, str]:
        """Build the placeholder values for a field.

        Attributes absent from the field are left out so their placeholders
        resolve to empty strings.
        """
        fmt = self.catalog.locale_format(self.locale)
        values = {"count": fmt.format_number(unicode_length(field.value))}

        for name in ("maxlength", "minlength", "step"):
            raw = field.get_attribute(name)
            if raw is not None:
                values[name] = fmt.format_number(raw)

        for name in ("min", "max"):
            raw = field.get_attribute(name)
            if raw is None:
                continue
            if field.type in _NUMERIC_TYPES:
                values[name] = fmt.format_number(raw)
            elif field.type in _DATE_TYPES:
                values[name] = fmt.format_date(raw, with_time=_DATE_TYPES[field.type])
            else:
                values[name] = raw

        return values
