"""Locale message catalog.

The catalog maps ``locale -> (key -> template)`` and keeps an optional
LocaleFormat per locale for number and date rendering.

A catalog is shared by every FormValidator that uses it. Populate it during
setup (``add_locale``, ``load_directory``) before validation starts; it is
only read afterwards, so it needs no locking.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from pathlib import Path
from typing import Any

import yaml

from eagerform.core.errors import ConfigError
from eagerform.loader import validate_document

logger = logging.getLogger(__name__)

_LOCALES_DIR = Path(__file__).parent / "locales"

# Numbers are rendered with at most three fraction digits
_THOUSANDTH = Decimal("0.001")

# Wider numbers are shown as written
_MAX_FORMAT_DIGITS = 1000


@dataclass
class LocaleFormat:
    """Number and date rendering rules for a locale.

    Attributes:
        digits: Ten replacement characters for 0-9 (None keeps ASCII digits)
        group: Thousands separator
        decimal: Decimal separator
        date: strftime pattern for dates
        datetime: strftime pattern for date-times
    """

    digits: str | None = None
    group: str = ","
    decimal: str = "."
    date: str = "%m/%d/%Y"
    datetime: str = "%m/%d/%Y, %I:%M:%S %p"

    def __post_init__(self) -> None:
        if self.digits is not None and len(self.digits) != 10:
            raise ConfigError("A digit table must contain exactly ten characters")

    def substitute_digits(self, text: str) -> str:
        if not self.digits:
            return text
        return text.translate(str.maketrans("0123456789", self.digits))

    def format_number(self, value: Any) -> str:
        """Format a number with grouping and locale digits.

        Returns the value unchanged (as a string) when it is not numeric.
        """
        try:
            number = Decimal(str(value).strip())
        except InvalidOperation:
            return str(value)
        if not number.is_finite():
            return str(value)

        if number.adjusted() >= _MAX_FORMAT_DIGITS:
            return self.substitute_digits(str(value).strip())

        # Wide enough for every integral digit plus the three fraction digits
        with localcontext() as ctx:
            ctx.prec = max(ctx.prec, number.adjusted() + 5)
            number = number.quantize(_THOUSANDTH, rounding=ROUND_HALF_UP)
            integral, _, fraction = f"{abs(number):,f}".partition(".")
        fraction = fraction.rstrip("0")

        text = integral.replace(",", self.group)
        if fraction:
            text = f"{text}{self.decimal}{fraction}"
        if number < 0:
            text = f"-{text}"
        return self.substitute_digits(text)

    def format_date(self, value: str, with_time: bool = False) -> str:
        """Format an ISO date or date-time string; unparsable values pass through."""
        try:
            parsed = datetime.fromisoformat(value)
        except (TypeError, ValueError):
            return value
        pattern = self.datetime if with_time else self.date
        return self.substitute_digits(parsed.strftime(pattern))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LocaleFormat":
        """Create LocaleFormat from YAML/JSON dict."""
        digits = data.get("digits")
        if isinstance(digits, list):
            digits = "".join(str(d) for d in digits)
        return cls(
            digits=digits,
            group=data.get("group", ","),
            decimal=data.get("decimal", "."),
            date=data.get("date", "%m/%d/%Y"),
            datetime=data.get("datetime", "%m/%d/%Y, %I:%M:%S %p"),
        )


class MessageCatalog:
    """Registry of locale messages and formats.

    Example:
        catalog = MessageCatalog.default()
        catalog.add_locale("fr", {"valueMissing": "Veuillez renseigner ce champ."})
        catalog.translate("fr", "valueMissing")
    """

    def __init__(self) -> None:
        self._messages: dict[str, dict[str, str]] = {}
        self._formats: dict[str, LocaleFormat] = {}

    @classmethod
    def default(cls) -> "MessageCatalog":
        """Create a catalog holding the bundled locales."""
        catalog = cls()
        catalog.load_directory(_LOCALES_DIR)
        return catalog

    def add_locale(
        self,
        name: str,
        messages: dict[str, str],
        fmt: LocaleFormat | None = None,
    ) -> None:
        """Add or replace a locale."""
        self._messages[name] = dict(messages)
        self._formats[name] = fmt or LocaleFormat()

    def has_locale(self, name: str) -> bool:
        return name in self._messages

    def locales(self) -> list[str]:
        return sorted(self._messages)

    def messages(self, locale: str) -> dict[str, str]:
        """Return a copy of a locale's messages."""
        return dict(self._require(locale))

    def add_message(self, locale: str, key: str, message: str) -> None:
        """Add or replace a single message."""
        self._require(locale)[key] = message

    def set_messages(self, locale: str, messages: dict[str, str]) -> None:
        """Merge messages into a locale, overwriting existing keys."""
        self._require(locale).update(messages)

    def translate(self, locale: str, key: str, fallback: str | None = None) -> str | None:
        """Look up a message; empty messages count as missing."""
        message = self._require(locale).get(key)
        if message:
            return message
        return fallback

    def locale_format(self, locale: str) -> LocaleFormat:
        self._require(locale)
        return self._formats[locale]

    def load_file(self, path: Path) -> str:
        """Load a locale YAML file and return its locale name.

        Raises:
            ConfigError: If the file is unreadable or fails schema validation
        """
        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot read locale file {path}: {e}") from e

        issues = validate_document(data, "locale.schema.json", source=path)
        if issues:
            raise ConfigError("; ".join(str(issue) for issue in issues))

        name = data["locale"]
        self.add_locale(
            name,
            data.get("messages", {}),
            LocaleFormat.from_dict(data.get("format", {})),
        )
        logger.debug("Loaded locale '%s' from %s", name, path)
        return name

    def load_directory(self, path: Path) -> list[str]:
        """Load every ``*.yaml`` locale file in a directory."""
        return [self.load_file(p) for p in sorted(path.glob("*.yaml"))]

    def _require(self, locale: str) -> dict[str, str]:
        if locale not in self._messages:
            raise ConfigError(f"The locale {locale} is not loaded.")
        return self._messages[locale]


_default_catalog: MessageCatalog | None = None


def default_catalog() -> MessageCatalog:
    """The shared catalog holding the bundled locales, loaded on first use."""
    global _default_catalog
    if _default_catalog is None:
        _default_catalog = MessageCatalog.default()
    return _default_catalog
