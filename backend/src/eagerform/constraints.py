"""Attribute-driven native constraint adapter.

Evaluates the HTML constraint attributes carried by a field and reports the
violated validity kinds in the platform's enumeration order:
- required: Field must have a value (checkbox checked, radio group answered)
- type formats: email, url
- pattern: Whole-value regex match
- minlength/maxlength: Length bounds, counted in code points
- min/max/step: Numeric and date bounds
- badInput: Values that can't be parsed for number and date types
"""

import logging
import re
from datetime import datetime
from decimal import Decimal, DecimalException, InvalidOperation, localcontext

from eagerform.core.types import ConstraintReport, Field, Form, ValidityKind
from eagerform.messages.resolver import unicode_length

logger = logging.getLogger(__name__)


# =============================================================================
# Type-Specific Format Patterns
# =============================================================================

# Email: Basic RFC 5322 compliant pattern
EMAIL_PATTERN = re.compile(
    r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
)

# URL: Any scheme followed by a non-empty remainder
URL_PATTERN = re.compile(
    r"^[a-z][a-z0-9+.-]*:[^\s]+$",
    re.IGNORECASE
)

# Types barred from constraint validation
_BARRED_TYPES = frozenset({"button", "submit", "reset", "hidden", "image"})

# Types where minlength/maxlength apply
_TEXT_TYPES = frozenset({"text", "search", "url", "tel", "email", "password", "textarea"})

_NUMERIC_TYPES = frozenset({"number", "range"})
_DATE_TYPES = frozenset({"date", "datetime-local"})

# Step checks on values wider than this many digits are skipped
_MAX_STEP_DIGITS = 1000


_FALLBACK_MESSAGES = {
    ValidityKind.VALUE_MISSING: "Please fill out this field.",
    ValidityKind.TYPE_MISMATCH: "Please enter a valid value.",
    ValidityKind.PATTERN_MISMATCH: "Please match the requested format.",
    ValidityKind.STEP_MISMATCH: "Please enter a valid value.",
    ValidityKind.BAD_INPUT: "Please enter a valid value.",
}


# =============================================================================
# Attribute Constraint Adapter
# =============================================================================


class AttributeConstraintAdapter:
    """Native constraint adapter reading HTML-style attributes.

    The form is used to resolve radio groups: a required radio is satisfied
    when any same-named radio in the form is checked.
    """

    def __init__(self, form: Form | None = None):
        self.form = form

    def check(self, field: Field) -> ConstraintReport:
        """Check a field's constraints."""
        kinds = self._violations(field)
        return ConstraintReport(valid=not kinds, violated_kinds=tuple(kinds))

    def fallback_message(self, field: Field) -> str:
        """Platform-style message for the field's first violated kind."""
        kinds = self._violations(field)
        if not kinds:
            return ""
        kind = kinds[0]

        if kind == ValidityKind.VALUE_MISSING:
            if field.type == "checkbox":
                return "Please check this box if you want to proceed."
            if field.type in ("radio", "select"):
                return "Please select one of these options."
        elif kind == ValidityKind.TYPE_MISMATCH:
            if field.type == "email":
                return "Please enter an email address."
            if field.type == "url":
                return "Please enter a URL."
        elif kind == ValidityKind.TOO_LONG:
            return (
                f"Please shorten this text to {field.get_attribute('maxlength')} characters "
                f"or less (you are currently using {unicode_length(field.value)} characters)."
            )
        elif kind == ValidityKind.TOO_SHORT:
            return (
                f"Please lengthen this text to {field.get_attribute('minlength')} characters "
                f"or more (you are currently using {unicode_length(field.value)} characters)."
            )
        elif kind == ValidityKind.RANGE_UNDERFLOW:
            return f"Value must be greater than or equal to {field.get_attribute('min')}."
        elif kind == ValidityKind.RANGE_OVERFLOW:
            return f"Value must be less than or equal to {field.get_attribute('max')}."
        elif kind == ValidityKind.BAD_INPUT and field.type in _NUMERIC_TYPES:
            return "Please enter a number."

        return _FALLBACK_MESSAGES.get(kind, "Please enter a valid value.")

    def _violations(self, field: Field) -> list[ValidityKind]:
        if self._barred(field):
            return []

        kinds: list[ValidityKind] = []
        value = field.value

        if self._required(field) and self._is_missing(field):
            kinds.append(ValidityKind.VALUE_MISSING)

        # Empty optional values satisfy every other constraint
        if value == "" or field.type in ("checkbox", "radio"):
            return kinds

        if field.type == "email" and not EMAIL_PATTERN.match(value):
            kinds.append(ValidityKind.TYPE_MISMATCH)
        elif field.type == "url" and not URL_PATTERN.match(value):
            kinds.append(ValidityKind.TYPE_MISMATCH)

        pattern = field.get_attribute("pattern")
        if pattern:
            try:
                if not re.fullmatch(pattern, value):
                    kinds.append(ValidityKind.PATTERN_MISMATCH)
            except re.error:
                # Invalid patterns are ignored, as the platform does
                logger.warning("Ignoring invalid pattern on field '%s': %s", field.name, pattern)

        if field.type in _TEXT_TYPES:
            kinds.extend(self._length_violations(field))

        if field.type in _NUMERIC_TYPES:
            kinds.extend(self._numeric_violations(field))
        elif field.type in _DATE_TYPES:
            kinds.extend(self._date_violations(field))

        return kinds

    def _barred(self, field: Field) -> bool:
        return (
            field.container
            or field.type in _BARRED_TYPES
            or field.has_attribute("disabled")
            or field.has_attribute("readonly")
        )

    def _radio_group(self, field: Field) -> list[Field]:
        if self.form is None or not field.name:
            return [field]
        return [f for f in self.form if f.type == "radio" and f.name == field.name]

    def _required(self, field: Field) -> bool:
        # A required radio makes its whole group required
        if field.type == "radio":
            return any(f.has_attribute("required") for f in self._radio_group(field))
        return field.has_attribute("required")

    def _is_missing(self, field: Field) -> bool:
        if field.type == "checkbox":
            return not field.checked
        if field.type == "radio":
            return not any(f.checked for f in self._radio_group(field))
        return field.value == ""

    def _length_violations(self, field: Field) -> list[ValidityKind]:
        kinds = []
        length = unicode_length(field.value)

        max_length = _to_int(field.get_attribute("maxlength"))
        if max_length is not None and length > max_length:
            kinds.append(ValidityKind.TOO_LONG)

        min_length = _to_int(field.get_attribute("minlength"))
        if min_length is not None and length < min_length:
            kinds.append(ValidityKind.TOO_SHORT)

        return kinds

    def _numeric_violations(self, field: Field) -> list[ValidityKind]:
        number = _to_decimal(field.value)
        if number is None:
            return [ValidityKind.BAD_INPUT]

        kinds = []
        minimum = _to_decimal(field.get_attribute("min"))
        maximum = _to_decimal(field.get_attribute("max"))

        if minimum is not None and number < minimum:
            kinds.append(ValidityKind.RANGE_UNDERFLOW)
        if maximum is not None and number > maximum:
            kinds.append(ValidityKind.RANGE_OVERFLOW)

        raw_step = field.get_attribute("step", "1")
        if raw_step.strip().lower() != "any":
            step = _to_decimal(raw_step)
            if step is None or step <= 0:
                step = Decimal(1)
            base = minimum if minimum is not None else Decimal(0)
            if _step_mismatch(number, base, step):
                kinds.append(ValidityKind.STEP_MISMATCH)

        return kinds

    def _date_violations(self, field: Field) -> list[ValidityKind]:
        moment = _to_datetime(field.value)
        if moment is None:
            return [ValidityKind.BAD_INPUT]

        kinds = []
        minimum = _to_datetime(field.get_attribute("min"))
        maximum = _to_datetime(field.get_attribute("max"))

        if minimum is not None and moment < minimum:
            kinds.append(ValidityKind.RANGE_UNDERFLOW)
        if maximum is not None and moment > maximum:
            kinds.append(ValidityKind.RANGE_OVERFLOW)

        return kinds


def _to_int(raw: str | None) -> int | None:
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def _to_decimal(raw: str | None) -> Decimal | None:
    if raw is None or raw.strip() == "":
        return None
    try:
        number = Decimal(raw.strip())
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


def _step_mismatch(number: Decimal, base: Decimal, step: Decimal) -> bool:
    """Whether ``number`` is off the step grid starting at ``base``.

    The arithmetic runs with enough precision to hold every digit of the
    operands, so large values don't overflow the default 28-digit context.
    """
    operands = (number, base, step)
    top = max(d.adjusted() for d in operands)
    bottom = min(d.as_tuple().exponent for d in operands)
    width = top - bottom + 2
    if width > _MAX_STEP_DIGITS:
        logger.warning("Skipping step check for %s: too many digits", number)
        return False
    try:
        with localcontext() as ctx:
            ctx.prec = max(ctx.prec, width)
            return (number - base) % step != 0
    except DecimalException as e:
        logger.warning("Skipping step check for %s (step %s): %r", number, step, e)
        return False


def _to_datetime(raw: str | None) -> datetime | None:
    if not raw:
        return None
    try:
        moment = datetime.fromisoformat(raw)
    except ValueError:
        return None
    # Date and local date-time values never carry a UTC offset
    if moment.tzinfo is not None:
        return None
    return moment
