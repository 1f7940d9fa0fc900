"""
Value Normalizer

Decides whether an expected dataset value is equivalent to a fetched
database value. The column's PostgreSQL type OID selects the rule:

- timestamp / timestamptz: the instant is rendered in several textual
  conventions and the expected text may match any of them
- json / jsonb: both sides are re-rendered with one canonical JSON encoder
- uuid: both sides are canonicalised to lowercase hyphenated form
- anything else: both sides go through the default textual rendering
"""

import json
import logging
import uuid
from datetime import date, datetime, time, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, NamedTuple, Tuple

from dbcomparer.comparison.types import ColumnValue
from dbcomparer.dataset import ExpectedValue, ValueKind
from dbcomparer.exceptions import TypeDecodeError

logger = logging.getLogger(__name__)

# PostgreSQL type OIDs (pg_type.oid)
JSON_OID = 114
TIMESTAMP_OID = 1114
TIMESTAMPTZ_OID = 1184
UUID_OID = 2950
JSONB_OID = 3802

NULL_TEXT = "null"

_WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


class TypeClass(Enum):
    """Comparison rule families."""
    TEMPORAL = "temporal"
    JSON = "json"
    UUID = "uuid"
    DEFAULT = "default"


_TYPE_CLASSES = {
    TIMESTAMP_OID: TypeClass.TEMPORAL,
    TIMESTAMPTZ_OID: TypeClass.TEMPORAL,
    JSON_OID: TypeClass.JSON,
    JSONB_OID: TypeClass.JSON,
    UUID_OID: TypeClass.UUID,
}


def classify(type_code: int) -> TypeClass:
    """Map a type OID to its comparison rule."""
    return _TYPE_CLASSES.get(type_code, TypeClass.DEFAULT)


class ValueComparison(NamedTuple):
    """Result of comparing one column value, with both canonical forms."""
    equal: bool
    expected: str
    actual: str


def render_json(value: Any) -> str:
    """Canonical JSON text: sorted keys, no insignificant whitespace."""
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)


def render_default_json(value: Any) -> str:
    """
    Canonical JSON text for containers compared by the default rule.

    Numbers are normalised first, so ``[1.5, 2]`` from a dataset and
    ``[Decimal('1.50'), Decimal('2')]`` from a numeric[] column render alike.
    """
    return render_json(_uniform_numbers(value))


def render_number(value: Any) -> str:
    """Render a number in normalised fixed notation (1.50 -> 1.5, 1E+2 -> 100)."""
    number = Decimal(repr(value)) if isinstance(value, float) else Decimal(value)
    if number.is_finite():
        number = number.normalize()
        if number.is_zero():
            number = Decimal(0)
    return format(number, "f")


def temporal_renderings(instant: datetime) -> Tuple[str, ...]:
    """
    Render an instant in every accepted timestamp convention.

    Naive values are taken to be UTC; aware values are converted to UTC.

    Returns:
        ISO-8601 with fraction, ISO-8601 without fraction,
        ``YYYY-MM-DD HH:MM:SS``, the same with fraction, and the Unix date
        style (``Mon Jan  2 10:00:00 UTC 2023``). Fractions drop trailing
        zeros and are omitted entirely when zero.
    """
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    else:
        instant = instant.astimezone(timezone.utc)

    day = f"{instant.year:04d}-{instant.month:02d}-{instant.day:02d}"
    clock = f"{instant.hour:02d}:{instant.minute:02d}:{instant.second:02d}"
    fraction = f".{instant.microsecond:06d}".rstrip("0") if instant.microsecond else ""

    return (
        f"{day}T{clock}{fraction}Z",
        f"{day}T{clock}Z",
        f"{day} {clock}",
        f"{day} {clock}{fraction}",
        f"{_WEEKDAYS[instant.weekday()]} {_MONTHS[instant.month - 1]} "
        f"{instant.day:>2} {clock} UTC {instant.year}",
    )


class ValueNormalizer:
    """
    Compares expected dataset values with fetched column values.

    Stateless; a single instance can be shared between comparisons.
    """

    def compare(self, expected: ExpectedValue, actual: ColumnValue) -> ValueComparison:
        """
        Compare one expected value with one fetched value.

        Args:
            expected: Tagged value from the dataset
            actual: Fetched value and its type OID

        Returns:
            ValueComparison with equality and canonical renderings

        Raises:
            TypeDecodeError: If the expected value cannot be decoded for
                a JSON or UUID column
        """
        if expected.is_null or actual.value is None:
            return ValueComparison(
                expected.is_null and actual.value is None,
                self.render_expected(expected),
                self.render_actual(actual.value)
            )

        type_class = classify(actual.type_code)

        if type_class is TypeClass.TEMPORAL and isinstance(actual.value, datetime):
            return self.compare_temporal(expected, actual.value)
        if type_class is TypeClass.JSON:
            return self.compare_json(expected, actual.value)
        if type_class is TypeClass.UUID:
            return self.compare_uuid(expected, actual.value)
        return self.compare_default(expected, actual.value)

    def compare_temporal(self, expected: ExpectedValue, instant: datetime) -> ValueComparison:
        """Match the expected text against every rendering of the instant."""
        renderings = temporal_renderings(instant)
        expected_text = self.render_expected(expected)

        # "+00:00" is the same designator as "Z"
        candidate = expected_text
        if candidate.endswith("+00:00") and "T" in candidate:
            candidate = candidate[:-6] + "Z"

        return ValueComparison(candidate in renderings, expected_text, renderings[0])

    def compare_json(self, expected: ExpectedValue, value: Any) -> ValueComparison:
        """Compare canonical JSON renderings of both sides."""
        expected_text = render_json(self.decode_expected_json(expected))
        actual_text = self._render_actual_json(value)
        return ValueComparison(expected_text == actual_text, expected_text, actual_text)

    def compare_uuid(self, expected: ExpectedValue, value: Any) -> ValueComparison:
        """Compare lowercase hyphenated forms of both sides."""
        if expected.kind is not ValueKind.STRING:
            raise TypeDecodeError(expected.to_python(), "UUID columns expect a string value")
        try:
            expected_text = str(uuid.UUID(expected.value.strip()))
        except ValueError as e:
            raise TypeDecodeError(expected.value, f"invalid UUID: {e}") from e

        if isinstance(value, uuid.UUID):
            actual_text = str(value)
        else:
            actual_text = str(uuid.UUID(str(value)))
        return ValueComparison(expected_text == actual_text, expected_text, actual_text)

    def compare_default(self, expected: ExpectedValue, value: Any) -> ValueComparison:
        """Compare default renderings of both sides."""
        actual_text = self.render_actual(value)
        if _is_number(value) and expected.kind is ValueKind.STRING:
            expected_text = _render_numeric_text(expected.value)
        else:
            expected_text = self.render_expected(expected)
        return ValueComparison(expected_text == actual_text, expected_text, actual_text)

    def decode_expected_json(self, expected: ExpectedValue) -> Any:
        """
        Decode the expected value of a JSON column.

        Strings are parsed as JSON: an array of objects when the text starts
        with ``[``, an object otherwise. Sequences and mappings written
        directly in the dataset are used as they are.

        Raises:
            TypeDecodeError: If the text is not valid JSON of that shape
        """
        if expected.kind in (ValueKind.SEQUENCE, ValueKind.MAPPING):
            return expected.to_python()
        if expected.kind is not ValueKind.STRING:
            raise TypeDecodeError(expected.value, "JSON columns expect JSON text, a mapping or a sequence")

        text = expected.value.lstrip()
        try:
            parsed = json.loads(text)
        except ValueError as e:
            raise TypeDecodeError(expected.value, f"invalid JSON: {e}") from e

        if text.startswith("["):
            if not isinstance(parsed, list) or not all(isinstance(item, dict) for item in parsed):
                raise TypeDecodeError(expected.value, "expected a JSON array of objects")
        elif not isinstance(parsed, dict):
            raise TypeDecodeError(expected.value, "expected a JSON object")
        return parsed

    def render_expected(self, expected: ExpectedValue) -> str:
        """Default textual rendering of a dataset value."""
        if expected.kind is ValueKind.NULL:
            return NULL_TEXT
        if expected.kind is ValueKind.BOOL:
            return "true" if expected.value else "false"
        if expected.kind is ValueKind.NUMBER:
            return render_number(expected.value)
        if expected.kind is ValueKind.STRING:
            return expected.value
        return render_default_json(expected.to_python())

    def render_actual(self, value: Any) -> str:
        """Default textual rendering of a value returned by the driver."""
        if value is None:
            return NULL_TEXT
        if isinstance(value, bool):
            return "true" if value else "false"
        if _is_number(value):
            return render_number(value)
        if isinstance(value, str):
            return value
        if isinstance(value, datetime):
            return value.isoformat(sep=" ")
        if isinstance(value, (date, time)):
            return value.isoformat()
        if isinstance(value, (list, tuple, dict)):
            return render_default_json(value)
        if isinstance(value, (bytes, bytearray, memoryview)):
            return "\\x" + bytes(value).hex()
        return str(value)

    def _render_actual_json(self, value: Any) -> str:
        if isinstance(value, (bytes, bytearray, memoryview)):
            value = bytes(value).decode("utf-8")
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except ValueError:
                logger.debug(f"Stored JSON value is not valid JSON, comparing as text: {value!r}")
                return value
        return render_json(value)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def _uniform_numbers(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _uniform_numbers(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_uniform_numbers(item) for item in value]
    if _is_number(value):
        number = Decimal(repr(value)) if isinstance(value, float) else Decimal(value)
        if not number.is_finite():
            return float(number)
        if number == number.to_integral_value():
            return int(number)
        return float(number)
    return value


def _render_numeric_text(text: str) -> str:
    try:
        return render_number(Decimal(text.strip()))
    except InvalidOperation:
        return text
