"""Canonical string serialisation for Billine signatures.

The gateway signs the *values* of a payload, not a JSON document: top-level
fields are ordered by name, rendered to plain text and joined with ``:``.
Absent fields disappear entirely instead of leaving an empty segment.
"""

from __future__ import annotations

import enum
import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from billine.errors import SerializationError

__all__ = [
    "FieldList",
    "Renderable",
    "RenderKind",
    "SEPARATOR",
    "WIRE_DATE_FORMAT",
    "canonicalise",
    "format_date",
    "json_default",
    "to_renderable",
]

SEPARATOR = ":"
WIRE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class RenderKind(enum.Enum):
    NULL = "null"
    BOOL = "bool"
    NUMBER = "number"
    TEXT = "text"
    STRUCTURAL = "structural"


@dataclass(frozen=True)
class Renderable:
    """A leaf value already reduced to its canonical text."""

    kind: RenderKind
    text: str = ""

    @classmethod
    def null(cls) -> Renderable:
        return cls(RenderKind.NULL)

    @classmethod
    def boolean(cls, value: bool) -> Renderable:
        return cls(RenderKind.BOOL, "true" if value else "false")

    @classmethod
    def number(cls, value: int | Decimal) -> Renderable:
        return cls(RenderKind.NUMBER, _decimal_text(value))

    @classmethod
    def text_value(cls, value: str) -> Renderable:
        return cls(RenderKind.TEXT, value)

    @classmethod
    def structural(cls, value: list[Any] | tuple[Any, ...] | Mapping[str, Any]) -> Renderable:
        """Pre-render an array or object to compact JSON, nested order kept as given."""
        try:
            rendered = json.dumps(
                value,
                separators=(",", ":"),
                ensure_ascii=False,
                allow_nan=False,
                default=json_default,
            )
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Cannot render nested value: {e}") from e
        return cls(RenderKind.STRUCTURAL, rendered)

    @property
    def is_null(self) -> bool:
        return self.kind is RenderKind.NULL


FieldList = list[tuple[str, Renderable]]


def format_date(value: datetime) -> str:
    """Render a timestamp in the gateway's UTC wire format.

    Naive datetimes are taken to already be in UTC.
    """
    if value.tzinfo is not None:
        value = value.astimezone(UTC)
    return value.strftime(WIRE_DATE_FORMAT)


def _decimal_text(value: int | Decimal) -> str:
    if isinstance(value, int):
        return str(value)
    if not value.is_finite():
        raise SerializationError(f"Non-finite decimal cannot be signed: {value}")
    return format(value, "f")


def json_default(value: Any) -> Any:
    """``json.dumps`` hook for decimals, timestamps and enums."""
    if isinstance(value, Decimal):
        # Decimal strings, same as the top-level wire encoding.
        return _decimal_text(value)
    if isinstance(value, datetime):
        return format_date(value)
    if isinstance(value, enum.Enum):
        return value.value
    raise TypeError(f"Object of type {type(value).__name__} is not renderable")


def to_renderable(value: Any) -> Renderable:
    """Reduce a Python value to a :class:`Renderable`.

    Raises:
        SerializationError: the value has no unambiguous text form.
    """
    if value is None:
        return Renderable.null()
    # bool before int: bool is an int subclass.
    if isinstance(value, bool):
        return Renderable.boolean(value)
    if isinstance(value, int | Decimal):
        return Renderable.number(value)
    if isinstance(value, float):
        if value != value or value in (float("inf"), float("-inf")):
            raise SerializationError(f"Non-finite number cannot be signed: {value}")
        return Renderable.number(Decimal(repr(value)))
    if isinstance(value, enum.Enum):
        return to_renderable(value.value)
    if isinstance(value, str):
        return Renderable.text_value(value)
    if isinstance(value, datetime):
        return Renderable.text_value(format_date(value))
    if isinstance(value, list | tuple | Mapping):
        return Renderable.structural(value if not isinstance(value, Mapping) else dict(value))
    raise SerializationError(f"Unsupported payload value of type {type(value).__name__}")


def _as_field_list(fields: Iterable[tuple[str, Renderable]] | Mapping[str, Any]) -> FieldList:
    if isinstance(fields, Mapping):
        return [(str(name), to_renderable(value)) for name, value in fields.items()]
    return list(fields)


def canonicalise(
    fields: Iterable[tuple[str, Renderable]] | Mapping[str, Any],
    exclude_keys: set[str] | None = None,
) -> str:
    """Produce the canonical signing string for a payload.

    Args:
        fields: Either ``(name, Renderable)`` pairs, as returned by a model's
            ``to_field_list()``, or a plain mapping of raw values.
        exclude_keys: Field names to drop first (e.g. {"sign"}).

    Returns:
        Values ordered by field name, null values dropped, joined with ``:``.
        An empty string when nothing is left to render.
    """
    items = _as_field_list(fields)
    names = [name for name, _ in items]
    if len(names) != len(set(names)):
        raise SerializationError("Payload contains duplicate field names")
    if exclude_keys:
        items = [(name, value) for name, value in items if name not in exclude_keys]
    items.sort(key=lambda item: item[0])
    return SEPARATOR.join(value.text for _, value in items if not value.is_null)
