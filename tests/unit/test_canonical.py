"""Tests for canonical string serialisation."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from billine.errors import SerializationError
from billine.models import Language
from billine.signing.canonical import RenderKind, Renderable, canonicalise, to_renderable


class TestToRenderable:
    def test_none_is_null(self) -> None:
        assert to_renderable(None).is_null

    def test_bool_is_not_a_number(self) -> None:
        assert to_renderable(True) == Renderable(RenderKind.BOOL, "true")
        assert to_renderable(False).text == "false"

    def test_decimal_keeps_scale(self) -> None:
        assert to_renderable(Decimal("250.00")).text == "250.00"

    def test_decimal_never_scientific(self) -> None:
        assert to_renderable(Decimal("1E+3")).text == "1000"
        assert to_renderable(Decimal("1E-7")).text == "0.0000001"

    def test_float_uses_shortest_text(self) -> None:
        assert to_renderable(1.19).text == "1.19"

    def test_int(self) -> None:
        assert to_renderable(1).kind is RenderKind.NUMBER
        assert to_renderable(1).text == "1"

    def test_string_is_raw(self) -> None:
        assert to_renderable('a:"b"').text == 'a:"b"'

    def test_enum_renders_token(self) -> None:
        assert to_renderable(Language.EN).text == "en"

    def test_datetime_rendered_in_utc(self) -> None:
        kyiv = timezone(timedelta(hours=2))
        value = datetime(2024, 3, 1, 12, 0, 0, tzinfo=kyiv)
        assert to_renderable(value).text == "2024-03-01 10:00:00"
        assert to_renderable(datetime(2024, 3, 1, 10, 0, tzinfo=UTC)).text == "2024-03-01 10:00:00"

    def test_nested_is_compact_json(self) -> None:
        rendered = to_renderable({"b": [1, 2], "a": "ü"})
        assert rendered.kind is RenderKind.STRUCTURAL
        assert rendered.text == '{"b":[1,2],"a":"ü"}'

    def test_nested_decimal(self) -> None:
        assert to_renderable([Decimal("1.50")]).text == '["1.50"]'

    def test_non_finite_rejected(self) -> None:
        with pytest.raises(SerializationError):
            to_renderable(float("nan"))
        with pytest.raises(SerializationError):
            to_renderable(Decimal("Infinity"))

    def test_unsupported_type_rejected(self) -> None:
        with pytest.raises(SerializationError):
            to_renderable(object())

    def test_unsupported_nested_value_rejected(self) -> None:
        with pytest.raises(SerializationError):
            to_renderable([object()])


class TestCanonicalise:
    def test_sorted_by_field_name(self) -> None:
        assert canonicalise({"z": "1", "a": "2", "m": "3"}) == "2:3:1"

    def test_order_independent(self) -> None:
        first = {"merchant": "M", "amount": Decimal("1.00"), "currency": "UAH"}
        second = {"currency": "UAH", "merchant": "M", "amount": Decimal("1.00")}
        assert canonicalise(first) == canonicalise(second)

    def test_null_omitted_without_empty_segment(self) -> None:
        with_optional = canonicalise({"a": "1", "b": "x", "c": "3"})
        without_optional = canonicalise({"a": "1", "b": None, "c": "3"})
        assert with_optional == "1:x:3"
        assert without_optional == "1:3"
        assert "::" not in without_optional

    def test_exclude_keys(self) -> None:
        assert canonicalise({"a": "1", "sign": "xxx", "b": "2"}, exclude_keys={"sign"}) == "1:2"

    def test_empty_payload(self) -> None:
        assert canonicalise({}) == ""
        assert canonicalise({"only": None}) == ""

    def test_field_list_input(self) -> None:
        fields = [("b", Renderable.text_value("B")), ("a", Renderable.number(7))]
        assert canonicalise(fields) == "7:B"

    def test_codepoint_order(self) -> None:
        # Uppercase sorts before lowercase, underscore between them.
        assert canonicalise({"a": "lower", "_": "under", "B": "upper"}) == "upper:under:lower"

    def test_only_top_level_sorted(self) -> None:
        assert canonicalise({"n": {"z": 1, "a": 2}}) == '{"z":1,"a":2}'

    def test_duplicate_names_rejected(self) -> None:
        fields = [("a", Renderable.text_value("1")), ("a", Renderable.text_value("2"))]
        with pytest.raises(SerializationError):
            canonicalise(fields)

    def test_deterministic(self) -> None:
        payload = {"order": "ORD-1", "amount": Decimal("9.90"), "paid": False}
        assert canonicalise(payload) == canonicalise(payload) == "9.90:ORD-1:false"
