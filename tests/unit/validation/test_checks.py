from datetime import UTC, date, datetime
from decimal import Decimal

import pytest

from formgraph.validation import (
    is_blank,
    is_valid_email,
    is_valid_phone,
    is_valid_url,
    matches_pattern,
    parse_datetime,
    passes_field_rule,
    to_number,
    value_length,
)


class TestToNumber:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (True, 1),
            (False, 0),
            (7, 7),
            (2.5, 2.5),
            (Decimal("4"), 4),
            ("12", 12),
            (" 3.5 ", 3.5),
            ("", 0),
            ("abc", None),
            (float("nan"), None),
            ("inf", None),
            (None, None),
            ([1], None),
        ],
    )
    def test_to_number(self, value: object, expected: object) -> None:
        assert to_number(value) == expected

    def test_decimal_point_string_stays_float(self) -> None:
        result = to_number("3.0")

        assert result == 3.0
        assert isinstance(result, float)


class TestParseDatetime:
    def test_iso_date_string_is_utc(self) -> None:
        assert parse_datetime("2024-01-15") == datetime(2024, 1, 15, tzinfo=UTC)

    def test_aware_datetime_kept(self) -> None:
        value = datetime(2024, 1, 15, 12, tzinfo=UTC)

        assert parse_datetime(value) is value

    def test_naive_datetime_becomes_utc(self) -> None:
        assert parse_datetime(datetime(2024, 1, 15)) == datetime(2024, 1, 15, tzinfo=UTC)

    def test_date(self) -> None:
        assert parse_datetime(date(2024, 1, 15)) == datetime(2024, 1, 15, tzinfo=UTC)

    def test_epoch_milliseconds(self) -> None:
        assert parse_datetime(86_400_000) == datetime(1970, 1, 2, tzinfo=UTC)

    @pytest.mark.parametrize("value", ["not a date", "", True, None, [2024]])
    def test_invalid_values(self, value: object) -> None:
        assert parse_datetime(value) is None


class TestFormatChecks:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [("a@b.co", True), ("user.name@example.org", True), ("a@b", False), ("a b@c.de", False)],
    )
    def test_is_valid_email(self, value: str, expected: bool) -> None:
        assert is_valid_email(value) is expected

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("+61 2 9999 0000", True), ("(02) 9999-0000", True), ("12345", False), ("phone", False)],
    )
    def test_is_valid_phone(self, value: str, expected: bool) -> None:
        assert is_valid_phone(value) is expected

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("https://example.org/path", True), ("ftp://host", True), ("example.org", False), ("", False)],
    )
    def test_is_valid_url(self, value: str, expected: bool) -> None:
        assert is_valid_url(value) is expected

    def test_invalid_pattern_never_fails(self) -> None:
        assert matches_pattern("abc", "[") is True

    def test_pattern_is_searched(self) -> None:
        assert matches_pattern("abc123", r"\d+") is True
        assert matches_pattern("abc", r"^\d+$") is False

    def test_is_blank(self) -> None:
        assert is_blank(None)
        assert is_blank("")
        assert is_blank([])
        assert not is_blank(0)
        assert not is_blank(" ")

    def test_value_length(self) -> None:
        assert value_length("abcd") == 4
        assert value_length([1, 2]) == 2
        assert value_length(12345) == 5


class TestPassesFieldRule:
    @pytest.mark.parametrize(
        ("rule_type", "operand", "value", "expected"),
        [
            ("required", None, "x", True),
            ("required", None, "", False),
            ("required", None, None, False),
            ("required", None, 0, True),
            ("minLength", 3, "ab", False),
            ("minLength", 3, "abc", True),
            ("minLength", 3, 12, True),
            ("maxLength", "2", "abc", False),
            ("minValue", 10, 5, False),
            ("minValue", 10, "5", True),
            ("maxValue", 10, 11.5, False),
            ("maxValue", 10, True, True),
            ("pattern", r"^[A-Z]{3}$", "ABC", True),
            ("pattern", r"^[A-Z]{3}$", "abc", False),
            ("email", None, "not-an-email", False),
            ("url", None, "https://example.org", True),
            ("custom", "value > 1", 0, True),
            ("unknown", None, None, True),
        ],
    )
    def test_passes_field_rule(
        self, rule_type: str, operand: object, value: object, expected: bool
    ) -> None:
        assert passes_field_rule(rule_type, operand, value) is expected
