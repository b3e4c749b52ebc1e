"""
Unit tests for display formatting and shared validators
"""
from decimal import Decimal

import pytest

from puppyday.shared.formatting import (
    format_currency,
    format_duration,
    format_phone_number,
    format_time_display,
    get_size_from_weight,
    get_size_label,
    get_size_short_label,
    round_money,
)
from puppyday.shared.pagination import paginated
from puppyday.shared.validators import (
    is_valid_email,
    is_valid_phone,
    is_valid_time,
    normalize_phone_number,
    validate_email,
    validate_us_phone,
    validate_uuid,
)


class TestPhoneFormatting:
    def test_ten_digits(self):
        assert format_phone_number("6572522903") == "(657) 252-2903"

    def test_eleven_digits_with_country_code(self):
        assert format_phone_number("+16572522903") == "+1 (657) 252-2903"

    def test_unrecognised_input_returned_unchanged(self):
        assert format_phone_number("12345") == "12345"
        assert format_phone_number(None) == ""


class TestMoney:
    def test_round_money_rounds_half_up(self):
        assert round_money(10.555) == Decimal("10.56")
        assert round_money(2.5) == Decimal("2.50")

    @pytest.mark.parametrize(
        "amount,expected",
        [(0, "$0.00"), (40, "$40.00"), (1234.5, "$1,234.50"), (-5, "-$5.00"), (None, "$0.00")],
    )
    def test_format_currency(self, amount, expected):
        assert format_currency(amount) == expected


class TestDurationsAndTimes:
    @pytest.mark.parametrize(
        "minutes,expected",
        [(45, "45 min"), (60, "1 hour"), (120, "2 hours"), (90, "1h 30m")],
    )
    def test_format_duration(self, minutes, expected):
        assert format_duration(minutes) == expected

    @pytest.mark.parametrize(
        "value,expected",
        [("09:00", "9:00 AM"), ("12:00", "12:00 PM"), ("13:30", "1:30 PM"), ("00:15", "12:15 AM")],
    )
    def test_format_time_display(self, value, expected):
        assert format_time_display(value) == expected


class TestPetSizes:
    def test_labels(self):
        assert get_size_label("xlarge") == "X-Large (66+ lbs)"
        assert get_size_short_label("small") == "Small"
        assert get_size_label("giant") == "giant"

    @pytest.mark.parametrize(
        "weight,expected",
        [(5, "small"), (18, "small"), (18.5, "medium"), (35, "medium"), (36, "large"), (65, "large"), (66, "xlarge")],
    )
    def test_size_from_weight(self, weight, expected):
        assert get_size_from_weight(weight) == expected


class TestValidators:
    def test_validate_us_phone_normalises_to_e164(self):
        assert validate_us_phone("(657) 252-2903") == "+16572522903"
        assert validate_us_phone("+1 657 252 2903") == "+16572522903"

    def test_validate_us_phone_rejects_short_numbers(self):
        with pytest.raises(ValueError, match="10 digits"):
            validate_us_phone("555-1234")

    def test_validate_email(self):
        assert validate_email("  Owner@Example.COM ") == "owner@example.com"
        with pytest.raises(ValueError, match="valid email"):
            validate_email("not-an-email")

    def test_loose_checks(self):
        assert is_valid_phone("(657) 252-2903")
        assert not is_valid_phone("555")
        assert not is_valid_phone("657-252-abcd")
        assert is_valid_email("a@b.co")
        assert not is_valid_email("a@b")
        assert is_valid_time("23:59")
        assert not is_valid_time("24:00")
        assert not is_valid_time("9:00")

    def test_uuid_and_phone_normalisation(self):
        assert validate_uuid("0b6f7f2e-6f1c-4b7e-9d1c-2f5b8e1a9c3d")
        assert not validate_uuid("abc")
        assert not validate_uuid(None)
        assert normalize_phone_number("+1 (657) 252-2903") == "+16572522903"


def test_paginated_envelope():
    result = paginated([1, 2], page=2, limit=2, total=5)
    assert result["data"] == [1, 2]
    assert result["pagination"] == {"page": 2, "limit": 2, "total": 5, "totalPages": 3}
