import pytest
from datetime import date, datetime, time, timezone
from decimal import Decimal

from src.tutor_ledger_backend.core.amounts import (
    to_decimal,
    require_positive_amount,
    require_valid_fee,
    coerce_fee,
    normalize_date_range
)
from src.tutor_ledger_backend.common.exceptions import InvalidAmount, InvalidFee


class TestToDecimal:

    @pytest.mark.parametrize("raw, expected", [
        (10, Decimal("10.00")),
        ("12.5", Decimal("12.50")),
        (0.1, Decimal("0.10")),
        (Decimal("3.335"), Decimal("3.34")),
        (" 7 ", Decimal("7.00")),
    ])
    def test_parses_finite_numbers_to_cents(self, raw, expected):
        assert to_decimal(raw) == expected

    @pytest.mark.parametrize("raw", [None, True, "abc", float("nan"), float("inf"), "-Infinity", Decimal("NaN"), "1e40"])
    def test_rejects_non_numbers(self, raw):
        assert to_decimal(raw) is None


class TestAmountValidation:

    @pytest.mark.parametrize("raw", [0, -5, float("nan"), "0.004", None])
    def test_invalid_amounts_raise(self, raw):
        with pytest.raises(InvalidAmount) as e:
            require_positive_amount(raw)
        assert e.value.to_result()["ok"] is False
        assert e.value.to_result()["error"] == "InvalidAmount"

    def test_positive_amount_is_returned(self):
        assert require_positive_amount("15") == Decimal("15.00")

    def test_zero_fee_is_valid(self):
        assert require_valid_fee(0) == Decimal("0.00")

    @pytest.mark.parametrize("raw", [-1, float("inf"), "nope"])
    def test_invalid_fees_raise(self, raw):
        with pytest.raises(InvalidFee):
            require_valid_fee(raw)

    @pytest.mark.parametrize("raw, expected", [(-3, Decimal(0)), ("x", Decimal(0)), (25, Decimal("25.00"))])
    def test_coerce_fee_falls_back_to_zero(self, raw, expected):
        assert coerce_fee(raw) == expected


class TestDateRange:

    def test_no_bounds(self):
        assert normalize_date_range(None, None) == (None, None)

    def test_bare_dates_cover_whole_days(self):
        start, end = normalize_date_range(date(2025, 3, 1), date(2025, 3, 31))
        assert start == datetime(2025, 3, 1, 0, 0, 0)
        assert end == datetime.combine(date(2025, 3, 31), time.max)

    def test_to_datetime_is_pushed_to_end_of_day(self):
        _, end = normalize_date_range(None, datetime(2025, 3, 31, 8, 15, tzinfo=timezone.utc))
        assert end == datetime(2025, 3, 31, 23, 59, 59, 999999, tzinfo=timezone.utc)

    def test_from_datetime_is_kept(self):
        start, _ = normalize_date_range(datetime(2025, 3, 1, 12, 30), None)
        assert start == datetime(2025, 3, 1, 12, 30)
