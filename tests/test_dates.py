"""
Unit tests for date normalization.
"""

from datetime import date, datetime
import pytest
from invoice_intake.services.dates import parse_date, try_parse_date, expand_two_digit_year


class TestNamedMonths:
    """Tests for "<day>. <month> <year>" with German and English month names"""

    def test_german_month(self):
        assert parse_date("7. Mai 2014") == "2014-05-07"

    def test_german_umlaut_month(self):
        assert parse_date("3. März 2020") == "2020-03-03"
        assert parse_date("3. Maerz 2020") == "2020-03-03"

    def test_abbreviated_month_with_period(self):
        assert parse_date("12. Dez. 2019") == "2019-12-12"

    def test_english_month_case_insensitive(self):
        assert parse_date("1. OCTOBER 2021") == "2021-10-01"

    def test_embedded_in_text(self):
        assert parse_date("Rechnungsdatum: 24. Juli 2023") == "2023-07-24"


class TestTwoDigitYears:
    """Tests for dd.mm.yy with the 50 pivot"""

    def test_recent_century(self):
        assert parse_date("01.05.14") == "2014-05-01"

    def test_previous_century(self):
        assert parse_date("01.05.67") == "1967-05-01"

    def test_pivot_boundary(self):
        assert expand_two_digit_year(49) == 2049
        assert expand_two_digit_year(50) == 1950


class TestGenericParsing:
    def test_iso_date_is_kept(self):
        assert parse_date("2014-05-07") == "2014-05-07"

    def test_iso_datetime_drops_time(self):
        assert parse_date("2014-05-07T13:45:00Z") == "2014-05-07"

    def test_four_digit_dotted_date_is_day_first(self):
        assert parse_date("07.05.2014") == "2014-05-07"

    def test_english_long_form(self):
        assert parse_date("March 5, 2021") == "2021-03-05"

    def test_date_objects(self):
        assert parse_date(date(2020, 2, 29)) == "2020-02-29"
        assert parse_date(datetime(2020, 2, 29, 10, 30)) == "2020-02-29"


class TestFallback:
    def test_unrecognized_uses_fallback(self):
        assert parse_date("not a date", fallback=date(2025, 1, 15)) == "2025-01-15"

    def test_empty_uses_fallback(self):
        assert parse_date(None, fallback=date(2025, 1, 15)) == "2025-01-15"
        assert parse_date("", fallback=date(2025, 1, 15)) == "2025-01-15"

    def test_default_fallback_is_today(self):
        assert parse_date("garbage") == date.today().isoformat()

    def test_impossible_calendar_date_is_not_accepted(self):
        assert try_parse_date("31.02.14") is None

    @pytest.mark.parametrize("value", ["N/A", "", None, "??"])
    def test_try_parse_returns_none(self, value):
        assert try_parse_date(value) is None
