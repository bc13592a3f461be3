"""Tests for day key derivation."""

import locale
from datetime import date, datetime

import pytest

from daylog.tracking.daykey import (
    date_from_day_key,
    day_key_of,
    is_canonical,
    local_date,
)


def _ms(*args: int) -> int:
    return int(datetime(*args).timestamp() * 1000)


class TestDayKeyOf:
    """Tests for day_key_of()."""

    def test_date_gives_iso_key(self):
        """Dates map to their ISO form."""
        assert day_key_of(date(2026, 3, 1)) == "2026-03-01"

    def test_naive_datetime_uses_its_calendar_day(self):
        """Naive datetimes are already local."""
        assert day_key_of(datetime(2026, 12, 31, 23, 59)) == "2026-12-31"

    def test_timestamp_uses_local_calendar_day(self):
        """Epoch milliseconds use the local calendar day."""
        assert day_key_of(_ms(2026, 10, 19, 8, 30)) == "2026-10-19"

    def test_same_day_timestamps_share_a_key(self):
        """Early morning and late evening of one day map to the same key."""
        assert day_key_of(_ms(2026, 10, 19, 0, 1)) == day_key_of(_ms(2026, 10, 19, 23, 59))

    def test_midnight_starts_a_new_key(self):
        """Local midnight starts a new day."""
        assert day_key_of(_ms(2026, 10, 19, 23, 59)) != day_key_of(_ms(2026, 10, 20, 0, 0))

    def test_year_boundary(self):
        """New Year's Eve and New Year's Day get separate keys."""
        assert day_key_of(_ms(2026, 12, 31, 23, 59)) == "2026-12-31"
        assert day_key_of(_ms(2027, 1, 1, 0, 0)) == "2027-01-01"

    def test_rejects_non_time_values(self):
        """Strings are not timestamps."""
        with pytest.raises(TypeError):
            local_date("2026-10-19")
        with pytest.raises(TypeError):
            local_date(True)


class TestDateFromDayKey:
    """Tests for parsing day keys back into dates."""

    def test_round_trip(self):
        """ISO keys parse back to the same date."""
        d = date(2024, 2, 29)
        assert date_from_day_key(day_key_of(d)) == d

    def test_legacy_key(self):
        """Keys written in the old toDateString format are understood."""
        assert date_from_day_key("Mon Oct 19 2026") == date(2026, 10, 19)
        assert date_from_day_key("Mon Oct 05 2026") == date(2026, 10, 5)

    @pytest.mark.parametrize("key", ["Mo Okt 19 2026", "Mon Foo 19 2026", "Mon Oct 19", "Mon Oct 32 2026"])
    def test_invalid_legacy_keys_raise(self, key):
        """Only English names and real dates are accepted."""
        with pytest.raises(ValueError):
            date_from_day_key(key)

    def test_legacy_key_ignores_locale(self):
        """Parsing does not follow the process LC_TIME setting."""
        previous = locale.setlocale(locale.LC_TIME)
        try:
            locale.setlocale(locale.LC_TIME, "de_DE.UTF-8")
        except locale.Error:
            pytest.skip("de_DE.UTF-8 locale not installed")
        try:
            assert date_from_day_key("Thu Feb 29 2024") == date(2024, 2, 29)
        finally:
            locale.setlocale(locale.LC_TIME, previous)

    @pytest.mark.parametrize("key", ["", "yesterday", "2026-13-01", "19/10/2026"])
    def test_invalid_keys_raise(self, key):
        """Anything but the two key formats is rejected."""
        with pytest.raises(ValueError):
            date_from_day_key(key)

    def test_is_canonical(self):
        """Only ISO keys are canonical."""
        assert is_canonical("2026-10-19")
        assert not is_canonical("Mon Oct 19 2026")
        assert not is_canonical("garbage")
