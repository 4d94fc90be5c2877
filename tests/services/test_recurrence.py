from datetime import date, datetime

import pytest

from marketplace.models.base.enums import RecurrenceFrequency
from marketplace.services.booking.recurrence import (
    RecurrenceRule,
    clamp_day,
    generate_occurrences,
    parse_time_of_day,
    sunday_based_weekday,
)

MONDAY = date(2030, 1, 7)


def days(occurrences):
    return [occurrence.date() for occurrence in occurrences]


class TestWeekly:
    def test_defaults_to_start_weekday(self):
        rule = RecurrenceRule(RecurrenceFrequency.WEEKLY, MONDAY, "10:00")

        occurrences = generate_occurrences(rule, 3)

        assert occurrences == [
            datetime(2030, 1, 7, 10, 0),
            datetime(2030, 1, 14, 10, 0),
            datetime(2030, 1, 21, 10, 0),
        ]

    def test_selected_days_use_sunday_as_zero(self):
        rule = RecurrenceRule(RecurrenceFrequency.WEEKLY, MONDAY, "08:30", days_of_week=(1, 3))

        assert days(generate_occurrences(rule, 4)) == [
            date(2030, 1, 7),
            date(2030, 1, 9),
            date(2030, 1, 14),
            date(2030, 1, 16),
        ]

    def test_biweekly_skips_alternate_weeks(self):
        rule = RecurrenceRule(RecurrenceFrequency.BIWEEKLY, MONDAY, "10:00")

        assert days(generate_occurrences(rule, 3)) == [
            date(2030, 1, 7),
            date(2030, 1, 21),
            date(2030, 2, 4),
        ]

    def test_weekly_interval_two_matches_biweekly(self):
        weekly = RecurrenceRule(RecurrenceFrequency.WEEKLY, MONDAY, "10:00", interval=2)
        biweekly = RecurrenceRule(RecurrenceFrequency.BIWEEKLY, MONDAY, "10:00")

        assert generate_occurrences(weekly, 5) == generate_occurrences(biweekly, 5)


class TestDaily:
    def test_interval(self):
        rule = RecurrenceRule(RecurrenceFrequency.DAILY, MONDAY, "07:00", interval=2)

        assert days(generate_occurrences(rule, 3)) == [date(2030, 1, 7), date(2030, 1, 9), date(2030, 1, 11)]

    def test_end_date_is_inclusive(self):
        rule = RecurrenceRule(RecurrenceFrequency.DAILY, MONDAY, "07:00", end_date=date(2030, 1, 9))

        assert days(generate_occurrences(rule, 10)) == [date(2030, 1, 7), date(2030, 1, 8), date(2030, 1, 9)]

    def test_open_series_stops_at_horizon(self):
        rule = RecurrenceRule(RecurrenceFrequency.DAILY, MONDAY, "07:00")

        occurrences = generate_occurrences(rule, 1000, horizon_months=1)

        assert len(occurrences) == 32
        assert occurrences[-1].date() == date(2030, 2, 7)

    def test_walk_starts_at_from_date(self):
        rule = RecurrenceRule(RecurrenceFrequency.DAILY, MONDAY, "07:00")

        assert days(generate_occurrences(rule, 2, from_date=date(2030, 1, 20))) == [
            date(2030, 1, 20),
            date(2030, 1, 21),
        ]


class TestMonthly:
    def test_day_is_clamped_to_short_months(self):
        rule = RecurrenceRule(RecurrenceFrequency.MONTHLY, date(2030, 1, 31), "09:00", day_of_month=31)

        assert days(generate_occurrences(rule, 4)) == [
            date(2030, 1, 31),
            date(2030, 2, 28),
            date(2030, 3, 31),
            date(2030, 4, 30),
        ]

    def test_defaults_to_start_day(self):
        rule = RecurrenceRule(RecurrenceFrequency.MONTHLY, date(2030, 1, 15), "09:00")

        assert days(generate_occurrences(rule, 2)) == [date(2030, 1, 15), date(2030, 2, 15)]

    def test_day_before_start_moves_to_next_period(self):
        rule = RecurrenceRule(RecurrenceFrequency.MONTHLY, date(2030, 1, 20), "09:00", day_of_month=5, interval=2)

        assert days(generate_occurrences(rule, 2)) == [date(2030, 3, 5), date(2030, 5, 5)]


class TestRuleValidation:
    @pytest.mark.parametrize(
        "kwargs",
        [
            {"interval": 0},
            {"end_date": date(2030, 1, 1)},
            {"days_of_week": (7,)},
            {"day_of_month": 32},
            {"time_slot": "25:00"},
        ],
    )
    def test_invalid_rules(self, kwargs):
        params = {"frequency": RecurrenceFrequency.WEEKLY, "start_date": MONDAY, "time_slot": "10:00"}
        params.update(kwargs)

        with pytest.raises(ValueError):
            RecurrenceRule(**params)

    def test_occurrences_strictly_increase(self):
        rule = RecurrenceRule(RecurrenceFrequency.WEEKLY, MONDAY, "10:00", days_of_week=(0, 2, 4, 6))

        occurrences = generate_occurrences(rule, 30)

        assert all(earlier < later for earlier, later in zip(occurrences, occurrences[1:]))

    def test_zero_limit(self):
        assert generate_occurrences(RecurrenceRule(RecurrenceFrequency.DAILY, MONDAY, "10:00"), 0) == []


def test_helpers():
    assert sunday_based_weekday(date(2030, 1, 6)) == 0
    assert sunday_based_weekday(MONDAY) == 1
    assert clamp_day(2032, 2, 31) == date(2032, 2, 29)
    assert parse_time_of_day("07:45").minute == 45
