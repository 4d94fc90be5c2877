"""
Recurrence rule expansion.

Pure date arithmetic; nothing here touches the database. Weekdays use
0 = Sunday through 6 = Saturday.
"""

import calendar
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import List, Optional, Sequence

from dateutil.relativedelta import relativedelta

from marketplace.models.base.enums import RecurrenceFrequency

SUNDAY = 0


def sunday_based_weekday(day: date) -> int:
    return (day.weekday() + 1) % 7


def parse_time_of_day(value: str) -> time:
    """Parse ``HH:MM``."""
    hours, _, minutes = value.partition(":")
    try:
        return time(int(hours), int(minutes))
    except ValueError as e:
        raise ValueError(f"Invalid time of day: {value!r}") from e


def clamp_day(year: int, month: int, day: int) -> date:
    """The given day of a month, or the month's last day when it is shorter."""
    last = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, last))


@dataclass(frozen=True)
class RecurrenceRule:
    """
    A series definition.

    ``end_date`` is inclusive. Weekly and biweekly rules without
    ``days_of_week`` repeat on the start date's weekday; monthly rules
    without ``day_of_month`` repeat on the start date's day.
    """

    frequency: RecurrenceFrequency
    start_date: date
    time_slot: str
    interval: int = 1
    end_date: Optional[date] = None
    days_of_week: Sequence[int] = field(default_factory=tuple)
    day_of_month: Optional[int] = None

    def __post_init__(self):
        if self.interval < 1:
            raise ValueError("Interval must be at least 1")
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("End date cannot be before start date")
        if any(day < 0 or day > 6 for day in self.days_of_week):
            raise ValueError("Days of week must be between 0 and 6")
        if self.day_of_month is not None and not 1 <= self.day_of_month <= 31:
            raise ValueError("Day of month must be between 1 and 31")
        parse_time_of_day(self.time_slot)

    @property
    def weekdays(self) -> List[int]:
        if self.days_of_week:
            return sorted(set(self.days_of_week))
        return [sunday_based_weekday(self.start_date)]

    @property
    def monthly_day(self) -> int:
        return self.day_of_month or self.start_date.day


def _daily_dates(rule: RecurrenceRule, first: date, last: date):
    current = first
    while current <= last:
        yield current
        current += timedelta(days=rule.interval)


def _weekly_dates(rule: RecurrenceRule, first: date, last: date):
    weekdays = set(rule.weekdays)
    if rule.frequency == RecurrenceFrequency.BIWEEKLY:
        skip = timedelta(days=7)
    else:
        skip = timedelta(days=(rule.interval - 1) * 7)

    current = first
    while current <= last:
        if sunday_based_weekday(current) in weekdays:
            yield current
        current += timedelta(days=1)
        if sunday_based_weekday(current) == SUNDAY:
            current += skip


def _monthly_dates(rule: RecurrenceRule, first: date, last: date):
    target = rule.monthly_day
    anchor = date(first.year, first.month, 1)
    candidate = clamp_day(anchor.year, anchor.month, target)
    if candidate < first:
        anchor += relativedelta(months=rule.interval)
        candidate = clamp_day(anchor.year, anchor.month, target)

    while candidate <= last:
        yield candidate
        anchor += relativedelta(months=rule.interval)
        candidate = clamp_day(anchor.year, anchor.month, target)


def generate_occurrences(
    rule: RecurrenceRule,
    limit: int,
    from_date: Optional[date] = None,
    horizon_months: int = 12,
) -> List[datetime]:
    """
    Expand ``rule`` into at most ``limit`` strictly increasing start times.

    Walking starts at ``from_date`` when it is later than the rule's start.
    Without an end date the series stops ``horizon_months`` after its start.
    """
    if limit <= 0:
        return []

    first = max(rule.start_date, from_date) if from_date else rule.start_date
    last = rule.end_date or (rule.start_date + relativedelta(months=horizon_months))
    slot = parse_time_of_day(rule.time_slot)

    if rule.frequency == RecurrenceFrequency.DAILY:
        days = _daily_dates(rule, first, last)
    elif rule.frequency in (RecurrenceFrequency.WEEKLY, RecurrenceFrequency.BIWEEKLY):
        days = _weekly_dates(rule, first, last)
    else:
        days = _monthly_dates(rule, first, last)

    occurrences = []
    for day in days:
        occurrences.append(datetime.combine(day, slot))
        if len(occurrences) >= limit:
            break
    return occurrences
