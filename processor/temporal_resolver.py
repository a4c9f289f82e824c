"""Temporal phrase resolution for calendar requests.

Turns phrases such as "day after tomorrow", "next friday", "this month" or
"the 22nd" into an inclusive range of whole days relative to a reference
date. Rules are kept in an ordered table and evaluated first-match-wins;
several patterns are substrings of others ("tomorrow" inside "day after
tomorrow"), so the order of RULES is part of the behaviour.
"""
import logging
import re
from datetime import date, timedelta
from typing import Optional, Tuple

from processor.models import DateRange, TemporalRule

logger = logging.getLogger(__name__)

# 0 = Sunday .. 6 = Saturday
WEEKDAYS = {
    'sun': 0, 'sunday': 0,
    'mon': 1, 'monday': 1,
    'tue': 2, 'tues': 2, 'tuesday': 2,
    'wed': 3, 'wednesday': 3,
    'thu': 4, 'thur': 4, 'thurs': 4, 'thursday': 4,
    'fri': 5, 'friday': 5,
    'sat': 6, 'saturday': 6
}

MONTHS = {
    'jan': 1, 'january': 1,
    'feb': 2, 'february': 2,
    'mar': 3, 'march': 3,
    'apr': 4, 'april': 4,
    'may': 5,
    'jun': 6, 'june': 6,
    'jul': 7, 'july': 7,
    'aug': 8, 'august': 8,
    'sep': 9, 'september': 9,
    'oct': 10, 'october': 10,
    'nov': 11, 'november': 11,
    'dec': 12, 'december': 12
}

# Longest alternatives first so "tuesday" is not cut short at "tue"
WEEKDAY_PATTERN = '|'.join(sorted(WEEKDAYS, key=len, reverse=True))
MONTH_PATTERN = '|'.join(sorted(MONTHS, key=len, reverse=True))

DAY_FIRST_DATE = (
    rf'\b(\d{{1,2}})(?:st|nd|rd|th)?\s*(?:of\s+)?({MONTH_PATTERN})\b'
)
MONTH_FIRST_DATE = (
    rf'\b({MONTH_PATTERN})\s*(\d{{1,2}})(?:st|nd|rd|th)?\b'
)


def _single_day(day: date, rule: str) -> DateRange:
    return DateRange(start_date=day, end_date=day, rule=rule)


def _sunday_based_weekday(day: date) -> int:
    """Weekday number with Sunday as 0."""
    return (day.weekday() + 1) % 7


def _week_bounds(reference: date, weeks: int) -> Tuple[date, date]:
    """Monday..Sunday of the week `weeks` away from the reference week."""
    monday = reference - timedelta(days=reference.weekday()) + timedelta(weeks=weeks)
    return monday, monday + timedelta(days=6)


def _month_bounds(reference: date, months: int) -> Tuple[date, date]:
    """First..last day of the month `months` away from the reference month."""
    index = reference.year * 12 + (reference.month - 1) + months
    first = date(index // 12, index % 12 + 1, 1)
    following = index + 1
    last = date(following // 12, following % 12 + 1, 1) - timedelta(days=1)
    return first, last


def _offset_rule(name: str, phrase: str, days: int) -> TemporalRule:
    return TemporalRule(
        name=name,
        pattern=re.compile(re.escape(phrase)),
        resolve=lambda match, ref: _single_day(ref + timedelta(days=days), name)
    )


def _week_rule(name: str, pattern: str, weeks: int) -> TemporalRule:
    def resolve(match: re.Match, ref: date) -> DateRange:
        start, end = _week_bounds(ref, weeks)
        return DateRange(start_date=start, end_date=end, rule=name)

    return TemporalRule(name=name, pattern=re.compile(pattern), resolve=resolve)


def _month_rule(name: str, pattern: str, months: int) -> TemporalRule:
    def resolve(match: re.Match, ref: date) -> DateRange:
        start, end = _month_bounds(ref, months)
        return DateRange(start_date=start, end_date=end, rule=name)

    return TemporalRule(name=name, pattern=re.compile(pattern), resolve=resolve)


def _shifted_day(ref: date, match: re.Match, sign: int, rule: str) -> Optional[DateRange]:
    try:
        return _single_day(ref + timedelta(days=sign * int(match.group(1))), rule)
    except (OverflowError, ValueError):
        logger.debug(f"Offset '{match.group(0)}' is outside the supported date range")
        return None


def _resolve_days_ago(match: re.Match, ref: date) -> Optional[DateRange]:
    return _shifted_day(ref, match, -1, 'days_ago')


def _resolve_in_days(match: re.Match, ref: date) -> Optional[DateRange]:
    return _shifted_day(ref, match, 1, 'in_days')


def _resolve_modified_weekday(match: re.Match, ref: date) -> DateRange:
    modifier = match.group(1)
    delta = WEEKDAYS[match.group(2)] - _sunday_based_weekday(ref)

    if modifier == 'next' and delta <= 0:
        delta += 7
    elif modifier == 'last' and delta >= 0:
        delta -= 7
    # "this" keeps the raw delta and may land earlier in the current week

    return _single_day(ref + timedelta(days=delta), 'modified_weekday')


def _resolve_bare_weekday(match: re.Match, ref: date) -> DateRange:
    delta = WEEKDAYS[match.group(1)] - _sunday_based_weekday(ref)
    if delta < 0:
        delta += 7
    return _single_day(ref + timedelta(days=delta), 'bare_weekday')


def _resolve_month_date(match: re.Match, ref: date) -> Optional[DateRange]:
    if match.group(1):
        day, month_name = match.group(1), match.group(2)
    else:
        month_name, day = match.group(3), match.group(4)

    try:
        parsed = date(ref.year, MONTHS[month_name], int(day))
    except ValueError:
        logger.debug(f"Ignoring impossible date '{match.group(0)}'")
        return None

    return _single_day(parsed, 'month_date')


def _resolve_bare_ordinal(match: re.Match, ref: date) -> Optional[DateRange]:
    day = int(match.group(1))
    if not 1 <= day <= 31:
        return None

    year, month = ref.year, ref.month
    if day < ref.day:
        month += 1
        if month > 12:
            month = 1
            year += 1

    try:
        parsed = date(year, month, day)
    except ValueError:
        logger.debug(f"Ordinal '{match.group(0)}' does not exist in {year}-{month:02d}")
        return None

    return _single_day(parsed, 'bare_ordinal')


RULES: Tuple[TemporalRule, ...] = (
    _offset_rule('day_before_yesterday', 'day before yesterday', -2),
    _offset_rule('day_after_tomorrow', 'day after tomorrow', 2),
    _offset_rule('tomorrow', 'tomorrow', 1),
    _offset_rule('yesterday', 'yesterday', -1),
    TemporalRule(
        name='days_ago',
        pattern=re.compile(r'\b(\d+)\s*days?\s*ago\b'),
        resolve=_resolve_days_ago
    ),
    TemporalRule(
        name='in_days',
        pattern=re.compile(r'\bin\s*(\d+)\s*days?\b'),
        resolve=_resolve_in_days
    ),
    _week_rule('this_week', r'\b(this\s+week|the\s+week|for\s+the\s+week)\b', 0),
    _week_rule('next_week', r'\bnext\s+week\b', 1),
    _week_rule('last_week', r'\blast\s+week\b', -1),
    TemporalRule(
        name='modified_weekday',
        pattern=re.compile(rf'\b(next|this|last)\s+({WEEKDAY_PATTERN})\b'),
        resolve=_resolve_modified_weekday
    ),
    TemporalRule(
        name='bare_weekday',
        pattern=re.compile(rf'\b({WEEKDAY_PATTERN})\b'),
        resolve=_resolve_bare_weekday
    ),
    _month_rule('this_month', r'\b(this\s+month|the\s+month|for\s+the\s+month)\b', 0),
    _month_rule('next_month', r'\bnext\s+month\b', 1),
    _month_rule('last_month', r'\blast\s+month\b', -1),
    TemporalRule(
        name='month_date',
        pattern=re.compile(f'{DAY_FIRST_DATE}|{MONTH_FIRST_DATE}'),
        resolve=_resolve_month_date
    ),
    TemporalRule(
        name='bare_ordinal',
        pattern=re.compile(r'\b(?:the\s+)?(\d{1,2})(?:st|nd|rd|th)\b'),
        resolve=_resolve_bare_ordinal
    ),
)


class TemporalPhraseResolver:
    """Resolves relative date phrases against a reference date."""

    def __init__(self, rules: Tuple[TemporalRule, ...] = RULES):
        self.rules = rules

    def resolve(self, text: str, reference_date: date) -> DateRange:
        """
        Resolve the date range a request refers to.

        Args:
            text: Request text (matched case-insensitively)
            reference_date: Date treated as "today"

        Returns:
            DateRange from the first rule that produces a valid date, or a
            single-day range on the reference date with rule=None
        """
        text = text.lower()

        for rule in self.rules:
            match = rule.pattern.search(text)
            if not match:
                continue

            date_range = rule.resolve(match, reference_date)
            if date_range is not None:
                logger.debug(
                    f"Rule '{rule.name}' resolved '{match.group(0)}' to "
                    f"{date_range.start_date}..{date_range.end_date}"
                )
                return date_range

        return DateRange(start_date=reference_date, end_date=reference_date)
