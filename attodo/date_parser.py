#!/usr/bin/env python3
"""
Natural Date Parser

Extracts a due date (and optional time of day) from a free-text task title
and returns the title with the date text removed:
- Numeric dates: "11/26", "11/26/24", "11/26/2024"
- Day names: "friday", "next monday", "fri"
- Relative dates: "tomorrow", "in 3 days", "two weeks", "in 2 hours"
- Special periods: "end of month", "start of week", "next quarter"
- Month names: "Nov 26", "26 November"
- Times: "at 3pm", "3:30pm", "at 15:00"

All arithmetic is done against a caller-supplied reference instant; the
parser never reads the wall clock.
"""

import re
import logging
import calendar
from dataclasses import dataclass
from datetime import datetime, date, time, timedelta
from typing import Optional, Tuple, NamedTuple, Dict, Any

from dateutil import tz
from dateutil.relativedelta import relativedelta

from attodo.numerals import text_to_number

logger = logging.getLogger("attodo.date_parser")


class DateMatch(NamedTuple):
    """A resolved instant plus the exact text it was read from"""
    due: datetime
    original: str


@dataclass
class ParseResult:
    """Outcome of parsing one title"""
    due_date: Optional[datetime] = None
    cleaned_title: str = ""
    matched_text: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "cleaned_title": self.cleaned_title,
            "matched_text": self.matched_text,
        }


# Numeric date patterns, longest first so a 4-digit year is not cut off
NUMERIC_DATE_PATTERNS = (
    (re.compile(r'\b(\d{1,2})/(\d{1,2})/(\d{2,4})\b'), True),
    (re.compile(r'\b(\d{1,2})/(\d{1,2})\b'), False),
)

TEXT_DAY_PATTERNS = (
    re.compile(
        r'\b(?:in\s+)?(one|two|three|four|five|six|seven|eight|nine|ten|eleven|twelve|'
        r'thirteen|fourteen|fifteen|sixteen|seventeen|eighteen|nineteen|twenty|thirty|a|an)'
        r'\s+(days?)\b',
        re.IGNORECASE,
    ),
    re.compile(r'\b(?:in\s+)?(one|two|three|four|a|an)\s+(weeks?)\b', re.IGNORECASE),
)

NUMERIC_DAY_PATTERNS = (
    re.compile(r'\b(?:in\s+)?(\d+)\s+(days?)(?:\s+from\s+now)?\b', re.IGNORECASE),
    re.compile(r'\b(?:in\s+)?(\d+)\s+(weeks?)(?:\s+from\s+now)?\b', re.IGNORECASE),
    re.compile(r'\b(?:in\s+)?(\d+)\s+(months?)(?:\s+from\s+now)?\b', re.IGNORECASE),
)

NUMERIC_CLOCK_PATTERNS = (
    re.compile(r'\b(?:in\s+)?(\d+)\s+(hours?)(?:\s+from\s+now)?\b', re.IGNORECASE),
    re.compile(r'\b(?:in\s+)?(\d+)\s+(minutes?|mins?)(?:\s+from\s+now)?\b', re.IGNORECASE),
)

TEXT_CLOCK_PATTERNS = (
    re.compile(
        r'\b(?:in\s+)?(one|two|three|four|five|six|seven|eight|nine|ten|eleven|twelve|a|an)'
        r'\s+(hours?)\b',
        re.IGNORECASE,
    ),
    re.compile(r'\b(?:in\s+)?(fifteen|thirty|forty-five)\s+(minutes?)\b', re.IGNORECASE),
)

# Minute words the general numeral vocabulary does not cover
MINUTE_WORDS = {'fifteen': 15, 'thirty': 30, 'forty-five': 45}

KEYWORD_PATTERN = re.compile(r'\b(today|tomorrow|tmr|yesterday)\b', re.IGNORECASE)
KEYWORD_OFFSETS = {
    'today': 0,
    'tomorrow': 1,
    'tmr': 1,
    'yesterday': -1,  # allowed, not recommended
}

WEEKDAY_PATTERN = re.compile(
    r'\b(next\s+)?(monday|tuesday|wednesday|thursday|friday|saturday|sunday|'
    r'mon|tue|wed|thu|fri|sat|sun)\b',
    re.IGNORECASE,
)

CLOCK_TIME_PATTERNS = (
    # "at 3pm", "at 3:30pm", "at 3:30 pm"
    re.compile(r'\bat\s+(\d{1,2})(?::(\d{2}))?\s?(am|pm)\b', re.IGNORECASE),
    # "3pm", "3:30pm", "3:30 pm"
    re.compile(r'\b(\d{1,2})(?::(\d{2}))?\s?(am|pm)\b', re.IGNORECASE),
    # "at 15:00", "at 3:30"
    re.compile(r'\bat\s+(\d{1,2}):(\d{2})\b', re.IGNORECASE),
)

WHITESPACE_PATTERN = re.compile(r'\s+')


def normalize_whitespace(text: str) -> str:
    """Collapse runs of whitespace to one space and trim the ends"""
    return WHITESPACE_PATTERN.sub(' ', text).strip()


def remove_first(text: str, original: str) -> str:
    """Remove the first occurrence of the matched text"""
    return text.replace(original, '', 1)


def _midnight(day: date, reference: datetime) -> datetime:
    return datetime(day.year, day.month, day.day, tzinfo=reference.tzinfo)


def _add_days(reference: datetime, days: int) -> datetime:
    return _midnight(reference.date() + timedelta(days=days), reference)


def _add_duration(reference: datetime, delta: timedelta) -> datetime:
    """Add an exact duration, on the absolute timeline when the reference is zone-aware"""
    if reference.tzinfo is None or reference.utcoffset() is None:
        return reference + delta
    return (reference.astimezone(tz.UTC) + delta).astimezone(reference.tzinfo)


def _add_calendar(value, years: int = 0, months: int = 0):
    """
    Add whole years/months with calendar rollover

    A day past the end of the target month spills into the next month
    (Jan 31 + 1 month = Mar 3, or Mar 2 in a leap year).
    """
    return value.replace(day=1) + relativedelta(years=years, months=months) + timedelta(days=value.day - 1)


def _within_two_years(candidate: datetime, reference: datetime) -> bool:
    return candidate <= _add_calendar(reference, years=2)


def _end_of_month(reference: datetime) -> datetime:
    last_day = calendar.monthrange(reference.year, reference.month)[1]
    return _midnight(reference.date().replace(day=last_day), reference)


def _start_of_next_month(reference: datetime) -> datetime:
    return _midnight(reference.date().replace(day=1) + relativedelta(months=1), reference)


def _mid_month(reference: datetime) -> datetime:
    target = reference.date().replace(day=15)
    if reference.day >= 15:
        target += relativedelta(months=1)
    return _midnight(target, reference)


def _end_of_week(reference: datetime) -> datetime:
    # Sunday, which is today when today is Sunday
    return _add_days(reference, (6 - reference.weekday()) % 7)


def _start_of_week(reference: datetime) -> datetime:
    # Always a future Monday, a full week out when today is Monday
    days_until_monday = (7 - reference.weekday()) % 7 or 7
    return _add_days(reference, days_until_monday)


def _next_month(reference: datetime) -> datetime:
    return _midnight(_add_calendar(reference.date(), months=1), reference)


def _next_year(reference: datetime) -> datetime:
    return _midnight(_add_calendar(reference.date(), years=1), reference)


def _next_quarter(reference: datetime) -> datetime:
    quarter_start = ((reference.month - 1) // 3) * 3 + 1
    first_of_quarter = date(reference.year, quarter_start, 1)
    return _midnight(first_of_quarter + relativedelta(months=3), reference)


SPECIAL_PERIODS = (
    (re.compile(r'\bend\s+of\s+(?:the\s+)?month\b', re.IGNORECASE), _end_of_month),
    (re.compile(r'\b(?:start|beginning)\s+of\s+(?:the\s+)?month\b', re.IGNORECASE), _start_of_next_month),
    (re.compile(r'\bmid\s+month\b', re.IGNORECASE), _mid_month),
    (re.compile(r'\bend\s+of\s+(?:the\s+)?week\b', re.IGNORECASE), _end_of_week),
    (re.compile(r'\b(?:start|beginning)\s+of\s+(?:the\s+)?week\b', re.IGNORECASE), _start_of_week),
    (re.compile(r'\bnext\s+month\b', re.IGNORECASE), _next_month),
    (re.compile(r'\bnext\s+year\b', re.IGNORECASE), _next_year),
    (re.compile(r'\bnext\s+quarter\b', re.IGNORECASE), _next_quarter),
)


class DateParser:
    """Parse natural language due dates out of task titles"""

    # Month mappings
    MONTHS = {
        'jan': 1, 'january': 1,
        'feb': 2, 'february': 2,
        'mar': 3, 'march': 3,
        'apr': 4, 'april': 4,
        'may': 5,
        'jun': 6, 'june': 6,
        'jul': 7, 'july': 7,
        'aug': 8, 'august': 8,
        'sep': 9, 'sept': 9, 'september': 9,
        'oct': 10, 'october': 10,
        'nov': 11, 'november': 11,
        'dec': 12, 'december': 12
    }

    # Weekday mappings (Monday == 0, as datetime.weekday)
    WEEKDAYS = {
        'monday': 0, 'mon': 0,
        'tuesday': 1, 'tue': 1,
        'wednesday': 2, 'wed': 2,
        'thursday': 3, 'thu': 3,
        'friday': 4, 'fri': 4,
        'saturday': 5, 'sat': 5,
        'sunday': 6, 'sun': 6
    }

    _month_names = '|'.join(sorted(MONTHS, key=len, reverse=True))
    MONTH_NAME_PATTERN = re.compile(
        rf'\b(?:({_month_names})\s+(\d{{1,2}})(?:st|nd|rd|th)?'
        rf'|(\d{{1,2}})(?:st|nd|rd|th)?\s+({_month_names}))\b',
        re.IGNORECASE,
    )

    @staticmethod
    def parse(title: str, reference: datetime) -> ParseResult:
        """
        Extract a due date/time from a task title

        Date families are tried in order (numeric date, day name, relative,
        month name); the first match wins. A clock time is then looked for
        in the remaining text and merged onto the date. With no date at
        all, a clock time alone is taken to mean today.

        Args:
            title: Free-text task title
            reference: The "now" that relative dates are computed from

        Returns:
            ParseResult; the title is returned untouched when nothing matched
        """
        result = ParseResult(cleaned_title=title)

        families = (
            DateParser._parse_numeric_date,
            DateParser._parse_day_name,
            DateParser._parse_relative_date,
            DateParser._parse_month_name,
        )

        for family in families:
            match = family(title, reference)
            if match is None:
                continue

            logger.debug(f"{family.__name__} matched {match.original!r} -> {match.due.isoformat()}")
            result.due_date = match.due
            result.matched_text = match.original
            result.cleaned_title = normalize_whitespace(remove_first(title, match.original))

            clock = DateParser._parse_time(result.cleaned_title)
            if clock is not None:
                time_of_day, time_original = clock
                result.due_date = result.due_date.replace(
                    hour=time_of_day.hour, minute=time_of_day.minute, second=0, microsecond=0
                )
                result.matched_text = f"{match.original} {time_original}"
                result.cleaned_title = normalize_whitespace(
                    remove_first(result.cleaned_title, time_original)
                )
            break

        if result.due_date is None:
            # A bare time ("due at 9am") means today at that time
            clock = DateParser._parse_time(title)
            if clock is not None:
                time_of_day, time_original = clock
                logger.debug(f"Time-only match {time_original!r}, assuming reference date")
                result.due_date = reference.replace(
                    hour=time_of_day.hour, minute=time_of_day.minute, second=0, microsecond=0
                )
                result.matched_text = time_original
                result.cleaned_title = normalize_whitespace(remove_first(title, time_original))

        return result

    @staticmethod
    def _parse_numeric_date(text: str, reference: datetime) -> Optional[DateMatch]:
        """Parse "MM/DD", "MM/DD/YY" and "MM/DD/YYYY" dates"""
        for pattern, has_year in NUMERIC_DATE_PATTERNS:
            for match in pattern.finditer(text):
                month, day = int(match.group(1)), int(match.group(2))
                if not (1 <= month <= 12 and 1 <= day <= 31):
                    continue

                try:
                    if has_year:
                        year = int(match.group(3))
                        if year < 100:  # Two-digit year
                            year += 2000
                        due = datetime(year, month, day, tzinfo=reference.tzinfo)
                    else:
                        due = DateParser._next_occurrence(month, day, reference)
                except ValueError:
                    # Not a real calendar date (02/30)
                    continue

                if not _within_two_years(due, reference):
                    continue

                return DateMatch(due, match.group(0))

        return None

    @staticmethod
    def _parse_day_name(text: str, reference: datetime) -> Optional[DateMatch]:
        """Parse weekday names, optionally prefixed with "next" """
        match = WEEKDAY_PATTERN.search(text)
        if not match:
            return None

        is_next = match.group(1) is not None
        target_weekday = DateParser.WEEKDAYS[match.group(2).lower()]

        # Today never counts for a bare day name; "next" always adds a week
        days_ahead = target_weekday - reference.weekday()
        if days_ahead <= 0 or is_next:
            days_ahead += 7

        return DateMatch(_add_days(reference, days_ahead), match.group(0))

    @staticmethod
    def _parse_relative_date(text: str, reference: datetime) -> Optional[DateMatch]:
        """
        Parse relative expressions

        Sub-rules run in a fixed order and the first hit wins: spelled-out
        day/week counts, numeric day/week/month counts, numeric hour/minute
        offsets, spelled-out hour/minute offsets, special periods, and
        finally the today/tomorrow/yesterday keywords.
        """
        rules = (
            DateParser._parse_text_days,
            DateParser._parse_numeric_days,
            DateParser._parse_numeric_clock_offset,
            DateParser._parse_text_clock_offset,
            DateParser._parse_special_period,
            DateParser._parse_keyword,
        )
        for rule in rules:
            match = rule(text, reference)
            if match is not None:
                return match
        return None

    @staticmethod
    def _parse_text_days(text: str, reference: datetime) -> Optional[DateMatch]:
        """ "three days", "in a week", "two weeks" """
        for pattern in TEXT_DAY_PATTERNS:
            match = pattern.search(text)
            if not match:
                continue

            count = text_to_number(match.group(1))
            if count is None:
                continue

            if match.group(2).lower().startswith('week'):
                count *= 7
            return DateMatch(_add_days(reference, count), match.group(0))

        return None

    @staticmethod
    def _parse_numeric_days(text: str, reference: datetime) -> Optional[DateMatch]:
        """ "in 3 days", "2 weeks", "3 months from now" """
        for pattern in NUMERIC_DAY_PATTERNS:
            match = pattern.search(text)
            if not match:
                continue

            count = int(match.group(1))
            unit = match.group(2).lower()

            try:
                if unit.startswith('month'):
                    due = _midnight(_add_calendar(reference.date(), months=count), reference)
                elif unit.startswith('week'):
                    due = _add_days(reference, count * 7)
                else:
                    due = _add_days(reference, count)
            except (ValueError, OverflowError):
                # Offset runs past the supported calendar range
                continue

            return DateMatch(due, match.group(0))

        return None

    @staticmethod
    def _parse_numeric_clock_offset(text: str, reference: datetime) -> Optional[DateMatch]:
        """ "in 2 hours", "30 mins", "2 hours from now" """
        for pattern in NUMERIC_CLOCK_PATTERNS:
            match = pattern.search(text)
            if not match:
                continue

            count = int(match.group(1))

            try:
                if match.group(2).lower().startswith('hour'):
                    delta = timedelta(hours=count)
                else:
                    delta = timedelta(minutes=count)
                due = _add_duration(reference, delta)
            except (ValueError, OverflowError):
                continue

            return DateMatch(due, match.group(0))

        return None

    @staticmethod
    def _parse_text_clock_offset(text: str, reference: datetime) -> Optional[DateMatch]:
        """ "in two hours", "an hour", "in thirty minutes" """
        for pattern in TEXT_CLOCK_PATTERNS:
            match = pattern.search(text)
            if not match:
                continue

            word = match.group(1).lower()
            count = MINUTE_WORDS[word] if word in MINUTE_WORDS else text_to_number(word)
            if count is None:
                continue

            if match.group(2).lower().startswith('hour'):
                delta = timedelta(hours=count)
            else:
                delta = timedelta(minutes=count)

            return DateMatch(_add_duration(reference, delta), match.group(0))

        return None

    @staticmethod
    def _parse_special_period(text: str, reference: datetime) -> Optional[DateMatch]:
        """ "end of month", "start of week", "next quarter" and friends """
        for pattern, resolve in SPECIAL_PERIODS:
            match = pattern.search(text)
            if match:
                return DateMatch(resolve(reference), match.group(0))

        return None

    @staticmethod
    def _parse_keyword(text: str, reference: datetime) -> Optional[DateMatch]:
        """ "today", "tomorrow", "tmr", "yesterday" """
        match = KEYWORD_PATTERN.search(text)
        if not match:
            return None

        offset = KEYWORD_OFFSETS[match.group(1).lower()]
        return DateMatch(_add_days(reference, offset), match.group(0))

    @staticmethod
    def _parse_month_name(text: str, reference: datetime) -> Optional[DateMatch]:
        """Parse "Nov 26", "November 26th", "26 Nov" """
        for match in DateParser.MONTH_NAME_PATTERN.finditer(text):
            if match.group(1):
                month_name, day_str = match.group(1), match.group(2)
            else:
                day_str, month_name = match.group(3), match.group(4)

            month = DateParser.MONTHS[month_name.lower()]
            day = int(day_str)
            if not 1 <= day <= 31:
                continue

            try:
                due = DateParser._next_occurrence(month, day, reference)
            except ValueError:
                continue

            if not _within_two_years(due, reference):
                continue

            return DateMatch(due, match.group(0))

        return None

    @staticmethod
    def _next_occurrence(month: int, day: int, reference: datetime) -> datetime:
        """
        Resolve a year-less date to its next occurrence

        Uses the reference year, rolling to the following year when the
        date would fall before the reference instant.

        Raises:
            ValueError: If month/day is not a real date in the chosen year
        """
        year = reference.year
        due = datetime(year, month, day, tzinfo=reference.tzinfo)
        if due < reference:
            due = datetime(year + 1, month, day, tzinfo=reference.tzinfo)
        return due

    @staticmethod
    def _parse_time(text: str) -> Optional[Tuple[time, str]]:
        """
        Parse a time of day

        Args:
            text: Text to search

        Returns:
            (time of day, matched text) or None
        """
        for pattern in CLOCK_TIME_PATTERNS:
            for match in pattern.finditer(text):
                hour = int(match.group(1))
                minute = int(match.group(2)) if match.group(2) else 0

                if pattern.groups == 3:
                    meridiem = match.group(3).lower()
                    # Convert to 24-hour format
                    if meridiem == 'pm' and hour != 12:
                        hour += 12
                    elif meridiem == 'am' and hour == 12:
                        hour = 0

                if not (0 <= hour <= 23 and 0 <= minute <= 59):
                    continue

                return time(hour, minute), match.group(0)

        return None


def parse(title: str, reference: datetime) -> ParseResult:
    """
    Convenience function to parse a due date out of a task title

    Args:
        title: Task title
        reference: Reference instant (should carry a time zone)

    Returns:
        ParseResult
    """
    return DateParser.parse(title, reference)


def parse_time(text: str) -> Optional[Tuple[time, str]]:
    """Convenience function to find a time of day in text"""
    return DateParser._parse_time(text)
