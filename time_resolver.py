"""
time_resolver.py
================
Turns GDS date/time tokens into timezone-aware instants.

GDS segment lines carry no year and only local wall-clock times, so every
instant is rebuilt from:
  - a DDMMM date token plus an inferred year
  - an HHMM time token
  - the airport's IANA timezone (from mappings.py)

Timezone rules come from pytz. Anything unparseable resolves to None, which
the rest of the engine treats as an "invalid instant"; the display helpers
turn None into placeholder strings instead of raising.
"""

import calendar
import logging
import re
from datetime import date, datetime, time, timedelta
from typing import Optional, Tuple

import pytz

logger = logging.getLogger(__name__)

GDS_MONTH_MAP = {
    "JAN": 1, "FEB": 2, "MAR": 3, "APR": 4,
    "MAY": 5, "JUN": 6, "JUL": 7, "AUG": 8,
    "SEP": 9, "OCT": 10, "NOV": 11, "DEC": 12,
}

YEAR_ROLLOVER_MONTHS = 3

_RE_DATE_TOKEN = re.compile(r"^(\d{1,2})([A-Z]{3})$")
_RE_TIME_TOKEN = re.compile(r"^\d{3,4}$")
_RE_OFFSET_TOKEN = re.compile(r"^\+(\d)$")


# ==================== TIMEZONE HANDLER ====================
class TimezoneHandler:
    """Timezone provider backed by pytz."""

    @staticmethod
    def is_known_zone(name: Optional[str]) -> bool:
        return bool(name) and name in pytz.all_timezones_set

    @staticmethod
    def safe_zone(name: Optional[str]) -> str:
        if TimezoneHandler.is_known_zone(name):
            return name
        logger.debug("Unknown timezone %r, substituting UTC", name)
        return "UTC"

    @staticmethod
    def resolve_local(day: date, hhmm: str, zone: str) -> Optional[datetime]:
        """
        Localize a wall-clock time in `zone`.

        A fall-back hour occurs twice; the later instant is chosen whichever
        side the zone flags as DST (Europe/Dublin flags winter time).
        Spring-forward gaps are normalized onto the post-transition clock.
        """
        parsed = FlightDate.parse_time_token(hhmm)
        if parsed is None:
            logger.warning("Invalid time token %r", hhmm)
            return None

        tz = pytz.timezone(TimezoneHandler.safe_zone(zone))
        naive = datetime.combine(day, parsed)
        candidates = [tz.normalize(tz.localize(naive, is_dst=flag)) for flag in (False, True)]
        resolved = max(candidates)

        # Two distinct instants that both keep the wall clock: the hour repeats.
        if candidates[0] != candidates[1] and all(c.replace(tzinfo=None) == naive for c in candidates):
            logger.debug(
                "Ambiguous local time %s %s in %s, using later occurrence %s",
                day.isoformat(), hhmm, zone, resolved.isoformat(),
            )
        return resolved


# ==================== DATE HANDLER ====================
class FlightDate:
    """GDS date tokens and year inference."""

    @staticmethod
    def parse_date_token(token: Optional[str]) -> Optional[Tuple[int, int]]:
        """'15AUG' -> (15, 8). No calendar validation here."""
        if not token:
            return None
        m = _RE_DATE_TOKEN.match(token.strip().upper())
        if not m or m.group(2) not in GDS_MONTH_MAP:
            return None
        return int(m.group(1)), GDS_MONTH_MAP[m.group(2)]

    @staticmethod
    def parse_time_token(token: Optional[str]) -> Optional[time]:
        if not token or not _RE_TIME_TOKEN.match(token.strip()):
            return None
        raw = token.strip().zfill(4)
        hour, minute = int(raw[:2]), int(raw[2:])
        if hour > 23 or minute > 59:
            return None
        return time(hour, minute)

    @staticmethod
    def to_date(year: int, month: int, day: int) -> Optional[date]:
        try:
            return date(year, month, day)
        except ValueError:
            logger.warning("Invalid calendar date %02d/%02d/%d", day, month, year)
            return None

    @staticmethod
    def months_before(now: datetime, months: int) -> datetime:
        month_index = now.year * 12 + (now.month - 1) - months
        year, month = divmod(month_index, 12)
        month += 1
        day = min(now.day, calendar.monthrange(year, month)[1])
        return now.replace(year=year, month=month, day=day)

    @staticmethod
    def infer_year(month: int, day: int, inferred_year: Optional[int],
                   previous_month: int, now: datetime) -> int:
        """
        Year for a departure date that carries none.

        First segment: this year, or next year when the date would already be
        more than three months in the past. Later segments: bump the year
        whenever the month goes backwards (DEC -> JAN).
        """
        if inferred_year is None:
            year = now.year
            day = max(1, min(day, calendar.monthrange(year, month)[1]))
            prospective = datetime(year, month, day)
            cutoff = FlightDate.months_before(now.replace(tzinfo=None), YEAR_ROLLOVER_MONTHS)
            if prospective < cutoff:
                year += 1
            return year
        if month < previous_month:
            return inferred_year + 1
        return inferred_year


# ==================== RESOLVER ====================

def resolve_departure(date_token: str, time_token: str, zone: str, year: int) -> Optional[datetime]:
    parsed = FlightDate.parse_date_token(date_token)
    if parsed is None:
        logger.warning("Invalid departure date token %r", date_token)
        return None
    day, month = parsed
    dep_date = FlightDate.to_date(year, month, day)
    if dep_date is None:
        return None
    return TimezoneHandler.resolve_local(dep_date, time_token, zone)


def resolve_arrival(departure: Optional[datetime], arrival_token: Optional[str],
                    time_token: str, zone: str, year: int) -> Optional[datetime]:
    """
    Arrival instant, in priority order:
      1. explicit DDMMM arrival date, taken as-is
      2. +N day offset applied to the departure date as seen at the arrival airport
      3. same local day as departure, rolled to the next day if not after departure
    """
    if departure is None:
        return None

    if arrival_token:
        offset = _RE_OFFSET_TOKEN.match(arrival_token)
        if offset:
            local_dep = departure.astimezone(pytz.timezone(TimezoneHandler.safe_zone(zone)))
            arr_date = local_dep.date() + timedelta(days=int(offset.group(1)))
            return TimezoneHandler.resolve_local(arr_date, time_token, zone)

        parsed = FlightDate.parse_date_token(arrival_token)
        if parsed is None:
            logger.warning("Invalid arrival date token %r", arrival_token)
            return None
        day, month = parsed
        # 31DEC -> 01JAN crosses into the next year
        arr_year = year + 1 if month < departure.month else year
        arr_date = FlightDate.to_date(arr_year, month, day)
        if arr_date is None:
            return None
        return TimezoneHandler.resolve_local(arr_date, time_token, zone)

    arrival = TimezoneHandler.resolve_local(departure.date(), time_token, zone)
    if arrival is not None and arrival <= departure:
        arrival = TimezoneHandler.resolve_local(departure.date() + timedelta(days=1), time_token, zone)
    return arrival


# ==================== DURATION CALCULATOR ====================
class DurationCalculator:
    """Instant differences and their "HHh MMm" rendering."""

    @staticmethod
    def minutes_between(start: Optional[datetime], end: Optional[datetime]) -> Optional[float]:
        if start is None or end is None:
            return None
        return (end - start).total_seconds() / 60

    @staticmethod
    def format_minutes(total_minutes: int) -> str:
        hours, minutes = divmod(int(total_minutes), 60)
        return f"{hours:02d}h {minutes:02d}m"

    @staticmethod
    def format_duration(start: Optional[datetime], end: Optional[datetime]) -> str:
        minutes = DurationCalculator.minutes_between(start, end)
        if minutes is None:
            return "Invalid time"
        if minutes < 0:
            return "Invalid duration"
        return DurationCalculator.format_minutes(int(minutes))


# ==================== DISPLAY HELPERS ====================

def format_time(dt: Optional[datetime], use_24h: bool = False) -> str:
    if dt is None:
        return ""
    return dt.strftime("%H:%M" if use_24h else "%I:%M %p")


def format_date(dt: Optional[datetime]) -> str:
    if dt is None:
        return ""
    return dt.strftime("%A, %d %b %Y")


def format_duration(start: Optional[datetime], end: Optional[datetime]) -> str:
    return DurationCalculator.format_duration(start, end)


def is_known_zone(name: Optional[str]) -> bool:
    return TimezoneHandler.is_known_zone(name)


def resolve_local(day: date, hhmm: str, zone: str) -> Optional[datetime]:
    return TimezoneHandler.resolve_local(day, hhmm, zone)
