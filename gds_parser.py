"""
gds_parser.py
=============
Line-oriented GDS (Amadeus / Galileo) PNR parser.

HARD DEPENDENCIES (same package):
    mappings.py      — ReferenceTables (airports, airlines, aircraft, meals, cabins)
    time_resolver.py — year inference, timezone-aware instants, duration formatting
    models.py        — FlightSegment, ParseState, ParseOptions, ParseResult

The PNR text is folded line by line over an immutable ParseState:

    raw text → lines → classify_line() → open_segment() / attach_operated_by()
             / append_note() / passengers → post-pass (directions) → ParseResult

Supports:
  - Compact Amadeus lines     1 WB 440 Y 15AUG MON KGLDAR DK1 1155 1625
  - Spaced Galileo lines      2. BA 117 J 10MAR LHR T5 JFK T8 1025 1310
  - Jammed airport pairs      EY 156 E 18APR 6*PRGAUH DK1 1120 1905+1 789
  - Explicit arrival dates (16AUG), +N day offsets, red-eye inference
  - Aircraft / meal codes trailing the segment, OPERATED BY lines, free-text notes
  - Numbered passenger lines  1.SMITH/JOHN MR 2.SMITH/JANE MRS
"""

import logging
import re
from dataclasses import dataclass, replace
from datetime import datetime
from functools import partial, reduce
from typing import Callable, List, Optional, Tuple, Type

from mappings import ReferenceTables, get_reference_tables
from models import (
    Direction,
    FlightSegment,
    ParseOptions,
    ParseResult,
    ParseState,
    Transit,
)
from time_resolver import (
    DurationCalculator,
    FlightDate,
    TimezoneHandler,
    format_time,
    resolve_arrival,
    resolve_departure,
)

logger = logging.getLogger(__name__)

MIN_CONNECTION_MINUTES = 30
STOPOVER_THRESHOLD_MINUTES = 24 * 60

PASSENGER_TITLES = {"MR", "MRS", "MS", "MSTR", "MISS", "CHD", "INF"}


# ══════════════════════════════════════════════════════════════════════════════
#  SEGMENT FIELDS  (one variant per line format)
# ══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SegmentFields:
    segment_number: Optional[str]
    airline_code: str
    flight_number: str
    travel_class: str
    departure_date: str
    departure_airport: str
    arrival_airport: str
    departure_time: str
    arrival_time: str
    arrival_token: Optional[str]
    remainder: str


@dataclass(frozen=True)
class CompactSegmentFields(SegmentFields):
    """1 WB 440 Y 15AUG MON KGLDAR DK1 1155 1625"""


@dataclass(frozen=True)
class SpacedSegmentFields(SegmentFields):
    """2. BA 117 J 10MAR LHR T5 JFK T8 1025 1310; the only format carrying terminals."""
    departure_terminal: Optional[str] = None
    arrival_terminal: Optional[str] = None


@dataclass(frozen=True)
class JammedSegmentFields(SegmentFields):
    """EY 156 E 18APR 6*PRGAUH DK1 1120 1905+1"""


# ══════════════════════════════════════════════════════════════════════════════
#  LINE KINDS
# ══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SegmentLine:
    fields: SegmentFields


@dataclass(frozen=True)
class PassengerLine:
    text: str


@dataclass(frozen=True)
class OperatedByLine:
    carrier: str


@dataclass(frozen=True)
class NoteLine:
    text: str


@dataclass(frozen=True)
class BlankLine:
    pass


# ══════════════════════════════════════════════════════════════════════════════
#  REGEX PATTERNS
# ══════════════════════════════════════════════════════════════════════════════

_MON = r"JAN|FEB|MAR|APR|MAY|JUN|JUL|AUG|SEP|OCT|NOV|DEC"

_SEG_NUM_OPT = r"(?:(?P<seg_num>\d{1,2})(?:\.\s*|\s+))?"
_FLIGHT      = r"(?P<airline>[A-Z0-9]{2}[A-Z]?)\s*(?P<flt_num>\d{1,4}[A-Z]?)"
_DEP_DATE    = rf"(?P<dep_date>\d{{1,2}}(?:{_MON}))"
_STATUS_OPT  = r"(?:[A-Z]{2}\d{1,3}\s+)?"
_TIMES       = r"(?P<dep_time>\d{4})\s+(?P<arr_time>\d{4})"
_ARR_TOKEN   = rf"(?:\s*(?P<arr_token>\+\d|\d{{1,2}}(?:{_MON})))?(?![A-Z0-9])"
_TERMINAL    = r"T?\d[A-Z0-9]?|T[A-Z]"

# ── Compact Amadeus: mandatory segment number and status, jammed pair ─────────
# 1 WB 440 Y 15AUG MON KGLDAR DK1 1155 1625
# 3 KQ 101 Y 20AUG 4 NBOLHR HK1 2355 0605 21AUG
_RE_COMPACT = re.compile(
    rf"""
    ^\s*(?P<seg_num>\d{{1,2}})\s+
    (?P<airline>[A-Z0-9]{{2}})\s*(?P<flt_num>\d{{1,4}}[A-Z]?)\s+
    (?P<bkg_cls>[A-Z])\s+
    {_DEP_DATE}\s+
    (?:\S{{1,3}}\s*)?
    (?P<dep_ap>[A-Z]{{3}})(?P<arr_ap>[A-Z]{{3}})\s+
    [A-Z]{{2}}\d{{1,3}}\s+
    {_TIMES}
    {_ARR_TOKEN}
    """,
    re.VERBOSE,
)

# ── Spaced Galileo: separate airports, optional terminals ─────────────────────
# 2. BA 117 J 10MAR LHR T5 JFK T8 1025 1310
# BA 117 J 10MAR 2 LHR JFK HK1 1025 1310 +1
_RE_SPACED = re.compile(
    rf"""
    ^\s*{_SEG_NUM_OPT}
    {_FLIGHT}\s*
    (?P<bkg_cls>[A-Z])\s+
    {_DEP_DATE}\s+
    (?:[1-7]\s+|(?:MO|TU|WE|TH|FR|SA|SU)[A-Z]?\s+)?
    (?P<dep_ap>[A-Z]{{3}})(?:\s+(?P<dep_term>{_TERMINAL}))?\s+
    (?P<arr_ap>[A-Z]{{3}})(?:\s+(?P<arr_term>{_TERMINAL}))?\s+
    {_STATUS_OPT}
    {_TIMES}
    {_ARR_TOKEN}
    """,
    re.VERBOSE,
)

# ── Jammed pair, everything else optional ─────────────────────────────────────
# EY 156 E 18APR 6*PRGAUH DK1 1120 1905 18APR E 0 789 M SEE RTSVC
# 1 TK 350 C 25MAR 3 ISTALA HK1 2110 0435+1 333
_RE_JAMMED = re.compile(
    rf"""
    ^\s*{_SEG_NUM_OPT}
    {_FLIGHT}\s*
    (?P<bkg_cls>[A-Z])\s+
    {_DEP_DATE}\s+
    (?:\S{{1,3}}\s+|\d\*?)?
    (?P<dep_ap>[A-Z]{{3}})(?P<arr_ap>[A-Z]{{3}})(?:\*?[A-Z]{{2}}\d{{1,3}})?\s+
    {_STATUS_OPT}
    {_TIMES}
    {_ARR_TOKEN}
    """,
    re.VERBOSE,
)

_RE_PASSENGER     = re.compile(r"^\s*\d+\.\s*[A-Z/]")
_RE_PAX_PREFIX    = re.compile(r"^\s*\d+\.\s*")
_RE_PAX_SPLIT     = re.compile(r"\s+\d+\.\s*")
_RE_OPERATED_BY   = re.compile(r"OPERATED BY\s+(.+)", re.I)
_RE_CODESHARE     = re.compile(r"^\s*\*")
_RE_MEAL          = re.compile(r"^[BLDSMFHCVKOPRWYNG]+$", re.I)
_RE_CODE_PREFIX   = re.compile(r"^[A-Z0-9]*/")


def _common_fields(m: re.Match) -> dict:
    return dict(
        segment_number=m.group("seg_num"),
        airline_code=m.group("airline"),
        flight_number=m.group("flt_num"),
        travel_class=m.group("bkg_cls"),
        departure_date=m.group("dep_date"),
        departure_airport=m.group("dep_ap"),
        arrival_airport=m.group("arr_ap"),
        departure_time=m.group("dep_time"),
        arrival_time=m.group("arr_time"),
        arrival_token=m.group("arr_token"),
        remainder=m.string[m.end():].strip(),
    )


def _spaced_fields(m: re.Match) -> SpacedSegmentFields:
    return SpacedSegmentFields(
        departure_terminal=m.group("dep_term"),
        arrival_terminal=m.group("arr_term"),
        **_common_fields(m),
    )


def _plain_fields(cls: Type[SegmentFields]) -> Callable[[re.Match], SegmentFields]:
    return lambda m: cls(**_common_fields(m))


# Tried in order; first match wins.
SEGMENT_MATCHERS: List[Tuple[str, re.Pattern, Callable[[re.Match], SegmentFields]]] = [
    ("compact", _RE_COMPACT, _plain_fields(CompactSegmentFields)),
    ("spaced", _RE_SPACED, _spaced_fields),
    ("jammed", _RE_JAMMED, _plain_fields(JammedSegmentFields)),
]


# ══════════════════════════════════════════════════════════════════════════════
#  LINE CLASSIFIER
# ══════════════════════════════════════════════════════════════════════════════

def match_segment(line: str) -> Optional[SegmentFields]:
    for name, pattern, build in SEGMENT_MATCHERS:
        m = pattern.match(line)
        if m:
            fields = build(m)
            logger.debug(
                "%s: %s %s %s→%s",
                name, fields.airline_code, fields.flight_number,
                fields.departure_airport, fields.arrival_airport,
            )
            return fields
    return None


def classify_line(line: str):
    """Return the LineKind for one raw PNR line."""
    text = line.strip()
    if not text:
        return BlankLine()
    text = _RE_CODESHARE.sub("", text).strip()

    fields = match_segment(text)
    if fields is not None:
        return SegmentLine(fields)
    if _RE_PASSENGER.match(text):
        return PassengerLine(text)
    m = _RE_OPERATED_BY.search(text)
    if m:
        return OperatedByLine(m.group(1).strip())
    return NoteLine(text)


def parse_passenger_line(text: str) -> List[str]:
    """'1.SMITH/JOHN MR 2.SMITH/JANE MRS' -> ['SMITH/JOHN MR', 'SMITH/JANE MRS']"""
    names = []
    cleaned = _RE_PAX_PREFIX.sub("", text)
    for block in _RE_PAX_SPLIT.split(cleaned):
        block = block.strip()
        if not block:
            continue
        parts = block.split("/")
        if len(parts) < 2:
            logger.debug("Skipping passenger block without given name: %r", block)
            continue
        last_name = parts[0].strip()
        words = parts[1].split()
        title = ""
        if words and words[-1].upper() in PASSENGER_TITLES:
            title = words.pop().upper()
        given_names = " ".join(words)
        if not last_name or not given_names:
            continue
        name = f"{last_name.upper()}/{given_names.upper()}"
        if title:
            name += f" {title}"
        names.append(name)
    return names


# ══════════════════════════════════════════════════════════════════════════════
#  SEGMENT BUILDER
# ══════════════════════════════════════════════════════════════════════════════

def normalize_terminal(term: Optional[str]) -> Optional[str]:
    if term is None:
        return None
    bare = re.sub(r"^T", "", term.strip(), flags=re.I)
    return bare or None


def scan_remainder(remainder: str, tables: ReferenceTables) -> Tuple[Optional[str], Optional[str], Optional[str]]:
    """Free text after the segment proper → (aircraft, meal, operated_by)."""
    operated_by = None
    m = _RE_OPERATED_BY.search(remainder)
    if m:
        operated_by = m.group(1).strip()
        remainder = remainder[:m.start()]

    aircraft = meal = None
    for token in remainder.split():
        if aircraft is None:
            aircraft = tables.lookup_aircraft(_RE_CODE_PREFIX.sub("", token))
        if meal is None and _RE_MEAL.match(token):
            meal = tables.describe_meal(token)
        if aircraft is not None and meal is not None:
            break
    return aircraft, meal, operated_by


def classify_transit(previous_arrival: Optional[datetime], departure: Optional[datetime],
                     use_24h: bool) -> Optional[Transit]:
    """A genuine connection lies strictly between 30 minutes and 24 hours."""
    gap = DurationCalculator.minutes_between(previous_arrival, departure)
    if gap is None:
        return None
    if not MIN_CONNECTION_MINUTES < gap < STOPOVER_THRESHOLD_MINUTES:
        return None
    minutes = int(round(gap))
    return Transit(
        duration=DurationCalculator.format_minutes(minutes),
        minutes=minutes,
        formatted_next_departure=format_time(departure, use_24h),
    )


def open_segment(fields: SegmentFields, tables: ReferenceTables, state: ParseState,
                 options: ParseOptions) -> Tuple[FlightSegment, ParseState]:
    """Build the segment for one recognised line and advance the year/arrival state."""
    dep_airport = tables.airport_or_placeholder(fields.departure_airport)
    arr_airport = tables.airport_or_placeholder(fields.arrival_airport)
    if not TimezoneHandler.is_known_zone(dep_airport.timezone):
        dep_airport = replace(dep_airport, timezone="UTC")
    if not TimezoneHandler.is_known_zone(arr_airport.timezone):
        arr_airport = replace(arr_airport, timezone="UTC")

    day, month = FlightDate.parse_date_token(fields.departure_date)
    year = FlightDate.infer_year(month, day, state.inferred_year,
                                 state.previous_departure_month, state.now)

    departure = resolve_departure(fields.departure_date, fields.departure_time,
                                  dep_airport.timezone, year)
    arrival = resolve_arrival(departure, fields.arrival_token, fields.arrival_time,
                              arr_airport.timezone, year)

    position = len(state.flights) + 1
    number = fields.segment_number
    segment_number = int(number) if number and number.isdigit() else position

    airline_code = fields.airline_code
    airline_name = tables.lookup_airline(airline_code) or f"Unknown Airline ({airline_code})"

    if isinstance(fields, SpacedSegmentFields):
        dep_terminal = normalize_terminal(fields.departure_terminal)
        arr_terminal = normalize_terminal(fields.arrival_terminal)
    else:
        dep_terminal = arr_terminal = None

    aircraft, meal, operated_by = scan_remainder(fields.remainder, tables)

    segment = FlightSegment(
        segment_number=segment_number,
        airline_code=airline_code,
        airline_name=airline_name,
        flight_number=fields.flight_number,
        travel_class_code=fields.travel_class,
        travel_class_name=tables.travel_class_name(fields.travel_class),
        departure=departure,
        arrival=arrival,
        departure_airport=dep_airport,
        arrival_airport=arr_airport,
        departure_terminal=dep_terminal,
        arrival_terminal=arr_terminal,
        aircraft=aircraft,
        meal=meal,
        operated_by=operated_by,
        transit_from_previous=classify_transit(state.previous_arrival, departure, options.transit_24h),
    )

    state = replace(
        state,
        current_segment=segment,
        inferred_year=year,
        previous_departure_month=month,
        previous_arrival=arrival,
    )
    return segment, state


def attach_operated_by(segment: FlightSegment, text: str) -> FlightSegment:
    return replace(segment, operated_by=text.strip())


def append_note(segment: FlightSegment, text: str) -> FlightSegment:
    return replace(segment, notes=[*segment.notes, text.strip()])


def close_segment(state: ParseState) -> ParseState:
    """Push the open segment, if any, onto the output list."""
    if state.current_segment is None:
        return state
    return replace(state, flights=state.flights + (state.current_segment,), current_segment=None)


# ══════════════════════════════════════════════════════════════════════════════
#  ITINERARY ASSEMBLER
# ══════════════════════════════════════════════════════════════════════════════

def is_round_trip(flights: List[FlightSegment]) -> bool:
    return bool(flights) and flights[0].departure_airport.code == flights[-1].arrival_airport.code


def classify_directions(flights: List[FlightSegment]) -> List[FlightSegment]:
    """
    Outbound/Inbound pass.

    The first segment is always OUTBOUND. A stopover longer than 24h flips to
    INBOUND only on a round trip (first origin == last destination); any other
    segment inherits the previous direction. Open-jaw and multi-city trips
    therefore stay OUTBOUND throughout.
    """
    if not flights:
        return []
    round_trip = is_round_trip(flights)
    result = [replace(flights[0], direction=Direction.OUTBOUND)]
    for current in flights[1:]:
        previous = result[-1]
        gap = DurationCalculator.minutes_between(previous.arrival, current.departure)
        direction = previous.direction
        if gap is not None and gap > STOPOVER_THRESHOLD_MINUTES and round_trip:
            direction = Direction.INBOUND
        result.append(replace(current, direction=direction))
    return result


class PNRParser:
    """
    Parses one PNR dump into segments and passengers.

    The parser holds only the read-only reference tables, so one instance can
    serve concurrent parses; all per-parse state lives in ParseState.

    Usage:
        parser = PNRParser()
        result = parser.parse(pnr_text, ParseOptions(segment_time_format="24h"))
        payload = result.to_dict()
    """

    def __init__(self, tables: Optional[ReferenceTables] = None):
        self.tables = tables or get_reference_tables()

    def parse(self, text: str, options: Optional[ParseOptions] = None,
              now: Optional[datetime] = None) -> ParseResult:
        options = options or ParseOptions()
        if not text or not text.strip():
            return ParseResult(flights=[], passengers=[], options=options)

        state = ParseState(now=now or datetime.now())
        state = reduce(partial(self._step, options), text.upper().splitlines(), state)
        state = close_segment(state)

        flights = classify_directions(list(state.flights))
        logger.debug("Parsed %d segment(s), %d passenger(s)", len(flights), len(state.passengers))
        return ParseResult(flights=flights, passengers=list(state.passengers), options=options)

    def _step(self, options: ParseOptions, state: ParseState, line: str) -> ParseState:
        kind = classify_line(line)

        if isinstance(kind, SegmentLine):
            state = close_segment(state)
            _, state = open_segment(kind.fields, self.tables, state, options)
            return state

        if isinstance(kind, PassengerLine):
            passengers = list(state.passengers)
            for name in parse_passenger_line(kind.text):
                if name not in passengers:
                    passengers.append(name)
            return replace(state, passengers=tuple(passengers))

        if state.current_segment is None:
            return state

        if isinstance(kind, OperatedByLine):
            return replace(state, current_segment=attach_operated_by(state.current_segment, kind.carrier))
        if isinstance(kind, NoteLine):
            return replace(state, current_segment=append_note(state.current_segment, kind.text))
        return state


# ══════════════════════════════════════════════════════════════════════════════
#  INTEGRATION HOOK
# ══════════════════════════════════════════════════════════════════════════════

def parse_pnr(text: str, options: Optional[ParseOptions] = None,
              now: Optional[datetime] = None,
              tables: Optional[ReferenceTables] = None) -> ParseResult:
    """Parse with the process-wide reference tables unless others are given."""
    return PNRParser(tables).parse(text, options, now)
