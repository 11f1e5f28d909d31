from dataclasses import FrozenInstanceError
from datetime import date, datetime, timedelta

import pytest

from gds_parser import (
    CompactSegmentFields,
    JammedSegmentFields,
    SpacedSegmentFields,
    append_note,
    attach_operated_by,
    classify_transit,
    close_segment,
    match_segment,
    normalize_terminal,
    open_segment,
    parse_pnr,
    scan_remainder,
)
from models import Direction, ParseOptions, ParseState

SCENARIO_A = "1 WB 440 Y 15AUG MON KGLDAR DK1 1155 1625"

# 18h layover in Dubai
SCENARIO_B = """
1 KQ 310 Y 10MAR NBODXB HK1 0800 1400
2 EK 500 Y 11MAR DXBBOM HK1 0800 1245
"""

# 30h stopover, back to Nairobi
SCENARIO_C = """
1 KQ 310 Y 10MAR NBODXB HK1 0800 1400
2 KQ 311 Y 11MAR DXBNBO HK1 2000 2330
"""

SCENARIO_F = """
1 BA 100 Y 20DEC LHRJFK HK1 1000 1300
2 BA 101 Y 05JAN JFKLHR HK1 1800 0600
"""


# ==================== SCENARIOS ====================

def test_single_compact_segment(parser, now):
    result = parser.parse(SCENARIO_A, ParseOptions(segment_time_format="24h"), now=now)
    assert len(result.flights) == 1

    flight = result.to_dict()["flights"][0]
    assert flight["segment"] == 1
    assert flight["airline"] == {"code": "WB", "name": "RwandAir"}
    assert flight["flightNumber"] == "440"
    assert flight["travelClass"] == {"code": "Y", "name": "Economy"}
    assert flight["date"] == "Saturday, 15 Aug 2026"
    assert flight["departure"]["airport"] == "KGL"
    assert flight["departure"]["city"] == "Kigali"
    assert flight["departure"]["time"] == "11:55"
    assert flight["arrival"]["airport"] == "DAR"
    assert flight["arrival"]["time"] == "16:25"
    assert flight["arrival"]["dateString"] is None
    assert flight["duration"] == "03h 30m"
    assert flight["transitTime"] is None
    assert flight["direction"] == "OUTBOUND"


def test_twelve_hour_display_is_default(parser, now):
    flight = parser.parse(SCENARIO_A, now=now).to_dict()["flights"][0]
    assert flight["departure"]["time"] == "11:55 AM"
    assert flight["arrival"]["time"] == "04:25 PM"


def test_connection_within_a_day_is_transit(parser):
    result = parser.parse(SCENARIO_B, now=datetime(2026, 1, 15))
    second = result.flights[1]
    assert second.transit_from_previous is not None
    assert second.transit_from_previous.duration == "18h 00m"
    assert second.transit_from_previous.minutes == 1080
    assert second.transit_from_previous.formatted_next_departure == "08:00 AM"
    assert [f.direction for f in result.flights] == [Direction.OUTBOUND, Direction.OUTBOUND]


def test_transit_time_format_option(parser):
    options = ParseOptions(transit_time_format="24h")
    payload = parser.parse(SCENARIO_B, options, now=datetime(2026, 1, 15)).to_dict()
    assert payload["flights"][1]["formattedNextDepartureTime"] == "08:00"
    assert payload["flights"][1]["transitDurationMinutes"] == 1080


def test_long_stopover_on_round_trip_is_inbound(parser):
    result = parser.parse(SCENARIO_C, now=datetime(2026, 1, 15))
    first, second = result.flights
    assert second.transit_from_previous is None
    assert first.direction == Direction.OUTBOUND
    assert second.direction == Direction.INBOUND


def test_long_stopover_on_open_jaw_stays_outbound(parser):
    text = """
1 KQ 310 Y 10MAR NBODXB HK1 0800 1400
2 EK 500 Y 12MAR DXBBOM HK1 0800 1245
"""
    result = parser.parse(text, now=datetime(2026, 1, 15))
    assert [f.direction for f in result.flights] == [Direction.OUTBOUND, Direction.OUTBOUND]


def test_inbound_is_inherited_by_connections(parser):
    text = """
1 KQ 310 Y 10MAR NBODXB HK1 0800 1400
2 EK 721 Y 12MAR DXBMCT HK1 0900 1010
3 WY 683 Y 12MAR MCTNBO HK1 1300 1700
"""
    result = parser.parse(text, now=datetime(2026, 1, 15))
    assert [f.direction for f in result.flights] == [
        Direction.OUTBOUND,
        Direction.INBOUND,
        Direction.INBOUND,
    ]
    assert result.flights[2].transit_from_previous.duration == "02h 50m"


def test_passengers_are_collected_once(parser, now):
    text = SCENARIO_A + "\n1.SMITH/JOHN MR 2.SMITH/JANE MRS\n1.SMITH/JOHN MR\n"
    result = parser.parse(text, now=now)
    assert result.passengers == ["SMITH/JOHN MR", "SMITH/JANE MRS"]
    assert len(result.flights) == 1


def test_dst_ambiguous_departure_uses_standard_time(parser):
    text = "1 AA 100 Y 01NOV JFKBOS HK1 0130 0300"
    flight = parser.parse(text, now=datetime(2026, 10, 1)).flights[0]
    assert flight.departure.utcoffset() == timedelta(hours=-5)
    assert flight.departure.strftime("%H%M") == "0130"
    assert flight.arrival > flight.departure


def test_dst_ambiguous_departure_in_dublin_uses_later_instant(parser):
    text = "1 EI 100 Y 25OCT DUBLHR HK1 0130 0300"
    flight = parser.parse(text, now=datetime(2026, 9, 1)).flights[0]
    assert flight.departure.utcoffset() == timedelta(0)
    assert flight.departure.strftime("%H%M") == "0130"
    assert flight.arrival > flight.departure


def test_year_rolls_over_between_segments(parser):
    result = parser.parse(SCENARIO_F, now=datetime(2026, 11, 1))
    first, second = result.flights
    assert first.departure.year == 2026
    assert second.departure.year == 2027
    assert second.arrival.date() == date(2027, 1, 6)
    assert second.direction == Direction.INBOUND


# ==================== ARRIVAL FORMS ====================

def test_red_eye_arrival_date_string(parser, now):
    flight = parser.parse("1 KQ 100 Y 10MAR NBOLHR HK1 2355 0605", now=now).flights[0]
    assert flight.arrival.date() == date(2026, 3, 11)
    assert flight.arrival_date_string() == "11MAR"
    assert flight.to_dict()["duration"] == "09h 10m"


def test_day_offset_with_aircraft_and_meal(parser):
    text = "1 TK 350 C 25MAR 3 ISTDXB HK1 2110 0235+1 333 E 0 M SEE RTSVC"
    flight = parser.parse(text, now=datetime(2026, 1, 15)).flights[0]
    assert flight.arrival.date() == date(2026, 3, 26)
    assert flight.aircraft == "Airbus A330-300"
    assert flight.meal == "Meal (Non-Specific)"
    assert flight.travel_class_name == "Business"


def test_explicit_arrival_date(parser):
    text = "3 KQ 101 Y 20AUG 4 NBOLHR HK1 2355 0605 21AUG"
    flight = parser.parse(text, now=datetime(2026, 6, 1)).flights[0]
    assert flight.segment_number == 3
    assert flight.arrival.date() == date(2026, 8, 21)
    assert flight.arrival.strftime("%H%M") == "0605"


def test_jammed_line_with_class_suffix(parser):
    text = """
1 KC 921Y 15FEB 1 NQZFRA SS1  1125  1530  /DCKC /E
2 LH 116Y 15FEB 1 FRAMUC SS1  1715  1810  /DCLH /E
"""
    result = parser.parse(text, now=datetime(2026, 1, 15))
    assert [f.flight_number for f in result.flights] == ["921", "116"]
    assert result.flights[1].transit_from_previous.duration == "01h 45m"
    assert result.flights[0].meal is None


# ==================== SEGMENT DETAILS ====================

def test_spaced_segments_with_terminals_and_positions(parser, now):
    text = """
BA 117 J 10MAR LHR T5 JFK T8 1025 1310
BA 112 J 14MAR JFK T8 LHR T5 1830 0630
"""
    result = parser.parse(text, now=now)
    first, second = result.flights
    assert (first.segment_number, second.segment_number) == (1, 2)
    assert (first.departure_terminal, first.arrival_terminal) == ("5", "8")
    assert first.to_dict()["departure"]["terminal"] == "5"
    assert second.arrival_date_string() == "15MAR"


def test_operated_by_and_notes_attach_to_open_segment(parser, now):
    text = """
NOTE BEFORE ANY SEGMENT
1 WB 440 Y 15AUG MON KGLDAR DK1 1155 1625
OPERATED BY AIR TANZANIA
SEE RTSVC
"""
    flight = parser.parse(text, now=now).flights[0]
    assert flight.operated_by == "AIR TANZANIA"
    assert flight.notes == ["SEE RTSVC"]


def test_inline_operated_by(parser, now):
    flight = parser.parse(SCENARIO_A + " 789 OPERATED BY AIR TANZANIA", now=now).flights[0]
    assert flight.aircraft == "Boeing 787-9"
    assert flight.operated_by == "AIR TANZANIA"
    assert flight.meal is None


def test_unknown_codes_get_placeholders(parser, now):
    flight = parser.parse("1 ZZ 100 Y 15AUG XXXYYY HK1 1000 1200", now=now).flights[0]
    assert flight.airline_name == "Unknown Airline (ZZ)"
    assert flight.departure_airport.name == "Airport (XXX)"
    assert flight.departure_airport.timezone == "UTC"
    assert flight.departure.utcoffset() == timedelta(0)
    assert flight.to_dict()["duration"] == "02h 00m"


def test_invalid_date_degrades_one_segment_only(parser, now):
    text = """
1 WB 440 Y 31FEB KGLDAR DK1 1155 1625
2 WB 441 Y 15AUG DARKGL DK1 1715 1750
"""
    result = parser.parse(text, now=now)
    broken, ok = result.to_dict()["flights"]
    assert broken["departure"]["time"] == ""
    assert broken["date"] == ""
    assert broken["duration"] == "Invalid time"
    assert ok["duration"] == "01h 35m"
    assert ok["transitTime"] is None


def test_invalid_time_token(parser, now):
    flight = parser.parse("1 WB 440 Y 15AUG KGLDAR DK1 2575 1625", now=now).flights[0]
    assert flight.departure is None
    assert flight.arrival is None


def test_lowercase_input_is_accepted(parser, now):
    result = parser.parse(SCENARIO_A.lower(), now=now)
    assert result.flights[0].airline_code == "WB"


# ==================== PROPERTIES ====================

def test_empty_input(parser):
    assert parser.parse("").to_dict() == {"flights": [], "passengers": []}
    assert parser.parse("  \n\t\n").to_dict() == {"flights": [], "passengers": []}


@pytest.mark.parametrize("line, fields_type, departure, arrival", [
    (SCENARIO_A, CompactSegmentFields, "15AUG1155", "15AUG1625"),
    ("2. BA 117 J 10MAR LHR T5 JFK T8 1025 1310", SpacedSegmentFields, "10MAR1025", "10MAR1310"),
    ("EY 156 E 18APR 6*PRGAUH DK1 1120 1905+1 789", JammedSegmentFields, "18APR1120", "19APR1905"),
])
def test_happy_path_reserializes_to_tokens(parser, now, line, fields_type, departure, arrival):
    assert isinstance(match_segment(line), fields_type)

    flight = parser.parse(line, now=now).flights[0]
    assert flight.departure.strftime("%d%b%H%M").upper() == departure
    assert flight.arrival.strftime("%d%b%H%M").upper() == arrival
    assert flight.arrival.strftime("%H%M") == arrival[-4:]


@pytest.mark.parametrize("text", [SCENARIO_A, SCENARIO_B, SCENARIO_C, SCENARIO_F])
def test_first_segment_is_outbound(parser, now, text):
    assert parser.parse(text, now=now).flights[0].direction == Direction.OUTBOUND


@pytest.mark.parametrize("departure, expected", [
    ("1030", None),        # exactly 30 minutes
    ("1031", "00h 31m"),
])
def test_minimum_connection(parser, departure, expected):
    text = f"""
1 BA 100 Y 10MAR LHRCDG HK1 0800 1000
2 AF 200 Y 10MAR CDGAMS HK1 {departure} 1145
"""
    second = parser.parse(text, now=datetime(2026, 1, 15)).to_dict()["flights"][1]
    assert second["transitTime"] == expected


def test_exactly_one_day_is_neither_transit_nor_inbound(parser):
    text = """
1 BA 100 Y 10MAR LHRCDG HK1 0800 1000
2 AF 201 Y 11MAR CDGLHR HK1 1000 1015
"""
    second = parser.parse(text, now=datetime(2026, 1, 15)).flights[1]
    assert second.transit_from_previous is None
    assert second.direction == Direction.OUTBOUND


def test_parse_is_idempotent(parser):
    now = datetime(2026, 11, 1)
    text = SCENARIO_F + "\n1.DOE/ALEX MR\n"
    assert parser.parse(text, now=now).to_dict() == parser.parse(text, now=now).to_dict()


def test_parse_pnr_convenience(tables, now):
    result = parse_pnr(SCENARIO_A, now=now, tables=tables)
    assert result.flights[0].arrival_airport.city == "Dar es Salaam"


# ==================== BUILDER PIECES ====================

def test_normalize_terminal():
    assert normalize_terminal("T5") == "5"
    assert normalize_terminal("2B") == "2B"
    assert normalize_terminal("T") is None
    assert normalize_terminal(None) is None


def test_scan_remainder(tables):
    assert scan_remainder("E 0 789 LD SEE RTSVC", tables) == ("Boeing 787-9", "Lunch & Dinner", None)
    assert scan_remainder("/DCKC /E", tables) == (None, None, None)
    assert scan_remainder("KC/32Q OPERATED BY AIR ASTANA", tables) == ("Airbus A321neo", None, "AIR ASTANA")


def test_classify_transit_bounds():
    base = datetime(2026, 3, 10, 10, 0)
    assert classify_transit(None, base, False) is None
    assert classify_transit(base, base + timedelta(minutes=30), False) is None
    assert classify_transit(base, base + timedelta(hours=24), False) is None
    transit = classify_transit(base, base + timedelta(hours=2, minutes=5), True)
    assert transit.minutes == 125
    assert transit.formatted_next_departure == "12:05"


def test_open_segment_threads_state(tables):
    fields = match_segment(SCENARIO_A)
    assert isinstance(fields, CompactSegmentFields)

    state = ParseState(now=datetime(2026, 6, 1))
    segment, new_state = open_segment(fields, tables, state, ParseOptions())
    assert state.current_segment is None
    assert new_state.current_segment is segment
    assert new_state.inferred_year == 2026
    assert new_state.previous_departure_month == 8
    assert new_state.previous_arrival == segment.arrival

    with pytest.raises(FrozenInstanceError):
        new_state.inferred_year = 2030

    closed = close_segment(new_state)
    assert closed.flights == (segment,)
    assert closed.current_segment is None


def test_segment_edits_return_copies(tables):
    fields = match_segment(SCENARIO_A)
    segment, _ = open_segment(fields, tables, ParseState(now=datetime(2026, 6, 1)), ParseOptions())
    noted = append_note(segment, "  SEE RTSVC ")
    operated = attach_operated_by(noted, " AIR TANZANIA ")
    assert segment.notes == []
    assert noted.notes == ["SEE RTSVC"]
    assert operated.operated_by == "AIR TANZANIA"
