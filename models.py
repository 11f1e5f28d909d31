from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple

from config import DEFAULT_SEGMENT_TIME_FORMAT, DEFAULT_TRANSIT_TIME_FORMAT, TIME_FORMATS
from time_resolver import format_date, format_duration, format_time

# ==================== MODELS ====================


@dataclass(frozen=True)
class AirportRecord:
    code: str
    city: str
    country: str
    name: str
    timezone: str

    @classmethod
    def placeholder(cls, code: str) -> "AirportRecord":
        """Stand-in for a code missing from the airport table."""
        code = (code or "").upper()
        return cls(code=code, city="Unknown", country="", name=f"Airport ({code})", timezone="UTC")


class Direction(Enum):
    OUTBOUND = "OUTBOUND"
    INBOUND = "INBOUND"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class Transit:
    """Layover preceding a segment."""
    duration: str
    minutes: int
    formatted_next_departure: str


@dataclass
class FlightSegment:
    segment_number: int
    airline_code: str
    airline_name: str
    flight_number: str
    travel_class_code: str
    travel_class_name: str
    departure: Optional[datetime]
    arrival: Optional[datetime]
    departure_airport: AirportRecord
    arrival_airport: AirportRecord
    departure_terminal: Optional[str] = None
    arrival_terminal: Optional[str] = None
    aircraft: Optional[str] = None
    meal: Optional[str] = None
    operated_by: Optional[str] = None
    notes: List[str] = field(default_factory=list)
    transit_from_previous: Optional[Transit] = None
    direction: Direction = Direction.UNKNOWN

    def arrival_date_string(self) -> Optional[str]:
        """'16AUG' when the arrival falls on a different local day than the departure."""
        if self.departure is None or self.arrival is None:
            return None
        if self.arrival.date() == self.departure.date():
            return None
        return self.arrival.strftime("%d%b").upper()

    def to_dict(self, use_24h: bool = False) -> Dict:
        dep, arr = self.departure_airport, self.arrival_airport
        transit = self.transit_from_previous
        return {
            "segment": self.segment_number,
            "airline": {"code": self.airline_code, "name": self.airline_name},
            "flightNumber": self.flight_number,
            "travelClass": {"code": self.travel_class_code, "name": self.travel_class_name},
            "date": format_date(self.departure),
            "departure": {
                "airport": dep.code,
                "city": dep.city,
                "name": dep.name,
                "country": dep.country,
                "time": format_time(self.departure, use_24h),
                "terminal": self.departure_terminal,
            },
            "arrival": {
                "airport": arr.code,
                "city": arr.city,
                "name": arr.name,
                "country": arr.country,
                "time": format_time(self.arrival, use_24h),
                "dateString": self.arrival_date_string(),
                "terminal": self.arrival_terminal,
            },
            "duration": format_duration(self.departure, self.arrival),
            "aircraft": self.aircraft,
            "meal": self.meal,
            "notes": list(self.notes),
            "operatedBy": self.operated_by,
            "transitTime": transit.duration if transit else None,
            "transitDurationMinutes": transit.minutes if transit else None,
            "formattedNextDepartureTime": transit.formatted_next_departure if transit else None,
            "direction": self.direction.value,
        }


def _time_format(value, default: str) -> str:
    if isinstance(value, str) and value.lower() in TIME_FORMATS:
        return value.lower()
    return default


@dataclass(frozen=True)
class ParseOptions:
    segment_time_format: str = DEFAULT_SEGMENT_TIME_FORMAT
    transit_time_format: str = DEFAULT_TRANSIT_TIME_FORMAT

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> "ParseOptions":
        """Build from the camelCase JSON options; bad values fall back to defaults."""
        data = data or {}
        return cls(
            segment_time_format=_time_format(data.get("segmentTimeFormat"), DEFAULT_SEGMENT_TIME_FORMAT),
            transit_time_format=_time_format(data.get("transitTimeFormat"), DEFAULT_TRANSIT_TIME_FORMAT),
        )

    @property
    def segment_24h(self) -> bool:
        return self.segment_time_format.lower() == "24h"

    @property
    def transit_24h(self) -> bool:
        return self.transit_time_format.lower() == "24h"


@dataclass(frozen=True)
class ParseState:
    """Per-parse fold state. Each line step returns a new instance."""
    now: datetime
    current_segment: Optional[FlightSegment] = None
    inferred_year: Optional[int] = None
    previous_departure_month: int = 0
    previous_arrival: Optional[datetime] = None
    flights: Tuple[FlightSegment, ...] = ()
    passengers: Tuple[str, ...] = ()


@dataclass
class ParseResult:
    flights: List[FlightSegment]
    passengers: List[str]
    options: ParseOptions = field(default_factory=ParseOptions)

    def to_dict(self) -> Dict:
        use_24h = self.options.segment_24h
        return {
            "flights": [f.to_dict(use_24h) for f in self.flights],
            "passengers": list(self.passengers),
        }
