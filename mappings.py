# Reference tables for the PNR converter (airports, airlines, aircraft, meals, cabins)
# Built-in tables can be extended by JSON files in the data directory.

import json
import logging
import os
from functools import lru_cache
from typing import Dict, Optional

from config import DATA_DIR
from models import AirportRecord

logger = logging.getLogger(__name__)

AIRLINES_FILE = "airlines.json"
AIRCRAFT_TYPES_FILE = "aircraftTypes.json"
AIRPORT_DATABASE_FILE = "airportDatabase.json"

# code: (city, country, airport name, IANA timezone)
AIRPORTS = {
    # ===== EAST AFRICA =====
    "KGL": ("Kigali", "Rwanda", "Kigali International", "Africa/Kigali"),
    "DAR": ("Dar es Salaam", "Tanzania", "Julius Nyerere International", "Africa/Dar_es_Salaam"),
    "NBO": ("Nairobi", "Kenya", "Jomo Kenyatta International", "Africa/Nairobi"),
    "EBB": ("Entebbe", "Uganda", "Entebbe International", "Africa/Kampala"),
    "ADD": ("Addis Ababa", "Ethiopia", "Bole International", "Africa/Addis_Ababa"),
    "JRO": ("Kilimanjaro", "Tanzania", "Kilimanjaro International", "Africa/Dar_es_Salaam"),
    "ZNZ": ("Zanzibar", "Tanzania", "Abeid Amani Karume International", "Africa/Dar_es_Salaam"),
    "BJM": ("Bujumbura", "Burundi", "Melchior Ndadaye International", "Africa/Bujumbura"),
    "FIH": ("Kinshasa", "DR Congo", "N'djili International", "Africa/Kinshasa"),
    "MBA": ("Mombasa", "Kenya", "Moi International", "Africa/Nairobi"),

    # ===== SOUTHERN / WEST / NORTH AFRICA =====
    "JNB": ("Johannesburg", "South Africa", "O.R. Tambo International", "Africa/Johannesburg"),
    "CPT": ("Cape Town", "South Africa", "Cape Town International", "Africa/Johannesburg"),
    "LOS": ("Lagos", "Nigeria", "Murtala Muhammed International", "Africa/Lagos"),
    "ACC": ("Accra", "Ghana", "Kotoka International", "Africa/Accra"),
    "DSS": ("Dakar", "Senegal", "Blaise Diagne International", "Africa/Dakar"),
    "CAI": ("Cairo", "Egypt", "Cairo International", "Africa/Cairo"),
    "CMN": ("Casablanca", "Morocco", "Mohammed V International", "Africa/Casablanca"),
    "LUN": ("Lusaka", "Zambia", "Kenneth Kaunda International", "Africa/Lusaka"),
    "HRE": ("Harare", "Zimbabwe", "Robert Gabriel Mugabe International", "Africa/Harare"),

    # ===== INDIA =====
    "DEL": ("Delhi", "India", "Indira Gandhi International", "Asia/Kolkata"),
    "BOM": ("Mumbai", "India", "Chhatrapati Shivaji Maharaj International", "Asia/Kolkata"),
    "BLR": ("Bengaluru", "India", "Kempegowda International", "Asia/Kolkata"),
    "MAA": ("Chennai", "India", "Chennai International", "Asia/Kolkata"),
    "CCU": ("Kolkata", "India", "Netaji Subhas Chandra Bose International", "Asia/Kolkata"),
    "HYD": ("Hyderabad", "India", "Rajiv Gandhi International", "Asia/Kolkata"),
    "LKO": ("Lucknow", "India", "Chaudhary Charan Singh International", "Asia/Kolkata"),
    "COK": ("Kochi", "India", "Cochin International", "Asia/Kolkata"),

    # ===== MIDDLE EAST =====
    "DXB": ("Dubai", "United Arab Emirates", "Dubai International", "Asia/Dubai"),
    "AUH": ("Abu Dhabi", "United Arab Emirates", "Zayed International", "Asia/Dubai"),
    "DOH": ("Doha", "Qatar", "Hamad International", "Asia/Qatar"),
    "IST": ("Istanbul", "Turkey", "Istanbul Airport", "Europe/Istanbul"),
    "JED": ("Jeddah", "Saudi Arabia", "King Abdulaziz International", "Asia/Riyadh"),
    "RUH": ("Riyadh", "Saudi Arabia", "King Khalid International", "Asia/Riyadh"),
    "MCT": ("Muscat", "Oman", "Muscat International", "Asia/Muscat"),
    "BAH": ("Manama", "Bahrain", "Bahrain International", "Asia/Bahrain"),
    "KWI": ("Kuwait City", "Kuwait", "Kuwait International", "Asia/Kuwait"),
    "TLV": ("Tel Aviv", "Israel", "Ben Gurion", "Asia/Jerusalem"),
    "AMM": ("Amman", "Jordan", "Queen Alia International", "Asia/Amman"),

    # ===== EUROPE =====
    "LHR": ("London", "United Kingdom", "Heathrow", "Europe/London"),
    "LGW": ("London", "United Kingdom", "Gatwick", "Europe/London"),
    "MAN": ("Manchester", "United Kingdom", "Manchester Airport", "Europe/London"),
    "CDG": ("Paris", "France", "Charles de Gaulle", "Europe/Paris"),
    "ORY": ("Paris", "France", "Orly", "Europe/Paris"),
    "AMS": ("Amsterdam", "Netherlands", "Schiphol", "Europe/Amsterdam"),
    "BRU": ("Brussels", "Belgium", "Brussels Airport", "Europe/Brussels"),
    "FRA": ("Frankfurt", "Germany", "Frankfurt am Main", "Europe/Berlin"),
    "MUC": ("Munich", "Germany", "Franz Josef Strauss", "Europe/Berlin"),
    "BER": ("Berlin", "Germany", "Berlin Brandenburg", "Europe/Berlin"),
    "ZRH": ("Zurich", "Switzerland", "Zurich Airport", "Europe/Zurich"),
    "GVA": ("Geneva", "Switzerland", "Geneva Airport", "Europe/Zurich"),
    "VIE": ("Vienna", "Austria", "Vienna International", "Europe/Vienna"),
    "PRG": ("Prague", "Czech Republic", "Vaclav Havel", "Europe/Prague"),
    "MAD": ("Madrid", "Spain", "Adolfo Suarez Madrid-Barajas", "Europe/Madrid"),
    "BCN": ("Barcelona", "Spain", "El Prat", "Europe/Madrid"),
    "FCO": ("Rome", "Italy", "Fiumicino", "Europe/Rome"),
    "MXP": ("Milan", "Italy", "Malpensa", "Europe/Rome"),
    "LIS": ("Lisbon", "Portugal", "Humberto Delgado", "Europe/Lisbon"),
    "CPH": ("Copenhagen", "Denmark", "Kastrup", "Europe/Copenhagen"),
    "ARN": ("Stockholm", "Sweden", "Arlanda", "Europe/Stockholm"),
    "OSL": ("Oslo", "Norway", "Gardermoen", "Europe/Oslo"),
    "HEL": ("Helsinki", "Finland", "Helsinki-Vantaa", "Europe/Helsinki"),
    "DUB": ("Dublin", "Ireland", "Dublin Airport", "Europe/Dublin"),
    "ATH": ("Athens", "Greece", "Eleftherios Venizelos", "Europe/Athens"),
    "WAW": ("Warsaw", "Poland", "Chopin", "Europe/Warsaw"),

    # ===== NORTH AMERICA =====
    "JFK": ("New York", "United States", "John F. Kennedy International", "America/New_York"),
    "EWR": ("Newark", "United States", "Newark Liberty International", "America/New_York"),
    "BOS": ("Boston", "United States", "Logan International", "America/New_York"),
    "IAD": ("Washington", "United States", "Dulles International", "America/New_York"),
    "ATL": ("Atlanta", "United States", "Hartsfield-Jackson", "America/New_York"),
    "MIA": ("Miami", "United States", "Miami International", "America/New_York"),
    "ORD": ("Chicago", "United States", "O'Hare International", "America/Chicago"),
    "DFW": ("Dallas", "United States", "Dallas Fort Worth International", "America/Chicago"),
    "IAH": ("Houston", "United States", "George Bush Intercontinental", "America/Chicago"),
    "DEN": ("Denver", "United States", "Denver International", "America/Denver"),
    "PHX": ("Phoenix", "United States", "Sky Harbor International", "America/Phoenix"),
    "LAX": ("Los Angeles", "United States", "Los Angeles International", "America/Los_Angeles"),
    "SFO": ("San Francisco", "United States", "San Francisco International", "America/Los_Angeles"),
    "SEA": ("Seattle", "United States", "Seattle-Tacoma International", "America/Los_Angeles"),
    "YYZ": ("Toronto", "Canada", "Pearson International", "America/Toronto"),
    "YUL": ("Montreal", "Canada", "Trudeau International", "America/Toronto"),
    "YVR": ("Vancouver", "Canada", "Vancouver International", "America/Vancouver"),
    "MEX": ("Mexico City", "Mexico", "Benito Juarez International", "America/Mexico_City"),

    # ===== SOUTH AMERICA =====
    "GRU": ("Sao Paulo", "Brazil", "Guarulhos International", "America/Sao_Paulo"),
    "EZE": ("Buenos Aires", "Argentina", "Ministro Pistarini", "America/Argentina/Buenos_Aires"),
    "BOG": ("Bogota", "Colombia", "El Dorado International", "America/Bogota"),
    "LIM": ("Lima", "Peru", "Jorge Chavez International", "America/Lima"),
    "SCL": ("Santiago", "Chile", "Arturo Merino Benitez", "America/Santiago"),

    # ===== ASIA PACIFIC =====
    "SIN": ("Singapore", "Singapore", "Changi", "Asia/Singapore"),
    "HKG": ("Hong Kong", "Hong Kong", "Hong Kong International", "Asia/Hong_Kong"),
    "BKK": ("Bangkok", "Thailand", "Suvarnabhumi", "Asia/Bangkok"),
    "KUL": ("Kuala Lumpur", "Malaysia", "Kuala Lumpur International", "Asia/Kuala_Lumpur"),
    "CGK": ("Jakarta", "Indonesia", "Soekarno-Hatta International", "Asia/Jakarta"),
    "MNL": ("Manila", "Philippines", "Ninoy Aquino International", "Asia/Manila"),
    "NRT": ("Tokyo", "Japan", "Narita International", "Asia/Tokyo"),
    "HND": ("Tokyo", "Japan", "Haneda", "Asia/Tokyo"),
    "ICN": ("Seoul", "South Korea", "Incheon International", "Asia/Seoul"),
    "PEK": ("Beijing", "China", "Beijing Capital International", "Asia/Shanghai"),
    "PVG": ("Shanghai", "China", "Pudong International", "Asia/Shanghai"),
    "CAN": ("Guangzhou", "China", "Baiyun International", "Asia/Shanghai"),
    "SYD": ("Sydney", "Australia", "Kingsford Smith", "Australia/Sydney"),
    "MEL": ("Melbourne", "Australia", "Tullamarine", "Australia/Melbourne"),
    "AKL": ("Auckland", "New Zealand", "Auckland Airport", "Pacific/Auckland"),
    "ALA": ("Almaty", "Kazakhstan", "Almaty International", "Asia/Almaty"),
    "NQZ": ("Astana", "Kazakhstan", "Nursultan Nazarbayev International", "Asia/Almaty"),
}

AIRLINE_CODES = {
    # ===== AFRICA =====
    "WB": "RwandAir", "KQ": "Kenya Airways", "ET": "Ethiopian Airlines",
    "TC": "Air Tanzania", "SA": "South African Airways", "MS": "EgyptAir",
    "AT": "Royal Air Maroc", "UR": "Uganda Airlines", "PW": "Precision Air",
    "8U": "Afriqiyah Airways", "HF": "Air Cote d'Ivoire", "QC": "Camair-Co",

    # ===== INDIA =====
    "6E": "IndiGo", "AI": "Air India", "UK": "Vistara", "SG": "SpiceJet",

    # ===== MIDDLE EAST =====
    "EK": "Emirates", "EY": "Etihad Airways", "QR": "Qatar Airways",
    "TK": "Turkish Airlines", "SV": "Saudia", "WY": "Oman Air", "GF": "Gulf Air",
    "FZ": "flydubai", "RJ": "Royal Jordanian", "LY": "El Al",

    # ===== EUROPE =====
    "BA": "British Airways", "LH": "Lufthansa", "AF": "Air France",
    "KL": "KLM Royal Dutch Airlines", "SN": "Brussels Airlines", "LX": "SWISS",
    "OS": "Austrian Airlines", "IB": "Iberia", "AZ": "ITA Airways",
    "TP": "TAP Air Portugal", "SK": "SAS Scandinavian Airlines", "AY": "Finnair",
    "EI": "Aer Lingus", "LO": "LOT Polish Airlines", "A3": "Aegean Airlines",
    "FR": "Ryanair", "U2": "easyJet", "VS": "Virgin Atlantic",

    # ===== AMERICAS =====
    "AA": "American Airlines", "DL": "Delta Air Lines", "UA": "United Airlines",
    "AC": "Air Canada", "B6": "JetBlue Airways", "AS": "Alaska Airlines",
    "LA": "LATAM Airlines", "AV": "Avianca", "CM": "Copa Airlines", "AM": "Aeromexico",

    # ===== ASIA PACIFIC =====
    "SQ": "Singapore Airlines", "CX": "Cathay Pacific", "TG": "Thai Airways",
    "MH": "Malaysia Airlines", "GA": "Garuda Indonesia", "PR": "Philippine Airlines",
    "NH": "All Nippon Airways", "JL": "Japan Airlines", "KE": "Korean Air",
    "OZ": "Asiana Airlines", "CA": "Air China", "MU": "China Eastern",
    "CZ": "China Southern", "QF": "Qantas", "NZ": "Air New Zealand", "KC": "Air Astana",
}

AIRCRAFT_TYPES = {
    "789": "Boeing 787-9", "788": "Boeing 787-8", "78X": "Boeing 787-10",
    "77W": "Boeing 777-300ER", "772": "Boeing 777-200", "773": "Boeing 777-300",
    "77L": "Boeing 777-200LR", "744": "Boeing 747-400", "748": "Boeing 747-8",
    "738": "Boeing 737-800", "73H": "Boeing 737-800", "737": "Boeing 737",
    "7M8": "Boeing 737 MAX 8", "7M9": "Boeing 737 MAX 9", "763": "Boeing 767-300",
    "332": "Airbus A330-200", "333": "Airbus A330-300", "339": "Airbus A330-900neo",
    "359": "Airbus A350-900", "351": "Airbus A350-1000", "388": "Airbus A380-800",
    "319": "Airbus A319", "320": "Airbus A320", "321": "Airbus A321",
    "32N": "Airbus A320neo", "32Q": "Airbus A321neo", "221": "Airbus A220-100",
    "223": "Airbus A220-300", "E90": "Embraer E190", "E95": "Embraer E195",
    "E75": "Embraer E175", "AT7": "ATR 72", "AT4": "ATR 42", "CR9": "CRJ-900",
    "CR7": "CRJ-700", "DH4": "De Havilland Dash 8-400", "DH8": "De Havilland Dash 8",
}

MEAL_CODES = {
    "B": "Breakfast",
    "L": "Lunch",
    "D": "Dinner",
    "S": "Snack or Refreshments",
    "M": "Meal (Non-Specific)",
    "F": "Food for Purchase",
    "H": "Hot Meal",
    "C": "Complimentary Alcoholic Beverages",
    "V": "Vegetarian Meal",
    "K": "Kosher Meal",
    "O": "Cold Meal",
    "P": "Alcoholic Beverages for Purchase",
    "R": "Refreshment",
    "W": "Continental Breakfast",
    "Y": "Duty-Free Sales Available",
    "N": "No Meal Service",
    "G": "Food and Beverages for Purchase",
}

FIRST_CLASS_CODES = {"F", "A"}
BUSINESS_CLASS_CODES = {"J", "C", "D", "I", "Z", "P"}
PREMIUM_ECONOMY_CODES = set()
ECONOMY_CLASS_CODES = {
    "Y", "B", "H", "K", "L", "M", "N", "O", "Q",
    "S", "U", "V", "X", "G", "W", "E", "T", "R",
}


def load_db_from_file(file_path: str, default_db: Dict) -> Dict:
    """Read one JSON table; fall back to default_db when absent or unreadable."""
    if not os.path.exists(file_path):
        return default_db
    try:
        with open(file_path, encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, ValueError) as e:
        logger.error("Error loading %s: %s", os.path.basename(file_path), e)
        return default_db
    if not isinstance(data, dict):
        logger.error("Error loading %s: expected a JSON object", os.path.basename(file_path))
        return default_db
    return data


class ReferenceTables:
    """Read-only lookup provider for airport, airline, aircraft, meal and cabin codes.

    Unknown codes return None; callers supply their own display fallback.
    """

    def __init__(
        self,
        airports: Dict[str, AirportRecord],
        airlines: Dict[str, str],
        aircraft: Dict[str, str],
        meals: Optional[Dict[str, str]] = None,
    ):
        self._airports = dict(airports)
        self._airlines = dict(airlines)
        self._aircraft = dict(aircraft)
        self._meals = dict(meals if meals is not None else MEAL_CODES)

    @classmethod
    def builtin(cls) -> "ReferenceTables":
        airports = {
            code: AirportRecord(code, city, country, name, tz)
            for code, (city, country, name, tz) in AIRPORTS.items()
        }
        return cls(airports, AIRLINE_CODES, AIRCRAFT_TYPES)

    @classmethod
    def load(cls, data_dir: Optional[str] = None) -> "ReferenceTables":
        """Built-in tables overlaid with the JSON files found in data_dir."""
        data_dir = data_dir or DATA_DIR
        base = cls.builtin()

        airlines = dict(base._airlines)
        airlines.update(load_db_from_file(os.path.join(data_dir, AIRLINES_FILE), {}))

        aircraft = dict(base._aircraft)
        aircraft.update(load_db_from_file(os.path.join(data_dir, AIRCRAFT_TYPES_FILE), {}))

        airports = dict(base._airports)
        extra = load_db_from_file(os.path.join(data_dir, AIRPORT_DATABASE_FILE), {})
        for code, info in extra.items():
            if not isinstance(info, dict):
                logger.warning("Skipping airport override %s: not an object", code)
                continue
            code = code.upper()
            current = airports.get(code)
            airports[code] = AirportRecord(
                code=code,
                city=info.get("city", current.city if current else "Unknown"),
                country=info.get("country", current.country if current else ""),
                name=info.get("name", current.name if current else f"Airport ({code})"),
                timezone=info.get("timezone", current.timezone if current else "UTC"),
            )

        logger.info(
            "Reference tables loaded: %d airports, %d airlines, %d aircraft types",
            len(airports), len(airlines), len(aircraft),
        )
        return cls(airports, airlines, aircraft)

    # ── Lookups ───────────────────────────────────────────────────────────────

    def lookup_airport(self, code: str) -> Optional[AirportRecord]:
        if not code:
            return None
        return self._airports.get(code.upper())

    def lookup_airline(self, code: str) -> Optional[str]:
        if not code:
            return None
        return self._airlines.get(code.upper())

    def lookup_aircraft(self, code: str) -> Optional[str]:
        if not code:
            return None
        return self._aircraft.get(code.upper())

    def airport_or_placeholder(self, code: str) -> AirportRecord:
        return self.lookup_airport(code) or AirportRecord.placeholder(code)

    def describe_meal(self, meal_code: str) -> Optional[str]:
        """'LD' -> 'Lunch & Dinner'. Unknown letters are dropped; a wholly unknown code comes back as-is."""
        if not meal_code:
            return None
        descriptions = [self._meals[c] for c in meal_code.upper() if c in self._meals]
        if not descriptions:
            return meal_code
        return " & ".join(descriptions)

    def travel_class_name(self, class_code: str) -> str:
        if not class_code:
            return "Unknown"
        code = class_code.upper()
        if code in FIRST_CLASS_CODES:
            return "First"
        if code in BUSINESS_CLASS_CODES:
            return "Business"
        if code in PREMIUM_ECONOMY_CODES:
            return "Premium Economy"
        if code in ECONOMY_CLASS_CODES:
            return "Economy"
        return f"Class {code}"


@lru_cache(maxsize=1)
def get_reference_tables() -> ReferenceTables:
    """Process-wide tables, loaded on first use."""
    return ReferenceTables.load()
