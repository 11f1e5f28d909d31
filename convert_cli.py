#!/usr/bin/env python3
"""
PNR Conversion Tool
Convert a GDS reservation dump into JSON, or print a readable summary
"""

import json
import sys

from config import configure_logging
from gds_parser import parse_pnr
from models import ParseOptions

USAGE = """Usage: python convert_cli.py [FILE|-] [--24h] [--transit-24h] [--summary]

Reads the PNR dump from FILE, or from stdin when FILE is omitted or '-'.

Examples:
  python convert_cli.py booking.txt
  python convert_cli.py booking.txt --24h --summary
  pbpaste | python convert_cli.py --transit-24h"""


def print_separator(char="=", length=70):
    """Print a separator line"""
    print(char * length)


def print_header(text):
    """Print a formatted header"""
    print_separator()
    print(f"  {text}")
    print_separator()


def display_summary(payload):
    """Human-readable view of a conversion result"""
    print_header(f"ITINERARY: {len(payload['flights'])} segment(s)")
    for flight in payload["flights"]:
        dep, arr = flight["departure"], flight["arrival"]
        if flight["transitTime"]:
            print(f"   ... transit {flight['transitTime']} in {dep['city']}, "
                  f"departs {flight['formattedNextDepartureTime']}")
        print(f"{flight['segment']:>2}. {flight['airline']['code']} {flight['flightNumber']:<6} "
              f"{flight['direction']:<8} {flight['date']}")
        print(f"    {dep['airport']} {dep['time']:>8}  ->  {arr['airport']} {arr['time']:>8}"
              f"{' (' + arr['dateString'] + ')' if arr['dateString'] else ''}"
              f"   {flight['duration']}  {flight['travelClass']['name']}")
        for label, key in (("Aircraft", "aircraft"), ("Meal", "meal"), ("Operated by", "operatedBy")):
            if flight[key]:
                print(f"    {label}: {flight[key]}")
        for note in flight["notes"]:
            print(f"    Note: {note}")

    if payload["passengers"]:
        print_separator("-")
        print("Passengers:")
        for i, name in enumerate(payload["passengers"], 1):
            print(f"  {i}. {name}")


def read_input(path):
    if path is None or path == "-":
        return sys.stdin.read()
    with open(path, encoding="utf-8") as fh:
        return fh.read()


def main(argv=None):
    args = list(sys.argv[1:] if argv is None else argv)

    if "-h" in args or "--help" in args:
        print(USAGE)
        return 0

    flags = {a for a in args if a.startswith("--")}
    paths = [a for a in args if not a.startswith("--")]
    unknown = flags - {"--24h", "--transit-24h", "--summary"}
    if unknown or len(paths) > 1:
        print(USAGE, file=sys.stderr)
        return 2

    try:
        text = read_input(paths[0] if paths else None)
    except OSError as e:
        print(f"❌ Cannot read input: {e}", file=sys.stderr)
        return 2

    options = ParseOptions(
        segment_time_format="24h" if "--24h" in flags else "12h",
        transit_time_format="24h" if "--transit-24h" in flags else "12h",
    )
    payload = parse_pnr(text, options).to_dict()

    if "--summary" in flags:
        display_summary(payload)
    else:
        print(json.dumps(payload, indent=2, ensure_ascii=False))

    return 0 if payload["flights"] else 1


if __name__ == "__main__":
    configure_logging()
    sys.exit(main())
