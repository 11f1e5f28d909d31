import logging
import os

from flask import Flask, jsonify, request

from config import MAX_PNR_LENGTH, configure_logging
from gds_parser import PNRParser
from models import ParseOptions, ParseResult

configure_logging()
logger = logging.getLogger(__name__)

app = Flask(__name__)
app.json.sort_keys = False

parser = PNRParser()


# ==================== HELPER FUNCTIONS ====================

def failure(message, status):
    return jsonify({"success": False, "error": message, "result": {"flights": []}}), status


def suspicious_reason(result: ParseResult):
    """Why a conversion looks wrong enough to log, or None."""
    if not result.flights:
        return "No flights found"
    if any(f.airline_name.startswith("Unknown Airline") for f in result.flights):
        return "Unrecognized airline code"
    return None


# ==================== ROUTES ====================

@app.route("/api/health", methods=["GET"])
def health():
    return jsonify({"status": "ok"})


@app.route("/api/convert", methods=["POST"])
def convert():
    """Convert a PNR dump into structured flights and passengers."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return failure("Request body must be a JSON object", 400)

    pnr_text = data.get("pnrText") or ""
    if not isinstance(pnr_text, str):
        return failure("pnrText must be a string", 400)
    if len(pnr_text) > MAX_PNR_LENGTH:
        return failure(f"pnrText exceeds {MAX_PNR_LENGTH} characters", 413)

    options = data.get("options")
    options = ParseOptions.from_dict(options if isinstance(options, dict) else None)

    try:
        result = parser.parse(pnr_text, options)
    except Exception as e:
        logger.exception("Error during PNR conversion")
        return failure(str(e), 500)

    attempted = bool(pnr_text.strip())
    reason = suspicious_reason(result) if attempted else None
    if reason:
        logger.warning("PNR conversion issue: %s; input starts %r", reason, pnr_text[:200])

    return jsonify({
        "success": True,
        "result": result.to_dict(),
        "pnrProcessingAttempted": attempted,
    })


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=int(os.getenv("PORT", "5000")), debug=os.getenv("FLASK_DEBUG") == "1")
