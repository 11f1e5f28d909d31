# config.py
import logging
import os

from dotenv import load_dotenv

load_dotenv()

# ==================== CONFIG ====================
_base_dir = os.path.abspath(os.path.dirname(__file__))

DATA_DIR = os.getenv("PNR_DATA_DIR", os.path.join(_base_dir, "data"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

TIME_FORMATS = ("24h", "12h")
DEFAULT_SEGMENT_TIME_FORMAT = os.getenv("DEFAULT_SEGMENT_TIME_FORMAT", "12h")
DEFAULT_TRANSIT_TIME_FORMAT = os.getenv("DEFAULT_TRANSIT_TIME_FORMAT", "12h")

MAX_PNR_LENGTH = int(os.getenv("MAX_PNR_LENGTH", "100000"))

_configured = False


def configure_logging() -> None:
    """Set up root logging once, at LOG_LEVEL."""
    global _configured
    if _configured:
        return
    level = getattr(logging, LOG_LEVEL, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    _configured = True
