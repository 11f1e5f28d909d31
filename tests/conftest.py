from datetime import datetime

import pytest

from gds_parser import PNRParser
from mappings import ReferenceTables


@pytest.fixture
def tables():
    return ReferenceTables.builtin()


@pytest.fixture
def parser(tables):
    return PNRParser(tables)


@pytest.fixture
def now():
    return datetime(2026, 6, 1, 12, 0)
