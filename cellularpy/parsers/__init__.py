"""
Parsers for ModemManager responses.

Provides type-safe decoding of raw bus dictionaries into structured data.
"""

from .base import RecordParser, parse_hex, split_plmn
from .bearer import IPConfigParser
from .radio import (
    SignalParser,
    LocationParser,
    LocationStringParser,
    CellInfoParser
)

__all__ = [
    "RecordParser",
    "parse_hex",
    "split_plmn",
    "IPConfigParser",
    "SignalParser",
    "LocationParser",
    "LocationStringParser",
    "CellInfoParser",
]
