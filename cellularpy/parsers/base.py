"""
Base parser classes and utilities.

Provides reusable decoding functionality for ModemManager responses.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Generic, Mapping, TypeVar

from ..types import Technology

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Length of the Mobile Country Code at the start of a PLMN id
MCC_LENGTH = 3


class RecordParser(ABC, Generic[T]):
    """
    Abstract base class for technology dependent record parsers.

    Parsers convert raw (already unwrapped) D-Bus dictionaries into typed
    records.
    """

    @abstractmethod
    def parse(self, raw: Mapping[str, Any], tech: Technology) -> T:
        """
        Parse a raw dictionary.

        Args:
            raw: Dictionary as returned by the bus
            tech: Technology the data belongs to

        Returns:
            Parsed record

        Raises:
            UnsupportedTechnologyError: If tech cannot be decoded
        """
        pass


def parse_hex(value: str) -> int:
    """
    Parse a hex encoded unsigned integer (e.g. a cell identity).

    Args:
        value: Hex string without prefix, e.g. "1A2B"

    Returns:
        The integer value

    Raises:
        ValueError: If value is not an unsigned hex number
    """
    number = int(value, 16)
    if number < 0:
        raise ValueError(f"Negative value for unsigned hex field: {value!r}")
    return number


def split_plmn(plmn: str) -> tuple[str, str]:
    """
    Split a PLMN id into Mobile Country Code and Mobile Network Code.

    The MCC always has three characters, the MNC is the rest. Digits are
    not validated.

    Example:

    .. code-block:: python

        split_plmn("26201")  # ("262", "01")
    """
    return plmn[:MCC_LENGTH], plmn[MCC_LENGTH:]
