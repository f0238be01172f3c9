"""
Radio specific parsers.

Decodes signal quality, cell location and cell info dictionaries into the
technology tagged records of ``cellularpy.records``. Fields the modem did
not report are left out of the records.
"""

import logging
import re
from typing import Any, Callable, Mapping, Optional, Sequence

from .base import RecordParser, parse_hex, split_plmn
from ..exceptions import UnsupportedTechnologyError
from ..records import (
    CellInfo,
    CellInfoLTE,
    CellInfoNR5G,
    Location,
    LocationLTE,
    LocationNR5G,
    Signal,
    SignalLTE,
    SignalNR5G,
)
from ..types import CellType, Technology

logger = logging.getLogger(__name__)


class SignalParser(RecordParser[Signal]):
    """Parser for the Lte / Nr5g properties of the Modem.Signal interface."""

    def parse(self, raw: Mapping[str, Any], tech: Technology) -> Signal:
        """
        Parse a signal quality dictionary.

        Expected format (a{sv}, every key optional)::

            {"rsrp": -95.0, "rsrq": -11.0, "rssi": -65.0, "snr": 8.4}

        "snr" is exposed as ``sinr``; NR records carry no RSSI.
        """
        if tech is Technology.LTE:
            signal = SignalLTE()
            signal.maybe_insert_from(raw, "rsrp", expected=float)
            signal.maybe_insert_from(raw, "rsrq", expected=float)
            signal.maybe_insert_from(raw, "rssi", expected=float)
            signal.maybe_insert_from(raw, "snr", rename_to="sinr", expected=float)
            return signal

        if tech is Technology.NR5G:
            signal = SignalNR5G()
            signal.maybe_insert_from(raw, "rsrp", expected=float)
            signal.maybe_insert_from(raw, "rsrq", expected=float)
            signal.maybe_insert_from(raw, "snr", rename_to="sinr", expected=float)
            return signal

        raise UnsupportedTechnologyError(
            f"Signal quality for {tech.name} is not supported", technology=tech
        )


class LocationParser(RecordParser[Location]):
    """Parser for location identifiers embedded in cell info dictionaries."""

    def parse(self, raw: Mapping[str, Any], tech: Technology) -> Location:
        """
        Parse location identifiers.

        Expected format (every key optional)::

            {"operator-id": "26201", "ci": "1A2B", "tac": "3C4D"}

        Raises:
            UnsupportedTechnologyError: For technologies other than LTE / NR
            ValueError: If a hex field is malformed
        """
        if tech is Technology.LTE:
            location = LocationLTE()
        elif tech is Technology.NR5G:
            location = LocationNR5G()
        else:
            raise UnsupportedTechnologyError(
                f"Location for {tech.name} is not supported", technology=tech
            )

        if "operator-id" in raw:
            mcc, mnc = split_plmn(raw["operator-id"])
            location.insert("mcc", mcc)
            location.insert("mnc", mnc)
        location.maybe_insert_from(raw, "ci", expected=str, convert=parse_hex)
        location.maybe_insert_from(raw, "tac", expected=str, convert=parse_hex)
        return location


class LocationStringParser:
    """
    Parser for the 3GPP LAC/CI location source string.

    Unlike the other parsers this one is best-effort: a malformed string
    yields None instead of an exception, so a single bad update does not
    break a stream of location notifications.
    """

    # "MCC,MNC,LAC,CI,TAC", LAC/CI/TAC in hex, LAC is empty on some LTE modems
    _PATTERN = re.compile(
        r"^(?P<mcc>\d{3}),(?P<mnc>\d{2,3}),(?P<lac>[0-9A-Fa-f]*),"
        r"(?P<ci>[0-9A-Fa-f]+),(?P<tac>[0-9A-Fa-f]+)$"
    )

    def parse(self, location_string: str, tech: Technology) -> Optional[Location]:
        """
        Parse a 3GPP location string.

        Expected format: "262,02,FFFE,1A2B,3C4D"

        Args:
            location_string: Value of the 3GPP_LAC_CI location source
            tech: Current technology of the modem

        Returns:
            LocationLTE / LocationNR5G, or None if the string does not match
            or the technology is not supported
        """
        if tech is Technology.LTE:
            location = LocationLTE()
        elif tech is Technology.NR5G:
            location = LocationNR5G()
        else:
            logger.debug(f"Location for {tech.name} is not supported")
            return None

        match = self._PATTERN.match(location_string.strip()) if isinstance(location_string, str) else None
        if match is None:
            logger.warning(f"Unexpected 3GPP location string: {location_string!r}")
            return None

        location.insert("mcc", match.group("mcc"))
        location.insert("mnc", match.group("mnc"))
        location.insert("ci", int(match.group("ci"), 16))
        location.insert("tac", int(match.group("tac"), 16))
        return location


class CellInfoParser:
    """Parser for the result of Modem.GetCellInfo()."""

    def __init__(self) -> None:
        self._signal_parser = SignalParser()
        self._location_parser = LocationParser()
        self._by_cell_type: dict[CellType, Callable[[Mapping[str, Any]], CellInfo]] = {
            CellType.LTE: self._parse_lte,
            CellType.NR5G: self._parse_nr5g,
        }

    def parse(self, raw_cells: Sequence[Mapping[str, Any]]) -> list[CellInfo]:
        """
        Parse a list of cell dictionaries.

        Only LTE and 5G NR cells are kept, others are dropped. The relative
        order of the kept cells is preserved.

        Expected element format (every key but "cell-type" optional)::

            {"cell-type": 5, "serving": True, "ci": "1A2B",
             "physical-ci": "1F", "earfcn": 6300, "operator-id": "26201",
             "tac": "3C4D", "rsrp": -95.0, "rsrq": -11.0, "snr": 8.4}
        """
        cells: list[CellInfo] = []

        for raw in raw_cells:
            raw_type = raw.get("cell-type", CellType.UNKNOWN)
            try:
                cell_type = CellType(raw_type)
            except ValueError:
                cell_type = CellType.UNKNOWN

            parse = self._by_cell_type.get(cell_type)
            if parse is None:
                logger.debug(f"Skipping cell of type {raw_type}")
                continue

            cells.append(parse(raw))

        logger.debug(f"Parsed {len(cells)} of {len(raw_cells)} cells")
        return cells

    def _fill_common(self, cell: CellInfo, raw: Mapping[str, Any]) -> None:
        cell.maybe_insert_from(raw, "serving", expected=bool)
        cell.maybe_insert_from(raw, "ci", expected=str, convert=parse_hex)
        cell.maybe_insert_from(raw, "physical-ci", rename_to="pci", expected=str, convert=parse_hex)

    def _parse_lte(self, raw: Mapping[str, Any]) -> CellInfoLTE:
        cell = CellInfoLTE()
        self._fill_common(cell, raw)
        cell.maybe_insert_from(raw, "earfcn", expected=int)
        cell.insert("signal", self._signal_parser.parse(raw, Technology.LTE))
        cell.insert("location", self._location_parser.parse(raw, Technology.LTE))
        return cell

    def _parse_nr5g(self, raw: Mapping[str, Any]) -> CellInfoNR5G:
        cell = CellInfoNR5G()
        self._fill_common(cell, raw)
        cell.maybe_insert_from(raw, "nrarfcn", expected=int)
        cell.insert("signal", self._signal_parser.parse(raw, Technology.NR5G))
        cell.insert("location", self._location_parser.parse(raw, Technology.NR5G))
        return cell
