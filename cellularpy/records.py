"""
Technology specific records for signal quality, cell location and cell info.

Every record is a PropertyBag tagged with the Technology it describes. The
tag is a class attribute, so it is fixed when the record is created. Fields
the hardware did not report are absent and their accessors raise
KeyNotFoundError; check ``has_key()`` or use ``get_or_default()`` first.

Records form closed sets, dispatch on ``record.tech`` (or ``isinstance``)
before calling technology specific accessors:

.. code-block:: python

    signal = modem.signal()
    if signal.tech is Technology.LTE:
        print(signal.rssi)
"""

from typing import ClassVar, Optional, Union

from .property_bag import PropertyBag
from .types import Technology


class TechRecord(PropertyBag):
    """Base class of all technology tagged records."""

    TECHNOLOGY: ClassVar[Technology] = Technology.UNKNOWN

    @property
    def tech(self) -> Technology:
        """The technology this record describes."""
        return self.TECHNOLOGY


# ---- Signal quality ----

class SignalLTE(TechRecord):
    """LTE signal quality."""

    TECHNOLOGY = Technology.LTE

    @property
    def rsrp(self) -> float:
        """Reference Signal Received Power (RSRP) in dBm."""
        return self.get("rsrp", float)

    @property
    def rsrq(self) -> float:
        """Reference Signal Received Quality (RSRQ) in dB."""
        return self.get("rsrq", float)

    @property
    def rssi(self) -> float:
        """Received Signal Strength Indication (RSSI) in dBm."""
        return self.get("rssi", float)

    @property
    def sinr(self) -> float:
        """Signal to Interference plus Noise Ratio (SINR) in dB."""
        return self.get("sinr", float)


class SignalNR5G(TechRecord):
    """5G NR signal quality."""

    TECHNOLOGY = Technology.NR5G

    @property
    def rsrp(self) -> float:
        """Reference Signal Received Power (RSRP) in dBm."""
        return self.get("rsrp", float)

    @property
    def rsrq(self) -> float:
        """Reference Signal Received Quality (RSRQ) in dB."""
        return self.get("rsrq", float)

    @property
    def sinr(self) -> float:
        """Signal to Interference plus Noise Ratio (SINR) in dB."""
        return self.get("sinr", float)


Signal = Union[SignalLTE, SignalNR5G]


# ---- Location ----

class LocationBase(TechRecord):
    """Identifiers shared by all cell locations."""

    @property
    def mcc(self) -> str:
        """Mobile Country Code (3 digits), e.g. "262" for Germany."""
        return self.get("mcc", str)

    @property
    def mnc(self) -> str:
        """Mobile Network Code (2 or 3 digits), e.g. "01"."""
        return self.get("mnc", str)

    @property
    def ci(self) -> int:
        """Cell Identity."""
        return self.get("ci", int)


class _TrackingAreaLocation(LocationBase):

    @property
    def tac(self) -> int:
        """Tracking Area Code (24 bits)."""
        return self.get("tac", int)


class LocationLTE(_TrackingAreaLocation):
    """Location of an LTE cell."""

    TECHNOLOGY = Technology.LTE


class LocationNR5G(_TrackingAreaLocation):
    """Location of a 5G NR cell."""

    TECHNOLOGY = Technology.NR5G


Location = Union[LocationLTE, LocationNR5G]


# ---- Cell info ----

class CellInfoBase(TechRecord):
    """
    Serving or neighbour cell as reported by GetCellInfo().

    Often only some values are set; neighbour cells usually lack the cell
    identity.
    """

    @property
    def serving(self) -> bool:
        """Whether this is the serving cell (False for neighbour cells)."""
        return self.get_or_default("serving", False)

    @property
    def ci(self) -> int:
        """Cell Identity, not available for neighbour cells."""
        return self.get("ci", int)

    @property
    def pci(self) -> int:
        """Physical cell id."""
        return self.get("pci", int)


class CellInfoLTE(CellInfoBase):
    """LTE cell information."""

    TECHNOLOGY = Technology.LTE

    @property
    def earfcn(self) -> int:
        """E-UTRA Absolute Radio Frequency Channel Number."""
        return self.get("earfcn", int)

    @property
    def signal(self) -> SignalLTE:
        """Signal quality of this cell."""
        return self.get("signal", SignalLTE)

    @property
    def location(self) -> Optional[LocationLTE]:
        """Location identifiers of this cell, if any."""
        return self.get_or_default("location", None, LocationLTE)


class CellInfoNR5G(CellInfoBase):
    """5G NR cell information."""

    TECHNOLOGY = Technology.NR5G

    @property
    def nrarfcn(self) -> int:
        """NR Absolute Radio Frequency Channel Number."""
        return self.get("nrarfcn", int)

    @property
    def signal(self) -> SignalNR5G:
        """Signal quality of this cell."""
        return self.get("signal", SignalNR5G)

    @property
    def location(self) -> Optional[LocationNR5G]:
        """Location identifiers of this cell, if any."""
        return self.get_or_default("location", None, LocationNR5G)


CellInfo = Union[CellInfoLTE, CellInfoNR5G]
