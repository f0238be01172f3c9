"""
Data types and structures for cellularpy.

Enum values mirror the ModemManager D-Bus API (ModemManager-enums.h).
"""

from dataclasses import dataclass
from enum import IntEnum, IntFlag
from typing import Optional


class Technology(IntFlag):
    """
    Radio technology generation.

    One bit per generation so values can be combined later (e.g. LTE + NR
    dual connectivity); decoding currently works on single values only.
    """
    UNKNOWN = 0
    GSM = 1 << 0    # 2G (GSM, GPRS, EDGE)
    UMTS = 1 << 1   # 3G (UMTS, HSPA)
    LTE = 1 << 2    # 4G (LTE, LTE-A)
    NR5G = 1 << 3   # 5G (NR)


class AccessTechnology(IntFlag):
    """MMModemAccessTechnology bitmask as reported by the modem."""
    UNKNOWN = 0
    POTS = 1 << 0
    GSM = 1 << 1
    GSM_COMPACT = 1 << 2
    GPRS = 1 << 3
    EDGE = 1 << 4
    UMTS = 1 << 5
    HSDPA = 1 << 6
    HSUPA = 1 << 7
    HSPA = 1 << 8
    HSPA_PLUS = 1 << 9
    CDMA_1XRTT = 1 << 10
    EVDO0 = 1 << 11
    EVDOA = 1 << 12
    EVDOB = 1 << 13
    LTE = 1 << 14
    NR5G = 1 << 15
    LTE_CAT_M = 1 << 16
    LTE_NB_IOT = 1 << 17

    def to_technology(self) -> Technology:
        """
        Map the reported access technology to a Technology generation.

        Only exact single values are mapped; combinations (e.g. 5G NSA
        reporting LTE | NR5G) map to Technology.UNKNOWN.
        """
        return _ACCESS_TECHNOLOGY_MAP.get(int(self), Technology.UNKNOWN)


_ACCESS_TECHNOLOGY_MAP = {
    AccessTechnology.GSM: Technology.GSM,
    AccessTechnology.GSM_COMPACT: Technology.GSM,
    AccessTechnology.GPRS: Technology.GSM,
    AccessTechnology.EDGE: Technology.GSM,
    AccessTechnology.UMTS: Technology.UMTS,
    AccessTechnology.HSDPA: Technology.UMTS,
    AccessTechnology.HSUPA: Technology.UMTS,
    AccessTechnology.HSPA: Technology.UMTS,
    AccessTechnology.HSPA_PLUS: Technology.UMTS,
    AccessTechnology.LTE: Technology.LTE,
    AccessTechnology.NR5G: Technology.NR5G,
}


class IPType(IntEnum):
    """IP family of a connection (MMBearerIpFamily)."""
    UNKNOWN = 0
    IPV4 = 1 << 0
    IPV6 = 1 << 1
    IPV4V6 = 1 << 2


class ModemState(IntEnum):
    """
    General state of a modem (MMModemState).

    Values are ordered by capability, so comparisons such as
    ``state >= ModemState.REGISTERED`` are meaningful.
    """
    FAILED = -1
    UNKNOWN = 0
    INITIALIZING = 1
    LOCKED = 2
    DISABLED = 3
    DISABLING = 4
    ENABLING = 5
    ENABLED = 6
    SEARCHING = 7
    REGISTERED = 8
    DISCONNECTING = 9
    CONNECTING = 10
    CONNECTED = 11


class PowerState(IntEnum):
    """Power state of a modem (MMModemPowerState)."""
    UNKNOWN = 0
    OFF = 1
    LOW = 2
    ON = 3


class LockState(IntEnum):
    """Reason why a modem is in ModemState.LOCKED (MMModemLock)."""
    UNKNOWN = 0
    UNLOCKED = 1
    SIM_PIN = 2
    SIM_PIN2 = 3
    SIM_PUK = 4
    SIM_PUK2 = 5

    @classmethod
    def _missing_(cls, value):
        # network/corporate personalization locks are not modelled
        return cls.UNKNOWN


class CellType(IntEnum):
    """Cell type in GetCellInfo() results (MMCellType)."""
    UNKNOWN = 0
    CDMA = 1
    GSM = 2
    UMTS = 3
    TDSCDMA = 4
    LTE = 5
    NR5G = 6


class LocationSource(IntFlag):
    """Location sources (MMModemLocationSource), only 3GPP is used."""
    NONE = 0
    GPP_LAC_CI = 1 << 0


@dataclass
class IPConfig:
    """IP configuration of an active connection."""
    ip_type: IPType                 # IPType.IPV4 or IPType.IPV6
    address: str                    # IP address
    prefix: int                     # Network prefix length (CIDR)
    gateway: Optional[str] = None   # Gateway address
    dns1: Optional[str] = None      # Primary DNS server
    dns2: Optional[str] = None      # Secondary DNS server

    @property
    def cidr(self) -> str:
        """Address in CIDR notation, e.g. "10.0.0.2/30"."""
        return f"{self.address}/{self.prefix}"


@dataclass
class TrafficStats:
    """Traffic counters of a network interface."""
    rx_bytes: int   # Received bytes
    tx_bytes: int   # Transmitted bytes
