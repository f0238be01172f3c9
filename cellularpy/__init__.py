"""
cellularpy - Python library for cellular modems managed by ModemManager.
"""

from .version import __version__
from .manager import ModemManager
from .constants import ANY_IMEI
from .core import MockBus, DBusNextBus
from .handles import Modem, SIM, Connection

from .property_bag import PropertyBag, ValueKind
from .records import (
    Signal,
    SignalLTE,
    SignalNR5G,
    Location,
    LocationLTE,
    LocationNR5G,
    CellInfo,
    CellInfoLTE,
    CellInfoNR5G,
)

from .types import (
    Technology,
    AccessTechnology,
    IPType,
    ModemState,
    PowerState,
    LockState,
    CellType,
    IPConfig,
    TrafficStats,
)

from .exceptions import (
    CellularError,
    ConnectionFailedError,
    BusError,
    HandleInvalidatedError,
    PreconditionNotMetError,
    UnsupportedTechnologyError,
    PropertyBagError,
    KeyNotFoundError,
    TypeMismatchError,
    AwaitCancelledError,
    SIMError,
    IncorrectPinError,
    IncorrectPukError,
    InvalidCredentialFormatError,
    BearerError,
)

__all__ = [
    "__version__",
    "ModemManager",
    "ANY_IMEI",
    "MockBus",
    "DBusNextBus",
    "Modem",
    "SIM",
    "Connection",
    "PropertyBag",
    "ValueKind",
    "Signal",
    "SignalLTE",
    "SignalNR5G",
    "Location",
    "LocationLTE",
    "LocationNR5G",
    "CellInfo",
    "CellInfoLTE",
    "CellInfoNR5G",
    "Technology",
    "AccessTechnology",
    "IPType",
    "ModemState",
    "PowerState",
    "LockState",
    "CellType",
    "IPConfig",
    "TrafficStats",
    "CellularError",
    "ConnectionFailedError",
    "BusError",
    "HandleInvalidatedError",
    "PreconditionNotMetError",
    "UnsupportedTechnologyError",
    "PropertyBagError",
    "KeyNotFoundError",
    "TypeMismatchError",
    "AwaitCancelledError",
    "SIMError",
    "IncorrectPinError",
    "IncorrectPukError",
    "InvalidCredentialFormatError",
    "BearerError",
]
