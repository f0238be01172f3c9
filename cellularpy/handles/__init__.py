"""
Typed handles of remote ModemManager objects.

Provides:
- Modem: State, power, radio information, SIM and connections
- SIM: Unlocking and SIM identity
- Connection: Bearer state, IP configuration and traffic
"""

from .base import RemoteHandle
from .connection import Connection
from .modem import Modem
from .sim import SIM

__all__ = [
    "RemoteHandle",
    "Modem",
    "SIM",
    "Connection",
]
