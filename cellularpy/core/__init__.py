"""
Core infrastructure.

Provides the building blocks below the modem handles:
- Bus: RemoteBus capability (dbus-next and in-memory implementations)
- Dispatch: Observer table for handle notifications
- Registry: Live object tracking and await requests
- NetworkStats: Traffic counters from NetworkManager
"""

from .bus import DBusNextBus, MockBus, MockProxy, Proxy, RemoteBus
from .dispatch import SignalDispatcher
from .network_stats import NetworkStatsProvider
from .registry import AwaitRequest, RemoteObjectRegistry

__all__ = [
    "RemoteBus",
    "Proxy",
    "DBusNextBus",
    "MockBus",
    "MockProxy",
    "SignalDispatcher",
    "RemoteObjectRegistry",
    "AwaitRequest",
    "NetworkStatsProvider",
]
