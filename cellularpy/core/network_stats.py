"""
Traffic counters of network interfaces, read from NetworkManager.
"""

import logging
import threading
from typing import Any, Callable

from .bus import Proxy, RemoteBus
from .dispatch import SignalDispatcher
from ..constants import (
    DBUS_IF_PROPERTIES,
    NM_BUS_NAME,
    NM_IF_DEVICE_STATISTICS,
    NM_IF_NETWORKMANAGER,
    NM_OBJ_NETWORKMANAGER,
)
from ..exceptions import BearerError, BusError
from ..types import TrafficStats

logger = logging.getLogger(__name__)


class NetworkStatsProvider:
    """
    Reads RX/TX byte counters of a Linux network interface.

    NetworkManager only updates the counters while a refresh rate is set;
    ``observe()`` sets it and forwards every update.
    """

    def __init__(self, bus: RemoteBus) -> None:
        self._bus = bus
        self._dispatcher = SignalDispatcher(owner=NM_OBJ_NETWORKMANAGER)
        self._subscribed: set[str] = set()
        self._lock = threading.Lock()

    def device_for_interface(self, interface_name: str) -> str:
        """
        Resolve a network interface name to a NetworkManager device path.

        Raises:
            BearerError: If NetworkManager does not know the interface
        """
        try:
            nm = self._bus.create_proxy(NM_BUS_NAME, NM_OBJ_NETWORKMANAGER)
            path = nm.call_method(NM_IF_NETWORKMANAGER, "GetDeviceByIpIface", interface_name)
        except BusError as e:
            raise BearerError(
                f"No NetworkManager device for interface {interface_name}",
                error_name=e.error_name
            ) from e

        logger.debug(f"Interface {interface_name} is device {path}")
        return path

    def _device(self, interface_name: str) -> Proxy:
        return self._bus.create_proxy(NM_BUS_NAME, self.device_for_interface(interface_name))

    def read_counters(self, interface_name: str) -> TrafficStats:
        """
        Read the current counters of an interface.

        Raises:
            BearerError: If the counters cannot be read
        """
        device = self._device(interface_name)
        try:
            stats = TrafficStats(
                rx_bytes=device.get_property(NM_IF_DEVICE_STATISTICS, "RxBytes"),
                tx_bytes=device.get_property(NM_IF_DEVICE_STATISTICS, "TxBytes")
            )
        except BusError as e:
            raise BearerError(
                f"Cannot read traffic counters of {interface_name}",
                object_path=device.object_path,
                error_name=e.error_name
            ) from e

        logger.debug(f"Traffic of {interface_name}: {stats}")
        return stats

    def observe(
        self,
        interface_name: str,
        observer: Callable[[TrafficStats], None],
        interval_ms: int = 1000
    ) -> None:
        """
        Call observer with updated counters every interval_ms.

        A later call for the same interface replaces the observer.

        Args:
            interface_name: Linux interface name (e.g. "wwan0")
            observer: Called with TrafficStats on every update
            interval_ms: NetworkManager refresh rate in milliseconds

        Raises:
            BearerError: If the interface is unknown
        """
        device = self._device(interface_name)
        path = device.object_path

        try:
            device.set_property(NM_IF_DEVICE_STATISTICS, "RefreshRateMs", interval_ms)
        except BusError as e:
            raise BearerError(
                f"Cannot set refresh rate of {interface_name}",
                object_path=path,
                error_name=e.error_name
            ) from e

        self._dispatcher.register(path, observer)

        with self._lock:
            first = path not in self._subscribed
            self._subscribed.add(path)

        if first:
            counters = {}

            def on_properties_changed(interface: str, changed: dict[str, Any], invalidated: list[str]) -> None:
                if interface != NM_IF_DEVICE_STATISTICS:
                    return
                if "RxBytes" not in changed and "TxBytes" not in changed:
                    return
                counters.update({k: changed[k] for k in ("RxBytes", "TxBytes") if k in changed})
                for key in ("RxBytes", "TxBytes"):
                    if key not in counters:
                        counters[key] = device.get_property(NM_IF_DEVICE_STATISTICS, key)
                self._dispatcher.dispatch(path, TrafficStats(counters["RxBytes"], counters["TxBytes"]))

            device.subscribe(DBUS_IF_PROPERTIES, "PropertiesChanged", on_properties_changed)

        logger.info(f"Observing traffic of {interface_name} every {interval_ms} ms")
