"""
Data connection (bearer) handle.
"""

import logging
from typing import Callable, Optional

from .base import RemoteHandle
from ..constants import MM_IF_BEARER
from ..core.bus import RemoteBus
from ..core.network_stats import NetworkStatsProvider
from ..exceptions import BearerError
from ..parsers.bearer import IPConfigParser
from ..types import IPConfig, IPType, TrafficStats

logger = logging.getLogger(__name__)


class Connection(RemoteHandle):
    """
    Handle of a data connection, obtained through ``Modem.connect()`` or
    ``Modem.connections()``.

    Example:

    .. code-block:: python

        conn = modem.connect("internet")
        print(conn.linux_interface, conn.ipv4_config())
        print(conn.traffic_stats())
    """

    INTERFACE = MM_IF_BEARER

    def __init__(
        self,
        bus: RemoteBus,
        object_path: str,
        stats_provider: Optional[NetworkStatsProvider] = None
    ) -> None:
        super().__init__(bus, object_path)
        self._stats = stats_provider if stats_provider is not None else NetworkStatsProvider(bus)
        self._ip_config_parser = IPConfigParser()

    @property
    def active(self) -> bool:
        """Whether the connection is established."""
        return bool(self._get("Connected"))

    @property
    def apn(self) -> str:
        """Access point name the connection was created with."""
        return self._get("Properties").get("apn", "")

    @property
    def ip_type(self) -> IPType:
        """Requested IP family of the connection."""
        value = self._get("Properties").get("ip-type", IPType.UNKNOWN)
        try:
            return IPType(value)
        except ValueError:
            return IPType.UNKNOWN

    @property
    def linux_interface(self) -> str:
        """Network interface of the connection (e.g. "wwan0"), empty if not connected."""
        return self._get("Interface")

    def ipv4_config(self) -> Optional[IPConfig]:
        """
        Get the IPv4 configuration.

        Returns:
            IPConfig, or None if the connection has no IPv4 address
        """
        return self._ip_config_parser.parse(self._get("Ip4Config"), IPType.IPV4)

    def ipv6_config(self) -> Optional[IPConfig]:
        """
        Get the IPv6 configuration.

        Returns:
            IPConfig, or None if the connection has no IPv6 address
        """
        return self._ip_config_parser.parse(self._get("Ip6Config"), IPType.IPV6)

    def connect(self) -> None:
        """Establish the connection."""
        logger.info(f"Connecting {self.object_path}")
        self._call("Connect")

    def disconnect(self) -> None:
        """Tear down the connection."""
        logger.info(f"Disconnecting {self.object_path}")
        self._call("Disconnect")

    def _interface_name(self) -> str:
        name = self.linux_interface
        if not name:
            raise BearerError("Connection has no network interface", object_path=self.object_path)
        return name

    def traffic_stats(self) -> TrafficStats:
        """
        Read the traffic counters of the connection's network interface.

        Raises:
            BearerError: If the connection has no interface or NetworkManager
                         does not know it
        """
        return self._stats.read_counters(self._interface_name())

    def observe_traffic_stats(
        self,
        observer: Callable[[TrafficStats], None],
        interval_ms: int = 1000
    ) -> None:
        """
        Call observer with the traffic counters every interval_ms.

        Registering again replaces the previous observer.

        Raises:
            BearerError: If the connection has no interface or NetworkManager
                         does not know it
        """
        self._stats.observe(self._interface_name(), observer, interval_ms)
