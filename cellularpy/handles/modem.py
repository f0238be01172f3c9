"""
Modem handle.

Exposes modem state, power control, radio information and the creation of
SIM and connection handles.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from .base import RemoteHandle
from .connection import Connection
from .sim import SIM
from ..constants import (
    DBUS_IF_PROPERTIES,
    MM_IF_MODEM,
    MM_IF_MODEM_3GPP,
    MM_IF_MODEM_LOCATION,
    MM_IF_MODEM_SIGNAL,
    MM_IF_MODEM_TIME,
    NULL_OBJECT_PATH,
)
from ..core.bus import Proxy, RemoteBus
from ..core.dispatch import SignalDispatcher
from ..core.network_stats import NetworkStatsProvider
from ..exceptions import PreconditionNotMetError, UnsupportedTechnologyError
from ..parsers.radio import CellInfoParser, LocationStringParser, SignalParser
from ..records import CellInfo, Location, Signal
from ..types import (
    AccessTechnology,
    IPType,
    LocationSource,
    LockState,
    ModemState,
    PowerState,
    Technology,
)

logger = logging.getLogger(__name__)

# Observer signatures
ModemStateObserver = Callable[[ModemState, ModemState], None]
SignalObserver = Callable[[Signal], None]
LocationObserver = Callable[[Optional[Location]], None]

# Modem.Signal property holding the values of a technology
_SIGNAL_PROPERTY = {
    Technology.LTE: "Lte",
    Technology.NR5G: "Nr5g",
}

# Format of Modem.Time.GetNetworkTime(), the UTC offset is ignored
_NETWORK_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S"


class Modem(RemoteHandle):
    """
    Handle of a modem.

    Obtain modems from ``ModemManager``; a handle stays valid until the
    modem vanishes (e.g. after ``reset()``), then a new handle has to be
    fetched. Observers run on the bus dispatch thread; only one observer per
    kind is kept, registering again replaces it.

    Example:

    .. code-block:: python

        with ModemManager() as mm:
            modem = mm.any_modem()
            print(modem.manufacturer, modem.model, modem.state.name)
            if modem.registered:
                print(modem.signal())
    """

    INTERFACE = MM_IF_MODEM

    # Polling interval set up by signal() if none is active
    SIGNAL_REFRESH_SEC = 5

    def __init__(
        self,
        bus: RemoteBus,
        object_path: str,
        proxy: Optional[Proxy] = None,
        stats_provider: Optional[NetworkStatsProvider] = None
    ) -> None:
        super().__init__(bus, object_path, proxy)
        self._stats = stats_provider
        self._dispatcher = SignalDispatcher(owner=object_path)
        self._subscribed: set[str] = set()

        # Parsers
        self._signal_parser = SignalParser()
        self._location_parser = LocationStringParser()
        self._cell_info_parser = CellInfoParser()

    @staticmethod
    def identity_of(modem: "Modem", interfaces: Optional[dict[str, dict[str, Any]]] = None) -> str:
        """
        Get the IMEI of a modem, preferring already announced properties.

        Args:
            modem: Modem handle
            interfaces: Interfaces and properties announced with the modem

        Returns:
            IMEI string
        """
        interfaces = interfaces or {}
        imei = interfaces.get(MM_IF_MODEM_3GPP, {}).get("Imei")
        if not imei:
            # equal to the IMEI on 3GPP modems
            imei = interfaces.get(MM_IF_MODEM, {}).get("EquipmentIdentifier")
        return imei or modem.imei

    # ---- Identity ----

    @property
    def manufacturer(self) -> str:
        return self._get("Manufacturer")

    @property
    def model(self) -> str:
        return self._get("Model")

    @property
    def imei(self) -> str:
        """International Mobile Equipment Identity."""
        return self._get("Imei", MM_IF_MODEM_3GPP)

    @property
    def firmware_version(self) -> str:
        return self._get("Revision")

    @property
    def phone_number(self) -> Optional[str]:
        """First own phone number, or None if the SIM does not provide one."""
        numbers = self._get("OwnNumbers")
        return numbers[0] if numbers else None

    # ---- Power state ----

    @property
    def power_state(self) -> PowerState:
        return PowerState(self._get("PowerState"))

    def _set_power_state(self, state: PowerState) -> None:
        self._require_state(ModemState.DISABLED, "change power state", exact=True)
        logger.info(f"Setting power state of {self.object_path} to {state.name}")
        self._call("SetPowerState", int(state))

    def power_off(self) -> None:
        """
        Power the modem off.

        Raises:
            PreconditionNotMetError: If the modem is not DISABLED
        """
        self._set_power_state(PowerState.OFF)

    def power_low(self) -> None:
        """
        Put the modem in low power (flight) mode.

        Raises:
            PreconditionNotMetError: If the modem is not DISABLED
        """
        self._set_power_state(PowerState.LOW)

    def power_on(self) -> None:
        """
        Power the modem on.

        Raises:
            PreconditionNotMetError: If the modem is not DISABLED
        """
        self._set_power_state(PowerState.ON)

    # ---- Modem state ----

    @property
    def state(self) -> ModemState:
        return ModemState(self._get("State"))

    def _require_state(self, required: ModemState, action: str, exact: bool = False) -> None:
        actual = self.state
        if exact and actual != required:
            raise PreconditionNotMetError(
                f"Cannot {action}: modem state is {actual.name}, needs to be {required.name}",
                required=required, actual=actual, object_path=self.object_path
            )
        if not exact and actual < required:
            raise PreconditionNotMetError(
                f"Cannot {action}: modem state is {actual.name}, needs to be at least {required.name}",
                required=required, actual=actual, object_path=self.object_path
            )

    def enable(self, enable: bool = True) -> None:
        """
        Enable or disable the modem.

        Enabling powers up the radio and starts network registration.
        """
        logger.info(f"{'Enabling' if enable else 'Disabling'} {self.object_path}")
        self._call("Enable", enable)

    def reset(self) -> None:
        """
        Reset the modem.

        The modem vanishes and reappears under a new object path, this
        handle is invalid afterwards. Use ``ModemManager.reset_modem()`` to
        get the new handle.
        """
        logger.info(f"Resetting {self.object_path}")
        self._call("Reset")

    @property
    def enabled(self) -> bool:
        return self.state >= ModemState.ENABLED

    @property
    def registered(self) -> bool:
        return self.state >= ModemState.REGISTERED

    @property
    def connected(self) -> bool:
        return self.state == ModemState.CONNECTED

    @property
    def lock_state(self) -> LockState:
        """Lock that needs to be lifted (e.g. SIM_PIN) or UNLOCKED."""
        return LockState(self._get("UnlockRequired"))

    @property
    def locked(self) -> bool:
        """Whether an unlock is needed before the modem can be used (SIM PIN2 does not count)."""
        return self.lock_state not in (LockState.UNLOCKED, LockState.SIM_PIN2)

    def observe_modem_state(self, observer: ModemStateObserver) -> None:
        """
        Call observer with (old, new) on every state change.

        Example:

        .. code-block:: python

            modem.observe_modem_state(lambda old, new: print(f"{old.name} -> {new.name}"))
        """
        self._dispatcher.register("state", observer)
        self._subscribe_once(MM_IF_MODEM, "StateChanged", self._on_state_changed)

    def _on_state_changed(self, old: int, new: int, reason: int) -> None:
        logger.debug(f"{self.object_path} state changed {old} -> {new} (reason {reason})")
        self._dispatcher.dispatch("state", ModemState(old), ModemState(new))

    # ---- Network ----

    @property
    def operator_plmn(self) -> str:
        """PLMN (MCC + MNC) of the current network, e.g. "26201"."""
        return self._get("OperatorCode", MM_IF_MODEM_3GPP)

    @property
    def operator_name(self) -> str:
        return self._get("OperatorName", MM_IF_MODEM_3GPP)

    def technology(self) -> Technology:
        """Current radio technology."""
        return AccessTechnology(self._get("AccessTechnologies")).to_technology()

    # ---- Signal ----

    def signal(self) -> Signal:
        """
        Get the signal quality of the current technology.

        Turns on signal polling if it is not active yet; the first values
        may be absent until the modem reported them.

        Returns:
            SignalLTE or SignalNR5G

        Raises:
            PreconditionNotMetError: If the modem is not REGISTERED
            UnsupportedTechnologyError: If the technology is neither LTE nor NR
        """
        self._require_state(ModemState.REGISTERED, "access signal quality")

        if self._get("Rate", MM_IF_MODEM_SIGNAL) == 0:
            logger.info(f"Enabling signal polling every {self.SIGNAL_REFRESH_SEC} s")
            self._call("Setup", self.SIGNAL_REFRESH_SEC, interface=MM_IF_MODEM_SIGNAL)

        tech = self.technology()
        if tech not in _SIGNAL_PROPERTY:
            raise UnsupportedTechnologyError(
                f"Signal quality for {tech.name} is not supported", technology=tech
            )

        signal = self._signal_parser.parse(self._get(_SIGNAL_PROPERTY[tech], MM_IF_MODEM_SIGNAL), tech)
        logger.debug(f"Signal: {signal}")
        return signal

    def observe_signal(self, observer: SignalObserver, interval_sec: int = SIGNAL_REFRESH_SEC) -> None:
        """
        Call observer with the signal quality every interval_sec.

        Raises:
            PreconditionNotMetError: If the modem is not REGISTERED
        """
        self._require_state(ModemState.REGISTERED, "observe signal quality")
        self._call("Setup", interval_sec, interface=MM_IF_MODEM_SIGNAL)
        self._dispatcher.register("signal", observer)
        self._subscribe_once(DBUS_IF_PROPERTIES, "PropertiesChanged", self._on_properties_changed)

    def cell_info(self) -> list[CellInfo]:
        """
        Get serving and neighbour cells.

        Returns:
            CellInfoLTE / CellInfoNR5G records, cells of other technologies
            are left out
        """
        return self._cell_info_parser.parse(self._call("GetCellInfo"))

    # ---- Location ----

    def _decode_location(self, locations: dict) -> Optional[Location]:
        location_string = locations.get(int(LocationSource.GPP_LAC_CI))
        if location_string is None:
            return None
        return self._location_parser.parse(location_string, self.technology())

    def location(self) -> Optional[Location]:
        """
        Get the location of the serving cell.

        Returns:
            LocationLTE / LocationNR5G, or None if no 3GPP location is
            available or it could not be decoded

        Raises:
            PreconditionNotMetError: If the modem is not REGISTERED
        """
        self._require_state(ModemState.REGISTERED, "access cell location")
        return self._decode_location(self._call("GetLocation", interface=MM_IF_MODEM_LOCATION))

    def observe_location(self, observer: LocationObserver) -> None:
        """
        Call observer whenever the serving cell location changes.

        The observer gets None for updates that could not be decoded.

        Raises:
            PreconditionNotMetError: If the modem is not REGISTERED
        """
        self._require_state(ModemState.REGISTERED, "observe cell location")
        self._call("Setup", int(LocationSource.GPP_LAC_CI), True, interface=MM_IF_MODEM_LOCATION)
        self._dispatcher.register("location", observer)
        self._subscribe_once(DBUS_IF_PROPERTIES, "PropertiesChanged", self._on_properties_changed)

    def _on_properties_changed(self, interface: str, changed: dict[str, Any], invalidated: list[str]) -> None:
        if interface == MM_IF_MODEM_SIGNAL:
            for tech, name in _SIGNAL_PROPERTY.items():
                if name in changed:
                    self._dispatcher.dispatch("signal", self._signal_parser.parse(changed[name], tech))
                    return
        elif interface == MM_IF_MODEM_LOCATION and "Location" in changed:
            self._dispatcher.dispatch("location", self._decode_location(changed["Location"]))

    def _subscribe_once(self, interface: str, signal_name: str, callback) -> None:
        key = f"{interface}.{signal_name}"
        if key in self._subscribed:
            return
        self._subscribe(interface, signal_name, callback)
        self._subscribed.add(key)

    # ---- Time ----

    def network_time(self) -> str:
        """
        Get the time reported by the network as ISO 8601 string.

        Raises:
            PreconditionNotMetError: If the modem is not ENABLED
        """
        self._require_state(ModemState.ENABLED, "get network time")
        return self._call("GetNetworkTime", interface=MM_IF_MODEM_TIME)

    def network_time_epoch(self) -> Optional[int]:
        """
        Get the network time as seconds since the epoch.

        The UTC offset in the network time is ignored.

        Returns:
            Epoch seconds, or None if the network time could not be parsed
        """
        time_str = self.network_time()
        try:
            parsed = datetime.strptime(time_str[:19], _NETWORK_TIME_FORMAT)
        except (TypeError, ValueError):
            logger.warning(f"Unparsable network time: {time_str!r}")
            return None
        return int(parsed.replace(tzinfo=timezone.utc).timestamp())

    # ---- SIM and connections ----

    def active_sim(self) -> Optional[SIM]:
        """SIM card in use, or None if there is none."""
        path = self._get("Sim")
        if not path or path == NULL_OBJECT_PATH:
            return None
        return SIM(self._live_bus(), path)

    def _stats_provider(self) -> NetworkStatsProvider:
        if self._stats is None:
            self._stats = NetworkStatsProvider(self._live_bus())
        return self._stats

    def connections(self) -> list[Connection]:
        """All connections (bearers) of the modem, active or not."""
        bus = self._live_bus()
        return [Connection(bus, path, self._stats_provider()) for path in self._get("Bearers")]

    def active_connection(self) -> Optional[Connection]:
        """First established connection, or None."""
        for connection in self.connections():
            if connection.active:
                return connection
        return None

    def connect(self, apn: str, ip_type: IPType = IPType.IPV4V6) -> Connection:
        """
        Create and establish a data connection.

        Args:
            apn: Access point name
            ip_type: Requested IP family

        Returns:
            The established connection

        Example:

        .. code-block:: python

            conn = modem.connect("internet", IPType.IPV4)
            print(conn.ipv4_config())
        """
        logger.info(f"Connecting {self.object_path} to APN '{apn}' ({ip_type.name})")
        path = self._call("CreateBearer", {"apn": apn, "ip-type": int(ip_type)})
        connection = Connection(self._live_bus(), path, self._stats_provider())
        connection.connect()
        logger.info(f"Connected via {path}")
        return connection
