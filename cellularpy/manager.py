"""
Main ModemManager class.

User-facing entry point that owns the bus connection and the live modem
registry.
"""

import logging
from concurrent.futures import Future
from typing import Optional

from .constants import ANY_IMEI, MM_BUS_NAME, MM_IF_MODEM, MM_IF_MODEMMANAGER, MM_OBJ_MODEMMANAGER
from .core import DBusNextBus, RemoteBus, RemoteObjectRegistry
from .exceptions import BusError, ConnectionFailedError
from .handles import Modem

logger = logging.getLogger(__name__)


class ModemManager:
    """
    Entry point to all modems managed by ModemManager.

    Connects to the bus on construction and keeps a live list of modems for
    its whole lifetime. Handles obtained from a manager become invalid once
    it is closed.

    Example usage with context manager:

    .. code-block:: python

        with ModemManager() as mm:
            for modem in mm.available_modems():
                print(f"{modem.manufacturer} {modem.model}: {modem.state.name}")

    Waiting for a modem:

    .. code-block:: python

        mm = ModemManager()
        future = mm.await_modem("490154203237518")
        modem = future.result(timeout=60)
        mm.close()
    """

    def __init__(
        self,
        bus: Optional[RemoteBus] = None,
        bus_type: str = "system",
        call_timeout: Optional[float] = None
    ) -> None:
        """
        Connect to ModemManager.

        Args:
            bus: Custom bus instance (for testing). Overrides bus_type and
                 call_timeout if provided.
            bus_type: "system" (default) or "session"
            call_timeout: Timeout for remote calls in seconds (None = dbus default)

        Raises:
            ConnectionFailedError: If the bus or ModemManager is unreachable

        Example:

        .. code-block:: python

            # Using the system bus
            mm = ModemManager()

            # Using an in-memory bus (for testing)
            from cellularpy.core import MockBus
            mm = ModemManager(bus=MockBus())
        """
        if bus is None:
            bus = DBusNextBus(bus_type=bus_type, call_timeout=call_timeout)

        self._bus = bus
        if not self._bus.is_connected():
            self._bus.connect()

        self._registry: RemoteObjectRegistry[Modem] = RemoteObjectRegistry(
            self._bus,
            MM_BUS_NAME,
            MM_OBJ_MODEMMANAGER,
            Modem,
            Modem.identity_of,
            required_interface=MM_IF_MODEM
        )

        try:
            self._registry.start()
        except BusError as e:
            self._bus.close()
            raise ConnectionFailedError(
                "Failed to connect to ModemManager D-Bus API, is ModemManager running?",
                error_name=e.error_name
            ) from e
        except Exception:
            self._bus.close()
            raise

        logger.info("Initialized ModemManager")

    def modems_available(self) -> bool:
        """Whether at least one modem is present."""
        return self._registry.first_or_none() is not None

    def available_modems(self) -> list[Modem]:
        """Snapshot of all present modems."""
        return self._registry.handles()

    def any_modem(self) -> Optional[Modem]:
        """First present modem, or None if there is none."""
        return self._registry.first_or_none()

    def await_modem(self, imei: str = ANY_IMEI) -> Future:
        """
        Wait for a modem to appear.

        Only modems appearing after this call are considered, use
        ``any_modem()`` to check for present ones first. Only one wait can
        be pending: a new call fails the previous future with
        AwaitCancelledError.

        Args:
            imei: IMEI of the modem to wait for, or ANY_IMEI

        Returns:
            Future resolving to the Modem

        Example:

        .. code-block:: python

            modem = mm.any_modem() or mm.await_modem().result(timeout=30)
        """
        return self._registry.await_object(imei)

    def reset_modem(self, modem: Modem, timeout: Optional[float] = None) -> Modem:
        """
        Reset a modem and wait until it is back.

        The old handle is invalid afterwards.

        Args:
            modem: Modem to reset
            timeout: Maximum time to wait in seconds (None = forever)

        Returns:
            Handle of the reappeared modem

        Raises:
            AwaitCancelledError: If another wait superseded this one
            concurrent.futures.TimeoutError: If the modem did not come back in time
        """
        return self._registry.reset_and_await(modem, modem.imei, timeout)

    def version(self) -> str:
        """Version of the ModemManager daemon."""
        proxy = self._bus.create_proxy(MM_BUS_NAME, MM_OBJ_MODEMMANAGER)
        return proxy.get_property(MM_IF_MODEMMANAGER, "Version")

    def close(self) -> None:
        """
        Cancel a pending wait and close the bus connection.
        """
        logger.info("Closing ModemManager")
        self._registry.close()
        self._bus.close()

    def __enter__(self) -> "ModemManager":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()

    def __repr__(self) -> str:
        """String representation."""
        status = "connected" if self._bus.is_connected() else "closed"
        return f"ModemManager(modems={len(self.available_modems())}, {status})"
