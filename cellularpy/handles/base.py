"""
Base class of all remote object handles.
"""

import logging
import weakref
from typing import Any, Optional

from ..constants import MM_BUS_NAME
from ..core.bus import Proxy, RemoteBus
from ..exceptions import HandleInvalidatedError

logger = logging.getLogger(__name__)


class RemoteHandle:
    """
    Typed wrapper around one remote object path.

    A handle references its bus weakly: it does not keep the bus alive and
    fails with HandleInvalidatedError once the bus is closed or gone.
    Nothing but the proxy binding is cached; every property read is a
    remote round-trip.
    """

    # Default interface for _get/_call/_set
    INTERFACE = ""

    def __init__(
        self,
        bus: RemoteBus,
        object_path: str,
        proxy: Optional[Proxy] = None,
        service_name: str = MM_BUS_NAME
    ) -> None:
        self._bus_ref = weakref.ref(bus)
        self._object_path = object_path
        self._proxy = proxy if proxy is not None else bus.create_proxy(service_name, object_path)

    @property
    def object_path(self) -> str:
        """Remote object path of this handle."""
        return self._object_path

    def _live_bus(self) -> RemoteBus:
        bus = self._bus_ref()
        if bus is None or not bus.is_connected():
            raise HandleInvalidatedError(
                f"{type(self).__name__} used after its bus was closed",
                object_path=self._object_path
            )
        return bus

    def _get(self, name: str, interface: Optional[str] = None) -> Any:
        self._live_bus()
        value = self._proxy.get_property(interface or self.INTERFACE, name)
        logger.debug(f"{self._object_path} {name} = {value!r}")
        return value

    def _set(self, name: str, value: Any, interface: Optional[str] = None) -> None:
        self._live_bus()
        self._proxy.set_property(interface or self.INTERFACE, name, value)

    def _call(self, method: str, *args: Any, interface: Optional[str] = None) -> Any:
        self._live_bus()
        return self._proxy.call_method(interface or self.INTERFACE, method, *args)

    def _subscribe(self, interface: str, signal_name: str, callback) -> None:
        self._live_bus()
        self._proxy.subscribe(interface, signal_name, callback)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RemoteHandle):
            return NotImplemented
        return type(self) is type(other) and self._object_path == other._object_path

    def __hash__(self) -> int:
        return hash((type(self).__name__, self._object_path))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._object_path!r})"
