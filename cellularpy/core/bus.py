"""
Bus layer abstraction for talking to ModemManager and NetworkManager.

Provides the RemoteBus / Proxy capability with a dbus-next implementation
and an in-memory implementation for tests.
"""

import asyncio
import concurrent.futures
import copy
import inspect
import logging
import queue
import re
import threading
import weakref
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Any, Callable, Optional

from dbus_next import BusType, DBusError, Variant
from dbus_next.aio import MessageBus

from ..constants import (
    DBUS_ERROR_INVALID_ARGS,
    DBUS_ERROR_UNKNOWN_METHOD,
    DBUS_ERROR_UNKNOWN_OBJECT,
    DBUS_IF_OBJECT_MANAGER,
    DBUS_IF_PROPERTIES,
)
from ..exceptions import BusError, ConnectionFailedError, HandleInvalidatedError

logger = logging.getLogger(__name__)

# Type alias for signal callbacks, called with the signal arguments
SignalCallback = Callable[..., None]

# path -> interface -> property -> value
ManagedObjects = dict[str, dict[str, dict[str, Any]]]


class Proxy(ABC):
    """Abstract base class for a proxy bound to one remote object path."""

    @property
    @abstractmethod
    def object_path(self) -> str:
        """The object path this proxy is bound to."""
        pass

    @abstractmethod
    def call_method(self, interface: str, method: str, *args: Any) -> Any:
        """
        Call a remote method.

        Args:
            interface: Interface name
            method: Method name (e.g. "GetCellInfo")
            *args: Method arguments

        Returns:
            None, a single value or a list of values (multiple out args)

        Raises:
            BusError: If the remote call fails
            HandleInvalidatedError: If the bus is closed
        """
        pass

    @abstractmethod
    def get_property(self, interface: str, name: str) -> Any:
        """Read a remote property."""
        pass

    @abstractmethod
    def set_property(self, interface: str, name: str, value: Any) -> None:
        """Write a remote property."""
        pass

    @abstractmethod
    def subscribe(self, interface: str, signal_name: str, callback: SignalCallback) -> None:
        """
        Subscribe to a remote signal.

        The callback is called with the (unwrapped) signal arguments on the
        bus dispatch thread.
        """
        pass


class RemoteBus(ABC):
    """Abstract base class for a bus connection."""

    @abstractmethod
    def connect(self) -> None:
        """
        Connect to the bus.

        Raises:
            ConnectionFailedError: If the bus is unreachable
        """
        pass

    @abstractmethod
    def is_connected(self) -> bool:
        """Check if the bus is connected."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close the bus connection."""
        pass

    @abstractmethod
    def create_proxy(self, service_name: str, object_path: str) -> Proxy:
        """
        Create a proxy for a remote object.

        Args:
            service_name: Bus name of the service
            object_path: Object path

        Returns:
            Proxy bound to object_path
        """
        pass

    def enumerate_managed_objects(self, service_name: str, manager_path: str) -> ManagedObjects:
        """
        Get all objects exported through an ObjectManager.

        Args:
            service_name: Bus name of the service
            manager_path: Object path of the ObjectManager

        Returns:
            Mapping of object path to interfaces and their properties
        """
        proxy = self.create_proxy(service_name, manager_path)
        return proxy.call_method(DBUS_IF_OBJECT_MANAGER, "GetManagedObjects") or {}


# ---- dbus-next implementation ----

def _to_snake_case(member: str) -> str:
    """Convert a D-Bus member name to the dbus-next attribute suffix."""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", member).lower()


def _unwrap(value: Any) -> Any:
    """Recursively replace Variants with their values."""
    if isinstance(value, Variant):
        return _unwrap(value.value)
    if isinstance(value, dict):
        return {key: _unwrap(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_unwrap(item) for item in value]
    return value


def _guess_signature(value: Any) -> str:
    """Guess the D-Bus signature of a plain value stored in a variant."""
    if isinstance(value, bool):
        return "b"
    if isinstance(value, int):
        return "u" if value >= 0 else "i"
    if isinstance(value, float):
        return "d"
    if isinstance(value, str):
        return "s"
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return "as"
    raise TypeError(f"Cannot guess D-Bus signature for {value!r}")


def _to_variant(value: Any, signature: Optional[str] = None) -> Variant:
    if isinstance(value, Variant):
        return value
    return Variant(signature or _guess_signature(value), value)


def _wrap_argument(signature: str, value: Any) -> Any:
    """Wrap the values of a{sv} arguments into Variants."""
    if signature == "v":
        return _to_variant(value)
    if signature == "a{sv}" and isinstance(value, dict):
        return {key: _to_variant(item) for key, item in value.items()}
    return value


def _positional_signature(arity: int) -> inspect.Signature:
    """Signature with arity positional parameters."""
    return inspect.Signature([
        inspect.Parameter(f"arg{index}", inspect.Parameter.POSITIONAL_ONLY)
        for index in range(arity)
    ])


class DBusNextProxy(Proxy):
    """Proxy implementation backed by a dbus-next ProxyObject."""

    def __init__(self, owner: "DBusNextBus", service_name: str, object_path: str, introspection) -> None:
        self._owner = weakref.ref(owner)
        self.service_name = service_name
        self._object_path = object_path
        self._introspection = introspection
        self._proxy_object = owner.message_bus.get_proxy_object(service_name, object_path, introspection)
        self._interfaces: dict[str, Any] = {}

    @property
    def object_path(self) -> str:
        return self._object_path

    def _bus(self) -> "DBusNextBus":
        owner = self._owner()
        if owner is None or not owner.is_connected():
            raise HandleInvalidatedError("Bus connection is closed", object_path=self._object_path)
        return owner

    def _interface(self, name: str):
        if name not in self._interfaces:
            bus = self._bus()
            try:
                # may send GetNameOwner, which must happen on the event loop thread
                self._interfaces[name] = bus.call_in_loop(self._proxy_object.get_interface, name)
            except HandleInvalidatedError:
                raise
            except Exception as e:
                raise BusError(
                    f"Interface {name} not available: {e}",
                    object_path=self._object_path,
                    error_name=DBUS_ERROR_UNKNOWN_METHOD
                ) from e
        return self._interfaces[name]

    def _introspected(self, interface: str):
        for iface in self._introspection.interfaces:
            if iface.name == interface:
                return iface
        return None

    def _signal_arity(self, interface: str, signal_name: str) -> int:
        intr = self._introspected(interface)
        if intr is not None:
            for intr_signal in intr.signals:
                if intr_signal.name == signal_name:
                    return len(intr_signal.args)
        raise BusError(
            f"No such signal {interface}.{signal_name}",
            object_path=self._object_path,
            error_name=DBUS_ERROR_UNKNOWN_METHOD
        )

    def call_method(self, interface: str, method: str, *args: Any) -> Any:
        bus = self._bus()
        iface = self._interface(interface)

        intr = self._introspected(interface)
        if intr is not None:
            for intr_method in intr.methods:
                if intr_method.name == method:
                    args = tuple(
                        _wrap_argument(arg.signature, value)
                        for arg, value in zip(intr_method.in_args, args)
                    )
                    break

        call = getattr(iface, f"call_{_to_snake_case(method)}")
        logger.debug(f"Calling {interface}.{method} on {self._object_path}")
        return _unwrap(bus.run(call(*args), what=f"{interface}.{method}", object_path=self._object_path))

    def get_property(self, interface: str, name: str) -> Any:
        bus = self._bus()
        props = self._interface(DBUS_IF_PROPERTIES)
        value = bus.run(props.call_get(interface, name), what=f"{interface}.{name}", object_path=self._object_path)
        return _unwrap(value)

    def set_property(self, interface: str, name: str, value: Any) -> None:
        bus = self._bus()
        signature = None
        intr = self._introspected(interface)
        if intr is not None:
            for prop in intr.properties:
                if prop.name == name:
                    signature = prop.signature
                    break

        props = self._interface(DBUS_IF_PROPERTIES)
        bus.run(
            props.call_set(interface, name, _to_variant(value, signature)),
            what=f"{interface}.{name}",
            object_path=self._object_path
        )

    def subscribe(self, interface: str, signal_name: str, callback: SignalCallback) -> None:
        bus = self._bus()
        iface = self._interface(interface)
        register = getattr(iface, f"on_{_to_snake_case(signal_name)}")

        def enqueue(*args: Any) -> None:
            bus.enqueue_signal(callback, args)

        # dbus-next checks the handler arity against the introspected signal
        enqueue.__signature__ = _positional_signature(self._signal_arity(interface, signal_name))

        # handlers must be attached on the event loop thread
        bus.call_in_loop(register, enqueue)
        logger.debug(f"Subscribed to {interface}.{signal_name} on {self._object_path}")


class DBusNextBus(RemoteBus):
    """
    RemoteBus implementation on top of dbus-next.

    Runs a private asyncio event loop on a background thread and exposes
    blocking calls. Signals are queued and delivered in order on a separate
    dispatch thread, so signal callbacks may issue blocking calls.
    """

    def __init__(self, bus_type: str = "system", call_timeout: Optional[float] = None) -> None:
        """
        Initialize the bus.

        Args:
            bus_type: "system" or "session"
            call_timeout: Timeout for remote calls in seconds (None = dbus default)
        """
        if bus_type not in ("system", "session"):
            raise ValueError(f"Unknown bus type: {bus_type}")

        self.bus_type = bus_type
        self.call_timeout = call_timeout

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._loop_thread: Optional[threading.Thread] = None
        self._dispatch_thread: Optional[threading.Thread] = None
        self._signal_queue: "queue.Queue[Optional[tuple[SignalCallback, tuple]]]" = queue.Queue()
        self._message_bus: Optional[MessageBus] = None
        self._connected = False
        self._lock = threading.Lock()

    @property
    def message_bus(self) -> MessageBus:
        if self._message_bus is None:
            raise HandleInvalidatedError("Bus is not connected")
        return self._message_bus

    def connect(self) -> None:
        with self._lock:
            if self._connected:
                logger.warning("Bus already connected")
                return

            self._loop = asyncio.new_event_loop()
            self._loop_thread = threading.Thread(
                target=self._loop.run_forever,
                daemon=True,
                name="DBusEventLoop"
            )
            self._loop_thread.start()

            bus_type = BusType.SYSTEM if self.bus_type == "system" else BusType.SESSION

            # MessageBus binds to the running loop when constructed
            async def open_bus() -> MessageBus:
                return await MessageBus(bus_type=bus_type).connect()

            try:
                future = asyncio.run_coroutine_threadsafe(open_bus(), self._loop)
                self._message_bus = future.result(self.call_timeout)
            except Exception as e:
                logger.error(f"Failed to connect to {self.bus_type} bus: {e}")
                self._stop_loop()
                raise ConnectionFailedError(f"Failed to connect to {self.bus_type} bus: {e}") from e

            self._dispatch_thread = threading.Thread(
                target=self._dispatch_loop,
                daemon=True,
                name="DBusSignalDispatch"
            )
            self._dispatch_thread.start()
            self._connected = True

        logger.info(f"Connected to {self.bus_type} bus")

    def is_connected(self) -> bool:
        return self._connected

    def close(self) -> None:
        with self._lock:
            if not self._connected:
                return
            self._connected = False

        logger.info(f"Closing {self.bus_type} bus connection")
        self._signal_queue.put(None)
        if self._dispatch_thread and self._dispatch_thread is not threading.current_thread():
            self._dispatch_thread.join(timeout=1.0)
            if self._dispatch_thread.is_alive():
                logger.warning("Signal dispatch thread did not terminate in time")

        if self._message_bus is not None and self._loop is not None:
            self._loop.call_soon_threadsafe(self._message_bus.disconnect)
        self._message_bus = None
        self._stop_loop()
        logger.info("Bus connection closed")

    def _stop_loop(self) -> None:
        if self._loop is None:
            return
        self._loop.call_soon_threadsafe(self._loop.stop)
        if self._loop_thread and self._loop_thread is not threading.current_thread():
            self._loop_thread.join(timeout=1.0)
            if self._loop_thread.is_alive():
                logger.warning("Event loop thread did not terminate in time")
            else:
                self._loop.close()
        self._loop = None

    def run(self, coro, what: str = "call", object_path: Optional[str] = None) -> Any:
        """
        Run a coroutine on the event loop and wait for its result.

        Raises:
            BusError: If the remote side returned an error or timed out
        """
        if self._loop is None or not self._connected:
            coro.close()
            raise HandleInvalidatedError("Bus connection is closed", object_path=object_path)
        if threading.current_thread() is self._loop_thread:
            coro.close()
            raise RuntimeError("Blocking bus calls are not allowed on the event loop thread")

        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        try:
            return future.result(self.call_timeout)
        except DBusError as e:
            raise BusError(f"{what} failed: {e.text}", object_path=object_path, error_name=e.type) from e
        except concurrent.futures.TimeoutError as e:
            future.cancel()
            raise BusError(f"{what} timed out", object_path=object_path) from e

    def call_in_loop(self, func: Callable, *args: Any) -> Any:
        """Run a plain function on the event loop thread and return its result."""
        async def call():
            return func(*args)
        return self.run(call(), what=getattr(func, "__name__", "call"))

    def enqueue_signal(self, callback: SignalCallback, args: tuple) -> None:
        """Queue a signal for delivery on the dispatch thread."""
        self._signal_queue.put((callback, args))

    def _dispatch_loop(self) -> None:
        logger.debug("Signal dispatch thread started")

        while True:
            item = self._signal_queue.get()
            if item is None:
                break

            callback, args = item
            try:
                callback(*[_unwrap(arg) for arg in args])
            except Exception as e:
                logger.error(f"Signal callback failed: {e}", exc_info=True)

        logger.debug("Signal dispatch thread stopped")

    def create_proxy(self, service_name: str, object_path: str) -> Proxy:
        if not self._connected:
            raise HandleInvalidatedError("Bus connection is closed", object_path=object_path)
        introspection = self.run(
            self.message_bus.introspect(service_name, object_path),
            what="Introspect",
            object_path=object_path
        )
        return DBusNextProxy(self, service_name, object_path, introspection)


# ---- In-memory implementation ----

class MockProxy(Proxy):
    """Proxy implementation for MockBus."""

    def __init__(self, bus: "MockBus", service_name: str, object_path: str) -> None:
        self._bus = bus
        self.service_name = service_name
        self._object_path = object_path

    @property
    def object_path(self) -> str:
        return self._object_path

    def call_method(self, interface: str, method: str, *args: Any) -> Any:
        return self._bus.handle_call(self._object_path, interface, method, args)

    def get_property(self, interface: str, name: str) -> Any:
        return self._bus.read_property(self._object_path, interface, name)

    def set_property(self, interface: str, name: str, value: Any) -> None:
        self._bus.write_property(self._object_path, interface, name, value)

    def subscribe(self, interface: str, signal_name: str, callback: SignalCallback) -> None:
        self._bus.add_subscription(self._object_path, interface, signal_name, callback)


class MockBus(RemoteBus):
    """
    In-memory bus for testing.

    Simulates remote objects without a D-Bus daemon. Signals are delivered
    synchronously on the thread that emits them.

    Example:

    .. code-block:: python

        bus = MockBus()
        bus.connect()
        bus.add_object("/obj/1", {"org.example.Iface": {"Name": "one"}})
        bus.create_proxy("org.example", "/obj/1").get_property("org.example.Iface", "Name")
    """

    def __init__(self) -> None:
        self._objects: ManagedObjects = {}
        self._managers: dict[str, str] = {}
        self._methods: dict[tuple[str, str, str], Callable[..., Any]] = {}
        self._subscriptions: dict[tuple[str, str, str], list[SignalCallback]] = defaultdict(list)
        self._connected = False
        self._lock = threading.RLock()
        self.fail_connect = False
        self.calls: list[tuple[str, str, str, tuple]] = []
        logger.info("Initialized MockBus")

    def connect(self) -> None:
        if self.fail_connect:
            raise ConnectionFailedError("MockBus refused the connection")
        self._connected = True
        logger.info("MockBus connected")

    def is_connected(self) -> bool:
        return self._connected

    def close(self) -> None:
        self._connected = False
        logger.info("Closed MockBus")

    def create_proxy(self, service_name: str, object_path: str) -> Proxy:
        self._ensure_connected(object_path)
        return MockProxy(self, service_name, object_path)

    def _ensure_connected(self, object_path: Optional[str] = None) -> None:
        if not self._connected:
            raise HandleInvalidatedError("MockBus is closed", object_path=object_path)

    # ---- object setup ----

    def add_object(
        self,
        object_path: str,
        interfaces: dict[str, dict[str, Any]],
        manager_path: Optional[str] = None
    ) -> None:
        """
        Export an object.

        Args:
            object_path: Path of the new object
            interfaces: Interfaces and their properties
            manager_path: ObjectManager path; if given, InterfacesAdded is
                          emitted there and the object is listed by
                          GetManagedObjects
        """
        with self._lock:
            self._objects[object_path] = copy.deepcopy(interfaces)
            if manager_path is not None:
                self._managers[object_path] = manager_path
        logger.debug(f"Mock object added: {object_path}")

        if manager_path is not None:
            self.emit_signal(
                manager_path, DBUS_IF_OBJECT_MANAGER, "InterfacesAdded",
                object_path, copy.deepcopy(interfaces)
            )

    def remove_object(self, object_path: str) -> None:
        """Remove an object, emitting InterfacesRemoved if it was managed."""
        with self._lock:
            interfaces = self._objects.pop(object_path, {})
            manager_path = self._managers.pop(object_path, None)
        logger.debug(f"Mock object removed: {object_path}")

        if manager_path is not None:
            self.emit_signal(
                manager_path, DBUS_IF_OBJECT_MANAGER, "InterfacesRemoved",
                object_path, list(interfaces)
            )

    def set_method(self, object_path: str, interface: str, method: str, handler: Callable[..., Any]) -> None:
        """
        Install a method handler.

        The handler is called with the method arguments; its return value
        is the method result. Raise BusError to simulate remote errors.
        """
        with self._lock:
            self._methods[(object_path, interface, method)] = handler

    def update_properties(self, object_path: str, interface: str, changes: dict[str, Any]) -> None:
        """Change properties and emit PropertiesChanged."""
        with self._lock:
            props = self._objects.setdefault(object_path, {}).setdefault(interface, {})
            props.update(changes)
        self.emit_signal(object_path, DBUS_IF_PROPERTIES, "PropertiesChanged", interface, dict(changes), [])

    def emit_signal(self, object_path: str, interface: str, signal_name: str, *args: Any) -> None:
        """Deliver a signal to all subscribers of object_path."""
        with self._lock:
            callbacks = list(self._subscriptions.get((object_path, interface, signal_name), []))

        for callback in callbacks:
            try:
                callback(*args)
            except Exception as e:
                logger.error(f"Signal callback for {interface}.{signal_name} failed: {e}", exc_info=True)

    def subscriber_count(self, object_path: str, interface: str, signal_name: str) -> int:
        """Number of callbacks subscribed to a signal (for tests)."""
        with self._lock:
            return len(self._subscriptions.get((object_path, interface, signal_name), []))

    def calls_to(self, method: str) -> list[tuple]:
        """Argument tuples of all recorded calls to a method."""
        with self._lock:
            return [args for _, _, name, args in self.calls if name == method]

    # ---- proxy backend ----

    def handle_call(self, object_path: str, interface: str, method: str, args: tuple) -> Any:
        self._ensure_connected(object_path)
        with self._lock:
            self.calls.append((object_path, interface, method, args))
            handler = self._methods.get((object_path, interface, method))
            managed = None
            if handler is None and interface == DBUS_IF_OBJECT_MANAGER and method == "GetManagedObjects":
                managed = {
                    path: copy.deepcopy(self._objects.get(path, {}))
                    for path, manager in self._managers.items()
                    if manager == object_path
                }

        if managed is not None:
            return managed
        if handler is None:
            raise BusError(
                f"No such method {interface}.{method}",
                object_path=object_path,
                error_name=DBUS_ERROR_UNKNOWN_METHOD
            )
        return handler(*args)

    def read_property(self, object_path: str, interface: str, name: str) -> Any:
        self._ensure_connected(object_path)
        with self._lock:
            if object_path not in self._objects:
                raise BusError(
                    f"No such object {object_path}",
                    object_path=object_path,
                    error_name=DBUS_ERROR_UNKNOWN_OBJECT
                )
            try:
                return copy.deepcopy(self._objects[object_path][interface][name])
            except KeyError:
                raise BusError(
                    f"No such property {interface}.{name}",
                    object_path=object_path,
                    error_name=DBUS_ERROR_INVALID_ARGS
                ) from None

    def write_property(self, object_path: str, interface: str, name: str, value: Any) -> None:
        self._ensure_connected(object_path)
        with self._lock:
            self.calls.append((object_path, DBUS_IF_PROPERTIES, "Set", (interface, name, value)))
        self.update_properties(object_path, interface, {name: value})

    def add_subscription(self, object_path: str, interface: str, signal_name: str, callback: SignalCallback) -> None:
        self._ensure_connected(object_path)
        with self._lock:
            self._subscriptions[(object_path, interface, signal_name)].append(callback)
