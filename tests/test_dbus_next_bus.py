"""
Tests for DBusNextBus against a private dbus-daemon.

A throwaway session bus is started per test and a small dbus-next service
is exported on it, so calls, properties and signals travel over a real
connection.
"""

import asyncio
import shutil
import subprocess
import threading

import pytest
from dbus_next import BusType, DBusError
from dbus_next.aio import MessageBus
from dbus_next.service import ServiceInterface, dbus_property, method, signal

from cellularpy.core import DBusNextBus
from cellularpy.exceptions import BusError, HandleInvalidatedError

DBUS_DAEMON = shutil.which("dbus-daemon")

pytestmark = [
    pytest.mark.skipif(DBUS_DAEMON is None, reason="dbus-daemon not installed"),
    pytest.mark.timeout(30),
]

SERVICE = "org.example.Cellular"
ROOT_PATH = "/org/example"
THING_PATH = "/org/example/Thing/0"
IFACE = "org.example.Thing"


class Root(ServiceInterface):
    def __init__(self):
        super().__init__("org.example.Root")


class Thing(ServiceInterface):
    """Service side of the exported test object."""

    def __init__(self):
        super().__init__(IFACE)
        self._name = "thing"

    @method()
    def Add(self, a: 'i', b: 'i') -> 'i':
        return a + b

    @method()
    def Describe(self, options: 'a{sv}') -> 's':
        return ",".join(f"{key}={options[key].value}" for key in sorted(options))

    @method()
    def Pair(self) -> 'su':
        return ["left", 7]

    @method()
    def Fail(self):
        raise DBusError("org.example.Error.Failed", "it broke")

    @method()
    def Fire(self, count: 'u'):
        for index in range(count):
            self.StateChanged(index, index + 1, 0)

    @dbus_property()
    def Name(self) -> 's':
        return self._name

    @Name.setter
    def Name(self, value: 's'):
        self._name = value

    @signal()
    def StateChanged(self, old, new, reason) -> 'iiu':
        return [old, new, reason]


class ThingService:
    """Runs the Thing service on its own event loop thread."""

    def __init__(self):
        self.loop = asyncio.new_event_loop()
        self.thread = threading.Thread(target=self.loop.run_forever, daemon=True, name="ThingService")
        self.thread.start()
        self.bus = asyncio.run_coroutine_threadsafe(self._start(), self.loop).result(10)

    async def _start(self):
        bus = await MessageBus(bus_type=BusType.SESSION).connect()
        bus.export(ROOT_PATH, Root())
        bus.export(THING_PATH, Thing())
        await bus.request_name(SERVICE)
        return bus

    def stop(self):
        self.loop.call_soon_threadsafe(self.bus.disconnect)
        self.loop.call_soon_threadsafe(self.loop.stop)
        self.thread.join(timeout=5)
        self.loop.close()


@pytest.fixture
def session_bus(monkeypatch):
    """Private dbus-daemon, exported as the session bus."""
    daemon = subprocess.Popen(
        [DBUS_DAEMON, "--session", "--nofork", "--print-address"],
        stdout=subprocess.PIPE,
        text=True
    )
    address = daemon.stdout.readline().strip()
    monkeypatch.setenv("DBUS_SESSION_BUS_ADDRESS", address)
    yield address
    daemon.terminate()
    daemon.wait(timeout=5)
    daemon.stdout.close()


@pytest.fixture
def service(session_bus):
    host = ThingService()
    yield host
    host.stop()


@pytest.fixture
def client(service):
    bus = DBusNextBus("session", call_timeout=5.0)
    bus.connect()
    yield bus
    bus.close()


@pytest.fixture
def thing(client):
    return client.create_proxy(SERVICE, THING_PATH)


def test_connect_and_close(session_bus):
    """Test connecting to a live bus from a plain thread, closing and reconnecting."""
    bus = DBusNextBus("session", call_timeout=5.0)
    errors = []

    def connect():
        try:
            bus.connect()
        except Exception as e:
            errors.append(e)

    worker = threading.Thread(target=connect)
    worker.start()
    worker.join(10)

    assert errors == []
    assert bus.is_connected()

    bus.close()
    assert not bus.is_connected()

    bus.connect()
    assert bus.is_connected()
    bus.close()


def test_method_call(thing):
    """Test a method call with plain arguments."""
    assert thing.call_method(IFACE, "Add", 2, 3) == 5


def test_dict_argument_is_wrapped(thing):
    """Test that a{sv} arguments are sent as variants."""
    result = thing.call_method(IFACE, "Describe", {"apn": "internet", "ip-type": 1})
    assert result == "apn=internet,ip-type=1"


def test_multiple_out_args(thing):
    """Test that several out args come back as a list."""
    assert thing.call_method(IFACE, "Pair") == ["left", 7]


def test_remote_error(thing):
    """Test that remote errors keep their D-Bus error name."""
    with pytest.raises(BusError) as exc_info:
        thing.call_method(IFACE, "Fail")

    assert exc_info.value.error_name == "org.example.Error.Failed"
    assert "it broke" in str(exc_info.value)


def test_property_read_write(thing):
    """Test reading and writing a property."""
    assert thing.get_property(IFACE, "Name") == "thing"

    thing.set_property(IFACE, "Name", "renamed")

    assert thing.get_property(IFACE, "Name") == "renamed"


def test_signals_delivered_in_order_on_dispatch_thread(thing):
    """Test that multi-argument signals reach the callback in order off the loop thread."""
    received = []
    threads = set()
    done = threading.Event()

    def on_state_changed(old, new, reason):
        received.append((old, new, reason))
        threads.add(threading.current_thread().name)
        if len(received) == 3:
            done.set()

    thing.subscribe(IFACE, "StateChanged", on_state_changed)
    thing.call_method(IFACE, "Fire", 3)

    assert done.wait(5)
    assert received == [(0, 1, 0), (1, 2, 0), (2, 3, 0)]
    assert threads == {"DBusSignalDispatch"}


def test_signal_callback_may_call_back(thing):
    """Test that a signal callback can issue blocking calls."""
    results = []
    done = threading.Event()

    def on_state_changed(old, new, reason):
        results.append(thing.call_method(IFACE, "Add", old, new))
        done.set()

    thing.subscribe(IFACE, "StateChanged", on_state_changed)
    thing.call_method(IFACE, "Fire", 1)

    assert done.wait(5)
    assert results == [1]


def test_subscribe_unknown_signal(thing):
    """Test that subscribing to a signal the object lacks fails."""
    with pytest.raises(BusError):
        thing.subscribe(IFACE, "Vanished", lambda: None)


def test_enumerate_managed_objects(client):
    """Test GetManagedObjects with variants unwrapped."""
    objects = client.enumerate_managed_objects(SERVICE, ROOT_PATH)

    assert list(objects) == [THING_PATH]
    assert objects[THING_PATH][IFACE] == {"Name": "thing"}


def test_close_invalidates_proxies(client, thing):
    """Test that proxies fail once the bus is closed."""
    client.close()

    with pytest.raises(HandleInvalidatedError):
        thing.call_method(IFACE, "Add", 1, 2)
