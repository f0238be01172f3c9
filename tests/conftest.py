"""
Pytest configuration and fixtures.

Provides shared test fixtures for cellularpy tests. ModemManager and
NetworkManager are simulated with MockBus.
"""

import pytest
import logging

from cellularpy import ModemManager
from cellularpy.constants import (
    MM_IF_BEARER,
    MM_IF_MODEM,
    MM_IF_MODEM_3GPP,
    MM_IF_MODEM_LOCATION,
    MM_IF_MODEM_SIGNAL,
    MM_IF_MODEM_TIME,
    MM_IF_MODEMMANAGER,
    MM_IF_SIM,
    MM_OBJ_MODEMMANAGER,
    NM_IF_DEVICE_STATISTICS,
    NM_IF_NETWORKMANAGER,
    NM_OBJ_NETWORKMANAGER,
)
from cellularpy.core import MockBus
from cellularpy.exceptions import BusError
from cellularpy.types import AccessTechnology, LockState, ModemState, PowerState


# Enable logging for tests
logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

IMEI = "490154203237518"
OTHER_IMEI = "356938035643809"
MM_VERSION = "1.20.6"

MODEM_BASE = "/org/freedesktop/ModemManager1/Modem"
MODEM_PATH = f"{MODEM_BASE}/0"
SIM_PATH = "/org/freedesktop/ModemManager1/SIM/0"
BEARER_PATH = "/org/freedesktop/ModemManager1/Bearer/0"
NM_DEVICE_PATH = "/org/freedesktop/NetworkManager/Devices/3"

LOCATION_STRING = "262,02,FFFE,1A2B,3C4D"
NETWORK_TIME = "2023-05-17T14:21:07+02:00"

LTE_SIGNAL = {"rsrp": -95.0, "rsrq": -11.0, "rssi": -65.0, "snr": 8.4, "error-rate": 0.0}
NR_SIGNAL = {"rsrp": -88.0, "rsrq": -10.5, "snr": 12.0}

RAW_CELLS = [
    {"cell-type": 2, "serving": False, "operator-id": "26201", "lac": "FFFE", "ci": "1234"},
    {"cell-type": 5, "serving": True, "operator-id": "26201", "ci": "1A2B", "physical-ci": "1F",
     "tac": "3C4D", "earfcn": 6300, "rsrp": -95.0, "rsrq": -11.0, "snr": 8.4},
    {"cell-type": 6, "serving": False, "physical-ci": "101", "nrarfcn": 632628, "rsrp": -88.0},
    {"cell-type": 5, "serving": False, "physical-ci": "2A", "earfcn": 1300, "rsrp": -110.0},
]


def modem_interfaces(
    imei=IMEI,
    state=ModemState.REGISTERED,
    access_technology=AccessTechnology.LTE,
    lock=LockState.UNLOCKED,
    sim_path=SIM_PATH,
    bearers=None,
    announce_imei=True
):
    """Interfaces and properties of a simulated modem object."""
    interfaces = {
        MM_IF_MODEM: {
            "Manufacturer": "Quectel",
            "Model": "EM12-G",
            "Revision": "EM12GPAR01A21M4G",
            "EquipmentIdentifier": imei,
            "OwnNumbers": ["+4915112345678"],
            "State": int(state),
            "PowerState": int(PowerState.ON),
            "UnlockRequired": int(lock),
            "AccessTechnologies": int(access_technology),
            "Sim": sim_path,
            "Bearers": list(bearers or []),
        },
        MM_IF_MODEM_3GPP: {
            "Imei": imei,
            "OperatorCode": "26201",
            "OperatorName": "Telekom.de",
        },
        MM_IF_MODEM_SIGNAL: {
            "Rate": 0,
            "Lte": dict(LTE_SIGNAL),
            "Nr5g": dict(NR_SIGNAL),
        },
        MM_IF_MODEM_LOCATION: {"Enabled": 0},
        MM_IF_MODEM_TIME: {},
    }
    if not announce_imei:
        del interfaces[MM_IF_MODEM]["EquipmentIdentifier"]
        del interfaces[MM_IF_MODEM_3GPP]["Imei"]
    return interfaces


def add_bearer(bus, path=BEARER_PATH, apn="internet", ip_type=4, connected=False):
    """Add a simulated bearer object with Connect / Disconnect."""
    bus.add_object(path, {
        MM_IF_BEARER: {
            "Connected": connected,
            "Interface": "wwan0" if connected else "",
            "Properties": {"apn": apn, "ip-type": ip_type},
            "Ip4Config": {"method": 3, "address": "10.64.12.7", "prefix": 30,
                          "gateway": "10.64.12.5", "dns1": "10.74.210.210"} if connected else {"method": 0},
            "Ip6Config": {"method": 0},
        }
    })

    def connect():
        bus.update_properties(path, MM_IF_BEARER, {
            "Connected": True,
            "Interface": "wwan0",
            "Ip4Config": {"method": 3, "address": "10.64.12.7", "prefix": 30,
                          "gateway": "10.64.12.5", "dns1": "10.74.210.210"},
        })

    def disconnect():
        bus.update_properties(path, MM_IF_BEARER, {"Connected": False, "Interface": ""})

    bus.set_method(path, MM_IF_BEARER, "Connect", connect)
    bus.set_method(path, MM_IF_BEARER, "Disconnect", disconnect)


def add_modem(bus, path=MODEM_PATH, **kwargs):
    """
    Add a simulated modem below the ModemManager ObjectManager.

    Installs handlers for the modem methods. Reset() removes the modem and
    adds it again under the next object path.
    """
    interfaces = modem_interfaces(**kwargs)
    imei = interfaces[MM_IF_MODEM_3GPP].get("Imei", kwargs.get("imei", IMEI))

    def enable(on):
        bus.update_properties(path, MM_IF_MODEM, {
            "State": int(ModemState.ENABLED if on else ModemState.DISABLED)
        })

    def set_power_state(state):
        bus.update_properties(path, MM_IF_MODEM, {"PowerState": state})

    def reset():
        index = int(path.rsplit("/", 1)[1]) + 1
        bus.remove_object(path)
        add_modem(bus, f"{MODEM_BASE}/{index}", **kwargs)

    def signal_setup(rate):
        bus.update_properties(path, MM_IF_MODEM_SIGNAL, {"Rate": rate})

    def create_bearer(properties):
        bearers = bus.read_property(path, MM_IF_MODEM, "Bearers")
        bearer_path = f"/org/freedesktop/ModemManager1/Bearer/{len(bearers)}"
        add_bearer(bus, bearer_path, properties.get("apn", ""), properties.get("ip-type", 0))
        bus.update_properties(path, MM_IF_MODEM, {"Bearers": bearers + [bearer_path]})
        return bearer_path

    bus.set_method(path, MM_IF_MODEM, "Enable", enable)
    bus.set_method(path, MM_IF_MODEM, "SetPowerState", set_power_state)
    bus.set_method(path, MM_IF_MODEM, "Reset", reset)
    bus.set_method(path, MM_IF_MODEM, "GetCellInfo", lambda: [dict(cell) for cell in RAW_CELLS])
    bus.set_method(path, MM_IF_MODEM, "CreateBearer", create_bearer)
    bus.set_method(path, MM_IF_MODEM_SIGNAL, "Setup", signal_setup)
    bus.set_method(path, MM_IF_MODEM_LOCATION, "Setup", lambda sources, signal: None)
    bus.set_method(path, MM_IF_MODEM_LOCATION, "GetLocation", lambda: {1: LOCATION_STRING})
    bus.set_method(path, MM_IF_MODEM_TIME, "GetNetworkTime", lambda: NETWORK_TIME)

    bus.add_object(path, interfaces, manager_path=MM_OBJ_MODEMMANAGER)
    return imei


def add_sim(bus, path=SIM_PATH):
    """Add a simulated SIM object."""
    bus.add_object(path, {
        MM_IF_SIM: {
            "Active": True,
            "SimIdentifier": "89490200001234567890",
            "Imsi": "262011234567890",
            "OperatorIdentifier": "26201",
            "OperatorName": "Telekom.de",
        }
    })


def add_network_manager(bus, interface_name="wwan0", device_path=NM_DEVICE_PATH):
    """Add a simulated NetworkManager knowing one device."""

    def get_device(name):
        if name != interface_name:
            raise BusError(f"No device found for interface {name}",
                           error_name="org.freedesktop.NetworkManager.UnknownDevice")
        return device_path

    bus.add_object(NM_OBJ_NETWORKMANAGER, {NM_IF_NETWORKMANAGER: {"Version": "1.42.4"}})
    bus.set_method(NM_OBJ_NETWORKMANAGER, NM_IF_NETWORKMANAGER, "GetDeviceByIpIface", get_device)
    bus.add_object(device_path, {
        NM_IF_DEVICE_STATISTICS: {"RefreshRateMs": 0, "RxBytes": 1024, "TxBytes": 512}
    })


@pytest.fixture
def mock_bus():
    """
    Create a connected MockBus exporting the ModemManager root object.

    Example:
        def test_something(mock_bus):
            add_modem(mock_bus)
            # ... test code ...
    """
    bus = MockBus()
    bus.connect()
    bus.add_object(MM_OBJ_MODEMMANAGER, {MM_IF_MODEMMANAGER: {"Version": MM_VERSION}})
    yield bus
    bus.close()


@pytest.fixture
def manager(mock_bus):
    """
    Create a ModemManager on the MockBus (no modems yet).

    Example:
        def test_modems(manager, mock_bus):
            add_modem(mock_bus)
            assert manager.modems_available()
    """
    mm = ModemManager(bus=mock_bus)
    yield mm
    mm.close()


@pytest.fixture
def modem(manager, mock_bus):
    """
    Create a registered LTE modem with SIM and return its handle.

    Example:
        def test_state(modem):
            assert modem.registered
    """
    add_sim(mock_bus)
    add_modem(mock_bus)
    return manager.any_modem()


@pytest.fixture
def raw_cells():
    """Raw GetCellInfo() result with a GSM, two LTE and one NR cell."""
    return [dict(cell) for cell in RAW_CELLS]


@pytest.fixture
def raw_lte_signal():
    """Raw Modem.Signal Lte property."""
    return dict(LTE_SIGNAL)
