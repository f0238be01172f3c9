"""
Tests for the signal, location, cell info and IP configuration parsers.
"""

import pytest

from cellularpy.exceptions import KeyNotFoundError, TypeMismatchError, UnsupportedTechnologyError
from cellularpy.parsers import (
    CellInfoParser,
    IPConfigParser,
    LocationParser,
    LocationStringParser,
    SignalParser,
    parse_hex,
    split_plmn,
)
from cellularpy.records import CellInfoLTE, CellInfoNR5G, LocationLTE, LocationNR5G, SignalLTE, SignalNR5G
from cellularpy.types import IPType, Technology


# ---- helpers ----

def test_split_plmn():
    """Test fixed-width MCC/MNC split."""
    assert split_plmn("26201") == ("262", "01")
    assert split_plmn("310410") == ("310", "410")


def test_split_plmn_does_not_validate_digits():
    """Test that any characters are accepted as-is."""
    assert split_plmn("ABCde") == ("ABC", "de")


def test_parse_hex():
    """Test hex decoding of identifiers."""
    assert parse_hex("1A2B") == 6699
    assert parse_hex("3c4d") == 15437


def test_parse_hex_invalid():
    """Test that malformed hex fails with ValueError."""
    with pytest.raises(ValueError):
        parse_hex("XYZ")
    with pytest.raises(ValueError):
        parse_hex("-1A")


# ---- SignalParser ----

def test_signal_lte(raw_lte_signal):
    """Test decoding LTE signal quality."""
    signal = SignalParser().parse(raw_lte_signal, Technology.LTE)

    assert isinstance(signal, SignalLTE)
    assert signal.tech is Technology.LTE
    assert signal.rsrp == -95.0
    assert signal.rsrq == -11.0
    assert signal.rssi == -65.0
    assert signal.sinr == 8.4
    assert not signal.has_key("error-rate")


def test_signal_nr5g():
    """Test decoding 5G NR signal quality (no RSSI)."""
    signal = SignalParser().parse({"rsrp": -88.0, "rssi": -60.0, "snr": 12.0}, Technology.NR5G)

    assert isinstance(signal, SignalNR5G)
    assert signal.tech is Technology.NR5G
    assert signal.rsrp == -88.0
    assert signal.sinr == 12.0
    assert not signal.has_key("rssi")


@pytest.mark.parametrize("tech", [Technology.LTE, Technology.NR5G])
@pytest.mark.parametrize("raw", [{}, {"rsrp": -95.0}, {"rsrq": -11.0, "snr": 3.0}])
def test_signal_partial(tech, raw):
    """Test that decoding partial data never fails and omitted fields raise KeyNotFoundError."""
    signal = SignalParser().parse(raw, tech)

    for key, accessor in (("rsrp", "rsrp"), ("rsrq", "rsrq"), ("snr", "sinr")):
        if key in raw:
            assert getattr(signal, accessor) == raw[key]
        else:
            with pytest.raises(KeyNotFoundError):
                getattr(signal, accessor)


@pytest.mark.parametrize("tech", [Technology.UNKNOWN, Technology.GSM, Technology.UMTS])
def test_signal_unsupported_technology(tech):
    """Test that other technologies fail with UnsupportedTechnologyError."""
    with pytest.raises(UnsupportedTechnologyError) as exc_info:
        SignalParser().parse({"rsrp": -95.0}, tech)

    assert exc_info.value.technology is tech


def test_signal_wrong_value_type():
    """Test that non-float values are rejected."""
    with pytest.raises(TypeMismatchError):
        SignalParser().parse({"rsrp": "-95"}, Technology.LTE)


# ---- LocationParser ----

def test_location_lte():
    """Test decoding location identifiers."""
    location = LocationParser().parse({"operator-id": "26202", "ci": "1A2B", "tac": "3C4D"}, Technology.LTE)

    assert isinstance(location, LocationLTE)
    assert location.mcc == "262"
    assert location.mnc == "02"
    assert location.ci == 6699
    assert location.tac == 15437


def test_location_nr5g_partial():
    """Test that missing identifiers are left out."""
    location = LocationParser().parse({"tac": "10"}, Technology.NR5G)

    assert isinstance(location, LocationNR5G)
    assert location.tac == 16
    with pytest.raises(KeyNotFoundError):
        location.mcc
    with pytest.raises(KeyNotFoundError):
        location.ci


def test_location_bad_hex_propagates():
    """Test that malformed hex identifiers are fatal outside the string path."""
    with pytest.raises(ValueError):
        LocationParser().parse({"ci": "not-hex"}, Technology.LTE)


def test_location_unsupported_technology():
    """Test that other technologies fail with UnsupportedTechnologyError."""
    with pytest.raises(UnsupportedTechnologyError):
        LocationParser().parse({}, Technology.UMTS)


def test_location_types_are_siblings():
    """Test that LTE and NR locations are distinct record types."""
    assert not issubclass(LocationNR5G, LocationLTE)
    assert not issubclass(LocationLTE, LocationNR5G)


# ---- LocationStringParser ----

@pytest.mark.parametrize("tech,record_type", [
    (Technology.LTE, LocationLTE),
    (Technology.NR5G, LocationNR5G),
])
def test_location_string(tech, record_type):
    """Test decoding a well-formed 3GPP location string."""
    location = LocationStringParser().parse("262,02,FFFE,1A2B,3C4D", tech)

    assert isinstance(location, record_type)
    assert location.mcc == "262"
    assert location.mnc == "02"
    assert location.ci == 6699
    assert location.tac == 15437


def test_location_string_empty_lac():
    """Test strings without LAC, as reported by LTE-only modems."""
    location = LocationStringParser().parse("310,410,,1A2B,3C4D", Technology.LTE)

    assert location.mnc == "410"
    assert location.ci == 6699


@pytest.mark.parametrize("location_string", [
    "",
    "262,02,FFFE,1A2B",
    "262,02",
    "26,02,FFFE,1A2B,3C4D",
    "262,02,FFFE,XYZ,3C4D",
    "garbage",
])
def test_location_string_malformed_yields_none(location_string):
    """Test that malformed strings yield None instead of raising."""
    assert LocationStringParser().parse(location_string, Technology.LTE) is None


def test_location_string_not_a_string():
    """Test that non-string values yield None."""
    assert LocationStringParser().parse(1234, Technology.LTE) is None


def test_location_string_unsupported_technology():
    """Test that unsupported technologies yield None."""
    assert LocationStringParser().parse("262,02,FFFE,1A2B,3C4D", Technology.UMTS) is None


# ---- CellInfoParser ----

def test_cell_info_keeps_lte_and_nr_in_order(raw_cells):
    """Test that GSM cells are dropped and the order is preserved."""
    cells = CellInfoParser().parse(raw_cells)

    assert [type(cell) for cell in cells] == [CellInfoLTE, CellInfoNR5G, CellInfoLTE]
    assert [cell.tech for cell in cells] == [Technology.LTE, Technology.NR5G, Technology.LTE]


def test_cell_info_serving_lte(raw_cells):
    """Test decoding a serving LTE cell."""
    serving = CellInfoParser().parse(raw_cells)[0]

    assert serving.serving is True
    assert serving.ci == 6699
    assert serving.pci == 31
    assert serving.earfcn == 6300
    assert serving.signal.rsrp == -95.0
    assert serving.signal.sinr == 8.4
    assert serving.location.mcc == "262"
    assert serving.location.tac == 15437


def test_cell_info_neighbour_nr(raw_cells):
    """Test decoding a neighbour NR cell without identity."""
    neighbour = CellInfoParser().parse(raw_cells)[1]

    assert neighbour.serving is False
    assert neighbour.pci == 257
    assert neighbour.nrarfcn == 632628
    assert neighbour.signal.rsrp == -88.0
    with pytest.raises(KeyNotFoundError):
        neighbour.ci
    with pytest.raises(KeyNotFoundError):
        neighbour.location.mcc


def test_cell_info_serving_defaults_to_false():
    """Test that a missing serving flag means neighbour cell."""
    cells = CellInfoParser().parse([{"cell-type": 5}])
    assert cells[0].serving is False


def test_cell_info_unknown_and_missing_cell_type():
    """Test that cells with unknown or missing type are dropped."""
    assert CellInfoParser().parse([{"cell-type": 42}, {"ci": "1"}, {"cell-type": 1}]) == []


def test_cell_info_empty():
    """Test decoding an empty cell list."""
    assert CellInfoParser().parse([]) == []


# ---- IPConfigParser ----

def test_ip_config_ipv4():
    """Test decoding an IPv4 configuration."""
    config = IPConfigParser().parse(
        {"method": 3, "address": "10.64.12.7", "prefix": 30, "gateway": "10.64.12.5",
         "dns1": "10.74.210.210", "dns2": "10.74.210.211", "mtu": 1500},
        IPType.IPV4
    )

    assert config.ip_type is IPType.IPV4
    assert config.address == "10.64.12.7"
    assert config.prefix == 30
    assert config.gateway == "10.64.12.5"
    assert config.dns1 == "10.74.210.210"
    assert config.dns2 == "10.74.210.211"
    assert config.cidr == "10.64.12.7/30"


def test_ip_config_optional_fields():
    """Test that gateway and DNS are optional."""
    config = IPConfigParser().parse({"address": "2001:db8::1", "prefix": 64}, IPType.IPV6)

    assert config.gateway is None
    assert config.dns1 is None


def test_ip_config_absent():
    """Test that a configuration without address yields None."""
    assert IPConfigParser().parse({"method": 0}, IPType.IPV4) is None


def test_ip_config_invalid_family():
    """Test that only IPv4 and IPv6 configurations exist."""
    with pytest.raises(ValueError):
        IPConfigParser().parse({"address": "10.0.0.1", "prefix": 8}, IPType.IPV4V6)
