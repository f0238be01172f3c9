"""
D-Bus names used to talk to ModemManager and NetworkManager.
"""

# Standard D-Bus interfaces
DBUS_IF_PROPERTIES = "org.freedesktop.DBus.Properties"
DBUS_IF_OBJECT_MANAGER = "org.freedesktop.DBus.ObjectManager"

# ModemManager
MM_BUS_NAME = "org.freedesktop.ModemManager1"
MM_OBJ_MODEMMANAGER = "/org/freedesktop/ModemManager1"
MM_IF_MODEMMANAGER = "org.freedesktop.ModemManager1"

# ModemManager: modem objects
MM_IF_MODEM = "org.freedesktop.ModemManager1.Modem"
MM_IF_MODEM_3GPP = "org.freedesktop.ModemManager1.Modem.Modem3gpp"
MM_IF_MODEM_LOCATION = "org.freedesktop.ModemManager1.Modem.Location"
MM_IF_MODEM_SIMPLE = "org.freedesktop.ModemManager1.Modem.Simple"
MM_IF_MODEM_SIGNAL = "org.freedesktop.ModemManager1.Modem.Signal"
MM_IF_MODEM_TIME = "org.freedesktop.ModemManager1.Modem.Time"

# ModemManager: bearer and SIM objects
MM_IF_BEARER = "org.freedesktop.ModemManager1.Bearer"
MM_IF_SIM = "org.freedesktop.ModemManager1.Sim"

# ModemManager: error names
MM_ERROR_ME_INCORRECT_PARAMETERS = "org.freedesktop.ModemManager1.Error.MobileEquipment.IncorrectParameters"
MM_ERROR_ME_INCORRECT_PASSWORD = "org.freedesktop.ModemManager1.Error.MobileEquipment.IncorrectPassword"

# Object path used by ModemManager for "no object"
NULL_OBJECT_PATH = "/"

# NetworkManager
NM_BUS_NAME = "org.freedesktop.NetworkManager"
NM_OBJ_NETWORKMANAGER = "/org/freedesktop/NetworkManager"
NM_IF_NETWORKMANAGER = "org.freedesktop.NetworkManager"
NM_IF_DEVICE_STATISTICS = "org.freedesktop.NetworkManager.Device.Statistics"

# Generic D-Bus error names
DBUS_ERROR_UNKNOWN_METHOD = "org.freedesktop.DBus.Error.UnknownMethod"
DBUS_ERROR_UNKNOWN_OBJECT = "org.freedesktop.DBus.Error.UnknownObject"
DBUS_ERROR_INVALID_ARGS = "org.freedesktop.DBus.Error.InvalidArgs"

# Identity that matches any modem when awaiting one
ANY_IMEI = "<ANY_IMEI>"
