"""
Exceptions for cellularpy.

Provides detailed error information for debugging modem and bus issues.
"""

from typing import Any, Optional


class CellularError(Exception):
    """
    Base exception for cellularpy errors.

    All cellularpy exceptions inherit from this class.
    """

    def __init__(
        self,
        message: str,
        object_path: Optional[str] = None,
        error_name: Optional[str] = None
    ) -> None:
        """
        Initialize exception with context.

        Args:
            message: Error description
            object_path: D-Bus object path involved (if applicable)
            error_name: Remote D-Bus error name (if applicable)
        """
        self.object_path = object_path
        self.error_name = error_name
        super().__init__(message)

    def __str__(self) -> str:
        """Format error message with context."""
        parts = [super().__str__()]

        if self.object_path:
            parts.append(f"Object: {self.object_path}")

        if self.error_name:
            parts.append(f"Error: {self.error_name}")

        return " | ".join(parts)


class ConnectionFailedError(CellularError):
    """
    Raised when the bus or the ModemManager service cannot be reached.

    This typically indicates:
    - No system bus available
    - ModemManager is not running
    - Missing permissions for the system bus
    """
    pass


class BusError(CellularError):
    """
    Raised when a remote method call or property access fails.

    The remote error name (e.g. "org.freedesktop.DBus.Error.UnknownMethod")
    is available as ``error_name``.
    """
    pass


class HandleInvalidatedError(CellularError):
    """
    Raised when a handle is used after its bus connection was closed.

    Obtain a fresh handle from a live ModemManager instance.
    """
    pass


class PreconditionNotMetError(CellularError):
    """
    Raised when a modem command is issued in the wrong modem state.

    Attributes:
        required: The state the command requires
        actual: The state the modem was in
    """

    def __init__(
        self,
        message: str,
        required: Any = None,
        actual: Any = None,
        object_path: Optional[str] = None
    ) -> None:
        self.required = required
        self.actual = actual
        super().__init__(message, object_path=object_path)


class UnsupportedTechnologyError(CellularError):
    """
    Raised when data for a radio technology cannot be decoded (yet).
    """

    def __init__(self, message: str, technology: Any = None) -> None:
        self.technology = technology
        super().__init__(message)


class PropertyBagError(CellularError):
    """Base class for typed property access failures."""
    pass


class KeyNotFoundError(PropertyBagError):
    """
    Raised when a property was not reported by the hardware.
    """

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Property '{key}' is not set")


class TypeMismatchError(PropertyBagError):
    """
    Raised when a property holds a value of an unexpected type.
    """

    def __init__(self, key: str, expected: Any, actual: Any) -> None:
        self.key = key
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Property '{key}' holds {actual}, expected {expected}"
        )


class AwaitCancelledError(CellularError):
    """
    Raised (through a future) when waiting for a modem was superseded.

    Only one modem can be awaited at a time; a newer request cancels the
    older one.
    """
    pass


class SIMError(CellularError):
    """
    Raised when SIM card operations fail.

    This indicates:
    - SIM unlock failed
    - SIM not present
    """
    pass


class IncorrectPinError(SIMError):
    """Raised when the SIM rejected the PIN."""
    pass


class IncorrectPukError(SIMError):
    """Raised when the SIM rejected the PUK."""
    pass


class InvalidCredentialFormatError(SIMError):
    """Raised when a PIN or PUK is malformed (e.g. wrong length)."""
    pass


class BearerError(CellularError):
    """
    Raised when information about a connection cannot be obtained.

    This indicates:
    - The network interface of the bearer is unknown to NetworkManager
    - NetworkManager is not running
    """
    pass
