"""
SIM card handle.

Handles unlocking and SIM identity properties.
"""

import logging

from .base import RemoteHandle
from ..constants import (
    MM_ERROR_ME_INCORRECT_PARAMETERS,
    MM_ERROR_ME_INCORRECT_PASSWORD,
    MM_IF_SIM,
)
from ..exceptions import (
    BusError,
    IncorrectPinError,
    IncorrectPukError,
    InvalidCredentialFormatError,
    SIMError,
)

logger = logging.getLogger(__name__)


class SIM(RemoteHandle):
    """
    Handle of a SIM card, obtained through ``Modem.active_sim()``.

    Example:

    .. code-block:: python

        sim = modem.active_sim()
        if modem.lock_state is LockState.SIM_PIN:
            sim.send_pin("1234")
    """

    INTERFACE = MM_IF_SIM

    @property
    def active(self) -> bool:
        """Whether this SIM is the active one (always True on single-SIM modems)."""
        try:
            return bool(self._get("Active"))
        except BusError:
            # property added in ModemManager 1.16
            return True

    @property
    def imsi(self) -> str:
        """International Mobile Subscriber Identity."""
        return self._get("Imsi")

    @property
    def iccid(self) -> str:
        """Integrated Circuit Card Identifier."""
        return self._get("SimIdentifier")

    @property
    def home_plmn(self) -> str:
        """PLMN (MCC + MNC) of the home network, e.g. "26201"."""
        return self._get("OperatorIdentifier")

    @property
    def operator_name(self) -> str:
        """Name of the home network operator."""
        return self._get("OperatorName")

    def send_pin(self, pin: str) -> None:
        """
        Unlock the SIM with its PIN.

        Args:
            pin: PIN code

        Raises:
            IncorrectPinError: If the PIN was wrong
            InvalidCredentialFormatError: If the PIN is malformed
            SIMError: For other unlock failures
        """
        logger.info(f"Sending PIN to {self.object_path}")
        try:
            self._call("SendPin", pin)
        except BusError as e:
            raise self._translate(e, IncorrectPinError, "PIN") from e
        logger.info("SIM unlocked with PIN")

    def send_puk(self, puk: str, pin: str) -> None:
        """
        Unblock the SIM with its PUK and set a new PIN.

        Args:
            puk: PUK code
            pin: New PIN code

        Raises:
            IncorrectPukError: If the PUK was wrong
            InvalidCredentialFormatError: If PUK or PIN are malformed
            SIMError: For other unlock failures
        """
        logger.info(f"Sending PUK to {self.object_path}")
        try:
            self._call("SendPuk", puk, pin)
        except BusError as e:
            raise self._translate(e, IncorrectPukError, "PUK") from e
        logger.info("SIM unblocked with PUK")

    def _translate(self, error: BusError, incorrect: type, what: str) -> SIMError:
        if error.error_name == MM_ERROR_ME_INCORRECT_PASSWORD:
            return incorrect(f"Incorrect {what}", object_path=self.object_path, error_name=error.error_name)
        if error.error_name == MM_ERROR_ME_INCORRECT_PARAMETERS:
            return InvalidCredentialFormatError(
                f"Invalid {what} format", object_path=self.object_path, error_name=error.error_name
            )
        return SIMError(f"Sending {what} failed: {error}", object_path=self.object_path, error_name=error.error_name)
