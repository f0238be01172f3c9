"""
Command line tool for cellularpy.

Inspects and controls modems through ModemManager, similar to mmcli.
"""

import sys
import time
import logging
import concurrent.futures
from typing import Callable, Optional

from .constants import ANY_IMEI
from .manager import ModemManager
from .handles import Modem
from .property_bag import PropertyBag
from .types import IPType
from .version import __version__
from .exceptions import CellularError


def format_record(record: Optional[PropertyBag]) -> str:
    """Render a record as "SignalLTE rsrp=-95.0 rsrq=-11.0"."""
    if record is None:
        return "n/a"
    fields = []
    for key, value in record.as_dict().items():
        if isinstance(value, dict):
            value = "{" + ", ".join(f"{k}={v}" for k, v in value.items()) + "}"
        fields.append(f"{key}={value}")
    return " ".join([type(record).__name__] + fields)


class CellularCLI:
    """Runs one command against a modem."""

    def __init__(
        self,
        imei: Optional[str] = None,
        wait: Optional[float] = None,
        manager_factory: Callable[[], ModemManager] = ModemManager
    ):
        """
        Initialize CLI.

        Args:
            imei: IMEI of the modem to use (None = first modem)
            wait: Seconds to wait for the modem if it is not present
            manager_factory: Creates the ModemManager
        """
        self.imei = imei
        self.wait = wait
        self._manager_factory = manager_factory
        self.manager: Optional[ModemManager] = None

    def run(self, args) -> int:
        """Run the command selected by args.command."""
        try:
            self.manager = self._manager_factory()
            handler = getattr(self, f"_cmd_{args.command}")
            return handler(args) or 0

        except CellularError as e:
            print(f"Error: {e}")
            return 1
        except concurrent.futures.TimeoutError:
            print("Error: no modem appeared in time")
            return 1
        except KeyboardInterrupt:
            return 0
        finally:
            if self.manager:
                self.manager.close()

    def _find_modem(self) -> Optional[Modem]:
        for modem in self.manager.available_modems():
            if self.imei is None or modem.imei == self.imei:
                return modem
        return None

    def _modem(self) -> Modem:
        modem = self._find_modem()
        if modem is not None:
            return modem

        if self.wait is None:
            raise CellularError("No modem found" if self.imei is None else f"Modem {self.imei} not found")

        print(f"Waiting up to {self.wait:g} s for a modem...")
        return self.manager.await_modem(self.imei or ANY_IMEI).result(timeout=self.wait)

    @staticmethod
    def _watch() -> None:
        print("Press Ctrl+C to stop")
        while True:
            time.sleep(1)

    # ---- Commands ----

    def _cmd_version(self, args) -> int:
        print(f"cellularpy {__version__}")
        print(f"ModemManager {self.manager.version()}")
        return 0

    def _cmd_list(self, args) -> int:
        modems = self.manager.available_modems()
        if not modems:
            print("No modems found")
            return 0

        for modem in modems:
            print(f"{modem.object_path}  {modem.manufacturer} {modem.model}  "
                  f"IMEI {modem.imei}  {modem.state.name}")
        return 0

    def _cmd_info(self, args) -> int:
        modem = self._modem()

        print(f"\nModem: {modem.object_path}")
        print(f"Model: {modem.manufacturer} {modem.model}")
        print(f"Firmware: {modem.firmware_version}")
        print(f"IMEI: {modem.imei}")
        print(f"Phone number: {modem.phone_number or 'n/a'}")
        print(f"State: {modem.state.name}")
        print(f"Power: {modem.power_state.name}")
        print(f"Lock: {modem.lock_state.name}")

        if modem.registered:
            print(f"Technology: {modem.technology().name}")
            print(f"Operator: {modem.operator_name} ({modem.operator_plmn})")
        return 0

    def _cmd_signal(self, args) -> int:
        modem = self._modem()

        if args.watch:
            modem.observe_signal(lambda signal: print(format_record(signal)), args.watch)
            self._watch()

        print(format_record(modem.signal()))
        return 0

    def _cmd_cells(self, args) -> int:
        cells = self._modem().cell_info()
        if not cells:
            print("No cells reported")
        for cell in cells:
            print(("* " if cell.serving else "  ") + format_record(cell))
        return 0

    def _cmd_location(self, args) -> int:
        print(format_record(self._modem().location()))
        return 0

    def _cmd_sim(self, args) -> int:
        modem = self._modem()
        sim = modem.active_sim()
        if sim is None:
            print("No SIM card")
            return 1

        if args.puk:
            if not args.pin:
                print("Error: --puk needs the new PIN in --pin")
                return 1
            sim.send_puk(args.puk, args.pin)
            print("SIM unblocked")
        elif args.pin:
            sim.send_pin(args.pin)
            print("SIM unlocked")

        print(f"SIM: {sim.object_path}")
        print(f"ICCID: {sim.iccid}")
        print(f"IMSI: {sim.imsi}")
        print(f"Home network: {sim.operator_name} ({sim.home_plmn})")
        print(f"Lock: {modem.lock_state.name}")
        return 0

    def _cmd_state(self, args) -> int:
        modem = self._modem()

        if args.action == "enable":
            modem.enable(True)
        elif args.action == "disable":
            modem.enable(False)
        elif args.action == "restart":
            modem = self.manager.reset_modem(modem, timeout=self.wait)
        elif args.action == "poweroff":
            modem.power_off()
        elif args.action == "powerlow":
            modem.power_low()
        elif args.action == "poweron":
            modem.power_on()

        print(f"{modem.object_path}: {modem.state.name}")
        return 0

    def _cmd_connect(self, args) -> int:
        conn = self._modem().connect(args.apn, IPType[args.ip_type.upper()])

        print(f"Connected: {conn.object_path}")
        print(f"Interface: {conn.linux_interface}")
        for config in (conn.ipv4_config(), conn.ipv6_config()):
            if config is not None:
                print(f"{config.ip_type.name}: {config.cidr} gateway {config.gateway} "
                      f"dns {config.dns1} {config.dns2}")
        return 0

    def _cmd_time(self, args) -> int:
        modem = self._modem()
        print(f"Network time: {modem.network_time()}")
        print(f"Epoch: {modem.network_time_epoch()}")
        return 0

    def _cmd_traffic(self, args) -> int:
        conn = self._modem().active_connection()
        if conn is None:
            print("No active connection")
            return 1

        if args.watch:
            conn.observe_traffic_stats(
                lambda stats: print(f"RX {stats.rx_bytes} B  TX {stats.tx_bytes} B"),
                args.watch
            )
            self._watch()

        stats = conn.traffic_stats()
        print(f"{conn.linux_interface}: RX {stats.rx_bytes} B  TX {stats.tx_bytes} B")
        return 0


def build_parser():
    """Build the argument parser."""
    import argparse

    parser = argparse.ArgumentParser(
        prog="cellular-cli",
        description="cellularpy CLI - Inspect and control modems through ModemManager",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  cellular-cli list
  cellular-cli --imei 490154203237518 info
  cellular-cli signal --watch 5
  cellular-cli --wait 30 connect internet --ip-type ipv4
        """
    )

    parser.add_argument("--imei", help="IMEI of the modem to use (default: first modem)")
    parser.add_argument("--wait", type=float, help="Seconds to wait for the modem to appear")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="List modems")
    sub.add_parser("info", help="Show modem information")
    sub.add_parser("version", help="Show library and ModemManager version")

    signal = sub.add_parser("signal", help="Show signal quality")
    signal.add_argument("--watch", type=int, metavar="SEC", help="Print updates every SEC seconds")

    sub.add_parser("cells", help="Show serving and neighbour cells")
    sub.add_parser("location", help="Show serving cell location")

    sim = sub.add_parser("sim", help="Show SIM information or unlock the SIM")
    sim.add_argument("--pin", help="PIN to unlock with (new PIN together with --puk)")
    sim.add_argument("--puk", help="PUK to unblock with")

    state = sub.add_parser("state", help="Change modem state")
    state.add_argument("action", choices=["enable", "disable", "restart", "poweroff", "powerlow", "poweron"])

    connect = sub.add_parser("connect", help="Establish a data connection")
    connect.add_argument("apn", help="Access point name")
    connect.add_argument("--ip-type", choices=["ipv4", "ipv6", "ipv4v6"], default="ipv4v6")

    sub.add_parser("time", help="Show network time")

    traffic = sub.add_parser("traffic", help="Show traffic of the active connection")
    traffic.add_argument("--watch", type=int, metavar="MS", help="Print updates every MS milliseconds")

    return parser


def main(argv=None):
    """Main entry point for CLI."""
    args = build_parser().parse_args(argv)

    # Setup logging
    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
    else:
        logging.basicConfig(
            level=logging.WARNING,
            format='%(levelname)s: %(message)s'
        )

    cli = CellularCLI(imei=args.imei, wait=args.wait)
    return cli.run(args)


if __name__ == "__main__":
    sys.exit(main())
