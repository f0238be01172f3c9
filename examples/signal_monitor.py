"""
Signal monitoring example.

Demonstrates observers for modem state, signal quality and cell location.
"""

import time

from cellularpy import ModemManager, ModemState, Technology


def on_state_change(old: ModemState, new: ModemState):
    """Handle modem state changes."""
    print(f"\n[STATE] {old.name} -> {new.name}")


def on_signal(signal):
    """Handle signal quality updates."""
    if signal.tech is Technology.LTE and signal.has_key("rssi"):
        print(f"[SIGNAL] LTE RSRP={signal.get_or_default('rsrp', None)} RSSI={signal.rssi}")
    else:
        print(f"[SIGNAL] {signal.tech.name} RSRP={signal.get_or_default('rsrp', None)}")


def on_location(location):
    """Handle serving cell changes."""
    if location is None:
        print("[LOCATION] unavailable")
    else:
        print(f"[LOCATION] {location.mcc}-{location.mnc} CI {location.ci} TAC {location.tac}")


def main():
    """Main function."""
    print("cellularpy - Signal Monitor\n")

    with ModemManager() as mm:
        modem = mm.any_modem()
        if modem is None:
            print("Waiting for a modem...")
            modem = mm.await_modem().result(timeout=60)

        modem.observe_modem_state(on_state_change)

        if not modem.registered:
            print(f"Modem is {modem.state.name}, enabling...")
            modem.enable()
            while not modem.registered:
                time.sleep(1)

        print(f"Registered on {modem.operator_name} via {modem.technology().name}\n")

        modem.observe_signal(on_signal, interval_sec=5)
        modem.observe_location(on_location)

        try:
            while True:
                time.sleep(1)

        except KeyboardInterrupt:
            print("\nStopping...")


if __name__ == "__main__":
    main()
