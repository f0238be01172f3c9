"""
Modem lifecycle example.

Demonstrates unlocking the SIM, connecting, reading traffic counters and
resetting a specific modem.
"""

import time

from cellularpy import CellularError, IncorrectPinError, IPType, LockState, ModemManager, ModemState

# Replace with your modem, SIM PIN and APN
IMEI = "490154203237518"
PIN = "1234"
APN = "internet"


def main():
    """Main function."""
    print("cellularpy - Modem Lifecycle\n")

    with ModemManager() as mm:
        modem = next((m for m in mm.available_modems() if m.imei == IMEI), None)
        if modem is None:
            print(f"Waiting for modem {IMEI}...")
            modem = mm.await_modem(IMEI).result(timeout=60)

        # Unlock SIM
        if modem.lock_state is LockState.SIM_PIN:
            try:
                modem.active_sim().send_pin(PIN)
                print("SIM unlocked")
            except IncorrectPinError:
                print("Wrong PIN, giving up")
                return

        # Enable and wait for registration
        if modem.state < ModemState.ENABLED:
            modem.enable()
        while not modem.registered:
            print(f"State: {modem.state.name}")
            time.sleep(2)

        # Connect
        try:
            conn = modem.connect(APN, IPType.IPV4)
        except CellularError as e:
            print(f"Connection failed: {e}")
            return

        config = conn.ipv4_config()
        print(f"Connected on {conn.linux_interface}: {config.cidr} via {config.gateway}")

        time.sleep(10)
        stats = conn.traffic_stats()
        print(f"Traffic: RX {stats.rx_bytes} B, TX {stats.tx_bytes} B")

        conn.disconnect()
        print("Disconnected")

        # Reset, the modem comes back with a new handle
        print("Resetting modem...")
        modem = mm.reset_modem(modem, timeout=120)
        print(f"Modem is back as {modem.object_path} ({modem.state.name})")


if __name__ == "__main__":
    main()
