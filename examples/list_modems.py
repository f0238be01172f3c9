"""
Modem listing example.

Demonstrates enumerating modems and reading their identity and SIM.
"""

from cellularpy import ModemManager


def main():
    """Main function."""
    print("cellularpy - Modem List\n")

    with ModemManager() as mm:
        print(f"ModemManager {mm.version()}\n")

        if not mm.modems_available():
            print("No modems found")
            return

        for modem in mm.available_modems():
            print(f"Modem: {modem.object_path}")
            print(f"  Model:    {modem.manufacturer} {modem.model}")
            print(f"  Firmware: {modem.firmware_version}")
            print(f"  IMEI:     {modem.imei}")
            print(f"  State:    {modem.state.name} (power {modem.power_state.name})")

            sim = modem.active_sim()
            if sim is None:
                print("  SIM:      none")
            else:
                print(f"  SIM:      {sim.iccid} ({sim.operator_name})")
                print(f"  Lock:     {modem.lock_state.name}")
            print()


if __name__ == "__main__":
    main()
