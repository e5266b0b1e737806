#!/usr/bin/env python3
"""
Interactive Tablet Test Script.

Finds the tablet, dumps its endpoint topology, claims the button and pen
interfaces, sends the handshake and prints the first reports (or stops on
Ctrl+C). Kernel drivers are reattached on exit.

Run with sudo or a udev rule granting access to 08f2:6811.
"""

import sys
import logging
from pathlib import Path

# Add package to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from tablet import CancellationToken, TabletConfig, TabletDriver, TabletError, install_signal_handlers

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)

PROFILE = "report-mode"  # or "legacy" for older firmware
MAX_REPORTS = 50


def main():
    tablet = TabletDriver(TabletConfig(handshake_profile=PROFILE))

    print("Looking for tablet...")
    if not tablet.is_device_available():
        print("No tablet attached (expected 08f2:6811)")
        return 1

    cancel = CancellationToken()
    restore = install_signal_handlers(cancel)
    counts = {}

    print("Opening tablet...")
    try:
        with tablet:
            print(f"Found at {tablet.device_info.device_id}")
            for info in tablet.topology.values():
                print(f"  Interface {info.number}: "
                      f"IN={[hex(a) for a in info.endpoints_in]} "
                      f"OUT={[hex(a) for a in info.endpoints_out]}")
            print(f"Handshake ok: {tablet.handshake_ok}")

            print(f"\nMove the pen or press buttons ({MAX_REPORTS} reports, Ctrl+C to stop)...")
            for interface, data in tablet.create_poller().reports(cancel):
                counts[interface] = counts.get(interface, 0) + 1
                print(f"iface {interface}: {data.hex(' ')}")
                if sum(counts.values()) >= MAX_REPORTS:
                    break
    except TabletError as e:
        print(f"Failed: {e}")
        return 1
    finally:
        restore()

    print("\nReports per interface:", counts or "none")
    print("Done.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
