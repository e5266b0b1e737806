"""Command line entry point: stream raw tablet reports to stdout."""
from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from .cancellation import CancellationToken, install_signal_handlers
from .config import DEFAULT_INTERFACES, PRODUCT_ID, VENDOR_ID, TabletConfig
from .device.handshake import DEFAULT_PROFILE, PROFILES
from .device.poller import DEFAULT_READ_TIMEOUT_MS
from .device_finder import find_devices, describe_device
from .driver import TabletDriver
from .errors import TabletError


def _int_auto(text: str) -> int:
    """Parse decimal or 0x-prefixed hex."""
    return int(text, 0)


def _interface_list(text: str) -> tuple:
    return tuple(int(part) for part in text.split(",") if part.strip())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tablet-read",
        description="Claim the tablet's input interfaces and print raw reports.",
    )
    parser.add_argument("--vid", type=_int_auto, default=VENDOR_ID,
                        help="vendor ID (default 0x%(default)04x)")
    parser.add_argument("--pid", type=_int_auto, default=PRODUCT_ID,
                        help="product ID (default 0x%(default)04x)")
    parser.add_argument("--profile", choices=sorted(PROFILES), default=DEFAULT_PROFILE,
                        help="handshake variant for the device firmware")
    policy = parser.add_mutually_exclusive_group()
    policy.add_argument("--tolerate-handshake-failure", dest="tolerate",
                        action="store_true", default=None,
                        help="log and continue if the handshake transfer fails")
    policy.add_argument("--strict-handshake", dest="tolerate", action="store_false",
                        help="abort if the handshake transfer fails")
    parser.add_argument("--interfaces", type=_interface_list,
                        default=DEFAULT_INTERFACES,
                        help="comma separated interfaces to claim and poll (default 1,2)")
    parser.add_argument("--timeout-ms", type=int, default=DEFAULT_READ_TIMEOUT_MS,
                        help="per-read interrupt timeout in milliseconds")
    parser.add_argument("--read-size", type=int, default=None,
                        help="interrupt read size (default depends on profile)")
    parser.add_argument("--progress", action="store_true",
                        help="print a dot for every idle poll")
    parser.add_argument("--list", action="store_true",
                        help="list matching devices and exit")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="-v for info, -vv for per-transfer debug logging")
    return parser


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def _list_devices(vid: int, pid: int) -> int:
    devices = find_devices(expected_vid=vid, expected_pid=pid)
    if not devices:
        print(f"No device with VID=0x{vid:04X} PID=0x{pid:04X} attached")
        return 1
    for idx, device in enumerate(devices, 1):
        info = describe_device(device)
        print(f"#{idx}: {info.vendor_id:04x}:{info.product_id:04x} at {info.device_id}")
    return 0


def _print_report(interface: int, data: bytes) -> None:
    print(f"[iface {interface}] {data.hex(' ')}", flush=True)


def _print_progress(interface: int) -> None:
    print(".", end="", flush=True)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)

    try:
        if args.list:
            return _list_devices(args.vid, args.pid)

        config = TabletConfig(
            vendor_id=args.vid,
            product_id=args.pid,
            claim_interfaces=args.interfaces,
            poll_interfaces=args.interfaces,
            handshake_profile=args.profile,
            tolerate_handshake_failure=args.tolerate,
            read_timeout_ms=args.timeout_ms,
            read_size=args.read_size,
        )
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    except TabletError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    cancel = CancellationToken()
    restore_signals = install_signal_handlers(cancel)
    try:
        with TabletDriver(config) as tablet:
            print(f"Tablet found at {tablet.device_info.device_id}; "
                  f"polling interfaces {','.join(map(str, config.poll_interfaces))} "
                  f"(Ctrl+C to stop)")
            count = tablet.poll(
                cancel,
                _print_report,
                _print_progress if args.progress else None,
            )
        print(f"\nStopped after {count} reports.")
        return 0
    except TabletError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    finally:
        restore_signals()


if __name__ == "__main__":
    sys.exit(main())
