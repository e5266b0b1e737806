"""Integration tests for TabletDriver against a simulated tablet.

The fake device implements the slice of the pyusb Device API the driver
uses; usb.core.find and the usb.util / usb.control helpers are patched.
"""
import errno
import unittest
from unittest.mock import patch

import usb.core

from tablet.cancellation import CancellationToken
from tablet.config import TabletConfig
from tablet.driver import TabletDriver
from tablet.errors import (
    DescriptorReadError,
    DeviceNotFoundError,
    HandshakeError,
    InterfaceClaimError,
    TransferError,
)


class FakeEndpoint:
    def __init__(self, address):
        self.bEndpointAddress = address


class FakeInterface:
    def __init__(self, number, endpoints):
        self.bInterfaceNumber = number
        self.bAlternateSetting = 0
        self._endpoints = [FakeEndpoint(a) for a in endpoints]

    def __iter__(self):
        return iter(self._endpoints)


class FakeTablet:
    """Simulated 08f2:6811 tablet: storage (0), buttons (1), pen (2)."""

    idVendor = 0x08F2
    idProduct = 0x6811
    bus = 1
    address = 12

    ENDPOINTS = {0: (0x81, 0x02), 1: (0x82,), 2: (0x83,)}

    def __init__(self, active_drivers=(0, 1, 2), reads=None, on_read=None):
        self.bound = set(active_drivers)
        self.detached = []
        self.attached = []
        self.control_transfers = []
        self.ctrl_error = None
        self.reads = []
        self._scripts = {ep: list(items) for ep, items in (reads or {}).items()}
        self._on_read = on_read

    def get_active_configuration(self):
        return [FakeInterface(n, eps) for n, eps in self.ENDPOINTS.items()]

    def is_kernel_driver_active(self, interface):
        return interface in self.bound

    def detach_kernel_driver(self, interface):
        self.bound.discard(interface)
        self.detached.append(interface)

    def attach_kernel_driver(self, interface):
        self.bound.add(interface)
        self.attached.append(interface)

    def ctrl_transfer(self, request_type, request, value, index, payload, timeout=None):
        self.control_transfers.append((request_type, request, value, index, bytes(payload), timeout))
        if self.ctrl_error is not None:
            raise self.ctrl_error
        return len(payload)

    def read(self, endpoint, size, timeout=None):
        self.reads.append((endpoint, size, timeout))
        if self._on_read is not None:
            self._on_read(endpoint, len(self.reads))
        script = self._scripts.get(endpoint)
        if not script:
            raise usb.core.USBTimeoutError("Operation timed out", errno=errno.ETIMEDOUT)
        item = script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return bytearray(item)


class DriverTestCase(unittest.TestCase):

    def setUp(self):
        self.device = FakeTablet()
        self.patchers = [
            patch('usb.core.find', side_effect=lambda **kw: iter([self.device])),
            patch('usb.control.get_status'),
            patch('usb.util.claim_interface'),
            patch('usb.util.release_interface'),
            patch('usb.util.dispose_resources'),
            patch('tablet.device.handshake.time.sleep'),
        ]
        mocks = [p.start() for p in self.patchers]
        self.mock_claim = mocks[2]
        self.mock_release = mocks[3]
        self.mock_dispose = mocks[4]
        self.mock_sleep = mocks[5]

    def tearDown(self):
        for p in reversed(self.patchers):
            p.stop()


class TestOpen(DriverTestCase):

    def test_report_mode_startup(self):
        with TabletDriver() as tablet:
            self.assertTrue(tablet.is_open)
            self.assertTrue(tablet.handshake_ok)
            self.assertEqual(tablet.device_info.device_id, "001:012")
            self.assertEqual(sorted(tablet.topology), [0, 1, 2])
            self.assertEqual(tablet.topology[2].endpoints_in, (0x83,))

        self.assertEqual(self.device.detached, [1, 2])
        self.assertEqual(self.device.control_transfers, [
            (0x21, 0x09, 0x0302, 2, bytes.fromhex("0202b50200000000"), 1000),
        ])
        self.mock_dispose.assert_called_once_with(self.device)

    def test_device_not_found_touches_nothing(self):
        self.device = FakeTablet()
        self.device.idProduct = 0x6812

        with self.assertRaises(DeviceNotFoundError):
            TabletDriver().open()

        self.assertEqual(self.device.detached, [])
        self.mock_dispose.assert_not_called()

    def test_strict_handshake_failure_restores_drivers(self):
        self.device.ctrl_error = usb.core.USBError("Pipe error", errno=errno.EPIPE)

        with self.assertRaises(HandshakeError):
            with TabletDriver():
                self.fail("body must not run")

        self.assertEqual(sorted(self.device.attached), [1, 2])
        self.assertEqual(self.device.bound, {0, 1, 2})
        self.mock_dispose.assert_called_once()

    def test_tolerated_handshake_failure_continues(self):
        self.device.ctrl_error = usb.core.USBError("Pipe error", errno=errno.EPIPE)
        config = TabletConfig(handshake_profile="legacy")

        with TabletDriver(config) as tablet:
            self.assertFalse(tablet.handshake_ok)
            poller = tablet.create_poller()

        self.assertEqual(len(self.device.control_transfers), 1)
        self.assertEqual(self.mock_sleep.call_count, 2)
        self.assertEqual(poller._read_size, 8)

    def test_explicit_strict_override_for_legacy(self):
        self.device.ctrl_error = usb.core.USBError("Pipe error", errno=errno.EPIPE)
        config = TabletConfig(handshake_profile="legacy", tolerate_handshake_failure=False)

        with self.assertRaises(HandshakeError):
            TabletDriver(config).open()

        self.assertEqual(sorted(self.device.attached), [1, 2])

    def test_claim_failure_restores_earlier_claims(self):
        self.mock_claim.side_effect = [None, usb.core.USBError("Resource busy", errno=errno.EBUSY)]

        with self.assertRaises(InterfaceClaimError):
            TabletDriver().open()

        self.assertEqual(sorted(self.device.attached), [1, 2])
        self.assertEqual(self.device.control_transfers, [])

    def test_descriptor_failure(self):
        def broken():
            raise usb.core.USBError("Configuration not set")
        self.device.get_active_configuration = broken

        with self.assertRaises(DescriptorReadError):
            TabletDriver().open()

        self.assertEqual(self.device.detached, [])
        self.mock_dispose.assert_called_once()

    def test_close_twice(self):
        tablet = TabletDriver()
        tablet.open()
        tablet.close()
        tablet.close()

        self.assertEqual(sorted(self.device.attached), [1, 2])
        self.assertFalse(tablet.is_open)

    def test_create_poller_requires_open(self):
        with self.assertRaises(RuntimeError):
            TabletDriver().create_poller()

    def test_polling_interfaces_without_input_endpoint(self):
        self.device.ENDPOINTS = {0: (0x81, 0x02), 1: (), 2: (0x83,)}
        config = TabletConfig(claim_interfaces=(1, 2), poll_interfaces=(1,))
        cancel = CancellationToken()

        with self.assertRaises(DescriptorReadError):
            with TabletDriver(config) as tablet:
                tablet.poll(cancel, lambda i, d: None)

        self.assertEqual(self.device.reads, [])
        self.assertEqual(sorted(self.device.attached), [1, 2])

    def test_device_availability(self):
        self.assertTrue(TabletDriver().is_device_available())
        self.device.idProduct = 0x6812
        self.assertFalse(TabletDriver().is_device_available())
        self.assertEqual(self.device.detached, [])


class TestPolling(DriverTestCase):

    def test_pen_reports_then_cancel(self):
        cancel = CancellationToken()

        def on_read(endpoint, count):
            if count >= 6:
                cancel.cancel()

        self.device = FakeTablet(
            reads={0x83: [bytes(64), b"\x02\x81\x00\x10"]},
            on_read=on_read,
        )
        received = []

        with TabletDriver() as tablet:
            count = tablet.poll(cancel, lambda i, d: received.append((i, d)))

        self.assertEqual(count, 2)
        self.assertEqual([i for i, _ in received], [2, 2])
        self.assertTrue(all(len(d) <= 64 for _, d in received))
        self.assertTrue(all(size == 64 for _, size, _ in self.device.reads))
        # Drivers for 1 and 2 restored; 0 never detached nor reattached
        self.assertEqual(sorted(self.device.attached), [1, 2])
        self.assertNotIn(0, self.device.detached)
        self.assertEqual(self.device.bound, {0, 1, 2})

    def test_fatal_on_buttons_stops_all_and_tears_down(self):
        cancel = CancellationToken()
        self.device = FakeTablet(
            reads={
                0x82: [usb.core.USBError("No such device", errno=errno.ENODEV)],
                0x83: [b"\x02"],
            },
        )

        with self.assertRaises(TransferError) as ctx:
            with TabletDriver() as tablet:
                tablet.poll(cancel, lambda i, d: None)

        self.assertEqual(ctx.exception.interface, 1)
        self.assertEqual([ep for ep, _, _ in self.device.reads], [0x82])
        self.assertEqual(sorted(self.device.attached), [1, 2])
        self.mock_dispose.assert_called_once()

    def test_inactive_drivers_not_reattached(self):
        cancel = CancellationToken()
        cancel.cancel()
        self.device = FakeTablet(active_drivers=(0, 2))

        with TabletDriver() as tablet:
            tablet.poll(cancel, lambda i, d: None)

        self.assertEqual(self.device.detached, [2])
        self.assertEqual(self.device.attached, [2])


if __name__ == '__main__':
    unittest.main()
