"""Tablet driver facade.

Wires the startup sequence (locate -> topology -> claim -> handshake) and
the poll loop, and guarantees that kernel drivers are handed back however
the session ends.
"""
from __future__ import annotations

import logging
from typing import Callable, Dict, Optional

import usb.util

from .cancellation import CancellationToken
from .config import TabletConfig
from .device.handshake import send_handshake
from .device.interfaces import InterfaceClaim
from .device.poller import InputPoller
from .device.topology import input_interfaces, read_topology
from .device_finder import describe_device, is_device_available, open_device
from .errors import DescriptorReadError
from .models import DeviceInfo, InterfaceInfo

logger = logging.getLogger(__name__)


class TabletDriver:
    """High-level interface to the tablet.

    This class acts as a facade, managing:
    1. Device discovery and the open handle
    2. The endpoint topology read at open time
    3. Interface claims (InterfaceClaim) and their teardown
    4. The mode-switch handshake
    5. The input poll loop (InputPoller)

    Example:
        >>> cancel = CancellationToken()
        >>> with TabletDriver() as tablet:
        ...     tablet.poll(cancel, lambda iface, data: print(iface, data.hex()))
    """

    def __init__(self, config: Optional[TabletConfig] = None, backend=None):
        """Initialize the driver.

        Args:
            config: Device and loop configuration (defaults to TabletConfig())
            backend: pyusb backend, or None for the default libusb lookup
        """
        self._config = config or TabletConfig()
        self._backend = backend

        self._device = None
        self._device_info: Optional[DeviceInfo] = None
        self._topology: Dict[int, InterfaceInfo] = {}
        self._claim: Optional[InterfaceClaim] = None
        self._handshake_ok: Optional[bool] = None

    @property
    def config(self) -> TabletConfig:
        return self._config

    @property
    def is_open(self) -> bool:
        return self._device is not None

    @property
    def device_info(self) -> Optional[DeviceInfo]:
        return self._device_info

    @property
    def topology(self) -> Dict[int, InterfaceInfo]:
        return dict(self._topology)

    @property
    def handshake_ok(self) -> Optional[bool]:
        """Result of the handshake: True, False (tolerated failure) or None (not sent)."""
        return self._handshake_ok

    def open(self) -> None:
        """Find the tablet, claim its interfaces and send the handshake.

        If any step fails, interfaces claimed so far are released (and their
        kernel drivers reattached) before the error propagates.

        Raises:
            TabletError subclasses for each failing phase.
        """
        if self.is_open:
            logger.warning("Already open")
            return

        config = self._config
        self._device = open_device(
            config.vendor_id, config.product_id, backend=self._backend
        )
        self._device_info = describe_device(self._device)

        try:
            self._topology = read_topology(self._device)

            self._claim = InterfaceClaim(self._device)
            self._claim.claim(config.claim_interfaces)

            self._handshake_ok = send_handshake(
                self._device,
                config.profile,
                tolerate_failure=config.tolerate_handshake_failure,
            )
        except BaseException:
            self.close()
            raise

    def close(self) -> None:
        """Release interfaces, reattach kernel drivers and free the handle."""
        if self._claim is not None:
            self._claim.release()
            self._claim = None

        if self._device is not None:
            try:
                usb.util.dispose_resources(self._device)
            except Exception as e:
                logger.warning(f"Error disposing device resources: {e}")
            finally:
                self._device = None
            logger.info("Closed tablet %s", self._device_info.device_id)

        self._topology = {}
        self._handshake_ok = None

    def is_device_available(self) -> bool:
        """Check whether the configured device is attached, without opening it."""
        return is_device_available(
            self._config.vendor_id,
            self._config.product_id,
            backend=self._backend,
        )

    def create_poller(self) -> InputPoller:
        """Build a poller over the configured poll interfaces."""
        if not self.is_open:
            raise RuntimeError("Tablet is not open")

        watched = input_interfaces(self._topology, self._config.poll_interfaces)
        if not any(info.has_input for info in watched):
            raise DescriptorReadError(
                f"None of interfaces {list(self._config.poll_interfaces)} "
                f"declares an input endpoint"
            )

        return InputPoller(
            self._device,
            watched,
            timeout_ms=self._config.read_timeout_ms,
            read_size=self._config.effective_read_size,
        )

    def poll(
        self,
        cancel: CancellationToken,
        on_report: Callable[[int, bytes], None],
        on_timeout: Optional[Callable[[int], None]] = None,
    ) -> int:
        """Poll the tablet until `cancel` is set.

        Returns:
            Number of reports delivered.

        Raises:
            TransferError: On a fatal transport error.
        """
        return self.create_poller().run(cancel, on_report, on_timeout)

    def __enter__(self) -> TabletDriver:
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
