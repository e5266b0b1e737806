"""Scoped ownership of kernel-bound USB interfaces.

InterfaceClaim detaches host kernel drivers from the interfaces it claims and
restores them when released. Release runs from the context manager exit, so
drivers are reattached on every exit path, including errors raised while
claiming.

Example:
    >>> with InterfaceClaim(device) as claim:
    ...     claim.claim([1, 2])
    ...     poll(device)
    >>> # kernel drivers for 1 and 2 are bound again here
"""
from __future__ import annotations

import logging
from typing import List, Sequence, Tuple

import usb.core
import usb.util

from ..errors import InterfaceClaimError
from ..models import ClaimedInterface

logger = logging.getLogger(__name__)


class InterfaceClaim:
    """Claims interfaces for exclusive access and restores kernel drivers.

    Responsibilities:
    - Detach the kernel driver bound to each claimed interface
    - Claim the interface for this process
    - On release, give back every claimed interface and reattach every
      driver that was detached, each at most once

    Release is best-effort: failures are logged and swallowed because the
    caller is already exiting and cannot retry bus operations.
    """

    def __init__(self, device):
        """Initialize the claim set.

        Args:
            device: Opened pyusb Device
        """
        self._device = device
        self._records: List[ClaimedInterface] = []

    @property
    def claimed(self) -> Tuple[ClaimedInterface, ...]:
        """Records for every interface touched so far, in claim order."""
        return tuple(self._records)

    @property
    def detached_interfaces(self) -> Tuple[int, ...]:
        """Interfaces whose kernel driver was detached and awaits reattachment."""
        return tuple(r.number for r in self._records if r.driver_was_active)

    def claim(self, interfaces: Sequence[int]) -> None:
        """Detach kernel drivers and claim interfaces, in the given order.

        Interfaces claimed before a failure stay claimed; they are handed
        back by release().

        Raises:
            InterfaceClaimError: If querying, detaching or claiming fails.
        """
        for number in interfaces:
            driver_was_active = self._detach_kernel_driver(number)

            # Recorded before claiming so a detached driver is always restored
            self._records.append(ClaimedInterface(number, driver_was_active))

            try:
                usb.util.claim_interface(self._device, number)
            except usb.core.USBError as e:
                raise InterfaceClaimError(
                    f"Failed to claim interface {number}: {e}", interface=number
                ) from e

            self._records[-1] = ClaimedInterface(number, driver_was_active, claimed=True)
            logger.info(
                "Claimed interface %d (kernel driver %s)",
                number, "detached" if driver_was_active else "not bound",
            )

    def release(self) -> None:
        """Release claimed interfaces and reattach detached kernel drivers.

        Safe to call multiple times; the second call is a no-op.
        """
        records, self._records = self._records, []

        for record in reversed(records):
            if record.claimed:
                try:
                    usb.util.release_interface(self._device, record.number)
                except (usb.core.USBError, NotImplementedError, ValueError) as e:
                    logger.warning("Failed to release interface %d: %s", record.number, e)

            if record.driver_was_active:
                try:
                    self._device.attach_kernel_driver(record.number)
                    logger.info("Reattached kernel driver to interface %d", record.number)
                except (usb.core.USBError, NotImplementedError, ValueError) as e:
                    logger.warning(
                        "Failed to reattach kernel driver to interface %d: %s",
                        record.number, e,
                    )

    def _detach_kernel_driver(self, number: int) -> bool:
        """Detach the kernel driver bound to an interface, if any.

        Returns:
            True if a driver was bound and has been detached.
        """
        try:
            active = self._device.is_kernel_driver_active(number)
        except NotImplementedError:
            # Backend has no kernel driver concept (e.g. Windows)
            return False
        except usb.core.USBError as e:
            raise InterfaceClaimError(
                f"Failed to query kernel driver on interface {number}: {e}",
                interface=number,
            ) from e

        if not active:
            return False

        try:
            self._device.detach_kernel_driver(number)
        except usb.core.USBError as e:
            raise InterfaceClaimError(
                f"Failed to detach kernel driver from interface {number}: {e}",
                interface=number,
            ) from e

        logger.debug("Detached kernel driver from interface %d", number)
        return True

    def __enter__(self) -> InterfaceClaim:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()
