from __future__ import annotations

import logging
from typing import Callable, List, Optional

import usb.control
import usb.core

from ..errors import DeviceNotFoundError, EnumerationError, OpenError
from ..models import DeviceInfo

logger = logging.getLogger(__name__)


def describe_device(device) -> DeviceInfo:
    """Convert a pyusb Device to DeviceInfo."""
    return DeviceInfo(
        vendor_id=device.idVendor,
        product_id=device.idProduct,
        bus=getattr(device, "bus", None),
        address=getattr(device, "address", None),
    )


def is_matching_device(
    device,
    *,
    expected_vid: Optional[int] = None,
    expected_pid: Optional[int] = None,
) -> bool:
    """
    Decide whether a pyusb Device is the one we are looking for.

    All checks are AND-combined; if a criterion is None, it is ignored.
    """
    if expected_vid is not None and device.idVendor != expected_vid:
        return False

    if expected_pid is not None and device.idProduct != expected_pid:
        return False

    return True


def find_devices(
    *,
    matcher: Optional[Callable[[object], bool]] = None,
    expected_vid: Optional[int] = None,
    expected_pid: Optional[int] = None,
    backend=None,
) -> List[object]:
    """
    Find all attached devices matching the given criteria.

    You can either pass a custom `matcher(device) -> bool` or use the
    built-in criteria (expected_vid / expected_pid).

    Returns:
        List of pyusb Device objects, in the backend's enumeration order.

    Raises:
        EnumerationError: If the backend cannot list devices.
    """
    try:
        devices = list(usb.core.find(find_all=True, backend=backend))
    except usb.core.NoBackendError as e:
        raise EnumerationError(f"No USB backend available: {e}") from e
    except usb.core.USBError as e:
        raise EnumerationError(f"Failed to enumerate USB devices: {e}") from e

    results: List[object] = []

    for device in devices:
        if matcher is not None:
            if matcher(device):
                results.append(device)
        elif is_matching_device(
            device,
            expected_vid=expected_vid,
            expected_pid=expected_pid,
        ):
            results.append(device)

    return results


def open_device(vendor_id: int, product_id: int, *, backend=None):
    """
    Return the first attached device matching vendor_id/product_id, opened.

    Unlike a strict single-device finder, several matches are not an error:
    the first one in enumeration order wins. pyusb opens handles lazily, so
    a standard GET_STATUS request is issued to force the handle open and
    surface permission problems here rather than at claim time.

    Raises:
        DeviceNotFoundError: No attached device matches.
        EnumerationError: The backend cannot list devices.
        OpenError: The match exists but cannot be opened.
    """
    matches = find_devices(
        expected_vid=vendor_id,
        expected_pid=product_id,
        backend=backend,
    )

    if not matches:
        raise DeviceNotFoundError(
            f"No device with VID=0x{vendor_id:04X} PID=0x{product_id:04X} found",
            vendor_id=vendor_id,
            product_id=product_id,
        )

    if len(matches) > 1:
        logger.warning(
            "%d matching devices found; using the first one", len(matches)
        )

    device = matches[0]
    info = describe_device(device)

    try:
        usb.control.get_status(device)
    except usb.core.USBError as e:
        raise OpenError(f"Failed to open device {info.device_id}: {e}") from e

    logger.info(
        "Opened device VID=0x%04X PID=0x%04X at %s",
        info.vendor_id, info.product_id, info.device_id,
    )
    return device


def is_device_available(vendor_id: int, product_id: int, *, backend=None) -> bool:
    """Check whether a matching device is attached, without opening it."""
    try:
        return bool(find_devices(
            expected_vid=vendor_id,
            expected_pid=product_id,
            backend=backend,
        ))
    except EnumerationError as e:
        logger.debug("Availability check failed: %s", e)
        return False
