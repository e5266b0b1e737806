"""Exception hierarchy for the tablet driver.

Every failure surfaced by the library derives from TabletError. Read
timeouts are not exceptions: the poller reports them as ReadOutcome values.
"""
from __future__ import annotations

from typing import Optional


class TabletError(RuntimeError):
    """Base class for all tablet driver errors."""
    pass


class DeviceNotFoundError(TabletError):
    """Raised when no attached device matches the vendor/product pair."""
    def __init__(self, message, vendor_id=None, product_id=None):
        super().__init__(message)
        self.vendor_id = vendor_id
        self.product_id = product_id


class EnumerationError(TabletError):
    """Raised when the USB backend cannot list attached devices."""
    pass


class OpenError(TabletError):
    """Raised when a matching device cannot be opened."""
    pass


class DescriptorReadError(TabletError):
    """Raised when the active configuration descriptor cannot be read."""
    pass


class InterfaceClaimError(TabletError):
    """Raised when detaching a kernel driver or claiming an interface fails."""
    def __init__(self, message, interface: int):
        super().__init__(message)
        self.interface = interface


class HandshakeError(TabletError):
    """Raised when the mode-switch control transfer fails."""
    pass


class TransferError(TabletError):
    """Raised when an interrupt transfer fails with anything but a timeout."""
    def __init__(self, message, interface: int, endpoint: Optional[int] = None):
        super().__init__(message)
        self.interface = interface
        self.endpoint = endpoint
