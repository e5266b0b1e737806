"""Userspace driver for the 08f2:6811 graphics tablet."""

from .cancellation import CancellationToken, install_signal_handlers
from .config import TabletConfig, VENDOR_ID, PRODUCT_ID
from .driver import TabletDriver
from .errors import (
    TabletError,
    DeviceNotFoundError,
    EnumerationError,
    OpenError,
    DescriptorReadError,
    InterfaceClaimError,
    HandshakeError,
    TransferError,
)
from .models import (
    DeviceInfo,
    InterfaceInfo,
    ClaimedInterface,
    HandshakeMessage,
    OutcomeKind,
    ReadOutcome,
)

__all__ = [
    "CancellationToken",
    "install_signal_handlers",
    "TabletConfig",
    "VENDOR_ID",
    "PRODUCT_ID",
    "TabletDriver",
    "TabletError",
    "DeviceNotFoundError",
    "EnumerationError",
    "OpenError",
    "DescriptorReadError",
    "InterfaceClaimError",
    "HandshakeError",
    "TransferError",
    "DeviceInfo",
    "InterfaceInfo",
    "ClaimedInterface",
    "HandshakeMessage",
    "OutcomeKind",
    "ReadOutcome",
]
