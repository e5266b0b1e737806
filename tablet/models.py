"""Immutable data models shared by the tablet driver layers.

All models are frozen dataclasses. They are built once (at open time or per
transfer) and never mutated afterwards.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


@dataclass(frozen=True)
class DeviceInfo:
    """Identity of an attached USB device as seen by pyusb.

    Attributes:
        vendor_id: USB Vendor ID
        product_id: USB Product ID
        bus: Bus number, if the backend reports it
        address: Device address on the bus, if the backend reports it
    """
    vendor_id: int
    product_id: int
    bus: Optional[int] = None
    address: Optional[int] = None

    @property
    def device_id(self) -> str:
        """Bus/address pair for log lines, e.g. '001:007'."""
        if self.bus is None or self.address is None:
            return f"{self.vendor_id:04x}:{self.product_id:04x}"
        return f"{self.bus:03d}:{self.address:03d}"


@dataclass(frozen=True)
class InterfaceInfo:
    """Endpoint layout of one interface of the active configuration.

    Attributes:
        number: bInterfaceNumber
        endpoints_in: Host-bound endpoint addresses, in declared order
        endpoints_out: Device-bound endpoint addresses, in declared order
    """
    number: int
    endpoints_in: Tuple[int, ...] = ()
    endpoints_out: Tuple[int, ...] = ()

    @property
    def has_input(self) -> bool:
        return bool(self.endpoints_in)


@dataclass(frozen=True)
class ClaimedInterface:
    """Record kept by InterfaceClaim for one interface it touched.

    Attributes:
        number: Interface number
        driver_was_active: A kernel driver was bound (and detached) at claim time
        claimed: The interface was successfully claimed
    """
    number: int
    driver_was_active: bool
    claimed: bool = False


@dataclass(frozen=True)
class HandshakeMessage:
    """A fully specified control transfer.

    Attributes:
        request_type: bmRequestType
        request: bRequest
        value: wValue
        index: wIndex (target interface)
        payload: Data stage bytes
        timeout_ms: Transfer timeout in milliseconds
    """
    request_type: int
    request: int
    value: int
    index: int
    payload: bytes
    timeout_ms: int = 1000


class OutcomeKind(Enum):
    """Classification of a single poll attempt."""
    DATA = "data"
    TIMEOUT = "timeout"
    FATAL = "fatal"


@dataclass(frozen=True)
class ReadOutcome:
    """Result of polling one interface once.

    Attributes:
        kind: DATA, TIMEOUT or FATAL
        interface: Interface number that was polled
        data: Bytes received (DATA only)
        endpoint: Endpoint that produced the data or the error
        error: Transport exception (FATAL only)
    """
    kind: OutcomeKind
    interface: int
    data: bytes = b""
    endpoint: Optional[int] = None
    error: Optional[BaseException] = field(default=None, compare=False)

    @classmethod
    def received(cls, interface: int, data: bytes, endpoint: int) -> ReadOutcome:
        return cls(OutcomeKind.DATA, interface, bytes(data), endpoint)

    @classmethod
    def timed_out(cls, interface: int) -> ReadOutcome:
        return cls(OutcomeKind.TIMEOUT, interface)

    @classmethod
    def failed(
        cls,
        interface: int,
        error: BaseException,
        endpoint: Optional[int] = None,
    ) -> ReadOutcome:
        return cls(OutcomeKind.FATAL, interface, endpoint=endpoint, error=error)

    @property
    def is_data(self) -> bool:
        return self.kind is OutcomeKind.DATA

    @property
    def is_timeout(self) -> bool:
        return self.kind is OutcomeKind.TIMEOUT

    @property
    def is_fatal(self) -> bool:
        return self.kind is OutcomeKind.FATAL
