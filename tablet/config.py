"""Device constants and runtime configuration."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from .device.handshake import DEFAULT_PROFILE, PROFILES, HandshakeProfile
from .device.poller import DEFAULT_READ_TIMEOUT_MS

VENDOR_ID = 0x08F2
PRODUCT_ID = 0x6811

STORAGE_INTERFACE = 0
BUTTONS_INTERFACE = 1
TABLET_INTERFACE = 2

DEFAULT_INTERFACES = (BUTTONS_INTERFACE, TABLET_INTERFACE)


@dataclass(frozen=True)
class TabletConfig:
    """Everything TabletDriver needs to know about the device and the loop.

    Attributes:
        vendor_id: VID to match
        product_id: PID to match
        claim_interfaces: Interfaces taken from the kernel, in claim order
        poll_interfaces: Interfaces whose input endpoints are polled
        handshake_profile: Name of the handshake variant to send
        tolerate_handshake_failure: Override the profile's failure policy;
            None keeps the profile default
        read_timeout_ms: Per-read interrupt timeout
        read_size: Interrupt read size; None uses the profile's report size
    """
    vendor_id: int = VENDOR_ID
    product_id: int = PRODUCT_ID
    claim_interfaces: Tuple[int, ...] = DEFAULT_INTERFACES
    poll_interfaces: Tuple[int, ...] = DEFAULT_INTERFACES
    handshake_profile: str = DEFAULT_PROFILE
    tolerate_handshake_failure: Optional[bool] = None
    read_timeout_ms: int = DEFAULT_READ_TIMEOUT_MS
    read_size: Optional[int] = None

    def __post_init__(self):
        if self.handshake_profile not in PROFILES:
            raise ValueError(
                f"Unknown handshake profile {self.handshake_profile!r}; "
                f"choose from {sorted(PROFILES)}"
            )
        if self.read_timeout_ms <= 0:
            raise ValueError("read_timeout_ms must be positive")
        if self.read_size is not None and self.read_size <= 0:
            raise ValueError("read_size must be positive")
        if len(set(self.claim_interfaces)) != len(self.claim_interfaces):
            raise ValueError("claim_interfaces contains duplicates")
        if not self.poll_interfaces:
            raise ValueError("poll_interfaces must name at least one interface")
        unclaimed = set(self.poll_interfaces) - set(self.claim_interfaces)
        if unclaimed:
            raise ValueError(
                f"Cannot poll unclaimed interfaces: {sorted(unclaimed)}"
            )
        # Handshake target must be detached from its kernel driver
        target = self.profile.message.index
        if target not in self.claim_interfaces:
            raise ValueError(
                f"Handshake profile {self.handshake_profile!r} targets interface "
                f"{target}, which is not in claim_interfaces"
            )

    @property
    def profile(self) -> HandshakeProfile:
        return PROFILES[self.handshake_profile]

    @property
    def effective_read_size(self) -> int:
        if self.read_size is not None:
            return self.read_size
        return self.profile.read_size
