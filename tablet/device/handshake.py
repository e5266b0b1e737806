"""Vendor handshake that switches the tablet interface into report mode.

The request fields are firmware-specific constants. Two firmware revisions
are known, each captured as a HandshakeProfile:

- "report-mode": 8-byte SET_REPORT on feature report 0x02. Strict.
- "legacy": 2-byte SET_REPORT on output report 0x02, wrapped in settle
  delays. Some firmware stalls the transfer yet switches modes anyway, so
  this profile tolerates failure by default.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import usb.core

from ..errors import HandshakeError
from ..models import HandshakeMessage

logger = logging.getLogger(__name__)

# HID class request to the interface: SET_REPORT
HID_SET_REPORT_REQUEST_TYPE = 0x21
HID_SET_REPORT = 0x09

HANDSHAKE_INTERFACE = 2
HANDSHAKE_TIMEOUT_MS = 1000
LEGACY_SETTLE_DELAY = 0.5  # seconds


@dataclass(frozen=True)
class HandshakeProfile:
    """A named handshake variant.

    Attributes:
        name: Profile identifier used in configuration
        message: Control transfer to issue
        settle_delay: Seconds to wait before and after the transfer
        tolerate_failure: Log and continue instead of raising on failure
        read_size: Interrupt read size that matches this firmware's reports
    """
    name: str
    message: HandshakeMessage
    settle_delay: float = 0.0
    tolerate_failure: bool = False
    read_size: int = 64


REPORT_MODE_PROFILE = HandshakeProfile(
    name="report-mode",
    message=HandshakeMessage(
        request_type=HID_SET_REPORT_REQUEST_TYPE,
        request=HID_SET_REPORT,
        value=0x0302,
        index=HANDSHAKE_INTERFACE,
        payload=bytes([0x02, 0x02, 0xB5, 0x02, 0x00, 0x00, 0x00, 0x00]),
        timeout_ms=HANDSHAKE_TIMEOUT_MS,
    ),
    read_size=64,
)

LEGACY_PROFILE = HandshakeProfile(
    name="legacy",
    message=HandshakeMessage(
        request_type=HID_SET_REPORT_REQUEST_TYPE,
        request=HID_SET_REPORT,
        value=0x0202,
        index=HANDSHAKE_INTERFACE,
        payload=bytes([0x02, 0x01]),
        timeout_ms=HANDSHAKE_TIMEOUT_MS,
    ),
    settle_delay=LEGACY_SETTLE_DELAY,
    tolerate_failure=True,
    read_size=8,
)

PROFILES: Dict[str, HandshakeProfile] = {
    REPORT_MODE_PROFILE.name: REPORT_MODE_PROFILE,
    LEGACY_PROFILE.name: LEGACY_PROFILE,
}

DEFAULT_PROFILE = REPORT_MODE_PROFILE.name


def get_profile(name: str) -> HandshakeProfile:
    """Look up a profile by name.

    Raises:
        KeyError: If the name is unknown (message lists valid names).
    """
    try:
        return PROFILES[name]
    except KeyError:
        raise KeyError(
            f"Unknown handshake profile {name!r}; choose from {sorted(PROFILES)}"
        ) from None


def send_handshake(
    device,
    profile: HandshakeProfile,
    *,
    tolerate_failure: Optional[bool] = None,
    sleep: Optional[Callable[[float], None]] = None,
) -> bool:
    """Issue the profile's control transfer exactly once.

    Args:
        device: Opened pyusb Device with the target interface claimed
        profile: Handshake variant to send
        tolerate_failure: Override the profile's failure policy (None keeps it)
        sleep: Delay function (defaults to time.sleep)

    Returns:
        True if the transfer succeeded, False if it failed and failure is
        tolerated.

    Raises:
        HandshakeError: If the transfer failed and failure is not tolerated.
    """
    if tolerate_failure is None:
        tolerate_failure = profile.tolerate_failure

    if sleep is None:
        sleep = time.sleep

    message = profile.message

    if profile.settle_delay:
        sleep(profile.settle_delay)

    error: Optional[str] = None
    cause: Optional[BaseException] = None
    try:
        written = device.ctrl_transfer(
            message.request_type,
            message.request,
            message.value,
            message.index,
            message.payload,
            timeout=message.timeout_ms,
        )
    except usb.core.USBError as e:
        error = str(e)
        cause = e
    else:
        if written != len(message.payload):
            error = f"short write ({written} of {len(message.payload)} bytes)"

    if profile.settle_delay:
        sleep(profile.settle_delay)

    if error is None:
        logger.info(
            "Handshake %r sent to interface %d: %s",
            profile.name, message.index, message.payload.hex(" "),
        )
        return True

    if tolerate_failure:
        logger.warning(
            "Handshake %r failed (%s); continuing because failure is tolerated",
            profile.name, error,
        )
        return False

    raise HandshakeError(f"Handshake {profile.name!r} failed: {error}") from cause
