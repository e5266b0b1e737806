"""USB device layer for the tablet.

This module provides:
- Endpoint topology of the active configuration (build_topology, read_topology)
- Scoped interface ownership with kernel driver restore (InterfaceClaim)
- The vendor mode-switch handshake (send_handshake, HandshakeProfile)
- The interrupt poll loop (InputPoller)
"""

from .topology import build_topology, read_topology, input_interfaces
from .interfaces import InterfaceClaim
from .handshake import (
    HandshakeProfile,
    PROFILES,
    DEFAULT_PROFILE,
    REPORT_MODE_PROFILE,
    LEGACY_PROFILE,
    get_profile,
    send_handshake,
)
from .poller import InputPoller, PollStats

__all__ = [
    # Topology
    'build_topology',
    'read_topology',
    'input_interfaces',

    # Lifecycle
    'InterfaceClaim',

    # Handshake
    'HandshakeProfile',
    'PROFILES',
    'DEFAULT_PROFILE',
    'REPORT_MODE_PROFILE',
    'LEGACY_PROFILE',
    'get_profile',
    'send_handshake',

    # Polling
    'InputPoller',
    'PollStats',
]
