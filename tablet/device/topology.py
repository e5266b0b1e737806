"""Endpoint topology of the device's active configuration.

Maps every declared interface number to its input/output endpoint
addresses. Built once at open time; the result is immutable.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List

import usb.core
import usb.util

from ..errors import DescriptorReadError
from ..models import InterfaceInfo

logger = logging.getLogger(__name__)


def build_topology(configuration) -> Dict[int, InterfaceInfo]:
    """Partition the endpoints of each interface by direction.

    Args:
        configuration: pyusb Configuration (iterates its interface settings)

    Returns:
        Dict mapping interface number to InterfaceInfo, in declared order.
        Only the first alternate setting of an interface is considered.
    """
    topology: Dict[int, InterfaceInfo] = {}

    for interface in configuration:
        number = interface.bInterfaceNumber
        if number in topology:
            continue

        endpoints_in: List[int] = []
        endpoints_out: List[int] = []
        for endpoint in interface:
            address = endpoint.bEndpointAddress
            if usb.util.endpoint_direction(address) == usb.util.ENDPOINT_IN:
                endpoints_in.append(address)
            else:
                endpoints_out.append(address)

        topology[number] = InterfaceInfo(
            number=number,
            endpoints_in=tuple(endpoints_in),
            endpoints_out=tuple(endpoints_out),
        )

    return topology


def read_topology(device) -> Dict[int, InterfaceInfo]:
    """Read the active configuration descriptor and build the topology.

    Raises:
        DescriptorReadError: If the configuration descriptor is unavailable.
    """
    try:
        configuration = device.get_active_configuration()
    except usb.core.USBError as e:
        raise DescriptorReadError(
            f"Failed to read active configuration descriptor: {e}"
        ) from e

    topology = build_topology(configuration)
    for info in topology.values():
        logger.debug(
            "Interface %d: in=%s out=%s",
            info.number,
            [hex(a) for a in info.endpoints_in],
            [hex(a) for a in info.endpoints_out],
        )
    return topology


def input_interfaces(
    topology: Dict[int, InterfaceInfo],
    numbers: Iterable[int],
) -> List[InterfaceInfo]:
    """Select the interfaces to watch, in the caller's order.

    Raises:
        DescriptorReadError: If a requested interface is not declared.
    """
    selected = []
    for number in numbers:
        if number not in topology:
            raise DescriptorReadError(
                f"Interface {number} is not declared by the active configuration"
            )
        selected.append(topology[number])
    return selected
