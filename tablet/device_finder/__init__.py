from .core import (
    describe_device,
    find_devices,
    is_device_available,
    is_matching_device,
    open_device,
)
from ..errors import DeviceNotFoundError, EnumerationError, OpenError

__all__ = [
    "describe_device",
    "find_devices",
    "is_device_available",
    "is_matching_device",
    "open_device",
    "DeviceNotFoundError",
    "EnumerationError",
    "OpenError",
]
