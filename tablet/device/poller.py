"""Interrupt endpoint poll loop.

Each attempt is bounded by a read timeout, so a pass over the watched
interfaces takes at most one timeout per input endpoint and the
cancellation token is observed promptly. Timeouts are the steady state of
an idle tablet and never leave this module; any other transport error ends
the loop for every interface.
"""
from __future__ import annotations

import errno
import logging
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, Sequence, Tuple

import usb.core

from ..cancellation import CancellationToken
from ..errors import TransferError
from ..models import InterfaceInfo, ReadOutcome

logger = logging.getLogger(__name__)

DEFAULT_READ_TIMEOUT_MS = 20
DEFAULT_READ_SIZE = 64


def _is_timeout(error: usb.core.USBError) -> bool:
    if isinstance(error, usb.core.USBTimeoutError):
        return True
    # Older backends report timeouts as a plain USBError
    return getattr(error, "errno", None) == errno.ETIMEDOUT


@dataclass
class PollStats:
    """Counters kept by InputPoller."""
    iterations: int = 0
    reports: int = 0
    timeouts: int = 0


class InputPoller:
    """Polls the input endpoints of a set of interfaces.

    Args:
        device: Opened pyusb Device with the interfaces claimed
        interfaces: Interfaces to watch, polled in this order
        timeout_ms: Per-read timeout in milliseconds
        read_size: Maximum bytes per interrupt read
    """

    def __init__(
        self,
        device,
        interfaces: Sequence[InterfaceInfo],
        *,
        timeout_ms: int = DEFAULT_READ_TIMEOUT_MS,
        read_size: int = DEFAULT_READ_SIZE,
    ):
        if timeout_ms <= 0:
            raise ValueError("timeout_ms must be positive")
        if read_size <= 0:
            raise ValueError("read_size must be positive")

        self._device = device
        self._interfaces = tuple(interfaces)
        self._timeout_ms = timeout_ms
        self._read_size = read_size
        self.stats = PollStats()

        for info in self._interfaces:
            if not info.has_input:
                logger.warning("Interface %d has no input endpoint", info.number)

        if not any(info.has_input for info in self._interfaces):
            raise ValueError("No watched interface has an input endpoint")

    @property
    def interfaces(self) -> Tuple[InterfaceInfo, ...]:
        return self._interfaces

    def poll_interface(self, info: InterfaceInfo) -> ReadOutcome:
        """Read once from an interface.

        Input endpoints are tried in declared order; the first one that
        returns data wins. A timeout on one endpoint moves on to the next.
        """
        for endpoint in info.endpoints_in:
            try:
                data = self._device.read(endpoint, self._read_size, timeout=self._timeout_ms)
            except usb.core.USBError as e:
                if _is_timeout(e):
                    continue
                return ReadOutcome.failed(info.number, e, endpoint=endpoint)

            payload = bytes(data)[:self._read_size]
            if payload:
                logger.debug(
                    "RX iface %d ep 0x%02x %d bytes: %s",
                    info.number, endpoint, len(payload), payload.hex(" "),
                )
                return ReadOutcome.received(info.number, payload, endpoint)

        return ReadOutcome.timed_out(info.number)

    def poll_once(
        self,
        cancel: Optional[CancellationToken] = None,
    ) -> List[ReadOutcome]:
        """Poll every watched interface once.

        Stops early on the first fatal outcome (it is the last element of
        the returned list) or when `cancel` is set between interfaces.
        """
        outcomes: List[ReadOutcome] = []
        self.stats.iterations += 1

        for info in self._interfaces:
            if cancel is not None and cancel.cancelled:
                break

            outcome = self.poll_interface(info)
            outcomes.append(outcome)

            if outcome.is_data:
                self.stats.reports += 1
            elif outcome.is_timeout:
                self.stats.timeouts += 1
            else:
                break

        return outcomes

    def _outcomes(self, cancel: CancellationToken) -> Iterator[ReadOutcome]:
        """Yield data and timeout outcomes until cancelled; raise on fatal."""
        while not cancel.cancelled:
            for outcome in self.poll_once(cancel):
                if outcome.is_fatal:
                    logger.error(
                        "Transfer failed on interface %d: %s",
                        outcome.interface, outcome.error,
                    )
                    raise TransferError(
                        f"Interrupt read failed on interface {outcome.interface}: "
                        f"{outcome.error}",
                        interface=outcome.interface,
                        endpoint=outcome.endpoint,
                    ) from outcome.error
                yield outcome

        logger.info("Polling cancelled after %d iterations", self.stats.iterations)

    def reports(self, cancel: CancellationToken) -> Iterator[Tuple[int, bytes]]:
        """Yield (interface number, bytes) records until cancelled.

        Raises:
            TransferError: On the first non-timeout transport error.
        """
        for outcome in self._outcomes(cancel):
            if outcome.is_data:
                yield outcome.interface, outcome.data

    def run(
        self,
        cancel: CancellationToken,
        on_report: Callable[[int, bytes], None],
        on_timeout: Optional[Callable[[int], None]] = None,
    ) -> int:
        """Poll until cancelled, passing each report to `on_report`.

        `on_timeout`, if given, is called with the interface number every
        time an interface yields no data (e.g. for a progress indicator).

        Returns:
            Number of reports delivered.

        Raises:
            TransferError: On the first non-timeout transport error.
        """
        delivered = 0
        for outcome in self._outcomes(cancel):
            if outcome.is_data:
                on_report(outcome.interface, outcome.data)
                delivered += 1
            elif on_timeout is not None:
                on_timeout(outcome.interface)
        return delivered
