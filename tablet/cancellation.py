"""Cancellation token shared between the poll loop and signal handlers."""
from __future__ import annotations

import logging
import signal
from typing import Callable, Dict, Iterable

logger = logging.getLogger(__name__)

DEFAULT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class CancellationToken:
    """One-way boolean flag requesting the poll loop to stop.

    cancel() only assigns an attribute: no locks, no allocation. That makes
    it safe to call from a signal handler, which may interrupt the main
    thread at any bytecode boundary. The poller reads `cancelled` between
    bounded-timeout reads.
    """

    def __init__(self):
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def __bool__(self) -> bool:
        return self._cancelled


def install_signal_handlers(
    token: CancellationToken,
    signals: Iterable[int] = DEFAULT_SIGNALS,
) -> Callable[[], None]:
    """Cancel `token` when any of `signals` is delivered.

    Must be called from the main thread.

    Returns:
        Function that restores the previous handlers.
    """
    previous: Dict[int, object] = {}

    def handler(signum, frame):
        token.cancel()

    for signum in signals:
        previous[signum] = signal.signal(signum, handler)
        logger.debug("Installed cancellation handler for signal %d", signum)

    def restore():
        for signum, old in previous.items():
            signal.signal(signum, old)

    return restore
