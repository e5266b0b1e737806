"""Unit tests for the cancellation token and signal wiring."""
import signal
import unittest
from unittest.mock import patch

from tablet.cancellation import CancellationToken, install_signal_handlers


class TestCancellationToken(unittest.TestCase):

    def test_starts_clear(self):
        token = CancellationToken()
        self.assertFalse(token.cancelled)
        self.assertFalse(token)

    def test_cancel_is_sticky(self):
        token = CancellationToken()
        token.cancel()
        token.cancel()
        self.assertTrue(token.cancelled)
        self.assertTrue(token)


class TestSignalHandlers(unittest.TestCase):

    def test_handler_cancels_and_restore(self):
        token = CancellationToken()
        original = signal.getsignal(signal.SIGTERM)

        restore = install_signal_handlers(token, signals=(signal.SIGTERM,))
        try:
            handler = signal.getsignal(signal.SIGTERM)
            self.assertIsNot(handler, original)
            handler(signal.SIGTERM, None)
            self.assertTrue(token.cancelled)
        finally:
            restore()

        self.assertEqual(signal.getsignal(signal.SIGTERM), original)

    @patch('signal.signal')
    def test_installs_default_signals(self, mock_signal):
        install_signal_handlers(CancellationToken())

        installed = {c.args[0] for c in mock_signal.call_args_list}
        self.assertEqual(installed, {signal.SIGINT, signal.SIGTERM})


if __name__ == '__main__':
    unittest.main()
