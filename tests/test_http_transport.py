import threading
import time
import unittest
from unittest.mock import MagicMock

import requests

from market_globe.errors import MalformedResponseError, TransportError
from market_globe.integrations.http_transport import RetryingHttpTransport


def _response(payload, status_code=200):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    return response


class TestRetryingHttpTransport(unittest.TestCase):
    def _transport(self, session, sleeps, **kwargs):
        return RetryingHttpTransport(
            session=session,
            sleep_fn=lambda sec: sleeps.append(sec),
            **kwargs,
        )

    def test_passes_timeout_and_params(self):
        session = MagicMock()
        session.get.return_value = _response([{"symbol": "^GSPC"}])
        transport = self._transport(session, [], timeout_sec=10.0)

        payload = transport.get_json("https://example.test/q", params={"apikey": "k"})

        self.assertEqual(payload, [{"symbol": "^GSPC"}])
        session.get.assert_called_once_with("https://example.test/q", params={"apikey": "k"}, timeout=10.0)

    def test_transport_failures_retry_with_exponential_backoff(self):
        session = MagicMock()
        session.get.side_effect = [
            requests.Timeout("slow"),
            requests.ConnectionError("reset"),
            _response({"ok": True}),
        ]
        sleeps = []
        transport = self._transport(session, sleeps, max_retries=2, retry_base_delay_sec=1.0)

        payload = transport.get_json("https://example.test/q")

        self.assertEqual(payload, {"ok": True})
        self.assertEqual(session.get.call_count, 3)
        self.assertEqual(sleeps, [1.0, 2.0])

    def test_gives_up_after_configured_retries(self):
        session = MagicMock()
        session.get.side_effect = requests.Timeout("slow")
        sleeps = []
        transport = self._transport(session, sleeps, max_retries=2, retry_base_delay_sec=1.0)

        with self.assertRaises(TransportError):
            transport.get_json("https://example.test/q")

        # retry between attempts only: 1->2, 2->3
        self.assertEqual(session.get.call_count, 3)
        self.assertEqual(sleeps, [1.0, 2.0])

    def test_server_errors_are_retried(self):
        session = MagicMock()
        session.get.side_effect = [_response({}, status_code=503), _response([1])]
        sleeps = []
        transport = self._transport(session, sleeps, retry_base_delay_sec=0.5)

        self.assertEqual(transport.get_json("https://example.test/q"), [1])
        self.assertEqual(sleeps, [0.5])

    def test_client_errors_are_not_retried(self):
        session = MagicMock()
        session.get.return_value = _response({}, status_code=401)
        sleeps = []
        transport = self._transport(session, sleeps)

        with self.assertRaises(TransportError) as ctx:
            transport.get_json("https://example.test/q")

        self.assertEqual(ctx.exception.status_code, 401)
        self.assertEqual(session.get.call_count, 1)
        self.assertEqual(sleeps, [])

    def test_invalid_json_is_malformed_and_not_retried(self):
        session = MagicMock()
        response = _response(None)
        response.json.side_effect = ValueError("not json")
        session.get.return_value = response
        sleeps = []
        transport = self._transport(session, sleeps)

        with self.assertRaises(MalformedResponseError):
            transport.get_json("https://example.test/q")

        self.assertEqual(session.get.call_count, 1)
        self.assertEqual(sleeps, [])

    def test_cancel_interrupts_pending_backoff(self):
        session = MagicMock()
        session.get.side_effect = requests.Timeout("slow")
        transport = RetryingHttpTransport(session=session, max_retries=2, retry_base_delay_sec=30.0)
        errors = []

        def _call():
            try:
                transport.get_json("https://example.test/q")
            except TransportError as exc:
                errors.append(exc)

        worker = threading.Thread(target=_call, daemon=True)
        started = time.monotonic()
        worker.start()
        time.sleep(0.05)
        transport.cancel()
        worker.join(timeout=2.0)

        self.assertFalse(worker.is_alive())
        self.assertLess(time.monotonic() - started, 5.0)
        self.assertEqual(len(errors), 1)
        self.assertTrue(transport.cancelled)

    def test_cancelled_transport_makes_no_request(self):
        session = MagicMock()
        transport = self._transport(session, [])
        transport.cancel()

        with self.assertRaises(TransportError):
            transport.get_json("https://example.test/q")

        session.get.assert_not_called()


if __name__ == "__main__":
    unittest.main()
