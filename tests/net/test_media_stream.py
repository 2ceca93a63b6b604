"""
Tests for open_media_stream: 200 required, transient statuses retried.
"""

import io
import unittest
from urllib.error import HTTPError

from likelocker.net.http import HttpStatusError, open_media_stream
from likelocker.net.retry import RetryConfig


class FakeResponse(io.BytesIO):
    def __init__(self, body=b"", status=200, reason="OK"):
        super().__init__(body)
        self.status = status
        self.reason = reason


class ScriptedOpener:
    def __init__(self, *steps):
        self.steps = list(steps)
        self.requests = []

    def __call__(self, req, timeout=None):
        self.requests.append((req, timeout))
        step = self.steps.pop(0)
        if isinstance(step, Exception):
            raise step
        return step


FAST_RETRY = RetryConfig(max_retries=2, base_delay_s=0.0, jitter_factor=0.0)


class TestOpenMediaStream(unittest.TestCase):
    def test_returns_open_response(self):
        opener = ScriptedOpener(FakeResponse(b"jpeg-bytes"))

        with open_media_stream("https://cdn/a.jpg", timeout_s=7, opener=opener) as resp:
            self.assertEqual(resp.read(), b"jpeg-bytes")

        req, timeout = opener.requests[0]
        self.assertEqual(req.full_url, "https://cdn/a.jpg")
        self.assertEqual(timeout, 7)
        self.assertTrue(req.get_header("User-agent").startswith("likelocker/"))

    def test_non_200_status_raises(self):
        opener = ScriptedOpener(FakeResponse(status=204, reason="No Content"))
        with self.assertRaises(HttpStatusError) as ctx:
            open_media_stream("https://cdn/a.jpg", retry=FAST_RETRY, opener=opener)
        self.assertEqual(ctx.exception.status_code, 204)
        self.assertEqual(len(opener.requests), 1)

    def test_http_error_converted(self):
        error = HTTPError("https://cdn/a.jpg", 404, "Not Found", {}, io.BytesIO(b""))
        opener = ScriptedOpener(error)
        with self.assertRaises(HttpStatusError) as ctx:
            open_media_stream("https://cdn/a.jpg", retry=FAST_RETRY, opener=opener)
        self.assertEqual(ctx.exception.status_code, 404)
        self.assertIn("404", str(ctx.exception))

    def test_transient_status_retried(self):
        error = HTTPError("https://cdn/a.jpg", 503, "Unavailable", {}, io.BytesIO(b""))
        opener = ScriptedOpener(error, FakeResponse(b"ok"))

        with open_media_stream("https://cdn/a.jpg", retry=FAST_RETRY, opener=opener) as resp:
            self.assertEqual(resp.read(), b"ok")
        self.assertEqual(len(opener.requests), 2)


if __name__ == "__main__":
    unittest.main()
