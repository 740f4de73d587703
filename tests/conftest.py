"""Shared fixtures: an in-memory requests session and exporter configs."""
import threading

import pytest
import requests

from datadog_exporter.config import DataDogConfig


def make_response(status_code: int, body: bytes = b'{"status": "ok"}', url: str = "") -> requests.Response:
    """Build a real requests.Response without touching the network."""
    response = requests.Response()
    response.status_code = status_code
    response._content = body
    response.encoding = "utf-8"
    response.url = url
    return response


class FakeSession:
    """Stands in for requests.Session; records every POST."""

    def __init__(self, responder=None):
        self.calls = []
        self._lock = threading.Lock()
        self._responder = responder or (lambda index, url, data, headers: make_response(202, url=url))

    def post(self, url, data=None, headers=None, timeout=None):
        with self._lock:
            index = len(self.calls)
            self.calls.append({"url": url, "data": data, "headers": headers, "timeout": timeout})
        result = self._responder(index, url, data, headers)
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def api_config():
    """API export only, no self metrics so flush output is predictable."""
    return DataDogConfig(
        api_host="https://intake.example.com/api/v1",
        api_key="test-key",
        gzip=False,
        write_to_api=True,
        write_to_stdout=False,
        tags={"env": "test"},
        self_metrics=False,
    )


@pytest.fixture
def fake_session():
    """Factory for sessions with a custom responder."""
    return FakeSession


@pytest.fixture
def response():
    """Factory for canned responses."""
    return make_response
