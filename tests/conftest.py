"""
Shared test fixtures: an in-memory stand-in for the CDX server.
"""

from typing import Any, List, Optional

import pytest
import structlog

from waybackrecon.core.exceptions import TransportError


CDX_HEADER = ["original", "timestamp", "statuscode", "mimetype"]


def build_payload(rows: List[List[Any]], resume_key: Optional[str] = None) -> List[Any]:
    """Build a CDX JSON payload: header, rows, then [] and [key] when paged"""
    payload = [CDX_HEADER] + [list(row) for row in rows]
    if resume_key is not None:
        payload += [[], [resume_key]]
    return payload


def row(url: str, mimetype: str = "text/html") -> List[str]:
    return [url, "20200101000000", "200", mimetype]


class FakeCdxTransport:
    """
    Returns queued responses in order and records every requested URL.

    A queued Exception instance is raised instead of returned. Running out
    of responses behaves like a connection failure.
    """

    def __init__(self, responses: List[Any]):
        self.responses = list(responses)
        self.requested_urls: List[str] = []
        self.closed = False

    async def __aenter__(self) -> "FakeCdxTransport":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.closed = True

    async def get_json(self, url: str) -> Any:
        self.requested_urls.append(url)
        if not self.responses:
            raise TransportError("connection refused")

        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def cdx_payload():
    return build_payload


@pytest.fixture
def cdx_row():
    return row


@pytest.fixture
def fake_transport():
    return FakeCdxTransport


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo configure_logging() calls made by CLI tests"""
    yield
    structlog.reset_defaults()
