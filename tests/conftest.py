"""
Pytest configuration and shared fixtures for eventstreams tests.

This module provides:
- Sample recentchange payloads (edit, log, categorize)
- A fake requests session/response pair that replays SSE frames,
  so no test touches the network
- Logging state restoration for tests that call setup_logging()
"""

import copy
import json
import logging
from typing import Any, Iterable, List

import pytest

EDIT_PAYLOAD = {
    "$schema": "/mediawiki/recentchange/1.0.0",
    "meta": {
        "uri": "https://www.wikidata.org/wiki/Q42",
        "request_id": "f3b2c1d0-1111-2222-3333-444455556666",
        "id": "0a1b2c3d-aaaa-bbbb-cccc-ddddeeeeffff",
        "dt": "2021-01-01T00:00:00Z",
        "domain": "www.wikidata.org",
        "stream": "mediawiki.recentchange",
        "topic": "eqiad.mediawiki.recentchange",
        "partition": 0,
        "offset": 2903431012,
    },
    "id": 1375468102,
    "type": "edit",
    "namespace": 0,
    "title": "Douglas Adams",
    "comment": "/* wbsetdescription-set:1|en */ English writer",
    "parsedcomment": "English writer",
    "timestamp": 1609459200,
    "user": "Example",
    "bot": False,
    "minor": True,
    "length": {"old": 100, "new": 120},
    "revision": {"old": 10, "new": 11},
    "server_url": "https://www.wikidata.org",
    "server_name": "www.wikidata.org",
    "server_script_path": "/w",
    "wiki": "wikidatawiki",
}

LOG_PAYLOAD = {
    "$schema": "/mediawiki/recentchange/1.0.0",
    "meta": {
        "uri": "https://en.wikipedia.org/wiki/Special:Log/newusers",
        "request_id": "a1b2c3d4-0000-0000-0000-000000000000",
        "id": "11112222-3333-4444-5555-666677778888",
        "dt": "2021-01-01T00:00:05Z",
        "domain": "en.wikipedia.org",
        "stream": "mediawiki.recentchange",
    },
    "type": "log",
    "namespace": 2,
    "title": "User:NewAccount",
    "comment": "",
    "parsedcomment": "",
    "timestamp": 1609459205,
    "user": "NewAccount",
    "bot": False,
    "log_id": 123456789,
    "log_type": "newusers",
    "log_action": "create",
    "log_params": {"userid": 4242},
    "log_action_comment": "New user account",
    "server_url": "https://en.wikipedia.org",
    "server_name": "en.wikipedia.org",
    "server_script_path": "/w",
    "wiki": "enwiki",
}

CATEGORIZE_PAYLOAD = {
    "$schema": "/mediawiki/recentchange/1.0.0",
    "type": "categorize",
    "title": "Category:Living people",
    "server_name": "en.wikipedia.org",
}


class FakeResponse:
    """Stands in for a streaming requests.Response; iterating yields raw chunks."""

    def __init__(self, chunks: Iterable[Any] = (), status_code: int = 200):
        self.chunks = list(chunks)
        self.status_code = status_code
        self.closed = False

    def __iter__(self):
        for chunk in self.chunks:
            if isinstance(chunk, Exception):
                raise chunk
            yield chunk

    def close(self) -> None:
        self.closed = True


class FakeSession:
    """Returns (or raises) the given outcomes, one per get() call."""

    def __init__(self, *outcomes: Any):
        self.outcomes: List[Any] = list(outcomes)
        self.calls: List[tuple] = []
        self.closed = False

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def close(self) -> None:
        self.closed = True


def _sse_frame(payload: Any, event: str = "message") -> bytes:
    data = payload if isinstance(payload, str) else json.dumps(payload)
    return (
        f"event: {event}\n"
        f'id: [{{"topic":"eqiad.mediawiki.recentchange","partition":0}}]\n'
        f"data: {data}\n\n"
    ).encode("utf-8")


@pytest.fixture
def sse_frame():
    """Fixture providing a helper that encodes a payload as one SSE frame."""
    return _sse_frame


@pytest.fixture
def edit_payload():
    return copy.deepcopy(EDIT_PAYLOAD)


@pytest.fixture
def log_payload():
    return copy.deepcopy(LOG_PAYLOAD)


@pytest.fixture
def categorize_payload():
    return copy.deepcopy(CATEGORIZE_PAYLOAD)


@pytest.fixture
def enwiki_edit_payload():
    """An edit on en.wikipedia.org, for per-wiki filtering tests."""
    payload = copy.deepcopy(EDIT_PAYLOAD)
    payload.update(
        {
            "title": "Python (programming language)",
            "server_url": "https://en.wikipedia.org",
            "server_name": "en.wikipedia.org",
            "wiki": "enwiki",
        }
    )
    payload["meta"]["domain"] = "en.wikipedia.org"
    return payload


@pytest.fixture
def fake_response():
    """Factory fixture: fake_response(*chunks, status_code=200)."""

    def _make(*chunks: Any, status_code: int = 200) -> FakeResponse:
        return FakeResponse(chunks, status_code=status_code)

    return _make


@pytest.fixture
def fake_session():
    """Factory fixture: fake_session(*responses_or_exceptions)."""
    return FakeSession


@pytest.fixture
def restore_logging():
    """Undo root logger changes made by setup_logging()."""
    root = logging.getLogger()
    original_handlers = list(root.handlers)
    original_level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in original_handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(original_level)
