"""
Shared constants for the EventStreams client.
"""

BASE_URL = "https://stream.wikimedia.org/v2/stream"
DEFAULT_STREAM = "recentchange"
RECENT_CHANGES_URL = f"{BASE_URL}/{DEFAULT_STREAM}"

# Wikimedia rejects requests without a descriptive User-Agent.
DEFAULT_USER_AGENT = "eventstreams-python/0.1.0 (python-requests)"

DEFAULT_MAX_RETRIES = 3
DEFAULT_CONNECT_TIMEOUT = 10.0

# SSE event name carrying recent-change payloads.
MESSAGE_EVENT = "message"
