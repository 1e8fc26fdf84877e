"""
Client for the Wikimedia EventStreams recent changes feed.
"""

from .eventstreams import EventStream, handle_line, parse_event
from .exceptions import ConnectionFailedError, EventStreamError, StreamInterruptedError
from .models import EditEvent, EventLength, EventMeta, EventRevision, LogEvent
from .settings import StreamSettings, load_settings

__all__ = [
    "EventStream",
    "handle_line",
    "parse_event",
    "EventStreamError",
    "ConnectionFailedError",
    "StreamInterruptedError",
    "EditEvent",
    "LogEvent",
    "EventLength",
    "EventRevision",
    "EventMeta",
    "StreamSettings",
    "load_settings",
]
