"""
Typed client for Wikimedia's EventStreams live recent changes feed.

Add listeners for edit and log entry events, then start the stream:

    from eventstreams import EventStream

    stream = EventStream()
    stream.on_edit(lambda edit: print(f"{edit.server_name}: {edit.user} edited {edit.title}"))
    stream.run()

Filtering to a single wiki:

    stream.on_wiki_edit("en.wikipedia.org", handle_edit)
"""

from .ingestion import (
    ConnectionFailedError,
    EditEvent,
    EventStream,
    EventStreamError,
    LogEvent,
    StreamInterruptedError,
    handle_line,
)

__version__ = "0.1.0"

__all__ = [
    "EventStream",
    "EditEvent",
    "LogEvent",
    "EventStreamError",
    "ConnectionFailedError",
    "StreamInterruptedError",
    "handle_line",
]
