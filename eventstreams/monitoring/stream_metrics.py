"""
Stream metrics tracking.

Counts connection attempts, received messages, event types, dropped
payloads and listener failures for a single EventStream.
"""

import logging
import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class StreamMetrics:
    """In-process counters for one EventStream."""

    connection_attempts: int = 0
    messages_received: int = 0
    listener_errors: int = 0
    events_by_type: Dict[str, int] = field(default_factory=lambda: defaultdict(int))
    dropped: Dict[str, int] = field(default_factory=lambda: defaultdict(int))
    started_at: float = field(default_factory=time.time)

    def record_connection_attempt(self) -> None:
        self.connection_attempts += 1

    def record_message(self) -> None:
        """Record an SSE message, before it is decoded."""
        self.messages_received += 1

    def record_event(self, event_type: Optional[str]) -> None:
        """Record a decoded payload by its `type` field."""
        self.events_by_type[event_type or "unknown"] += 1

    def record_dropped(self, reason: str) -> None:
        self.dropped[reason] += 1

    def record_listener_error(self) -> None:
        self.listener_errors += 1

    def get_summary(self) -> Dict[str, Any]:
        """
        Get metrics summary.

        Returns:
            Dict with totals, per-type counts, drop reasons and throughput
        """
        uptime = max(0.0, time.time() - self.started_at)
        return {
            "connection_attempts": self.connection_attempts,
            "messages_received": self.messages_received,
            "events_by_type": dict(self.events_by_type),
            "dropped": dict(self.dropped),
            "total_dropped": sum(self.dropped.values()),
            "listener_errors": self.listener_errors,
            "uptime_seconds": uptime,
            "messages_per_second": self.messages_received / uptime if uptime > 0 else 0.0,
        }

    def clear(self) -> None:
        """Reset all counters."""
        self.connection_attempts = 0
        self.messages_received = 0
        self.listener_errors = 0
        self.events_by_type.clear()
        self.dropped.clear()
        self.started_at = time.time()


def log_summary(metrics: StreamMetrics, level: int = logging.INFO) -> None:
    """Log a one-line summary of the given metrics."""
    summary = metrics.get_summary()
    logger.log(
        level,
        "Stream metrics: %d messages (%.1f/sec), types=%s, dropped=%d, listener_errors=%d, connection_attempts=%d",
        summary["messages_received"],
        summary["messages_per_second"],
        summary["events_by_type"],
        summary["total_dropped"],
        summary["listener_errors"],
        summary["connection_attempts"],
    )
