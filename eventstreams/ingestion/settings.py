"""
Connection settings for EventStream, loaded from config.yaml.
"""

import os
from dataclasses import dataclass
from typing import Any, Optional, Tuple

from eventstreams.common.config import get_section

from .constants import (
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_MAX_RETRIES,
    DEFAULT_USER_AGENT,
    RECENT_CHANGES_URL,
)


def _or_default(value: Any, default: Any) -> Any:
    return default if value is None or value == "" else value


def _optional_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)


@dataclass
class StreamSettings:
    """Settings for a single EventStreams connection."""

    url: str = RECENT_CHANGES_URL
    user_agent: str = DEFAULT_USER_AGENT
    max_retries: int = DEFAULT_MAX_RETRIES
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    read_timeout: Optional[float] = None

    def __post_init__(self) -> None:
        self.max_retries = max(1, int(self.max_retries))

    @property
    def timeout(self) -> Tuple[float, Optional[float]]:
        """(connect, read) timeout tuple in the form requests expects."""
        return (self.connect_timeout, self.read_timeout)


def load_settings(config_path: str = "config.yaml") -> StreamSettings:
    """
    Build StreamSettings from the `eventstreams` section of config.yaml.

    EVENTSTREAMS_URL and EVENTSTREAMS_USER_AGENT take precedence over the file.
    """
    cfg = get_section("eventstreams", config_path)
    return StreamSettings(
        url=os.getenv("EVENTSTREAMS_URL") or cfg.get("url") or RECENT_CHANGES_URL,
        user_agent=os.getenv("EVENTSTREAMS_USER_AGENT") or cfg.get("user_agent") or DEFAULT_USER_AGENT,
        max_retries=int(_or_default(cfg.get("max_retries"), DEFAULT_MAX_RETRIES)),
        connect_timeout=float(_or_default(cfg.get("connect_timeout"), DEFAULT_CONNECT_TIMEOUT)),
        read_timeout=_optional_float(cfg.get("read_timeout")),
    )
