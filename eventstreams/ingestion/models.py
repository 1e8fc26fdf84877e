"""
Typed records for Wikimedia recent-change events.

Field names follow the `mediawiki/recentchange` schema. Keys that are not
valid Python identifiers (`$schema`) are exposed under an alias; unknown keys
are ignored so schema additions upstream don't break deserialization.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional, Type

import mwclient
from pydantic import BaseModel, ConfigDict, Field


class EventMeta(BaseModel):
    """Event-platform envelope attached to every event."""

    model_config = ConfigDict(extra="ignore")

    uri: str
    request_id: str
    id: str
    dt: str
    domain: str
    stream: str
    topic: Optional[str] = None
    partition: Optional[int] = None
    offset: Optional[int] = None


class EventLength(BaseModel):
    """Length in bytes of new revision, and potentially old revision."""

    old: Optional[int] = None
    new: int


class EventRevision(BaseModel):
    """Revision ID of new revision, and potentially old revision."""

    old: Optional[int] = None
    new: int


class RecentChange(BaseModel):
    """Fields and helpers shared by edit and log events."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    schema_uri: str = Field(alias="$schema")
    meta: EventMeta
    type: str
    # Namespace ID
    namespace: int
    # Prefixed title (includes namespace name)
    title: str
    # Edit summary and its HTML-parsed version
    comment: str
    parsedcomment: str
    # Unix timestamp
    timestamp: int
    user: str
    bot: bool
    # e.g. https://www.wikidata.org
    server_url: str
    # e.g. www.wikidata.org or en.wikipedia.org
    server_name: str
    # Base URL path of wiki ($wgScriptPath), e.g. /w
    server_script_path: str
    # Internal database name, e.g. wikidatawiki
    wiki: str

    def _endpoint(self, path: str) -> str:
        return f"{self.server_url}{self.server_script_path}/{path}.php"

    @property
    def api_url(self) -> str:
        """URL to the wiki's api.php (Action API) endpoint."""
        return self._endpoint("api")

    @property
    def occurred_at(self) -> datetime:
        """`timestamp` as an aware UTC datetime."""
        return datetime.fromtimestamp(self.timestamp, tz=timezone.utc)

    def site(self, **kwargs: Any) -> mwclient.Site:
        """
        Get an mwclient Site for the wiki this event came from.

        Extra keyword arguments are passed to mwclient.Site (e.g.
        clients_useragent). Note that creating a Site performs a siteinfo
        request against the wiki.
        """
        scheme, _, host = self.server_url.partition("://")
        return mwclient.Site(
            host,
            path=f"{self.server_script_path}/",
            scheme=scheme or "https",
            **kwargs,
        )

    def page(self, **kwargs: Any):
        """Get the mwclient page object for this event's title."""
        return self.site(**kwargs).pages[self.title]


class EditEvent(RecentChange):
    """Represents an edit."""

    # Recent changes ID
    id: int
    minor: Optional[bool] = None
    patrolled: Optional[bool] = None
    length: EventLength
    revision: EventRevision

    @property
    def is_minor(self) -> bool:
        """Whether the edit is marked as minor."""
        return bool(self.minor)

    @property
    def is_patrolled(self) -> bool:
        """Whether the edit has been marked as patrolled."""
        return bool(self.patrolled)

    def _title_for_url(self) -> str:
        return self.title.replace(" ", "_")

    @property
    def diff_url(self) -> str:
        """URL to the diff for this edit, formatted for human readability."""
        return f"{self._endpoint('index')}?title={self._title_for_url()}&diff={self.revision.new}"

    @property
    def short_diff_url(self) -> str:
        """URL to the diff for this edit, as short as possible."""
        return f"{self.server_url}?diff={self.revision.new}"


class LogEvent(RecentChange):
    """Represents a log entry."""

    log_id: int
    log_type: str
    log_action: str
    # Free-form; a dict for most log types, sometimes a list
    log_params: Any = None
    log_action_comment: str


EVENT_MODELS: Dict[str, Type[RecentChange]] = {
    "edit": EditEvent,
    "log": LogEvent,
}
