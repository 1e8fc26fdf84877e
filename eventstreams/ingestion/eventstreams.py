"""
Wikimedia EventStreams client for real-time recent changes.

Clients register listeners for edit and log events and then consume the
stream, either on the calling thread (`run()`) or in the background
(`start()`):

    stream = EventStream()
    stream.on_wiki_edit("en.wikipedia.org", lambda edit: print(edit.title))
    stream.start()
"""

import codecs
import functools
import json
import logging
import random
import socket
import threading
from contextlib import closing
from typing import Any, Callable, Dict, Iterator, List, Optional, Union

import requests
import sseclient
from pydantic import ValidationError

from eventstreams.monitoring.stream_metrics import StreamMetrics, log_summary

from .constants import MESSAGE_EVENT
from .exceptions import ConnectionFailedError, EventStreamError, StreamInterruptedError
from .models import EVENT_MODELS, EditEvent, LogEvent
from .settings import StreamSettings, load_settings

logger = logging.getLogger(__name__)

Event = Union[EditEvent, LogEvent, Dict[str, Any]]
EditListener = Callable[[EditEvent], None]
LogListener = Callable[[LogEvent], None]


def _backoff_delay(attempt: int, base_delay: float = 0.5, max_delay: float = 8.0) -> float:
    """Exponentially increasing backoff interval with jitter."""
    delay = min(max_delay, base_delay * (2**attempt))
    # Add a little jitter so clients don't all reconnect in lock-step.
    return delay * (1 + random.uniform(-0.2, 0.2))


def handle_line(line: str) -> Optional[Any]:
    """
    Decode the data of a single SSE message.

    Returns None for empty or malformed JSON instead of raising.
    """
    if not line:
        return None

    try:
        return json.loads(line)
    except json.JSONDecodeError:
        # The feed occasionally delivers truncated payloads.
        logger.debug("Dropping malformed payload: %.80r", line)
        return None


def parse_event(value: Dict[str, Any]) -> Event:
    """
    Deserialize a decoded payload into its typed record.

    Edits and log entries become EditEvent / LogEvent; any other type
    (`new`, `categorize`, ...) is returned unchanged.

    Raises:
        pydantic.ValidationError: if an edit or log payload is missing fields
    """
    event_type = value.get("type")
    model = EVENT_MODELS.get(event_type) if isinstance(event_type, str) else None
    if model is None:
        return value
    return model.model_validate(value)


def _utf8_chunks(response: requests.Response) -> Iterator[bytes]:
    """
    Re-encode a response body as valid UTF-8.

    sseclient decodes every line strictly, so bytes that do not decode
    (a multi-byte character cut off mid-payload) are replaced with U+FFFD
    before it sees them. Characters split across chunks are kept intact.
    """
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    for chunk in response:
        text = decoder.decode(chunk)
        if text:
            yield text.encode("utf-8")
    tail = decoder.decode(b"", final=True)
    if tail:
        yield tail.encode("utf-8")


def _shutdown_socket(response: requests.Response) -> bool:
    """
    Shut down the socket under a streaming response.

    A read blocked on another thread then returns, without waiting for the
    lock that response.close() needs. Returns False if there is no socket.
    """
    connection = getattr(getattr(response, "raw", None), "connection", None)
    sock = getattr(connection, "sock", None)
    if sock is None:
        return False
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError as exc:
        # Already disconnected.
        logger.debug("Socket shutdown failed: %s", exc)
    return True


class EventStream:
    """Typed wrapper around the Wikimedia EventStreams recent changes feed."""

    def __init__(
        self,
        url: Optional[str] = None,
        *,
        settings: Optional[StreamSettings] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        """
        Initialize EventStream. No connection is made until run() or start().

        Args:
            url: Stream URL (default: settings.url, the recentchange stream)
            settings: Connection settings; defaults are used if omitted
            session: Optional requests session to issue the request with
        """
        self.settings = settings or StreamSettings()
        self.url = url or self.settings.url
        self.metrics = StreamMetrics()

        self._session = session or requests.Session()
        self._session_owned = session is None

        self._message_listeners: List[Callable[[Dict[str, Any]], None]] = []
        self._edit_listeners: List[EditListener] = []
        self._log_listeners: List[LogListener] = []
        self._open_listeners: List[Callable[[], None]] = []
        self._error_listeners: List[Callable[[Exception], None]] = []

        self._lock = threading.Lock()
        self._closed = threading.Event()
        self._response: Optional[requests.Response] = None
        self._reader: Optional[int] = None
        self._running = False
        self._thread: Optional[threading.Thread] = None
        logger.info("Initialized EventStream for %s", self.url)

    @classmethod
    def from_config(cls, config_path: str = "config.yaml", **kwargs: Any) -> "EventStream":
        """Create an EventStream using the `eventstreams` section of config.yaml."""
        return cls(settings=load_settings(config_path), **kwargs)

    # Listener registration

    def on_edit(self, listener: EditListener) -> None:
        """Set a listener for all edits."""
        self._edit_listeners.append(listener)

    def on_wiki_edit(self, wiki: str, listener: EditListener) -> None:
        """
        Set a listener for edits on a specific wiki.

        Args:
            wiki: Server name of the wiki, e.g. "www.wikidata.org"
            listener: Called with each matching EditEvent
        """

        @functools.wraps(listener)
        def _filtered(edit: EditEvent) -> None:
            if edit.server_name == wiki:
                listener(edit)

        self.on_edit(_filtered)

    def on_log(self, listener: LogListener) -> None:
        """Set a listener for all log entries."""
        self._log_listeners.append(listener)

    def on_wiki_log(self, wiki: str, listener: LogListener) -> None:
        """Set a listener for log entries on a specific wiki, by server name."""

        @functools.wraps(listener)
        def _filtered(log: LogEvent) -> None:
            if log.server_name == wiki:
                listener(log)

        self.on_log(_filtered)

    def on_message(self, listener: Callable[[Dict[str, Any]], None]) -> None:
        """Set a listener for every decoded payload, whatever its type."""
        self._message_listeners.append(listener)

    def on_open(self, listener: Callable[[], None]) -> None:
        """Set a listener called once the stream is connected."""
        self._open_listeners.append(listener)

    def on_error(self, listener: Callable[[Exception], None]) -> None:
        """Set a listener called with the exception when the stream fails."""
        self._error_listeners.append(listener)

    # Lifecycle

    @property
    def is_running(self) -> bool:
        """True while run(), events() or a start() worker is consuming the stream."""
        if self._running:
            return True
        return self._thread is not None and self._thread.is_alive()

    @property
    def is_closed(self) -> bool:
        return self._closed.is_set()

    def start(self) -> None:
        """Consume the stream on a background daemon thread."""
        with self._lock:
            if self._closed.is_set():
                logger.warning("EventStream for %s is closed; not starting", self.url)
                return
            if self._thread is not None and self._thread.is_alive():
                return
            self._thread = threading.Thread(
                target=self._run_in_background,
                name="eventstreams",
                daemon=True,
            )
            self._thread.start()

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for the background thread started by start() to finish."""
        if self._thread is not None:
            self._thread.join(timeout)

    def run(self) -> None:
        """
        Consume the stream on the calling thread, dispatching to listeners.

        Returns when close() is called or the server ends the response.

        Raises:
            ConnectionFailedError: if the stream could not be opened
            StreamInterruptedError: if the connection drops mid-stream
        """
        try:
            with closing(self._iter_payloads()) as payloads:
                for value in payloads:
                    self._dispatch(value)
                    # close() from a listener takes effect before the next read
                    if self._closed.is_set():
                        break
        except EventStreamError as exc:
            logger.error("Event stream for %s failed: %s", self.url, exc)
            for listener in list(self._error_listeners):
                self._call(listener, exc)
            raise
        finally:
            log_summary(self.metrics)

    def events(self) -> Iterator[Event]:
        """
        Iterate over events instead of registering listeners.

        Yields EditEvent, LogEvent, or the raw dict for other event types.
        Payloads that fail validation are logged and skipped.
        """
        with closing(self._iter_payloads()) as payloads:
            for value in payloads:
                try:
                    event = parse_event(value)
                except ValidationError as exc:
                    self.metrics.record_dropped("validation")
                    logger.warning("Dropping invalid %s event: %s", value.get("type"), exc)
                    continue
                yield event
                if self._closed.is_set():
                    return

    def close(self) -> None:
        """Close the connection. Safe to call more than once, from any thread."""
        with self._lock:
            if self._closed.is_set():
                return
            self._closed.set()
            response = self._response
            reader = self._reader

        # While a reader is active it sees the flag and closes the response itself.
        if reader == threading.get_ident():
            logger.info("Closing EventStream for %s", self.url)
            return
        if reader is not None and _shutdown_socket(response):
            logger.info("Closing EventStream for %s", self.url)
            return

        if response is not None:
            response.close()
        if self._session_owned:
            self._session.close()
        logger.info("Closed EventStream for %s", self.url)

    def __enter__(self) -> "EventStream":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # Internals

    def _run_in_background(self) -> None:
        try:
            self.run()
        except EventStreamError:
            # Already logged and passed to error listeners by run().
            return

    def _connect(self) -> Optional[requests.Response]:
        """
        Open the HTTP stream, retrying transient failures with backoff.

        Returns None if the stream was closed while connecting.
        """
        headers = {
            "Accept": "text/event-stream",
            "Cache-Control": "no-cache",
            "User-Agent": self.settings.user_agent,
        }
        max_retries = self.settings.max_retries

        for attempt in range(max_retries):
            if self._closed.is_set():
                return None

            self.metrics.record_connection_attempt()
            try:
                response = self._session.get(
                    self.url,
                    headers=headers,
                    stream=True,
                    timeout=self.settings.timeout,
                )
            except requests.RequestException as exc:
                if attempt + 1 >= max_retries:
                    raise ConnectionFailedError(
                        f"Could not connect to {self.url} after {max_retries} attempts: {exc}"
                    ) from exc
                logger.warning(
                    "Transient error connecting to %s (attempt %d/%d): %s; retrying...",
                    self.url,
                    attempt + 1,
                    max_retries,
                    exc,
                )
                self._closed.wait(_backoff_delay(attempt))
                continue

            status = response.status_code
            if status < 400:
                return response

            response.close()
            if status < 500:
                raise ConnectionFailedError(f"{self.url} returned HTTP {status}", status_code=status)
            if attempt + 1 >= max_retries:
                raise ConnectionFailedError(
                    f"{self.url} returned HTTP {status} after {max_retries} attempts",
                    status_code=status,
                )
            logger.warning(
                "Server error from %s (HTTP %d, attempt %d/%d); retrying...",
                self.url,
                status,
                attempt + 1,
                max_retries,
            )
            self._closed.wait(_backoff_delay(attempt))

        return None

    def _iter_payloads(self) -> Iterator[Dict[str, Any]]:
        """Yield decoded JSON objects from `message` events until closed."""
        self._running = True
        try:
            response = self._connect()
            if response is None:
                return

            with self._lock:
                if self._closed.is_set():
                    response.close()
                    return
                self._response = response
                self._reader = threading.get_ident()

            yield from self._read_payloads(response)
        finally:
            self._running = False

    def _read_payloads(self, response: requests.Response) -> Iterator[Dict[str, Any]]:
        logger.info("Connected to %s", self.url)
        for listener in list(self._open_listeners):
            self._call(listener)

        client = sseclient.SSEClient(_utf8_chunks(response))
        try:
            for message in client.events():
                if self._closed.is_set():
                    break
                if message.event != MESSAGE_EVENT:
                    continue

                self.metrics.record_message()
                value = handle_line(message.data)
                if not isinstance(value, dict):
                    self.metrics.record_dropped("invalid_json")
                    continue

                event_type = value.get("type")
                self.metrics.record_event(event_type if isinstance(event_type, str) else None)
                yield value
        except Exception as exc:  # noqa: BLE001
            # close() from another thread shuts the socket down under the pending read.
            if self._closed.is_set():
                logger.debug("Read from %s ended by close(): %s", self.url, exc)
                return
            raise StreamInterruptedError(f"Stream from {self.url} interrupted: {exc}") from exc
        finally:
            with self._lock:
                self._response = None
                self._reader = None
            response.close()
            if self._closed.is_set() and self._session_owned:
                self._session.close()

    def _dispatch(self, value: Dict[str, Any]) -> None:
        for listener in list(self._message_listeners):
            self._call(listener, value)

        event_type = value.get("type")
        if event_type == "edit":
            listeners: List[Callable[[Any], None]] = list(self._edit_listeners)
        elif event_type == "log":
            listeners = list(self._log_listeners)
        else:
            return
        if not listeners:
            return

        try:
            event = parse_event(value)
        except ValidationError as exc:
            self.metrics.record_dropped("validation")
            logger.warning("Dropping invalid %s event: %s", event_type, exc)
            return

        for listener in listeners:
            self._call(listener, event)

    def _call(self, listener: Callable[..., None], *args: Any) -> None:
        try:
            listener(*args)
        except Exception:  # noqa: BLE001
            self.metrics.record_listener_error()
            logger.exception("Listener %r raised", listener)
