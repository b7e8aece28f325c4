"""StreamSource: owns one Server-Sent Events connection.

Opens a streaming GET with httpx, decodes the event stream, routes events by
channel name and yields one AggregatedGraph fragment per record payload.

Two exit paths share one idempotent teardown (StreamHandle.close):
- the close channel fires: listeners removed, connection closed, sequence ends
- the consumer detaches (task cancelled or generator closed): same teardown

Consumers that stop iterating early should close the generator explicitly,
e.g. with ``contextlib.aclosing(source.fragments())``.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from enum import StrEnum

import httpx
from pydantic import TypeAdapter, ValidationError

from gantt_stream.core.config import StreamSettings
from gantt_stream.core.exceptions import (
    MalformedPayloadError,
    StreamClosedError,
    StreamError,
    TransportError,
)
from gantt_stream.gantt.models import AggregatedGraph, RawProjectRecord
from gantt_stream.gantt.transform import build_fragment

from .event_parser import SSEDecoder, SSEEvent

logger = logging.getLogger(__name__)

EVENT_STREAM_MEDIA_TYPE = "text/event-stream"

_RECORDS_ADAPTER = TypeAdapter(list[RawProjectRecord])


class HandleState(StrEnum):
    """StreamHandle lifecycle.

    Valid transitions (one-way):
        OPEN → CLOSING (teardown started)
        CLOSING → CLOSED (connection released)
    """

    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


class ConnectionState(StrEnum):
    """Connection status reported to observers."""

    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"
    FAILED = "failed"


@dataclass(frozen=True)
class StreamStatus:
    """Connection status snapshot.

    Attributes:
        state: Current connection state.
        url: Stream endpoint.
        error: Failure description when state is FAILED.

    """

    state: ConnectionState
    url: str
    error: str | None = None


Listener = Callable[[SSEEvent], AggregatedGraph | None]
StatusCallback = Callable[[StreamStatus], None]


class StreamHandle:
    """One live connection plus its channel listeners.

    The handle is exclusively owned by the StreamSource that opened it.
    Once closed it cannot be reused.
    """

    def __init__(self, client: httpx.AsyncClient, response: httpx.Response) -> None:
        self._client = client
        self._response = response
        self._listeners: dict[str, Listener] = {}
        self._state = HandleState.OPEN

    @property
    def state(self) -> HandleState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is HandleState.OPEN

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def add_listener(self, channel: str, listener: Listener) -> None:
        """Register the listener for a channel.

        Raises:
            StreamClosedError: If the handle is closing or closed.

        """
        if not self.is_open:
            raise StreamClosedError(f"Cannot listen on {channel!r}: stream handle is {self._state}")
        self._listeners[channel] = listener

    def remove_listener(self, channel: str) -> None:
        self._listeners.pop(channel, None)

    def lines(self) -> AsyncIterator[str]:
        """Iterate decoded text lines of the response body.

        Raises:
            StreamClosedError: If the handle is no longer open.

        """
        if not self.is_open:
            raise StreamClosedError(f"Cannot read: stream handle is {self._state}")
        return self._response.aiter_lines()

    def dispatch(self, event: SSEEvent) -> AggregatedGraph | None:
        """Route an event to its channel listener.

        Returns:
            The listener's result, or None when the handle is not open or no
            listener is registered for the event's channel.

        """
        if not self.is_open:
            return None
        listener = self._listeners.get(event.event)
        if listener is None:
            logger.debug("Ignoring event on unobserved channel %r", event.event)
            return None
        return listener(event)

    async def close(self) -> None:
        """Remove all listeners and release the connection.

        Safe to call more than once; only the first call does any work.
        """
        if self._state is not HandleState.OPEN:
            return
        self._state = HandleState.CLOSING
        self._listeners.clear()
        try:
            await self._response.aclose()
        finally:
            await self._client.aclose()
            self._state = HandleState.CLOSED
            logger.debug("Stream handle closed")


class StreamSource:
    """Lazy sequence of graph fragments read from one push connection.

    Each instance opens at most one connection; call fragments() once.

    Attributes:
        settings: Connection and channel settings.

    """

    def __init__(
        self,
        settings: StreamSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        on_status: StatusCallback | None = None,
    ) -> None:
        """Initialize the source without connecting.

        Args:
            settings: Stream URL, channel names and timeouts.
            transport: Optional httpx transport (tests inject MockTransport).
            on_status: Optional callback receiving connection status changes.

        """
        self.settings = settings
        self._transport = transport
        self._on_status = on_status
        self._handle: StreamHandle | None = None
        self._started = False

    @property
    def handle(self) -> StreamHandle | None:
        """The connection handle once opened."""
        return self._handle

    def _report(self, state: ConnectionState, error: str | None = None) -> None:
        if self._on_status is not None:
            self._on_status(StreamStatus(state=state, url=self.settings.url, error=error))

    async def _open(self) -> StreamHandle:
        """Connect and validate the response.

        Raises:
            TransportError: On connection failure, non-200 status or a
                response that is not an event stream.

        """
        client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.settings.connect_timeout, read=self.settings.read_timeout),
            transport=self._transport,
        )
        request = client.build_request(
            "GET",
            self.settings.url,
            headers={"Accept": EVENT_STREAM_MEDIA_TYPE, "Cache-Control": "no-cache"},
        )
        try:
            response = await client.send(request, stream=True)
        except httpx.HTTPError as e:
            await client.aclose()
            raise TransportError(f"Cannot connect to {self.settings.url}: {e}") from e
        except asyncio.CancelledError:
            await client.aclose()
            raise

        if response.status_code != 200:
            error_text = (await response.aread()).decode("utf-8", errors="replace")
            await response.aclose()
            await client.aclose()
            raise TransportError(
                f"Stream endpoint returned {response.status_code}: {error_text[:200]}"
            )

        content_type = response.headers.get("content-type", "")
        if EVENT_STREAM_MEDIA_TYPE not in content_type:
            await response.aclose()
            await client.aclose()
            raise TransportError(f"Expected {EVENT_STREAM_MEDIA_TYPE}, got {content_type!r}")

        return StreamHandle(client, response)

    def _decode_records(self, event: SSEEvent) -> list[RawProjectRecord]:
        """Decode a record payload.

        Raises:
            MalformedPayloadError: If the payload is not JSON or not a list
                of project records.

        """
        try:
            return _RECORDS_ADAPTER.validate_json(event.data)
        except ValidationError as e:
            raise MalformedPayloadError(
                f"Invalid payload on {event.event!r}: {e.error_count()} validation error(s)",
                channel=event.event,
                payload=event.data,
            ) from e

    def _decode_close(self, event: SSEEvent) -> None:
        try:
            event.json()
        except ValueError as e:
            raise MalformedPayloadError(
                f"Invalid JSON on {event.event!r}: {e}",
                channel=event.event,
                payload=event.data,
            ) from e

    async def fragments(self) -> AsyncIterator[AggregatedGraph]:
        """Connect and yield one fragment per record payload.

        Yields:
            Fragment built from each record-channel payload, in arrival order.

        Raises:
            TransportError: Connection failed or dropped.
            MalformedPayloadError: A payload could not be decoded.
            StreamClosedError: fragments() was already called on this source.

        """
        if self._started:
            raise StreamClosedError("StreamSource is single-use; create a new instance")
        self._started = True

        self._report(ConnectionState.CONNECTING)
        try:
            handle = await self._open()
        except TransportError as e:
            logger.warning("Push stream connection failed: %s", e)
            self._report(ConnectionState.FAILED, str(e))
            raise
        except asyncio.CancelledError:
            # Detached while connecting; _open already released the client
            self._report(ConnectionState.CLOSED)
            raise
        self._handle = handle

        close_received = False

        def on_records(event: SSEEvent) -> AggregatedGraph:
            records = self._decode_records(event)
            return build_fragment(records)

        def on_close(event: SSEEvent) -> None:
            nonlocal close_received
            self._decode_close(event)
            close_received = True

        handle.add_listener(self.settings.record_channel, on_records)
        handle.add_listener(self.settings.close_channel, on_close)
        logger.info("Push stream opened: %s", self.settings.url)
        self._report(ConnectionState.OPEN)

        failure: StreamError | None = None
        fragment_count = 0
        try:
            decoder = SSEDecoder()
            async for line in handle.lines():
                event = decoder.feed(line)
                if event is None:
                    continue
                fragment = handle.dispatch(event)
                if close_received:
                    logger.info("Close signal received after %d fragment(s)", fragment_count)
                    break
                if fragment is not None:
                    fragment_count += 1
                    logger.debug(
                        "Fragment %d: %d task(s), %d link(s)",
                        fragment_count,
                        len(fragment.tasks),
                        len(fragment.links),
                    )
                    yield fragment
            else:
                logger.warning("Push stream ended without a close signal")
        except httpx.HTTPError as e:
            failure = TransportError(f"Push stream interrupted: {e}")
            raise failure from e
        except StreamError as e:
            failure = e
            raise
        finally:
            await handle.close()
            if failure is not None:
                logger.warning("Push stream failed: %s", failure)
                self._report(ConnectionState.FAILED, str(failure))
            else:
                logger.info("Push stream closed: %s", self.settings.url)
                self._report(ConnectionState.CLOSED)
