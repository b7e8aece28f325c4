"""Server-Sent Events framing.

Encodes events for the demo source and decodes the line stream received by
StreamSource. Decoding follows the HTML living standard event-stream
interpretation rules:

- ``field: value`` lines accumulate into the pending event
- one space after the colon is stripped
- multiple ``data`` lines are joined with ``\\n``
- lines starting with ``:`` are comments (keep-alives)
- a blank line dispatches the pending event
"""

import json
import logging
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

# Event type used when the server omits the event field
DEFAULT_EVENT_TYPE = "message"


@dataclass
class SSEEvent:
    """Represents a single SSE event.

    Attributes:
        event: Event type name (channel).
        data: Raw event payload text.
        id: Optional event ID for reconnection.
        retry: Optional retry interval in milliseconds.

    """

    event: str
    data: str
    id: str | None = None
    retry: int | None = None

    @classmethod
    def from_payload(cls, event: str, payload: Any, id: str | None = None) -> "SSEEvent":
        """Build an event whose data is the JSON encoding of payload."""
        return cls(event=event, data=json.dumps(payload), id=id)

    def json(self) -> Any:
        """Decode the payload as JSON.

        Raises:
            json.JSONDecodeError: If the payload is not valid JSON.

        """
        return json.loads(self.data)

    def format(self) -> str:
        """Format event for SSE protocol.

        Returns:
            SSE-formatted string ready for transmission.

        """
        lines = []

        if self.id:
            lines.append(f"id: {self.id}")
        if self.retry:
            lines.append(f"retry: {self.retry}")

        lines.append(f"event: {self.event}")
        for line in self.data.split("\n"):
            lines.append(f"data: {line}")

        lines.append("")  # Empty line terminates message
        return "\n".join(lines) + "\n"


class SSEDecoder:
    """Incremental decoder turning received lines into SSEEvent objects.

    Feed one line at a time (without its terminator). A completed event is
    returned when a blank line is fed; otherwise None.

    Attributes:
        last_event_id: Last ``id`` seen, kept across events.
        retry: Last valid ``retry`` value seen.

    """

    def __init__(self) -> None:
        self.last_event_id: str | None = None
        self.retry: int | None = None
        self._event_type = ""
        self._data: list[str] = []

    def feed(self, line: str) -> SSEEvent | None:
        """Process one line of the stream.

        Args:
            line: A single line with its terminator removed.

        Returns:
            Completed event on a blank line with pending data, else None.

        """
        if not line:
            return self._dispatch()

        if line.startswith(":"):
            return None

        name, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]

        if name == "event":
            self._event_type = value
        elif name == "data":
            self._data.append(value)
        elif name == "id":
            if "\0" not in value:
                self.last_event_id = value
        elif name == "retry":
            if value.isdigit():
                self.retry = int(value)
        else:
            logger.debug("Ignoring unknown SSE field: %s", name[:50])
        return None

    def _dispatch(self) -> SSEEvent | None:
        if not self._data:
            # No data lines: the standard says discard without dispatching
            self._event_type = ""
            return None

        event = SSEEvent(
            event=self._event_type or DEFAULT_EVENT_TYPE,
            data="\n".join(self._data),
            id=self.last_event_id,
            retry=self.retry,
        )
        self._event_type = ""
        self._data = []
        return event


def iter_lines(text: str) -> list[str]:
    """Split a chunk of stream text on CRLF, CR or LF."""
    return text.replace("\r\n", "\n").replace("\r", "\n").split("\n")


def parse_stream(text: str) -> list[SSEEvent]:
    """Decode a complete event-stream body.

    Args:
        text: Full stream text.

    Returns:
        Dispatched events in order. A trailing event without its blank
        terminator line is not dispatched.

    """
    decoder = SSEDecoder()
    events = []
    for line in iter_lines(text):
        event = decoder.feed(line)
        if event is not None:
            events.append(event)
    return events
