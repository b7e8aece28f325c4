"""Exception hierarchy for gantt-stream.

All project errors derive from GanttStreamError so callers can catch one
base class at process boundaries (CLI, coordinator pump).
"""

# Payload excerpts attached to errors are cut to this many characters
PAYLOAD_EXCERPT_LENGTH = 200


class GanttStreamError(Exception):
    """Base exception for all gantt-stream errors."""

    pass


class ConfigError(GanttStreamError):
    """Configuration file is missing, unreadable or invalid."""

    pass


class StreamError(GanttStreamError):
    """Base for failures that terminate a push stream."""

    pass


class TransportError(StreamError):
    """Connection-level failure.

    Raised when:
    - The server is unreachable or the connection drops mid-stream
    - The response status is not 200 OK
    - The response is not a text/event-stream
    """

    pass


class MalformedPayloadError(StreamError):
    """Event payload could not be decoded into the expected shape.

    Attributes:
        channel: Event channel the payload arrived on.
        payload: Truncated raw payload text.

    """

    def __init__(self, message: str, channel: str, payload: str) -> None:
        """Initialize with the offending channel and payload.

        Args:
            message: Human-readable description.
            channel: Event channel name.
            payload: Raw payload text (truncated for storage).

        """
        super().__init__(message)
        self.channel = channel
        self.payload = payload[:PAYLOAD_EXCERPT_LENGTH]


class StreamClosedError(StreamError):
    """Operation attempted on a StreamHandle that is no longer open."""

    pass
