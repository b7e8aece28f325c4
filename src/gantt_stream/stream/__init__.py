"""Push stream ingestion and propagation.

Provides:
- SSE framing (encode for the demo source, decode for the client)
- StreamSource owning one push connection
- SharedStateCell broadcasting the latest graph
- Coordinator enforcing a single active stream
"""

from .coordinator import Coordinator, CoordinatorState
from .event_parser import SSEDecoder, SSEEvent, parse_stream
from .polling import poll_latest
from .source import ConnectionState, HandleState, StreamHandle, StreamSource, StreamStatus
from .state_cell import SharedStateCell, Subscription

__all__ = [
    "ConnectionState",
    "Coordinator",
    "CoordinatorState",
    "HandleState",
    "SSEDecoder",
    "SSEEvent",
    "SharedStateCell",
    "StreamHandle",
    "StreamSource",
    "StreamStatus",
    "Subscription",
    "parse_stream",
    "poll_latest",
]
