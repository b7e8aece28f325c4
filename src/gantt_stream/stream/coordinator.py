"""Coordinator: wires StreamSource output into the shared state cells.

Enforces at most one active stream. Starting a new stream cancels the
previous pump task and waits for its StreamSource teardown before the new
source connects, so no fragment of the new stream can be published while
the old connection is still open.
"""

import asyncio
import logging
from collections.abc import Callable
from enum import StrEnum

import httpx

from gantt_stream.core.config import GanttStreamConfig, PublishMode
from gantt_stream.core.exceptions import StreamError
from gantt_stream.gantt.models import AggregatedGraph
from gantt_stream.gantt.transform import merge_graphs

from .source import ConnectionState, StreamSource, StreamStatus
from .state_cell import Observer, SharedStateCell, Subscription

logger = logging.getLogger(__name__)

SourceFactory = Callable[[], StreamSource]


class CoordinatorState(StrEnum):
    """Coordinator lifecycle.

    Valid transitions:
        IDLE → STREAMING (start_stream)
        STREAMING → STREAMING (start_stream replaces the active stream)
        STREAMING → IDLE (stream closed, failed, or aclose)
    """

    IDLE = "idle"
    STREAMING = "streaming"


class Coordinator:
    """Owns the graph cell, the status cell and the active stream.

    Attributes:
        config: Loaded configuration.
        updates: Cell carrying published graphs.
        status: Cell carrying connection status changes.

    """

    def __init__(
        self,
        config: GanttStreamConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        source_factory: SourceFactory | None = None,
    ) -> None:
        """Initialize an idle coordinator.

        Args:
            config: Configuration (stream settings and publish mode).
            transport: Optional httpx transport passed to each StreamSource.
            source_factory: Optional override for StreamSource creation.

        """
        self.config = config
        self._transport = transport
        self._source_factory = source_factory or self._create_source

        reducer = merge_graphs if config.state.publish_mode is PublishMode.ACCUMULATE else None
        self.updates: SharedStateCell[AggregatedGraph] = SharedStateCell("updates", reducer=reducer)
        self.status: SharedStateCell[StreamStatus] = SharedStateCell("status")

        self._pump: asyncio.Task[None] | None = None
        self._source: StreamSource | None = None
        self._streams_started = 0
        # Held for the whole of start_stream and aclose
        self._lock = asyncio.Lock()

    @property
    def state(self) -> CoordinatorState:
        if self._pump is not None and not self._pump.done():
            return CoordinatorState.STREAMING
        return CoordinatorState.IDLE

    @property
    def active_source(self) -> StreamSource | None:
        """StreamSource of the running pump, if any."""
        return self._source if self.state is CoordinatorState.STREAMING else None

    def _create_source(self) -> StreamSource:
        return StreamSource(
            self.config.stream,
            transport=self._transport,
            on_status=self.status.publish,
        )

    async def start_stream(self) -> None:
        """Start a new stream, tearing down any active one first.

        Overlapping calls are serialized; the last call to acquire the lock
        owns the only remaining stream.
        """
        async with self._lock:
            if self._pump is not None:
                if not self._pump.done():
                    logger.info("Replacing active push stream")
                await self._cancel_pump()

            if self.config.state.publish_mode is PublishMode.ACCUMULATE:
                self.updates.reset()

            source = self._source_factory()
            self._source = source
            self._streams_started += 1
            self._pump = asyncio.create_task(
                self._run(source),
                name=f"gantt-stream-pump-{self._streams_started}",
            )

    def observe_updates(self, observer: Observer) -> Subscription:
        """Receive every graph published from now on."""
        return self.updates.subscribe(observer)

    def observe_status(self, observer: Observer) -> Subscription:
        """Receive connection status changes from now on."""
        return self.status.subscribe(observer)

    async def wait_closed(self) -> None:
        """Wait until the active stream (if any) has finished."""
        pump = self._pump
        if pump is not None and not pump.done():
            await asyncio.wait({pump})

    async def aclose(self) -> None:
        """Tear down the active stream (process shutdown)."""
        async with self._lock:
            await self._cancel_pump()
        logger.debug("Coordinator closed")

    async def _cancel_pump(self) -> None:
        pump, self._pump = self._pump, None
        if pump is None:
            return
        if not pump.done():
            pump.cancel()
            # Wait for StreamSource teardown to run inside the cancelled task
            await asyncio.wait({pump})

    async def _run(self, source: StreamSource) -> None:
        """Pump fragments from source into the updates cell."""
        try:
            async for fragment in source.fragments():
                self.updates.publish(fragment)
        except StreamError as e:
            # The source already reported FAILED; this makes the failure visible in logs
            logger.error("Push stream %s terminated: %s", source.settings.url, e)
        except Exception as e:
            logger.exception("Unexpected error in push stream pump")
            self.status.publish(
                StreamStatus(state=ConnectionState.FAILED, url=source.settings.url, error=str(e))
            )
