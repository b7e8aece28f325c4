"""Consumer-side interval sampling of a shared state cell.

Timer-driven re-delivery lives here, not in StreamSource: the push stream
publishes when data arrives, and a consumer that wants a steady refresh
rate samples the cell's latest value on its own schedule.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import TypeVar

from .state_cell import SharedStateCell

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def poll_latest(
    cell: SharedStateCell[T],
    interval: float,
    *,
    skip_unchanged: bool = False,
) -> AsyncIterator[T]:
    """Yield the cell's latest value every interval seconds.

    Nothing is yielded while the cell is empty. The generator runs until
    the consumer stops iterating or its task is cancelled.

    Args:
        cell: Cell to sample.
        interval: Seconds between samples.
        skip_unchanged: Only yield when a publish happened since the last
            yielded sample.

    Raises:
        ValueError: If interval is not positive.

    """
    if interval <= 0:
        raise ValueError(f"interval must be positive, got {interval}")

    last_seen = -1
    while True:
        value = cell.latest
        if value is not None and not (skip_unchanged and cell.publish_count == last_seen):
            last_seen = cell.publish_count
            yield value
        await asyncio.sleep(interval)
