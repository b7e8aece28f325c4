"""Shared state cell: single-writer, multi-reader publish point.

Holds the most recently published value and synchronously broadcasts each
publish to the observers registered at that moment. Late subscribers do not
receive earlier values.

An optional reducer turns the cell into an accumulator: every publish is
folded into the running value and the folded result is broadcast.
"""

import logging
from collections.abc import Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Observer = Callable[[T], None]
Reducer = Callable[[T | None, T], T]


class Subscription:
    """Handle returned by SharedStateCell.subscribe().

    ``cancel()`` deregisters the observer; repeated calls are no-ops.
    """

    def __init__(self, cell: "SharedStateCell", token: int) -> None:
        self._cell: SharedStateCell | None = cell
        self._token = token

    @property
    def active(self) -> bool:
        """True until cancel() is called."""
        return self._cell is not None

    def cancel(self) -> None:
        """Stop receiving notifications."""
        cell, self._cell = self._cell, None
        if cell is not None:
            cell._remove(self._token)


class SharedStateCell(Generic[T]):
    """Broadcast cell holding the latest published value.

    Attributes:
        name: Label used in log messages.

    """

    def __init__(self, name: str = "cell", reducer: Reducer | None = None) -> None:
        """Initialize an empty cell.

        Args:
            name: Label used in log messages.
            reducer: Optional ``(latest, value) -> new_latest`` fold applied
                on publish. Without it each value is stored and broadcast as is.

        """
        self.name = name
        self._reducer = reducer
        self._latest: T | None = None
        self._observers: dict[int, Observer] = {}
        self._next_token = 0
        self._publish_count = 0

    @property
    def latest(self) -> T | None:
        """Most recently published (or folded) value."""
        return self._latest

    @property
    def subscriber_count(self) -> int:
        return len(self._observers)

    @property
    def publish_count(self) -> int:
        return self._publish_count

    def subscribe(self, observer: Observer) -> Subscription:
        """Register an observer for values published from now on.

        Args:
            observer: Callable invoked with each published value.

        Returns:
            Subscription whose cancel() deregisters the observer.

        """
        token = self._next_token
        self._next_token += 1
        self._observers[token] = observer
        logger.debug("%s: observer subscribed (total: %d)", self.name, len(self._observers))
        return Subscription(self, token)

    def publish(self, value: T) -> None:
        """Store value as latest and notify all current observers.

        Never raises: an observer that raises is logged and the remaining
        observers are still notified.
        """
        if self._reducer is not None:
            value = self._reducer(self._latest, value)
        self._latest = value
        self._publish_count += 1

        # Snapshot so observers may cancel or subscribe while being notified
        for observer in list(self._observers.values()):
            try:
                observer(value)
            except Exception:
                logger.exception("%s: observer raised during publish", self.name)

    def reset(self) -> None:
        """Forget the latest value (observers stay registered)."""
        self._latest = None

    def _remove(self, token: int) -> None:
        self._observers.pop(token, None)
        logger.debug("%s: observer cancelled (remaining: %d)", self.name, len(self._observers))
