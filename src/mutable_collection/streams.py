"""Event sinks and subscriber streams for observable collections.

An `ObservableCollection` never talks to subscribers directly. It hands every
event to an `EventSink` via `emit()`. The default sink, `CollectionStreams`,
fans those events out to three `Stream` objects:

*   `value`: the full root sequence after every mutation. Replays the latest
    snapshot to new subscribers.
*   `flat_changes`: `FlatChange` objects for mutations of the root sequence only.
*   `changes`: `DeepChange` objects for every mutation.

When the collection is closed each stream delivers a completion signal and
then goes quiet.

Example:
    >>> streams = CollectionStreams()
    >>> unsubscribe = streams.changes.subscribe(print)
    >>> # ... later, when no longer interested:
    >>> unsubscribe()
"""

import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional

from . import logger
from .events import BaseCollectionEvent, CompletedEvent, DeepChangeEvent, FlatChangeEvent, ValueEvent

# Type Alias: a function receiving each value a stream delivers.
SubscriptionCallback = Callable[[Any], None]
# Type Alias: a function called once when a stream completes.
CompletionCallback = Callable[[], None]
# Type Alias: the function returned by 'subscribe', which stops that subscription.
UnsubscribeFunction = Callable[[], None]

_NOTHING = object()


class EventSink(ABC):
    """Receives every event an `ObservableCollection` produces.

    Implementations decide how events reach the outside world. `emit()` is
    called while the collection holds its lock, in mutation order.
    """

    @abstractmethod
    def emit(self, event: BaseCollectionEvent) -> None:
        """Deliver one event."""
        pass


class _Subscription:
    __slots__ = ("on_next", "on_completed")

    def __init__(self, on_next: SubscriptionCallback, on_completed: Optional[CompletionCallback]):
        self.on_next = on_next
        self.on_completed = on_completed


class Stream:
    """A multicast stream of values with an optional replay of the latest one.

    Args:
        name (str): Used in log messages.
        replay (bool): Default for `subscribe(replay=...)`.
    """

    def __init__(self, name: str, replay: bool = False):
        self.name = name
        self._replay = replay
        self._subscriptions: List[_Subscription] = []
        self._latest: Any = _NOTHING
        self._completed = False
        # Guards the subscription list and stream state, never held while calling subscribers.
        self._state_lock = threading.Lock()

    @property
    def completed(self) -> bool:
        return self._completed

    @property
    def latest(self) -> Any:
        """The most recently delivered value, or `None` if nothing was delivered yet."""
        return None if self._latest is _NOTHING else self._latest

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(
        self,
        on_next: SubscriptionCallback,
        on_completed: Optional[CompletionCallback] = None,
        replay: Optional[bool] = None,
    ) -> UnsubscribeFunction:
        """Registers callbacks for future values and for completion.

        Args:
            on_next: Called with every value sent on the stream.
            on_completed: Called once when the stream completes. If the stream
                already completed, it is called immediately.
            replay: If `True`, `on_next` immediately receives the latest value
                (if any). `None` uses the stream's default.

        Returns:
            UnsubscribeFunction: Call it with no arguments to stop this subscription.

        Raises:
            TypeError: If `on_next` or `on_completed` is not callable.
        """
        if not callable(on_next):
            raise TypeError(f"on_next callback provided to Stream '{self.name}'.subscribe must be callable")
        if on_completed is not None and not callable(on_completed):
            raise TypeError(f"on_completed callback provided to Stream '{self.name}'.subscribe must be callable")
        replay = self._replay if replay is None else replay
        subscription = _Subscription(on_next, on_completed)

        with self._state_lock:
            completed = self._completed
            latest = self._latest
            if not completed:
                self._subscriptions.append(subscription)
        logger.debug(f"Subscribed {on_next} to stream '{self.name}' (replay={replay})")

        if replay and latest is not _NOTHING:
            self._deliver(subscription.on_next, latest)
        if completed and on_completed is not None:
            self._deliver(on_completed)

        def unsubscribe():
            self._remove(subscription)
        return unsubscribe

    def unsubscribe(self, callback: SubscriptionCallback) -> None:
        """Removes every subscription whose `on_next` is `callback`."""
        with self._state_lock:
            self._subscriptions = [s for s in self._subscriptions if s.on_next is not callback]
        logger.debug(f"Unsubscribed {callback} from stream '{self.name}'")

    def _remove(self, subscription: _Subscription) -> None:
        with self._state_lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    def _deliver(self, callback: Callable[..., None], *args: Any) -> None:
        try:
            callback(*args)
        except Exception as e:
            # A failing subscriber must not keep the others from being notified.
            logger.exception(f"Error occurred inside subscriber callback {callback} of stream '{self.name}': {e}")

    def send_next(self, value: Any) -> None:
        """Delivers `value` to every current subscriber. Ignored after completion."""
        with self._state_lock:
            if self._completed:
                logger.debug(f"Stream '{self.name}' is completed, dropping value")
                return
            self._latest = value
            subscriptions = list(self._subscriptions)
        for subscription in subscriptions:
            self._deliver(subscription.on_next, value)

    def send_completed(self) -> None:
        """Completes the stream. Subsequent calls do nothing."""
        with self._state_lock:
            if self._completed:
                return
            self._completed = True
            subscriptions = self._subscriptions
            self._subscriptions = []
        logger.debug(f"Completing stream '{self.name}' for {len(subscriptions)} subscribers")
        for subscription in subscriptions:
            if subscription.on_completed is not None:
                self._deliver(subscription.on_completed)


class CollectionStreams(EventSink):
    """The default `EventSink`: routes collection events onto three streams.

    Args:
        replay_changes (bool): Whether the change streams replay their latest
            change to new subscribers by default. The value stream always does.
    """

    def __init__(self, replay_changes: bool = False):
        self.value = Stream("value", replay=True)
        self.flat_changes = Stream("flat_changes", replay=replay_changes)
        self.changes = Stream("changes", replay=replay_changes)

    @property
    def completed(self) -> bool:
        return self.value.completed and self.flat_changes.completed and self.changes.completed

    def emit(self, event: BaseCollectionEvent) -> None:
        if isinstance(event, FlatChangeEvent):
            self.flat_changes.send_next(event.change)
        elif isinstance(event, DeepChangeEvent):
            self.changes.send_next(event.change)
        elif isinstance(event, ValueEvent):
            self.value.send_next(event.value)
        elif isinstance(event, CompletedEvent):
            self.complete()
        else:
            raise TypeError(f"CollectionStreams cannot route event of type {type(event).__name__}")

    def complete(self) -> None:
        """Completes all three streams."""
        self.value.send_completed()
        self.flat_changes.send_completed()
        self.changes.send_completed()
