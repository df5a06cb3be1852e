"""Public event stream: ordered fan-out of bridge events to many consumers."""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable, Iterator

from jabractl.core.model import DeviceEvent

LOGGER = logging.getLogger(__name__)

Listener = Callable[[DeviceEvent], None]

_CLOSED = object()


class Subscription:
    """One consumer's view of the stream.

    Events arrive in dispatch order. Iterating blocks until the next event
    and stops once the subscription or the stream is closed.
    """

    def __init__(
        self,
        stream: EventStream,
        event_types: tuple[type[DeviceEvent], ...],
    ) -> None:
        self._stream = stream
        self._event_types = event_types
        self._queue: queue.SimpleQueue[object] = queue.SimpleQueue()
        self.closed = False

    def _offer(self, event: DeviceEvent) -> None:
        if self._event_types and not isinstance(event, self._event_types):
            return
        self._queue.put(event)

    def _end(self) -> None:
        self.closed = True
        self._queue.put(_CLOSED)

    def get(self, timeout: float | None = None) -> DeviceEvent | None:
        """Return the next event, or ``None`` once closed.

        Raises :class:`queue.Empty` when ``timeout`` elapses first.
        """
        item = self._queue.get(timeout=timeout)
        if item is _CLOSED:
            # Keep the marker for later readers.
            self._queue.put(_CLOSED)
            return None
        return item  # type: ignore[return-value]

    def drain(self) -> list[DeviceEvent]:
        """Return every event already queued without blocking."""
        events: list[DeviceEvent] = []
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                return events
            if item is _CLOSED:
                self._queue.put(_CLOSED)
                return events
            events.append(item)  # type: ignore[arg-type]

    def close(self) -> None:
        self._stream._unsubscribe(self)

    def __iter__(self) -> Iterator[DeviceEvent]:
        while True:
            event = self.get()
            if event is None:
                return
            yield event

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class EventStream:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscriptions: list[Subscription] = []
        self._listeners: list[Listener] = []
        self._closed = False

    def subscribe(self, *event_types: type[DeviceEvent]) -> Subscription:
        subscription = Subscription(self, event_types)
        with self._lock:
            if self._closed:
                subscription._end()
            else:
                self._subscriptions.append(subscription)
        return subscription

    def _unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)
        if not subscription.closed:
            subscription._end()

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` on the dispatch thread for every event.

        Returns a function that removes the listener.
        """
        with self._lock:
            self._listeners.append(listener)

        def remove() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return remove

    def publish(self, event: DeviceEvent) -> None:
        with self._lock:
            subscriptions = list(self._subscriptions)
            listeners = list(self._listeners)
        for subscription in subscriptions:
            subscription._offer(event)
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                LOGGER.exception("Event listener %r failed on %s", listener, event.kind.value)

    def close(self) -> None:
        with self._lock:
            self._closed = True
            subscriptions = list(self._subscriptions)
            self._subscriptions.clear()
        for subscription in subscriptions:
            subscription._end()
