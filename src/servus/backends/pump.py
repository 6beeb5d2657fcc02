"""Event queue connecting transport threads to the thread owning a directory."""
import logging
import queue
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

ADDED = "added"
REMOVED = "removed"
REGISTERED = "registered"


@dataclass
class Event:
    """A transport notification waiting to be applied."""
    kind: str
    name: Optional[str] = None
    payload: Any = None


def coalesce(events: List[Event]) -> List[Event]:
    """
    Collapse an add followed by a remove of the same instance to the remove.

    Relative order of the remaining events is preserved.
    """
    result: List[Event] = []
    for event in events:
        if event.kind == REMOVED:
            result = [e for e in result if not (e.kind == ADDED and e.name == event.name)]
        result.append(event)
    return result


class EventPump:
    """
    Thread-safe event queue drained on the owning thread.

    Transport threads post() events; iterate() applies them through the
    registered handlers, so handlers only ever run on the thread that calls
    iterate().
    """

    def __init__(self):
        self._queue: "queue.Queue[Event]" = queue.Queue()
        self._handlers: Dict[str, Callable[[Event], None]] = {}

    def on(self, kind: str, handler: Callable[[Event], None]) -> None:
        self._handlers[kind] = handler

    def post(self, kind: str, name: Optional[str] = None, payload: Any = None) -> None:
        self._queue.put(Event(kind, name, payload))

    def pending(self) -> int:
        return self._queue.qsize()

    def iterate(self, timeout_ms: int, until: Optional[Callable[[], bool]] = None) -> int:
        """
        Apply events for up to timeout_ms milliseconds.

        Args:
            timeout_ms: Time budget; 0 applies only what is already queued
            until: Optional predicate ending the loop early once true

        Returns:
            Number of events applied
        """
        deadline = time.monotonic() + max(timeout_ms, 0) / 1000.0
        applied = 0

        while True:
            if until is not None and until():
                break

            remaining = deadline - time.monotonic()
            try:
                if remaining > 0:
                    first = self._queue.get(timeout=remaining)
                else:
                    first = self._queue.get_nowait()
            except queue.Empty:
                break

            batch = [first]
            while True:
                try:
                    batch.append(self._queue.get_nowait())
                except queue.Empty:
                    break

            for event in coalesce(batch):
                self._dispatch(event)
                applied += 1

        return applied

    def _dispatch(self, event: Event) -> None:
        handler = self._handlers.get(event.kind)
        if handler is None:
            logger.debug(f"No handler for {event.kind} event")
            return
        handler(event)
