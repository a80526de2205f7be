import logging
import threading
from enum import Enum
from typing import Callable, List

logger = logging.getLogger(__name__)


class RefreshEvent(str, Enum):
    MEALS = "meals"
    WORKOUTS = "workouts"
    BOTH = "both"


Listener = Callable[[RefreshEvent], None]


class PlanRefreshBus:
    """
    Process-wide publish/subscribe registry for "a plan changed" notifications.
    Listeners register on mount and deregister on unmount; nothing is persisted.
    """

    def __init__(self):
        self._listeners: List[Listener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener. Returns a callable that unsubscribes it."""
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)
        return lambda: self.unsubscribe(listener)

    def unsubscribe(self, listener: Listener):
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def emit(self, event: RefreshEvent):
        logger.info(f"[PlanRefresh] Emitting plan refresh: {event.value}")
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception as e:
                # a failing listener never blocks the others
                logger.error(f"[PlanRefresh] Listener {listener!r} failed: {e}")

    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)


plan_refresh_bus = PlanRefreshBus()
