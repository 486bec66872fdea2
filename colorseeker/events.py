"""
colorseeker/events.py - Status events and the channel they travel through.

The controller's worker thread is the only writer. The dashboard (or a test)
drains. put() never blocks: when the buffer is full the oldest event is
dropped, so a stalled consumer can't stall automation.
"""

import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Deque, List, Optional


class Level(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class Kind(str, Enum):
    # What the event is about. The dashboard counts these for its stats panel.
    LIFECYCLE = "lifecycle"
    CYCLE = "cycle"
    COLOR_FOUND = "color_found"
    COLOR_MISSING = "color_missing"
    LOOKUP = "lookup"
    CLICK = "click"
    MISS = "miss"
    FAILURE = "failure"


@dataclass(frozen=True)
class StatusEvent:
    message: str
    level: Level = Level.INFO
    kind: Kind = Kind.LIFECYCLE
    timestamp: datetime = field(default_factory=datetime.now)

    def format(self) -> str:
        return f"[{self.timestamp.strftime('%H:%M:%S')}] {self.message}"


class StatusChannel:
    """Bounded, ordered, drop-oldest event queue."""

    def __init__(self, capacity: int = 200) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self._events: Deque[StatusEvent] = deque(maxlen=capacity)
        self._cond = threading.Condition()
        self.dropped = 0

    @property
    def capacity(self) -> int:
        return self._events.maxlen

    def __len__(self) -> int:
        with self._cond:
            return len(self._events)

    def put(self, event: StatusEvent) -> None:
        with self._cond:
            if len(self._events) == self._events.maxlen:
                self.dropped += 1
            self._events.append(event)
            self._cond.notify_all()

    def emit(self, message: str, level: Level = Level.INFO, kind: Kind = Kind.LIFECYCLE) -> StatusEvent:
        event = StatusEvent(message, level, kind)
        self.put(event)
        return event

    def get(self, timeout: Optional[float] = None) -> Optional[StatusEvent]:
        # Oldest event, or None if nothing arrived before the timeout
        with self._cond:
            if not self._events:
                self._cond.wait(timeout)
            if not self._events:
                return None
            return self._events.popleft()

    def drain(self) -> List[StatusEvent]:
        with self._cond:
            events = list(self._events)
            self._events.clear()
            return events
