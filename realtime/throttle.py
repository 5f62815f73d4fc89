"""Per-room send throttle.

Sliding window over ``Room.recent_sends``: entries older than the window are
dropped on every check, then the sender's remaining entries are counted.
The window runs on a monotonic clock; message timestamps are stamped by the
session from wall time.
The check runs before the new send is recorded, so at most ``limit`` sends
per sender fit in any window. Throttled attempts are never recorded.
"""

from __future__ import annotations

import time
from typing import Callable

from constants import SEND_RATE_LIMIT, SEND_RATE_WINDOW_SECONDS
from realtime.state import Room


class SendThrottle:
    def __init__(
        self,
        limit: int = SEND_RATE_LIMIT,
        window_seconds: float = SEND_RATE_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.limit = int(limit)
        self.window_seconds = float(window_seconds)
        self.clock = clock

    def _prune(self, room: Room, now: float) -> None:
        # Scan the whole log; entries are not assumed to be in clock order.
        live = [e for e in room.recent_sends if now - e[0] < self.window_seconds]
        room.recent_sends.clear()
        room.recent_sends.extend(live)

    def is_throttled(self, room: Room, sid: str) -> bool:
        now = self.clock()
        self._prune(room, now)
        count = sum(1 for _, sender in room.recent_sends if sender == sid)
        return count >= self.limit

    def record(self, room: Room, sid: str) -> None:
        """Log an accepted send."""
        room.recent_sends.append((self.clock(), sid))

    def retry_after(self, room: Room, sid: str) -> float:
        """Seconds until ``sid`` drops below the limit again (0.0 if not throttled)."""
        now = self.clock()
        self._prune(room, now)
        mine = sorted(t for t, sender in room.recent_sends if sender == sid)
        if len(mine) < self.limit:
            return 0.0
        oldest = mine[len(mine) - self.limit]
        return max(0.0, (oldest + self.window_seconds) - now)
