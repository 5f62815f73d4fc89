"""In-memory state for DuoChat rooms.

A RoomRegistry is created per application (see server_init.create_app) and
handed to the realtime handlers, so tests can run several independent
registries side by side. Nothing here survives a process restart.
"""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, Optional, Set, Tuple


@dataclass
class Room:
    """One two-person chat room."""

    id: str
    key: Optional[str] = None
    members: Set[str] = field(default_factory=set)
    # (timestamp, sid) of accepted sends; only the throttle reads this.
    recent_sends: Deque[Tuple[float, str]] = field(default_factory=deque)

    @property
    def keyed(self) -> bool:
        return bool(self.key)


@dataclass(frozen=True)
class ConnectionInfo:
    """Chat metadata bound to a socket once its join is accepted."""

    sid: str
    nickname: str
    room_id: str


class RoomRegistry:
    """Process-wide map of room id -> Room.

    All access goes through ``lock``; callers that need several steps to be
    atomic (look up, check capacity, add member) hold it for the whole
    sequence. The lock is re-entrant so the helpers below can be used while
    it is held.
    """

    def __init__(self) -> None:
        self._rooms: Dict[str, Room] = {}
        self.lock = threading.RLock()

    def get(self, room_id: str) -> Optional[Room]:
        with self.lock:
            return self._rooms.get(room_id)

    def get_or_create(self, room_id: str) -> Tuple[Room, bool]:
        """Return (room, created). A new room has no key and no members."""
        with self.lock:
            room = self._rooms.get(room_id)
            if room is not None:
                return room, False
            room = Room(id=room_id)
            self._rooms[room_id] = room
            return room, True

    def remove(self, room_id: str) -> bool:
        with self.lock:
            return self._rooms.pop(room_id, None) is not None

    def snapshot(self) -> Dict[str, int]:
        """room id -> member count (copy)."""
        with self.lock:
            return {rid: len(r.members) for rid, r in self._rooms.items()}

    def __contains__(self, room_id: object) -> bool:
        with self.lock:
            return room_id in self._rooms

    def __len__(self) -> int:
        with self.lock:
            return len(self._rooms)
