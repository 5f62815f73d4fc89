"""Room session state machine.

Socket handlers turn incoming events into one of the command types below and
pass them to ``RoomSession.handle``. Each command returns an ``Outcome``
describing what happened and which events must be emitted to which sockets;
the session itself never touches the transport.

Room states:

    EMPTY  --join-->  OPEN  --join-->  PAIRED
    PAIRED --disconnect--> OPEN --disconnect--> (room removed)
"""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from constants import (
    CLOSED_SID_MEMORY,
    JOIN_ERROR_MESSAGES,
    MAX_MESSAGE_LENGTH,
    MAX_NICKNAME_LENGTH,
    MAX_ROOM_ID_LENGTH,
    MAX_ROOM_KEY_LENGTH,
    ROOM_CAPACITY,
    THROTTLED_NOTICE,
    joined_message,
)
from realtime.state import ConnectionInfo, Room, RoomRegistry
from realtime.throttle import SendThrottle
from security import keys_match, log_audit_event, sanitize


class RoomState(str, Enum):
    EMPTY = "empty"
    OPEN = "open"
    PAIRED = "paired"


class JoinError(str, Enum):
    INVALID_PARAMETERS = "invalid_parameters"
    ROOM_FULL = "room_full"
    KEY_MISMATCH = "key_mismatch"
    UNEXPECTED_KEY = "unexpected_key"
    ALREADY_JOINED = "already_joined"

    @property
    def message(self) -> str:
        return JOIN_ERROR_MESSAGES[self.value]


# Outcome statuses
ACCEPTED = "accepted"
REJECTED = "rejected"
THROTTLED = "throttled"
DROPPED = "dropped"
NOOP = "noop"


# ───── Commands ─────

@dataclass(frozen=True)
class Join:
    sid: str
    room: Any = None
    nick: Any = None
    key: Any = None


@dataclass(frozen=True)
class SendMessage:
    sid: str
    text: Any = None
    room: Any = None


@dataclass(frozen=True)
class Typing:
    sid: str
    room: Any = None


@dataclass(frozen=True)
class Disconnect:
    sid: str


# ───── Outcomes ─────

@dataclass(frozen=True)
class Delivery:
    """One outbound event for one socket."""

    to: str
    event: str
    payload: Any


@dataclass
class Outcome:
    status: str
    error: Optional[JoinError] = None
    deliveries: List[Delivery] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == ACCEPTED


class RoomSession:
    """Owns the room registry, the throttle and the sid -> ConnectionInfo table."""

    def __init__(
        self,
        registry: Optional[RoomRegistry] = None,
        throttle: Optional[SendThrottle] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.registry = registry or RoomRegistry()
        self.throttle = throttle or SendThrottle()
        # Wall clock for message timestamps.
        self.clock = clock
        self._connections: Dict[str, ConnectionInfo] = {}
        # Recently disconnected sids, oldest first.
        self._closed: "OrderedDict[str, None]" = OrderedDict()
        self._handlers: Dict[type, Callable[[Any], Outcome]] = {
            Join: self._join,
            SendMessage: self._send_message,
            Typing: self._typing,
            Disconnect: self._disconnect,
        }

    # ───── public API ─────

    def handle(self, command) -> Outcome:
        """Apply one command atomically and return its outcome."""
        handler = self._handlers.get(type(command))
        if handler is None:
            raise TypeError(f"Unsupported command: {type(command).__name__}")
        with self.registry.lock:
            return handler(command)

    def connection(self, sid: str) -> Optional[ConnectionInfo]:
        with self.registry.lock:
            return self._connections.get(sid)

    def connection_count(self) -> int:
        with self.registry.lock:
            return len(self._connections)

    def state_of(self, room_id: str) -> RoomState:
        room = self.registry.get(room_id)
        if room is None or not room.members:
            return RoomState.EMPTY
        if len(room.members) == 1:
            return RoomState.OPEN
        return RoomState.PAIRED

    # ───── helpers ─────

    @staticmethod
    def _to_others(room: Room, sender: str, event: str, payload: Any) -> List[Delivery]:
        return [Delivery(sid, event, payload) for sid in sorted(room.members) if sid != sender]

    def _refuse(self, sid: str, error: JoinError, room_id: str = "") -> Outcome:
        logging.info("[rooms] join refused sid=%s room=%s reason=%s", sid, room_id or "-", error.value)
        return Outcome(REJECTED, error=error, deliveries=[Delivery(sid, "join_error", error.message)])

    def _mark_closed(self, sid: str) -> None:
        self._closed[sid] = None
        self._closed.move_to_end(sid)
        while len(self._closed) > CLOSED_SID_MEMORY:
            self._closed.popitem(last=False)

    def _bound_room(self, sid: str, requested: Any) -> tuple[Optional[ConnectionInfo], Optional[Room]]:
        """Resolve the sender's room for relay commands; (None, None) means drop."""
        info = self._connections.get(sid)
        if info is None:
            logging.debug("[rooms] drop from unjoined sid=%s", sid)
            return None, None
        if requested is not None:
            requested_id = sanitize(requested, MAX_ROOM_ID_LENGTH)
            if requested_id and requested_id != info.room_id:
                logging.debug("[rooms] drop sid=%s: not in room %s", sid, requested_id)
                return None, None
        room = self.registry.get(info.room_id)
        if room is None:
            logging.debug("[rooms] drop sid=%s: room %s no longer exists", sid, info.room_id)
            return None, None
        return info, room

    # ───── transitions ─────

    def _join(self, cmd: Join) -> Outcome:
        if cmd.sid in self._closed:
            # The connection dropped before its join got here; nobody to answer.
            logging.debug("[rooms] drop join from closed sid=%s", cmd.sid)
            return Outcome(DROPPED)

        room_id = sanitize(cmd.room, MAX_ROOM_ID_LENGTH)
        nick = sanitize(cmd.nick, MAX_NICKNAME_LENGTH)
        key = sanitize(cmd.key, MAX_ROOM_KEY_LENGTH)

        if not room_id or not nick:
            return self._refuse(cmd.sid, JoinError.INVALID_PARAMETERS, room_id)

        if cmd.sid in self._connections:
            return self._refuse(cmd.sid, JoinError.ALREADY_JOINED, room_id)

        room, created = self.registry.get_or_create(room_id)

        error: Optional[JoinError] = None
        if len(room.members) >= ROOM_CAPACITY:
            error = JoinError.ROOM_FULL
        elif not room.members:
            if key:
                room.key = key
        elif room.keyed and not keys_match(room.key, key):
            error = JoinError.KEY_MISMATCH
        elif not room.keyed and key:
            error = JoinError.UNEXPECTED_KEY

        if error is not None:
            return self._refuse(cmd.sid, error, room_id)

        if created:
            logging.info("[rooms] room created room=%s keyed=%s", room_id, room.keyed)

        self._connections[cmd.sid] = ConnectionInfo(sid=cmd.sid, nickname=nick, room_id=room_id)
        room.members.add(cmd.sid)
        log_audit_event(nick, "joined room", target=room_id, details=f"sid={cmd.sid} members={len(room.members)}")

        deliveries = [Delivery(cmd.sid, "joined", {"msg": joined_message(nick, room_id, room.keyed)})]
        deliveries.extend(self._to_others(room, cmd.sid, "peer_joined", nick))
        return Outcome(ACCEPTED, deliveries=deliveries)

    def _send_message(self, cmd: SendMessage) -> Outcome:
        info, room = self._bound_room(cmd.sid, cmd.room)
        if room is None:
            return Outcome(DROPPED)

        text = sanitize(cmd.text, MAX_MESSAGE_LENGTH)

        if self.throttle.is_throttled(room, cmd.sid):
            logging.info(
                "[rooms] throttled sid=%s room=%s retry_after=%.1fs",
                cmd.sid, room.id, self.throttle.retry_after(room, cmd.sid),
            )
            return Outcome(THROTTLED, deliveries=[Delivery(cmd.sid, "info", THROTTLED_NOTICE)])

        self.throttle.record(room, cmd.sid)
        payload = {"nick": info.nickname, "text": text, "ts": int(self.clock() * 1000)}
        return Outcome(ACCEPTED, deliveries=self._to_others(room, cmd.sid, "msg", payload))

    def _typing(self, cmd: Typing) -> Outcome:
        info, room = self._bound_room(cmd.sid, cmd.room)
        if room is None:
            return Outcome(DROPPED)
        return Outcome(ACCEPTED, deliveries=self._to_others(room, cmd.sid, "typing", info.nickname))

    def _disconnect(self, cmd: Disconnect) -> Outcome:
        self._mark_closed(cmd.sid)
        info = self._connections.pop(cmd.sid, None)
        if info is None:
            return Outcome(NOOP)

        room = self.registry.get(info.room_id)
        if room is None:
            logging.warning("[rooms] sid=%s was bound to missing room %s", cmd.sid, info.room_id)
            return Outcome(NOOP)

        room.members.discard(cmd.sid)
        log_audit_event(info.nickname, "left room", target=room.id, details=f"sid={cmd.sid} members={len(room.members)}")
        deliveries = self._to_others(room, cmd.sid, "peer_left", info.nickname)

        if not room.members:
            self.registry.remove(room.id)
            logging.info("[rooms] room destroyed room=%s", room.id)

        return Outcome(ACCEPTED, deliveries=deliveries)
