#!/usr/bin/env python3
"""
socket_handlers.py

Socket.IO wiring for the DuoChat relay.

The realtime/*.py modules hold the event handlers; this module builds the
shared helper context they use and registers them on a SocketIO instance.
"""

import logging
from types import SimpleNamespace
from typing import Iterable

from realtime.session import Delivery, Outcome, RoomSession


def register_socketio_handlers(socketio, settings, session: RoomSession):
    """
    Registers all Socket.IO event handlers against ``session``.
    """

    def _deliver(deliveries: Iterable[Delivery]) -> None:
        """Emit each outbound event to its single target socket (fire-and-forget)."""
        for d in deliveries:
            try:
                socketio.emit(d.event, d.payload, to=d.to)
            except Exception as exc:
                # The peer may have vanished between the state change and the emit.
                logging.warning("[socketio] emit %s to %s failed: %s", d.event, d.to, exc)

    def _apply(command) -> Outcome:
        """Run a command through the session, then emit its deliveries outside the lock."""
        outcome = session.handle(command)
        _deliver(outcome.deliveries)
        return outcome

    def _ack(outcome: Outcome) -> dict:
        ack = {"success": outcome.ok, "status": outcome.status}
        if outcome.error is not None:
            ack["error"] = outcome.error.value
        return ack

    # ───────────────────────────────────────────────────────────────────
    # Register split handler modules (see realtime/*.py)
    # ───────────────────────────────────────────────────────────────────
    ctx = SimpleNamespace(session=session, _deliver=_deliver, _apply=_apply, _ack=_ack)
    from realtime import presence, rooms
    presence.register(socketio, settings, ctx)
    rooms.register(socketio, settings, ctx)
