"""Socket.IO handlers: rooms.

join / msg / typing. Payloads are untrusted; anything that is not the
expected shape is treated as empty fields and left to the session to refuse.
"""

from flask import request

from realtime.session import Join, SendMessage, Typing


def _fields(data) -> dict:
    return data if isinstance(data, dict) else {}


def register(socketio, settings, ctx):
    """Register Socket.IO event handlers for this module."""

    @socketio.on("join")
    def handle_join(data=None):
        data = _fields(data)
        outcome = ctx._apply(Join(
            sid=request.sid,
            room=data.get("room"),
            nick=data.get("nick"),
            key=data.get("key"),
        ))
        return ctx._ack(outcome)

    @socketio.on("msg")
    def handle_msg(data=None):
        data = _fields(data)
        outcome = ctx._apply(SendMessage(sid=request.sid, text=data.get("text"), room=data.get("room")))
        return ctx._ack(outcome)

    @socketio.on("typing")
    def handle_typing(room=None):
        # Fire-and-forget; no ack payload. Accept {"room": ...} as well as a bare room id.
        if isinstance(room, dict):
            room = room.get("room")
        ctx._apply(Typing(sid=request.sid, room=room))
