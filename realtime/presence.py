"""Socket.IO handlers: connection lifecycle.

A socket has no chat identity until its ``join`` is accepted, so connect only
logs; disconnect releases the room slot and tells the remaining peer.
"""

import logging

from flask import request

from realtime.session import Disconnect


def register(socketio, settings, ctx):
    """Register Socket.IO event handlers for this module."""

    @socketio.on("connect")
    def handle_connect(auth=None):
        logging.debug("[socketio] connect sid=%s", request.sid)

    @socketio.on("disconnect")
    def handle_disconnect(*args, **kwargs):
        # Socket.IO may pass a reason or sid depending on version.
        reason = args[0] if args else kwargs.get("reason")
        sid = request.sid

        outcome = ctx._apply(Disconnect(sid=sid))
        if not outcome.ok:
            logging.debug("[socketio] disconnect from unjoined sid=%s reason=%s", sid, reason)
            return

        logging.info("[socketio] disconnect sid=%s reason=%s", sid, reason)
