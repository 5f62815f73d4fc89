#!/usr/bin/env python3

from __future__ import annotations


# Application version (semantic-ish). Reported by the health endpoint and boot banner.
APP_VERSION = "0.3.2"

# Path to the plaintext JSON server configuration file
CONFIG_FILE = "server_config.json"

# ───── Room policy (fixed, not configurable) ─────

# A room holds exactly two participants.
ROOM_CAPACITY = 2

# Maximum lengths applied by security.sanitize() to client-supplied fields.
MAX_ROOM_ID_LENGTH = 40
MAX_NICKNAME_LENGTH = 24
MAX_ROOM_KEY_LENGTH = 50
MAX_MESSAGE_LENGTH = 2000

# Per-sender send throttle, evaluated independently in every room.
SEND_RATE_LIMIT = 8
SEND_RATE_WINDOW_SECONDS = 10

# How many disconnected sids the session remembers. A join that the transport
# dispatched before the disconnect but that reaches the session after it is
# dropped instead of binding a dead connection.
CLOSED_SID_MEMORY = 4096

# ───── Client-visible texts ─────

JOIN_ERROR_MESSAGES = {
    "invalid_parameters": "Invalid parameters: room and nickname are required",
    "room_full": "This room allows at most 2 participants",
    "key_mismatch": "The room key does not match",
    "unexpected_key": "A key cannot be added to a room that is already open",
    "already_joined": "This connection has already joined a room",
}

THROTTLED_NOTICE = "You are sending messages too fast. Please wait a moment and try again."


def joined_message(nickname: str, room_id: str, keyed: bool) -> str:
    """Human-readable acknowledgement sent with the ``joined`` event."""
    msg = f"{nickname}, you joined room {room_id}"
    if keyed:
        msg += " (key applied)"
    return msg
