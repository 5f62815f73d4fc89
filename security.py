#!/usr/bin/env python3
"""security.py

Input sanitising, room-key comparison and audit logging.

Every string a client sends (room id, nickname, room key, message text) goes
through sanitize() before the realtime layer looks at it.
"""

from __future__ import annotations

import hmac
import logging
from typing import Any, Optional

_audit_log = logging.getLogger("duochat.audit")


# ────────────────────────────────────────────────────────────
# Sanitising
# ────────────────────────────────────────────────────────────

def sanitize(value: Any, max_len: int = 200) -> str:
    """Best-effort sanitiser for untrusted client strings.

    - non-strings become ''
    - every '<' and '>' character is removed
    - the result is truncated to ``max_len`` characters

    The function is idempotent: sanitize(sanitize(x, n), n) == sanitize(x, n).
    """
    if not isinstance(value, str):
        return ""
    s = value
    if "<" in s or ">" in s:
        s = s.replace("<", "").replace(">", "")
    return s[: max(0, int(max_len))]


def keys_match(expected: Optional[str], supplied: Optional[str]) -> bool:
    """Constant-time comparison of two room keys ('' and None are equal)."""
    a = (expected or "").encode("utf-8")
    b = (supplied or "").encode("utf-8")
    return hmac.compare_digest(a, b)


# ────────────────────────────────────────────────────────────
# Audit logging
# ────────────────────────────────────────────────────────────

def log_audit_event(actor: str, action: str, target: str | None = None, details: str | None = None) -> None:
    """Write an audit entry to the ``duochat.audit`` logger.

    Room keys and message bodies must never be passed in here.
    """
    _audit_log.info("actor=%s action=%s target=%s details=%s", actor, action, target, details)
