#!/usr/bin/env python3
"""
server_init.py
Initialises and runs the DuoChat Flask + Socket.IO application.

All chat state is in-memory and owned by one RoomSession per app, so the
server is strictly single-process: run one worker.
"""

from __future__ import annotations

import os
import logging

# Optional WebSocket support
# - Default: auto (use eventlet if available, otherwise fall back to threading/polling)
# - Override with: DUOCHAT_SOCKETIO_ASYNC=threading|eventlet
DUOCHAT_SOCKETIO_ASYNC = os.environ.get("DUOCHAT_SOCKETIO_ASYNC", "auto").strip().lower()
_EVENTLET_AVAILABLE = False
if DUOCHAT_SOCKETIO_ASYNC in {"auto", "eventlet"}:
    try:
        import eventlet  # type: ignore

        eventlet.monkey_patch()
        _EVENTLET_AVAILABLE = True
    except Exception:
        _EVENTLET_AVAILABLE = False
import secrets
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from flask import Flask, request
from flask_socketio import SocketIO

from constants import (
    APP_VERSION,
    MAX_MESSAGE_LENGTH,
    ROOM_CAPACITY,
    SEND_RATE_LIMIT,
    SEND_RATE_WINDOW_SECONDS,
)
from realtime.session import RoomSession
from routes_main import register_main_routes
from socket_handlers import register_socketio_handlers


def _normalize_cors_origins(val):
    """'*', a comma-separated string or a list -> what SocketIO expects (None disables)."""
    if val is None:
        return None
    if isinstance(val, str):
        raw = val.strip()
        if not raw:
            return None
        if raw == "*":
            return "*"
        # Support comma-separated strings
        if "," in raw:
            items = [x.strip() for x in raw.split(",") if x.strip()]
            return items or None
        return raw
    if isinstance(val, (list, tuple, set)):
        items = [str(x).strip() for x in val if str(x).strip()]
        return items or None
    return None


def _log_startup_banner(settings: Dict[str, Any], settings_file: Optional[Path] | None, async_mode: str) -> None:
    """Log a boot banner that makes 'wrong config' obvious."""
    cfg_path = Path(settings_file) if settings_file else None
    cfg_exists = bool(cfg_path and cfg_path.exists())
    cfg_mtime = None
    if cfg_exists:
        cfg_mtime = datetime.fromtimestamp(cfg_path.stat().st_mtime).isoformat(timespec="seconds")

    logging.info("==================== DuoChat Boot ====================")
    logging.info("Server: %s (DuoChat %s)", settings.get("server_name") or "DuoChat", APP_VERSION)
    logging.info("Settings file: %s (exists=%s%s)", str(cfg_path) if cfg_path else "<none>", cfg_exists,
                 f", mtime={cfg_mtime}" if cfg_mtime else "")
    logging.info("Socket.IO async mode: %s", async_mode)
    logging.info(
        "Room policy: capacity=%s send_limit=%s/%ss max_message=%s",
        ROOM_CAPACITY, SEND_RATE_LIMIT, SEND_RATE_WINDOW_SECONDS, MAX_MESSAGE_LENGTH,
    )
    logging.info("=======================================================")


def create_app(
    settings: Dict[str, Any],
    session: Optional[RoomSession] = None,
    settings_file: Optional[Path] | None = None,
) -> tuple[Flask, SocketIO]:
    """Create and configure the Flask + Socket.IO application.

    This function does **not** start a server. It is safe to import from a
    Gunicorn `wsgi.py` module. Pass ``session`` to share or inspect the room
    state (tests do); otherwise a fresh one is created.
    """

    settings_file = Path(settings_file) if isinstance(settings_file, str) else settings_file
    session = session or RoomSession()

    # ───── Flask App Core ─────
    app = Flask(__name__)
    app.config["DUOCHAT_SETTINGS_FILE"] = str(settings_file) if settings_file else None
    app.config["DUOCHAT_SETTINGS"] = settings
    app.config["DUOCHAT_SESSION"] = session

    app.secret_key = _ensure_secret_key(settings)
    app.config.update(SECRET_KEY=app.secret_key)

    # ───── SocketIO Setup ─────
    async_mode = "threading"
    if DUOCHAT_SOCKETIO_ASYNC == "eventlet" and not _EVENTLET_AVAILABLE:
        print("[socketio] DUOCHAT_SOCKETIO_ASYNC=eventlet but eventlet is not installed; falling back to threading")
    if (DUOCHAT_SOCKETIO_ASYNC in {"auto", "eventlet"}) and _EVENTLET_AVAILABLE:
        async_mode = "eventlet"

    app.config["DUOCHAT_SOCKETIO_ASYNC_MODE"] = async_mode

    socketio = SocketIO(
        app,
        async_mode=async_mode,
        cors_allowed_origins=_normalize_cors_origins(settings.get("cors_allowed_origins", "*")),
        logger=False,
        engineio_logger=False,
        ping_interval=int(settings.get("ping_interval", 20)),
        ping_timeout=int(settings.get("ping_timeout", 15)),
        max_http_buffer_size=int(settings.get("max_http_buffer_size", 1_000_000)),
    )

    app.config["DUOCHAT_SOCKETIO"] = socketio

    # ───── Global Socket.IO Error Handler ─────
    # A bug in one handler must not take down the relay for everyone else.
    @socketio.on_error_default  # applies to all namespaces
    def _socketio_default_error_handler(e):
        sid = getattr(request, "sid", None)
        app.logger.exception("Socket.IO handler error (sid=%s): %s", sid, e)

    # ───── Routes ─────
    register_main_routes(app, settings, session)
    register_socketio_handlers(socketio, settings, session)

    _log_startup_banner(settings, settings_file, async_mode)
    return app, socketio


def run_web_server(
    settings: Dict[str, Any],
    settings_file: Optional[Path] | None = None,
) -> None:
    """Bootstrap the Flask-SocketIO app, attach handlers, then run it."""

    app, socketio = create_app(settings, settings_file=settings_file)

    # ───── Run Server (single-process) ─────
    host = settings.get("host") or settings.get("server_host") or "0.0.0.0"
    port = int(settings.get("port") or settings.get("server_port") or 3000)
    debug = bool(settings.get("debug") or settings.get("server_debug") or False)

    name = settings.get("server_name") or "DuoChat"
    print(f"🚀  Starting {name} relay on http://{host}:{port} (debug={debug})")

    # Reduce console spam from long-polling by filtering Werkzeug access logs for /socket.io.
    class _DuoChatSocketIOAccessFilter(logging.Filter):
        def filter(self, record: logging.LogRecord) -> bool:  # type: ignore
            return "/socket.io/" not in record.getMessage()

    logging.getLogger("werkzeug").addFilter(_DuoChatSocketIOAccessFilter())

    threading_mode = app.config.get("DUOCHAT_SOCKETIO_ASYNC_MODE") == "threading"
    run_kwargs: Dict[str, Any] = {}
    if threading_mode:
        # Werkzeug is the only server available without eventlet.
        run_kwargs["allow_unsafe_werkzeug"] = True
    socketio.run(
        app,
        host=host,
        port=port,
        debug=debug,
        use_reloader=bool(debug and threading_mode),
        log_output=False,
        **run_kwargs,
    )


# ───── Helpers ─────
def _ensure_secret_key(settings: Dict[str, Any]) -> str:
    key = settings.get("secret_key") or os.getenv("SECRET_KEY")
    if key:
        return key

    # Nothing signed with this key outlives the process, so a one-off key is fine.
    key = secrets.token_urlsafe(64)
    settings["secret_key"] = key
    return key
