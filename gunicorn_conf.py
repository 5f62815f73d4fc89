"""gunicorn_conf.py

Default Gunicorn config for DuoChat + Flask-SocketIO using Eventlet.

Environment variables:
  DUOCHAT_BIND=0.0.0.0:3000
  DUOCHAT_GUNICORN_LOGLEVEL=info
  DUOCHAT_GUNICORN_ACCESSLOG=-
  DUOCHAT_GUNICORN_ERRORLOG=-
  DUOCHAT_GUNICORN_TIMEOUT=60

Recommended:
  DUOCHAT_SOCKETIO_ASYNC=eventlet
"""

from __future__ import annotations

import os

bind = os.environ.get("DUOCHAT_BIND", "0.0.0.0:3000")
# Rooms live in process memory; more than one worker splits them.
workers = 1
worker_class = "eventlet"

# WebSockets keep connections open; avoid overly low timeouts.
timeout = int(os.environ.get("DUOCHAT_GUNICORN_TIMEOUT", "60"))
keepalive = int(os.environ.get("DUOCHAT_GUNICORN_KEEPALIVE", "5"))

loglevel = os.environ.get("DUOCHAT_GUNICORN_LOGLEVEL", "info")
accesslog = os.environ.get("DUOCHAT_GUNICORN_ACCESSLOG", "-")
errorlog = os.environ.get("DUOCHAT_GUNICORN_ERRORLOG", "-")

# Important for Socket.IO upgrades through reverse proxies.
forwarded_allow_ips = os.environ.get("DUOCHAT_FORWARDED_ALLOW_IPS", "*")
