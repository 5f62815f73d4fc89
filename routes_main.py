#!/usr/bin/env python3
"""routes_main.py

HTTP routes. The chat itself is Socket.IO only; HTTP just exposes a health
check for load balancers and the smoke test. It reports counts, never room
ids, nicknames or keys.
"""

from __future__ import annotations

from flask import jsonify

from constants import APP_VERSION, ROOM_CAPACITY


def register_main_routes(app, settings, session):
    if not bool(settings.get("enable_health_check_endpoint", True)):
        return

    endpoint = str(settings.get("health_check_endpoint") or "/health")
    if not endpoint.startswith("/"):
        endpoint = "/" + endpoint

    @app.route(endpoint, methods=["GET"])
    def health_check():
        counts = session.registry.snapshot().values()
        return jsonify({
            "status": "ok",
            "version": APP_VERSION,
            "rooms": len(counts),
            "paired_rooms": sum(1 for n in counts if n >= ROOM_CAPACITY),
            "connections": session.connection_count(),
        })
