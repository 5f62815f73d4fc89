#!/usr/bin/env python3
"""interactive_setup.py

DuoChat setup wizard.

The relay needs very little configuration: where to bind, how chatty to log,
and which browser origins may open a Socket.IO connection. Room policy
(capacity, throttle, length caps) is fixed in constants.py and deliberately
not offered here.

The saved JSON is *compacted* to known DuoChat keys so server_config.json
stays readable.
"""

from __future__ import annotations

from typing import Any, Dict


# ──────────────────────────────────────────────────────────────────────────────
# Defaults (compact)
# ──────────────────────────────────────────────────────────────────────────────

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def get_default_settings() -> Dict[str, Any]:
    """Return a compact set of defaults for DuoChat."""

    return {
        # ── Core server ──────────────────────────────────────────────────
        "server_name": "DuoChat",
        "server_host": "0.0.0.0",
        "server_port": 3000,
        "debug": False,

        # Flask secret (a one-off key is generated at boot if empty)
        "secret_key": "",

        # ── Socket.IO transport ──────────────────────────────────────────
        # "*" allows any origin; use a list or comma-separated string to restrict.
        "cors_allowed_origins": "*",
        "ping_interval": 20,
        "ping_timeout": 15,
        "max_http_buffer_size": 1_000_000,

        # ── Logging ──────────────────────────────────────────────────────
        "log_level": "INFO",
        "log_format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        # Empty string logs to stdout only.
        "log_file_path": "logs/server.log",

        # ── Health ───────────────────────────────────────────────────────
        "enable_health_check_endpoint": True,
        "health_check_endpoint": "/health",
    }


def _compact_settings(settings: Dict[str, Any]) -> Dict[str, Any]:
    """Drop unknown keys so server_config.json stays small."""
    template = get_default_settings()
    compact: Dict[str, Any] = {}
    for k in template.keys():
        compact[k] = settings.get(k, template[k])
    return compact


# ──────────────────────────────────────────────────────────────────────────────
# Prompt helpers
# ──────────────────────────────────────────────────────────────────────────────


def _yn(prompt: str, default: bool = True) -> bool:
    suffix = "[Y/n]" if default else "[y/N]"
    while True:
        raw = (input(f"{prompt} {suffix}: ") or "").strip().lower()
        if not raw:
            return default
        if raw in ("y", "yes"):
            return True
        if raw in ("n", "no"):
            return False
        print("❌ Please answer yes or no.")


def _prompt_str(prompt: str, default: str) -> str:
    raw = input(f"{prompt} [{default}]: ")
    return raw.strip() if raw.strip() else default


def _prompt_int(prompt: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    while True:
        raw = input(f"{prompt} [{default}]: ").strip()
        if not raw:
            val = default
        else:
            try:
                val = int(raw)
            except ValueError:
                print("❌ Please enter a valid integer.")
                continue

        if min_val is not None and val < min_val:
            print(f"❌ Must be ≥ {min_val}.")
            continue
        if max_val is not None and val > max_val:
            print(f"❌ Must be ≤ {max_val}.")
            continue
        return val


def _prompt_choice(prompt: str, default: str, choices: list[str]) -> str:
    ch = {c.lower(): c for c in choices}
    choices_str = "/".join(choices)
    while True:
        raw = (input(f"{prompt} ({choices_str}) [{default}]: ") or "").strip()
        val = (raw or default).strip().lower()
        if val in ch:
            return ch[val]
        print(f"❌ Please choose one of: {choices_str}")


# ──────────────────────────────────────────────────────────────────────────────
# Wizard
# ──────────────────────────────────────────────────────────────────────────────


def interactive_setup(settings: Dict[str, Any]) -> Dict[str, Any]:
    """Run the DuoChat setup wizard and return an updated (compacted) settings dict."""

    # Start from compact defaults, but allow existing values to carry forward.
    base = get_default_settings()
    merged = {**base, **(settings or {})}

    # ── Core server ───────────────────────────────────────────────────────────
    merged["server_name"] = _prompt_str("Server name", str(merged.get("server_name") or base["server_name"]))
    merged["server_host"] = _prompt_str("Bind host", str(merged.get("server_host") or base["server_host"]))
    merged["server_port"] = _prompt_int("Bind port", int(merged.get("server_port") or base["server_port"]), 1, 65535)

    # ── Transport ─────────────────────────────────────────────────────────────
    cors = merged.get("cors_allowed_origins")
    if isinstance(cors, (list, tuple)):
        cors = ",".join(str(x) for x in cors)
    merged["cors_allowed_origins"] = _prompt_str(
        "Allowed origins (* or comma-separated list)",
        str(cors or base["cors_allowed_origins"]),
    )

    # ── Logging ───────────────────────────────────────────────────────────────
    merged["log_level"] = _prompt_choice(
        "Log level",
        str(merged.get("log_level") or base["log_level"]).upper(),
        LOG_LEVELS,
    )
    if _yn("Write logs to a file as well as stdout?", default=bool(merged.get("log_file_path"))):
        merged["log_file_path"] = _prompt_str("Log file path", str(merged.get("log_file_path") or base["log_file_path"]))
    else:
        merged["log_file_path"] = ""

    merged["enable_health_check_endpoint"] = _yn(
        "Expose the health check endpoint?",
        default=bool(merged.get("enable_health_check_endpoint", True)),
    )

    return _compact_settings(merged)
