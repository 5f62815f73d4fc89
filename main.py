#!/usr/bin/env python3
"""main.py

DuoChat server entrypoint.

Settings live in a plaintext JSON file (``server_config.json`` by default).
Environment variables override individual keys, which is the preferred way to
configure containers and systemd units.
"""

from __future__ import annotations

import argparse
from datetime import datetime
import json
import logging
import os
import sys
from pathlib import Path

from constants import CONFIG_FILE
from interactive_setup import _compact_settings, get_default_settings, interactive_setup
from server_init import run_web_server


def configure_logging(settings: dict) -> None:
    """Configure stdout logging, plus file logging when ``log_file_path`` is set."""
    log_level_str = str(settings.get("log_level", "INFO")).upper()
    log_format = settings.get(
        "log_format",
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    log_file_path = settings.get("log_file_path", "logs/server.log")
    log_level = getattr(logging, log_level_str, logging.INFO)

    if log_file_path:
        log_dir = os.path.dirname(log_file_path)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        logging.basicConfig(level=log_level, format=log_format, filename=log_file_path, filemode="a")
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(log_format))
        logging.getLogger().addHandler(handler)
    else:
        logging.basicConfig(level=log_level, format=log_format, stream=sys.stdout)

    logging.info("Logging configured (level=%s)", log_level_str)


def load_settings(path: Path) -> dict:
    """Load settings from JSON. Returns defaults if missing."""
    if not path.exists():
        return get_default_settings()

    try:
        with path.open("r", encoding="utf-8") as fp:
            loaded = json.load(fp)
        if not isinstance(loaded, dict):
            raise ValueError("top-level JSON value must be an object")
    except Exception as exc:
        print(f"⚠️  Could not parse {path} as JSON: {exc}")
        # Move the broken file aside so a later --setup can write a fresh one.
        ts = datetime.now().strftime("%Y%m%d-%H%M%S")
        bad_path = path.with_suffix(path.suffix + f".bad-{ts}")
        try:
            path.rename(bad_path)
            print(f"⚠️  Backed up invalid settings file to: {bad_path}")
        except OSError as e2:
            print(f"⚠️  Could not back up invalid settings file: {e2}")
        print("⚠️  Falling back to defaults (run with --setup to rewrite config).")
        return get_default_settings()

    return {**get_default_settings(), **loaded}


def save_settings(path: Path, settings: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    # Never write a generated secret_key back to disk; it is regenerated per boot.
    to_save = _compact_settings(settings)
    to_save["secret_key"] = ""
    with path.open("w", encoding="utf-8") as fp:
        json.dump(to_save, fp, indent=2)


def apply_env_overrides(settings: dict) -> None:
    """Apply env overrides for secrets and runtime deployment."""

    def _bool_env(*names: str) -> bool | None:
        for n in names:
            v = os.getenv(n)
            if v is None:
                continue
            v = v.strip().lower()
            if v in ("1", "true", "yes", "y", "on"):
                return True
            if v in ("0", "false", "no", "n", "off"):
                return False
        return None

    def _str_env(*names: str) -> str | None:
        for n in names:
            v = os.getenv(n)
            if v is not None and v.strip() != "":
                return v.strip()
        return None

    def _int_env(*names: str) -> int | None:
        v = _str_env(*names)
        if v is None:
            return None
        try:
            return int(v)
        except ValueError:
            return None

    host = _str_env("DUOCHAT_HOST", "HOST")
    if host:
        settings["server_host"] = host

    port = _int_env("DUOCHAT_PORT", "PORT")
    if port:
        settings["server_port"] = port

    debug = _bool_env("DUOCHAT_DEBUG")
    if debug is not None:
        settings["debug"] = debug

    secret = os.getenv("SECRET_KEY")
    if secret:
        settings["secret_key"] = secret

    log_level = _str_env("DUOCHAT_LOG_LEVEL", "LOG_LEVEL")
    if log_level:
        settings["log_level"] = log_level.upper()

    # An explicitly empty DUOCHAT_LOG_FILE means "stdout only".
    log_file = os.getenv("DUOCHAT_LOG_FILE")
    if log_file is not None:
        settings["log_file_path"] = log_file.strip()

    cors = _str_env("DUOCHAT_CORS_ALLOWED_ORIGINS")
    if cors:
        settings["cors_allowed_origins"] = cors


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="DuoChat two-person relay server")
    p.add_argument("--setup", action="store_true", help="run the interactive setup wizard")
    p.add_argument("--config", default=os.environ.get("DUOCHAT_CONFIG") or CONFIG_FILE, help="path to server config JSON")
    return p.parse_args(argv)


def main() -> None:
    args = parse_args()
    settings_path = Path(args.config)

    settings = load_settings(settings_path)

    if args.setup:
        print("\n=== DuoChat Setup Wizard ===\n")
        settings = interactive_setup(settings)
        save_settings(settings_path, settings)
        print(f"✅ Saved settings to {settings_path}\n")

    apply_env_overrides(settings)
    configure_logging(settings)

    run_web_server(settings, settings_file=settings_path)


if __name__ == "__main__":
    main()
