#!/usr/bin/env python3
"""Smoke test: two-person room relay against a running server.

What it checks
- /health answers.
- A joins a keyed room, B with the wrong key is refused, B with the right key
  gets in and A sees peer_joined.
- A -> B message relay works and is not echoed back to A.
- Typing signal reaches B.
- A third client is refused with "room full".
- B disconnecting produces peer_left for A.

Usage:
  python tools/smoke_test_relay.py --base http://127.0.0.1:3000

Tip:
  Run the server first in another terminal.
"""

from __future__ import annotations

import argparse
import os
import queue
import random
import string
from dataclasses import dataclass, field

import requests
import socketio


def _rand_suffix(n: int = 6) -> str:
    return "".join(random.choice(string.ascii_lowercase + string.digits) for _ in range(n))


@dataclass
class SioWrap:
    sio: socketio.Client
    events: "queue.Queue[tuple[str, object]]" = field(default_factory=queue.Queue)

    def expect(self, name: str, timeout: float = 5.0):
        """Wait for the next event called ``name``; other events are skipped."""
        while True:
            try:
                ev, data = self.events.get(timeout=timeout)
            except queue.Empty:
                raise RuntimeError(f"timed out waiting for {name!r}")
            if ev == name:
                return data

    def drain(self) -> list:
        out = []
        while not self.events.empty():
            out.append(self.events.get_nowait())
        return out


def make_client(base: str) -> SioWrap:
    sio = socketio.Client(logger=False, engineio_logger=False)
    wrap = SioWrap(sio=sio)

    for name in ("joined", "join_error", "peer_joined", "peer_left", "msg", "typing", "info"):
        # Bind name per iteration.
        def _handler(data=None, _name=name):
            wrap.events.put((_name, data))
        sio.on(name, _handler)

    sio.connect(base, transports=["websocket"], wait_timeout=10)
    return wrap


def main() -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("--base", default=os.environ.get("DUOCHAT_BASE", "http://127.0.0.1:3000"))
    ap.add_argument("--room", default=f"smoke_{_rand_suffix()}")
    ap.add_argument("--key", default="s3cret")
    args = ap.parse_args()

    base = args.base.rstrip("/")

    r = requests.get(f"{base}/health", timeout=10)
    r.raise_for_status()
    print(f"✅ Health OK: {r.json()}")

    A = make_client(base)
    B = make_client(base)
    C = None

    try:
        A.sio.emit("join", {"room": args.room, "nick": "alice", "key": args.key})
        print(f"✅ A joined: {A.expect('joined')['msg']}")

        B.sio.emit("join", {"room": args.room, "nick": "bob", "key": "wrong"})
        print(f"✅ Wrong key refused: {B.expect('join_error')}")

        B.sio.emit("join", {"room": args.room, "nick": "bob", "key": args.key})
        B.expect("joined")
        if A.expect("peer_joined") != "bob":
            print("❌ peer_joined carried the wrong nickname")
            return 2
        print("✅ B joined, A notified")

        A.sio.emit("msg", {"room": args.room, "text": "hello <b>bob</b>"})
        got = B.expect("msg")
        if got.get("nick") != "alice" or got.get("text") != "hello bbob/b":
            print(f"❌ Unexpected relayed message: {got}")
            return 3
        if any(ev == "msg" for ev, _ in A.drain()):
            print("❌ Message was echoed back to the sender")
            return 4
        print("✅ Message relay OK (sanitised, not echoed)")

        A.sio.emit("typing", args.room)
        if B.expect("typing") != "alice":
            print("❌ Typing signal carried the wrong nickname")
            return 5
        print("✅ Typing relay OK")

        C = make_client(base)
        C.sio.emit("join", {"room": args.room, "nick": "carol", "key": args.key})
        print(f"✅ Third join refused: {C.expect('join_error')}")

        B.sio.disconnect()
        if A.expect("peer_left") != "bob":
            print("❌ peer_left carried the wrong nickname")
            return 6
        print("✅ peer_left OK")

        print("\n🎉 Smoke test PASSED")
        return 0

    except RuntimeError as exc:
        print(f"❌ {exc}")
        return 1

    finally:
        for w in (A, B, C):
            if w is not None and w.sio.connected:
                w.sio.disconnect()


if __name__ == "__main__":
    raise SystemExit(main())
