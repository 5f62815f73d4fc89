class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def events(client, name=None):
    """Drain a Socket.IO test client's queue into [(event, first_arg)]."""
    out = []
    for pkt in client.get_received():
        args = pkt.get("args") or [None]
        if name is None or pkt["name"] == name:
            out.append((pkt["name"], args[0]))
    return out
