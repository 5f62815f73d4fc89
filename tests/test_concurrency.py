import threading

from realtime.session import Disconnect, Join, SendMessage


def _run_all(targets):
    barrier = threading.Barrier(len(targets))

    def _wrap(fn):
        def _go():
            barrier.wait()
            fn()
        return _go

    threads = [threading.Thread(target=_wrap(fn)) for fn in targets]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)
        assert not t.is_alive()


def test_concurrent_joins_admit_exactly_two(session):
    outcomes = {}

    def _joiner(i):
        def _go():
            outcomes[i] = session.handle(Join(f"s{i}", room="R", nick=f"n{i}"))
        return _go

    _run_all([_joiner(i) for i in range(16)])

    accepted = [i for i, out in outcomes.items() if out.ok]
    assert len(accepted) == 2
    assert session.registry.get("R").members == {f"s{i}" for i in accepted}
    assert session.connection_count() == 2


def test_join_and_disconnect_of_same_connection_leave_no_ghost(session):
    targets = []
    for i in range(20):
        sid = f"s{i}"
        targets.append(lambda sid=sid: session.handle(Join(sid, room=f"R{int(sid[1:]) % 3}", nick=sid)))
        targets.append(lambda sid=sid: session.handle(Disconnect(sid)))

    _run_all(targets)

    # Whichever arrived first, every connection is gone and so is every room.
    assert session.connection_count() == 0
    assert len(session.registry) == 0


def test_sends_and_disconnects_interleave_safely(session):
    session.handle(Join("a", room="R", nick="alice"))
    session.handle(Join("b", room="R", nick="bob"))

    targets = [lambda: session.handle(SendMessage("a", text="hi", room="R")) for _ in range(12)]
    targets += [lambda: session.handle(Disconnect("a")), lambda: session.handle(Disconnect("b"))]

    _run_all(targets)

    assert "R" not in session.registry
    assert session.connection_count() == 0
