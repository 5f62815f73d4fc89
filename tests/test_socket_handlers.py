from constants import JOIN_ERROR_MESSAGES, THROTTLED_NOTICE
from tests.helpers import events


def _join(client, room="R", nick="alice", key=None):
    payload = {"room": room, "nick": nick}
    if key is not None:
        payload["key"] = key
    return client.emit("join", payload, callback=True)


def test_join_ack_and_joined_event(make_client):
    a = make_client()

    ack = _join(a, nick="alice", key="abc")

    assert ack == {"success": True, "status": "accepted"}
    got = events(a)
    assert len(got) == 1
    name, payload = got[0]
    assert name == "joined"
    assert "alice" in payload["msg"] and "(key applied)" in payload["msg"]


def test_invalid_parameters_creates_no_room(make_client, session):
    a = make_client()

    ack = a.emit("join", {"room": "", "nick": "alice"}, callback=True)

    assert ack == {"success": False, "status": "rejected", "error": "invalid_parameters"}
    assert events(a) == [("join_error", JOIN_ERROR_MESSAGES["invalid_parameters"])]
    assert len(session.registry) == 0


def test_malformed_join_payload_is_invalid_parameters(make_client):
    a = make_client()

    a.emit("join", "not-a-dict")

    assert events(a) == [("join_error", JOIN_ERROR_MESSAGES["invalid_parameters"])]


def test_peer_joined_goes_to_existing_member_only(make_client):
    a, b = make_client(), make_client()
    _join(a, nick="alice")
    events(a)

    _join(b, nick="bob")

    assert events(a) == [("peer_joined", "bob")]
    assert [n for n, _ in events(b)] == ["joined"]


def test_key_gating_over_socket(make_client):
    a, b = make_client(), make_client()
    _join(a, nick="alice", key="abc")

    ack = _join(b, nick="bob", key="xyz")
    assert ack["error"] == "key_mismatch"
    assert events(b) == [("join_error", JOIN_ERROR_MESSAGES["key_mismatch"])]

    ack = _join(b, nick="bob", key="abc")
    assert ack["success"] is True


def test_unexpected_key_over_socket(make_client):
    a, b = make_client(), make_client()
    _join(a, nick="alice")

    ack = _join(b, nick="bob", key="abc")

    assert ack["error"] == "unexpected_key"
    assert events(b) == [("join_error", JOIN_ERROR_MESSAGES["unexpected_key"])]


def test_room_full_leaves_pair_untouched(make_client, session):
    a, b, c = make_client(), make_client(), make_client()
    _join(a, nick="alice")
    _join(b, nick="bob")
    events(a), events(b)

    ack = _join(c, nick="carol")

    assert ack["error"] == "room_full"
    assert events(c) == [("join_error", JOIN_ERROR_MESSAGES["room_full"])]
    assert events(a) == [] and events(b) == []
    assert len(session.registry.get("R").members) == 2


def test_message_relay_not_echoed(make_client, clock):
    a, b = make_client(), make_client()
    _join(a, nick="alice")
    _join(b, nick="bob")
    events(a), events(b)

    ack = a.emit("msg", {"room": "R", "text": "<i>hi</i>"}, callback=True)

    assert ack == {"success": True, "status": "accepted"}
    assert events(b) == [("msg", {"nick": "alice", "text": "ihi/i", "ts": int(clock.now * 1000)})]
    assert events(a) == []


def test_ninth_message_gets_info_notice(make_client, clock):
    a, b = make_client(), make_client()
    _join(a, nick="alice")
    _join(b, nick="bob")
    events(a), events(b)

    for i in range(9):
        a.emit("msg", {"room": "R", "text": f"m{i}"})
        clock.advance(0.5)

    assert [p["text"] for _, p in events(b, "msg")] == [f"m{i}" for i in range(8)]
    assert events(a) == [("info", THROTTLED_NOTICE)]

    clock.advance(10)
    a.emit("msg", {"room": "R", "text": "again"})
    assert [p["text"] for _, p in events(b, "msg")] == ["again"]


def test_msg_from_unjoined_socket_is_dropped(make_client):
    a, b, z = make_client(), make_client(), make_client()
    _join(a, nick="alice")
    _join(b, nick="bob")
    events(a), events(b)

    ack = z.emit("msg", {"room": "R", "text": "intruder"}, callback=True)

    assert ack == {"success": False, "status": "dropped"}
    assert events(a) == [] and events(b) == [] and events(z) == []


def test_typing_relay(make_client):
    a, b = make_client(), make_client()
    _join(a, nick="alice")
    _join(b, nick="bob")
    events(a), events(b)

    a.emit("typing", "R")
    b.emit("typing", {"room": "R"})

    assert events(b) == [("typing", "alice")]
    assert events(a) == [("typing", "bob")]


def test_typing_from_unjoined_socket_is_silent(make_client):
    a, z = make_client(), make_client()
    _join(a, nick="alice")
    events(a)

    z.emit("typing", "R")

    assert events(a) == []
    assert events(z) == []


def test_disconnect_emits_single_peer_left(make_client, session):
    a, b = make_client(), make_client()
    _join(a, nick="alice")
    _join(b, nick="bob")
    events(a), events(b)

    b.disconnect()

    assert events(a) == [("peer_left", "bob")]
    assert len(session.registry.get("R").members) == 1


def test_last_disconnect_destroys_room(make_client, session):
    a = make_client()
    _join(a, nick="alice", key="abc")

    a.disconnect()

    assert "R" not in session.registry
    assert session.connection_count() == 0

    fresh = make_client()
    assert _join(fresh, nick="bob")["success"] is True
    assert session.registry.get("R").key is None


def test_disconnect_without_join_is_harmless(make_client, session):
    a = make_client()
    a.disconnect()
    assert len(session.registry) == 0


def test_health_endpoint_reports_counts(app, make_client):
    a, b = make_client(), make_client()
    _join(a, room="R1", nick="alice")
    _join(b, room="R2", nick="bob")

    resp = app.test_client().get("/health")

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["status"] == "ok"
    assert body["rooms"] == 2
    assert body["paired_rooms"] == 0
    assert body["connections"] == 2
    assert "R1" not in resp.get_data(as_text=True)


def test_health_endpoint_can_be_disabled(settings, session):
    from server_init import create_app

    settings["enable_health_check_endpoint"] = False
    app, _ = create_app(settings, session=session)

    assert app.test_client().get("/health").status_code == 404


def test_health_endpoint_counts_paired_rooms(app, make_client):
    a, b, c = make_client(), make_client(), make_client()
    _join(a, room="R1", nick="alice")
    _join(b, room="R1", nick="bob")
    _join(c, room="R2", nick="carol")

    body = app.test_client().get("/health").get_json()

    assert body["rooms"] == 2
    assert body["paired_rooms"] == 1
    assert body["connections"] == 3


def test_boot_banner_names_the_server(settings, session, caplog):
    import logging

    from server_init import create_app

    caplog.set_level(logging.INFO)
    settings["server_name"] = "Lobby"

    app, _ = create_app(settings, session=session)

    assert "Server: Lobby (DuoChat" in caplog.text
    assert app.config["DUOCHAT_SOCKETIO_ASYNC_MODE"] == "threading"
