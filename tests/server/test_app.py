"""Socket.IO transport tests using Flask-SocketIO's test client."""

import pytest
from salvo.config import ServerConfig
from salvo.protocol import events
from salvo.protocol.codec import encode_grid, encode_player
from salvo.server import create_app


@pytest.fixture
def server():
    app, socketio, coordinator = create_app(ServerConfig())
    return app, socketio, coordinator


def _join(client, player, grid, room_id: str = "r1"):
    payload = {"player": encode_player(player), "grid": encode_grid(grid), "roomId": room_id}
    return client.emit(events.JOIN_GAME, payload, callback=True)


def _received(client, name: str) -> list:
    return [message for message in client.get_received() if message["name"] == name]


def test_health_reports_room_count(server, make_fleet) -> None:
    app, socketio, _ = server
    http = app.test_client()
    assert http.get("/health").get_json() == {"status": "ok", "rooms": 0}

    client = socketio.test_client(app)
    assert _join(client, *make_fleet("Alice")) is True
    assert http.get("/health").get_json() == {"status": "ok", "rooms": 1}


def test_join_ack_and_ready_broadcast(server, make_fleet) -> None:
    app, socketio, coordinator = server
    first = socketio.test_client(app)
    second = socketio.test_client(app)

    assert _join(first, *make_fleet("Alice")) is True
    assert _join(second, *make_fleet("Bob")) is True
    assert _received(first, events.GAME_READY)
    assert _received(second, events.GAME_READY)

    third = socketio.test_client(app)
    assert _join(third, *make_fleet("Carol")) is False
    assert _received(third, events.GAME_READY) == []
    assert len(coordinator.get_game("r1").players) == 2


def test_malformed_join_is_nacked(server) -> None:
    app, socketio, _ = server
    client = socketio.test_client(app)
    assert client.emit(events.JOIN_GAME, {"roomId": "r1"}, callback=True) is False


def test_start_and_click_reach_both_clients(server, make_fleet) -> None:
    app, socketio, coordinator = server
    first = socketio.test_client(app)
    second = socketio.test_client(app)
    alice, alice_grid = make_fleet("Alice")
    bob, bob_grid = make_fleet("Bob")
    _join(first, alice, alice_grid)
    _join(second, bob, bob_grid)
    first.get_received()
    second.get_received()

    first.emit(events.START_GAME, {"roomId": "r1"})
    started = _received(second, events.GAME_STARTED)
    assert started[0]["args"][0]["game"]["phase"] == "guessing"

    first.emit(
        events.CLICK_SQUARE,
        {
            "roomId": "r1",
            "sendingPlayerId": alice.id,
            "guessedGridId": bob_grid.id,
            "coordinate": {"row": 1, "col": 1},
        },
    )
    update = _received(first, events.UPDATE_GAME)
    assert update[0]["args"][0]["game"]["currentPlayerTurn"] == 1
    assert coordinator.get_game("r1").current_player_turn == 1


def test_disconnect_notifies_opponent(server, make_fleet) -> None:
    app, socketio, coordinator = server
    first = socketio.test_client(app)
    second = socketio.test_client(app)
    _join(first, *make_fleet("Alice"))
    _join(second, *make_fleet("Bob"))
    second.get_received()

    first.disconnect()
    assert _received(second, events.PLAYER_LEAVE)
    second.disconnect()
    assert coordinator.rooms == []
