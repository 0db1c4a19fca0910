"""Flask-SocketIO binding for the room coordinator."""

from __future__ import annotations

import logging

from flask import Flask, jsonify, request
from flask_socketio import SocketIO

from salvo.config import ServerConfig
from salvo.protocol import events

from .coordinator import RoomCoordinator

logger = logging.getLogger(__name__)


def create_app(config: ServerConfig | None = None) -> tuple[Flask, SocketIO, RoomCoordinator]:
    """Build the Flask app, its Socket.IO server and the coordinator behind them."""
    config = config or ServerConfig()
    app = Flask(__name__)
    socketio = SocketIO(
        app,
        cors_allowed_origins=config.cors_allowed_origins,
        async_mode="threading",
        logger=config.debug_log,
        engineio_logger=False,
    )

    def emit(event: str, payload: dict | None, connection_id: str) -> None:
        if payload is None:
            socketio.emit(event, to=connection_id)
        else:
            socketio.emit(event, payload, to=connection_id)

    coordinator = RoomCoordinator(emit, conceal_fleets=config.conceal_fleets)

    @app.get("/health")
    def health_check():
        return jsonify(status="ok", rooms=len(coordinator.rooms))

    @socketio.on("connect")
    def handle_connect(auth=None):
        coordinator.connect(request.sid)

    @socketio.on("disconnect")
    def handle_disconnect(reason=None):
        coordinator.disconnect(request.sid)

    @socketio.on(events.JOIN_GAME)
    def handle_join_game(data=None):
        # The return value is delivered to the client as the join ack.
        return coordinator.join_game(request.sid, data).ok

    @socketio.on(events.START_GAME)
    def handle_start_game(data=None):
        coordinator.start_game(request.sid, data)

    @socketio.on(events.CLICK_SQUARE)
    def handle_click_square(data=None):
        coordinator.click_square(request.sid, data)

    logger.debug("app_created", extra={"host": config.host, "port": config.port})
    return app, socketio, coordinator


def run_server(config: ServerConfig) -> None:
    app, socketio, _ = create_app(config)
    logger.info("server_starting", extra={"host": config.host, "port": config.port})
    socketio.run(app, host=config.host, port=config.port, allow_unsafe_werkzeug=True)
