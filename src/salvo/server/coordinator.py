"""Room coordinator: one authoritative Game per room, fan-out of snapshots.

The coordinator knows nothing about sockets. It is handed an ``emit``
callable that delivers one event to one connection; the transport binding
in :mod:`salvo.server.app` supplies it.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional

from salvo.engine.errors import DecodeError, ErrorKind, GameRuleError, SalvoError
from salvo.engine.game import Game, StartOutcome
from salvo.protocol import events
from salvo.protocol.codec import decode_click_square, decode_join_game, decode_start_game, encode_game
from salvo.telemetry import get_tracer, record_game_metric

logger = logging.getLogger(__name__)
tracer = get_tracer("salvo.server.coordinator")

Emitter = Callable[[str, Optional[dict], str], None]

_START_FAILURES = {
    StartOutcome.ALREADY_STARTED: ErrorKind.GAME_ALREADY_STARTED,
    StartOutcome.NOT_ENOUGH_PLAYERS: ErrorKind.NOT_ENOUGH_PLAYERS,
}


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one client command as seen by the transport."""

    ok: bool
    error: ErrorKind | None = None
    hit: bool | None = None
    winner_id: str | None = None

    @classmethod
    def failed(cls, kind: ErrorKind) -> CommandResult:
        return cls(ok=False, error=kind)


class RoomCoordinator:
    """Routes commands into each room's Game and broadcasts the result.

    Commands run one at a time under a re-entrant lock, so a transport that
    dispatches handlers on several threads still mutates each Game serially.
    """

    def __init__(self, emit: Emitter, conceal_fleets: bool = True) -> None:
        self._emit = emit
        self._conceal_fleets = conceal_fleets
        self._games: dict[str, Game] = {}
        self._connection_rooms: dict[str, str | None] = {}
        self._connection_players: dict[str, str] = {}
        self._lock = threading.RLock()

    # ---------------------------------------------------------------- queries

    @property
    def rooms(self) -> list[str]:
        with self._lock:
            return list(self._games)

    def get_game(self, room_id: str) -> Game | None:
        with self._lock:
            return self._games.get(room_id)

    def room_of(self, connection_id: str) -> str | None:
        with self._lock:
            return self._connection_rooms.get(connection_id)

    def room_connections(self, room_id: str) -> list[str]:
        with self._lock:
            return [cid for cid, room in self._connection_rooms.items() if room == room_id]

    # ------------------------------------------------------------- connection

    def connect(self, connection_id: str) -> None:
        with self._lock:
            self._connection_rooms.setdefault(connection_id, None)
        logger.debug("connection_opened", extra={"connection_id": connection_id})

    def disconnect(self, connection_id: str) -> None:
        """Forget the connection, notify its room, and drop the room once empty."""
        with self._lock, tracer.start_as_current_span("coordinator.disconnect") as span:
            span.set_attribute("connection.id", connection_id)
            room_id = self._connection_rooms.pop(connection_id, None)
            player_id = self._connection_players.pop(connection_id, None)
            logger.debug("connection_closed", extra={"connection_id": connection_id, "room_id": room_id})
            if room_id is None:
                return

            if self.room_connections(room_id):
                logger.info("player_left_room", extra={"room_id": room_id, "player_id": player_id})
                self._broadcast(events.PLAYER_LEAVE, room_id)
            else:
                self._games.pop(room_id, None)
                logger.info("room_closed", extra={"room_id": room_id})
            record_game_metric("salvo_coordinator_disconnects", 1)

    # --------------------------------------------------------------- commands

    def join_game(self, connection_id: str, data: Any) -> CommandResult:
        """Register the sender's player and grid in a room; the result is the join ack."""
        with self._lock, tracer.start_as_current_span("coordinator.join_game") as span:
            span.set_attribute("connection.id", connection_id)
            result = self._join_game(connection_id, data)
            span.set_attribute("result.ok", result.ok)
            self._count(events.JOIN_GAME, result)
            return result

    def start_game(self, connection_id: str, data: Any) -> CommandResult:
        with self._lock, tracer.start_as_current_span("coordinator.start_game") as span:
            span.set_attribute("connection.id", connection_id)
            result = self._start_game(connection_id, data)
            span.set_attribute("result.ok", result.ok)
            self._count(events.START_GAME, result)
            return result

    def click_square(self, connection_id: str, data: Any) -> CommandResult:
        with self._lock, tracer.start_as_current_span("coordinator.click_square") as span:
            span.set_attribute("connection.id", connection_id)
            result = self._click_square(connection_id, data)
            span.set_attribute("result.ok", result.ok)
            if result.hit is not None:
                span.set_attribute("shot.hit", result.hit)
            self._count(events.CLICK_SQUARE, result)
            return result

    # -------------------------------------------------------------- internals

    def _join_game(self, connection_id: str, data: Any) -> CommandResult:
        try:
            request = decode_join_game(data)
        except DecodeError as exc:
            logger.warning("join_rejected_malformed", extra={"connection_id": connection_id, "reason": str(exc)})
            return CommandResult.failed(exc.kind)

        room_id = request.room_id
        current_room = self._connection_rooms.get(connection_id)
        if current_room is not None:
            reason = "already_joined" if current_room == room_id else "room_hop"
            logger.warning(
                f"join_rejected_{reason}",
                extra={"connection_id": connection_id, "room_id": room_id, "current_room": current_room},
            )
            return CommandResult.failed(ErrorKind.WRONG_ROOM)

        game = self._games.get(room_id) or Game()
        try:
            game.add_player(request.player, request.grid)
        except GameRuleError as exc:
            logger.warning(
                "join_rejected",
                extra={"connection_id": connection_id, "room_id": room_id, "error": exc.kind.value, "reason": str(exc)},
            )
            return CommandResult.failed(exc.kind)

        self._games[room_id] = game
        self._connection_rooms[connection_id] = room_id
        self._connection_players[connection_id] = request.player.id
        logger.info(
            "player_joined_room",
            extra={
                "room_id": room_id,
                "player_id": request.player.id,
                "player_name": request.player.name,
                "player_count": len(game.players),
            },
        )
        if game.is_full:
            self._broadcast(events.GAME_READY, room_id)
        return CommandResult(ok=True)

    def _start_game(self, connection_id: str, data: Any) -> CommandResult:
        try:
            room_id = decode_start_game(data)
        except DecodeError as exc:
            logger.warning("start_rejected_malformed", extra={"connection_id": connection_id, "reason": str(exc)})
            return CommandResult.failed(exc.kind)

        failure = self._check_membership(connection_id, room_id)
        if failure is not None:
            return failure

        game = self._games[room_id]
        outcome = game.start_game()
        if outcome is not StartOutcome.STARTED:
            logger.warning("start_rejected", extra={"room_id": room_id, "outcome": outcome.value})
            return CommandResult.failed(_START_FAILURES[outcome])

        self._broadcast(events.GAME_STARTED, room_id, with_snapshot=True)
        return CommandResult(ok=True)

    def _click_square(self, connection_id: str, data: Any) -> CommandResult:
        try:
            request = decode_click_square(data)
        except DecodeError as exc:
            logger.warning("click_rejected_malformed", extra={"connection_id": connection_id, "reason": str(exc)})
            return CommandResult.failed(exc.kind)

        room_id = request.room_id
        failure = self._check_membership(connection_id, room_id)
        if failure is not None:
            return failure
        if self._connection_players.get(connection_id) != request.sending_player_id:
            logger.warning(
                "click_rejected_impersonation",
                extra={"connection_id": connection_id, "player_id": request.sending_player_id},
            )
            return CommandResult.failed(ErrorKind.INVALID_MOVE)

        game = self._games[room_id]
        try:
            hit = game.grid_square_clicked(request.sending_player_id, request.guessed_grid_id, request.coordinate)
        except GameRuleError as exc:
            logger.warning(
                "click_rejected",
                extra={"room_id": room_id, "error": exc.kind.value, "reason": str(exc)},
            )
            return CommandResult.failed(exc.kind)
        except SalvoError as exc:
            logger.error("click_failed", extra={"room_id": room_id, "error": exc.kind.value}, exc_info=True)
            return CommandResult.failed(exc.kind)

        logger.info(
            "square_clicked",
            extra={
                "room_id": room_id,
                "player_id": request.sending_player_id,
                "coordinate": request.coordinate.key,
                "hit": hit,
            },
        )
        game.end_current_turn()
        winner = game.check_for_winner()
        self._broadcast(events.UPDATE_GAME, room_id, with_snapshot=True)
        if winner is None:
            return CommandResult(ok=True, hit=hit)

        logger.info("room_game_over", extra={"room_id": room_id, "winner_id": winner.id})
        self._broadcast(events.GAME_OVER, room_id, payload={"winnerId": winner.id})
        return CommandResult(ok=True, hit=hit, winner_id=winner.id)

    def _check_membership(self, connection_id: str, room_id: str) -> CommandResult | None:
        if room_id not in self._games:
            logger.warning("command_rejected_unknown_room", extra={"connection_id": connection_id, "room_id": room_id})
            return CommandResult.failed(ErrorKind.UNKNOWN_ROOM)
        if self._connection_rooms.get(connection_id) != room_id:
            logger.warning("command_rejected_not_in_room", extra={"connection_id": connection_id, "room_id": room_id})
            return CommandResult.failed(ErrorKind.WRONG_ROOM)
        return None

    def _broadcast(
        self,
        event: str,
        room_id: str,
        with_snapshot: bool = False,
        payload: dict | None = None,
    ) -> None:
        """Send ``event`` to every connection in the room."""
        game = self._games.get(room_id)
        if game is None:
            logger.warning("broadcast_skipped_unknown_room", extra={"event": event, "room_id": room_id})
            return
        connections = self.room_connections(room_id)
        logger.debug("broadcast", extra={"event": event, "room_id": room_id, "recipients": len(connections)})
        shared_snapshot = {"game": encode_game(game)} if with_snapshot and not self._conceal_fleets else None
        for connection_id in connections:
            body = payload
            if with_snapshot:
                body = shared_snapshot or {
                    "game": encode_game(game, viewer_id=self._connection_players.get(connection_id, ""))
                }
            self._emit(event, body, connection_id)

    @staticmethod
    def _count(event: str, result: CommandResult) -> None:
        outcome = "ok" if result.ok else result.error.value if result.error else "failed"
        record_game_metric("salvo_coordinator_commands", 1, {"event": event, "result": outcome})
