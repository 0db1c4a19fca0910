"""Two-player match aggregate: phases, turn order and shot resolution."""

from __future__ import annotations

import logging
from enum import Enum

from salvo.telemetry import get_meter, get_tracer

from .coordinate import Coordinate
from .errors import AlreadyGuessed, GameAlreadyStarted, InvalidMove, RoomFull, WrongPhase
from .grid import Grid
from .player import Player
from .ship import STANDARD_FLEET

logger = logging.getLogger(__name__)
tracer = get_tracer("salvo.engine.game")
meter = get_meter("salvo.engine.game")

MOVE_COUNTER = meter.create_counter(
    "salvo_engine_moves",
    unit="1",
    description="Number of resolved shots in a Game",
)

MAX_PLAYERS = 2


class GamePhase(Enum):
    """Lifecycle of a match. Phases only ever move forward."""

    WAITING = "waiting"
    SETUP = "setup"
    GUESSING = "guessing"
    END = "end"

    @property
    def order(self) -> int:
        return list(GamePhase).index(self)


class StartOutcome(Enum):
    STARTED = "started"
    ALREADY_STARTED = "already_started"
    NOT_ENOUGH_PLAYERS = "not_enough_players"


class Game:
    """Owns the players and grids of one match and enforces its rules."""

    def __init__(self, start_player_turn: int = 0) -> None:
        if start_player_turn not in (0, 1):
            raise ValueError("start_player_turn must be 0 or 1.")
        self._players: dict[str, Player] = {}
        self._grids: dict[str, Grid] = {}
        self._player_grid_ids: dict[str, str] = {}
        self._current_player_turn = start_player_turn
        self._phase = GamePhase.WAITING
        self._winner_id: str | None = None

    @classmethod
    def restore(
        cls,
        phase: GamePhase,
        current_player_turn: int,
        players: list[tuple[Player, Grid]],
        winner_id: str | None = None,
    ) -> Game:
        """Rebuild a game from decoded parts, bypassing the join workflow."""
        if len(players) > MAX_PLAYERS:
            raise ValueError(f"A game holds at most {MAX_PLAYERS} players.")
        game = cls(current_player_turn)
        for player, grid in players:
            game._register(player, grid)
        game._phase = phase
        game._winner_id = winner_id
        return game

    # ---------------------------------------------------------------- queries

    @property
    def phase(self) -> GamePhase:
        return self._phase

    @property
    def started(self) -> bool:
        return self._phase in (GamePhase.GUESSING, GamePhase.END)

    @property
    def is_full(self) -> bool:
        return len(self._players) >= MAX_PLAYERS

    @property
    def current_player_turn(self) -> int:
        return self._current_player_turn

    @property
    def players(self) -> list[Player]:
        """Players in join order."""
        return list(self._players.values())

    @property
    def grids(self) -> list[Grid]:
        return list(self._grids.values())

    @property
    def player_grid_ids(self) -> dict[str, str]:
        return dict(self._player_grid_ids)

    @property
    def current_player(self) -> Player | None:
        players = self.players
        if self._current_player_turn >= len(players):
            return None
        return players[self._current_player_turn]

    @property
    def winner_id(self) -> str | None:
        return self._winner_id

    def get_player(self, player_id: str) -> Player | None:
        return self._players.get(player_id)

    def get_grid(self, grid_id: str) -> Grid | None:
        return self._grids.get(grid_id)

    def get_grid_for(self, player_id: str) -> Grid | None:
        grid_id = self._player_grid_ids.get(player_id)
        return self._grids.get(grid_id) if grid_id is not None else None

    def get_opponent(self, player_id: str) -> Player | None:
        if player_id not in self._players:
            return None
        for other_id, player in self._players.items():
            if other_id != player_id:
                return player
        return None

    def get_grid_for_opponent(self, player_id: str) -> Grid | None:
        opponent = self.get_opponent(player_id)
        return self.get_grid_for(opponent.id) if opponent else None

    def is_player_turn(self, player_id: str) -> bool:
        current = self.current_player
        return current is not None and current.id == player_id

    def fleet_sunk(self, player_id: str) -> bool:
        player = self._players.get(player_id)
        return player is not None and player.all_ships_are_sunk()

    def available_targets(self, player_id: str) -> list[Coordinate]:
        """Unmarked coordinates on the opponent's grid, or nothing outside guessing."""
        if self._phase is not GamePhase.GUESSING:
            return []
        grid = self.get_grid_for_opponent(player_id)
        if grid is None:
            return []
        return [square.coordinate for square in grid if not square.marked]

    # -------------------------------------------------------------- commands

    def add_player(self, player: Player, grid: Grid) -> None:
        """Register a player and their grid; the second player moves the game to setup."""
        if self.started:
            raise GameAlreadyStarted("Cannot join a game that has already started.")
        if self.is_full:
            raise RoomFull(f"A game holds at most {MAX_PLAYERS} players.")
        if player.id in self._players:
            raise InvalidMove(f"Player {player.id} has already joined.")
        if grid.id in self._grids:
            raise InvalidMove(f"Grid {grid.id} is already registered.")
        if sorted(ship.length for ship in player.ships) != sorted(STANDARD_FLEET):
            raise InvalidMove(f"Player {player.name} must bring the standard fleet {list(STANDARD_FLEET)}.")
        if not player.all_ships_are_placed():
            raise InvalidMove(f"Player {player.name} has not placed their whole fleet.")
        taken = {ship.id for other in self._players.values() for ship in other.ships}
        clashing = sorted(taken.intersection(ship.id for ship in player.ships))
        if clashing:
            raise InvalidMove(f"Ship ids {clashing} are already in use in this game.")

        self._register(player, grid)
        logger.info(
            "player_added",
            extra={"player_id": player.id, "player_name": player.name, "player_count": len(self._players)},
        )
        if self.is_full:
            self._advance(GamePhase.SETUP)

    def start_game(self) -> StartOutcome:
        if self.started:
            logger.warning("start_rejected_already_started", extra={"phase": self._phase.value})
            return StartOutcome.ALREADY_STARTED
        if len(self._players) < MAX_PLAYERS:
            logger.warning("start_rejected_not_enough_players", extra={"player_count": len(self._players)})
            return StartOutcome.NOT_ENOUGH_PLAYERS
        self._advance(GamePhase.GUESSING)
        logger.info("game_started", extra={"current_player_turn": self._current_player_turn})
        return StartOutcome.STARTED

    def grid_square_clicked(self, player_id: str, grid_id: str, coordinate: Coordinate) -> bool:
        """Fire the acting player's shot at ``grid_id`` and return whether it hit."""
        with tracer.start_as_current_span("game.grid_square_clicked") as span:
            span.set_attribute("player.id", player_id)
            span.set_attribute("grid.id", grid_id)
            span.set_attribute("shot.coordinate", coordinate.key)
            if self._phase is not GamePhase.GUESSING:
                logger.error(
                    "move_rejected_wrong_phase",
                    extra={"player_id": player_id, "phase": self._phase.value},
                )
                raise WrongPhase(f"Cannot click a square during the {self._phase.value} phase.")

            player = self._players.get(player_id)
            grid = self._grids.get(grid_id)
            if player is None:
                raise InvalidMove(f"Unknown player {player_id}.")
            if grid is None:
                raise InvalidMove(f"Unknown grid {grid_id}.")
            if not self.is_player_turn(player_id):
                logger.error(
                    "move_rejected_wrong_player",
                    extra={"player_id": player_id, "current_player_turn": self._current_player_turn},
                )
                raise InvalidMove(f"It is not {player.name}'s turn.")
            if self._player_grid_ids[player_id] == grid_id:
                logger.error("move_rejected_own_grid", extra={"player_id": player_id, "grid_id": grid_id})
                raise InvalidMove(f"{player.name} cannot target their own grid.")

            hit = self._guess_square(player, grid, coordinate)
            span.set_attribute("shot.hit", hit)
            MOVE_COUNTER.add(1, attributes={"result": "hit" if hit else "miss"})
            return hit

    def end_current_turn(self) -> None:
        self._current_player_turn = (self._current_player_turn + 1) % MAX_PLAYERS

    def check_for_winner(self) -> Player | None:
        """End the game if a fleet has been sunk and return the winning player."""
        if self._winner_id is not None:
            return self._players[self._winner_id]
        if self._phase is not GamePhase.GUESSING:
            return None
        for player in self.players:
            if player.all_ships_are_sunk():
                winner = self.get_opponent(player.id)
                if winner is None:
                    return None
                self._winner_id = winner.id
                self._advance(GamePhase.END)
                logger.info("game_finished", extra={"winner_id": winner.id, "winner_name": winner.name})
                return winner
        return None

    # -------------------------------------------------------------- internals

    def _guess_square(self, player: Player, grid: Grid, coordinate: Coordinate) -> bool:
        if grid.get(coordinate).marked:
            logger.error(
                "move_rejected_already_guessed",
                extra={"player_id": player.id, "coordinate": coordinate.key},
            )
            raise AlreadyGuessed(f"{coordinate} has already been guessed.")
        player.guess_coordinate(coordinate)
        return grid.receive_shot(coordinate)

    def _register(self, player: Player, grid: Grid) -> None:
        self._players[player.id] = player
        self._grids[grid.id] = grid
        self._player_grid_ids[player.id] = grid.id

    def _advance(self, phase: GamePhase) -> None:
        if phase.order < self._phase.order:
            raise RuntimeError(f"Cannot move from {self._phase.value} back to {phase.value}.")
        self._phase = phase
