"""Explicit encode/decode functions for every entity that crosses the wire.

Decoders validate field presence with the pydantic models in
:mod:`salvo.protocol.schemas` and then check the cross-entity invariants
(ship runs, grid occupancy, player/grid pairing). Anything that fails is
reported as :class:`~salvo.engine.errors.DecodeError`; a decoder never
returns a half-built entity.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, TypeVar

from pydantic import ValidationError

from salvo.engine.coordinate import Coordinate, Direction
from salvo.engine.errors import DecodeError, InvalidDamage
from salvo.engine.game import Game, GamePhase
from salvo.engine.grid import Grid
from salvo.engine.placement import ship_run
from salvo.engine.player import Player
from salvo.engine.ship import Ship

from .schemas import (
    ClickSquarePayload,
    CoordinateModel,
    GameModel,
    GridModel,
    GridSquareModel,
    JoinGamePayload,
    PlayerModel,
    ShipModel,
    StartGamePayload,
    WireModel,
)

ModelT = TypeVar("ModelT", bound=WireModel)


@dataclass(frozen=True)
class ClickSquare:
    room_id: str
    sending_player_id: str
    guessed_grid_id: str
    coordinate: Coordinate


@dataclass(frozen=True)
class JoinGame:
    room_id: str
    player: Player
    grid: Grid


def _validate(model: type[ModelT], data: Any) -> ModelT:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise DecodeError(f"Invalid {model.__name__}: {exc.error_count()} error(s)\n{exc}") from exc


def _dump(model: WireModel) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


# ------------------------------------------------------------------ coordinate


def _coordinate_model(coordinate: Coordinate) -> CoordinateModel:
    return CoordinateModel(row=coordinate.row, col=coordinate.col)


def _coordinate(model: CoordinateModel) -> Coordinate:
    return Coordinate(model.row, model.col)


def encode_coordinate(coordinate: Coordinate) -> dict[str, Any]:
    return _dump(_coordinate_model(coordinate))


def decode_coordinate(data: Any) -> Coordinate:
    return _coordinate(_validate(CoordinateModel, data))


# ------------------------------------------------------------------------ ship


def _ship_model(ship: Ship, reveal: bool) -> ShipModel:
    coordinates = ship.coordinates if reveal or ship.is_sunk else []
    return ShipModel(
        id=ship.id,
        length=ship.length,
        coordinates=[_coordinate_model(c) for c in coordinates],
        damage=[_coordinate_model(c) for c in ship.damage],
        sunk=ship.is_sunk,
    )


def _is_straight_run(length: int, coordinates: list[Coordinate]) -> bool:
    if len(coordinates) != length:
        return False
    for direction in Direction:
        if ship_run(length, coordinates[0], direction) == coordinates:
            return True
    return False


def _ship(model: ShipModel) -> Ship:
    ship = Ship(model.length, ship_id=model.id)
    coordinates = [_coordinate(c) for c in model.coordinates]
    if coordinates:
        if not _is_straight_run(model.length, coordinates):
            raise DecodeError(f"Ship {model.id} does not occupy a straight run of {model.length} squares.")
        ship.set_coordinates(coordinates)
    try:
        ship.restore_damage(_coordinate(c) for c in model.damage)
    except InvalidDamage as exc:
        raise DecodeError(f"Ship {model.id} has inconsistent damage: {exc}") from exc
    return ship


def encode_ship(ship: Ship, reveal: bool = True) -> dict[str, Any]:
    """Serialise a ship; unrevealed ships hide their position until sunk."""
    return _dump(_ship_model(ship, reveal))


def decode_ship(data: Any) -> Ship:
    return _ship(_validate(ShipModel, data))


# ------------------------------------------------------------------------ grid


def _grid_model(grid: Grid, reveal: bool) -> GridModel:
    board = {}
    for square in grid:
        if reveal:
            board[square.coordinate.key] = GridSquareModel(
                coordinate=_coordinate_model(square.coordinate),
                marked=square.marked,
                has_ship=square.has_ship,
                ship_id=square.ship_id,
            )
        else:
            board[square.coordinate.key] = GridSquareModel(
                coordinate=_coordinate_model(square.coordinate),
                marked=square.marked,
                has_ship=square.has_ship if square.marked else None,
            )
    return GridModel(id=grid.id, board=board)


def _grid(model: GridModel, ships: Mapping[str, Ship]) -> Grid:
    grid = Grid(grid_id=model.id)
    expected_keys = {coordinate.key for coordinate in Coordinate.all()}
    if set(model.board) != expected_keys:
        raise DecodeError(f"Grid {model.id} must describe exactly the {len(expected_keys)} squares of the board.")

    for key, square_model in model.board.items():
        coordinate = _coordinate(square_model.coordinate)
        if coordinate.key != key:
            raise DecodeError(f"Grid {model.id} stores {coordinate} under key {key!r}.")
        if square_model.has_ship is None:
            raise DecodeError(f"Grid {model.id} is a concealed view; square {key} has no occupancy.")
        if square_model.has_ship != (square_model.ship_id is not None):
            raise DecodeError(f"Grid {model.id} square {key} does not identify its occupying ship.")
        square = grid.get(coordinate)
        if square_model.ship_id is not None:
            ship = ships.get(square_model.ship_id)
            if ship is None or not ship.occupies(coordinate):
                raise DecodeError(f"Grid {model.id} square {key} points at unknown ship {square_model.ship_id!r}.")
            square.place_ship_part(ship)
        if square_model.marked:
            square.restore_mark()

    for ship in ships.values():
        for coordinate in ship.coordinates:
            square = grid.get(coordinate)
            if square.ship_id != ship.id:
                raise DecodeError(f"Ship {ship.id} is missing from grid {model.id} at {coordinate}.")
            if (coordinate in ship.damage) != square.marked:
                raise DecodeError(f"Ship {ship.id} damage at {coordinate} disagrees with grid {model.id}.")
    return grid


def encode_grid(grid: Grid, reveal: bool = True) -> dict[str, Any]:
    """Serialise a grid; unrevealed grids only expose occupancy of shot squares."""
    return _dump(_grid_model(grid, reveal))


def decode_grid(data: Any, ships: Mapping[str, Ship]) -> Grid:
    """Decode a grid whose occupied squares all belong to ``ships`` (keyed by id)."""
    return _grid(_validate(GridModel, data), ships)


# ---------------------------------------------------------------------- player


def _player_model(player: Player, reveal: bool) -> PlayerModel:
    return PlayerModel(
        id=player.id,
        name=player.name,
        ships=[_ship_model(ship, reveal) for ship in player.ships],
        guessed_coordinates=[_coordinate_model(c) for c in player.guessed_coordinates],
    )


def _player(model: PlayerModel) -> Player:
    ships = [_ship(ship_model) for ship_model in model.ships]
    if len({ship.id for ship in ships}) != len(ships):
        raise DecodeError(f"Player {model.id} has duplicate ship ids.")
    player = Player(name=model.name, ships=ships, player_id=model.id)
    guessed = [_coordinate(c) for c in model.guessed_coordinates]
    if len(set(guessed)) != len(guessed):
        raise DecodeError(f"Player {model.id} has duplicate guessed coordinates.")
    for coordinate in guessed:
        player.guess_coordinate(coordinate)
    return player


def encode_player(player: Player, reveal: bool = True) -> dict[str, Any]:
    return _dump(_player_model(player, reveal))


def decode_player(data: Any) -> Player:
    return _player(_validate(PlayerModel, data))


# ------------------------------------------------------------------------ game


def encode_game(game: Game, viewer_id: str | None = None) -> dict[str, Any]:
    """Serialise a game snapshot.

    Without ``viewer_id`` the snapshot is complete and round-trips through
    :func:`decode_game`. With one, everything that belongs to anyone other
    than the viewer is concealed; such snapshots are for rendering only.
    """
    players = {}
    grids = {}
    for player in game.players:
        reveal = viewer_id is None or player.id == viewer_id
        players[player.id] = _player_model(player, reveal)
        grid = game.get_grid_for(player.id)
        if grid is not None:
            grids[grid.id] = _grid_model(grid, reveal)
    model = GameModel(
        phase=game.phase,
        current_player_turn=game.current_player_turn,
        players=players,
        grids=grids,
        player_id_to_grid_id=game.player_grid_ids,
        winner_id=game.winner_id,
    )
    return _dump(model)


def _check_phase(model: GameModel) -> None:
    """A game is waiting until its second player joins; an ended game has a winner."""
    player_count = len(model.players)
    if model.phase is GamePhase.WAITING and player_count >= 2:
        raise DecodeError("A waiting game cannot already hold two players.")
    if model.phase is not GamePhase.WAITING and player_count != 2:
        raise DecodeError(f"A game in phase {model.phase.value!r} needs two players, not {player_count}.")
    if (model.phase is GamePhase.END) != (model.winner_id is not None):
        raise DecodeError("A winner is recorded exactly when the game has ended.")


def decode_game(data: Any) -> Game:
    model = _validate(GameModel, data)
    if len(model.players) > 2:
        raise DecodeError("A game holds at most 2 players.")
    if set(model.player_id_to_grid_id) != set(model.players):
        raise DecodeError("Every player needs exactly one grid.")
    if sorted(model.player_id_to_grid_id.values()) != sorted(model.grids):
        raise DecodeError("Every grid must belong to exactly one player.")
    if model.winner_id is not None and model.winner_id not in model.players:
        raise DecodeError(f"Winner {model.winner_id!r} is not a player of this game.")
    _check_phase(model)

    pairs = []
    seen_ship_ids: set[str] = set()
    for player_id, player_model in model.players.items():
        if player_model.id != player_id:
            raise DecodeError(f"Player stored under {player_id!r} has id {player_model.id!r}.")
        player = _player(player_model)
        ship_ids = {ship.id for ship in player.ships}
        if ship_ids & seen_ship_ids:
            raise DecodeError(f"Player {player_id} shares ship ids with another player.")
        seen_ship_ids |= ship_ids

        grid_id = model.player_id_to_grid_id[player_id]
        grid_model = model.grids[grid_id]
        if grid_model.id != grid_id:
            raise DecodeError(f"Grid stored under {grid_id!r} has id {grid_model.id!r}.")
        grid = _grid(grid_model, {ship.id: ship for ship in player.ships})
        pairs.append((player, grid))

    return Game.restore(
        phase=model.phase,
        current_player_turn=model.current_player_turn,
        players=pairs,
        winner_id=model.winner_id,
    )


# -------------------------------------------------------------------- commands


def decode_join_game(data: Any) -> JoinGame:
    """Decode a join request; the fleet must be fresh (no shots, no damage)."""
    payload = _validate(JoinGamePayload, data)
    player = _player(payload.player)
    grid = _grid(payload.grid, {ship.id: ship for ship in player.ships})
    if player.guessed_coordinates or any(square.marked for square in grid):
        raise DecodeError(f"Player {player.id} tried to join with shots already on the board.")
    return JoinGame(room_id=payload.room_id, player=player, grid=grid)


def decode_start_game(data: Any) -> str:
    return _validate(StartGamePayload, data).room_id


def decode_click_square(data: Any) -> ClickSquare:
    payload = _validate(ClickSquarePayload, data)
    return ClickSquare(
        room_id=payload.room_id,
        sending_player_id=payload.sending_player_id,
        guessed_grid_id=payload.guessed_grid_id,
        coordinate=_coordinate(payload.coordinate),
    )
