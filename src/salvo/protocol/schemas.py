"""Pydantic models describing the JSON shapes sent over the wire.

Field names are snake_case in Python and camelCase on the wire
(``currentPlayerTurn``, ``playerIdToGridId``); either spelling is accepted
when validating.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from salvo.engine.coordinate import GRID_SIZE
from salvo.engine.game import GamePhase
from salvo.engine.ship import MAX_SHIP_LENGTH, MIN_SHIP_LENGTH


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CoordinateModel(WireModel):
    row: int = Field(ge=1, le=GRID_SIZE)
    col: int = Field(ge=1, le=GRID_SIZE)


class ShipModel(WireModel):
    id: str = Field(min_length=1)
    length: int = Field(ge=MIN_SHIP_LENGTH, le=MAX_SHIP_LENGTH)
    coordinates: list[CoordinateModel]
    damage: list[CoordinateModel] = Field(default_factory=list)
    sunk: bool = False


class GridSquareModel(WireModel):
    coordinate: CoordinateModel
    marked: bool
    # Both omitted for unshot squares in a concealed view.
    has_ship: bool | None = None
    ship_id: str | None = None


class GridModel(WireModel):
    id: str = Field(min_length=1)
    board: dict[str, GridSquareModel]


class PlayerModel(WireModel):
    id: str = Field(min_length=1)
    name: str
    ships: list[ShipModel]
    guessed_coordinates: list[CoordinateModel] = Field(default_factory=list)


class GameModel(WireModel):
    phase: GamePhase
    current_player_turn: int = Field(ge=0, le=1)
    players: dict[str, PlayerModel]
    grids: dict[str, GridModel]
    player_id_to_grid_id: dict[str, str]
    winner_id: str | None = None


class JoinGamePayload(WireModel):
    player: PlayerModel
    grid: GridModel
    room_id: str = Field(min_length=1)


class StartGamePayload(WireModel):
    room_id: str = Field(min_length=1)


class ClickSquarePayload(WireModel):
    room_id: str = Field(min_length=1)
    sending_player_id: str = Field(min_length=1)
    guessed_grid_id: str = Field(min_length=1)
    coordinate: CoordinateModel
