"""Authoritative game-state engine."""

from .coordinate import GRID_SIZE, Coordinate, Direction
from .errors import (
    AlreadyGuessed,
    DecodeError,
    ErrorKind,
    GameAlreadyStarted,
    GameRuleError,
    InvalidDamage,
    InvalidMove,
    RoomFull,
    SalvoError,
    WrongPhase,
)
from .game import Game, GamePhase, StartOutcome
from .grid import Grid, GridSquare
from .placement import place_fleet_randomly, place_ship, remove_ship, ship_run
from .player import Player
from .ship import STANDARD_FLEET, Ship, build_fleet

__all__ = [
    "GRID_SIZE",
    "STANDARD_FLEET",
    "AlreadyGuessed",
    "Coordinate",
    "DecodeError",
    "Direction",
    "ErrorKind",
    "Game",
    "GameAlreadyStarted",
    "GamePhase",
    "GameRuleError",
    "Grid",
    "GridSquare",
    "InvalidDamage",
    "InvalidMove",
    "Player",
    "RoomFull",
    "SalvoError",
    "Ship",
    "StartOutcome",
    "WrongPhase",
    "build_fleet",
    "place_fleet_randomly",
    "place_ship",
    "remove_ship",
    "ship_run",
]
