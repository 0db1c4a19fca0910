"""Ship domain model for the Salvo engine."""

from __future__ import annotations

import logging
import uuid
from typing import Iterable

from .coordinate import Coordinate
from .errors import InvalidDamage

logger = logging.getLogger(__name__)

MIN_SHIP_LENGTH = 2
MAX_SHIP_LENGTH = 5
# Carrier, battleship, cruiser, submarine, destroyer.
STANDARD_FLEET: tuple[int, ...] = (5, 4, 3, 3, 2)


def new_id() -> str:
    return uuid.uuid4().hex


class Ship:
    """A single ship: its length, where it sits, and where it has been hit.

    Ships do not know which grid they are on. The placement workflow in
    :mod:`salvo.engine.placement` validates geometry and calls
    :meth:`set_coordinates`; the ship only stores the assignment.
    """

    def __init__(self, length: int, ship_id: str | None = None) -> None:
        if not MIN_SHIP_LENGTH <= length <= MAX_SHIP_LENGTH:
            raise ValueError(f"Ship length must be between {MIN_SHIP_LENGTH} and {MAX_SHIP_LENGTH}, got {length}.")
        self.id = ship_id or new_id()
        self.length = length
        self._coordinates: tuple[Coordinate, ...] = ()
        self._damage: list[Coordinate] = []

    def __repr__(self) -> str:
        return f"Ship(id={self.id!r}, length={self.length}, coordinates={list(self._coordinates)}, damage={self._damage})"

    @property
    def coordinates(self) -> list[Coordinate]:
        """Ordered coordinates the ship occupies; empty until placed."""
        return list(self._coordinates)

    @property
    def damage(self) -> list[Coordinate]:
        """Damaged coordinates in the order they were hit."""
        return list(self._damage)

    @property
    def is_placed(self) -> bool:
        return bool(self._coordinates)

    @property
    def is_sunk(self) -> bool:
        return self.is_placed and len(self._damage) == self.length

    def occupies(self, coordinate: Coordinate) -> bool:
        return coordinate in self._coordinates

    def set_coordinates(self, coordinates: Iterable[Coordinate]) -> None:
        self._coordinates = tuple(coordinates)

    def clear_placement(self) -> None:
        """Forget the current placement so the ship can be repositioned."""
        self._coordinates = ()
        self._damage = []

    def take_damage(self, coordinate: Coordinate) -> bool:
        """Register a hit and return whether the ship is now sunk."""
        if coordinate not in self._coordinates:
            logger.error("ship_damage_outside_hull", extra={"ship_id": self.id, "coordinate": coordinate.key})
            raise InvalidDamage(f"Ship {self.id} does not occupy {coordinate}.")
        if coordinate in self._damage:
            logger.error("ship_damage_repeated", extra={"ship_id": self.id, "coordinate": coordinate.key})
            raise InvalidDamage(f"Ship {self.id} is already damaged at {coordinate}.")
        self._damage.append(coordinate)
        return self.is_sunk

    def restore_damage(self, damage: Iterable[Coordinate]) -> None:
        """Reapply previously recorded hits, e.g. when decoding a snapshot."""
        for coordinate in damage:
            self.take_damage(coordinate)


def build_fleet(lengths: Iterable[int] = STANDARD_FLEET) -> list[Ship]:
    """Create one unplaced ship per requested length."""
    return [Ship(length) for length in lengths]
