"""Player identity, fleet and shot history."""

from __future__ import annotations

import logging
from typing import Iterable

from .coordinate import Coordinate
from .ship import STANDARD_FLEET, Ship, build_fleet, new_id

logger = logging.getLogger(__name__)


class Player:
    """A participant in a match.

    The fleet is fixed when the player is created; placement only moves
    ships around, it never adds or removes them.
    """

    def __init__(
        self,
        name: str = "Player",
        ships: Iterable[Ship] | None = None,
        player_id: str | None = None,
    ) -> None:
        self.id = player_id or new_id()
        self.name = name
        self._ships: list[Ship] = list(ships) if ships is not None else build_fleet(STANDARD_FLEET)
        self._guessed: list[Coordinate] = []

    def __repr__(self) -> str:
        return f"Player(id={self.id!r}, name={self.name!r})"

    @classmethod
    def with_standard_fleet(cls, name: str = "Player") -> Player:
        return cls(name=name, ships=build_fleet(STANDARD_FLEET))

    @property
    def ships(self) -> list[Ship]:
        return list(self._ships)

    @property
    def guessed_coordinates(self) -> list[Coordinate]:
        return list(self._guessed)

    def set_name(self, name: str) -> None:
        self.name = name

    def ship(self, ship_id: str) -> Ship | None:
        for ship in self._ships:
            if ship.id == ship_id:
                return ship
        return None

    def guess_coordinate(self, coordinate: Coordinate) -> None:
        """Record a shot; repeating a coordinate is a no-op."""
        if coordinate in self._guessed:
            logger.debug("guess_repeated", extra={"player_id": self.id, "coordinate": coordinate.key})
            return
        self._guessed.append(coordinate)

    def all_ships_are_placed(self) -> bool:
        return bool(self._ships) and all(ship.is_placed for ship in self._ships)

    def all_ships_are_sunk(self) -> bool:
        return bool(self._ships) and all(ship.is_sunk for ship in self._ships)
