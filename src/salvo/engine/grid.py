"""Per-player 10x10 grid of squares."""

from __future__ import annotations

import logging
import weakref
from typing import Iterator

from salvo.telemetry import get_meter, get_tracer

from .coordinate import GRID_SIZE, Coordinate
from .errors import InvalidDamage
from .ship import Ship, new_id

logger = logging.getLogger(__name__)
tracer = get_tracer("salvo.engine.grid")
meter = get_meter("salvo.engine.grid")

SHOT_COUNTER = meter.create_counter(
    "salvo_engine_shots",
    unit="1",
    description="Shots received by a grid",
)


class GridSquare:
    """One cell of a grid: which ship (if any) sits on it and whether it was shot.

    The occupying ship is held through a weak reference; ships are owned by
    their player, never by the square.
    """

    def __init__(self, coordinate: Coordinate) -> None:
        self.coordinate = coordinate
        self._marked = False
        self._ship_id: str | None = None
        self._ship_ref: weakref.ReferenceType[Ship] | None = None

    def __repr__(self) -> str:
        return f"GridSquare({self.coordinate.key}, ship_id={self._ship_id!r}, marked={self._marked})"

    @property
    def marked(self) -> bool:
        return self._marked

    @property
    def has_ship(self) -> bool:
        return self._ship_id is not None

    @property
    def ship_id(self) -> str | None:
        return self._ship_id

    @property
    def occupying_ship(self) -> Ship | None:
        if self._ship_ref is None:
            return None
        return self._ship_ref()

    def place_ship_part(self, ship: Ship) -> None:
        self._ship_id = ship.id
        self._ship_ref = weakref.ref(ship)

    def remove_ship_part(self) -> None:
        self._ship_id = None
        self._ship_ref = None

    def mark(self) -> bool:
        """Shoot at this square and report whether a ship was hit.

        A square that is already marked reports ``False`` and leaves the
        occupying ship untouched.
        """
        if self._marked:
            logger.debug("square_already_marked", extra={"coordinate": self.coordinate.key})
            return False
        if not self.has_ship:
            self._marked = True
            return False
        ship = self.occupying_ship
        if ship is None:
            raise InvalidDamage(f"Ship {self._ship_id} at {self.coordinate} no longer exists.")
        ship.take_damage(self.coordinate)
        self._marked = True
        return True

    def restore_mark(self) -> None:
        """Set the marked flag without resolving a shot (snapshot decoding)."""
        self._marked = True


class Grid:
    """A player's board: exactly one square per coordinate, fixed at construction."""

    def __init__(self, grid_id: str | None = None) -> None:
        self.id = grid_id or new_id()
        self._squares: dict[str, GridSquare] = {
            coordinate.key: GridSquare(coordinate) for coordinate in Coordinate.all()
        }

    def __repr__(self) -> str:
        return f"Grid(id={self.id!r})"

    def __iter__(self) -> Iterator[GridSquare]:
        return iter(self._squares.values())

    def __len__(self) -> int:
        return len(self._squares)

    def get(self, coordinate: Coordinate) -> GridSquare:
        return self._squares[coordinate.key]

    def ship_ids(self) -> set[str]:
        return {square.ship_id for square in self if square.ship_id is not None}

    def receive_shot(self, coordinate: Coordinate) -> bool:
        """Mark the square at ``coordinate`` and return whether it was a hit."""
        with tracer.start_as_current_span("grid.receive_shot") as span:
            span.set_attribute("grid.id", self.id)
            span.set_attribute("shot.coordinate", coordinate.key)
            hit = self.get(coordinate).mark()
            outcome = "hit" if hit else "miss"
            span.set_attribute("shot.outcome", outcome)
            SHOT_COUNTER.add(1, attributes={"outcome": outcome})
            logger.info(f"shot_{outcome}", extra={"grid_id": self.id, "coordinate": coordinate.key})
            return hit

    def render(self, reveal_ships: bool = True) -> str:
        """Text view: ``X`` hit, ``M`` miss, ``S`` ship, ``~`` open water."""
        header = "    " + " ".join(f"{col:>2}" for col in range(1, GRID_SIZE + 1))
        rows = [header]
        for row in range(1, GRID_SIZE + 1):
            symbols = []
            for col in range(1, GRID_SIZE + 1):
                square = self.get(Coordinate(row, col))
                if square.marked:
                    symbol = "X" if square.has_ship else "M"
                elif square.has_ship and reveal_ships:
                    symbol = "S"
                else:
                    symbol = "~"
                symbols.append(f"{symbol:>2}")
            rows.append(f"{Coordinate(row, 1).key[0]} |" + " ".join(symbols))
        return "\n".join(rows)

    def __str__(self) -> str:
        return self.render()
