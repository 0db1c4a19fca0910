"""Ship placement workflow: validates a run of squares and lays a ship on a grid."""

from __future__ import annotations

import logging
import random
from typing import Iterable

from salvo.telemetry import get_meter, get_tracer

from .coordinate import GRID_SIZE, Coordinate, Direction, is_on_grid
from .grid import Grid
from .ship import Ship

logger = logging.getLogger(__name__)
tracer = get_tracer("salvo.engine.placement")
meter = get_meter("salvo.engine.placement")

PLACEMENT_COUNTER = meter.create_counter(
    "salvo_engine_ship_placements",
    unit="1",
    description="Number of attempted ship placements",
)

MAX_RANDOM_ATTEMPTS = 1000


def ship_run(length: int, origin: Coordinate, direction: Direction) -> list[Coordinate] | None:
    """Return the ``length`` contiguous coordinates starting at ``origin``.

    Returns ``None`` when any part of the run would leave the grid.
    """
    delta_row, delta_col = direction.delta
    run: list[Coordinate] = []
    for offset in range(length):
        row = origin.row + delta_row * offset
        col = origin.col + delta_col * offset
        if not is_on_grid(row, col):
            return None
        run.append(Coordinate(row, col))
    return run


def _free_run(grid: Grid, ship: Ship, origin: Coordinate, direction: Direction) -> list[Coordinate] | None:
    run = ship_run(ship.length, origin, direction)
    if run is None or any(grid.get(coordinate).has_ship for coordinate in run):
        return None
    return run


def can_place_ship(grid: Grid, ship: Ship, origin: Coordinate, direction: Direction) -> bool:
    return _free_run(grid, ship, origin, direction) is not None


def place_ship(grid: Grid, ship: Ship, origin: Coordinate, direction: Direction) -> bool:
    """Lay ``ship`` on ``grid``; on failure neither the grid nor the ship changes.

    A ship that is already on the grid is lifted first, so the call also
    repositions. If the new spot is rejected the ship goes back where it was.
    """
    with tracer.start_as_current_span("placement.place_ship") as span:
        span.set_attribute("grid.id", grid.id)
        span.set_attribute("ship.id", ship.id)
        span.set_attribute("ship.length", ship.length)
        span.set_attribute("ship.origin", origin.key)
        span.set_attribute("ship.direction", direction.value)
        details = {
            "grid_id": grid.id,
            "ship_id": ship.id,
            "length": ship.length,
            "origin": origin.key,
            "direction": direction.value,
        }

        previous = ship.coordinates if _is_on(grid, ship) else []
        for coordinate in previous:
            grid.get(coordinate).remove_ship_part()

        run = _free_run(grid, ship, origin, direction)
        if run is None:
            for coordinate in previous:
                grid.get(coordinate).place_ship_part(ship)
            PLACEMENT_COUNTER.add(1, attributes={"result": "failed"})
            logger.warning("ship_placement_failed", extra=details)
            return False

        ship.clear_placement()
        for coordinate in run:
            grid.get(coordinate).place_ship_part(ship)
        ship.set_coordinates(run)
        PLACEMENT_COUNTER.add(1, attributes={"result": "success"})
        logger.info("ship_placed", extra=details)
        return True


def remove_ship(grid: Grid, ship: Ship) -> None:
    """Clear every square the ship occupies and reset its placement."""
    for coordinate in ship.coordinates:
        square = grid.get(coordinate)
        if square.ship_id == ship.id:
            square.remove_ship_part()
    ship.clear_placement()
    logger.debug("ship_removed", extra={"grid_id": grid.id, "ship_id": ship.id})


def place_fleet_randomly(grid: Grid, ships: Iterable[Ship], rng: random.Random) -> None:
    """Randomly place every ship; raises ``RuntimeError`` if the grid is too crowded."""
    with tracer.start_as_current_span("placement.place_fleet_randomly") as span:
        span.set_attribute("grid.id", grid.id)
        directions = list(Direction)
        for ship in ships:
            for attempt in range(1, MAX_RANDOM_ATTEMPTS + 1):
                origin = Coordinate(rng.randint(1, GRID_SIZE), rng.randint(1, GRID_SIZE))
                if place_ship(grid, ship, origin, rng.choice(directions)):
                    logger.debug(
                        "random_ship_placed",
                        extra={"ship_id": ship.id, "attempts": attempt, "grid_id": grid.id},
                    )
                    break
            else:
                raise RuntimeError(f"Could not place ship {ship.id} after {MAX_RANDOM_ATTEMPTS} attempts.")


def _is_on(grid: Grid, ship: Ship) -> bool:
    return ship.is_placed and all(grid.get(coordinate).ship_id == ship.id for coordinate in ship.coordinates)
