"""Shared fixtures: deterministic fleets and a recording emitter."""

from __future__ import annotations

from typing import Callable, Sequence

import pytest
from salvo.engine.coordinate import Coordinate, Direction
from salvo.engine.grid import Grid
from salvo.engine.placement import place_ship
from salvo.engine.player import Player
from salvo.engine.ship import STANDARD_FLEET, Ship

# Standard fleet (5, 4, 3, 3, 2) laid out along rows B-E, destroyer on A1-A2.
STANDARD_LAYOUT = (
    Coordinate(2, 1),
    Coordinate(3, 1),
    Coordinate(4, 1),
    Coordinate(5, 1),
    Coordinate(1, 1),
)

FleetFactory = Callable[..., tuple[Player, Grid]]


@pytest.fixture
def make_fleet() -> FleetFactory:
    def _make(
        name: str = "Player",
        ship_ids: Sequence[str] | None = None,
        lengths: Sequence[int] = STANDARD_FLEET,
    ) -> tuple[Player, Grid]:
        ids = ship_ids or [None] * len(lengths)
        player = Player(name, ships=[Ship(length, ship_id=ship_id) for length, ship_id in zip(lengths, ids)])
        grid = Grid()
        for ship, origin in zip(player.ships, STANDARD_LAYOUT):
            assert place_ship(grid, ship, origin, Direction.RIGHT)
        return player, grid

    return _make


class RecordingEmitter:
    def __init__(self) -> None:
        self.sent: list[tuple[str, dict | None, str]] = []

    def __call__(self, event: str, payload: dict | None, connection_id: str) -> None:
        self.sent.append((event, payload, connection_id))

    def events(self, connection_id: str | None = None) -> list[str]:
        return [event for event, _, cid in self.sent if connection_id is None or cid == connection_id]

    def last(self, event: str, connection_id: str) -> dict | None:
        for sent_event, payload, cid in reversed(self.sent):
            if sent_event == event and cid == connection_id:
                return payload
        raise AssertionError(f"{event} was never sent to {connection_id}")

    def clear(self) -> None:
        self.sent.clear()


@pytest.fixture
def emitter() -> RecordingEmitter:
    return RecordingEmitter()
