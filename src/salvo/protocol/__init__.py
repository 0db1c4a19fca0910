"""Wire protocol: event names, payload schemas and the snapshot codec."""

from . import events
from .codec import (
    ClickSquare,
    JoinGame,
    decode_click_square,
    decode_coordinate,
    decode_game,
    decode_grid,
    decode_join_game,
    decode_player,
    decode_ship,
    decode_start_game,
    encode_coordinate,
    encode_game,
    encode_grid,
    encode_player,
    encode_ship,
)

__all__ = [
    "ClickSquare",
    "JoinGame",
    "decode_click_square",
    "decode_coordinate",
    "decode_game",
    "decode_grid",
    "decode_join_game",
    "decode_player",
    "decode_ship",
    "decode_start_game",
    "encode_coordinate",
    "encode_game",
    "encode_grid",
    "encode_player",
    "encode_ship",
    "events",
]
