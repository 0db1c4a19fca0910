"""Error taxonomy shared by the engine, codec and room coordinator."""

from __future__ import annotations

from enum import Enum


class ErrorKind(Enum):
    """Machine-readable tag attached to every failure the server reports."""

    ROOM_FULL = "room_full"
    GAME_ALREADY_STARTED = "game_already_started"
    NOT_ENOUGH_PLAYERS = "not_enough_players"
    WRONG_PHASE = "wrong_phase"
    INVALID_MOVE = "invalid_move"
    ALREADY_GUESSED = "already_guessed"
    INVALID_DAMAGE = "invalid_damage"
    WRONG_ROOM = "wrong_room"
    UNKNOWN_ROOM = "unknown_room"
    MALFORMED_PAYLOAD = "malformed_payload"


class SalvoError(Exception):
    """Base class for all errors raised by Salvo."""

    kind: ErrorKind = ErrorKind.INVALID_MOVE


class GameRuleError(SalvoError):
    """A caller broke the rules of the match; state is left untouched."""


class RoomFull(GameRuleError):
    kind = ErrorKind.ROOM_FULL


class GameAlreadyStarted(GameRuleError):
    kind = ErrorKind.GAME_ALREADY_STARTED


class WrongPhase(GameRuleError):
    kind = ErrorKind.WRONG_PHASE


class InvalidMove(GameRuleError):
    kind = ErrorKind.INVALID_MOVE


class AlreadyGuessed(GameRuleError):
    kind = ErrorKind.ALREADY_GUESSED


class InvalidDamage(SalvoError, ValueError):
    """A ship was damaged where it does not sit, or twice in one place."""

    kind = ErrorKind.INVALID_DAMAGE


class DecodeError(SalvoError, ValueError):
    """A wire payload was missing fields or described an impossible state."""

    kind = ErrorKind.MALFORMED_PAYLOAD
