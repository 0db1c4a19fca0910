"""Salvo: authoritative two-player Battleship server."""

__version__ = "0.1.0"
