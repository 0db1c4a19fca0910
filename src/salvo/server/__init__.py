"""Server-side room coordination and its socket transport."""

from .app import create_app, run_server
from .coordinator import CommandResult, RoomCoordinator

__all__ = ["CommandResult", "RoomCoordinator", "create_app", "run_server"]
