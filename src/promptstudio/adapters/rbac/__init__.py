"""Team and membership persistence."""

from .teams_repository import TeamsRepository

__all__ = ["TeamsRepository"]
