"""Invitation persistence."""

from .repository import InvitationsRepository

__all__ = ["InvitationsRepository"]
