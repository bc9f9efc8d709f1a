"""Invitation ledger core domain."""

from promptstudio.core.invitations.ledger import InvitationLedger
from promptstudio.core.invitations.notifier import InvitationMessage, InvitationNotifier

__all__ = [
    "InvitationLedger",
    "InvitationMessage",
    "InvitationNotifier",
]
