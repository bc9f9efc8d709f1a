"""Notification adapters for invitation delivery."""

from promptstudio.adapters.notifications.email import EmailConfig, EmailNotifier
from promptstudio.adapters.notifications.invitations import (
    ConsoleInvitationNotifier,
    EmailInvitationNotifier,
)

__all__ = [
    "ConsoleInvitationNotifier",
    "EmailConfig",
    "EmailInvitationNotifier",
    "EmailNotifier",
]
