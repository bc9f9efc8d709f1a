"""Invitation notifier adapters.

The email notifier is the production default. The console notifier prints
the accept link to stdout so developers can follow it without SMTP.
"""

import asyncio

from promptstudio.adapters.notifications.email import EmailNotifier
from promptstudio.core.invitations.notifier import InvitationMessage, InvitationNotifier


class EmailInvitationNotifier:
    """Sends invitation links via email."""

    def __init__(self, email_notifier: EmailNotifier) -> None:
        """Initialize the email invitation notifier.

        Args:
            email_notifier: Email notifier instance for sending emails.
        """
        self._email = email_notifier

    async def send_invitation(self, message: InvitationMessage) -> bool:
        """Send the invitation email off the event loop.

        Args:
            message: Recipient, team and accept link.

        Returns:
            True if email was sent successfully.
        """
        inviter = message.inviter_name or message.inviter_email
        return await asyncio.to_thread(
            self._email.send_team_invitation,
            to_email=message.to_email,
            team_name=message.team_name,
            role=message.role.value,
            accept_url=message.accept_url,
            inviter=inviter,
        )


class ConsoleInvitationNotifier:
    """Console-based invitation delivery for demo/dev mode."""

    async def send_invitation(self, message: InvitationMessage) -> bool:
        """Print the accept link to the console.

        Returns:
            True (console printing always succeeds).
        """
        print("\n" + "=" * 70, flush=True)
        print("[INVITATION] Accept link generated for demo/dev mode", flush=True)
        print(f"  Team:  {message.team_name} ({message.role.value})", flush=True)
        print(f"  Email: {message.to_email}", flush=True)
        print(f"  Link:  {message.accept_url}", flush=True)
        print("=" * 70 + "\n", flush=True)
        return True


# Verify we implement the protocol
_console: InvitationNotifier = ConsoleInvitationNotifier()
