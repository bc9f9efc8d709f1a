"""Invitation delivery protocol.

The ledger hands every freshly created accept link to a notifier. Delivery
is best effort: a failed delivery is logged, the invitation stays valid and
the admin can still copy the link from the creation response.
"""

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from promptstudio.core.auth.types import TeamRole


@dataclass(frozen=True)
class InvitationMessage:
    """Everything a notifier needs to tell someone they were invited."""

    to_email: str
    team_name: str
    role: TeamRole
    accept_url: str
    inviter_name: str | None = None
    inviter_email: str | None = None


@runtime_checkable
class InvitationNotifier(Protocol):
    """Protocol for delivering invitation links.

    Example implementations:
    - EmailInvitationNotifier: sends the link via SMTP
    - ConsoleInvitationNotifier: prints the link for local development
    """

    async def send_invitation(self, message: InvitationMessage) -> bool:
        """Deliver an invitation.

        Args:
            message: Recipient, team and accept link.

        Returns:
            True if the invitation was handed off successfully.
        """
        ...
