"""Repository protocols for the identity, team and invitation stores.

Implementations provide actual storage (PostgreSQL, in-memory). All writes
made through one ``UnitOfWork`` commit or roll back together.
"""

from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import Protocol, runtime_checkable
from uuid import UUID

from promptstudio.core.auth.types import (
    Invitation,
    Membership,
    SubscriptionTier,
    Team,
    TeamRole,
    User,
)


@runtime_checkable
class UserDirectory(Protocol):
    """Read access to user profiles, plus system-admin tier overrides."""

    async def get_user(self, user_id: UUID) -> User | None:
        """Get user by ID."""
        ...

    async def get_user_by_email(self, email: str) -> User | None:
        """Get user by email, compared case-insensitively."""
        ...

    async def get_users(self, user_ids: list[UUID]) -> list[User]:
        """Get several users by ID; unknown IDs are skipped."""
        ...

    async def list_users(self) -> list[User]:
        """List all users, system admins first."""
        ...

    async def set_subscription_tier(self, user_id: UUID, tier: SubscriptionTier) -> User | None:
        """Overwrite a user's subscription tier."""
        ...


@runtime_checkable
class TeamRepository(Protocol):
    """Team and membership rows."""

    async def get_team_by_id(self, team_id: UUID) -> Team | None:
        """Get team by ID."""
        ...

    async def get_team_by_slug(self, slug: str) -> Team | None:
        """Get team by slug."""
        ...

    async def lock_team(self, team_id: UUID) -> Team | None:
        """Get team by ID and hold it exclusively until the unit of work ends."""
        ...

    async def create_team(self, name: str, slug: str, owner_id: UUID) -> Team:
        """Create a team row. Raises SlugTaken on slug collision."""
        ...

    async def update_team(
        self, team_id: UUID, name: str | None = None, slug: str | None = None
    ) -> Team | None:
        """Update team fields. Raises SlugTaken on slug collision."""
        ...

    async def delete_team(self, team_id: UUID) -> bool:
        """Delete a team together with its memberships and invitations."""
        ...

    async def get_membership(self, team_id: UUID, user_id: UUID) -> Membership | None:
        """Get a user's membership in a team."""
        ...

    async def list_memberships(self, team_id: UUID) -> list[Membership]:
        """List memberships of a team, oldest first."""
        ...

    async def list_user_memberships(self, user_id: UUID) -> list[Membership]:
        """List all memberships held by a user."""
        ...

    async def count_members(self, team_id: UUID) -> int:
        """Count current memberships of a team."""
        ...

    async def count_admins(self, team_id: UUID) -> int:
        """Count current ADMIN memberships of a team."""
        ...

    async def add_membership(self, team_id: UUID, user_id: UUID, role: TeamRole) -> Membership:
        """Insert a membership. Raises AlreadyMember if the pair exists."""
        ...

    async def update_membership_role(
        self, team_id: UUID, user_id: UUID, role: TeamRole
    ) -> Membership | None:
        """Change a member's role."""
        ...

    async def remove_membership(self, team_id: UUID, user_id: UUID) -> bool:
        """Delete a membership."""
        ...


@runtime_checkable
class InvitationRepository(Protocol):
    """Invitation rows."""

    async def create_invitation(
        self,
        team_id: UUID,
        email: str,
        role: TeamRole,
        invited_by: UUID,
        token_hash: str,
        created_at: datetime,
        expires_at: datetime,
    ) -> Invitation:
        """Insert an invitation. Raises InvitationAlreadySent on conflict."""
        ...

    async def get_by_token_hash(self, token_hash: str) -> Invitation | None:
        """Get invitation by hashed token."""
        ...

    async def get_by_id(self, invitation_id: UUID) -> Invitation | None:
        """Get invitation by ID."""
        ...

    async def list_pending(self, team_id: UUID, now: datetime) -> list[Invitation]:
        """List unaccepted, unexpired invitations of a team, newest first."""
        ...

    async def find_open(self, team_id: UUID, email: str) -> list[Invitation]:
        """List unaccepted invitations for a team and email, expired or not."""
        ...

    async def mark_accepted(self, invitation_id: UUID, accepted_at: datetime) -> bool:
        """Set accepted_at if still unset. Returns False if already accepted."""
        ...

    async def delete_invitation(self, invitation_id: UUID) -> bool:
        """Delete an invitation."""
        ...


class UnitOfWork(Protocol):
    """Repositories bound to one connection or transaction."""

    users: UserDirectory
    teams: TeamRepository
    invitations: InvitationRepository


class Storage(Protocol):
    """Entry point to persistence."""

    def transaction(self) -> AbstractAsyncContextManager[UnitOfWork]:
        """Open a unit of work whose writes commit atomically on exit."""
        ...

    def acquire(self) -> AbstractAsyncContextManager[UnitOfWork]:
        """Open a read-only unit of work."""
        ...
