"""Resolved per-request caller context."""

from dataclasses import dataclass
from uuid import UUID

from promptstudio.core.auth.types import GlobalRole, SubscriptionTier, Team, TeamRole, User


@dataclass(frozen=True)
class Context:
    """Global view of the caller, built fresh for every request."""

    user: User

    @property
    def user_id(self) -> UUID:
        """Caller's user ID."""
        return self.user.id

    @property
    def email(self) -> str:
        """Caller's email, normalised for comparisons."""
        return str(self.user.email).strip().lower()

    @property
    def is_pro_user(self) -> bool:
        """Whether the caller is on the Pro tier."""
        return self.user.subscription_tier == SubscriptionTier.PRO

    @property
    def is_system_admin(self) -> bool:
        """Whether the caller holds the SYSTEM_ADMIN global role."""
        return self.user.global_role == GlobalRole.SYSTEM_ADMIN


@dataclass(frozen=True)
class TeamContext(Context):
    """Caller context scoped to one team they belong to."""

    team: Team
    role: TeamRole

    @property
    def team_id(self) -> UUID:
        """ID of the team in scope."""
        return self.team.id

    @property
    def is_team_admin(self) -> bool:
        """Whether the caller is an ADMIN of the team in scope."""
        return self.role == TeamRole.ADMIN
