"""Identity, team and invitation domain types."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel


class GlobalRole(str, Enum):
    """Platform-wide roles held by a user."""

    STANDARD = "standard"
    SYSTEM_ADMIN = "system_admin"


class SubscriptionTier(str, Enum):
    """Billing tier, written by the billing collaborator."""

    FREE = "free"
    PRO = "pro"


class TeamRole(str, Enum):
    """Roles a member can hold inside one team."""

    ADMIN = "admin"
    MEMBER = "member"


class InvitationStatus(str, Enum):
    """Lifecycle state derived from an invitation's timestamps."""

    PENDING = "pending"
    EXPIRED = "expired"
    ACCEPTED = "accepted"


class User(BaseModel):
    """User directory record."""

    id: UUID
    email: str
    name: str | None = None
    global_role: GlobalRole = GlobalRole.STANDARD
    subscription_tier: SubscriptionTier = SubscriptionTier.FREE
    created_at: datetime


class Team(BaseModel):
    """Team (tenant) domain model."""

    id: UUID
    name: str
    slug: str
    owner_id: UUID
    created_at: datetime


class Membership(BaseModel):
    """A user's role binding inside a team."""

    team_id: UUID
    user_id: UUID
    role: TeamRole
    joined_at: datetime


class Invitation(BaseModel):
    """Token-addressable offer to join a team.

    The plaintext token is never stored; ``token_hash`` is the lookup key.
    Lifecycle state is derived by ``status_at`` rather than persisted.
    """

    id: UUID
    token_hash: str
    team_id: UUID
    email: str
    role: TeamRole
    invited_by: UUID
    created_at: datetime
    expires_at: datetime
    accepted_at: datetime | None = None

    def status_at(self, now: datetime) -> InvitationStatus:
        """Derive the lifecycle state at the given instant."""
        if self.accepted_at is not None:
            return InvitationStatus.ACCEPTED
        if now >= self.expires_at:
            return InvitationStatus.EXPIRED
        return InvitationStatus.PENDING


class MemberProfile(BaseModel):
    """Membership joined with the member's directory profile."""

    user_id: UUID
    email: str
    name: str | None = None
    role: TeamRole
    joined_at: datetime


class TeamSummary(BaseModel):
    """A team as seen from one of its members."""

    team: Team
    role: TeamRole
    member_count: int


class TeamOverview(BaseModel):
    """Team details with members and capacity."""

    team: Team
    members: list[MemberProfile]
    member_count: int
    member_limit: int | None  # None means uncapped
    can_add_member: bool


class InvitationDetails(BaseModel):
    """What the accept page shows before the token is consumed."""

    invitation_id: UUID
    email: str
    role: TeamRole
    status: InvitationStatus
    expires_at: datetime
    team_name: str
    team_slug: str
    inviter_name: str | None = None
    inviter_email: str | None = None


class CreatedInvitation(BaseModel):
    """Result of sending an invitation; the only place the token appears."""

    invitation: Invitation
    token: str
    accept_url: str


class InvitationLookup(BaseModel):
    """An invitation read by token, with its state at read time."""

    invitation: Invitation
    status: InvitationStatus
