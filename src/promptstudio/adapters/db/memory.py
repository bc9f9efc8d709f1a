"""In-memory storage for local development and tests.

A single asyncio lock serializes every unit of work, which gives the same
guarantees the PostgreSQL row locks give: capacity and last-admin checks see
a stable membership set. A transaction that raises restores the state it
started from.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID, uuid4

from promptstudio.core.auth.tokens import utc_now
from promptstudio.core.auth.types import (
    GlobalRole,
    Invitation,
    Membership,
    SubscriptionTier,
    Team,
    TeamRole,
    User,
)
from promptstudio.core.exceptions import AlreadyMember, InvitationAlreadySent, SlugTaken


@dataclass
class _State:
    users: dict[UUID, User] = field(default_factory=dict)
    teams: dict[UUID, Team] = field(default_factory=dict)
    memberships: dict[tuple[UUID, UUID], Membership] = field(default_factory=dict)
    invitations: dict[UUID, Invitation] = field(default_factory=dict)

    def snapshot(self) -> "_State":
        return _State(
            users=dict(self.users),
            teams=dict(self.teams),
            memberships=dict(self.memberships),
            invitations=dict(self.invitations),
        )

    def restore(self, other: "_State") -> None:
        self.users = other.users
        self.teams = other.teams
        self.memberships = other.memberships
        self.invitations = other.invitations


class InMemoryUserDirectory:
    """User directory over the shared in-memory state."""

    def __init__(self, state: _State) -> None:
        self._state = state

    async def get_user(self, user_id: UUID) -> User | None:
        return self._state.users.get(user_id)

    async def get_user_by_email(self, email: str) -> User | None:
        wanted = email.strip().lower()
        for user in self._state.users.values():
            if user.email.lower() == wanted:
                return user
        return None

    async def get_users(self, user_ids: list[UUID]) -> list[User]:
        return [self._state.users[uid] for uid in user_ids if uid in self._state.users]

    async def list_users(self) -> list[User]:
        return sorted(
            self._state.users.values(),
            key=lambda u: (u.global_role != GlobalRole.SYSTEM_ADMIN, u.name or "", u.email),
        )

    async def set_subscription_tier(self, user_id: UUID, tier: SubscriptionTier) -> User | None:
        user = self._state.users.get(user_id)
        if user is None:
            return None
        updated = user.model_copy(update={"subscription_tier": tier})
        self._state.users[user_id] = updated
        return updated


class InMemoryTeamRepository:
    """Team and membership rows over the shared in-memory state."""

    def __init__(self, state: _State) -> None:
        self._state = state

    async def get_team_by_id(self, team_id: UUID) -> Team | None:
        return self._state.teams.get(team_id)

    async def get_team_by_slug(self, slug: str) -> Team | None:
        for team in self._state.teams.values():
            if team.slug == slug:
                return team
        return None

    async def lock_team(self, team_id: UUID) -> Team | None:
        # The storage lock is already held for the whole unit of work.
        return self._state.teams.get(team_id)

    async def create_team(self, name: str, slug: str, owner_id: UUID) -> Team:
        if await self.get_team_by_slug(slug) is not None:
            raise SlugTaken()
        team = Team(id=uuid4(), name=name, slug=slug, owner_id=owner_id, created_at=utc_now())
        self._state.teams[team.id] = team
        return team

    async def update_team(
        self, team_id: UUID, name: str | None = None, slug: str | None = None
    ) -> Team | None:
        team = self._state.teams.get(team_id)
        if team is None:
            return None
        if slug is not None and slug != team.slug:
            if await self.get_team_by_slug(slug) is not None:
                raise SlugTaken()
        changes: dict[str, str] = {}
        if name is not None:
            changes["name"] = name
        if slug is not None:
            changes["slug"] = slug
        updated = team.model_copy(update=changes)
        self._state.teams[team_id] = updated
        return updated

    async def delete_team(self, team_id: UUID) -> bool:
        if self._state.teams.pop(team_id, None) is None:
            return False
        self._state.memberships = {
            key: m for key, m in self._state.memberships.items() if key[0] != team_id
        }
        self._state.invitations = {
            iid: inv for iid, inv in self._state.invitations.items() if inv.team_id != team_id
        }
        return True

    async def get_membership(self, team_id: UUID, user_id: UUID) -> Membership | None:
        return self._state.memberships.get((team_id, user_id))

    async def list_memberships(self, team_id: UUID) -> list[Membership]:
        members = [m for m in self._state.memberships.values() if m.team_id == team_id]
        return sorted(members, key=lambda m: m.joined_at)

    async def list_user_memberships(self, user_id: UUID) -> list[Membership]:
        members = [m for m in self._state.memberships.values() if m.user_id == user_id]
        return sorted(members, key=lambda m: m.joined_at)

    async def count_members(self, team_id: UUID) -> int:
        return sum(1 for m in self._state.memberships.values() if m.team_id == team_id)

    async def count_admins(self, team_id: UUID) -> int:
        return sum(
            1
            for m in self._state.memberships.values()
            if m.team_id == team_id and m.role == TeamRole.ADMIN
        )

    async def add_membership(self, team_id: UUID, user_id: UUID, role: TeamRole) -> Membership:
        key = (team_id, user_id)
        if key in self._state.memberships:
            raise AlreadyMember()
        membership = Membership(team_id=team_id, user_id=user_id, role=role, joined_at=utc_now())
        self._state.memberships[key] = membership
        return membership

    async def update_membership_role(
        self, team_id: UUID, user_id: UUID, role: TeamRole
    ) -> Membership | None:
        key = (team_id, user_id)
        membership = self._state.memberships.get(key)
        if membership is None:
            return None
        updated = membership.model_copy(update={"role": role})
        self._state.memberships[key] = updated
        return updated

    async def remove_membership(self, team_id: UUID, user_id: UUID) -> bool:
        return self._state.memberships.pop((team_id, user_id), None) is not None


class InMemoryInvitationRepository:
    """Invitation rows over the shared in-memory state."""

    def __init__(self, state: _State) -> None:
        self._state = state

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
        if await self.find_open(team_id, email):
            raise InvitationAlreadySent()
        invitation = Invitation(
            id=uuid4(),
            token_hash=token_hash,
            team_id=team_id,
            email=email,
            role=role,
            invited_by=invited_by,
            created_at=created_at,
            expires_at=expires_at,
        )
        self._state.invitations[invitation.id] = invitation
        return invitation

    async def get_by_token_hash(self, token_hash: str) -> Invitation | None:
        for invitation in self._state.invitations.values():
            if invitation.token_hash == token_hash:
                return invitation
        return None

    async def get_by_id(self, invitation_id: UUID) -> Invitation | None:
        return self._state.invitations.get(invitation_id)

    async def list_pending(self, team_id: UUID, now: datetime) -> list[Invitation]:
        pending = [
            inv
            for inv in self._state.invitations.values()
            if inv.team_id == team_id and inv.accepted_at is None and inv.expires_at > now
        ]
        return sorted(pending, key=lambda inv: inv.created_at, reverse=True)

    async def find_open(self, team_id: UUID, email: str) -> list[Invitation]:
        wanted = email.strip().lower()
        return [
            inv
            for inv in self._state.invitations.values()
            if inv.team_id == team_id and inv.email.lower() == wanted and inv.accepted_at is None
        ]

    async def mark_accepted(self, invitation_id: UUID, accepted_at: datetime) -> bool:
        invitation = self._state.invitations.get(invitation_id)
        if invitation is None or invitation.accepted_at is not None:
            return False
        self._state.invitations[invitation_id] = invitation.model_copy(
            update={"accepted_at": accepted_at}
        )
        return True

    async def delete_invitation(self, invitation_id: UUID) -> bool:
        return self._state.invitations.pop(invitation_id, None) is not None


class InMemoryUnitOfWork:
    """Repositories over one in-memory state."""

    def __init__(self, state: _State) -> None:
        self.users = InMemoryUserDirectory(state)
        self.teams = InMemoryTeamRepository(state)
        self.invitations = InMemoryInvitationRepository(state)


class InMemoryStorage:
    """Process-local storage with transactional rollback."""

    def __init__(self) -> None:
        self._state = _State()
        self._lock = asyncio.Lock()

    def add_user(
        self,
        email: str,
        name: str | None = None,
        global_role: GlobalRole = GlobalRole.STANDARD,
        subscription_tier: SubscriptionTier = SubscriptionTier.FREE,
        user_id: UUID | None = None,
    ) -> User:
        """Register a user directly. Users are provisioned outside this service."""
        user = User(
            id=user_id or uuid4(),
            email=email.strip().lower(),
            name=name,
            global_role=global_role,
            subscription_tier=subscription_tier,
            created_at=utc_now(),
        )
        self._state.users[user.id] = user
        return user

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[InMemoryUnitOfWork]:
        async with self._lock:
            saved = self._state.snapshot()
            try:
                yield InMemoryUnitOfWork(self._state)
            except BaseException:
                self._state.restore(saved)
                raise

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[InMemoryUnitOfWork]:
        async with self._lock:
            yield InMemoryUnitOfWork(self._state)
