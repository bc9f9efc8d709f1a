"""Identity, team and invitation fixtures for testing."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from promptstudio.adapters.db.memory import InMemoryStorage
from promptstudio.core.admin import SystemAdministration
from promptstudio.core.auth.context import Context, TeamContext
from promptstudio.core.auth.tokens import utc_now
from promptstudio.core.auth.types import GlobalRole, SubscriptionTier, Team, User
from promptstudio.core.invitations import InvitationLedger, InvitationMessage
from promptstudio.core.teams import TeamEntitlements, TeamRegistry


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or utc_now()

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        """Move forward by a timedelta given as keyword arguments."""
        self.now = self.now + timedelta(**kwargs)


class RecordingNotifier:
    """Invitation notifier that keeps what it was asked to send."""

    def __init__(self, succeed: bool = True) -> None:
        self.succeed = succeed
        self.messages: list[InvitationMessage] = []

    async def send_invitation(self, message: InvitationMessage) -> bool:
        self.messages.append(message)
        return self.succeed


async def team_context_for(storage: InMemoryStorage, user: User, team: Team) -> TeamContext:
    """Build the team context the resolver would produce for ``user``."""
    async with storage.acquire() as uow:
        membership = await uow.teams.get_membership(team.id, user.id)
        current = await uow.users.get_user(user.id)
    assert membership is not None, "user is not a member of the team"
    assert current is not None
    return TeamContext(user=current, team=team, role=membership.role)


@pytest.fixture
def clock() -> FrozenClock:
    """Return a controllable clock."""
    return FrozenClock()


@pytest.fixture
def storage() -> InMemoryStorage:
    """Return empty in-memory storage."""
    return InMemoryStorage()


@pytest.fixture
def alice(storage: InMemoryStorage) -> User:
    """Pro user who creates teams."""
    return storage.add_user(
        "alice@acme.test", name="Alice", subscription_tier=SubscriptionTier.PRO
    )


@pytest.fixture
def bob(storage: InMemoryStorage) -> User:
    """Free user."""
    return storage.add_user("bob@acme.test", name="Bob")


@pytest.fixture
def carol(storage: InMemoryStorage) -> User:
    """Another free user."""
    return storage.add_user("carol@acme.test", name="Carol")


@pytest.fixture
def root_admin(storage: InMemoryStorage) -> User:
    """System administrator on the free tier."""
    return storage.add_user(
        "root@promptstudio.test", name="Root", global_role=GlobalRole.SYSTEM_ADMIN
    )


@pytest.fixture
def notifier() -> RecordingNotifier:
    """Return a notifier that records invitations."""
    return RecordingNotifier()


@pytest.fixture
def registry(storage: InMemoryStorage) -> TeamRegistry:
    """Return a team registry with the default free-tier cap of 3."""
    return TeamRegistry(storage, TeamEntitlements(free_member_limit=3))


@pytest.fixture
def ledger(
    storage: InMemoryStorage,
    registry: TeamRegistry,
    notifier: RecordingNotifier,
    clock: FrozenClock,
) -> InvitationLedger:
    """Return an invitation ledger on the frozen clock."""
    return InvitationLedger(storage, registry, notifier=notifier, clock=clock)


@pytest.fixture
def admin_service(storage: InMemoryStorage) -> SystemAdministration:
    """Return the system administration service."""
    return SystemAdministration(storage)


@pytest.fixture
async def acme(registry: TeamRegistry, alice: User) -> Team:
    """Team "Acme" created by alice, who is its only admin."""
    return await registry.create_team(Context(user=alice), "Acme", "acme")


@pytest.fixture
async def alice_in_acme(storage: InMemoryStorage, alice: User, acme: Team) -> TeamContext:
    """Alice scoped to Acme as admin."""
    return await team_context_for(storage, alice, acme)
