"""Tests for SessionResolver."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from promptstudio.adapters.auth import PostgresUserDirectory
from promptstudio.adapters.db.memory import InMemoryStorage
from promptstudio.core.auth.context import Context
from promptstudio.core.auth.resolver import SessionResolver, require_admin
from promptstudio.core.auth.types import SubscriptionTier, Team, TeamRole, User
from promptstudio.core.exceptions import (
    AccessDenied,
    AdminRequired,
    TeamNotFound,
    Unauthenticated,
)
from promptstudio.core.teams import TeamRegistry


@pytest.fixture
def identity_provider() -> MagicMock:
    """Identity provider that accepts nothing until configured."""
    provider = MagicMock()
    provider.verify_credential = AsyncMock(return_value=None)
    return provider


@pytest.fixture
def resolver(identity_provider: MagicMock, storage: InMemoryStorage) -> SessionResolver:
    """Resolver over in-memory storage."""
    return SessionResolver(identity_provider, storage)


class TestResolveSession:
    """Tests for resolve_session."""

    @pytest.mark.parametrize("credential", [None, ""])
    async def test_missing_credential(
        self, resolver: SessionResolver, credential: str | None
    ) -> None:
        """Missing credentials are unauthenticated without asking the provider."""
        with pytest.raises(Unauthenticated):
            await resolver.resolve_session(credential)

    async def test_invalid_credential(self, resolver: SessionResolver) -> None:
        """Provider rejection is unauthenticated."""
        with pytest.raises(Unauthenticated):
            await resolver.resolve_session("garbage")

    async def test_identity_without_user(
        self, resolver: SessionResolver, identity_provider: MagicMock
    ) -> None:
        """A valid credential for a deleted user is unauthenticated."""
        identity_provider.verify_credential.return_value = uuid4()

        with pytest.raises(Unauthenticated):
            await resolver.resolve_session("token")

    async def test_builds_context(
        self, resolver: SessionResolver, identity_provider: MagicMock, bob: User
    ) -> None:
        """Context carries the directory record."""
        identity_provider.verify_credential.return_value = bob.id

        context = await resolver.resolve_session("token")

        assert context.user_id == bob.id
        assert context.email == "bob@acme.test"

    async def test_directory_user_on_internal_domain(self, identity_provider: MagicMock) -> None:
        """Users on special-use domains resolve like anyone else."""
        row = {
            "id": uuid4(),
            "email": "Dev@Corp.local",
            "name": "Dev",
            "global_role": "standard",
            "subscription_tier": "free",
            "created_at": datetime.now(UTC),
        }
        conn = MagicMock()
        conn.fetchrow = AsyncMock(return_value=row)

        @asynccontextmanager
        async def acquire() -> AsyncIterator[SimpleNamespace]:
            yield SimpleNamespace(users=PostgresUserDirectory(conn))

        storage = MagicMock()
        storage.acquire = acquire
        identity_provider.verify_credential.return_value = row["id"]

        context = await SessionResolver(identity_provider, storage).resolve_session("token")

        assert context.user_id == row["id"]
        assert context.email == "dev@corp.local"

    async def test_tier_change_visible_on_next_call(
        self,
        resolver: SessionResolver,
        identity_provider: MagicMock,
        storage: InMemoryStorage,
        alice: User,
    ) -> None:
        """Nothing is cached: a downgrade applies to the very next resolution."""
        identity_provider.verify_credential.return_value = alice.id
        assert (await resolver.resolve_session("token")).is_pro_user

        async with storage.transaction() as uow:
            await uow.users.set_subscription_tier(alice.id, SubscriptionTier.FREE)

        assert not (await resolver.resolve_session("token")).is_pro_user


class TestResolveTeam:
    """Tests for team scoping."""

    async def test_unknown_slug(self, resolver: SessionResolver, bob: User) -> None:
        """Unknown slugs raise TeamNotFound, an AccessDenied."""
        with pytest.raises(TeamNotFound) as exc_info:
            await resolver.resolve_team(Context(user=bob), "nope")

        assert isinstance(exc_info.value, AccessDenied)

    async def test_non_member(self, resolver: SessionResolver, bob: User, acme: Team) -> None:
        """Non-members are denied."""
        with pytest.raises(AccessDenied):
            await resolver.resolve_team(Context(user=bob), "acme")

    async def test_member_gets_role(
        self, resolver: SessionResolver, alice: User, acme: Team
    ) -> None:
        """Members get a TeamContext with their role."""
        team_context = await resolver.resolve_team(Context(user=alice), "acme")

        assert team_context.team_id == acme.id
        assert team_context.role == TeamRole.ADMIN
        assert team_context.is_team_admin

    async def test_revoked_membership_denied_immediately(
        self,
        resolver: SessionResolver,
        identity_provider: MagicMock,
        registry: TeamRegistry,
        alice_in_acme,
        bob: User,
    ) -> None:
        """Removing a member takes effect on their next request."""
        await registry.add_member(alice_in_acme, bob.id)
        identity_provider.verify_credential.return_value = bob.id
        await resolver.resolve_team_session("token", "acme")

        await registry.remove_member(alice_in_acme, bob.id)

        with pytest.raises(AccessDenied):
            await resolver.resolve_team_session("token", "acme")


class TestRequireTeamAdmin:
    """Tests for require_team_admin."""

    async def test_member_is_not_admin(
        self,
        resolver: SessionResolver,
        identity_provider: MagicMock,
        registry: TeamRegistry,
        alice_in_acme,
        bob: User,
    ) -> None:
        """Members get AdminRequired."""
        await registry.add_member(alice_in_acme, bob.id)
        identity_provider.verify_credential.return_value = bob.id

        with pytest.raises(AdminRequired):
            await resolver.require_team_admin("token", "acme")

    async def test_admin_passes(
        self, resolver: SessionResolver, identity_provider: MagicMock, alice: User, acme: Team
    ) -> None:
        """Admins get their team context back."""
        identity_provider.verify_credential.return_value = alice.id

        team_context = await resolver.require_team_admin("token", "acme")

        assert team_context.role == TeamRole.ADMIN

    async def test_unknown_team_denied(
        self, resolver: SessionResolver, identity_provider: MagicMock, alice: User
    ) -> None:
        """Nonexistent teams on admin routes are denied the same way."""
        identity_provider.verify_credential.return_value = alice.id

        with pytest.raises(AccessDenied):
            await resolver.require_team_admin("token", "ghost-team")

    async def test_require_admin_helper(self, alice_in_acme) -> None:
        """require_admin returns admin contexts unchanged."""
        assert require_admin(alice_in_acme) is alice_in_acme
