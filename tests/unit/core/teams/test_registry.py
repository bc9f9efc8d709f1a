"""Tests for TeamRegistry."""

import asyncio
import random
from uuid import UUID, uuid4

import pytest

from promptstudio.adapters.db.memory import InMemoryStorage, InMemoryTeamRepository
from promptstudio.core.auth.context import Context, TeamContext
from promptstudio.core.auth.types import SubscriptionTier, Team, TeamRole, User
from promptstudio.core.exceptions import (
    AdminRequired,
    AlreadyMember,
    CapacityExceeded,
    LastAdminProtected,
    MemberNotFound,
    PromptStudioError,
    SlugTaken,
    SubscriptionRequired,
    Unauthenticated,
    ValidationError,
    ValidationErrors,
)
from promptstudio.core.teams import TeamRegistry
from tests.fixtures.identity import team_context_for


async def set_tier(storage: InMemoryStorage, user: User, tier: SubscriptionTier) -> None:
    """Change a user's tier the way the billing collaborator would."""
    async with storage.transaction() as uow:
        await uow.users.set_subscription_tier(user.id, tier)


async def admin_count(storage: InMemoryStorage, team_id: UUID) -> int:
    """Read the live admin count."""
    async with storage.acquire() as uow:
        return await uow.teams.count_admins(team_id)


class TestCreateTeam:
    """Tests for create_team."""

    async def test_creator_becomes_only_admin(
        self, registry: TeamRegistry, storage: InMemoryStorage, alice: User
    ) -> None:
        """The team and its first admin membership appear together."""
        team = await registry.create_team(Context(user=alice), "  Acme ", "acme")

        assert team.name == "Acme"
        assert team.owner_id == alice.id
        async with storage.acquire() as uow:
            members = await uow.teams.list_memberships(team.id)
        assert [(m.user_id, m.role) for m in members] == [(alice.id, TeamRole.ADMIN)]

    async def test_requires_identity(self, registry: TeamRegistry) -> None:
        """No caller, no team."""
        with pytest.raises(Unauthenticated):
            await registry.create_team(None, "Acme", "acme")

    async def test_requires_pro(self, registry: TeamRegistry, bob: User) -> None:
        """Free users cannot create teams."""
        with pytest.raises(SubscriptionRequired):
            await registry.create_team(Context(user=bob), "Acme", "acme")

    async def test_reports_all_field_errors(self, registry: TeamRegistry, alice: User) -> None:
        """Name and slug problems come back together."""
        with pytest.raises(ValidationErrors) as exc_info:
            await registry.create_team(Context(user=alice), "A", "NO")

        assert set(exc_info.value.field_errors) == {"name", "slug"}

    async def test_slug_taken(self, registry: TeamRegistry, alice: User, acme: Team) -> None:
        """Slugs are unique across teams."""
        with pytest.raises(SlugTaken):
            await registry.create_team(Context(user=alice), "Acme Two", "acme")

    async def test_failed_membership_rolls_back_team(
        self,
        registry: TeamRegistry,
        storage: InMemoryStorage,
        alice: User,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """A team never exists without its first admin."""

        async def fail(*args: object, **kwargs: object) -> None:
            raise RuntimeError("connection lost")

        monkeypatch.setattr(InMemoryTeamRepository, "add_membership", fail)

        with pytest.raises(RuntimeError):
            await registry.create_team(Context(user=alice), "Acme", "acme")

        async with storage.acquire() as uow:
            assert await uow.teams.get_team_by_slug("acme") is None


class TestUpdateAndDeleteTeam:
    """Tests for update_team and delete_team."""

    async def test_rename(self, registry: TeamRegistry, alice_in_acme: TeamContext) -> None:
        """Admins can rename and re-slug."""
        team = await registry.update_team(alice_in_acme, name="Acme Corp", slug="acme-corp")

        assert (team.name, team.slug) == ("Acme Corp", "acme-corp")

    async def test_invalid_slug(self, registry: TeamRegistry, alice_in_acme: TeamContext) -> None:
        """Bad slugs are a field error."""
        with pytest.raises(ValidationError) as exc_info:
            await registry.update_team(alice_in_acme, slug="Bad Slug")

        assert exc_info.value.field == "slug"

    async def test_slug_collision(
        self, registry: TeamRegistry, alice: User, alice_in_acme: TeamContext
    ) -> None:
        """Renaming onto another team's slug fails."""
        await registry.create_team(Context(user=alice), "Beta", "beta")

        with pytest.raises(SlugTaken):
            await registry.update_team(alice_in_acme, slug="beta")

    async def test_member_cannot_update(
        self,
        registry: TeamRegistry,
        storage: InMemoryStorage,
        alice_in_acme: TeamContext,
        bob: User,
        acme: Team,
    ) -> None:
        """Only admins can change team settings."""
        await registry.add_member(alice_in_acme, bob.id)
        bob_ctx = await team_context_for(storage, bob, acme)

        with pytest.raises(AdminRequired):
            await registry.update_team(bob_ctx, name="Bob's team")

    async def test_delete_removes_memberships(
        self,
        registry: TeamRegistry,
        storage: InMemoryStorage,
        alice_in_acme: TeamContext,
        bob: User,
        acme: Team,
    ) -> None:
        """Deleting a team removes every membership with it."""
        await registry.add_member(alice_in_acme, bob.id)

        await registry.delete_team(alice_in_acme)

        async with storage.acquire() as uow:
            assert await uow.teams.get_team_by_id(acme.id) is None
            assert await uow.teams.list_user_memberships(bob.id) == []


class TestMembers:
    """Tests for add_member, remove_member and update_member_role."""

    async def test_add_member(
        self, registry: TeamRegistry, alice_in_acme: TeamContext, bob: User
    ) -> None:
        """Direct adds default to MEMBER."""
        membership = await registry.add_member(alice_in_acme, bob.id)

        assert membership.role == TeamRole.MEMBER

    async def test_add_unknown_user(
        self, registry: TeamRegistry, alice_in_acme: TeamContext
    ) -> None:
        """Unknown users are a user_id field error."""
        with pytest.raises(ValidationError) as exc_info:
            await registry.add_member(alice_in_acme, uuid4())

        assert exc_info.value.field == "user_id"

    async def test_add_twice(
        self, registry: TeamRegistry, alice_in_acme: TeamContext, bob: User
    ) -> None:
        """A user is on a team at most once."""
        await registry.add_member(alice_in_acme, bob.id)

        with pytest.raises(AlreadyMember):
            await registry.add_member(alice_in_acme, bob.id, TeamRole.ADMIN)

    async def test_remove_non_member(
        self, registry: TeamRegistry, alice_in_acme: TeamContext, bob: User
    ) -> None:
        """Removing someone who is not on the team fails."""
        with pytest.raises(MemberNotFound):
            await registry.remove_member(alice_in_acme, bob.id)

    async def test_cannot_remove_last_admin(
        self, registry: TeamRegistry, alice: User, alice_in_acme: TeamContext
    ) -> None:
        """The only admin cannot leave."""
        with pytest.raises(LastAdminProtected):
            await registry.remove_member(alice_in_acme, alice.id)

    async def test_same_role_is_a_no_op(
        self, registry: TeamRegistry, alice: User, alice_in_acme: TeamContext
    ) -> None:
        """Setting the current role changes nothing and is allowed."""
        membership = await registry.update_member_role(alice_in_acme, alice.id, TeamRole.ADMIN)

        assert membership.role == TeamRole.ADMIN

    async def test_last_admin_demotion_scenario(
        self,
        registry: TeamRegistry,
        storage: InMemoryStorage,
        alice: User,
        bob: User,
        acme: Team,
        alice_in_acme: TeamContext,
    ) -> None:
        """Self-demotion fails until a second admin exists."""
        await registry.add_member(alice_in_acme, bob.id)

        with pytest.raises(LastAdminProtected):
            await registry.update_member_role(alice_in_acme, alice.id, TeamRole.MEMBER)

        await registry.update_member_role(alice_in_acme, bob.id, TeamRole.ADMIN)
        demoted = await registry.update_member_role(alice_in_acme, alice.id, TeamRole.MEMBER)

        assert demoted.role == TeamRole.MEMBER
        assert await admin_count(storage, acme.id) == 1

    async def test_stale_admin_context_is_rechecked(
        self,
        registry: TeamRegistry,
        storage: InMemoryStorage,
        alice_in_acme: TeamContext,
        bob: User,
        carol: User,
        acme: Team,
    ) -> None:
        """A context built before a demotion does not keep admin rights."""
        await registry.add_member(alice_in_acme, bob.id, TeamRole.ADMIN)
        bob_ctx = await team_context_for(storage, bob, acme)
        await registry.update_member_role(alice_in_acme, bob.id, TeamRole.MEMBER)

        with pytest.raises(AdminRequired):
            await registry.add_member(bob_ctx, carol.id)

    async def test_concurrent_mutual_demotion_keeps_an_admin(
        self,
        registry: TeamRegistry,
        storage: InMemoryStorage,
        alice: User,
        bob: User,
        acme: Team,
        alice_in_acme: TeamContext,
    ) -> None:
        """Two admins demoting each other at once cannot both succeed."""
        await registry.add_member(alice_in_acme, bob.id, TeamRole.ADMIN)
        bob_ctx = await team_context_for(storage, bob, acme)

        results = await asyncio.gather(
            registry.update_member_role(alice_in_acme, bob.id, TeamRole.MEMBER),
            registry.update_member_role(bob_ctx, alice.id, TeamRole.MEMBER),
            return_exceptions=True,
        )

        assert sum(isinstance(r, PromptStudioError) for r in results) == 1
        assert await admin_count(storage, acme.id) == 1


class TestAdminInvariantProperty:
    """Random mutation sequences never leave a team without an admin."""

    @pytest.mark.parametrize("seed", range(8))
    async def test_admin_count_never_zero(
        self,
        seed: int,
        registry: TeamRegistry,
        storage: InMemoryStorage,
        alice: User,
        acme: Team,
    ) -> None:
        """Apply random add/remove/role-change steps and check after each."""
        rng = random.Random(seed)
        pool = [alice] + [storage.add_user(f"user{i}@acme.test") for i in range(5)]
        roles = list(TeamRole)

        for _ in range(60):
            async with storage.acquire() as uow:
                admins = [
                    m for m in await uow.teams.list_memberships(acme.id) if m.role == TeamRole.ADMIN
                ]
            actor_user = next(u for u in pool if u.id == admins[0].user_id)
            actor = await team_context_for(storage, actor_user, acme)
            target = rng.choice(pool)

            operation = rng.choice(["add", "remove", "role"])
            try:
                if operation == "add":
                    await registry.add_member(actor, target.id, rng.choice(roles))
                elif operation == "remove":
                    await registry.remove_member(actor, target.id)
                else:
                    await registry.update_member_role(actor, target.id, rng.choice(roles))
            except (AlreadyMember, MemberNotFound, LastAdminProtected):
                pass

            assert await admin_count(storage, acme.id) >= 1


class TestCapacity:
    """Tests for the tier capacity gate on direct adds."""

    async def test_free_team_at_cap_then_upgrade(
        self,
        registry: TeamRegistry,
        storage: InMemoryStorage,
        alice: User,
        bob: User,
        carol: User,
        acme: Team,
        alice_in_acme: TeamContext,
    ) -> None:
        """A free owner's team stops at three; upgrading lifts the cap at once."""
        await set_tier(storage, alice, SubscriptionTier.FREE)
        await registry.add_member(alice_in_acme, bob.id)
        await registry.add_member(alice_in_acme, carol.id)
        dave = storage.add_user("dave@acme.test")

        assert not await registry.can_add_member(acme.id)
        with pytest.raises(CapacityExceeded):
            await registry.add_member(alice_in_acme, dave.id)

        await set_tier(storage, alice, SubscriptionTier.PRO)

        assert await registry.can_add_member(acme.id)
        await registry.add_member(alice_in_acme, dave.id)

    async def test_can_add_member_unknown_team(self, registry: TeamRegistry) -> None:
        """Unknown teams have no room."""
        assert not await registry.can_add_member(uuid4())


class TestListings:
    """Tests for read-side operations."""

    async def test_list_user_teams(
        self, registry: TeamRegistry, alice: User, bob: User, alice_in_acme: TeamContext
    ) -> None:
        """Teams come with the caller's role and member count."""
        await registry.add_member(alice_in_acme, bob.id)

        summaries = await registry.list_user_teams(Context(user=bob))

        assert len(summaries) == 1
        assert summaries[0].team.slug == "acme"
        assert summaries[0].role == TeamRole.MEMBER
        assert summaries[0].member_count == 2

    async def test_overview(
        self, registry: TeamRegistry, bob: User, alice_in_acme: TeamContext
    ) -> None:
        """Overview lists members with profiles and the capacity."""
        await registry.add_member(alice_in_acme, bob.id)

        overview = await registry.get_team_overview(alice_in_acme)

        assert {m.email for m in overview.members} == {"alice@acme.test", "bob@acme.test"}
        assert overview.member_count == 2
        assert overview.member_limit is None
        assert overview.can_add_member

    async def test_list_members(
        self, registry: TeamRegistry, alice: User, alice_in_acme: TeamContext
    ) -> None:
        """Members are listed with their role."""
        members = await registry.list_members(alice_in_acme)

        assert [(m.user_id, m.role) for m in members] == [(alice.id, TeamRole.ADMIN)]
