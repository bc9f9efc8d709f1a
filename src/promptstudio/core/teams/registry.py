"""Team registry service.

Owns teams and memberships. Every invariant-sensitive mutation runs inside
one storage transaction that first locks the team row, then re-reads the
caller's role, the member count and the admin count before writing. Two
concurrent demotions of different admins therefore serialize on the lock
and the second one sees the first one's effect.
"""

from uuid import UUID

import structlog

from promptstudio.core.auth.context import Context, TeamContext
from promptstudio.core.auth.repository import Storage, UnitOfWork
from promptstudio.core.auth.types import (
    MemberProfile,
    Membership,
    SubscriptionTier,
    Team,
    TeamOverview,
    TeamRole,
    TeamSummary,
)
from promptstudio.core.exceptions import (
    AlreadyMember,
    CapacityExceeded,
    MemberNotFound,
    SubscriptionRequired,
    TeamNotFound,
    Unauthenticated,
    ValidationError,
)
from promptstudio.core.rbac import Action, authorize, ensure_admin_remains
from promptstudio.core.teams.entitlements import TeamEntitlements
from promptstudio.core.teams.validation import clean_slug, clean_team_name, validate_team_form

logger = structlog.get_logger()


class TeamRegistry:
    """Service for team and membership operations."""

    def __init__(self, storage: Storage, entitlements: TeamEntitlements | None = None) -> None:
        """Initialize the registry.

        Args:
            storage: Persistence entry point.
            entitlements: Tier policy. Defaults to the standard free-tier cap.
        """
        self._storage = storage
        self._entitlements = entitlements or TeamEntitlements()

    @property
    def entitlements(self) -> TeamEntitlements:
        """Tier policy in use."""
        return self._entitlements

    async def create_team(self, context: Context | None, name: str, slug: str) -> Team:
        """Create a team with the caller as its first admin.

        The team row and the admin membership are written in one transaction,
        so no reader ever sees a team without an admin.

        Args:
            context: Resolved caller.
            name: Display name, 2 to 50 characters after trimming.
            slug: URL slug matching ``[a-z0-9-]+``, 3 to 30 characters.

        Returns:
            The created team.

        Raises:
            Unauthenticated: No caller.
            SubscriptionRequired: Caller is not on the Pro tier.
            ValidationErrors: Name or slug is malformed.
            SlugTaken: Another team uses the slug.
        """
        if context is None:
            raise Unauthenticated()
        if not self._entitlements.can_create_team(context.user.subscription_tier):
            logger.warning("team_creation_requires_pro", user_id=str(context.user_id))
            raise SubscriptionRequired()

        clean_name, clean_slug_value = validate_team_form(name, slug)

        async with self._storage.transaction() as uow:
            team = await uow.teams.create_team(clean_name, clean_slug_value, context.user_id)
            await uow.teams.add_membership(team.id, context.user_id, TeamRole.ADMIN)

        logger.info(
            "team_created",
            team_id=str(team.id),
            slug=team.slug,
            owner_id=str(context.user_id),
        )
        return team

    async def update_team(
        self,
        team_context: TeamContext,
        name: str | None = None,
        slug: str | None = None,
    ) -> Team:
        """Rename a team or change its slug.

        Raises:
            AdminRequired: Caller is no longer an admin.
            ValidationError: A supplied field is malformed.
            SlugTaken: The new slug is in use.
        """
        clean_name = clean_team_name(name) if name is not None else None
        new_slug = clean_slug(slug) if slug is not None else None

        async with self._storage.transaction() as uow:
            team = await self.lock_and_authorize(uow, team_context, Action.UPDATE_TEAM)
            updated = await uow.teams.update_team(team.id, name=clean_name, slug=new_slug)
            if updated is None:
                raise TeamNotFound()

        logger.info("team_updated", team_id=str(updated.id), slug=updated.slug)
        return updated

    async def delete_team(self, team_context: TeamContext) -> None:
        """Delete a team with its memberships and invitations."""
        async with self._storage.transaction() as uow:
            team = await self.lock_and_authorize(uow, team_context, Action.DELETE_TEAM)
            await uow.teams.delete_team(team.id)

        logger.info("team_deleted", team_id=str(team.id), deleted_by=str(team_context.user_id))

    async def add_member(
        self,
        team_context: TeamContext,
        user_id: UUID,
        role: TeamRole = TeamRole.MEMBER,
    ) -> Membership:
        """Add an existing user to the team directly.

        Raises:
            AdminRequired: Caller is no longer an admin.
            ValidationError: No user has this ID.
            CapacityExceeded: The team is full for its owner's tier.
            AlreadyMember: The user is already on the team.
        """
        async with self._storage.transaction() as uow:
            team = await self.lock_and_authorize(uow, team_context, Action.ADD_MEMBER)

            user = await uow.users.get_user(user_id)
            if user is None:
                raise ValidationError("user_id", "User not found")

            await self.ensure_capacity(uow, team)
            if await uow.teams.get_membership(team.id, user_id) is not None:
                raise AlreadyMember()

            membership = await uow.teams.add_membership(team.id, user_id, role)

        logger.info(
            "team_member_added",
            team_id=str(team.id),
            user_id=str(user_id),
            role=role.value,
        )
        return membership

    async def remove_member(self, team_context: TeamContext, user_id: UUID) -> None:
        """Remove a member, refusing to remove the last admin.

        Raises:
            AdminRequired: Caller is no longer an admin.
            MemberNotFound: Target is not on the team.
            LastAdminProtected: Target is the only admin.
        """
        async with self._storage.transaction() as uow:
            team = await self.lock_and_authorize(uow, team_context, Action.REMOVE_MEMBER)

            target = await uow.teams.get_membership(team.id, user_id)
            if target is None:
                raise MemberNotFound()

            admin_count = await uow.teams.count_admins(team.id)
            ensure_admin_remains(target.role, None, admin_count, team_id=team.id)

            await uow.teams.remove_membership(team.id, user_id)

        logger.info(
            "team_member_removed",
            team_id=str(team.id),
            user_id=str(user_id),
            removed_by=str(team_context.user_id),
        )

    async def update_member_role(
        self,
        team_context: TeamContext,
        user_id: UUID,
        role: TeamRole,
    ) -> Membership:
        """Change a member's role, refusing to demote the last admin.

        Raises:
            AdminRequired: Caller is no longer an admin.
            MemberNotFound: Target is not on the team.
            LastAdminProtected: Target is the only admin and would be demoted.
        """
        async with self._storage.transaction() as uow:
            team = await self.lock_and_authorize(uow, team_context, Action.CHANGE_MEMBER_ROLE)

            target = await uow.teams.get_membership(team.id, user_id)
            if target is None:
                raise MemberNotFound()
            if target.role == role:
                return target

            admin_count = await uow.teams.count_admins(team.id)
            ensure_admin_remains(target.role, role, admin_count, team_id=team.id)

            updated = await uow.teams.update_membership_role(team.id, user_id, role)
            if updated is None:
                raise MemberNotFound()

        logger.info(
            "team_member_role_changed",
            team_id=str(team.id),
            user_id=str(user_id),
            old_role=target.role.value,
            new_role=role.value,
        )
        return updated

    async def can_add_member(self, team_id: UUID) -> bool:
        """Whether the team has room for one more member right now."""
        async with self._storage.acquire() as uow:
            team = await uow.teams.get_team_by_id(team_id)
            if team is None:
                return False
            return await self._has_room(uow, team)

    async def ensure_capacity(self, uow: UnitOfWork, team: Team) -> None:
        """Raise CapacityExceeded unless one more member fits.

        Counts current memberships and reads the owner's current tier inside
        the caller's unit of work.
        """
        if not await self._has_room(uow, team):
            logger.warning("team_capacity_exceeded", team_id=str(team.id))
            raise CapacityExceeded()

    async def list_user_teams(self, context: Context) -> list[TeamSummary]:
        """Teams the caller belongs to, newest first."""
        async with self._storage.acquire() as uow:
            memberships = await uow.teams.list_user_memberships(context.user_id)
            summaries = []
            for membership in memberships:
                team = await uow.teams.get_team_by_id(membership.team_id)
                if team is None:
                    continue
                summaries.append(
                    TeamSummary(
                        team=team,
                        role=membership.role,
                        member_count=await uow.teams.count_members(team.id),
                    )
                )
        summaries.sort(key=lambda s: s.team.created_at, reverse=True)
        return summaries

    async def list_members(self, team_context: TeamContext) -> list[MemberProfile]:
        """Members of the team in scope with their directory profile."""
        authorize(team_context, Action.VIEW_MEMBERS, team_context.role, team_context.team_id)
        async with self._storage.acquire() as uow:
            return await self._member_profiles(uow, team_context.team_id)

    async def get_team_overview(self, team_context: TeamContext) -> TeamOverview:
        """Team, members and capacity as seen by a member."""
        authorize(team_context, Action.VIEW_TEAM, team_context.role, team_context.team_id)
        async with self._storage.acquire() as uow:
            team = await uow.teams.get_team_by_id(team_context.team_id)
            if team is None:
                raise TeamNotFound()
            members = await self._member_profiles(uow, team.id)
            tier = await self._owner_tier(uow, team)

        limit = self._entitlements.member_limit(tier)
        return TeamOverview(
            team=team,
            members=members,
            member_count=len(members),
            member_limit=limit,
            can_add_member=limit is None or len(members) < limit,
        )

    async def lock_and_authorize(
        self, uow: UnitOfWork, team_context: TeamContext, action: Action
    ) -> Team:
        """Lock the team and re-check the caller's live role for ``action``."""
        team = await uow.teams.lock_team(team_context.team_id)
        if team is None:
            raise TeamNotFound()
        membership = await uow.teams.get_membership(team.id, team_context.user_id)
        authorize(team_context, action, membership.role if membership else None, team.id)
        return team

    async def _has_room(self, uow: UnitOfWork, team: Team) -> bool:
        tier = await self._owner_tier(uow, team)
        count = await uow.teams.count_members(team.id)
        return self._entitlements.has_room(tier, count)

    async def _owner_tier(self, uow: UnitOfWork, team: Team) -> SubscriptionTier:
        owner = await uow.users.get_user(team.owner_id)
        if owner is None:
            return SubscriptionTier.FREE
        return owner.subscription_tier

    async def _member_profiles(self, uow: UnitOfWork, team_id: UUID) -> list[MemberProfile]:
        memberships = await uow.teams.list_memberships(team_id)
        users = {u.id: u for u in await uow.users.get_users([m.user_id for m in memberships])}
        profiles = []
        for membership in memberships:
            user = users.get(membership.user_id)
            if user is None:
                continue
            profiles.append(
                MemberProfile(
                    user_id=user.id,
                    email=str(user.email),
                    name=user.name,
                    role=membership.role,
                    joined_at=membership.joined_at,
                )
            )
        return profiles
