"""Session and tenant resolution.

Turns a raw inbound credential into a Context, and optionally a TeamContext,
by re-reading the user directory and team registry on every call. Nothing is
cached between calls, so a downgrade or a revoked membership takes effect on
the caller's very next request.
"""

import structlog

from promptstudio.core.auth.context import Context, TeamContext
from promptstudio.core.auth.identity import IdentityProvider
from promptstudio.core.auth.repository import Storage
from promptstudio.core.auth.types import TeamRole
from promptstudio.core.exceptions import AccessDenied, AdminRequired, TeamNotFound, Unauthenticated

logger = structlog.get_logger()


class SessionResolver:
    """Resolves who the caller is and which team they act in."""

    def __init__(self, identity_provider: IdentityProvider, storage: Storage) -> None:
        """Initialize the resolver.

        Args:
            identity_provider: Verifies raw credentials.
            storage: Source of user, team and membership records.
        """
        self._identity_provider = identity_provider
        self._storage = storage

    async def resolve_session(self, credential: str | None) -> Context:
        """Resolve the caller's global context.

        Args:
            credential: Raw session cookie or bearer token.

        Returns:
            Context built from the current directory record.

        Raises:
            Unauthenticated: Missing or invalid credential, or the identity
                no longer exists.
        """
        if not credential:
            raise Unauthenticated()

        user_id = await self._identity_provider.verify_credential(credential)
        if user_id is None:
            logger.info("session_credential_rejected")
            raise Unauthenticated("Invalid or expired session")

        async with self._storage.acquire() as uow:
            user = await uow.users.get_user(user_id)

        if user is None:
            logger.info("session_user_missing", user_id=str(user_id))
            raise Unauthenticated("User not found")

        return Context(user=user)

    async def resolve_team(self, context: Context, team_slug: str) -> TeamContext:
        """Scope an already resolved context to a team.

        Raises:
            TeamNotFound: No team has this slug.
            AccessDenied: The caller is not a member of the team.
        """
        async with self._storage.acquire() as uow:
            team = await uow.teams.get_team_by_slug(team_slug)
            if team is None:
                logger.info("team_lookup_failed", slug=team_slug, user_id=str(context.user_id))
                raise TeamNotFound()
            membership = await uow.teams.get_membership(team.id, context.user_id)

        if membership is None:
            logger.warning("team_access_denied", team_id=str(team.id), user_id=str(context.user_id))
            raise AccessDenied()

        return TeamContext(user=context.user, team=team, role=membership.role)

    async def resolve_team_session(self, credential: str | None, team_slug: str) -> TeamContext:
        """Resolve the caller and scope them to the team with ``team_slug``."""
        context = await self.resolve_session(credential)
        return await self.resolve_team(context, team_slug)

    async def require_team_admin(self, credential: str | None, team_slug: str) -> TeamContext:
        """Like resolve_team_session but also requires the ADMIN role.

        Raises:
            AdminRequired: The caller is a member but not an admin.
        """
        team_context = await self.resolve_team_session(credential, team_slug)
        return require_admin(team_context)


def require_admin(team_context: TeamContext) -> TeamContext:
    """Return the context unchanged if the caller is a team admin."""
    if team_context.role != TeamRole.ADMIN:
        raise AdminRequired()
    return team_context
