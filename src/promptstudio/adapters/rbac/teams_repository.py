"""Teams repository."""

import logging
from typing import TYPE_CHECKING, Any
from uuid import UUID

import asyncpg

from promptstudio.core.auth.tokens import as_utc
from promptstudio.core.auth.types import Membership, Team, TeamRole
from promptstudio.core.exceptions import AlreadyMember, SlugTaken

if TYPE_CHECKING:
    from asyncpg import Connection

logger = logging.getLogger(__name__)

TEAM_COLUMNS = "id, name, slug, owner_id, created_at"
MEMBER_COLUMNS = "team_id, user_id, role, joined_at"


class TeamsRepository:
    """Repository for team and membership rows."""

    def __init__(self, conn: "Connection") -> None:
        """Initialize the repository."""
        self._conn = conn

    async def get_team_by_id(self, team_id: UUID) -> Team | None:
        """Get team by ID."""
        row = await self._conn.fetchrow(
            f"SELECT {TEAM_COLUMNS} FROM teams WHERE id = $1",
            team_id,
        )
        if not row:
            return None
        return self._row_to_team(row)

    async def get_team_by_slug(self, slug: str) -> Team | None:
        """Get team by slug."""
        row = await self._conn.fetchrow(
            f"SELECT {TEAM_COLUMNS} FROM teams WHERE slug = $1",
            slug,
        )
        if not row:
            return None
        return self._row_to_team(row)

    async def lock_team(self, team_id: UUID) -> Team | None:
        """Get team by ID, locking its row until the transaction ends."""
        row = await self._conn.fetchrow(
            f"SELECT {TEAM_COLUMNS} FROM teams WHERE id = $1 FOR UPDATE",
            team_id,
        )
        if not row:
            return None
        return self._row_to_team(row)

    async def create_team(self, name: str, slug: str, owner_id: UUID) -> Team:
        """Create a new team."""
        try:
            row = await self._conn.fetchrow(
                f"""
                INSERT INTO teams (name, slug, owner_id)
                VALUES ($1, $2, $3)
                RETURNING {TEAM_COLUMNS}
                """,
                name,
                slug,
                owner_id,
            )
        except asyncpg.UniqueViolationError:
            logger.info(f"Slug already taken: {slug}")
            raise SlugTaken() from None
        return self._row_to_team(row)

    async def update_team(
        self, team_id: UUID, name: str | None = None, slug: str | None = None
    ) -> Team | None:
        """Update team name and/or slug."""
        try:
            row = await self._conn.fetchrow(
                f"""
                UPDATE teams
                SET name = COALESCE($2, name), slug = COALESCE($3, slug), updated_at = NOW()
                WHERE id = $1
                RETURNING {TEAM_COLUMNS}
                """,
                team_id,
                name,
                slug,
            )
        except asyncpg.UniqueViolationError:
            raise SlugTaken() from None
        if not row:
            return None
        return self._row_to_team(row)

    async def delete_team(self, team_id: UUID) -> bool:
        """Delete a team with its memberships and invitations."""
        await self._conn.execute("DELETE FROM team_invitations WHERE team_id = $1", team_id)
        await self._conn.execute("DELETE FROM team_members WHERE team_id = $1", team_id)
        result: str = await self._conn.execute("DELETE FROM teams WHERE id = $1", team_id)
        return result == "DELETE 1"

    async def get_membership(self, team_id: UUID, user_id: UUID) -> Membership | None:
        """Get a user's membership in a team."""
        row = await self._conn.fetchrow(
            f"SELECT {MEMBER_COLUMNS} FROM team_members WHERE team_id = $1 AND user_id = $2",
            team_id,
            user_id,
        )
        if not row:
            return None
        return self._row_to_membership(row)

    async def list_memberships(self, team_id: UUID) -> list[Membership]:
        """List memberships of a team, oldest first."""
        rows = await self._conn.fetch(
            f"SELECT {MEMBER_COLUMNS} FROM team_members WHERE team_id = $1 ORDER BY joined_at",
            team_id,
        )
        return [self._row_to_membership(row) for row in rows]

    async def list_user_memberships(self, user_id: UUID) -> list[Membership]:
        """List memberships held by a user."""
        rows = await self._conn.fetch(
            f"SELECT {MEMBER_COLUMNS} FROM team_members WHERE user_id = $1 ORDER BY joined_at",
            user_id,
        )
        return [self._row_to_membership(row) for row in rows]

    async def count_members(self, team_id: UUID) -> int:
        """Count current members of a team."""
        count: int = await self._conn.fetchval(
            "SELECT COUNT(*) FROM team_members WHERE team_id = $1",
            team_id,
        )
        return count

    async def count_admins(self, team_id: UUID) -> int:
        """Count current admins of a team."""
        count: int = await self._conn.fetchval(
            "SELECT COUNT(*) FROM team_members WHERE team_id = $1 AND role = $2",
            team_id,
            TeamRole.ADMIN.value,
        )
        return count

    async def add_membership(self, team_id: UUID, user_id: UUID, role: TeamRole) -> Membership:
        """Add a user to a team."""
        try:
            row = await self._conn.fetchrow(
                f"""
                INSERT INTO team_members (team_id, user_id, role)
                VALUES ($1, $2, $3)
                RETURNING {MEMBER_COLUMNS}
                """,
                team_id,
                user_id,
                role.value,
            )
        except asyncpg.UniqueViolationError:
            raise AlreadyMember() from None
        return self._row_to_membership(row)

    async def update_membership_role(
        self, team_id: UUID, user_id: UUID, role: TeamRole
    ) -> Membership | None:
        """Change a member's role."""
        row = await self._conn.fetchrow(
            f"""
            UPDATE team_members SET role = $3
            WHERE team_id = $1 AND user_id = $2
            RETURNING {MEMBER_COLUMNS}
            """,
            team_id,
            user_id,
            role.value,
        )
        if not row:
            return None
        return self._row_to_membership(row)

    async def remove_membership(self, team_id: UUID, user_id: UUID) -> bool:
        """Remove a user from a team."""
        result: str = await self._conn.execute(
            "DELETE FROM team_members WHERE team_id = $1 AND user_id = $2",
            team_id,
            user_id,
        )
        return result == "DELETE 1"

    def _row_to_team(self, row: Any) -> Team:
        """Convert database row to Team."""
        return Team(
            id=row["id"],
            name=row["name"],
            slug=row["slug"],
            owner_id=row["owner_id"],
            created_at=as_utc(row["created_at"]),
        )

    def _row_to_membership(self, row: Any) -> Membership:
        """Convert database row to Membership."""
        return Membership(
            team_id=row["team_id"],
            user_id=row["user_id"],
            role=TeamRole(row["role"]),
            joined_at=as_utc(row["joined_at"]),
        )
