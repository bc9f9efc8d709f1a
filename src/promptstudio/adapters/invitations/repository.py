"""Invitations repository."""

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

import asyncpg

from promptstudio.core.auth.tokens import as_utc
from promptstudio.core.auth.types import Invitation, TeamRole
from promptstudio.core.exceptions import InvitationAlreadySent

if TYPE_CHECKING:
    from asyncpg import Connection

logger = logging.getLogger(__name__)

INVITATION_COLUMNS = (
    "id, token_hash, team_id, email, role, invited_by, created_at, expires_at, accepted_at"
)


class InvitationsRepository:
    """Repository for invitation rows."""

    def __init__(self, conn: "Connection") -> None:
        """Initialize the repository."""
        self._conn = conn

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
        """Insert an invitation.

        The partial unique index on open invitations turns a concurrent
        duplicate into InvitationAlreadySent.
        """
        try:
            row = await self._conn.fetchrow(
                f"""
                INSERT INTO team_invitations
                    (team_id, email, role, invited_by, token_hash, created_at, expires_at)
                VALUES ($1, $2, $3, $4, $5, $6, $7)
                RETURNING {INVITATION_COLUMNS}
                """,
                team_id,
                email,
                role.value,
                invited_by,
                token_hash,
                created_at,
                expires_at,
            )
        except asyncpg.UniqueViolationError:
            logger.info(f"Open invitation already exists for team {team_id}")
            raise InvitationAlreadySent() from None
        return self._row_to_invitation(row)

    async def get_by_token_hash(self, token_hash: str) -> Invitation | None:
        """Get invitation by hashed token."""
        row = await self._conn.fetchrow(
            f"SELECT {INVITATION_COLUMNS} FROM team_invitations WHERE token_hash = $1",
            token_hash,
        )
        if not row:
            return None
        return self._row_to_invitation(row)

    async def get_by_id(self, invitation_id: UUID) -> Invitation | None:
        """Get invitation by ID."""
        row = await self._conn.fetchrow(
            f"SELECT {INVITATION_COLUMNS} FROM team_invitations WHERE id = $1",
            invitation_id,
        )
        if not row:
            return None
        return self._row_to_invitation(row)

    async def list_pending(self, team_id: UUID, now: datetime) -> list[Invitation]:
        """List unaccepted, unexpired invitations of a team, newest first."""
        rows = await self._conn.fetch(
            f"""
            SELECT {INVITATION_COLUMNS} FROM team_invitations
            WHERE team_id = $1 AND accepted_at IS NULL AND expires_at > $2
            ORDER BY created_at DESC
            """,
            team_id,
            now,
        )
        return [self._row_to_invitation(row) for row in rows]

    async def find_open(self, team_id: UUID, email: str) -> list[Invitation]:
        """List unaccepted invitations for a team and email."""
        rows = await self._conn.fetch(
            f"""
            SELECT {INVITATION_COLUMNS} FROM team_invitations
            WHERE team_id = $1 AND lower(email) = lower($2) AND accepted_at IS NULL
            """,
            team_id,
            email,
        )
        return [self._row_to_invitation(row) for row in rows]

    async def mark_accepted(self, invitation_id: UUID, accepted_at: datetime) -> bool:
        """Set accepted_at only if it is still unset."""
        result: str = await self._conn.execute(
            """
            UPDATE team_invitations SET accepted_at = $2
            WHERE id = $1 AND accepted_at IS NULL
            """,
            invitation_id,
            accepted_at,
        )
        return result == "UPDATE 1"

    async def delete_invitation(self, invitation_id: UUID) -> bool:
        """Delete an invitation."""
        result: str = await self._conn.execute(
            "DELETE FROM team_invitations WHERE id = $1",
            invitation_id,
        )
        return result == "DELETE 1"

    def _row_to_invitation(self, row: Any) -> Invitation:
        """Convert database row to Invitation."""
        accepted_at = row["accepted_at"]
        return Invitation(
            id=row["id"],
            token_hash=row["token_hash"],
            team_id=row["team_id"],
            email=row["email"],
            role=TeamRole(row["role"]),
            invited_by=row["invited_by"],
            created_at=as_utc(row["created_at"]),
            expires_at=as_utc(row["expires_at"]),
            accepted_at=as_utc(accepted_at) if accepted_at else None,
        )
