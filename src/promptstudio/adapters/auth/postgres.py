"""PostgreSQL implementation of UserDirectory."""

from typing import TYPE_CHECKING, Any
from uuid import UUID

from promptstudio.core.auth.tokens import as_utc
from promptstudio.core.auth.types import GlobalRole, SubscriptionTier, User

if TYPE_CHECKING:
    from asyncpg import Connection

USER_COLUMNS = "id, email, name, global_role, subscription_tier, created_at"


class PostgresUserDirectory:
    """PostgreSQL implementation of the user directory.

    Every call hits the database; profiles are never cached so tier and role
    changes apply immediately.
    """

    def __init__(self, conn: "Connection") -> None:
        """Initialize with a database connection.

        Args:
            conn: asyncpg connection, possibly inside a transaction.
        """
        self._conn = conn

    async def get_user(self, user_id: UUID) -> User | None:
        """Get user by ID."""
        row = await self._conn.fetchrow(
            f"SELECT {USER_COLUMNS} FROM users WHERE id = $1",
            user_id,
        )
        return self._row_to_user(row) if row else None

    async def get_user_by_email(self, email: str) -> User | None:
        """Get user by email address, ignoring case."""
        row = await self._conn.fetchrow(
            f"SELECT {USER_COLUMNS} FROM users WHERE lower(email) = lower($1)",
            email.strip(),
        )
        return self._row_to_user(row) if row else None

    async def get_users(self, user_ids: list[UUID]) -> list[User]:
        """Get several users by ID."""
        if not user_ids:
            return []
        rows = await self._conn.fetch(
            f"SELECT {USER_COLUMNS} FROM users WHERE id = ANY($1::uuid[])",
            user_ids,
        )
        return [self._row_to_user(row) for row in rows]

    async def list_users(self) -> list[User]:
        """List all users, system admins first, then by name."""
        rows = await self._conn.fetch(
            f"""
            SELECT {USER_COLUMNS} FROM users
            ORDER BY (global_role = 'system_admin') DESC, name NULLS LAST, email
            """
        )
        return [self._row_to_user(row) for row in rows]

    async def set_subscription_tier(self, user_id: UUID, tier: SubscriptionTier) -> User | None:
        """Overwrite a user's subscription tier."""
        row = await self._conn.fetchrow(
            f"""
            UPDATE users SET subscription_tier = $2, updated_at = NOW()
            WHERE id = $1
            RETURNING {USER_COLUMNS}
            """,
            user_id,
            tier.value,
        )
        return self._row_to_user(row) if row else None

    def _row_to_user(self, row: Any) -> User:
        """Convert database row to User model."""
        return User(
            id=row["id"],
            email=row["email"],
            name=row["name"],
            global_role=GlobalRole(row["global_role"]),
            subscription_tier=SubscriptionTier(row["subscription_tier"]),
            created_at=as_utc(row["created_at"]),
        )
