"""PostgreSQL-backed storage."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from promptstudio.adapters.auth.postgres import PostgresUserDirectory
from promptstudio.adapters.db.app_db import AppDatabase
from promptstudio.adapters.invitations.repository import InvitationsRepository
from promptstudio.adapters.rbac.teams_repository import TeamsRepository

if TYPE_CHECKING:
    from asyncpg import Connection


class PostgresUnitOfWork:
    """Repositories sharing one asyncpg connection."""

    def __init__(self, conn: "Connection") -> None:
        self.users = PostgresUserDirectory(conn)
        self.teams = TeamsRepository(conn)
        self.invitations = InvitationsRepository(conn)


class PostgresStorage:
    """Storage that hands out units of work bound to pooled connections.

    ``transaction()`` wraps the block in a database transaction, so a domain
    error raised inside it rolls back every write made so far. Row locks taken
    with ``lock_team`` are held until the block exits.
    """

    def __init__(self, app_db: AppDatabase) -> None:
        self._app_db = app_db

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[PostgresUnitOfWork]:
        async with self._app_db.transaction() as conn:
            yield PostgresUnitOfWork(conn)

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[PostgresUnitOfWork]:
        async with self._app_db.acquire() as conn:
            yield PostgresUnitOfWork(conn)
