"""Application database adapters.

Contents:
- app_db: asyncpg pool for the PostgreSQL application database
- storage: units of work over that pool
- memory: process-local storage for development and tests
"""

from .app_db import AppDatabase
from .memory import InMemoryStorage
from .storage import PostgresStorage, PostgresUnitOfWork

__all__ = ["AppDatabase", "InMemoryStorage", "PostgresStorage", "PostgresUnitOfWork"]
