"""Dependency injection and application lifespan management."""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import Request

from promptstudio.adapters.auth.jwt import JwtIdentityProvider
from promptstudio.adapters.db.app_db import AppDatabase
from promptstudio.adapters.db.memory import InMemoryStorage
from promptstudio.adapters.db.storage import PostgresStorage
from promptstudio.adapters.notifications.email import EmailConfig, EmailNotifier
from promptstudio.adapters.notifications.invitations import (
    ConsoleInvitationNotifier,
    EmailInvitationNotifier,
)
from promptstudio.core.admin import SystemAdministration
from promptstudio.core.auth.identity import IdentityProvider
from promptstudio.core.auth.repository import Storage
from promptstudio.core.auth.resolver import SessionResolver
from promptstudio.core.invitations import InvitationLedger, InvitationNotifier
from promptstudio.core.teams import TeamEntitlements, TeamRegistry

if TYPE_CHECKING:
    from fastapi import FastAPI

logger = logging.getLogger(__name__)


class Settings:
    """Application settings loaded from environment."""

    def __init__(self) -> None:
        """Load settings from environment variables."""
        self.database_url = os.getenv("DATABASE_URL", "postgresql://localhost:5432/promptstudio")
        self.storage_backend = os.getenv("STORAGE_BACKEND", "postgres").lower()
        self.auto_create_schema = os.getenv("AUTO_CREATE_SCHEMA", "false").lower() == "true"

        # Session credentials
        self.jwt_secret_key = os.getenv("JWT_SECRET_KEY", "dev-secret-change-in-production")
        self.jwt_algorithm = os.getenv("JWT_ALGORITHM", "HS256")
        self.session_cookie_name = os.getenv("SESSION_COOKIE_NAME", "promptstudio_session")

        # Invitations
        self.app_origin = os.getenv("APP_ORIGIN", "http://localhost:3000")
        self.free_team_member_limit = int(os.getenv("FREE_TEAM_MEMBER_LIMIT", "3"))

        # SMTP; without a host invitation links go to the console
        self.smtp_host = os.getenv("SMTP_HOST", "")
        self.smtp_port = int(os.getenv("SMTP_PORT", "587"))
        self.smtp_user = os.getenv("SMTP_USER") or None
        self.smtp_password = os.getenv("SMTP_PASSWORD") or None
        self.smtp_from_email = os.getenv("SMTP_FROM_EMAIL", "promptstudio@example.com")


settings = Settings()


def build_notifier() -> InvitationNotifier:
    """Email delivery when SMTP is configured, console output otherwise."""
    if not settings.smtp_host:
        return ConsoleInvitationNotifier()
    email = EmailNotifier(
        EmailConfig(
            smtp_host=settings.smtp_host,
            smtp_port=settings.smtp_port,
            smtp_user=settings.smtp_user,
            smtp_password=settings.smtp_password,
            from_email=settings.smtp_from_email,
        )
    )
    return EmailInvitationNotifier(email)


def configure_services(
    app: FastAPI,
    storage: Storage,
    identity_provider: IdentityProvider,
    notifier: InvitationNotifier | None = None,
    free_member_limit: int | None = None,
) -> None:
    """Wire the core services onto app state."""
    limit = settings.free_team_member_limit if free_member_limit is None else free_member_limit
    registry = TeamRegistry(storage, TeamEntitlements(free_member_limit=limit))

    app.state.resolver = SessionResolver(identity_provider, storage)
    app.state.registry = registry
    app.state.ledger = InvitationLedger(storage, registry, notifier=notifier)
    app.state.admin = SystemAdministration(storage)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan - setup and teardown.

    This context manager handles:
    - Storage backend selection and database pool setup
    - Session credential verification
    - Core service wiring
    """
    app_db: AppDatabase | None = None
    storage: Storage
    if settings.storage_backend == "memory":
        storage = InMemoryStorage()
        logger.warning("Using in-memory storage; data is lost on restart")
    else:
        app_db = AppDatabase(settings.database_url)
        await app_db.connect()
        if settings.auto_create_schema:
            await app_db.ensure_schema()
        storage = PostgresStorage(app_db)

    identity_provider = JwtIdentityProvider(settings.jwt_secret_key, settings.jwt_algorithm)
    configure_services(app, storage, identity_provider, notifier=build_notifier())
    app.state.app_db = app_db

    yield

    if app_db is not None:
        await app_db.close()


def get_resolver(request: Request) -> SessionResolver:
    """Get the session resolver from app state."""
    resolver: SessionResolver = request.app.state.resolver
    return resolver


def get_registry(request: Request) -> TeamRegistry:
    """Get the team registry from app state."""
    registry: TeamRegistry = request.app.state.registry
    return registry


def get_ledger(request: Request) -> InvitationLedger:
    """Get the invitation ledger from app state."""
    ledger: InvitationLedger = request.app.state.ledger
    return ledger


def get_admin(request: Request) -> SystemAdministration:
    """Get the system administration service from app state."""
    admin: SystemAdministration = request.app.state.admin
    return admin


def get_origin(request: Request) -> str:
    """Origin used to build shareable links for this request."""
    return request.headers.get("origin") or settings.app_origin
