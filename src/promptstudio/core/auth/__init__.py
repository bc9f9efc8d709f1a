"""Identity domain types and utilities."""

from promptstudio.core.auth.context import Context, TeamContext
from promptstudio.core.auth.identity import IdentityProvider
from promptstudio.core.auth.repository import (
    InvitationRepository,
    Storage,
    TeamRepository,
    UnitOfWork,
    UserDirectory,
)
from promptstudio.core.auth.resolver import SessionResolver, require_admin
from promptstudio.core.auth.types import (
    GlobalRole,
    Invitation,
    InvitationStatus,
    Membership,
    SubscriptionTier,
    Team,
    TeamRole,
    User,
)

__all__ = [
    "Context",
    "TeamContext",
    "IdentityProvider",
    "SessionResolver",
    "require_admin",
    "Storage",
    "UnitOfWork",
    "UserDirectory",
    "TeamRepository",
    "InvitationRepository",
    "GlobalRole",
    "SubscriptionTier",
    "TeamRole",
    "InvitationStatus",
    "User",
    "Team",
    "Membership",
    "Invitation",
]
