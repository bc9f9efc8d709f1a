"""System administration service."""

from uuid import UUID

import structlog

from promptstudio.core.auth.context import Context
from promptstudio.core.auth.repository import Storage
from promptstudio.core.auth.types import SubscriptionTier, User
from promptstudio.core.exceptions import ValidationError
from promptstudio.core.rbac import Action, authorize

logger = structlog.get_logger()


class SystemAdministration:
    """Platform-level operations reserved for system admins.

    The system-admin bypass only covers these actions. It grants nothing
    inside teams the admin is not a member of.
    """

    def __init__(self, storage: Storage) -> None:
        """Initialize with the storage entry point."""
        self._storage = storage

    async def list_users(self, context: Context | None) -> list[User]:
        """List all users for the admin tools picker."""
        authorize(context, Action.LIST_USERS)
        async with self._storage.acquire() as uow:
            return await uow.users.list_users()

    async def set_subscription_tier(
        self,
        context: Context | None,
        user_id: UUID,
        tier: SubscriptionTier,
    ) -> User:
        """Force a user's subscription tier.

        Takes effect on the target's next request since tiers are never cached.

        Raises:
            SystemAdminRequired: Caller is not a system admin.
            ValidationError: No user has this ID.
        """
        authorize(context, Action.SET_SUBSCRIPTION_TIER)
        async with self._storage.transaction() as uow:
            user = await uow.users.set_subscription_tier(user_id, tier)
        if user is None:
            raise ValidationError("user_id", "User not found")

        logger.info(
            "subscription_tier_overridden",
            user_id=str(user_id),
            tier=tier.value,
            changed_by=str(context.user_id) if context else None,
        )
        return user
