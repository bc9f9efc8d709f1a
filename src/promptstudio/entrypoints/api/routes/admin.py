"""System administration routes."""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from promptstudio.core.admin import SystemAdministration
from promptstudio.core.auth.types import SubscriptionTier, User
from promptstudio.entrypoints.api.deps import get_admin
from promptstudio.entrypoints.api.middleware.auth import RequireUser

router = APIRouter(prefix="/admin", tags=["admin"])

AdminDep = Annotated[SystemAdministration, Depends(get_admin)]


class SubscriptionUpdate(BaseModel):
    """Subscription override request."""

    tier: SubscriptionTier


class UserListResponse(BaseModel):
    """Response for listing users."""

    users: list[User]
    total: int


@router.get("/users", response_model=UserListResponse)
async def list_users(auth: RequireUser, admin: AdminDep) -> UserListResponse:
    """List all users. System admins only."""
    users = await admin.list_users(auth)
    return UserListResponse(users=users, total=len(users))


@router.put("/users/{user_id}/subscription", response_model=User)
async def set_user_subscription(
    user_id: UUID,
    body: SubscriptionUpdate,
    auth: RequireUser,
    admin: AdminDep,
) -> User:
    """Override a user's subscription tier. System admins only."""
    return await admin.set_subscription_tier(auth, user_id, body.tier)
