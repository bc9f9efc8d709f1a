"""Teams API routes."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel

from promptstudio.core.auth.types import (
    Invitation,
    InvitationStatus,
    Membership,
    Team,
    TeamOverview,
    TeamRole,
    TeamSummary,
)
from promptstudio.core.invitations import InvitationLedger
from promptstudio.core.teams import TeamRegistry, suggest_slug
from promptstudio.entrypoints.api.deps import get_ledger, get_origin, get_registry
from promptstudio.entrypoints.api.middleware.auth import (
    RequireMember,
    RequireTeamAdmin,
    RequireUser,
)

router = APIRouter(prefix="/teams", tags=["teams"])

# Annotated types for dependency injection
RegistryDep = Annotated[TeamRegistry, Depends(get_registry)]
LedgerDep = Annotated[InvitationLedger, Depends(get_ledger)]
OriginDep = Annotated[str, Depends(get_origin)]


class TeamCreate(BaseModel):
    """Team creation request."""

    name: str = ""
    slug: str = ""


class TeamUpdate(BaseModel):
    """Team update request. Omitted fields are left unchanged."""

    name: str | None = None
    slug: str | None = None


class TeamMemberAdd(BaseModel):
    """Add member request."""

    user_id: UUID
    role: TeamRole = TeamRole.MEMBER


class TeamMemberRoleUpdate(BaseModel):
    """Change member role request."""

    role: TeamRole


class InvitationCreate(BaseModel):
    """Invitation request; validated by the ledger so errors come back per field."""

    email: str = ""
    role: str = TeamRole.MEMBER.value


class InvitationResponse(BaseModel):
    """Invitation as shown to team admins. Never carries the token."""

    id: UUID
    email: str
    role: TeamRole
    status: InvitationStatus
    invited_by: UUID
    created_at: datetime
    expires_at: datetime


class InvitationCreatedResponse(BaseModel):
    """Created invitation with its one-time shareable link."""

    invitation: InvitationResponse
    accept_url: str


class InvitationListResponse(BaseModel):
    """Response for listing pending invitations."""

    invitations: list[InvitationResponse]
    total: int


class TeamListResponse(BaseModel):
    """Response for listing the caller's teams."""

    teams: list[TeamSummary]
    total: int


def _invitation_response(invitation: Invitation, ledger: InvitationLedger) -> InvitationResponse:
    return InvitationResponse(
        id=invitation.id,
        email=invitation.email,
        role=invitation.role,
        status=ledger.status_of(invitation),
        invited_by=invitation.invited_by,
        created_at=invitation.created_at,
        expires_at=invitation.expires_at,
    )


@router.get("", response_model=TeamListResponse)
async def list_teams(auth: RequireUser, registry: RegistryDep) -> TeamListResponse:
    """List teams the caller belongs to."""
    teams = await registry.list_user_teams(auth)
    return TeamListResponse(teams=teams, total=len(teams))


@router.post("", response_model=Team, status_code=status.HTTP_201_CREATED)
async def create_team(body: TeamCreate, auth: RequireUser, registry: RegistryDep) -> Team:
    """Create a new team with the caller as admin.

    Requires a Pro subscription. A blank slug is derived from the name.
    """
    return await registry.create_team(auth, body.name, body.slug or suggest_slug(body.name))


@router.get("/{slug}", response_model=TeamOverview)
async def get_team(auth: RequireMember, registry: RegistryDep) -> TeamOverview:
    """Get team details, members and capacity."""
    return await registry.get_team_overview(auth)


@router.patch("/{slug}", response_model=Team)
async def update_team(body: TeamUpdate, auth: RequireTeamAdmin, registry: RegistryDep) -> Team:
    """Rename a team or change its slug. Team admins only."""
    return await registry.update_team(auth, name=body.name, slug=body.slug)


@router.delete("/{slug}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def delete_team(auth: RequireTeamAdmin, registry: RegistryDep) -> Response:
    """Delete a team. Team admins only."""
    await registry.delete_team(auth)
    return Response(status_code=204)


@router.post("/{slug}/members", response_model=Membership, status_code=status.HTTP_201_CREATED)
async def add_team_member(
    body: TeamMemberAdd,
    auth: RequireMember,
    registry: RegistryDep,
) -> Membership:
    """Add an existing user to the team."""
    return await registry.add_member(auth, body.user_id, body.role)


@router.patch("/{slug}/members/{user_id}", response_model=Membership)
async def update_team_member_role(
    user_id: UUID,
    body: TeamMemberRoleUpdate,
    auth: RequireMember,
    registry: RegistryDep,
) -> Membership:
    """Change a member's role."""
    return await registry.update_member_role(auth, user_id, body.role)


@router.delete(
    "/{slug}/members/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
async def remove_team_member(user_id: UUID, auth: RequireMember, registry: RegistryDep) -> Response:
    """Remove a member from the team."""
    await registry.remove_member(auth, user_id)
    return Response(status_code=204)


@router.get("/{slug}/invitations", response_model=InvitationListResponse)
async def list_team_invitations(auth: RequireMember, ledger: LedgerDep) -> InvitationListResponse:
    """List pending invitations, newest first."""
    invitations = await ledger.list_invitations(auth)
    return InvitationListResponse(
        invitations=[_invitation_response(inv, ledger) for inv in invitations],
        total=len(invitations),
    )


@router.post(
    "/{slug}/invitations",
    response_model=InvitationCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_team_invitation(
    body: InvitationCreate,
    auth: RequireMember,
    ledger: LedgerDep,
    origin: OriginDep,
) -> InvitationCreatedResponse:
    """Invite someone by email and return the shareable accept link."""
    created = await ledger.create_invitation(auth, body.email, body.role, origin)
    return InvitationCreatedResponse(
        invitation=_invitation_response(created.invitation, ledger),
        accept_url=created.accept_url,
    )


@router.delete(
    "/{slug}/invitations/{invitation_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
async def cancel_team_invitation(
    invitation_id: UUID,
    auth: RequireMember,
    ledger: LedgerDep,
) -> Response:
    """Cancel a pending invitation. Safe to repeat."""
    await ledger.cancel_invitation(auth, invitation_id)
    return Response(status_code=204)
