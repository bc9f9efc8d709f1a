"""Invitation accept-flow routes.

The GET half is public so the accept page can show who invited whom before
sign-in; the POST half requires a session whose email matches the invite.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from promptstudio.core.auth.types import InvitationDetails, Membership
from promptstudio.core.invitations import InvitationLedger
from promptstudio.entrypoints.api.deps import get_ledger
from promptstudio.entrypoints.api.middleware.auth import RequireUser

router = APIRouter(prefix="/invitations", tags=["invitations"])

LedgerDep = Annotated[InvitationLedger, Depends(get_ledger)]


@router.get("/{token}", response_model=InvitationDetails)
async def get_invitation(token: str, ledger: LedgerDep) -> InvitationDetails:
    """Show an invitation without consuming it."""
    return await ledger.get_invitation_details(token)


@router.post("/{token}", response_model=Membership)
async def accept_invitation(token: str, auth: RequireUser, ledger: LedgerDep) -> Membership:
    """Accept an invitation as the signed-in user."""
    return await ledger.accept_invitation(token, auth)
