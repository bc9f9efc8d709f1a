"""Invitation ledger service.

An invitation moves from PENDING to ACCEPTED exactly once, or becomes
EXPIRED when its seven days run out. Expiry is never swept: it is evaluated
against the clock whenever an invitation is read. Cancellation deletes the
row.
"""

from collections.abc import Callable
from datetime import datetime
from uuid import UUID

import structlog

from promptstudio.core.auth.context import Context, TeamContext
from promptstudio.core.auth.repository import Storage
from promptstudio.core.auth.tokens import (
    build_accept_url,
    generate_invitation_token,
    get_invitation_expiry,
    hash_token,
    utc_now,
)
from promptstudio.core.auth.types import (
    CreatedInvitation,
    Invitation,
    InvitationDetails,
    InvitationLookup,
    InvitationStatus,
    Membership,
    TeamRole,
)
from promptstudio.core.exceptions import (
    AlreadyMember,
    EmailMismatch,
    InvitationAlreadyAccepted,
    InvitationAlreadySent,
    InvitationExpired,
    InvitationNotFound,
    Unauthenticated,
)
from promptstudio.core.invitations.notifier import InvitationMessage, InvitationNotifier
from promptstudio.core.rbac import Action, authorize
from promptstudio.core.teams.registry import TeamRegistry
from promptstudio.core.teams.validation import validate_invitation_form

logger = structlog.get_logger()


class InvitationLedger:
    """Service for the invitation lifecycle."""

    def __init__(
        self,
        storage: Storage,
        registry: TeamRegistry,
        notifier: InvitationNotifier | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the ledger.

        Args:
            storage: Persistence entry point.
            registry: Team registry, used for locking and capacity checks.
            notifier: Optional delivery channel for accept links.
            clock: Source of the current time.
        """
        self._storage = storage
        self._registry = registry
        self._notifier = notifier
        self._clock = clock

    def status_of(self, invitation: Invitation) -> InvitationStatus:
        """Lifecycle state of an invitation right now."""
        return invitation.status_at(self._clock())

    async def create_invitation(
        self,
        team_context: TeamContext,
        email: str,
        role: str | TeamRole,
        origin: str,
    ) -> CreatedInvitation:
        """Invite an email address to the team in scope.

        Args:
            team_context: Caller scoped to the inviting team.
            email: Address to invite, compared case-insensitively.
            role: Role offered on acceptance.
            origin: Public origin used to build the accept link.

        Returns:
            The stored invitation, its plaintext token and the accept URL.

        Raises:
            ValidationErrors: Email or role is malformed.
            AdminRequired: Caller is no longer an admin.
            CapacityExceeded: The team is full.
            AlreadyMember: The email already belongs to a member.
            InvitationAlreadySent: A pending invitation exists for this email.
        """
        clean_email, clean_role = validate_invitation_form(email, role)
        token = generate_invitation_token()
        now = self._clock()

        async with self._storage.transaction() as uow:
            team = await self._registry.lock_and_authorize(
                uow, team_context, Action.INVITE_MEMBER
            )
            await self._registry.ensure_capacity(uow, team)

            existing_user = await uow.users.get_user_by_email(clean_email)
            if existing_user is not None:
                if await uow.teams.get_membership(team.id, existing_user.id) is not None:
                    raise AlreadyMember()

            for open_invitation in await uow.invitations.find_open(team.id, clean_email):
                if open_invitation.status_at(now) == InvitationStatus.PENDING:
                    raise InvitationAlreadySent()
                # Expired rows would block the pending-invitation unique index.
                await uow.invitations.delete_invitation(open_invitation.id)

            invitation = await uow.invitations.create_invitation(
                team_id=team.id,
                email=clean_email,
                role=clean_role,
                invited_by=team_context.user_id,
                token_hash=hash_token(token),
                created_at=now,
                expires_at=get_invitation_expiry(now),
            )

        accept_url = build_accept_url(origin, token)
        logger.info(
            "invitation_created",
            invitation_id=str(invitation.id),
            team_id=str(team.id),
            role=clean_role.value,
            invited_by=str(team_context.user_id),
        )

        if self._notifier is not None:
            delivered = await self._notifier.send_invitation(
                InvitationMessage(
                    to_email=clean_email,
                    team_name=team.name,
                    role=clean_role,
                    accept_url=accept_url,
                    inviter_name=team_context.user.name,
                    inviter_email=str(team_context.user.email),
                )
            )
            if not delivered:
                logger.error("invitation_delivery_failed", invitation_id=str(invitation.id))

        return CreatedInvitation(invitation=invitation, token=token, accept_url=accept_url)

    async def list_invitations(self, team_context: TeamContext) -> list[Invitation]:
        """Pending invitations of the team in scope, newest first."""
        authorize(
            team_context, Action.VIEW_INVITATIONS, team_context.role, team_context.team_id
        )
        async with self._storage.acquire() as uow:
            return await uow.invitations.list_pending(team_context.team_id, self._clock())

    async def cancel_invitation(self, team_context: TeamContext, invitation_id: UUID) -> None:
        """Withdraw a pending invitation.

        Cancelling an invitation that is already accepted, expired, gone or
        belongs to another team succeeds without changing anything, so
        clients can retry safely.
        """
        async with self._storage.transaction() as uow:
            team = await self._registry.lock_and_authorize(
                uow, team_context, Action.CANCEL_INVITATION
            )
            invitation = await uow.invitations.get_by_id(invitation_id)
            if invitation is None or invitation.team_id != team.id:
                return
            if invitation.status_at(self._clock()) != InvitationStatus.PENDING:
                return
            await uow.invitations.delete_invitation(invitation.id)

        logger.info(
            "invitation_cancelled",
            invitation_id=str(invitation_id),
            team_id=str(team.id),
            cancelled_by=str(team_context.user_id),
        )

    async def lookup_invitation(self, token: str) -> InvitationLookup:
        """Find an invitation by its plaintext token.

        Returns:
            The invitation with its state against the current clock.

        Raises:
            InvitationNotFound: No invitation has this token.
        """
        async with self._storage.acquire() as uow:
            invitation = await uow.invitations.get_by_token_hash(hash_token(token))
        if invitation is None:
            raise InvitationNotFound()
        return InvitationLookup(invitation=invitation, status=self.status_of(invitation))

    async def get_invitation_details(self, token: str) -> InvitationDetails:
        """What the accept page shows. Does not consume the token.

        Raises:
            InvitationNotFound: No invitation has this token, or its team is gone.
        """
        async with self._storage.acquire() as uow:
            invitation = await uow.invitations.get_by_token_hash(hash_token(token))
            if invitation is None:
                raise InvitationNotFound()
            team = await uow.teams.get_team_by_id(invitation.team_id)
            if team is None:
                raise InvitationNotFound()
            inviter = await uow.users.get_user(invitation.invited_by)

        return InvitationDetails(
            invitation_id=invitation.id,
            email=invitation.email,
            role=invitation.role,
            status=self.status_of(invitation),
            expires_at=invitation.expires_at,
            team_name=team.name,
            team_slug=team.slug,
            inviter_name=inviter.name if inviter else None,
            inviter_email=str(inviter.email) if inviter else None,
        )

    async def accept_invitation(self, token: str, context: Context | None) -> Membership:
        """Join a team with an invitation token.

        The membership insert and the acceptance mark are one transaction:
        either the caller is on the team and the token is spent, or neither.
        The invitation's state is read under the team lock, which every
        invitation write also takes.

        Args:
            token: Plaintext invitation token.
            context: Resolved accepting caller.

        Returns:
            The new membership.

        Raises:
            Unauthenticated: No caller.
            InvitationNotFound: Unknown token.
            InvitationAlreadyAccepted: The token was already used.
            InvitationExpired: The invitation's expiry has passed.
            EmailMismatch: The caller's email is not the invited email.
            AlreadyMember: The caller is already on the team.
            CapacityExceeded: The team filled up since the invitation was sent.
        """
        if context is None:
            raise Unauthenticated()

        now = self._clock()
        async with self._storage.transaction() as uow:
            found = await uow.invitations.get_by_token_hash(hash_token(token))
            if found is None:
                raise InvitationNotFound()
            team = await uow.teams.lock_team(found.team_id)
            if team is None:
                raise InvitationNotFound()
            invitation = await uow.invitations.get_by_id(found.id)
            if invitation is None:
                raise InvitationNotFound()

            status = invitation.status_at(now)
            if status == InvitationStatus.ACCEPTED:
                logger.info("invitation_reuse_rejected", invitation_id=str(invitation.id))
                raise InvitationAlreadyAccepted()
            if status == InvitationStatus.EXPIRED:
                raise InvitationExpired()

            if invitation.email.strip().lower() != context.email:
                logger.warning(
                    "invitation_email_mismatch",
                    invitation_id=str(invitation.id),
                    user_id=str(context.user_id),
                )
                raise EmailMismatch()

            if await uow.teams.get_membership(team.id, context.user_id) is not None:
                raise AlreadyMember()
            await self._registry.ensure_capacity(uow, team)

            membership = await uow.teams.add_membership(team.id, context.user_id, invitation.role)
            if not await uow.invitations.mark_accepted(invitation.id, now):
                raise InvitationAlreadyAccepted()

        logger.info(
            "invitation_accepted",
            invitation_id=str(invitation.id),
            team_id=str(team.id),
            user_id=str(context.user_id),
            role=invitation.role.value,
        )
        return membership
