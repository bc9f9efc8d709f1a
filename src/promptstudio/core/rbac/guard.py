"""Authorization guard.

Pure decision functions over snapshots supplied by the registries. Rules are
evaluated in order and the first match wins:

1. No resolved identity denies everything.
2. System admins may perform system-scoped actions. The bypass never extends
   to team actions.
3. Team actions require a membership in that team.
4. Admin-only team actions require the ADMIN role.
5. No action may reduce a team's ADMIN count to zero.

Anything the guard cannot classify is denied.
"""

from uuid import UUID

import structlog

from promptstudio.core.auth.context import Context
from promptstudio.core.auth.types import TeamRole
from promptstudio.core.exceptions import (
    AccessDenied,
    AdminRequired,
    LastAdminProtected,
    SystemAdminRequired,
    Unauthenticated,
)
from promptstudio.core.rbac.types import Action, ActionScope, Decision

logger = structlog.get_logger()


def evaluate(
    context: Context | None,
    action: Action,
    team_role: TeamRole | None = None,
) -> Decision:
    """Decide whether the caller may perform an action.

    Args:
        context: Resolved caller, or None when no identity was resolved.
        action: Requested action.
        team_role: Caller's current role in the target team, None if not a member.
            Ignored for system-scoped actions.

    Returns:
        Decision with the error to surface when denied.
    """
    if context is None:
        return Decision.deny(Unauthenticated())

    scope = action.scope

    if scope == ActionScope.SYSTEM:
        if context.is_system_admin:
            return Decision.allow()
        return Decision.deny(SystemAdminRequired())

    if team_role is None:
        return Decision.deny(AccessDenied())

    if scope == ActionScope.TEAM:
        return Decision.allow()

    if scope == ActionScope.TEAM_ADMIN:
        if team_role == TeamRole.ADMIN:
            return Decision.allow()
        return Decision.deny(AdminRequired())

    return Decision.deny(AccessDenied())


def authorize(
    context: Context | None,
    action: Action,
    team_role: TeamRole | None = None,
    team_id: UUID | None = None,
) -> None:
    """Evaluate and raise on denial.

    Raises:
        Unauthenticated, AccessDenied, AdminRequired, SystemAdminRequired.
    """
    decision = evaluate(context, action, team_role)
    if not decision.allowed:
        logger.warning(
            "authorization_denied",
            action=action.value,
            user_id=str(context.user_id) if context else None,
            team_id=str(team_id) if team_id else None,
            reason=decision.error.code if decision.error else None,
        )
    decision.enforce()


def evaluate_admin_count_change(
    current_role: TeamRole,
    new_role: TeamRole | None,
    admin_count: int,
) -> Decision:
    """Decide whether changing one member's role keeps at least one admin.

    Args:
        current_role: Target member's role before the change.
        new_role: Role after the change, None when the member is removed.
        admin_count: ADMIN memberships in the team, read at decision time.

    Returns:
        Decision denying with LastAdminProtected when the team would have no admin.
    """
    if current_role != TeamRole.ADMIN or new_role == TeamRole.ADMIN:
        return Decision.allow()
    if admin_count <= 1:
        return Decision.deny(LastAdminProtected())
    return Decision.allow()


def ensure_admin_remains(
    current_role: TeamRole,
    new_role: TeamRole | None,
    admin_count: int,
    team_id: UUID | None = None,
) -> None:
    """Raise LastAdminProtected if the change would leave no admin."""
    decision = evaluate_admin_count_change(current_role, new_role, admin_count)
    if not decision.allowed:
        logger.warning(
            "last_admin_protected",
            team_id=str(team_id) if team_id else None,
            admin_count=admin_count,
        )
    decision.enforce()
