"""Authorization domain types."""

from dataclasses import dataclass
from enum import Enum

from promptstudio.core.exceptions import PromptStudioError


class ActionScope(str, Enum):
    """Where an action applies."""

    SYSTEM = "system"
    TEAM = "team"
    TEAM_ADMIN = "team_admin"


class Action(str, Enum):
    """Actions the guard decides on."""

    # System-scoped
    SET_SUBSCRIPTION_TIER = "set_subscription_tier"
    LIST_USERS = "list_users"

    # Any team member
    VIEW_TEAM = "view_team"
    VIEW_MEMBERS = "view_members"

    # Team admins only
    UPDATE_TEAM = "update_team"
    DELETE_TEAM = "delete_team"
    INVITE_MEMBER = "invite_member"
    ADD_MEMBER = "add_member"
    CHANGE_MEMBER_ROLE = "change_member_role"
    REMOVE_MEMBER = "remove_member"
    VIEW_INVITATIONS = "view_invitations"
    CANCEL_INVITATION = "cancel_invitation"

    @property
    def scope(self) -> ActionScope:
        """Scope the action belongs to."""
        return ACTION_SCOPES[self]


ACTION_SCOPES: dict[Action, ActionScope] = {
    Action.SET_SUBSCRIPTION_TIER: ActionScope.SYSTEM,
    Action.LIST_USERS: ActionScope.SYSTEM,
    Action.VIEW_TEAM: ActionScope.TEAM,
    Action.VIEW_MEMBERS: ActionScope.TEAM,
    Action.UPDATE_TEAM: ActionScope.TEAM_ADMIN,
    Action.DELETE_TEAM: ActionScope.TEAM_ADMIN,
    Action.INVITE_MEMBER: ActionScope.TEAM_ADMIN,
    Action.ADD_MEMBER: ActionScope.TEAM_ADMIN,
    Action.CHANGE_MEMBER_ROLE: ActionScope.TEAM_ADMIN,
    Action.REMOVE_MEMBER: ActionScope.TEAM_ADMIN,
    Action.VIEW_INVITATIONS: ActionScope.TEAM_ADMIN,
    Action.CANCEL_INVITATION: ActionScope.TEAM_ADMIN,
}


@dataclass(frozen=True)
class Decision:
    """Outcome of a guard evaluation."""

    allowed: bool
    error: PromptStudioError | None = None

    @classmethod
    def allow(cls) -> "Decision":
        """An allowing decision."""
        return cls(allowed=True)

    @classmethod
    def deny(cls, error: PromptStudioError) -> "Decision":
        """A denying decision carrying the error to surface."""
        return cls(allowed=False, error=error)

    def enforce(self) -> None:
        """Raise the denial error, if any."""
        if not self.allowed:
            raise self.error or PromptStudioError("Access denied")
