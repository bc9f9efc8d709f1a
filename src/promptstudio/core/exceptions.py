"""Domain-specific exceptions.

All exceptions in the promptstudio system inherit from PromptStudioError,
making it easy to catch all system errors while still being able
to handle specific error types. Every error carries a stable ``code``
that the API layer uses as the machine-readable error identifier.
"""

from __future__ import annotations


class PromptStudioError(Exception):
    """Base exception for all promptstudio errors.

    All custom exceptions in the system should inherit from this class
    to enable catching all domain errors with a single except clause.
    """

    code = "error"
    default_message = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        """Initialize the error.

        Args:
            message: Human readable description. Falls back to the class default.
        """
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class Unauthenticated(PromptStudioError):
    """No valid credential, or the credential's identity no longer exists."""

    code = "unauthenticated"
    default_message = "Authentication required"


class AccessDenied(PromptStudioError):
    """Caller has no access to the requested team or action.

    TeamNotFound subclasses it, so catching AccessDenied also covers
    missing teams.
    """

    code = "access_denied"
    default_message = "Access denied"


class TeamNotFound(AccessDenied):
    """No team matches the given slug or id."""

    code = "team_not_found"
    default_message = "Team not found"


class AdminRequired(AccessDenied):
    """The action requires the ADMIN role in the team."""

    code = "admin_required"
    default_message = "Only team admins can perform this action"


class SystemAdminRequired(AccessDenied):
    """The action requires the SYSTEM_ADMIN global role."""

    code = "system_admin_required"
    default_message = "Admin access required"


class LastAdminProtected(PromptStudioError):
    """The mutation would leave the team without any admin."""

    code = "last_admin_protected"
    default_message = (
        "Cannot remove the last team admin. Promote another member to admin first."
    )


class SubscriptionRequired(PromptStudioError):
    """The capability requires a Pro subscription."""

    code = "subscription_required"
    default_message = "Team creation requires a Pro subscription"


class SlugTaken(PromptStudioError):
    """Another team already uses the requested slug."""

    code = "slug_taken"
    default_message = "Team URL already exists. Please choose a different one."


class CapacityExceeded(PromptStudioError):
    """The team has reached its member limit."""

    code = "capacity_exceeded"
    default_message = (
        "Team has reached the maximum number of members. "
        "Upgrade to Pro for unlimited members."
    )


class AlreadyMember(PromptStudioError):
    """The user already belongs to the team."""

    code = "already_member"
    default_message = "User is already a team member"


class MemberNotFound(PromptStudioError):
    """The target user is not a member of the team."""

    code = "member_not_found"
    default_message = "User is not a member of this team"


class InvitationAlreadySent(PromptStudioError):
    """A pending invitation already exists for this team and email."""

    code = "invitation_already_sent"
    default_message = "An active invitation has already been sent to this email"


class InvitationNotFound(PromptStudioError):
    """No invitation matches the token."""

    code = "invitation_not_found"
    default_message = "Invitation not found"


class InvitationExpired(PromptStudioError):
    """The invitation's expiry has passed."""

    code = "invitation_expired"
    default_message = "This invitation has expired"


class InvitationAlreadyAccepted(PromptStudioError):
    """The invitation was already used to join the team."""

    code = "invitation_already_accepted"
    default_message = "This invitation has already been accepted"


class EmailMismatch(PromptStudioError):
    """The accepting identity's email differs from the invited email."""

    code = "email_mismatch"
    default_message = "This invitation was sent to a different email address"


class ValidationError(PromptStudioError):
    """A single input field failed validation.

    Attributes:
        field: Name of the offending input field.
        reason: User-facing explanation.
    """

    code = "validation_error"

    def __init__(self, field: str, reason: str) -> None:
        """Initialize ValidationError.

        Args:
            field: Name of the offending input field.
            reason: User-facing explanation.
        """
        super().__init__(f"{field}: {reason}")
        self.field = field
        self.reason = reason


class ValidationErrors(PromptStudioError):
    """Several fields failed validation in the same request."""

    code = "validation_error"
    default_message = "Please fix the errors below"

    def __init__(self, errors: list[ValidationError]) -> None:
        """Initialize with the collected field errors.

        Args:
            errors: Field errors, at most one per field is kept.
        """
        super().__init__()
        self.errors = errors

    @property
    def field_errors(self) -> dict[str, str]:
        """Map of field name to the first reason reported for it."""
        result: dict[str, str] = {}
        for error in self.errors:
            result.setdefault(error.field, error.reason)
        return result
