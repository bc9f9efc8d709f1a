"""Input validation for team and invitation forms."""

import re

from promptstudio.core.auth.types import TeamRole
from promptstudio.core.exceptions import ValidationError, ValidationErrors

SLUG_PATTERN = re.compile(r"^[a-z0-9-]+$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

TEAM_NAME_MIN_LENGTH = 2
TEAM_NAME_MAX_LENGTH = 50
SLUG_MIN_LENGTH = 3
SLUG_MAX_LENGTH = 30


def clean_team_name(name: str | None) -> str:
    """Trim and validate a team name."""
    value = (name or "").strip()
    if not value:
        raise ValidationError("name", "Team name is required")
    if len(value) < TEAM_NAME_MIN_LENGTH:
        raise ValidationError("name", "Team name must be at least 2 characters")
    if len(value) > TEAM_NAME_MAX_LENGTH:
        raise ValidationError("name", "Team name must be at most 50 characters")
    return value


def clean_slug(slug: str | None) -> str:
    """Trim and validate a team slug. Slugs are not lowercased for the caller."""
    value = (slug or "").strip()
    if not value:
        raise ValidationError("slug", "Team URL slug is required")
    if not SLUG_PATTERN.match(value):
        raise ValidationError(
            "slug", "Team URL can only contain lowercase letters, numbers, and hyphens"
        )
    if len(value) < SLUG_MIN_LENGTH:
        raise ValidationError("slug", "Team URL must be at least 3 characters")
    if len(value) > SLUG_MAX_LENGTH:
        raise ValidationError("slug", "Team URL must be at most 30 characters")
    return value


def clean_email(email: str | None) -> str:
    """Trim, lowercase and validate an email address."""
    value = (email or "").strip().lower()
    if not value:
        raise ValidationError("email", "Email is required")
    if not EMAIL_PATTERN.match(value):
        raise ValidationError("email", "Invalid email format")
    return value


def clean_role(role: str | TeamRole | None) -> TeamRole:
    """Parse a team role."""
    if isinstance(role, TeamRole):
        return role
    try:
        return TeamRole((role or "").strip().lower())
    except ValueError:
        raise ValidationError("role", "Role must be either admin or member") from None


def validate_team_form(name: str | None, slug: str | None) -> tuple[str, str]:
    """Validate both team fields, reporting every failing field at once.

    Raises:
        ValidationErrors: One entry per failing field.
    """
    errors: list[ValidationError] = []
    clean_name = clean_slug_value = ""
    try:
        clean_name = clean_team_name(name)
    except ValidationError as e:
        errors.append(e)
    try:
        clean_slug_value = clean_slug(slug)
    except ValidationError as e:
        errors.append(e)
    if errors:
        raise ValidationErrors(errors)
    return clean_name, clean_slug_value


def validate_invitation_form(
    email: str | None, role: str | TeamRole | None
) -> tuple[str, TeamRole]:
    """Validate the invite form fields together.

    Raises:
        ValidationErrors: One entry per failing field.
    """
    errors: list[ValidationError] = []
    clean_email_value = ""
    clean_role_value = TeamRole.MEMBER
    try:
        clean_email_value = clean_email(email)
    except ValidationError as e:
        errors.append(e)
    try:
        clean_role_value = clean_role(role)
    except ValidationError as e:
        errors.append(e)
    if errors:
        raise ValidationErrors(errors)
    return clean_email_value, clean_role_value


def suggest_slug(name: str) -> str:
    """Generate a URL-safe slug candidate from a team name."""
    slug = name.lower()
    slug = re.sub(r"[^a-z0-9]+", "-", slug)
    slug = slug.strip("-")
    return slug[:SLUG_MAX_LENGTH].rstrip("-")
