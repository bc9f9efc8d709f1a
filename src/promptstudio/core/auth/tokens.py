"""Secure token generation for invitation links."""

import hashlib
import secrets
from datetime import UTC, datetime, timedelta

# Token configuration
INVITATION_TOKEN_BYTES = 32  # 256 bits of entropy
INVITATION_EXPIRY_DAYS = 7


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def generate_invitation_token() -> str:
    """Generate a cryptographically secure invitation token.

    Returns:
        URL-safe base64 encoded token string.
    """
    return secrets.token_urlsafe(INVITATION_TOKEN_BYTES)


def hash_token(token: str) -> str:
    """Hash a token for secure storage.

    Uses SHA-256 for fast lookup while maintaining security.
    The token itself has enough entropy that rainbow tables are infeasible.

    Args:
        token: The plaintext token to hash.

    Returns:
        Hex-encoded SHA-256 hash of the token.
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def get_invitation_expiry(created_at: datetime, days: int = INVITATION_EXPIRY_DAYS) -> datetime:
    """Calculate when an invitation created at ``created_at`` expires."""
    return created_at + timedelta(days=days)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes coming back from storage as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def build_accept_url(origin: str, token: str) -> str:
    """Build the shareable accept link ``<origin>/invitations/<token>``."""
    return f"{origin.rstrip('/')}/invitations/{token}"
