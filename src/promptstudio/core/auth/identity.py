"""Identity provider protocol.

Credential storage and verification belong to an external identity
provider. The core only needs to turn a raw session credential into a
stable user ID.
"""

from typing import Protocol, runtime_checkable
from uuid import UUID


@runtime_checkable
class IdentityProvider(Protocol):
    """Protocol for resolving inbound credentials.

    Example implementations:
    - JwtIdentityProvider: verifies signed session tokens locally
    - A client for a hosted auth service's session endpoint
    """

    async def verify_credential(self, raw: str) -> UUID | None:
        """Resolve a raw credential.

        Args:
            raw: Session cookie value or bearer token.

        Returns:
            The identity's user ID, or None if the credential is missing,
            malformed, expired or revoked.
        """
        ...
