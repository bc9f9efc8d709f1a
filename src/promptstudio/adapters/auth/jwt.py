"""JWT session credentials.

The session credential is an HS256 JWT whose ``sub`` claim is the user ID.
Only the identity is taken from the token; roles and tier are always read
from the user directory afterwards.
"""

from datetime import UTC, datetime, timedelta
from uuid import UUID

import jwt
import structlog

logger = structlog.get_logger()

DEFAULT_ALGORITHM = "HS256"
SESSION_TOKEN_EXPIRE_HOURS = 12


class JwtIdentityProvider:
    """Verifies session JWTs issued by the identity collaborator."""

    def __init__(self, secret_key: str, algorithm: str = DEFAULT_ALGORITHM) -> None:
        """Initialize the provider.

        Args:
            secret_key: Shared signing secret.
            algorithm: JWT signing algorithm.
        """
        self._secret_key = secret_key
        self._algorithm = algorithm

    async def verify_credential(self, credential: str) -> UUID | None:
        """Decode a session JWT and return the user ID it names.

        Returns:
            The user ID, or None if the token is expired, tampered with or
            has no usable ``sub`` claim.
        """
        try:
            payload = jwt.decode(credential, self._secret_key, algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError:
            logger.info("session_token_expired")
            return None
        except jwt.InvalidTokenError as e:
            logger.info("session_token_invalid", error=str(e))
            return None

        try:
            return UUID(str(payload["sub"]))
        except (KeyError, ValueError):
            logger.info("session_token_missing_subject")
            return None

    def issue_session_token(
        self,
        user_id: UUID,
        expires_in: timedelta = timedelta(hours=SESSION_TOKEN_EXPIRE_HOURS),
    ) -> str:
        """Create a session token for a user.

        Sign-in lives outside this service; whatever signs users in
        mints their cookie with this.
        """
        now = datetime.now(UTC)
        payload = {
            "sub": str(user_id),
            "iat": int(now.timestamp()),
            "exp": int((now + expires_in).timestamp()),
        }
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)
