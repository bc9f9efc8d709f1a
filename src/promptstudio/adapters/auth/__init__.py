"""Identity adapters."""

from .jwt import JwtIdentityProvider
from .postgres import PostgresUserDirectory

__all__ = ["JwtIdentityProvider", "PostgresUserDirectory"]
