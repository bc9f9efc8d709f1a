"""Session authentication dependencies.

The credential is read from the session cookie, or from an
``Authorization: Bearer`` header for API clients. Resolution itself is the
SessionResolver's job; these dependencies only extract and hand it over.
"""

from typing import Annotated

import structlog
from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from promptstudio.core.auth.context import Context, TeamContext
from promptstudio.core.auth.resolver import SessionResolver
from promptstudio.entrypoints.api.deps import get_resolver, settings

logger = structlog.get_logger()

bearer_scheme = HTTPBearer(auto_error=False)

ResolverDep = Annotated[SessionResolver, Depends(get_resolver)]


def read_credential(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme),  # noqa: B008
) -> str | None:
    """Raw credential from the bearer header, falling back to the cookie."""
    if credentials:
        return credentials.credentials
    return request.cookies.get(settings.session_cookie_name)


CredentialDep = Annotated[str | None, Depends(read_credential)]


async def get_context(
    request: Request,
    credential: CredentialDep,
    resolver: ResolverDep,
) -> Context:
    """Resolve the caller or fail with Unauthenticated."""
    context = await resolver.resolve_session(credential)
    request.state.user = context
    return context


async def get_team_context(
    slug: str,
    request: Request,
    credential: CredentialDep,
    resolver: ResolverDep,
) -> TeamContext:
    """Resolve the caller as a member of the team in the path."""
    team_context = await resolver.resolve_team_session(credential, slug)
    request.state.user = team_context
    logger.debug(
        "team_context_resolved",
        team_id=str(team_context.team_id),
        role=team_context.role.value,
    )
    return team_context


async def get_team_admin_context(
    slug: str,
    request: Request,
    credential: CredentialDep,
    resolver: ResolverDep,
) -> TeamContext:
    """Resolve the caller as an admin of the team in the path."""
    team_context = await resolver.require_team_admin(credential, slug)
    request.state.user = team_context
    return team_context


RequireUser = Annotated[Context, Depends(get_context)]
RequireMember = Annotated[TeamContext, Depends(get_team_context)]
RequireTeamAdmin = Annotated[TeamContext, Depends(get_team_admin_context)]
